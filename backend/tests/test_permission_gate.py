"""
Module permission gate tests.

Verifies:
- Unauthenticated requests return 401
- The super admin passes every module check without touching the database
- Roles without a module grant get 403 naming the module
- Denials are written to the security event log
- A failing permission lookup is a 500, not a deny
"""

import pytest
from sqlalchemy import event

from stockai.extensions import db
from stockai.models import SecurityEvent
from stockai.permissions import get_all_module_names, ModuleAccess
from stockai.services import permission_service


@pytest.fixture
def statements(app):
    """Collect every SQL statement executed while the fixture is active."""
    captured = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        captured.append(statement)

    engine = db.engine
    event.listen(engine, "before_cursor_execute", _record)
    yield captured
    event.remove(engine, "before_cursor_execute", _record)


@pytest.fixture
def tenant_with_products_only(make_user, setup_roles):
    permission_service.replace_role_modules({"tenant": ["Products"]})
    return make_user("tina", role="tenant")


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/sales/checkout"),
            ("POST", "/api/sales/create-checkout-session"),
            ("POST", "/api/sales/verify-payment"),
            ("GET", "/api/sales"),
            ("GET", "/api/sales/my-orders"),
            ("GET", "/api/sales/all-orders"),
            ("GET", "/api/products"),
            ("GET", "/api/inventory"),
            ("GET", "/api/users"),
            ("GET", "/api/roles"),
            ("GET", "/api/notifications"),
            ("GET", "/api/stats"),
            ("POST", "/api/admin/approve-tenant"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["error"] == "Authentication required"

    def test_invalid_token_rejected(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid or expired token"


# =============================================================================
# SUPER ADMIN: capability registry, no queries
# =============================================================================


class TestSuperAdminAccess:

    def test_every_module_granted_without_query(self, setup_roles, statements):
        for module_name in get_all_module_names():
            assert permission_service.role_has_module("super_admin", module_name)
        assert statements == []

    def test_unknown_module_still_granted(self, setup_roles, statements):
        assert permission_service.role_has_module("super_admin", "Some Future Module")
        assert statements == []

    def test_resolves_to_everything_without_query(self, setup_roles, statements):
        access = permission_service.resolve_module_access("super_admin")
        assert access == ModuleAccess.everything()
        assert statements == []

    def test_has_no_role_permission_rows(self, setup_roles):
        role_map = permission_service.get_role_permission_map()
        # Expanded in the map even though the table holds no rows for it
        assert role_map["super_admin"] == permission_service.list_modules()

    def test_http_access_to_every_gated_area(self, client, make_user, auth_for):
        root = make_user("root", role="super_admin")
        headers = auth_for(root)
        for path in ["/api/sales", "/api/sales/all-orders", "/api/users", "/api/roles/modules", "/api/stats"]:
            resp = client.get(path, headers=headers)
            assert resp.status_code == 200, f"{path} returned {resp.status_code}"

    def test_configured_slug_moves_the_bypass(self, app, setup_roles, monkeypatch):
        monkeypatch.setitem(app.config, "SUPER_ADMIN_ROLE", "owner")
        assert permission_service.role_has_module("owner", "Sales")
        # The old slug is now an ordinary role with no grants
        assert not permission_service.role_has_module("super_admin", "Sales")


# =============================================================================
# DATA-DRIVEN ROLES: 403 naming the module
# =============================================================================


class TestModuleDenied:

    def test_tenant_with_products_only_denied_sales(self, client, tenant_with_products_only, auth_for):
        resp = client.get("/api/sales", headers=auth_for(tenant_with_products_only))
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Access denied. No permission for module: Sales"
        assert "Sales" in resp.get_json()["error"]

    def test_tenant_with_products_only_allowed_products(self, client, tenant_with_products_only, auth_for):
        resp = client.get("/api/products", headers=auth_for(tenant_with_products_only))
        assert resp.status_code == 200

    @pytest.mark.parametrize(
        "method,path,module",
        [
            ("GET", "/api/products", "Products"),
            ("GET", "/api/inventory", "Inventory"),
            ("GET", "/api/sales", "Sales"),
            ("GET", "/api/sales/all-orders", "All Orders"),
            ("GET", "/api/users", "Users"),
            ("GET", "/api/roles/modules", "Roles"),
            ("POST", "/api/admin/approve-tenant", "Users"),
        ],
    )
    def test_plain_user_denied(self, client, make_user, auth_for, method, path, module):
        user = make_user("ulla", role="user")
        resp = getattr(client, method.lower())(path, headers=auth_for(user), json={})
        assert resp.status_code == 403
        assert resp.get_json()["error"] == f"Access denied. No permission for module: {module}"

    def test_pairs_absent_from_grants_are_denied(self, setup_roles):
        granted = set(permission_service.get_module_names_for_role("user"))
        for module_name in get_all_module_names():
            assert permission_service.role_has_module("user", module_name) == (module_name in granted)

    def test_unknown_role_denied_everything(self, setup_roles):
        for module_name in get_all_module_names():
            assert not permission_service.role_has_module("ghost", module_name)

    def test_require_module_raises_with_module_name(self, setup_roles):
        with pytest.raises(permission_service.ModuleAccessDenied) as excinfo:
            permission_service.require_module("user", "Inventory")
        assert str(excinfo.value) == "Access denied. No permission for module: Inventory"

    def test_x_auth_token_header_is_accepted(self, client, make_user, db_session):
        from stockai.services import session_service

        user = make_user("xena", role="user")
        _, token = session_service.create_session(user.id)
        resp = client.get("/api/sales/my-orders", headers={"x-auth-token": token})
        assert resp.status_code == 200


# =============================================================================
# AUDIT TRAIL AND FAILURE MODES
# =============================================================================


class TestDenialLogging:

    def test_denial_writes_security_event(self, client, make_user, auth_for, db_session):
        user = make_user("dora", role="user")
        client.get("/api/inventory", headers=auth_for(user))

        events = db_session.query(SecurityEvent).filter_by(event_type="MODULE_ACCESS_DENIED").all()
        assert len(events) == 1
        assert events[0].user_id == user.id
        assert events[0].role == "user"
        assert events[0].action == "Inventory"
        assert events[0].resource == "/api/inventory"
        assert events[0].success is False

    def test_grant_is_not_logged(self, client, make_user, auth_for, db_session):
        user = make_user("gina", role="user")
        resp = client.get("/api/sales/my-orders", headers=auth_for(user))
        assert resp.status_code == 200
        assert db_session.query(SecurityEvent).count() == 0


class TestLookupFailure:

    def test_database_error_is_500_not_403(self, client, make_user, auth_for, monkeypatch):
        from sqlalchemy.exc import OperationalError

        user = make_user("ollie", role="user")
        headers = auth_for(user)

        def boom(role_slug, module_name):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        monkeypatch.setattr(permission_service, "role_has_module", boom)
        resp = client.get("/api/sales/my-orders", headers=headers)
        assert resp.status_code == 500
        assert resp.get_json()["error"] == "Internal server error"
