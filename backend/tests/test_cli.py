"""
CLI command tests.

Verifies:
- `system init` seeds access control idempotently and creates the super admin once
- `roles grant` / `roles revoke` edit module grants
- `users create` reports validation failures instead of crashing
"""

from stockai.models import Module, Role, User
from stockai.services import permission_service


def _invoke(app, *args):
    return app.test_cli_runner().invoke(args=list(args))


class TestSystemInit:

    def test_init_seeds_everything(self, app, db_session):
        result = _invoke(
            app, "system", "init",
            "--super-admin-email", "root@stockai.test",
            "--super-admin-password", "Password123!",
        )
        assert result.exit_code == 0, result.output
        assert "DONE StockAI initialized" in result.output

        db_session.expire_all()
        assert db_session.query(Module).count() == 11
        assert db_session.query(Role).filter_by(slug="super_admin", is_system=True).count() == 1
        assert db_session.query(User).filter_by(role="super_admin").count() == 1

    def test_init_twice_keeps_single_super_admin(self, app, db_session):
        args = ("system", "init", "--super-admin-email", "root@stockai.test", "--super-admin-password", "Password123!")
        _invoke(app, *args)
        result = _invoke(app, *args)
        assert result.exit_code == 0
        assert "Modules created: 0" in result.output
        assert "WARN Super admin not created" in result.output

        db_session.expire_all()
        assert db_session.query(User).count() == 1


class TestRoleCommands:

    def test_grant_and_revoke(self, app, setup_roles):
        result = _invoke(app, "roles", "grant", "user", "Sales")
        assert "PASS Granted Sales to user" in result.output
        assert permission_service.role_has_module("user", "Sales") is True

        result = _invoke(app, "roles", "revoke", "user", "Sales")
        assert "PASS Revoked Sales from user" in result.output
        assert permission_service.role_has_module("user", "Sales") is False

    def test_unknown_module(self, app, setup_roles):
        result = _invoke(app, "roles", "grant", "user", "Nope")
        assert result.output.startswith("FAIL")

    def test_list(self, app, setup_roles):
        result = _invoke(app, "roles", "list")
        assert "super_admin" in result.output
        assert "My Orders" in result.output


class TestUserCommands:

    def test_create_user(self, app, setup_roles, db_session):
        result = _invoke(
            app, "users", "create",
            "--name", "clerk", "--email", "clerk@stockai.test",
            "--password", "Password123!", "--role", "manager",
        )
        assert "PASS Created user clerk" in result.output
        db_session.expire_all()
        assert db_session.query(User).filter_by(email="clerk@stockai.test").one().role == "manager"

    def test_weak_password_reported(self, app, setup_roles):
        result = _invoke(
            app, "users", "create",
            "--name", "clerk", "--email", "clerk@stockai.test", "--password", "weak",
        )
        assert result.exit_code == 0
        assert result.output.startswith("FAIL")
