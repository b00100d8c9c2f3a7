"""
Authentication tests.

Verifies:
- Login by name or email returns token, user and module list
- Pending and rejected accounts cannot log in
- Logout and password change revoke sessions
- Password strength rules
"""

from datetime import timedelta

import pytest

from stockai.formats import utcnow
from stockai.models import SecurityEvent, SessionToken
from stockai.services.auth_service import validate_password_strength, PasswordValidationError, verify_password, hash_password
from stockai.services import permission_service, session_service


class TestLogin:

    @pytest.mark.parametrize("identifier", ["lena", "lena@stockai.test"])
    def test_login_by_name_or_email(self, login, make_user, identifier):
        make_user("lena", role="user")
        resp = login(identifier)
        assert resp.status_code == 200
        data = resp.get_json()
        assert len(data["token"]) == 64
        assert data["user"]["name"] == "lena"
        assert data["user"]["role"] == "user"
        assert data["user"]["permissions"] == ["Dashboard", "Cart", "My Orders", "Settings"]
        assert "password_hash" not in data["user"]

    def test_super_admin_login_lists_every_module(self, login, make_user):
        make_user("root", role="super_admin")
        data = login("root").get_json()
        assert data["user"]["permissions"] == permission_service.list_modules()

    def test_wrong_password(self, login, make_user, db_session):
        make_user("lena")
        resp = login("lena", "Wrong123!")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid credentials"
        assert db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").count() == 1

    def test_unknown_user(self, login, setup_roles):
        resp = login("nobody")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid credentials"

    @pytest.mark.parametrize("status,message", [
        ("pending", "Your account is pending approval"),
        ("rejected", "Your account has been rejected"),
    ])
    def test_inactive_accounts_blocked(self, login, make_user, status, message):
        make_user("tom", role="tenant", status=status)
        resp = login("tom")
        assert resp.status_code == 403
        assert resp.get_json()["error"] == message

    def test_missing_fields(self, client, setup_roles):
        resp = client.post("/api/auth/login", json={})
        assert resp.status_code == 400


class TestSessions:

    def test_token_works_then_logout_revokes(self, client, login, make_user):
        make_user("lena")
        token = login("lena").get_json()["token"]
        headers = {"Authorization": f"Bearer {token}"}

        assert client.get("/api/auth/me", headers=headers).status_code == 200
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_token_stored_hashed(self, make_user, db_session):
        user = make_user("lena")
        _, token = session_service.create_session(user.id)
        stored = db_session.query(SessionToken).filter_by(user_id=user.id).one()
        assert stored.token_hash != token
        assert stored.token_hash == session_service.hash_token(token)

    def test_deactivated_user_loses_session(self, make_user, db_session):
        user = make_user("lena")
        _, token = session_service.create_session(user.id)
        user.status = "rejected"
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_expired_session(self, make_user, db_session):
        user = make_user("lena")
        session, token = session_service.create_session(user.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_idle_session_revoked(self, make_user, db_session):
        user = make_user("lena")
        session, token = session_service.create_session(user.id)
        session.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT * 2
        db_session.commit()
        assert session_service.validate_session(token) is None
        db_session.refresh(session)
        assert session.is_revoked is True
        assert session.revoked_reason == "Idle timeout"


class TestChangePassword:

    def test_change_password_revokes_sessions(self, client, login, make_user):
        make_user("lena")
        token = login("lena").get_json()["token"]
        headers = {"Authorization": f"Bearer {token}"}

        resp = client.put(
            "/api/users/change-password",
            json={"currentPassword": "Password123!", "newPassword": "NewPassw0rd!"},
            headers=headers,
        )
        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401
        assert login("lena", "NewPassw0rd!").status_code == 200
        assert login("lena").status_code == 400

    def test_wrong_current_password(self, client, make_user, auth_for):
        headers = auth_for(make_user("lena"))
        resp = client.put(
            "/api/users/change-password",
            json={"currentPassword": "nope", "newPassword": "NewPassw0rd!"},
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Current password is incorrect"

    def test_weak_new_password(self, client, make_user, auth_for):
        headers = auth_for(make_user("lena"))
        resp = client.put(
            "/api/users/change-password",
            json={"currentPassword": "Password123!", "newPassword": "short"},
            headers=headers,
        )
        assert resp.status_code == 400


class TestPasswordRules:

    @pytest.mark.parametrize("password", ["Sh0rt!", "alllower1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial123"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)

    def test_hash_roundtrip(self):
        hashed = hash_password("Password123!")
        assert hashed.startswith("$2")
        assert verify_password("Password123!", hashed)
        assert not verify_password("Password123?", hashed)

    def test_malformed_hash_never_verifies(self):
        assert verify_password("Password123!", "not-a-bcrypt-hash") is False
