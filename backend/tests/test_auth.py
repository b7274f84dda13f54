"""
Auth and session tests.

Verifies password rules and hashing, login checks, and that session
tokens stop validating once revoked, expired, idle or orphaned.
"""

from datetime import timedelta

import pytest

from tillpoint.errors import ConflictError, NotFound, ValidationError
from tillpoint.models import SessionToken
from tillpoint.services import auth_service, session_service
from tillpoint.services.auth_service import PasswordValidationError
from tillpoint.time_utils import utcnow


class TestPasswords:

    @pytest.mark.parametrize("password", ["short1", "allletters", "12345678"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_hash_and_verify(self):
        hashed = auth_service.hash_password("Password123", rounds=4)
        assert hashed != "Password123"
        assert auth_service.verify_password("Password123", hashed)
        assert not auth_service.verify_password("Password124", hashed)

    def test_malformed_hash_never_matches(self):
        assert not auth_service.verify_password("Password123", "not-a-bcrypt-hash")


class TestUsers:

    def test_create_user(self, db_session):
        user = auth_service.create_user("Alice", "Password123", role="cashier", rounds=4)
        assert user.id is not None
        assert user.role == "CASHIER"
        assert user.password_hash != "Password123"

    def test_duplicate_username(self, db_session):
        auth_service.create_user("alice", "Password123", rounds=4)
        with pytest.raises(ConflictError):
            auth_service.create_user("alice", "Password456", rounds=4)

    def test_unknown_role(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.create_user("bob", "Password123", role="manager", rounds=4)

    def test_authenticate(self, cashier):
        assert auth_service.authenticate("cashier", "Password123").id == cashier.id
        assert cashier.last_login_at is not None
        assert auth_service.authenticate("cashier", "wrong") is None
        assert auth_service.authenticate("nobody", "Password123") is None

    def test_inactive_user_cannot_authenticate(self, db_session, cashier):
        cashier.is_active = False
        db_session.commit()
        assert auth_service.authenticate("cashier", "Password123") is None


class TestSessions:

    def test_token_is_stored_hashed(self, cashier):
        session, token = session_service.create_session(cashier.id)
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_validate_returns_context(self, cashier):
        session, token = session_service.create_session(cashier.id)
        context = session_service.validate_session(token)
        assert context.user_id == cashier.id
        assert context.session_id == session.id
        assert context.is_admin is False

    def test_unknown_token(self, db_session):
        assert session_service.validate_session("nope") is None

    def test_unknown_user(self, db_session):
        with pytest.raises(ValueError):
            session_service.create_session(9999)

    def test_revoke(self, cashier):
        _, token = session_service.create_session(cashier.id)
        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_idle_timeout_revokes(self, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        session.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None
        refreshed = db_session.get(SessionToken, session.id)
        assert refreshed.is_revoked
        assert refreshed.revoked_reason == "Idle timeout"

    def test_absolute_expiry(self, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        session.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_deactivated_user(self, db_session, cashier):
        _, token = session_service.create_session(cashier.id)
        cashier.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None


class TestUserManagement:

    def test_list_users_hides_inactive(self, db_session, cashier, admin):
        cashier.is_active = False
        db_session.commit()
        assert [u.username for u in auth_service.list_users()] == ["admin"]
        assert [u.username for u in auth_service.list_users(include_inactive=True)] == ["admin", "cashier"]

    def test_update_user(self, cashier):
        user = auth_service.update_user(cashier.id, username="dana", full_name="Dana K", role="admin")
        assert user.username == "dana"
        assert user.full_name == "Dana K"
        assert user.role == "ADMIN"
        assert auth_service.authenticate("dana", "Password123").id == cashier.id

    def test_update_password(self, cashier):
        auth_service.update_user(cashier.id, password="NewPassword9", rounds=4)
        assert auth_service.authenticate("cashier", "Password123") is None
        assert auth_service.authenticate("cashier", "NewPassword9").id == cashier.id

    def test_update_rejects_taken_name_and_bad_role(self, cashier, admin):
        with pytest.raises(ConflictError):
            auth_service.update_user(cashier.id, username="admin")
        with pytest.raises(ValidationError):
            auth_service.update_user(cashier.id, role="manager")
        with pytest.raises(ValidationError):
            auth_service.update_user(cashier.id, username="  ")
        with pytest.raises(NotFound):
            auth_service.update_user(9999, full_name="Nobody")

    def test_deactivate_revokes_sessions_and_drops_carts(self, app, db_session, cashier, admin):
        first, first_token = session_service.create_session(cashier.id)
        second, second_token = session_service.create_session(cashier.id)
        carts = app.extensions["tillpoint.carts"]
        carts.get(first.id)
        carts.get(second.id)

        revoked = auth_service.deactivate_user(cashier.id, acting_user_id=admin.id)

        assert revoked == 2
        assert session_service.validate_session(first_token) is None
        assert session_service.validate_session(second_token) is None
        assert first.id not in carts
        assert second.id not in carts
        assert db_session.get(SessionToken, first.id).revoked_reason == "Account deactivated"
        assert auth_service.authenticate("cashier", "Password123") is None

    def test_deactivate_guards(self, admin, cashier):
        with pytest.raises(ValidationError):
            auth_service.deactivate_user(admin.id, acting_user_id=admin.id)
        auth_service.deactivate_user(cashier.id)
        with pytest.raises(ValidationError):
            auth_service.deactivate_user(cashier.id)

    def test_reactivate(self, cashier):
        auth_service.deactivate_user(cashier.id)
        user = auth_service.reactivate_user(cashier.id)
        assert user.is_active
        assert auth_service.authenticate("cashier", "Password123").id == cashier.id
        with pytest.raises(ValidationError):
            auth_service.reactivate_user(cashier.id)


class TestSessionCarts:

    def test_logout_drops_cart(self, app, cashier):
        session, token = session_service.create_session(cashier.id)
        carts = app.extensions["tillpoint.carts"]
        carts.get(session.id)
        session_service.revoke_session(token)
        assert session.id not in carts

    def test_idle_timeout_drops_cart(self, app, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        carts = app.extensions["tillpoint.carts"]
        carts.get(session.id)
        session.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None
        assert session.id not in carts

    def test_expired_session_is_revoked_and_drops_cart(self, app, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        carts = app.extensions["tillpoint.carts"]
        carts.get(session.id)
        session.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        assert session_service.validate_session(token) is None
        assert db_session.get(SessionToken, session.id).revoked_reason == "Session expired"
        assert session.id not in carts

    def test_login_prunes_carts_of_abandoned_sessions(self, app, db_session, cashier, admin):
        carts = app.extensions["tillpoint.carts"]
        abandoned, _ = session_service.create_session(cashier.id)
        carts.get(abandoned.id)
        # terminal walked away; nobody ever presents the token again
        abandoned.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()
        live, _ = session_service.create_session(cashier.id)
        carts.get(live.id)

        session_service.create_session(admin.id)

        assert abandoned.id not in carts
        assert live.id in carts
