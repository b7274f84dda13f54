# Overview: Service-layer operations for session; token issue/validate/revoke and the session context.

"""
Session Token Management

Tokens are 32 random bytes (hex) handed to the client; only their SHA-256
hash is stored. Sessions expire after SESSION_ABSOLUTE_TIMEOUT and are
revoked after SESSION_IDLE_TIMEOUT without use. A revoked session loses its
cart in the app's CartRegistry.

SessionContext is the explicit value passed into checkout/void/edit; there
is no process-wide "current user".
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User, ROLE_ADMIN
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=12)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionContext:
    """Acting user for one terminal session."""
    user_id: int
    username: str
    role: str
    session_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def for_user(cls, user: User, session_id: int | None = None) -> "SessionContext":
        return cls(user_id=user.id, username=user.username, role=user.role, session_id=session_id)


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _drop_cart(session_id: int) -> None:
    carts = current_app.extensions.get("tillpoint.carts")
    if carts is not None:
        carts.discard(session_id)


def _prune_carts(now) -> int:
    """Drop carts whose session is revoked, expired or idle past the timeout."""
    carts = current_app.extensions.get("tillpoint.carts")
    if carts is None:
        return 0
    live_ids = {
        row.id
        for row in db.session.query(SessionToken.id).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= now,
            SessionToken.last_used_at >= now - SESSION_IDLE_TIMEOUT,
        )
    }
    return carts.prune(live_ids)


def create_session(user_id: int) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Raises ValueError if the user does not exist.

    Carts left behind by sessions that ended without a logout are pruned
    here.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()

    pruned = _prune_carts(now)
    if pruned:
        log.debug("Pruned %d carts of ended sessions", pruned)

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()
    _drop_cart(session.id)


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if the token is unknown, expired, idle too long, revoked,
    or its user has been deactivated. Sessions rejected for any reason but
    "unknown" are revoked and lose their cart. Updates last_used_at on
    success.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    now = utcnow()
    if session.expires_at < now:
        _revoke(session, "Session expired")
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext.for_user(user, session_id=session.id)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke session token. Returns True if session was revoked, False if not found."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """
    Revoke every active session of a user and drop their carts.

    Returns count of sessions revoked.
    """
    now = utcnow()
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False,
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason
    db.session.commit()

    for session in sessions:
        _drop_cart(session.id)
    return len(sessions)
