# Overview: Bearer session tokens: issue, validate, revoke and purge.

"""
Session tokens

A token is 32 random bytes (hex) handed to the client once. Only its SHA-256
digest is persisted, so a leaked database row cannot be replayed.

Lifetime rules:
- absolute: a session dies SESSION_ABSOLUTE_TIMEOUT after creation
- idle: a session unused for SESSION_IDLE_TIMEOUT is revoked on its next use
- account: a session whose user is no longer "active" is revoked on next use
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User
from ..formats import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)
PURGE_AFTER = timedelta(days=30)


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    # Tokens are high-entropy, a fast digest is enough
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _live_session(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .first()
    )


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Persist a new session for user_id; returns (row, plaintext token)."""
    if db.session.get(User, user_id) is None:
        raise ValueError("User not found")

    token = generate_token()
    issued = utcnow()
    row = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=issued,
        last_used_at=issued,
        expires_at=issued + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent[:512] if user_agent else None,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(row)
    db.session.commit()
    return row, token


def validate_session(token: str) -> User | None:
    """
    Resolve a bearer token to its user, or None.

    A successful lookup refreshes last_used_at. Idle sessions and sessions of
    inactive accounts are revoked as a side effect.
    """
    session = _live_session(token)
    if session is None:
        return None

    now = utcnow()
    if now > session.expires_at:
        return None

    reason = None
    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        reason = "Idle timeout"
    elif session.user is None or not session.user.is_active:
        reason = "User account not active"

    if reason:
        _revoke(session, reason)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return session.user


def revoke_session(token: str, reason: str = "User logout") -> bool:
    session = _live_session(token)
    if session is None:
        return False
    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """Revoke every live session of a user (password change, rejection). Returns the count."""
    live = (
        db.session.query(SessionToken)
        .filter(SessionToken.user_id == user_id, SessionToken.is_revoked.is_(False))
        .all()
    )
    for session in live:
        _revoke(session, reason)
    db.session.commit()
    return len(live)


def cleanup_expired_sessions() -> int:
    """Delete expired or revoked sessions created more than PURGE_AFTER ago."""
    now = utcnow()
    deleted = (
        db.session.query(SessionToken)
        .filter(
            db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True)),
            SessionToken.created_at < now - PURGE_AFTER,
        )
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
