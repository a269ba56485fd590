# Overview: Session token issue, validation and revocation.

"""
Session Token Management Service

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in the database, and
time-limited.

Sessions capture the identity's role, portal, station binding and
permission set at creation time. This establishes the request context
for every authenticated call without a profile lookup per request. A
role change takes effect on the next sign-in.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute timeout (SESSION_ABSOLUTE_TIMEOUT_HOURS, default 24h)
- Idle timeout (SESSION_IDLE_TIMEOUT_HOURS, default 2h)
- Revocable on logout, password reset, or deactivation
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app, has_app_context

from ..extensions import db
from ..models import Identity, SessionToken
from ..permissions import get_role_portal
from .permission_service import resolve_permissions
from sealtrack.time_utils import utcnow


# Defaults when no app config is available
SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)


class SessionError(ValueError):
    """Raised when a session cannot be created for an identity."""
    pass


@dataclass
class SessionContext:
    """
    Everything an authenticated request needs, taken from the immutable
    session record.
    """
    identity: Identity
    session: SessionToken
    role: str
    portal: str
    station_id: str | None
    permissions: frozenset[str]

    @property
    def identity_id(self) -> str:
        return self.identity.id


def _timeouts() -> tuple[timedelta, timedelta]:
    if not has_app_context():
        return SESSION_ABSOLUTE_TIMEOUT, SESSION_IDLE_TIMEOUT
    config = current_app.config
    return (
        timedelta(hours=config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24)),
        timedelta(hours=config.get("SESSION_IDLE_TIMEOUT_HOURS", 2)),
    )


def generate_token() -> str:
    """64-character hex token. Sent to the client, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    SHA-256 of a token for storage.

    WHY SHA-256 not bcrypt: tokens are already high-entropy.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    identity_id: str,
    role: str,
    station_id: str | None = None,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create a session for an identity acting in `role`.

    Returns (session_record, plaintext_token).
    Raises SessionError for unknown identities or roles without a portal.
    """
    identity = db.session.get(Identity, identity_id)
    if identity is None:
        raise SessionError("Identity not found")
    if not identity.is_active:
        raise SessionError("Account is deactivated")

    portal = get_role_portal(role)
    if portal is None:
        raise SessionError(f"Role '{role}' has no portal")

    plaintext_token = generate_token()
    absolute_timeout, _ = _timeouts()
    now = utcnow()

    session = SessionToken(
        identity_id=identity_id,
        token_hash=hash_token(plaintext_token),
        role=role,
        portal=portal,
        station_id=station_id,
        permissions=sorted(resolve_permissions(role)),
        created_at=now,
        last_used_at=now,
        expires_at=now + absolute_timeout,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Validate a token and return its SessionContext.

    Returns None if the token is unknown, expired, revoked, idle too
    long, or its identity was deactivated. Updates last_used_at on
    success.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    absolute_timeout, idle_timeout = _timeouts()
    now = utcnow()

    if session.expires_at < now:
        return None

    if now - session.last_used_at > idle_timeout:
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    identity = session.identity
    if not identity or not identity.is_active:
        _revoke(session, "Account deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(
        identity=identity,
        session=session,
        role=session.role,
        portal=session.portal,
        station_id=session.station_id,
        permissions=frozenset(session.permissions or ()),
    )


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns True if a live session was revoked."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_sessions(identity_id: str, reason: str = "Revoke all sessions") -> int:
    """Revoke every live session of an identity. Returns the count."""
    sessions = db.session.query(SessionToken).filter_by(
        identity_id=identity_id,
        is_revoked=False,
    ).all()

    for session in sessions:
        _revoke(session, reason)

    db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(older_than_days: int = 30) -> int:
    """Delete expired or revoked sessions created more than `older_than_days` ago."""
    now = utcnow()
    cutoff = now - timedelta(days=older_than_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True),
        ),
        SessionToken.created_at < cutoff,
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
