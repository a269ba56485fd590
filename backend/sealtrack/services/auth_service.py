# Overview: Authentication port and its local (bcrypt + SQL) adapter.

"""
Authentication Service

WHY: Every action must be attributable. Identities live in the
`identities` table (email + bcrypt hash); the profile that decides the
role and station lives in the `users` document collection under the
same id.

The AuthProvider port is what the rest of the app talks to:

    sign_in(email, password)          -> SignInResult
    sign_out(token)                   -> bool
    validate_session(token)           -> SessionContext | None
    create_identity(email, temp_password, display_name) -> identity id
    send_password_reset(email)        -> reset token | None
    reset_password(token, password)   -> None

LocalAuthProvider implements it against the relational DB. Password
reset delivery is out of band: the token is returned to the caller
(CLI, admin API) and is never written to the log.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters with upper, lower, digit and special character
- Reset tokens are single use and hashed like session tokens
- A completed reset revokes every session of the identity
"""

from __future__ import annotations

import logging
import re
import secrets
import string
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta

import bcrypt
from flask import current_app, has_app_context

from ..extensions import db
from ..models import Identity, PasswordResetToken, SessionToken
from ..validation import ConflictError, ValidationError
from . import entity_store, session_service
from .document_store import DocumentStore, generate_document_id
from .entities import UserProfile
from .permission_service import log_security_event
from .session_service import SessionContext
from sealtrack.time_utils import utcnow


logger = logging.getLogger(__name__)

PASSWORD_RESET_TTL = timedelta(hours=24)
BCRYPT_ROUNDS = 12


class PasswordValidationError(ValidationError):
    """Raised when a password doesn't meet strength requirements."""
    pass


class AuthenticationError(Exception):
    """Sign-in failed. The message is safe to show to the user."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter, one lowercase letter and one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r"[A-Z]", password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r"[a-z]", password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt-hash with cost factor 12."""
    validate_password_strength(password)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_temporary_password(length: int = 16) -> str:
    """Random password that satisfies validate_password_strength."""
    alphabet = string.ascii_letters + string.digits
    core = "".join(secrets.choice(alphabet) for _ in range(length - 4))
    return (
        core
        + secrets.choice(string.ascii_uppercase)
        + secrets.choice(string.ascii_lowercase)
        + secrets.choice(string.digits)
        + secrets.choice("!@#$%^&*")
    )


def _reset_ttl() -> timedelta:
    if has_app_context():
        return timedelta(hours=current_app.config.get("PASSWORD_RESET_TTL_HOURS", 24))
    return PASSWORD_RESET_TTL


@dataclass
class SignInResult:
    session: SessionToken
    token: str
    profile: UserProfile

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "user": self.profile.to_dict(),
            "session": self.session.to_dict(),
        }


class AuthProvider(ABC):
    @abstractmethod
    def sign_in(self, email: str, password: str, user_agent: str | None = None, ip_address: str | None = None) -> SignInResult:
        ...

    @abstractmethod
    def sign_out(self, token: str) -> bool:
        ...

    @abstractmethod
    def validate_session(self, token: str) -> SessionContext | None:
        ...

    @abstractmethod
    def create_identity(self, email: str, temp_password: str, display_name: str | None = None) -> str:
        ...

    @abstractmethod
    def send_password_reset(self, email: str) -> str | None:
        ...

    @abstractmethod
    def reset_password(self, token: str, password: str) -> None:
        ...


class LocalAuthProvider(AuthProvider):
    def __init__(self, store: DocumentStore):
        self.users = entity_store.users(store)

    @staticmethod
    def _find_identity(email: str) -> Identity | None:
        return db.session.query(Identity).filter(
            db.func.lower(Identity.email) == (email or "").strip().lower()
        ).first()

    def sign_in(self, email, password, user_agent=None, ip_address=None):
        """
        Verify credentials, look up the profile and open a session bound
        to the profile's role and station.
        """
        identity = self._find_identity(email)
        if identity is None or not identity.is_active or not verify_password(password or "", identity.password_hash):
            log_security_event(
                identity_id=identity.id if identity else None,
                event_type="LOGIN_FAILED",
                success=False,
                action="SIGN_IN",
                reason="Invalid credentials",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise AuthenticationError("Invalid email or password")

        profile = self.users.get(identity.id)
        if profile is None:
            log_security_event(
                identity_id=identity.id,
                event_type="LOGIN_FAILED",
                success=False,
                action="SIGN_IN",
                reason="No user profile",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise AuthenticationError("No user profile found for this account")

        try:
            session, token = session_service.create_session(
                identity.id,
                role=profile.role,
                station_id=profile.station_id,
                user_agent=user_agent,
                ip_address=ip_address,
            )
        except session_service.SessionError as exc:
            raise AuthenticationError(str(exc)) from exc

        identity.last_login_at = utcnow()
        db.session.commit()
        logger.info("Identity %s signed in as %s", identity.id, profile.role, extra={"actor_id": identity.id})
        return SignInResult(session=session, token=token, profile=profile)

    def sign_out(self, token):
        return session_service.revoke_session(token, reason="User logout")

    def validate_session(self, token):
        return session_service.validate_session(token)

    def create_identity(self, email, temp_password, display_name=None):
        email = (email or "").strip()
        if not email or "@" not in email:
            raise ValidationError("A valid email is required")
        if self._find_identity(email) is not None:
            raise ConflictError("An account with this email already exists")

        identity = Identity(
            id=generate_document_id(),
            email=email,
            display_name=display_name,
            password_hash=hash_password(temp_password),
            is_active=True,
            created_at=utcnow(),
        )
        db.session.add(identity)
        db.session.commit()
        logger.info("Created identity %s", identity.id, extra={"actor_id": identity.id})
        return identity.id

    def send_password_reset(self, email):
        """
        Issue a single-use reset token.

        Unknown emails return None without raising, so the response does
        not reveal which emails have accounts.
        """
        identity = self._find_identity(email)
        if identity is None or not identity.is_active:
            logger.info("Password reset requested for unknown account")
            return None

        token = secrets.token_urlsafe(32)
        now = utcnow()
        db.session.add(PasswordResetToken(
            identity_id=identity.id,
            token_hash=session_service.hash_token(token),
            created_at=now,
            expires_at=now + _reset_ttl(),
        ))
        db.session.commit()

        log_security_event(
            identity_id=identity.id,
            event_type="PASSWORD_RESET_REQUESTED",
            success=True,
            action="PASSWORD_RESET",
        )
        return token

    def reset_password(self, token, password):
        record = db.session.query(PasswordResetToken).filter_by(
            token_hash=session_service.hash_token(token or ""),
        ).first()
        if record is None or record.used_at is not None or record.expires_at < utcnow():
            raise ValidationError("Invalid or expired reset token")

        # Strength check before the token is consumed
        new_hash = hash_password(password)

        record.identity.password_hash = new_hash
        record.used_at = utcnow()
        db.session.commit()

        revoked = session_service.revoke_all_sessions(record.identity_id, reason="Password reset")
        log_security_event(
            identity_id=record.identity_id,
            event_type="PASSWORD_RESET_COMPLETED",
            success=True,
            action="PASSWORD_RESET",
            reason=f"Revoked {revoked} session(s)",
        )
