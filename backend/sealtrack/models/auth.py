from __future__ import annotations

from ..extensions import db
from sealtrack.time_utils import to_utc_z


class Identity(db.Model):
    """
    Authentication identity (email + bcrypt password hash).

    The profile (name, role, station binding) lives in the `users`
    document collection under the same id; this table only answers
    "who is this and did they prove it".

    WHY: Every action must be attributable. No shared logins.
    """
    __tablename__ = "identities"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_identities_email"),
    )

    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    display_name = db.Column(db.String(255), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)


class SessionToken(db.Model):
    """
    Session tokens for authenticated identities.

    SECURITY: Only the SHA-256 hash of the token is stored.

    The role, portal and station binding are captured when the session is
    created and never change for the session lifetime; a role change takes
    effect on the next sign-in.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_identity", "identity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    identity_id = db.Column(db.String(64), db.ForeignKey("identities.id"), nullable=False)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    role = db.Column(db.String(32), nullable=False)
    portal = db.Column(db.String(32), nullable=False)
    station_id = db.Column(db.String(64), nullable=True)
    permissions = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)

    identity = db.relationship("Identity", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "identity_id": self.identity_id,
            "role": self.role,
            "portal": self.portal,
            "station_id": self.station_id,
            "permissions": sorted(self.permissions or []),
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
        }


class PasswordResetToken(db.Model):
    """Single-use password reset token (hashed like session tokens)."""
    __tablename__ = "password_reset_tokens"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    identity_id = db.Column(db.String(64), db.ForeignKey("identities.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)

    identity = db.relationship("Identity", backref=db.backref("reset_tokens", lazy=True))
