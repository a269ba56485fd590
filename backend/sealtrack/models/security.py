from __future__ import annotations

from ..extensions import db


class SecurityEvent(db.Model):
    """
    Append-only record of denied permission checks, failed sign-ins and
    password reset activity.

    The activity log (a document collection) records what staff did to
    seals, stations and users. This table records who was refused and why.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_identity_type", "identity_id", "event_type"),
        db.Index("ix_security_events_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Null for sign-in attempts against unknown emails
    identity_id = db.Column(db.String(64), nullable=True, index=True)
    station_id = db.Column(db.String(64), nullable=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)
    resource = db.Column(db.String(128), nullable=True)  # request path
    action = db.Column(db.String(64), nullable=True)     # permission code or ANY_OF:...

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
