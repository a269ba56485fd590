# Overview: Staff user provisioning: identity + profile document + password reset.

"""
Adding a user is three steps:

1. create an auth identity with a random temporary password
2. write the `users` profile document under the identity id
3. issue a password reset so the user sets their own password

The temporary password is never returned or logged. The reset token is
returned to the caller, which is responsible for delivering it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from .activity_log_service import ActivityLogService
from .auth_service import AuthProvider, generate_temporary_password
from .document_store import DocumentStore, Subscription
from .entities import Actor, UserProfile
from . import entity_store
from ..permissions import ALL_ROLES, STATION_SCOPED_ROLES
from ..validation import ValidationError, optional_text, require_choice, require_text
from sealtrack.time_utils import to_document_timestamp, utcnow


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"name", "role", "stationId"}


@dataclass
class ProvisionedUser:
    user: UserProfile
    reset_token: str | None

    def to_dict(self) -> dict[str, Any]:
        return {"user": self.user.to_dict(), "resetToken": self.reset_token}


class UserService:
    def __init__(
        self,
        store: DocumentStore,
        auth: AuthProvider,
        activity_log: ActivityLogService | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.users = entity_store.users(store)
        self.stations = entity_store.stations(store)
        self.auth = auth
        self.activity_log = activity_log or ActivityLogService(store, clock=clock)
        self.clock = clock

    def _station_binding(self, role: str, station_id: str | None) -> str | None:
        """Station-scoped roles need an existing station; other roles carry none."""
        if role not in STATION_SCOPED_ROLES:
            return None
        if not station_id:
            raise ValidationError("Please select a station for this role")
        if self.stations.get(station_id) is None:
            raise ValidationError("Invalid station selected")
        return station_id

    def add_user(self, payload: dict[str, Any], actor: Actor | None = None) -> ProvisionedUser:
        email = require_text(payload, "email", "Email")
        name = require_text(payload, "name", "Name")
        role = require_choice(payload, "role", ALL_ROLES)
        station_id = self._station_binding(role, optional_text(payload, "stationId"))

        identity_id = self.auth.create_identity(email, generate_temporary_password(), display_name=name)

        now = to_document_timestamp(self.clock())
        profile = self.users.create(
            {
                "id": identity_id,
                "email": email,
                "name": name,
                "role": role,
                "stationId": station_id,
                "createdAt": now,
                "lastActive": now,
            },
            doc_id=identity_id,
        )
        reset_token = self.auth.send_password_reset(email)
        logger.info("Provisioned user %s as %s", identity_id, role, extra={"actor_id": actor.id if actor else None})

        self.activity_log.append(
            actor,
            action="added a new user",
            details=f"Added user {name} ({role})",
            entity_id=identity_id,
            entity_type="user",
        )
        return ProvisionedUser(user=profile, reset_token=reset_token)

    def update_user(self, user_id: str, payload: dict[str, Any], actor: Actor | None = None) -> UserProfile:
        """Partial profile update; bumps lastActive. Email is owned by the identity."""
        current = self.users.require(user_id)
        unknown = set(payload) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        changes: dict[str, Any] = {}
        if "name" in payload:
            changes["name"] = require_text(payload, "name", "Name")
        role = current.role
        if "role" in payload:
            role = require_choice(payload, "role", ALL_ROLES)
            changes["role"] = role
        if "role" in payload or "stationId" in payload:
            station_id = payload.get("stationId", current.station_id)
            changes["stationId"] = self._station_binding(role, station_id)
        changes["lastActive"] = to_document_timestamp(self.clock())

        updated = self.users.update(user_id, changes)
        self.activity_log.append(
            actor,
            action="updated user details",
            details=f"Updated user {updated.name}",
            entity_id=user_id,
            entity_type="user",
        )
        return updated

    def get_user(self, user_id: str) -> UserProfile:
        return self.users.require(user_id)

    def get_user_role(self, user_id: str) -> str | None:
        profile = self.users.get(user_id)
        return profile.role if profile else None

    def list_users(self, role: str | None = None) -> list[UserProfile]:
        return self.users.list(filters={"role": role} if role else None)

    def subscribe(self, callback: Callable[[list[UserProfile]], None]) -> Subscription:
        return self.users.subscribe(callback)
