# Overview: Role-scoped portal routing and station scope checks.

"""
Portal Shell

Three portals, one per kind of staff:

    admin       admin, main-store-manager   all stations, all entities
    station     station-manager             seals of its own station
    substation  sub-station-manager         seals of its own station

A PortalContext is built once per request from the session. Station
portals carry the station they are bound to. They can see every seal
that involves their station (current, destination or source), but each
write is scoped to where the seal physically is:

    dispatch    the seal is currently at the station
    receive     the seal is headed to the station
    other       the seal is located at the station (at it, or inbound)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from ..permissions import (
    PORTAL_ADMIN,
    PORTAL_HOME,
    PORTAL_STATION,
    PORTAL_SUB_STATION,
    STATION_SCOPED_ROLES,
    get_role_permissions,
    get_role_portal,
)
from .dashboard_service import DashboardScope
from .entities import Actor, Seal, Station
from .permission_service import PermissionDeniedError
from .seal_lifecycle_service import OP_DISPATCH, OP_RECEIVE


class ScopeError(PermissionDeniedError):
    """The actor may use the operation, but not on this station's data."""
    pass


# Navigation entries per portal: (key, label, path, required permission)
NAVIGATION = {
    PORTAL_ADMIN: (
        ("dashboard", "Dashboard", "/dashboard", "VIEW_DASHBOARD"),
        ("seals", "Seals", "/seals", "VIEW_SEALS"),
        ("stations", "Stations", "/stations", "VIEW_STATIONS"),
        ("users", "Users", "/users", "VIEW_USERS"),
        ("logs", "Logs", "/logs", "VIEW_ACTIVITY_LOGS"),
        ("settings", "Settings", "/settings", "VIEW_SETTINGS"),
    ),
    PORTAL_STATION: (
        ("dashboard", "Dashboard", "/station/dashboard", "VIEW_DASHBOARD"),
        ("seals", "Seals", "/station/seals", "VIEW_SEALS"),
        ("settings", "Settings", "/station/settings", "VIEW_SETTINGS"),
    ),
    PORTAL_SUB_STATION: (
        ("dashboard", "Dashboard", "/substation/dashboard", "VIEW_DASHBOARD"),
        ("seals", "Seals", "/substation/seals", "VIEW_SEALS"),
        ("settings", "Settings", "/substation/settings", "VIEW_SETTINGS"),
    ),
}


def _located_at(seal: Seal, station_name: str) -> bool:
    return seal.location_station == station_name


# Where a seal must be, relative to the portal's station, per operation (None is a read)
SEAL_SCOPE_RULES = {
    None: lambda seal, name: seal.involves_station(name),
    OP_DISPATCH: lambda seal, name: seal.current_station == name,
    OP_RECEIVE: lambda seal, name: seal.destination_station == name,
}


def resolve_portal(role: str | None) -> str:
    portal = get_role_portal(role)
    if portal is None:
        raise PermissionDeniedError(f"Role '{role}' has no portal")
    return portal


def home_path(portal: str) -> str:
    return PORTAL_HOME[portal]


@dataclass(frozen=True)
class PortalContext:
    actor: Actor
    role: str
    portal: str
    permissions: frozenset[str]
    station: Station | None = None

    @classmethod
    def for_role(cls, actor: Actor, role: str, station: Station | None = None, permissions: Iterable[str] | None = None) -> "PortalContext":
        return cls(
            actor=actor,
            role=role,
            portal=resolve_portal(role),
            permissions=frozenset(permissions) if permissions is not None else get_role_permissions(role),
            station=station,
        )

    @property
    def is_station_scoped(self) -> bool:
        return self.role in STATION_SCOPED_ROLES

    @property
    def station_name(self) -> str | None:
        return self.station.name if self.station else None

    def can(self, permission_code: str) -> bool:
        return permission_code in self.permissions

    def navigation(self) -> list[dict[str, str]]:
        return [
            {"key": key, "label": label, "path": path}
            for key, label, path, permission in NAVIGATION[self.portal]
            if self.can(permission)
        ]

    def require_portal(self, portal: str) -> None:
        if portal != self.portal:
            raise ScopeError(f"Portal '{portal}' is not available to role '{self.role}'")

    def _require_station(self) -> Station:
        if self.station is None:
            raise ScopeError("This account is not assigned to a station")
        return self.station

    def seal_in_scope(self, seal: Seal) -> bool:
        if not self.is_station_scoped:
            return True
        return self.station is not None and seal.involves_station(self.station.name)

    def require_seal_scope(self, seal: Seal, operation: str | None = None) -> None:
        """
        Raise ScopeError unless a station portal may run `operation` on `seal`.

        `operation` None is a read; see SEAL_SCOPE_RULES for writes.
        """
        if not self.is_station_scoped:
            return
        station = self._require_station()
        in_scope = SEAL_SCOPE_RULES.get(operation, _located_at)(seal, station.name)
        if not in_scope:
            raise ScopeError(f"Seal {seal.serial_code or seal.id} is outside station {station.name}")

    def filter_seals(self, seals: Iterable[Seal]) -> list[Seal]:
        return [seal for seal in seals if self.seal_in_scope(seal)]

    def receiving_station_id(self, requested: str | None = None) -> str | None:
        """Station portals always receive into their own station."""
        if self.is_station_scoped:
            return self._require_station().id
        return requested

    def dashboard_scope(self) -> DashboardScope:
        if self.is_station_scoped:
            return DashboardScope(station_name=self._require_station().name)
        return DashboardScope()

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "portal": self.portal,
            "home": home_path(self.portal),
            "station": self.station.to_dict() if self.station else None,
            "permissions": sorted(self.permissions),
            "navigation": self.navigation(),
            "user": {"id": self.actor.id, "name": self.actor.display_name, "email": self.actor.email},
        }
