# Overview: Typed entities for the document collections and their document (camelCase) shapes.

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from .document_store import Document
from sealtrack.time_utils import parse_iso_datetime


# Collection names
SEALS = "seals"
STATIONS = "stations"
USERS = "users"
ACTIVITY_LOGS = "activity_logs"
SETTINGS = "settings"

ORGANIZATION_SETTINGS_ID = "organization"
INTEGRATION_SETTINGS_ID = "integrations"

# Seal status values (must match stored documents)
STATUS_RECEIVED = "Received"
STATUS_ISSUED = "Issued"
STATUS_IN_TRANSIT = "In Transit"
STATUS_DAMAGED = "Damaged"
STATUS_REPAIRED = "Repaired"
SEAL_STATUSES = (
    STATUS_RECEIVED,
    STATUS_ISSUED,
    STATUS_IN_TRANSIT,
    STATUS_DAMAGED,
    STATUS_REPAIRED,
)

IMAGE_TYPES = ("initial", "damage", "repair")
STATION_TYPES = ("main", "sub", "mobile")
STATION_STATUSES = ("active", "inactive")
ENTITY_TYPES = ("seal", "station", "user")


def _drop_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


@dataclass(frozen=True)
class SealImage:
    data: str
    timestamp: str
    type: str
    original_name: str

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SealImage":
        return cls(
            data=raw.get("data", ""),
            timestamp=raw.get("timestamp", ""),
            type=raw.get("type", "initial"),
            original_name=raw.get("originalName", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "timestamp": self.timestamp,
            "type": self.type,
            "originalName": self.original_name,
        }


@dataclass(frozen=True)
class IssuedTo:
    name: str
    id: str
    timestamp: str

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "IssuedTo | None":
        if not raw:
            return None
        return cls(name=raw.get("name", ""), id=raw.get("id", ""), timestamp=raw.get("timestamp", ""))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "id": self.id, "timestamp": self.timestamp}


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "GeoPoint | None":
        if not raw:
            return None
        return cls(latitude=float(raw["latitude"]), longitude=float(raw["longitude"]))

    def to_dict(self) -> dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class Seal:
    id: str
    serial_code: str
    qr_code: str
    status: str
    received_date: str
    last_updated: str
    is_unutilized: bool = True
    source_station: str | None = None
    destination_station: str | None = None
    current_station: str | None = None
    issued_to: IssuedTo | None = None
    images: tuple[SealImage, ...] = ()
    notes: str | None = None
    gps_location: GeoPoint | None = None

    @classmethod
    def from_document(cls, doc: Document) -> "Seal":
        raw = doc.data
        return cls(
            id=doc.id,
            serial_code=raw.get("serialCode", ""),
            qr_code=raw.get("qrCode", ""),
            status=raw.get("status", STATUS_RECEIVED),
            received_date=raw.get("receivedDate", ""),
            last_updated=raw.get("lastUpdated", ""),
            is_unutilized=bool(raw.get("isUnutilized", True)),
            source_station=raw.get("sourceStation"),
            destination_station=raw.get("destinationStation"),
            current_station=raw.get("currentStation"),
            issued_to=IssuedTo.from_dict(raw.get("issuedTo")),
            images=tuple(SealImage.from_dict(i) for i in raw.get("images") or []),
            notes=raw.get("notes"),
            gps_location=GeoPoint.from_dict(raw.get("gpsLocation")),
        )

    def to_document(self) -> dict[str, Any]:
        return _drop_none({
            "serialCode": self.serial_code,
            "qrCode": self.qr_code,
            "status": self.status,
            "receivedDate": self.received_date,
            "lastUpdated": self.last_updated,
            "isUnutilized": self.is_unutilized,
            "sourceStation": self.source_station,
            "destinationStation": self.destination_station,
            "currentStation": self.current_station,
            "issuedTo": self.issued_to.to_dict() if self.issued_to else None,
            "images": [i.to_dict() for i in self.images],
            "notes": self.notes,
            "gpsLocation": self.gps_location.to_dict() if self.gps_location else None,
        })

    @property
    def location_station(self) -> str | None:
        """Station the seal is at, or headed to while it is in transit or issued."""
        if self.status in (STATUS_IN_TRANSIT, STATUS_ISSUED) and self.destination_station:
            return self.destination_station
        return self.current_station

    def days_in_transit(self, now: datetime) -> int | None:
        if self.status != STATUS_IN_TRANSIT:
            return None
        since = parse_iso_datetime(self.last_updated)
        if since is None:
            return None
        return max((now - since).days, 0)

    def involves_station(self, station_name: str) -> bool:
        return station_name in (self.current_station, self.destination_station, self.source_station)

    def to_dict(self, now: datetime | None = None, include_images: bool = True) -> dict[str, Any]:
        payload = {"id": self.id, **self.to_document()}
        if not include_images:
            payload["images"] = [
                {k: v for k, v in image.items() if k != "data"}
                for image in payload.get("images", [])
            ]
        if now is not None:
            days = self.days_in_transit(now)
            if days is not None:
                payload["daysInTransit"] = days
        return payload


@dataclass(frozen=True)
class StationLocation:
    latitude: float | None = None
    longitude: float | None = None
    address: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "StationLocation":
        raw = raw or {}
        return cls(
            latitude=raw.get("latitude"),
            longitude=raw.get("longitude"),
            address=raw.get("address", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude, "address": self.address}


@dataclass(frozen=True)
class StationManager:
    id: str
    name: str
    email: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "StationManager | None":
        if not raw or not raw.get("id"):
            return None
        return cls(id=raw["id"], name=raw.get("name", ""), email=raw.get("email", ""))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass(frozen=True)
class Station:
    id: str
    name: str
    type: str
    location: StationLocation = field(default_factory=StationLocation)
    manager: StationManager | None = None
    active_seals: int = 0
    total_seals: int = 0
    status: str = "active"
    last_active: str = ""

    @classmethod
    def from_document(cls, doc: Document) -> "Station":
        raw = doc.data
        return cls(
            id=doc.id,
            name=raw.get("name", ""),
            type=raw.get("type", "main"),
            location=StationLocation.from_dict(raw.get("location")),
            manager=StationManager.from_dict(raw.get("manager")),
            active_seals=int(raw.get("activeSeals", 0) or 0),
            total_seals=int(raw.get("totalSeals", 0) or 0),
            status=raw.get("status", "active"),
            last_active=raw.get("lastActive", ""),
        )

    def to_document(self) -> dict[str, Any]:
        return _drop_none({
            "name": self.name,
            "type": self.type,
            "location": self.location.to_dict(),
            "manager": self.manager.to_dict() if self.manager else None,
            "activeSeals": self.active_seals,
            "totalSeals": self.total_seals,
            "status": self.status,
            "lastActive": self.last_active,
        })

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.to_document()}

    def with_counters(self, active: int, total: int) -> "Station":
        return replace(self, active_seals=active, total_seals=total)


@dataclass(frozen=True)
class UserProfile:
    id: str
    email: str
    name: str
    role: str
    station_id: str | None = None
    created_at: str | None = None
    last_active: str | None = None

    @classmethod
    def from_document(cls, doc: Document) -> "UserProfile":
        raw = doc.data
        return cls(
            id=raw.get("id") or doc.id,
            email=raw.get("email", ""),
            name=raw.get("name", ""),
            role=raw.get("role", ""),
            station_id=raw.get("stationId"),
            created_at=raw.get("createdAt"),
            last_active=raw.get("lastActive"),
        )

    def to_document(self) -> dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "stationId": self.station_id,
            "createdAt": self.created_at,
            "lastActive": self.last_active,
        })

    def to_dict(self) -> dict[str, Any]:
        return self.to_document()


@dataclass(frozen=True)
class ActivityLog:
    id: str
    user_id: str
    user_name: str
    action: str
    details: str
    timestamp: str
    entity_id: str | None = None
    entity_type: str | None = None

    @classmethod
    def from_document(cls, doc: Document) -> "ActivityLog":
        raw = doc.data
        return cls(
            id=doc.id,
            user_id=raw.get("userId", ""),
            user_name=raw.get("userName", ""),
            action=raw.get("action", ""),
            details=raw.get("details", ""),
            timestamp=raw.get("timestamp", ""),
            entity_id=raw.get("entityId"),
            entity_type=raw.get("entityType"),
        )

    def to_document(self) -> dict[str, Any]:
        return _drop_none({
            "userId": self.user_id,
            "userName": self.user_name,
            "action": self.action,
            "details": self.details,
            "timestamp": self.timestamp,
            "entityId": self.entity_id,
            "entityType": self.entity_type,
        })

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.to_document()}


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation. Resolved from the session."""
    id: str
    name: str | None = None
    email: str | None = None
    role: str | None = None
    station_id: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Unknown User"

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "Actor":
        return cls(
            id=profile.id,
            name=profile.name,
            email=profile.email,
            role=profile.role,
            station_id=profile.station_id,
        )
