# Overview: Station registry: add, update, list and watch stations.

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from .activity_log_service import ActivityLogService
from .document_store import DocumentStore, Subscription
from .entities import STATION_STATUSES, STATION_TYPES, Actor, Station
from . import entity_store
from ..validation import ConflictError, ValidationError, optional_float, optional_text, require_text
from sealtrack.time_utils import to_document_timestamp, utcnow


logger = logging.getLogger(__name__)

# Fields a caller may change through update_station
UPDATABLE_FIELDS = {"name", "type", "location", "manager", "status"}


def _location(payload: dict[str, Any] | None) -> dict[str, Any]:
    # Addresses are stored as entered; coordinates only when supplied
    payload = payload or {}
    return {
        "latitude": optional_float(payload, "latitude"),
        "longitude": optional_float(payload, "longitude"),
        "address": optional_text(payload, "address") or "",
    }


def _manager(payload: dict[str, Any] | None) -> dict[str, Any] | None:
    if not payload or not payload.get("id"):
        return None
    return {
        "id": require_text(payload, "id", "manager id"),
        "name": optional_text(payload, "name") or "",
        "email": optional_text(payload, "email") or "",
    }


class StationService:
    def __init__(
        self,
        store: DocumentStore,
        activity_log: ActivityLogService | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.stations = entity_store.stations(store)
        self.activity_log = activity_log or ActivityLogService(store, clock=clock)
        self.clock = clock

    def _require_unique_name(self, name: str, exclude_id: str | None = None) -> None:
        for station in self.stations.list():
            if station.id != exclude_id and station.name.lower() == name.lower():
                raise ConflictError(f"A station named {name} already exists")

    def add_station(self, payload: dict[str, Any], actor: Actor | None = None) -> Station:
        """New stations start active with zeroed counters."""
        name = require_text(payload, "name", "Station name")
        station_type = payload.get("type") or "main"
        if station_type not in STATION_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(STATION_TYPES)}")
        self._require_unique_name(name)

        station = self.stations.create({
            "name": name,
            "type": station_type,
            "location": _location(payload.get("location")),
            "manager": _manager(payload.get("manager")),
            "activeSeals": 0,
            "totalSeals": 0,
            "status": "active",
            "lastActive": to_document_timestamp(self.clock()),
        })
        logger.info("Station %s (%s) added", station.id, name)
        self.activity_log.append(
            actor,
            action="added a new station",
            details=f"Added station {name}",
            entity_id=station.id,
            entity_type="station",
        )
        return station

    def update_station(self, station_id: str, payload: dict[str, Any], actor: Actor | None = None) -> Station:
        """Partial update. Every update bumps lastActive."""
        station = self.stations.require(station_id)
        unknown = set(payload) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        changes: dict[str, Any] = {}
        if "name" in payload:
            name = require_text(payload, "name", "Station name")
            if name != station.name:
                self._require_unique_name(name, exclude_id=station_id)
            changes["name"] = name
        if "type" in payload:
            if payload["type"] not in STATION_TYPES:
                raise ValidationError(f"type must be one of: {', '.join(STATION_TYPES)}")
            changes["type"] = payload["type"]
        if "status" in payload:
            if payload["status"] not in STATION_STATUSES:
                raise ValidationError(f"status must be one of: {', '.join(STATION_STATUSES)}")
            changes["status"] = payload["status"]
        if "location" in payload:
            changes["location"] = _location(payload["location"])
        if "manager" in payload:
            changes["manager"] = _manager(payload["manager"])
        changes["lastActive"] = to_document_timestamp(self.clock())

        updated = self.stations.update(station_id, changes)
        self.activity_log.append(
            actor,
            action="updated station details",
            details=f"Updated station {updated.name}",
            entity_id=station_id,
            entity_type="station",
        )
        return updated

    def get_station(self, station_id: str) -> Station:
        return self.stations.require(station_id)

    def list_stations(self, status: str | None = None) -> list[Station]:
        return self.stations.list(filters={"status": status} if status else None)

    def subscribe(self, callback: Callable[[list[Station]], None]) -> Subscription:
        return self.stations.subscribe(callback)
