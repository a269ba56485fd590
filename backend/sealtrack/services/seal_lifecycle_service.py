# Overview: Seal lifecycle state machine; validates transitions and writes one seal per call.

"""
Seal Lifecycle Service

================================================================================
PURPOSE: Enforce valid seal status transitions and the fields each one sets
================================================================================

STATE MACHINE:
    Create   -> Received            (isUnutilized = True)
    Dispatch:  Received -> In Transit
    Receive:   In Transit -> Received
    Issue:     any -> Issued        (isUnutilized = False, issuedTo set)
    Status:    any -> Received ("good") | Damaged | Repaired

    Utilization (isUnutilized) is a separate boolean, not a state.

RULES:
1. Validation happens before any write; a rejected call changes nothing.
2. Every call touches exactly one seal document.
3. lastUpdated strictly increases on every write to a seal.
4. Images are append-only, 1..5 per seal.
5. One activity log entry per successful write, best-effort.

CONCURRENCY:
Each operation reads the seal with its version, validates against that
state, and writes with compare-and-swap. On a conflicting write the
operation re-reads and re-validates (bounded attempts), so a concurrent
Dispatch and Issue on the same seal cannot silently clobber each other.
================================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable

from .activity_log_service import ActivityLogService
from .concurrency import run_with_retry
from .document_store import DocumentStore
from .entities import (
    IMAGE_TYPES,
    SEAL_STATUSES,
    STATUS_DAMAGED,
    STATUS_IN_TRANSIT,
    STATUS_ISSUED,
    STATUS_RECEIVED,
    STATUS_REPAIRED,
    Actor,
    Seal,
    SealImage,
    Station,
)
from . import entity_store
from ..validation import NotFoundError, ValidationError
from sealtrack.time_utils import next_timestamp, to_document_timestamp, utcnow


logger = logging.getLogger(__name__)

MIN_IMAGES = 1
MAX_IMAGES = 5

OP_DISPATCH = "dispatch"
OP_RECEIVE = "receive"
OP_ISSUE = "issue"
OP_UPDATE_STATUS = "update_status"
OP_UPDATE_UTILIZATION = "update_utilization"
OP_ATTACH_IMAGE = "attach_image"

# Statuses an operation may start from
ALLOWED_FROM = {
    OP_DISPATCH: frozenset({STATUS_RECEIVED}),
    OP_RECEIVE: frozenset({STATUS_IN_TRANSIT}),
    OP_ISSUE: frozenset(SEAL_STATUSES),
    OP_UPDATE_STATUS: frozenset(SEAL_STATUSES),
    OP_UPDATE_UTILIZATION: frozenset(SEAL_STATUSES),
    OP_ATTACH_IMAGE: frozenset(SEAL_STATUSES),
}

CONDITION_STATUS = {
    "good": STATUS_RECEIVED,
    "damaged": STATUS_DAMAGED,
    "repaired": STATUS_REPAIRED,
}


class LifecycleError(ValueError):
    """
    Raised when an operation is not valid for the seal's current status.

    This is a domain error, not a technical error.
    """
    pass


class ImageCapacityError(LifecycleError):
    """Raised when a seal already carries the maximum number of images."""
    pass


def validate_status(status: str) -> None:
    if status not in SEAL_STATUSES:
        raise LifecycleError(
            f"Invalid status '{status}'. Must be one of: {', '.join(SEAL_STATUSES)}"
        )


def can_apply(operation: str, status: str) -> bool:
    """True if `operation` may run on a seal currently in `status`."""
    validate_status(status)
    allowed = ALLOWED_FROM.get(operation)
    if allowed is None:
        raise LifecycleError(f"Unknown operation '{operation}'")
    return status in allowed


def available_operations(seal: Seal) -> list[str]:
    """Operations the UI may offer for this seal, in display order."""
    return [op for op in ALLOWED_FROM if seal.status in ALLOWED_FROM[op]]


def _require_transition(seal: Seal, operation: str) -> None:
    if not can_apply(operation, seal.status):
        allowed = ", ".join(sorted(ALLOWED_FROM[operation]))
        raise LifecycleError(
            f"Cannot {operation.replace('_', ' ')} seal {seal.serial_code or seal.id}: "
            f"current status is '{seal.status}', must be one of: {allowed}"
        )


@dataclass(frozen=True)
class SealStatistics:
    total: int
    by_status: dict[str, int]
    in_use: int
    unutilized: int

    @property
    def utilization_rate(self) -> int:
        """Percent of seals in active field use, rounded."""
        if self.total == 0:
            return 0
        return round(self.in_use * 100 / self.total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "byStatus": dict(self.by_status),
            "inUse": self.in_use,
            "unutilized": self.unutilized,
            "utilizationRate": self.utilization_rate,
        }


def compute_statistics(seals: Iterable[Seal]) -> SealStatistics:
    by_status = {status: 0 for status in SEAL_STATUSES}
    total = in_use = 0
    for seal in seals:
        total += 1
        by_status[seal.status] = by_status.get(seal.status, 0) + 1
        if not seal.is_unutilized:
            in_use += 1
    return SealStatistics(total=total, by_status=by_status, in_use=in_use, unutilized=total - in_use)


class SealLifecycleService:
    def __init__(
        self,
        store: DocumentStore,
        activity_log: ActivityLogService | None = None,
        clock: Callable[[], datetime] = utcnow,
        retry_attempts: int = 3,
    ):
        self.seals = entity_store.seals(store)
        self.stations = entity_store.stations(store)
        self.activity_log = activity_log or ActivityLogService(store, clock=clock)
        self.clock = clock
        self.retry_attempts = retry_attempts

    # -- helpers ------------------------------------------------------------

    def _station(self, station_id: str | None, label: str = "station") -> Station:
        if not station_id:
            raise ValidationError(f"Please select a {label}")
        station = self.stations.get(station_id)
        if station is None:
            raise ValidationError("Invalid station selected")
        return station

    def _stamp(self, previous: str | None = None) -> str:
        return to_document_timestamp(next_timestamp(self.clock(), previous))

    def _mutate(
        self,
        seal_id: str,
        operation: str,
        build_changes: Callable[[Seal], dict[str, Any]],
        actor: Actor | None,
    ) -> Seal:
        """Read, validate, compute changes, compare-and-swap write, then log."""
        def _op():
            seal, version = self.seals.get_versioned(seal_id)
            _require_transition(seal, operation)
            changes = build_changes(seal)
            changes["lastUpdated"] = self._stamp(seal.last_updated)
            updated = self.seals.update(seal_id, changes, expected_version=version)
            return updated, changes

        updated, changes = run_with_retry(_op, attempts=self.retry_attempts)
        logger.info(
            "Seal %s: %s -> %s (%s)", seal_id, operation, updated.status, actor.id if actor else "anonymous",
            extra={"seal_id": seal_id},
        )
        self.activity_log.record_seal_updated(actor, seal_id, changes)
        return updated

    # -- reads ----------------------------------------------------------------

    def get_seal(self, seal_id: str) -> Seal:
        seal = self.seals.get(seal_id)
        if seal is None:
            raise NotFoundError(f"Seal {seal_id} not found")
        return seal

    def list_seals(self, status: str | None = None, search: str | None = None, station_name: str | None = None) -> list[Seal]:
        """Most recently updated first, optionally filtered like the seal list views."""
        if status is not None:
            validate_status(status)
        rows = self.seals.list(filters={"status": status} if status else None)
        if search:
            needle = search.lower()
            rows = [s for s in rows if needle in s.serial_code.lower() or needle in s.qr_code.lower()]
        if station_name:
            rows = [s for s in rows if s.involves_station(station_name)]
        return rows

    def statistics(self, station_name: str | None = None) -> SealStatistics:
        return compute_statistics(self.list_seals(station_name=station_name))

    # -- transitions ------------------------------------------------------------

    def create_seal(
        self,
        serial_code: str,
        qr_code: str,
        station_id: str | None,
        images: list[SealImage],
        actor: Actor | None = None,
    ) -> Seal:
        """
        Register a new seal at a station.

        Requires serial and QR codes, a station, and 1-5 images.
        The seal starts Received and unutilized with receivedDate == lastUpdated.
        """
        serial_code = (serial_code or "").strip()
        qr_code = (qr_code or "").strip()
        if not serial_code:
            raise ValidationError("Serial code is required")
        if not qr_code:
            raise ValidationError("QR code is required")
        station = self._station(station_id)
        if len(images) < MIN_IMAGES:
            raise ValidationError("Please add at least one image")
        if len(images) > MAX_IMAGES:
            raise ValidationError(f"Maximum {MAX_IMAGES} images allowed")

        now = self._stamp()
        seal = self.seals.create({
            "serialCode": serial_code,
            "qrCode": qr_code,
            "status": STATUS_RECEIVED,
            "isUnutilized": True,
            "sourceStation": station.name,
            "currentStation": station.name,
            "images": [image.to_dict() for image in images],
            "receivedDate": now,
            "lastUpdated": now,
        })
        logger.info("Seal %s created at %s", seal.id, station.name, extra={"seal_id": seal.id})
        self.activity_log.record_seal_created(actor, seal.id, serial_code)
        return seal

    def dispatch(self, seal_id: str, destination_station_id: str | None, actor: Actor | None = None, notes: str | None = None) -> Seal:
        """Received -> In Transit, towards a station other than the current one."""
        destination = self._station(destination_station_id, "destination station")

        def _changes(seal: Seal) -> dict[str, Any]:
            if seal.current_station and destination.name == seal.current_station:
                raise ValidationError("Destination must differ from the current station")
            changes: dict[str, Any] = {
                "status": STATUS_IN_TRANSIT,
                "destinationStation": destination.name,
            }
            if notes:
                changes["notes"] = notes
            return changes

        return self._mutate(seal_id, OP_DISPATCH, _changes, actor)

    def receive(self, seal_id: str, actor: Actor | None = None, notes: str | None = None, station_id: str | None = None) -> Seal:
        """
        In Transit -> Received.

        When the receiving station is known it becomes currentStation;
        otherwise station reconciliation is left to the caller.
        """
        station = self._station(station_id) if station_id else None

        def _changes(seal: Seal) -> dict[str, Any]:
            changes: dict[str, Any] = {"status": STATUS_RECEIVED}
            if station is not None:
                changes["currentStation"] = station.name
            if notes:
                changes["notes"] = notes
            return changes

        return self._mutate(seal_id, OP_RECEIVE, _changes, actor)

    def issue(self, seal_id: str, station_id: str | None, actor: Actor | None = None) -> Seal:
        """Any -> Issued, to the manager of the chosen station."""
        station = self._station(station_id)
        if station.manager is None:
            raise ValidationError(f"Station {station.name} has no assigned manager")

        def _changes(seal: Seal) -> dict[str, Any]:
            return {
                "status": STATUS_ISSUED,
                "sourceStation": seal.current_station,
                "destinationStation": station.name,
                "isUnutilized": False,
                "issuedTo": {
                    "name": station.manager.name,
                    "id": station.manager.id,
                    "timestamp": self._stamp(),
                },
            }

        return self._mutate(seal_id, OP_ISSUE, _changes, actor)

    def update_status(self, seal_id: str, condition: str, actor: Actor | None = None) -> Seal:
        """Condition good/damaged/repaired maps to Received/Damaged/Repaired."""
        target = CONDITION_STATUS.get((condition or "").strip().lower())
        if target is None:
            raise ValidationError(f"condition must be one of: {', '.join(CONDITION_STATUS)}")
        return self._mutate(seal_id, OP_UPDATE_STATUS, lambda seal: {"status": target}, actor)

    def update_utilization(self, seal_id: str, in_use: bool, actor: Actor | None = None) -> Seal:
        if not isinstance(in_use, bool):
            raise ValidationError("in_use must be a boolean")
        return self._mutate(seal_id, OP_UPDATE_UTILIZATION, lambda seal: {"isUnutilized": not in_use}, actor)

    def attach_image(self, seal_id: str, image: SealImage, actor: Actor | None = None) -> Seal:
        """Append one image. The existing images are never rewritten."""
        if image.type not in IMAGE_TYPES:
            raise ValidationError(f"image type must be one of: {', '.join(IMAGE_TYPES)}")

        def _changes(seal: Seal) -> dict[str, Any]:
            if len(seal.images) >= MAX_IMAGES:
                raise ImageCapacityError(
                    f"Seal {seal.serial_code or seal.id} already has {MAX_IMAGES} images"
                )
            return {"images": [i.to_dict() for i in seal.images] + [image.to_dict()]}

        return self._mutate(seal_id, OP_ATTACH_IMAGE, _changes, actor)
