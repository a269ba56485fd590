# Overview: Append-only activity audit trail for seal, station and user mutations.

"""
Activity Audit Log

One immutable record per mutating operation, written AFTER the mutation
succeeded and only when an actor is known. The append is best-effort: a
failure here is logged and swallowed, because the mutation it describes
has already landed and must not be reported as failed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from .document_store import DocumentStore, Subscription
from .entities import ENTITY_TYPES, ActivityLog, Actor
from . import entity_store
from sealtrack.time_utils import next_timestamp, to_document_timestamp, utcnow


logger = logging.getLogger(__name__)

RECENT_LIMIT = 100


def derive_seal_action(changes: dict[str, Any]) -> str:
    """
    Describe a seal update from the shape of its change payload.

    status present               -> "updated seal status to <status>"
    destinationStation, no status -> "issued seal to <station>"
    anything else                -> "updated seal details"
    """
    if changes.get("status"):
        return f"updated seal status to {changes['status']}"
    if changes.get("destinationStation"):
        return f"issued seal to {changes['destinationStation']}"
    return "updated seal details"


class ActivityLogService:
    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.logs = entity_store.activity_logs(store)
        self.clock = clock

    def _next_stamp(self) -> str:
        # strictly after the newest entry, so "newest first" never ties
        newest = self.logs.list(limit=1)
        return to_document_timestamp(next_timestamp(self.clock(), newest[0].timestamp if newest else None))

    def append(
        self,
        actor: Actor | None,
        action: str,
        details: str,
        entity_id: str | None = None,
        entity_type: str | None = None,
    ) -> ActivityLog | None:
        """Best-effort append. Returns None when skipped or when the write failed."""
        if actor is None:
            return None
        if entity_type is not None and entity_type not in ENTITY_TYPES:
            raise ValueError(f"Unknown entity type '{entity_type}'")

        record = {
            "userId": actor.id,
            "userName": actor.display_name,
            "action": action,
            "details": details,
        }
        if entity_id is not None:
            record["entityId"] = entity_id
        if entity_type is not None:
            record["entityType"] = entity_type

        try:
            record["timestamp"] = self._next_stamp()
            return self.logs.create(record)
        except Exception:
            logger.exception(
                "Failed to append activity log",
                extra={"actor_id": actor.id, "event_type": action},
            )
            return None

    def record_seal_created(self, actor: Actor | None, seal_id: str, serial_code: str) -> ActivityLog | None:
        return self.append(
            actor,
            action="added a new seal",
            details=f"Added seal with serial code {serial_code}",
            entity_id=seal_id,
            entity_type="seal",
        )

    def record_seal_updated(self, actor: Actor | None, seal_id: str, changes: dict[str, Any]) -> ActivityLog | None:
        return self.append(
            actor,
            action=derive_seal_action(changes),
            details=f"Updated seal {seal_id}",
            entity_id=seal_id,
            entity_type="seal",
        )

    def list_recent(self, limit: int = RECENT_LIMIT, entity_id: str | None = None) -> list[ActivityLog]:
        filters = {"entityId": entity_id} if entity_id else None
        return self.logs.list(filters=filters, limit=limit)

    def subscribe(self, callback: Callable[[list[ActivityLog]], None], limit: int = RECENT_LIMIT) -> Subscription:
        return self.logs.subscribe(callback, limit=limit)
