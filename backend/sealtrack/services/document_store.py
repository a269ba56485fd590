# Overview: Document store port with in-memory and SQLAlchemy adapters, plus live subscriptions.

"""
Document Store

================================================================================
PURPOSE: One collection-of-documents interface for every entity service
================================================================================

The services never talk to a concrete database. They receive a
DocumentStore and call:

    create(collection, data, doc_id=None) -> id
    get(collection, doc_id) -> Document | None
    update(collection, doc_id, changes, expected_version=None) -> Document
    set(collection, doc_id, data, merge=True) -> Document
    list(collection, order_by=None, descending=False, limit=None, filters=None)
    subscribe(collection, callback, ...) -> Subscription
    stream(collection, ...) -> SnapshotStream

ADAPTERS:
- InMemoryDocumentStore: dicts guarded by a lock (tests, demos)
- SqlDocumentStore: `documents` table with a JSON column (Flask-SQLAlchemy)

LIVE QUERIES:
- subscribe() delivers the full current snapshot immediately, then a new
  full snapshot after every write to the collection. Never deltas.
- Subscription.cancel() is idempotent and never raises.
- A failing callback is logged and skipped; it does not fail the write or
  the other subscribers.

CONCURRENCY:
- update() is a partial, top-level merge of one document.
- Every write bumps `version`. Passing expected_version turns update()
  into compare-and-swap; a mismatch raises VersionConflictError.
================================================================================
"""

from __future__ import annotations

import copy
import logging
import queue
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

import sqlalchemy as sa

from ..extensions import db
from ..models import StoredDocument
from ..validation import ConflictError
from sealtrack.time_utils import utcnow


logger = logging.getLogger(__name__)


class VersionConflictError(ConflictError):
    """Raised when a compare-and-swap update sees a newer document version."""

    def __init__(self, collection: str, doc_id: str, expected: int, actual: int | None):
        self.collection = collection
        self.doc_id = doc_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{collection}/{doc_id} changed concurrently "
            f"(expected version {expected}, found {actual})"
        )


class DocumentNotFoundError(LookupError):
    """Raised when updating a document that does not exist."""


@dataclass(frozen=True)
class Document:
    id: str
    data: dict[str, Any]
    version: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.data}


@dataclass(frozen=True)
class Query:
    order_by: str | None = None
    descending: bool = False
    limit: int | None = None
    filters: dict[str, Any] = field(default_factory=dict)


def generate_document_id() -> str:
    """20 hex characters, like a hosted store's auto id."""
    return secrets.token_hex(10)


def deep_merge(base: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    """Merge nested maps the way a merge-set does: dicts recurse, everything else replaces."""
    merged = copy.deepcopy(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def apply_query(documents: list[Document], query: Query) -> list[Document]:
    """Filter, sort and limit in Python. Collections are hundreds to low thousands of rows."""
    rows = [
        doc for doc in documents
        if all(doc.data.get(k) == v for k, v in query.filters.items())
    ]
    if query.order_by:
        present = [d for d in rows if d.data.get(query.order_by) is not None]
        missing = [d for d in rows if d.data.get(query.order_by) is None]
        present.sort(key=lambda d: d.data[query.order_by], reverse=query.descending)
        rows = present + missing
    if query.limit is not None:
        rows = rows[: query.limit]
    return rows


class Subscription:
    """Handle for one live query. Cancel to stop callbacks."""

    def __init__(self, store: "DocumentStore", collection: str, query: Query, callback: Callable[[list[Document]], None]):
        self._store = store
        self.collection = collection
        self.query = query
        self._callback = callback
        self._lock = threading.RLock()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Stop further callbacks. Safe to call any number of times."""
        with self._lock:
            if not self._active:
                return
            self._active = False
        self._store._detach(self)

    def _deliver(self) -> None:
        with self._lock:
            if not self._active:
                return
            snapshot = self._store.list(
                self.collection,
                order_by=self.query.order_by,
                descending=self.query.descending,
                limit=self.query.limit,
                filters=self.query.filters,
            )
            try:
                self._callback(snapshot)
            except Exception:
                logger.exception(
                    "Subscriber callback failed",
                    extra={"collection": self.collection},
                )


_STREAM_CLOSED = object()


class SnapshotStream:
    """
    Iterator view of a subscription.

    The first item is the snapshot at subscribe time; each later item is a
    full snapshot after a write. close() is idempotent and ends iteration.
    """

    def __init__(self, store: "DocumentStore", collection: str, **query_kwargs):
        self._queue: queue.Queue = queue.Queue()
        self._closed = False
        self._subscription = store.subscribe(collection, self._queue.put, **query_kwargs)

    def get(self, timeout: float | None = None) -> list[Document] | None:
        """Next snapshot, or None on timeout or after close()."""
        if self._closed and self._queue.empty():
            return None
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _STREAM_CLOSED:
            return None
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._subscription.cancel()
        self._queue.put(_STREAM_CLOSED)

    def __iter__(self) -> Iterator[list[Document]]:
        while True:
            item = self._queue.get()
            if item is _STREAM_CLOSED:
                return
            yield item

    def __enter__(self) -> "SnapshotStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class DocumentStore(ABC):
    """Port. Adapters implement the storage primitives; fan-out lives here."""

    def __init__(self):
        self._subscribers: dict[str, list[Subscription]] = {}
        self._subscribers_lock = threading.RLock()

    # -- storage primitives -------------------------------------------------

    @abstractmethod
    def create(self, collection: str, data: dict[str, Any], doc_id: str | None = None) -> str:
        ...

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Document | None:
        ...

    @abstractmethod
    def update(
        self,
        collection: str,
        doc_id: str,
        changes: dict[str, Any],
        expected_version: int | None = None,
    ) -> Document:
        ...

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = True) -> Document:
        ...

    @abstractmethod
    def _all(self, collection: str) -> list[Document]:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def list(
        self,
        collection: str,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        filters: dict[str, Any] | None = None,
    ) -> list[Document]:
        query = Query(order_by=order_by, descending=descending, limit=limit, filters=dict(filters or {}))
        return apply_query(self._all(collection), query)

    # -- live queries ---------------------------------------------------------

    def subscribe(
        self,
        collection: str,
        callback: Callable[[list[Document]], None],
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        filters: dict[str, Any] | None = None,
    ) -> Subscription:
        query = Query(order_by=order_by, descending=descending, limit=limit, filters=dict(filters or {}))
        subscription = Subscription(self, collection, query, callback)
        with subscription._lock:
            with self._subscribers_lock:
                self._subscribers.setdefault(collection, []).append(subscription)
            subscription._deliver()
        return subscription

    def stream(self, collection: str, **query_kwargs) -> SnapshotStream:
        return SnapshotStream(self, collection, **query_kwargs)

    def subscriber_count(self, collection: str) -> int:
        with self._subscribers_lock:
            return len(self._subscribers.get(collection, []))

    def _detach(self, subscription: Subscription) -> None:
        with self._subscribers_lock:
            subs = self._subscribers.get(subscription.collection, [])
            if subscription in subs:
                subs.remove(subscription)

    def _publish(self, collection: str) -> None:
        with self._subscribers_lock:
            subs = list(self._subscribers.get(collection, []))
        for subscription in subs:
            subscription._deliver()


class InMemoryDocumentStore(DocumentStore):
    """Process-local adapter. Documents are deep-copied in and out."""

    def __init__(self):
        super().__init__()
        self._lock = threading.RLock()
        self._collections: dict[str, dict[str, Document]] = {}

    def create(self, collection, data, doc_id=None):
        doc_id = doc_id or generate_document_id()
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            if doc_id in docs:
                raise ConflictError(f"{collection}/{doc_id} already exists")
            docs[doc_id] = Document(id=doc_id, data=copy.deepcopy(data), version=1)
        self._publish(collection)
        return doc_id

    def get(self, collection, doc_id):
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                return None
            return Document(id=doc.id, data=copy.deepcopy(doc.data), version=doc.version)

    def update(self, collection, doc_id, changes, expected_version=None):
        with self._lock:
            docs = self._collections.get(collection, {})
            current = docs.get(doc_id)
            if current is None:
                raise DocumentNotFoundError(f"{collection}/{doc_id} not found")
            if expected_version is not None and current.version != expected_version:
                raise VersionConflictError(collection, doc_id, expected_version, current.version)
            data = copy.deepcopy(current.data)
            data.update(copy.deepcopy(changes))
            updated = Document(id=doc_id, data=data, version=current.version + 1)
            docs[doc_id] = updated
        self._publish(collection)
        return Document(id=doc_id, data=copy.deepcopy(updated.data), version=updated.version)

    def set(self, collection, doc_id, data, merge=True):
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            current = docs.get(doc_id)
            if current is not None and merge:
                new_data = deep_merge(current.data, data)
            else:
                new_data = copy.deepcopy(data)
            version = current.version + 1 if current is not None else 1
            docs[doc_id] = Document(id=doc_id, data=new_data, version=version)
        self._publish(collection)
        return Document(id=doc_id, data=copy.deepcopy(new_data), version=version)

    def _all(self, collection):
        with self._lock:
            return [
                Document(id=d.id, data=copy.deepcopy(d.data), version=d.version)
                for d in self._collections.get(collection, {}).values()
            ]

    def clear(self):
        with self._lock:
            collections = list(self._collections)
            self._collections.clear()
        for collection in collections:
            self._publish(collection)


class SqlDocumentStore(DocumentStore):
    """
    Relational adapter on the `documents` table.

    Each write commits its own transaction before subscribers are notified,
    so a snapshot never shows uncommitted state. Requires an app context.
    """

    @staticmethod
    def _to_document(row: StoredDocument) -> Document:
        return Document(id=row.doc_id, data=copy.deepcopy(row.data or {}), version=row.version)

    def _row(self, collection: str, doc_id: str) -> StoredDocument | None:
        return db.session.query(StoredDocument).filter_by(collection=collection, doc_id=doc_id).first()

    def create(self, collection, data, doc_id=None):
        doc_id = doc_id or generate_document_id()
        if self._row(collection, doc_id) is not None:
            raise ConflictError(f"{collection}/{doc_id} already exists")
        row = StoredDocument(
            collection=collection,
            doc_id=doc_id,
            data=copy.deepcopy(data),
            version=1,
            updated_at=utcnow(),
        )
        db.session.add(row)
        try:
            db.session.commit()
        except sa.exc.IntegrityError:
            db.session.rollback()
            raise ConflictError(f"{collection}/{doc_id} already exists")
        self._publish(collection)
        return doc_id

    def get(self, collection, doc_id):
        row = self._row(collection, doc_id)
        if row is None:
            return None
        return self._to_document(row)

    def update(self, collection, doc_id, changes, expected_version=None):
        row = self._row(collection, doc_id)
        if row is None:
            raise DocumentNotFoundError(f"{collection}/{doc_id} not found")
        # Refresh so the version check sees other sessions' commits
        db.session.refresh(row)
        if expected_version is not None and row.version != expected_version:
            raise VersionConflictError(collection, doc_id, expected_version, row.version)

        seen_version = row.version
        data = copy.deepcopy(row.data or {})
        data.update(copy.deepcopy(changes))

        # Guarded UPDATE: zero rows means someone else wrote in between
        updated = (
            db.session.query(StoredDocument)
            .filter_by(id=row.id, version=seen_version)
            .update(
                {"data": data, "version": seen_version + 1, "updated_at": utcnow()},
                synchronize_session=False,
            )
        )
        if updated == 0:
            db.session.rollback()
            current = self._row(collection, doc_id)
            raise VersionConflictError(
                collection, doc_id, seen_version, current.version if current else None
            )
        db.session.commit()
        db.session.expire(row)
        self._publish(collection)
        return Document(id=doc_id, data=data, version=seen_version + 1)

    def set(self, collection, doc_id, data, merge=True):
        row = self._row(collection, doc_id)
        if row is None:
            row = StoredDocument(
                collection=collection,
                doc_id=doc_id,
                data=copy.deepcopy(data),
                version=1,
                updated_at=utcnow(),
            )
            db.session.add(row)
        else:
            new_data = deep_merge(row.data or {}, data) if merge else copy.deepcopy(data)
            # Reassign so the JSON column is flagged dirty
            row.data = new_data
            row.version = row.version + 1
            row.updated_at = utcnow()
        db.session.commit()
        document = self._to_document(row)
        self._publish(collection)
        return document

    def _all(self, collection):
        rows = db.session.query(StoredDocument).filter_by(collection=collection).all()
        return [self._to_document(row) for row in rows]

    def clear(self):
        collections = [c for (c,) in db.session.query(StoredDocument.collection).distinct().all()]
        db.session.query(StoredDocument).delete()
        db.session.commit()
        for collection in collections:
            self._publish(collection)
