# Overview: Typed collection client: raw documents in, entities out.

from __future__ import annotations

from typing import Any, Callable, Generic, TypeVar

from .document_store import Document, DocumentStore, Subscription
from .entities import (
    ACTIVITY_LOGS,
    SEALS,
    STATIONS,
    USERS,
    ActivityLog,
    Seal,
    Station,
    UserProfile,
)
from ..validation import NotFoundError


E = TypeVar("E")


class EntityCollection(Generic[E]):
    """
    One document collection seen through an entity type.

    `order_by`/`descending` is the collection's default listing order,
    used by list() and subscribe() unless the caller overrides it.
    """

    def __init__(
        self,
        store: DocumentStore,
        name: str,
        factory: Callable[[Document], E],
        order_by: str | None = None,
        descending: bool = False,
        default_limit: int | None = None,
    ):
        self.store = store
        self.name = name
        self.factory = factory
        self.order_by = order_by
        self.descending = descending
        self.default_limit = default_limit

    def create(self, data: dict[str, Any], doc_id: str | None = None) -> E:
        new_id = self.store.create(self.name, data, doc_id=doc_id)
        return self.get(new_id)

    def get(self, doc_id: str) -> E | None:
        doc = self.store.get(self.name, doc_id)
        return self.factory(doc) if doc is not None else None

    def get_versioned(self, doc_id: str) -> tuple[E, int]:
        """Entity plus the version token to pass back to update()."""
        doc = self.store.get(self.name, doc_id)
        if doc is None:
            raise NotFoundError(f"{self.name[:-1].capitalize()} {doc_id} not found")
        return self.factory(doc), doc.version

    def require(self, doc_id: str) -> E:
        return self.get_versioned(doc_id)[0]

    def update(self, doc_id: str, changes: dict[str, Any], expected_version: int | None = None) -> E:
        doc = self.store.update(self.name, doc_id, changes, expected_version=expected_version)
        return self.factory(doc)

    def list(self, filters: dict[str, Any] | None = None, limit: int | None = None) -> list[E]:
        docs = self.store.list(
            self.name,
            order_by=self.order_by,
            descending=self.descending,
            limit=limit if limit is not None else self.default_limit,
            filters=filters,
        )
        return [self.factory(doc) for doc in docs]

    def subscribe(
        self,
        callback: Callable[[list[E]], None],
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> Subscription:
        def _on_snapshot(docs: list[Document]) -> None:
            callback([self.factory(doc) for doc in docs])

        return self.store.subscribe(
            self.name,
            _on_snapshot,
            order_by=self.order_by,
            descending=self.descending,
            limit=limit if limit is not None else self.default_limit,
            filters=filters,
        )


def seals(store: DocumentStore) -> EntityCollection[Seal]:
    return EntityCollection(store, SEALS, Seal.from_document, order_by="lastUpdated", descending=True)


def stations(store: DocumentStore) -> EntityCollection[Station]:
    return EntityCollection(store, STATIONS, Station.from_document, order_by="lastActive", descending=True)


def users(store: DocumentStore) -> EntityCollection[UserProfile]:
    return EntityCollection(store, USERS, UserProfile.from_document, order_by="name")


def activity_logs(store: DocumentStore) -> EntityCollection[ActivityLog]:
    return EntityCollection(
        store, ACTIVITY_LOGS, ActivityLog.from_document,
        order_by="timestamp", descending=True, default_limit=100,
    )
