# Overview: Per-app service wiring. Routes and CLI commands get their services here.

from __future__ import annotations

from flask import Flask, current_app

from .document_store import DocumentStore, InMemoryDocumentStore, SqlDocumentStore


EXTENSION_KEY = "sealtrack"


def build_document_store(kind: str) -> DocumentStore:
    if kind == "memory":
        return InMemoryDocumentStore()
    if kind == "sql":
        return SqlDocumentStore()
    raise ValueError(f"Unknown DOCUMENT_STORE '{kind}' (expected 'sql' or 'memory')")


def init_services(app: Flask, store: DocumentStore | None = None) -> None:
    """Attach the document store and the app-lifetime services to `app`."""
    from .settings_service import SettingsService

    store = store or build_document_store(app.config.get("DOCUMENT_STORE", "sql"))
    app.extensions[EXTENSION_KEY] = {
        "document_store": store,
        "settings": SettingsService(store),
    }


def _state() -> dict:
    return current_app.extensions[EXTENSION_KEY]


def get_document_store() -> DocumentStore:
    return _state()["document_store"]


def get_settings_service():
    return _state()["settings"]


def get_activity_log():
    from .activity_log_service import ActivityLogService
    return ActivityLogService(get_document_store())


def get_lifecycle_service():
    from .seal_lifecycle_service import SealLifecycleService
    return SealLifecycleService(get_document_store(), activity_log=get_activity_log())


def get_station_service():
    from .station_service import StationService
    return StationService(get_document_store(), activity_log=get_activity_log())


def get_auth_provider():
    from .auth_service import LocalAuthProvider
    return LocalAuthProvider(get_document_store())


def get_user_service():
    from .user_service import UserService
    return UserService(get_document_store(), get_auth_provider(), activity_log=get_activity_log())
