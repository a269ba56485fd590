# Overview: Organization and integration settings, cached and merged over defaults.

from __future__ import annotations

import copy
import logging
import re
import threading
from typing import Any, Callable

from .document_store import DocumentStore, Subscription, deep_merge
from .entities import INTEGRATION_SETTINGS_ID, ORGANIZATION_SETTINGS_ID, SETTINGS
from ..validation import ValidationError


logger = logging.getLogger(__name__)

COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
EMAIL_PROVIDERS = ("smtp", "sendgrid")
MASK = "********"

DEFAULT_ORGANIZATION = {
    "name": "",
    "logo": "",
    "primaryColor": "#FFEE00",
    "secondaryColor": "#223F7F",
    "contactEmail": "",
    "contactPhone": "",
    "whatsappNumber": "",
    "address": "",
    "website": "",
    "description": "",
}

_TEMPLATES = {"sealIssued": "", "sealDamaged": "", "sealReceived": ""}

DEFAULT_INTEGRATIONS = {
    "whatsapp": {
        "enabled": False,
        "apiKey": "",
        "templateMessages": dict(_TEMPLATES),
    },
    "email": {
        "enabled": False,
        "provider": "smtp",
        "apiKey": "",
        "fromEmail": "",
        "fromName": "",
        "templates": dict(_TEMPLATES),
    },
}

DEFAULTS = {
    ORGANIZATION_SETTINGS_ID: DEFAULT_ORGANIZATION,
    INTEGRATION_SETTINGS_ID: DEFAULT_INTEGRATIONS,
}


class SettingsValidationError(ValidationError):
    pass


def _check_keys(changes: dict[str, Any], allowed: dict[str, Any], path: str = "") -> None:
    for key, value in changes.items():
        where = f"{path}{key}"
        if key not in allowed:
            raise SettingsValidationError(f"Unknown setting '{where}'")
        if isinstance(allowed[key], dict):
            if not isinstance(value, dict):
                raise SettingsValidationError(f"Setting '{where}' must be an object")
            _check_keys(value, allowed[key], f"{where}.")
        elif isinstance(allowed[key], bool):
            if not isinstance(value, bool):
                raise SettingsValidationError(f"Setting '{where}' must be true or false")
        elif not isinstance(value, str):
            raise SettingsValidationError(f"Setting '{where}' must be a string")


def validate_organization(changes: dict[str, Any]) -> None:
    _check_keys(changes, DEFAULT_ORGANIZATION)
    for key in ("primaryColor", "secondaryColor"):
        if key in changes and changes[key] and not COLOR_RE.match(changes[key]):
            raise SettingsValidationError(f"{key} must be a hex color like #223F7F")


def validate_integrations(changes: dict[str, Any]) -> None:
    _check_keys(changes, DEFAULT_INTEGRATIONS)
    provider = changes.get("email", {}).get("provider")
    if provider is not None and provider not in EMAIL_PROVIDERS:
        raise SettingsValidationError(f"email.provider must be one of: {', '.join(EMAIL_PROVIDERS)}")


VALIDATORS = {
    ORGANIZATION_SETTINGS_ID: validate_organization,
    INTEGRATION_SETTINGS_ID: validate_integrations,
}


def mask_secrets(settings: dict[str, Any]) -> dict[str, Any]:
    """Copy of `settings` with every non-empty apiKey replaced by a mask."""
    masked = {}
    for key, value in settings.items():
        if isinstance(value, dict):
            masked[key] = mask_secrets(value)
        elif key == "apiKey" and value:
            masked[key] = MASK
        else:
            masked[key] = value
    return masked


def _drop_masked(changes: dict[str, Any]) -> dict[str, Any]:
    # Clients echo the mask back when the key was not edited
    kept = {}
    for key, value in changes.items():
        if isinstance(value, dict):
            kept[key] = _drop_masked(value)
        elif not (key == "apiKey" and value == MASK):
            kept[key] = value
    return kept


class SettingsService:
    """
    The two settings singletons, merged over defaults.

    Each document is read from the store once and then served from an
    in-memory cache; updates merge into the stored document and refresh
    the cache. One instance lives on the app (see get_settings_service).
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self._lock = threading.RLock()
        self._cache: dict[str, dict[str, Any]] = {}

    def _load(self, doc_id: str) -> dict[str, Any]:
        with self._lock:
            if doc_id not in self._cache:
                doc = self.store.get(SETTINGS, doc_id)
                self._cache[doc_id] = deep_merge(DEFAULTS[doc_id], doc.data if doc else {})
            return copy.deepcopy(self._cache[doc_id])

    def _update(self, doc_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        if not isinstance(changes, dict) or not changes:
            raise SettingsValidationError("No settings provided")
        changes = _drop_masked(changes)
        VALIDATORS[doc_id](changes)
        doc = self.store.set(SETTINGS, doc_id, changes, merge=True)
        with self._lock:
            self._cache[doc_id] = deep_merge(DEFAULTS[doc_id], doc.data)
        logger.info("Updated %s settings: %s", doc_id, ", ".join(sorted(changes)))
        return self._load(doc_id)

    def invalidate(self) -> None:
        with self._lock:
            self._cache.clear()

    def get_organization(self) -> dict[str, Any]:
        return self._load(ORGANIZATION_SETTINGS_ID)

    def update_organization(self, changes: dict[str, Any]) -> dict[str, Any]:
        return self._update(ORGANIZATION_SETTINGS_ID, changes)

    def get_integrations(self, reveal_secrets: bool = False) -> dict[str, Any]:
        settings = self._load(INTEGRATION_SETTINGS_ID)
        return settings if reveal_secrets else mask_secrets(settings)

    def update_integrations(self, changes: dict[str, Any]) -> dict[str, Any]:
        return mask_secrets(self._update(INTEGRATION_SETTINGS_ID, changes))

    def get_all(self) -> dict[str, Any]:
        return {"organization": self.get_organization(), "integrations": self.get_integrations()}

    def subscribe(self, callback: Callable[[dict[str, Any]], None]) -> Subscription:
        """
        Live settings feed: callback(get_all()) now and after every settings write.

        Each snapshot also refreshes the cache, so writes made through
        another service instance show up here.
        """
        def _on_snapshot(docs):
            with self._lock:
                self._cache = {
                    doc.id: deep_merge(DEFAULTS[doc.id], doc.data) for doc in docs if doc.id in DEFAULTS
                }
            callback(self.get_all())

        return self.store.subscribe(SETTINGS, _on_snapshot)
