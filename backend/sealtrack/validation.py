# Overview: Domain error types shared by services and routes.

from __future__ import annotations

from typing import Any


class ValidationError(ValueError):
    """400-level input problem, detected before any store call."""


class NotFoundError(LookupError):
    """404-level missing document."""


class ConflictError(ValueError):
    """409-level business rule conflict."""


def require_text(payload: dict[str, Any], key: str, label: str | None = None) -> str:
    """Return a stripped, non-empty string field or raise ValidationError."""
    value = payload.get(key)
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label or key} is required")
    return value.strip()


def optional_text(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    return value or None


def require_bool(payload: dict[str, Any], key: str) -> bool:
    value = payload.get(key)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise ValidationError(f"{key} must be a boolean")


def require_choice(payload: dict[str, Any], key: str, choices) -> str:
    value = require_text(payload, key)
    if value not in choices:
        raise ValidationError(f"{key} must be one of: {', '.join(sorted(choices))}")
    return value


def optional_float(payload: dict[str, Any], key: str) -> float | None:
    value = payload.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")
