# Overview: UTC timestamp helpers shared by models and document entities.

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 string into a naive UTC datetime.

    Accepts a trailing "Z" or an explicit offset. Strings without an
    offset are taken as UTC. Empty input gives None.
    """
    if not value or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 with a trailing 'Z', for API payloads."""
    if dt is None:
        return None
    return _as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"


def to_document_timestamp(dt: datetime) -> str:
    """
    Fixed-width microsecond timestamp stored inside documents.

    String order equals chronological order, so "lastUpdated desc"
    listings can sort on the raw value.
    """
    return _as_naive_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def next_timestamp(now: datetime, previous: Optional[str]) -> datetime:
    """Return `now`, nudged forward so it is strictly after `previous`."""
    prior = parse_iso_datetime(previous)
    if prior is not None and now <= prior:
        return prior + timedelta(microseconds=1)
    return now
