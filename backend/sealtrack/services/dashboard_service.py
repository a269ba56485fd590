# Overview: Live dashboard projections recomputed from full collection snapshots.

"""
Real-Time Dashboard Aggregator

Subscribes to seals, stations and users and rebuilds a DashboardView
from the latest full snapshots every time any of them changes. Nothing
is incremental and nothing is persisted: each view is a pure function
of (seals, stations, users, now, scope).

Station counters (activeSeals / totalSeals) are derived here from the
seals themselves instead of trusting the stored counters, so they
cannot drift from seal state.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable

from .document_store import DocumentStore, Subscription
from .entities import (
    SEAL_STATUSES,
    STATUS_DAMAGED,
    STATUS_IN_TRANSIT,
    STATUS_RECEIVED,
    Seal,
    Station,
    UserProfile,
)
from . import entity_store
from .seal_lifecycle_service import SealStatistics, compute_statistics
from sealtrack.time_utils import parse_iso_datetime, utcnow


logger = logging.getLogger(__name__)

TIMELINE_DAYS = 7
RECENT_ACTIVITY_LIMIT = 5


def status_distribution(seals: Iterable[Seal]) -> list[dict[str, Any]]:
    """Chart-ready [{status, count}] in lifecycle order."""
    stats = compute_statistics(seals)
    return [{"status": status, "count": stats.by_status.get(status, 0)} for status in SEAL_STATUSES]


def station_seal_counts(stations: Iterable[Station], seals: Iterable[Seal]) -> dict[str, dict[str, int]]:
    """
    Per-station {active, total}, keyed by station name.

    A seal counts towards the station it is at, or the station it is
    headed to while In Transit or Issued. Active means in field use.
    """
    counts = {station.name: {"active": 0, "total": 0} for station in stations}
    for seal in seals:
        name = seal.location_station
        if name not in counts:
            continue
        counts[name]["total"] += 1
        if not seal.is_unutilized:
            counts[name]["active"] += 1
    return counts


def stations_with_live_counters(stations: Iterable[Station], seals: Iterable[Seal]) -> list[Station]:
    stations = list(stations)
    counts = station_seal_counts(stations, seals)
    return [s.with_counters(counts[s.name]["active"], counts[s.name]["total"]) for s in stations]


def timeline_buckets(
    seals: Iterable[Seal],
    now: datetime,
    days: int = TIMELINE_DAYS,
    field_name: str = "last_updated",
) -> list[dict[str, Any]]:
    """
    Seals bucketed by calendar day (UTC) of `field_name`, oldest day first.

    Every day in the window is present, with zero counts where nothing
    happened. Seals outside the window are ignored.
    """
    today = now.date()
    start = today - timedelta(days=days - 1)
    buckets: dict[date, dict[str, int]] = {
        start + timedelta(days=i): {status: 0 for status in SEAL_STATUSES}
        for i in range(days)
    }
    for seal in seals:
        stamp = parse_iso_datetime(getattr(seal, field_name) or None)
        if stamp is None:
            continue
        day = stamp.date()
        if day in buckets:
            buckets[day][seal.status] = buckets[day].get(seal.status, 0) + 1
    return [
        {"date": day.isoformat(), "total": sum(counts.values()), "byStatus": counts}
        for day, counts in sorted(buckets.items())
    ]


@dataclass(frozen=True)
class DashboardScope:
    """Restricts a view to one station's seals (station portals)."""
    station_name: str | None = None

    def filter(self, seals: Iterable[Seal]) -> list[Seal]:
        if not self.station_name:
            return list(seals)
        return [s for s in seals if s.involves_station(self.station_name)]


@dataclass(frozen=True)
class DashboardView:
    generated_at: datetime
    statistics: SealStatistics
    stations: list[Station] = field(default_factory=list)
    total_users: int = 0
    timeline: list[dict[str, Any]] = field(default_factory=list)
    distribution: list[dict[str, Any]] = field(default_factory=list)
    recent: list[Seal] = field(default_factory=list)
    scope: DashboardScope = field(default_factory=DashboardScope)

    def summary(self) -> dict[str, int]:
        """Headline numbers, as on the admin dashboard cards."""
        stats = self.statistics
        return {
            "totalSeals": stats.total,
            "activeSeals": stats.in_use,
            "availableSeals": stats.by_status.get(STATUS_RECEIVED, 0),
            "damagedSeals": stats.by_status.get(STATUS_DAMAGED, 0),
            "inTransitSeals": stats.by_status.get(STATUS_IN_TRANSIT, 0),
            "totalStations": len(self.stations),
            "activeStations": sum(1 for s in self.stations if s.status == "active"),
            "totalUsers": self.total_users,
            "utilization": stats.utilization_rate,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "generatedAt": self.generated_at.isoformat() + "Z",
            "station": self.scope.station_name,
            "summary": self.summary(),
            "statistics": self.statistics.to_dict(),
            "stations": [s.to_dict() for s in self.stations],
            "timeline": self.timeline,
            "distribution": self.distribution,
            "recentActivity": [s.to_dict(now=self.generated_at, include_images=False) for s in self.recent],
        }


def build_view(
    seals: list[Seal],
    stations: list[Station],
    users: list[UserProfile],
    now: datetime,
    scope: DashboardScope | None = None,
) -> DashboardView:
    scope = scope or DashboardScope()
    scoped = scope.filter(seals)
    live_stations = stations_with_live_counters(stations, seals)
    if scope.station_name:
        live_stations = [s for s in live_stations if s.name == scope.station_name]
    return DashboardView(
        generated_at=now,
        statistics=compute_statistics(scoped),
        stations=live_stations,
        total_users=len(users),
        timeline=timeline_buckets(scoped, now),
        distribution=status_distribution(scoped),
        recent=scoped[:RECENT_ACTIVITY_LIMIT],
        scope=scope,
    )


class DashboardAggregator:
    """
    Keeps the latest snapshot of each collection and emits a fresh
    DashboardView whenever any of them changes.

    start() subscribes and emits the first view once all three initial
    snapshots have arrived. stop() is idempotent.
    """

    def __init__(
        self,
        store: DocumentStore,
        scope: DashboardScope | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.scope = scope or DashboardScope()
        self.clock = clock
        self._lock = threading.RLock()
        self._seals: list[Seal] | None = None
        self._stations: list[Station] | None = None
        self._users: list[UserProfile] | None = None
        self._subscriptions: list[Subscription] = []
        self._callback: Callable[[DashboardView], None] | None = None
        self._latest: DashboardView | None = None

    @property
    def latest(self) -> DashboardView | None:
        return self._latest

    def start(self, callback: Callable[[DashboardView], None]) -> "DashboardAggregator":
        with self._lock:
            if self._subscriptions:
                raise RuntimeError("Aggregator already started")
            self._callback = callback
            self._subscriptions = [
                entity_store.seals(self.store).subscribe(self._on_seals),
                entity_store.stations(self.store).subscribe(self._on_stations),
                entity_store.users(self.store).subscribe(self._on_users),
            ]
        return self

    def stop(self) -> None:
        with self._lock:
            subscriptions, self._subscriptions = self._subscriptions, []
            self._callback = None
        for subscription in subscriptions:
            subscription.cancel()

    def _on_seals(self, seals: list[Seal]) -> None:
        with self._lock:
            self._seals = seals
            self._recompute()

    def _on_stations(self, stations: list[Station]) -> None:
        with self._lock:
            self._stations = stations
            self._recompute()

    def _on_users(self, users: list[UserProfile]) -> None:
        with self._lock:
            self._users = users
            self._recompute()

    def _recompute(self) -> None:
        if self._seals is None or self._stations is None or self._users is None:
            return
        view = build_view(self._seals, self._stations, self._users, self.clock(), self.scope)
        self._latest = view
        if self._callback is not None:
            self._callback(view)


def current_view(store: DocumentStore, scope: DashboardScope | None = None, now: datetime | None = None) -> DashboardView:
    """One-shot view from a fresh read of every collection."""
    return build_view(
        entity_store.seals(store).list(),
        entity_store.stations(store).list(),
        entity_store.users(store).list(),
        now or utcnow(),
        scope,
    )
