"""
Activity log tests.

The audit trail is append-only, written only when an actor is known,
and best-effort: a failed append never fails the mutation it describes.
"""

import pytest

from conftest import make_image
from sealtrack.services.activity_log_service import ActivityLogService, derive_seal_action
from sealtrack.services.document_store import InMemoryDocumentStore
from sealtrack.services.entities import ACTIVITY_LOGS, Actor
from sealtrack.services.seal_lifecycle_service import SealLifecycleService
from sealtrack.services.station_service import StationService


@pytest.mark.parametrize("changes,expected", [
    ({"status": "In Transit", "destinationStation": "North"}, "updated seal status to In Transit"),
    ({"destinationStation": "North"}, "issued seal to North"),
    ({"isUnutilized": False}, "updated seal details"),
    ({"images": []}, "updated seal details"),
])
def test_derive_seal_action(changes, expected):
    assert derive_seal_action(changes) == expected


class TestAppend:
    def test_record_fields(self, activity_log, actor):
        entry = activity_log.append(actor, "added a new station", "Added station X", entity_id="st-1", entity_type="station")

        assert entry.user_id == "user-admin"
        assert entry.user_name == "Ada Admin"
        assert entry.timestamp == "2026-10-19T08:00:00.000000Z"
        assert entry.entity_type == "station"

    def test_skipped_without_actor(self, activity_log):
        assert activity_log.append(None, "anything", "details") is None
        assert activity_log.list_recent() == []

    def test_unknown_entity_type(self, activity_log, actor):
        with pytest.raises(ValueError):
            activity_log.append(actor, "x", "y", entity_type="truck")

    def test_user_name_falls_back_to_email(self, activity_log):
        entry = activity_log.append(Actor(id="u", email="who@sealtrack.local"), "x", "y")
        assert entry.user_name == "who@sealtrack.local"

    def test_newest_first_and_capped(self, activity_log, actor, clock):
        for i in range(105):
            clock.advance(seconds=1)
            activity_log.append(actor, "updated seal details", f"#{i}")

        recent = activity_log.list_recent()
        assert len(recent) == 100
        assert recent[0].details == "#104"

    def test_same_instant_entries_stay_newest_first(self, activity_log, actor):
        for i in range(3):
            activity_log.append(actor, "updated seal details", f"#{i}")

        recent = activity_log.list_recent()
        assert [e.details for e in recent] == ["#2", "#1", "#0"]
        assert recent[0].timestamp == "2026-10-19T08:00:00.000002Z"

    def test_filter_by_entity(self, activity_log, actor):
        activity_log.append(actor, "a", "1", entity_id="seal-1", entity_type="seal")
        activity_log.append(actor, "b", "2", entity_id="seal-2", entity_type="seal")
        assert [e.details for e in activity_log.list_recent(entity_id="seal-2")] == ["2"]


class BrokenLogStore(InMemoryDocumentStore):
    def create(self, collection, data, doc_id=None):
        if collection == ACTIVITY_LOGS:
            raise RuntimeError("log backend unavailable")
        return super().create(collection, data, doc_id=doc_id)


def test_failed_append_does_not_fail_mutation(actor, caplog):
    store = BrokenLogStore()
    station = StationService(store).add_station({"name": "Main Store"}, actor=actor)
    lifecycle = SealLifecycleService(store)

    seal = lifecycle.create_seal("SN", "QR", station.id, [make_image()], actor=actor)

    assert lifecycle.get_seal(seal.id).status == "Received"
    assert "Failed to append activity log" in caplog.text


def test_subscription_sees_new_entries(activity_log, actor):
    snapshots = []
    subscription = activity_log.subscribe(snapshots.append)
    activity_log.append(actor, "added a new user", "Added user Sam")
    subscription.cancel()

    assert [len(s) for s in snapshots] == [0, 1]
    assert snapshots[-1][0].action == "added a new user"


def test_service_writes_are_logged_once(memory_store, actor):
    log = ActivityLogService(memory_store)
    stations = StationService(memory_store, activity_log=log)
    station = stations.add_station({"name": "Main Store"}, actor=actor)
    stations.update_station(station.id, {"status": "inactive"}, actor=actor)

    actions = sorted(e.action for e in log.list_recent(entity_id=station.id))
    assert actions == ["added a new station", "updated station details"]
