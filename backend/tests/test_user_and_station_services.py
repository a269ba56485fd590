"""
Station registry and user provisioning tests.
"""

import pytest

from sealtrack.models import Identity, PasswordResetToken
from sealtrack.services import get_document_store
from sealtrack.services.auth_service import LocalAuthProvider
from sealtrack.services.entities import Actor
from sealtrack.services.station_service import StationService
from sealtrack.services.user_service import UserService
from sealtrack.validation import ConflictError, NotFoundError, ValidationError


# =============================================================================
# STATIONS
# =============================================================================


class TestStationService:
    def test_new_station_defaults(self, stations):
        south = stations["south"]
        assert south.type == "mobile"
        assert south.status == "active"
        assert south.active_seals == 0
        assert south.total_seals == 0
        assert south.manager is None
        assert south.last_active == "2026-10-19T08:00:00.000000Z"

    def test_type_defaults_to_main(self, memory_store):
        station = StationService(memory_store).add_station({"name": "Depot"})
        assert station.type == "main"

    def test_name_required_and_unique(self, memory_store, stations):
        service = StationService(memory_store)
        with pytest.raises(ValidationError):
            service.add_station({"name": "  "})
        with pytest.raises(ConflictError):
            service.add_station({"name": "main store"})

    def test_invalid_type(self, memory_store):
        with pytest.raises(ValidationError):
            StationService(memory_store).add_station({"name": "Depot", "type": "warehouse"})

    def test_update_bumps_last_active(self, memory_store, stations, activity_log, clock, actor):
        service = StationService(memory_store, activity_log=activity_log, clock=clock)
        clock.advance(hours=1)

        updated = service.update_station(stations["south"].id, {
            "status": "inactive",
            "manager": {"id": "mgr-south", "name": "Sol South"},
            "location": {"address": "Quay 3", "latitude": "-6.8"},
        }, actor=actor)

        assert updated.status == "inactive"
        assert updated.manager.name == "Sol South"
        assert updated.location.latitude == -6.8
        assert updated.last_active == "2026-10-19T09:00:00.000000Z"
        assert activity_log.list_recent(entity_id=updated.id)[0].action == "updated station details"

    def test_update_rejects_unknown_fields(self, memory_store, stations):
        with pytest.raises(ValidationError, match="activeSeals"):
            StationService(memory_store).update_station(stations["main"].id, {"activeSeals": 99})

    def test_rename_to_existing_name(self, memory_store, stations):
        with pytest.raises(ConflictError):
            StationService(memory_store).update_station(stations["south"].id, {"name": "North Depot"})

    def test_get_missing(self, memory_store):
        with pytest.raises(NotFoundError):
            StationService(memory_store).get_station("nope")

    def test_list_by_status(self, memory_store, stations):
        service = StationService(memory_store)
        service.update_station(stations["south"].id, {"status": "inactive"})
        assert [s.name for s in service.list_stations(status="inactive")] == ["South Yard"]
        assert len(service.list_stations()) == 3


# =============================================================================
# USERS
# =============================================================================


@pytest.fixture
def user_service(db_session):
    store = get_document_store()
    return UserService(store, LocalAuthProvider(store))


@pytest.fixture
def main_station(db_session):
    return StationService(get_document_store()).add_station({"name": "Main Store"})


ADMIN = Actor(id="admin-1", name="Ada Admin", role="admin")


class TestUserService:
    def test_add_user_provisions_identity_profile_and_reset(self, user_service, main_station, db_session):
        provisioned = user_service.add_user({
            "email": "stan@sealtrack.local",
            "name": "Stan Station",
            "role": "station-manager",
            "stationId": main_station.id,
        }, actor=ADMIN)

        user = provisioned.user
        identity = db_session.get(Identity, user.id)
        assert identity.email == "stan@sealtrack.local"
        assert user.role == "station-manager"
        assert user.station_id == main_station.id
        assert user.created_at == user.last_active
        assert provisioned.reset_token
        assert db_session.query(PasswordResetToken).filter_by(identity_id=user.id).count() == 1

    def test_station_role_needs_station(self, user_service):
        with pytest.raises(ValidationError, match="Please select a station for this role"):
            user_service.add_user({"email": "a@b.co", "name": "A", "role": "sub-station-manager"})

    def test_station_must_exist(self, user_service):
        with pytest.raises(ValidationError, match="Invalid station selected"):
            user_service.add_user({"email": "a@b.co", "name": "A", "role": "station-manager", "stationId": "gone"})

    def test_admin_roles_drop_station(self, user_service, main_station):
        user = user_service.add_user({
            "email": "sam@sealtrack.local", "name": "Sam", "role": "main-store-manager", "stationId": main_station.id,
        }).user
        assert user.station_id is None

    def test_unknown_role(self, user_service):
        with pytest.raises(ValidationError):
            user_service.add_user({"email": "a@b.co", "name": "A", "role": "owner"})

    def test_duplicate_email(self, user_service):
        user_service.add_user({"email": "a@b.co", "name": "A", "role": "admin"})
        with pytest.raises(ConflictError):
            user_service.add_user({"email": "A@b.co", "name": "A again", "role": "admin"})

    def test_update_role_rebinds_station(self, user_service, main_station):
        user = user_service.add_user({"email": "a@b.co", "name": "A", "role": "admin"}).user

        with pytest.raises(ValidationError):
            user_service.update_user(user.id, {"role": "station-manager"})

        updated = user_service.update_user(user.id, {"role": "station-manager", "stationId": main_station.id}, actor=ADMIN)
        assert updated.role == "station-manager"
        assert updated.station_id == main_station.id

        demoted = user_service.update_user(user.id, {"role": "admin"})
        assert demoted.station_id is None

    def test_update_rejects_email_change(self, user_service):
        user = user_service.add_user({"email": "a@b.co", "name": "A", "role": "admin"}).user
        with pytest.raises(ValidationError):
            user_service.update_user(user.id, {"email": "new@b.co"})

    def test_get_user_role(self, user_service):
        user = user_service.add_user({"email": "a@b.co", "name": "A", "role": "main-store-manager"}).user
        assert user_service.get_user_role(user.id) == "main-store-manager"
        assert user_service.get_user_role("nobody") is None

    def test_list_by_role_sorted_by_name(self, user_service):
        user_service.add_user({"email": "z@b.co", "name": "Zoe", "role": "admin"})
        user_service.add_user({"email": "a@b.co", "name": "Abe", "role": "admin"})
        user_service.add_user({"email": "m@b.co", "name": "Mia", "role": "main-store-manager"})

        assert [u.name for u in user_service.list_users(role="admin")] == ["Abe", "Zoe"]
        assert len(user_service.list_users()) == 3
