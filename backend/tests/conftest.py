"""
Pytest fixtures for SealTrack backend tests.

Provides the app (in-memory SQLite), a clean database per test, an
in-memory document store for service-level tests, and seeded stations
and users with one account per role.
"""

import io
import os
from dataclasses import dataclass
from datetime import datetime, timedelta

import pytest
from PIL import Image

from sealtrack import create_app
from sealtrack.config import TestConfig
from sealtrack.extensions import db
from sealtrack.services import auth_service, entity_store, get_document_store, get_settings_service
from sealtrack.services.activity_log_service import ActivityLogService
from sealtrack.services.auth_service import LocalAuthProvider
from sealtrack.services.document_store import InMemoryDocumentStore
from sealtrack.services.entities import Actor, SealImage
from sealtrack.services.seal_lifecycle_service import SealLifecycleService
from sealtrack.services.station_service import StationService


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Cost 12 is too slow for a test suite."""
    monkeypatch.setattr(auth_service, "BCRYPT_ROUNDS", 4)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh database and document collections for each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        get_settings_service().invalidate()

        yield db.session

        db.session.rollback()


class Clock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 10, 19, 8, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture
def actor():
    return Actor(id="user-admin", name="Ada Admin", email="ada@sealtrack.local", role="admin")


@pytest.fixture
def activity_log(memory_store, clock):
    return ActivityLogService(memory_store, clock=clock)


@pytest.fixture
def lifecycle(memory_store, activity_log, clock):
    return SealLifecycleService(memory_store, activity_log=activity_log, clock=clock)


@pytest.fixture
def stations(memory_store, activity_log, clock):
    """Three stations; Main and North have managers, South does not."""
    service = StationService(memory_store, activity_log=activity_log, clock=clock)
    main = service.add_station({
        "name": "Main Store",
        "type": "main",
        "location": {"address": "1 Harbour Road"},
        "manager": {"id": "mgr-main", "name": "Mo Main", "email": "mo@sealtrack.local"},
    })
    north = service.add_station({
        "name": "North Depot",
        "type": "sub",
        "location": {"address": "North Industrial Park"},
        "manager": {"id": "mgr-north", "name": "Nia North", "email": "nia@sealtrack.local"},
    })
    south = service.add_station({"name": "South Yard", "type": "mobile"})
    return {"main": main, "north": north, "south": south}


def make_image(image_type: str = "initial", name: str = "seal.jpg") -> SealImage:
    return SealImage(
        data="data:image/jpeg;base64,/9j/4AAQSkZJRg==",
        timestamp="2026-10-19T08:00:00.000000Z",
        type=image_type,
        original_name=name,
    )


def png_bytes(width: int = 8, height: int = 8, color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def noise_png(width: int, height: int) -> bytes:
    """Uncompressed random-noise PNG: roughly width * height * 3 bytes."""
    img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    buf = io.BytesIO()
    img.save(buf, format="PNG", compress_level=0)
    return buf.getvalue()


@dataclass
class Seeded:
    stations: dict
    users: dict


@pytest.fixture
def seed(app, db_session):
    """
    Stations plus one account per role in the app's document store.

    users[role] -> {"id", "email"}; everyone's password is PASSWORD.
    """
    store = get_document_store()
    service = StationService(store)
    main = service.add_station({
        "name": "Main Store",
        "type": "main",
        "manager": {"id": "mgr-main", "name": "Mo Main", "email": "mo@sealtrack.local"},
    })
    north = service.add_station({
        "name": "North Depot",
        "type": "sub",
        "manager": {"id": "mgr-north", "name": "Nia North", "email": "nia@sealtrack.local"},
    })

    auth = LocalAuthProvider(store)
    profiles = entity_store.users(store)
    accounts = {
        "admin": ("admin@sealtrack.local", "Ada Admin", None),
        "main-store-manager": ("store@sealtrack.local", "Sam Store", None),
        "station-manager": ("station@sealtrack.local", "Stan Station", main.id),
        "sub-station-manager": ("sub@sealtrack.local", "Sue Sub", north.id),
    }
    users = {}
    for role, (email, name, station_id) in accounts.items():
        identity_id = auth.create_identity(email, PASSWORD, display_name=name)
        profile = {"id": identity_id, "email": email, "name": name, "role": role}
        if station_id:
            profile["stationId"] = station_id
        profiles.create(profile, doc_id=identity_id)
        users[role] = {"id": identity_id, "email": email}

    return Seeded(stations={"main": main, "north": north}, users=users)


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def _headers_for(client, seed, role):
    return auth_headers(get_auth_token(client, seed.users[role]["email"]))


@pytest.fixture
def admin_headers(client, seed):
    return _headers_for(client, seed, "admin")


@pytest.fixture
def store_manager_headers(client, seed):
    return _headers_for(client, seed, "main-store-manager")


@pytest.fixture
def station_headers(client, seed):
    return _headers_for(client, seed, "station-manager")


@pytest.fixture
def substation_headers(client, seed):
    return _headers_for(client, seed, "sub-station-manager")


def create_seal(client, headers, station_id, serial="S1", images=1):
    """POST /api/seals as multipart with `images` small PNG uploads."""
    data = {
        "serialCode": serial,
        "qrCode": f"QR-{serial}",
        "stationId": station_id,
        "images": [(io.BytesIO(png_bytes()), f"{serial}-{i}.png") for i in range(images)],
    }
    return client.post("/api/seals", data=data, headers=headers, content_type="multipart/form-data")
