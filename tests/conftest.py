"""
Pytest configuration and fixtures.

Every test runs against a fresh in-memory SQLite schema; the environment is
configured before any application module is imported.
"""
import os
import tempfile
from datetime import timedelta

_tmp = tempfile.mkdtemp(prefix="caravan-tests-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOMINATIM_ENABLED"] = "false"
os.environ["SPACETIME_LOCATION_MIRROR_ENABLED"] = "false"
os.environ["API_LOG_PATH"] = os.path.join(_tmp, "api.log")
os.environ["AVATAR_STORAGE_DIR"] = os.path.join(_tmp, "storage")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from database import Base, SessionLocal, engine  # noqa: E402
from main import app  # noqa: E402
from models import Retreat  # noqa: E402
from services import place_label  # noqa: E402
from services.location_mirror import LocationMirror, get_location_mirror  # noqa: E402
from utils.datetime_helpers import utcnow  # noqa: E402


class RecordingMirror(LocationMirror):
    def __init__(self):
        self.calls = []

    def send_latest_reading(self, participant_id, retreat_id, reading):
        self.calls.append((participant_id, retreat_id, reading))


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    place_label.clear_cache()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def mirror():
    recording = RecordingMirror()
    app.dependency_overrides[get_location_mirror] = lambda: recording
    yield recording
    app.dependency_overrides.pop(get_location_mirror, None)


@pytest.fixture
def client(db, mirror):
    return TestClient(app)


@pytest.fixture
def make_retreat(db):
    def _make(**overrides):
        now = utcnow()
        fields = {
            "name": "Test Retreat",
            "code": "TEST26",
            "destination_name": "Test Destination",
            "destination_lat": 36.611158,
            "destination_lng": -93.306554,
            "starts_at": now - timedelta(days=1),
            "ends_at": now + timedelta(days=1),
            "is_active": True,
        }
        fields.update(overrides)
        retreat = Retreat(**fields)
        db.add(retreat)
        db.commit()
        db.refresh(retreat)
        return retreat
    return _make


@pytest.fixture
def join(client):
    def _join(code="TEST26", name="Tester", phone="+15012315761", **extra):
        payload = {"code": code, "phone_number": phone, **extra}
        if name is not None:
            payload["name"] = name
        return client.post("/api/v1/retreat/join", json=payload)
    return _join
