"""Pytest fixtures: file-backed SQLite database, recreated for every test."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SMS_RELAY_URL", "")
os.environ.setdefault("ADMIN_EMAILS", "admin@example.com")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from taara.database import Base, get_db
from taara.main import app
from taara.services.capacity_service import CapacityLedger
from taara.services.lifecycle_service import RequestLifecycleEngine
from taara.services.notification_service import NotificationDispatcher, NotificationFeed

# Import all models so they register with Base.metadata
from taara.models.user import User, UserRole              # noqa: F401
from taara.models.pet import Pet, PetStatus               # noqa: F401
from taara.models.schedule import KaponSchedule           # noqa: F401
from taara.models.request import Request                  # noqa: F401
from taara.models.notification import Notification       # noqa: F401
from taara.models.announcement import Announcement       # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def feed():
    return NotificationFeed()


@pytest.fixture(scope="function")
def dispatcher(db, feed):
    return NotificationDispatcher(db, feed)


@pytest.fixture(scope="function")
def lifecycle(db, dispatcher):
    return RequestLifecycleEngine(db, dispatcher)


@pytest.fixture(scope="function")
def ledger(db, lifecycle):
    return CapacityLedger(db, lifecycle)


@pytest.fixture(scope="function")
def client(session_factory, feed):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.state.notification_feed = feed
    app.state.sms_client = None
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create rows via the API (return JSON) or directly (return ORM rows)
# ---------------------------------------------------------------------------
def create_test_user(
    client: TestClient, email: str = "user@example.com", name: str = "Test User", role: str = "user",
) -> dict:
    """Helper: POST /api/users and return response JSON.

    Only emails listed in ADMIN_EMAILS (admin@example.com here) come back as admins.
    """
    resp = client.post("/api/users/", json={
        "email": email,
        "display_name": name,
        "phone_number": "09171234567",
    })
    assert resp.status_code == 201, resp.text
    assert resp.json()["role"] == role, resp.text
    return resp.json()


def create_test_pet(client: TestClient, admin_id: str, name: str = "Bantay", pet_type: str = "dog") -> dict:
    """Helper: POST /api/pets as an admin and return response JSON."""
    resp = client.post(f"/api/pets/?actor_user_id={admin_id}", json={
        "name": name,
        "type": pet_type,
        "breed": "Aspin",
        "age": "2 years",
        "gender": "male",
        "description": "Friendly and house-trained",
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_schedule(client: TestClient, admin_id: str, capacity: int = 2) -> dict:
    """Helper: POST /api/schedules as an admin and return response JSON."""
    resp = client.post(f"/api/schedules/?actor_user_id={admin_id}", json={
        "title": "Barangay Kapon Day",
        "date": "2026-11-14",
        "start_time": "08:00",
        "end_time": "15:00",
        "location": "Barangay Hall",
        "capacity": capacity,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def make_user(db, email: str, role: UserRole = UserRole.user, name: str = "Test User") -> User:
    user = User(email=email, display_name=name, phone_number="09171234567", role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_pet(db, name: str = "Bantay", status: PetStatus = PetStatus.available) -> Pet:
    pet = Pet(name=name, type="dog", breed="Aspin", status=status)
    db.add(pet)
    db.commit()
    db.refresh(pet)
    return pet


ADOPTION_PAYLOAD = {
    "full_name": "Juan Dela Cruz",
    "phone_number": "09181234567",
    "reason": "Looking for a companion",
    "valid_id_ref": "uploads/id.png",
    "proof_of_residence_ref": "uploads/bill.png",
}

VOLUNTEER_PAYLOAD = {
    "first_name": "Maria",
    "last_name": "Santos",
    "email": "maria@example.com",
    "phone": "09191234567",
    "motivation": "I love animals",
}

KAPON_PAYLOAD = {
    "owner_name": "Pedro Reyes",
    "contact_number": "09201234567",
    "pet_name": "Muning",
    "pet_type": "cat",
}

DONATION_PAYLOAD = {"amount": 500, "payment_method": "gcash"}
