"""Shared test fixtures for salon booking tests."""

import fnmatch
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from salon_booking.auth import create_access_token
from salon_booking.cache import Cache
from salon_booking.database import Base, make_engine, make_session_factory
from salon_booking.domain.scheduling.validator import BookingValidator
from salon_booking.main import create_app
from salon_booking.models import ADMIN_ROLE, CLIENT_ROLE, STAFF_ROLE, Client, Service, Staff, User

# Fixed "now" for tests: Tuesday 2030-01-01 08:00. Bookings below are later that week.
NOW = datetime(2030, 1, 1, 8, 0)
TUESDAY = datetime(2030, 1, 8)
SATURDAY = datetime(2030, 1, 12)
SUNDAY = datetime(2030, 1, 13)


def at(day: datetime, hour: int, minute: int = 0) -> datetime:
    return day.replace(hour=hour, minute=minute)


def fixed_clock() -> datetime:
    return NOW


class RecordingConnection:
    """Connection handle that records pushed messages"""

    def __init__(self, name: str = "conn"):
        self.name = name
        self.messages: list[dict] = []

    def push(self, message: dict) -> None:
        self.messages.append(message)

    def events(self) -> list[str]:
        return [m["event"] for m in self.messages]


class FakeRedis:
    """In-memory stand-in for the handful of redis commands Cache uses"""

    def __init__(self):
        self.store: dict[str, str] = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def scan_iter(self, match="*"):
        return [k for k in list(self.store) if fnmatch.fnmatch(k, match)]

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed


@dataclass
class Directory:
    client_user_id: str
    client_id: int
    other_client_user_id: str
    other_client_id: int
    staff_user_id: str
    staff_id: int
    other_staff_id: int
    admin_user_id: str
    service_id: int


def seed_directory(session) -> Directory:
    """Two clients, two staff members (one linked to a user), an admin and a 45-minute service"""
    client, other_client = Client(), Client()
    staff = Staff(designation="Stylist")
    other_staff = Staff(designation="Barber")
    service = Service(name="Haircut", duration_minutes=45, price=Decimal("35.00"))
    session.add_all([client, other_client, staff, other_staff, service])
    session.flush()

    session.add_all(
        [
            User(id="client-1", email="client1@example.com", first_name="Ada", role=CLIENT_ROLE, client_id=client.id),
            User(id="client-2", email="client2@example.com", first_name="Ben", role=CLIENT_ROLE, client_id=other_client.id),
            User(id="staff-1", email="staff1@example.com", first_name="Sam", role=STAFF_ROLE, staff_id=staff.id),
            User(id="admin-1", email="admin@example.com", first_name="Root", role=ADMIN_ROLE),
        ]
    )
    session.commit()
    return Directory(
        client_user_id="client-1",
        client_id=client.id,
        other_client_user_id="client-2",
        other_client_id=other_client.id,
        staff_user_id="staff-1",
        staff_id=staff.id,
        other_staff_id=other_staff.id,
        admin_user_id="admin-1",
        service_id=service.id,
    )


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so each thread gets its own connection."""
    engine = make_engine(f"sqlite:///{tmp_path / 'salon_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db_session(session_factory) -> Generator:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def directory(session_factory) -> Directory:
    session = session_factory()
    try:
        return seed_directory(session)
    finally:
        session.close()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def app(engine, fake_redis):
    return create_app(
        engine=engine,
        cache=Cache(client=fake_redis),
        validator=BookingValidator(clock=fixed_clock),
    )


@pytest.fixture
def client(app, directory) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(user_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def client_headers(directory) -> dict:
    return auth_headers(directory.client_user_id, CLIENT_ROLE)


@pytest.fixture
def other_client_headers(directory) -> dict:
    return auth_headers(directory.other_client_user_id, CLIENT_ROLE)


@pytest.fixture
def staff_headers(directory) -> dict:
    return auth_headers(directory.staff_user_id, STAFF_ROLE)


@pytest.fixture
def admin_headers(directory) -> dict:
    return auth_headers(directory.admin_user_id, ADMIN_ROLE)
