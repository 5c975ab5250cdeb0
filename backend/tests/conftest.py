# backend/tests/conftest.py
"""
Pytest configuration for the slotbook test-suite.

Every test gets a fresh in-memory SQLite database (StaticPool, so the API's
worker threads share the test connection) and a controllable clock.

The SQLite overlap trigger judges holds against the database's own
``datetime('now')``, so the fake clock starts at the real current minute.
Tests that need a lapsed hold either move the clock forward after writing, or
insert the row with an already-expired hold.
"""

import os

# CRITICAL: Set testing mode BEFORE any slotbook imports!
os.environ["IS_TESTING"] = "true"
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SWEEPER_ENABLED"] = "false"

from contextlib import contextmanager
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Dict, Iterator, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from slotbook.api.dependencies.services import get_clock
from slotbook.auth import create_access_token
from slotbook.core.enums import RoleName
from slotbook.core.timezone_utils import WorkingHours
from slotbook.core.ulid_helper import generate_ulid
from slotbook.database import Base, get_db
from slotbook.main import app
from slotbook.models import Booking, BookingStatus, Offering, Resource
from tests.helpers import FakeClock, auth_headers

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(test_engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False
)


# ============================================================================
# Core fixtures
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime.now(timezone.utc).replace(second=0, microsecond=0))


@pytest.fixture
def db() -> Iterator[Session]:
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def second_session(db) -> Iterator[Session]:
    """Another session on the same database, for a writer that commits in between."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def working_hours() -> WorkingHours:
    return WorkingHours(opens_at=time(9, 0), closes_at=time(19, 0), timezone="Europe/Kyiv")


@pytest.fixture
def utc_working_hours() -> WorkingHours:
    return WorkingHours(opens_at=time(9, 0), closes_at=time(19, 0), timezone="UTC")


@pytest.fixture
def future_day(clock) -> date:
    """A calendar day far enough ahead that none of its slots are past."""
    return (clock.now() + timedelta(days=3)).date()


@pytest.fixture
def session_factory(db):
    """Session scope for background code that shares the per-test session."""

    @contextmanager
    def _scope():
        yield db

    return _scope


# ============================================================================
# Catalog fixtures
# ============================================================================


@pytest.fixture
def owner_id() -> str:
    return generate_ulid()


@pytest.fixture
def client_id() -> str:
    return generate_ulid()


@pytest.fixture
def resource(db, owner_id) -> Resource:
    resource = Resource(owner_user_id=owner_id, display_name="Studio A")
    db.add(resource)
    db.commit()
    return resource


@pytest.fixture
def offering(db, resource) -> Offering:
    offering = Offering(resource_id=resource.id, name="Lesson (60 min)", duration_minutes=60)
    db.add(offering)
    db.commit()
    return offering


@pytest.fixture
def other_resource(db) -> Resource:
    resource = Resource(owner_user_id=generate_ulid(), display_name="Studio B")
    db.add(resource)
    db.commit()
    return resource


# ============================================================================
# Booking factory
# ============================================================================


@pytest.fixture
def make_booking(db, resource, offering) -> Callable[..., Booking]:
    """
    Insert a booking row directly, bypassing the service layer.

    Pending rows default to a hold 24 hours past the real current time.
    """

    def _make(
        start_at: datetime,
        minutes: int = 60,
        status: BookingStatus = BookingStatus.CONFIRMED,
        hold_expires_at: Optional[datetime] = None,
        client_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> Booking:
        if status == BookingStatus.PENDING and hold_expires_at is None:
            hold_expires_at = datetime.now(timezone.utc) + timedelta(hours=24)
        booking = Booking(
            resource_id=resource_id or resource.id,
            client_id=client_id or generate_ulid(),
            offering_id=offering.id,
            status=status.value,
            start_at=start_at,
            end_at=start_at + timedelta(minutes=minutes),
            hold_expires_at=hold_expires_at,
            idempotency_key=idempotency_key or generate_ulid(),
        )
        db.add(booking)
        db.commit()
        return booking

    return _make


# ============================================================================
# HTTP fixtures
# ============================================================================


@pytest.fixture
def provider_headers(owner_id) -> Dict[str, str]:
    return auth_headers(create_access_token(owner_id, roles=[RoleName.PROVIDER.value]))


@pytest.fixture
def client_headers(client_id) -> Dict[str, str]:
    return auth_headers(create_access_token(client_id, roles=[RoleName.CLIENT.value]))


@pytest.fixture
def client(db, clock) -> Iterator[TestClient]:
    """TestClient bound to the per-test session and clock."""

    def override_get_db():
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
