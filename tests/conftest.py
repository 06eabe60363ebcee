"""Shared test fixtures and helpers."""

import threading
from datetime import date, datetime
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from carbook import models_twilio  # noqa: F401
from carbook.auth import create_access_token
from carbook.database import Base, build_engine, get_db
from carbook.domain.bookings.router import get_completion_notifier
from carbook.main import app
from carbook.models import Booking, BookingStatus, TimeSlot, User, UserRole


class FakeNotifier:
    """CompletionNotifier that records calls instead of dialling out"""

    def __init__(self, delivered: bool = True, error: Optional[str] = None, raises: Optional[Exception] = None):
        self.delivered = delivered
        self.error = error
        self.raises = raises
        self.calls: list[str] = []
        self._lock = threading.Lock()

    async def notify_completion(self, booking):
        with self._lock:
            self.calls.append(booking.id)
        if self.raises:
            raise self.raises
        return self.delivered, self.error


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'carbook-test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return FakeNotifier()


def make_user(db, role: UserRole = UserRole.CUSTOMER, phone: Optional[str] = "+919876543210", **kwargs) -> User:
    """Helper to persist a User."""
    count = db.query(User).count()
    user = User(
        email=kwargs.pop("email", f"user{count}@smartcars.test"),
        name=kwargs.pop("name", f"User {count}"),
        phone=phone,
        role=role.value,
        **kwargs,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_booking(db, user: User, status: BookingStatus = BookingStatus.PENDING, **kwargs) -> Booking:
    """Helper to persist a Booking for a user."""
    booking = Booking(
        user_id=user.id,
        vehicle_id=kwargs.pop("vehicle_id", "6f1c7a52-1d7e-4a4e-9d6b-2f6c1f0b9a11"),
        service_id=kwargs.pop("service_id", "0b8e2f4c-5a3d-4c1e-8f2a-7d9e6b3c1a22"),
        scheduled_date=kwargs.pop("scheduled_date", datetime(2025, 3, 10, 9, 0)),
        status=status.value,
        **kwargs,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def make_slot(
    db,
    slot_date: date = date(2025, 3, 10),
    start_time: str = "09:00",
    end_time: str = "10:00",
    max_capacity: int = 1,
) -> TimeSlot:
    """Helper to persist an empty TimeSlot."""
    slot = TimeSlot(
        date=slot_date,
        start_time=start_time,
        end_time=end_time,
        max_capacity=max_capacity,
        current_bookings=0,
        is_available=True,
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_completion_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()
