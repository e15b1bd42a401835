import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stayhub.db.base import Base
from stayhub.db.session import get_db
from stayhub.models.apartment import Apartment
from stayhub.models.booking import Booking, BookingStatus, PaymentStatus
from stayhub.models.user import User, UserRole
from stayhub.utils.tickets import make_unique_ticket_code


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def now():
    return datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(db):
    def _make_user(role=UserRole.guest.value, full_name="Test User", **overrides):
        external_id = overrides.pop("external_id", f"ext-{uuid.uuid4().hex[:12]}")
        user = User(
            external_id=external_id,
            email=overrides.pop("email", f"{external_id}@example.com"),
            full_name=full_name,
            role=role,
            **overrides,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def owner(make_user):
    return make_user(
        role=UserRole.owner.value,
        full_name="Olivia Owner",
        payment_provider="momo",
        payment_account_verified=True,
    )


@pytest.fixture
def guest(make_user):
    return make_user(full_name="Gary Guest")


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.admin.value, full_name="Ada Admin")


@pytest.fixture
def make_apartment(db, owner):
    def _make_apartment(total_rooms=3, price="100.00", apartment_owner=None, **overrides):
        apartment = Apartment(
            owner_id=(apartment_owner or owner).id,
            title=overrides.pop("title", "Seaside Flats"),
            country="Ghana",
            region="Greater Accra",
            town=overrides.pop("town", "Accra"),
            address="12 Beach Road",
            price=Decimal(price),
            total_rooms=total_rooms,
            **overrides,
        )
        db.add(apartment)
        db.commit()
        db.refresh(apartment)
        return apartment
    return _make_apartment


@pytest.fixture
def apartment(make_apartment):
    return make_apartment()


@pytest.fixture
def make_booking(db, guest):
    """Insert a booking row directly, bypassing the lifecycle rules."""
    def _make_booking(apartment, check_in, check_out, status=BookingStatus.confirmed.value,
                      room_number=None, booking_guest=None, **overrides):
        who = booking_guest or guest
        booking = Booking(
            apartment_id=apartment.id,
            guest_id=who.id,
            guest_name=who.full_name,
            guest_email=who.email,
            check_in=check_in,
            check_out=check_out,
            guests=1,
            total_amount=overrides.pop("total_amount", Decimal("100.00")),
            payment_status=overrides.pop("payment_status", PaymentStatus.not_required.value),
            booking_status=status,
            ticket_code=make_unique_ticket_code(db),
            room_number=room_number,
            **overrides,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking
    return _make_booking


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


@pytest.fixture
def client(db):
    from stayhub.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the lifespan (database bootstrap, scheduler) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()
