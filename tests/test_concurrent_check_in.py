import threading
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from stayhub.core.exceptions import NoRoomsAvailable
from stayhub.db.base import Base
from stayhub.models.apartment import Apartment
from stayhub.models.booking import Booking, BookingStatus, PaymentStatus
from stayhub.models.user import User, UserRole
from stayhub.services import booking_lifecycle
from stayhub.utils.tickets import make_unique_ticket_code

from helpers import at_noon

ROOMS = 6
GUESTS = 9


@pytest.fixture
def file_session_factory(tmp_path):
    # One connection per session so each thread really runs on its own
    engine = create_engine(
        f"sqlite:///{tmp_path / 'stayhub.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        poolclass=NullPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def seeded(file_session_factory):
    db = file_session_factory()
    try:
        owner = User(
            external_id="ext-owner",
            email="owner@stayhub.test",
            full_name="Olivia Owner",
            role=UserRole.owner.value,
            payment_provider="momo",
            payment_account_verified=True,
        )
        db.add(owner)
        db.flush()
        apartment = Apartment(
            owner_id=owner.id,
            title="Harbour View",
            country="Ghana",
            region="Greater Accra",
            town="Accra",
            address="1 Harbour Road",
            price=Decimal("100.00"),
            total_rooms=ROOMS,
        )
        db.add(apartment)
        db.flush()

        booking_ids = []
        for i in range(GUESTS):
            guest = User(external_id=f"ext-guest-{i}", email=f"guest{i}@stayhub.test", full_name=f"Guest {i}")
            db.add(guest)
            db.flush()
            # Staggered but all overlapping on the 12th
            booking = Booking(
                apartment_id=apartment.id,
                guest_id=guest.id,
                guest_name=guest.full_name,
                guest_email=guest.email,
                check_in=at_noon(10 + i % 3),
                check_out=at_noon(14 + i % 2),
                guests=1,
                total_amount=Decimal("400.00"),
                payment_status=PaymentStatus.not_required.value,
                booking_status=BookingStatus.confirmed.value,
                ticket_code=make_unique_ticket_code(db),
            )
            db.add(booking)
            db.flush()
            booking_ids.append(booking.id)
        db.commit()
        return owner.id, booking_ids
    finally:
        db.close()


def test_parallel_check_ins_never_share_a_room(file_session_factory, seeded):
    owner_id, booking_ids = seeded
    barrier = threading.Barrier(len(booking_ids))
    rooms, refused, failures = [], [], []
    results_guard = threading.Lock()

    def worker(booking_id):
        db = file_session_factory()
        try:
            owner = db.query(User).filter(User.id == owner_id).one()
            barrier.wait(timeout=10)
            booking = booking_lifecycle.check_in(db, booking_id, owner)
            with results_guard:
                rooms.append(booking.room_number)
        except NoRoomsAvailable:
            with results_guard:
                refused.append(booking_id)
        except Exception as exc:
            with results_guard:
                failures.append(exc)
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(booking_id,)) for booking_id in booking_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert failures == []
    assert sorted(rooms) == list(range(1, ROOMS + 1))
    assert len(refused) == GUESTS - ROOMS

    db = file_session_factory()
    try:
        held = [
            b.room_number
            for b in db.query(Booking).filter(Booking.booking_status == BookingStatus.checked_in.value)
        ]
    finally:
        db.close()
    assert sorted(held) == list(range(1, ROOMS + 1))
