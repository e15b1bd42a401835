"""
Room allocation over a listing's fixed room pool.

Rooms are plain integers ``1..total_rooms``; there are no room rows. Occupancy
is derived at decision time from the bookings whose stay overlaps the target
range and that already hold a room number. A new assignment always takes the
lowest free number, so the same booking set always yields the same answer.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from stayhub.core.config import settings
from stayhub.core.exceptions import NoRoomsAvailable, NotFound, ValidationFailed
from stayhub.models.apartment import Apartment
from stayhub.models.booking import Booking, BookingStatus
from stayhub.utils.dates import as_utc

logger = logging.getLogger(__name__)


@dataclass
class RoomOccupant:
    booking_id: UUID
    guest_name: str
    check_in: datetime
    check_out: datetime
    status: str


@dataclass
class RoomState:
    room_number: int
    is_occupied: bool
    occupant: Optional[RoomOccupant] = None


@dataclass
class RoomOccupancy:
    total_rooms: int
    available_rooms: int
    occupied_rooms: int
    rooms: List[RoomState] = field(default_factory=list)


def occupying_statuses() -> List[str]:
    """Booking statuses whose assigned room still counts as taken."""
    statuses = [BookingStatus.confirmed.value, BookingStatus.checked_in.value]
    if settings.COMPLETED_BOOKINGS_OCCUPY_ROOMS:
        statuses.append(BookingStatus.completed.value)
    return statuses


def ranges_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """
    Whether two stays overlap.

    Inclusive mode (the default) also treats touching ranges as overlapping:
    a stay ending on Jan 15 conflicts with one starting on Jan 15.
    """
    a_start, a_end, b_start, b_end = (as_utc(v) for v in (a_start, a_end, b_start, b_end))
    if settings.ROOM_OVERLAP_INCLUSIVE:
        return a_start <= b_end and a_end >= b_start
    return a_start < b_end and a_end > b_start


def _overlap_clause(check_in: datetime, check_out: datetime):
    # SQL counterpart of ranges_overlap()
    if settings.ROOM_OVERLAP_INCLUSIVE:
        return and_(Booking.check_in <= check_out, Booking.check_out >= check_in)
    return and_(Booking.check_in < check_out, Booking.check_out > check_in)


def first_free_room(total_rooms: int, occupied: Iterable[int]) -> Optional[int]:
    """Lowest room number in ``1..total_rooms`` not in ``occupied``, or None when full."""
    taken = [False] * (total_rooms + 1)
    for number in occupied:
        if number is not None and 1 <= number <= total_rooms:
            taken[number] = True
    for number in range(1, total_rooms + 1):
        if not taken[number]:
            return number
    return None


def _get_apartment(db: Session, apartment_id: UUID) -> Apartment:
    apartment = db.query(Apartment).filter(Apartment.id == apartment_id).first()
    if not apartment:
        raise NotFound("Apartment not found", apartment_id=apartment_id)
    return apartment


def overlapping_room_bookings(
    db: Session,
    apartment_id: UUID,
    check_in: datetime,
    check_out: datetime,
    exclude_booking_id: Optional[UUID] = None,
) -> List[Booking]:
    """Bookings on this listing that hold a room during any part of the range."""
    query = db.query(Booking).filter(
        Booking.apartment_id == apartment_id,
        _overlap_clause(check_in, check_out),
        Booking.booking_status.in_(occupying_statuses()),
        Booking.room_number.isnot(None),
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.order_by(Booking.room_number).all()


def find_available_room(
    db: Session,
    apartment_id: UUID,
    check_in: datetime,
    check_out: datetime,
    exclude_booking_id: Optional[UUID] = None,
) -> int:
    """
    Return the lowest-numbered room free for ``[check_in, check_out)``.

    Raises NotFound for an unknown listing and NoRoomsAvailable when every
    room is held by an overlapping booking. Nothing is persisted.
    """
    apartment = _get_apartment(db, apartment_id)

    overlapping = overlapping_room_bookings(db, apartment_id, check_in, check_out, exclude_booking_id)
    occupied = {b.room_number for b in overlapping}
    logger.debug(
        "Apartment %s: %d overlapping booking(s), occupied rooms %s",
        apartment_id, len(overlapping), sorted(occupied),
    )

    room = first_free_room(apartment.total_rooms, occupied)
    if room is None:
        logger.info("Apartment %s: all %d rooms occupied", apartment_id, apartment.total_rooms)
        raise NoRoomsAvailable(apartment.total_rooms)
    return room


def compute_occupancy(db: Session, apartment_id: UUID, check_in: datetime, check_out: datetime) -> RoomOccupancy:
    """Per-room status for the owner-facing room view. Read-only."""
    apartment = _get_apartment(db, apartment_id)

    by_room: Dict[int, RoomOccupant] = {}
    for booking in overlapping_room_bookings(db, apartment_id, check_in, check_out):
        if not 1 <= booking.room_number <= apartment.total_rooms:
            continue
        by_room[booking.room_number] = RoomOccupant(
            booking_id=booking.id,
            guest_name=booking.guest_name,
            check_in=booking.check_in,
            check_out=booking.check_out,
            status=booking.booking_status,
        )

    rooms = [
        RoomState(room_number=n, is_occupied=n in by_room, occupant=by_room.get(n))
        for n in range(1, apartment.total_rooms + 1)
    ]
    return RoomOccupancy(
        total_rooms=apartment.total_rooms,
        available_rooms=apartment.total_rooms - len(by_room),
        occupied_rooms=len(by_room),
        rooms=rooms,
    )


def highest_held_room(db: Session, apartment_id: UUID) -> int:
    """Highest room number held by a confirmed or checked-in booking, 0 if none."""
    highest = (
        db.query(func.max(Booking.room_number))
        .filter(
            Booking.apartment_id == apartment_id,
            Booking.room_number.isnot(None),
            Booking.booking_status.in_([BookingStatus.confirmed.value, BookingStatus.checked_in.value]),
        )
        .scalar()
    )
    return highest or 0


def ensure_room_count_fits(db: Session, apartment: Apartment, total_rooms: int) -> None:
    """Refuse to shrink a listing below a room a live booking still holds."""
    held = highest_held_room(db, apartment.id)
    if total_rooms < held:
        raise ValidationFailed(
            f"Room {held} is held by an active booking; total rooms cannot go below {held}",
            total_rooms=total_rooms,
            highest_held_room=held,
        )
