from uuid import UUID
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from stayhub.db.session import get_db
from stayhub.api.deps import get_current_user, get_current_owner_or_admin
from stayhub.models.user import User
from stayhub.models.booking import Booking
from stayhub.models.apartment import Apartment
from stayhub.schemas.booking import (
    BookingCreate,
    Booking as BookingSchema,
    BookingStatusUpdate,
    CheckoutResponse,
)
from stayhub.schemas.common import PaginatedResponse, NoRoomsAvailableError, AlreadyCheckedInError
from stayhub.services import booking_lifecycle
from stayhub.utils.dates import as_utc, stay_instant

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_booking(booking_id: UUID, db: Session) -> Optional[Booking]:
    """Load a booking with its apartment eager-loaded."""
    return (
        db.query(Booking)
        .options(joinedload(Booking.apartment))
        .filter(Booking.id == booking_id)
        .first()
    )


def _can_view(booking: Booking, user: User) -> bool:
    return (
        booking.guest_id == user.id
        or user.is_admin
        or booking_lifecycle.is_listing_owner(user, booking.apartment)
    )


def _page(query, page: int, limit: int) -> PaginatedResponse[BookingSchema]:
    total = query.count()
    bookings = (
        query.options(joinedload(Booking.apartment))
        .order_by(Booking.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return PaginatedResponse(
        data=bookings,
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


# ---------------------------------------------------------------------------
# POST /bookings — reserve a stay
# ---------------------------------------------------------------------------


@router.post(
    "/",
    response_model=BookingSchema,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": NoRoomsAvailableError}},
)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Reserve an apartment for a date range.

    - Dates are calendar days; each means that day at the configured check-in hour (UTC).
    - Fails with **no_rooms_available** when every room is taken for the range.
    - No room number is assigned until check-in.
    """
    booking = booking_lifecycle.create_booking(
        db,
        guest=current_user,
        apartment_id=data.apartment_id,
        check_in=stay_instant(data.check_in),
        check_out=stay_instant(data.check_out),
        guests=data.guests,
        special_requests=data.special_requests,
        payment_reference=data.payment_reference,
        payment_status=data.payment_status,
    )
    return _load_booking(booking.id, db)


# ---------------------------------------------------------------------------
# GET /bookings/my — guest's own bookings
# ---------------------------------------------------------------------------


@router.get("/my", response_model=PaginatedResponse[BookingSchema])
def list_my_bookings(
    booking_status: Optional[str] = Query(None, description="Filter by booking status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Return the current user's bookings, newest first."""
    query = db.query(Booking).filter(Booking.guest_id == current_user.id)
    if booking_status:
        query = query.filter(Booking.booking_status == booking_status)
    return _page(query, page, limit)


# ---------------------------------------------------------------------------
# GET /bookings/owner — bookings across the owner's apartments
# ---------------------------------------------------------------------------


@router.get("/owner", response_model=PaginatedResponse[BookingSchema])
def list_owner_bookings(
    booking_status: Optional[str] = Query(None, description="Filter by booking status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_owner_or_admin),
):
    query = db.query(Booking).join(Apartment, Booking.apartment_id == Apartment.id).filter(
        Apartment.owner_id == current_user.id
    )
    if booking_status:
        query = query.filter(Booking.booking_status == booking_status)
    return _page(query, page, limit)


# ---------------------------------------------------------------------------
# GET /bookings/ticket/{code} — front-desk lookup by ticket code
# ---------------------------------------------------------------------------


@router.get("/ticket/{ticket_code}", response_model=BookingSchema)
def get_booking_by_ticket(
    ticket_code: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = (
        db.query(Booking)
        .options(joinedload(Booking.apartment))
        .filter(Booking.ticket_code == ticket_code.upper())
        .first()
    )
    if not booking or not _can_view(booking, current_user):
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


# ---------------------------------------------------------------------------
# GET /bookings/{id}
# ---------------------------------------------------------------------------


@router.get("/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Return a booking visible to its guest, the listing owner or an admin."""
    booking = _load_booking(booking_id, db)
    if not booking or not _can_view(booking, current_user):
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


# ---------------------------------------------------------------------------
# PATCH /bookings/{id}/cancel
# ---------------------------------------------------------------------------


@router.patch("/{booking_id}/cancel", response_model=BookingSchema)
def cancel_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Cancel a confirmed booking.

    - Only the guest (or an admin) may cancel.
    - Refused with **too_late_to_cancel** inside the cancellation lead time.
    """
    booking = booking_lifecycle.cancel(db, booking_id, current_user)
    return _load_booking(booking.id, db)


# ---------------------------------------------------------------------------
# PATCH /bookings/{id}/status — owner/admin actions (check-in, complete, no-show)
# ---------------------------------------------------------------------------


@router.patch(
    "/{booking_id}/status",
    response_model=BookingSchema,
    responses={400: {"model": AlreadyCheckedInError}},
)
def update_booking_status(
    booking_id: UUID,
    data: BookingStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Move a booking through its lifecycle.

    `checked-in` assigns the lowest free room; repeating it returns
    **already_checked_in** with the room the guest already holds.
    """
    booking = booking_lifecycle.update_status(db, booking_id, data.status, current_user)
    return _load_booking(booking.id, db)


# ---------------------------------------------------------------------------
# POST /bookings/{id}/checkout
# ---------------------------------------------------------------------------


@router.post("/{booking_id}/checkout", response_model=CheckoutResponse)
def checkout_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Check out of a stay. Leaving before the scheduled date is an early checkout."""
    booking = booking_lifecycle.checkout(db, booking_id, current_user)
    return CheckoutResponse(
        id=booking.id,
        apartment_title=booking.apartment.title,
        room_number=booking.room_number,
        check_out_time=booking.check_out_time,
        booking_status=booking.booking_status,
        original_check_out=booking.check_out,
        early_checkout=as_utc(booking.check_out_time) < as_utc(booking.check_out),
    )
