"""
Booking lifecycle: creation, check-in, checkout, cancellation.

State machine::

    confirmed --> checked-in --> completed
        |              |
        v              v
    cancelled       no_show

``completed``, ``cancelled`` and ``no_show`` are terminal. The booking row is
the source of truth: every transition is committed before its side effects
are published on the event bus, and a failing side effect never undoes it.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from stayhub.core.config import settings
from stayhub.core.exceptions import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    AlreadyTerminal,
    InvalidStatusTransition,
    NotAuthorized,
    NotCheckedIn,
    NotFound,
    TooLateToCancel,
    ValidationFailed,
)
from stayhub.models.apartment import Apartment
from stayhub.models.booking import Booking, BookingStatus, PaymentStatus, TERMINAL_STATUSES
from stayhub.models.user import User, UserStatus
from stayhub.services import room_allocator
from stayhub.services import side_effects  # noqa: F401  registers event handlers
from stayhub.services.events import (
    BookingCancelled,
    BookingCheckedIn,
    BookingCheckedOut,
    BookingCreated,
    BookingPaid,
    event_bus,
)
from stayhub.services.locks import apartment_lock
from stayhub.utils.dates import as_utc, count_nights, utcnow
from stayhub.utils.tickets import make_unique_ticket_code

logger = logging.getLogger(__name__)

ADMIN_PAYMENT_STATUSES = (PaymentStatus.paid, PaymentStatus.failed, PaymentStatus.refunded)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_booking(db: Session, booking_id: UUID, for_update: bool = False) -> Booking:
    query = db.query(Booking).filter(Booking.id == booking_id)
    if for_update:
        query = query.with_for_update()
    booking = query.first()
    if not booking:
        raise NotFound("Booking not found", booking_id=booking_id)
    return booking


def is_listing_owner(actor: User, apartment: Apartment) -> bool:
    return apartment is not None and apartment.owner_id == actor.id


def _require_owner_or_admin(actor: User, apartment: Apartment) -> None:
    if not actor.is_admin and not is_listing_owner(actor, apartment):
        raise NotAuthorized("Not authorized to update this booking")


def _ensure_owner_accepts_bookings(db: Session, apartment: Apartment) -> None:
    """Bookings need an active owner with a verified payout account."""
    owner = db.query(User).filter(User.id == apartment.owner_id).first()
    if not owner:
        raise ValidationFailed("Property owner information not found. Please contact support.")
    if owner.status == UserStatus.suspended:
        raise ValidationFailed(
            "This property is temporarily unavailable for booking. Please try another property."
        )
    if not owner.payment_account_verified:
        raise ValidationFailed(
            "This property owner has not set up their payment account yet. "
            "Bookings are not available for this property."
        )
    if owner.payment_provider == "paystack" and not owner.payment_subaccount_code:
        raise ValidationFailed(
            "This property owner has incomplete payment setup. "
            "Bookings are not available for this property."
        )


def _initial_payment_status(payment_status: Optional[str], payment_reference: Optional[str]) -> str:
    if payment_status is None:
        return (PaymentStatus.pending if payment_reference else PaymentStatus.not_required).value
    # Payment provider callbacks report a successful charge as "completed"
    if payment_status == "completed":
        return PaymentStatus.paid.value
    try:
        return PaymentStatus(payment_status).value
    except ValueError:
        raise ValidationFailed(f"Invalid payment status '{payment_status}'") from None


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def create_booking(
    db: Session,
    guest: User,
    apartment_id: UUID,
    check_in: datetime,
    check_out: datetime,
    guests: int,
    special_requests: Optional[str] = None,
    payment_reference: Optional[str] = None,
    payment_status: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Reserve a stay. The booking starts ``confirmed`` without a room number:
    rooms are assigned at check-in, but a room must be free for the range
    right now or the reservation is refused with NoRoomsAvailable.
    """
    now = now or utcnow()
    check_in, check_out = as_utc(check_in), as_utc(check_out)

    apartment = db.query(Apartment).filter(Apartment.id == apartment_id).first()
    if not apartment:
        raise NotFound("Apartment not found", apartment_id=apartment_id)
    if not apartment.is_active or apartment.status != "active":
        raise ValidationFailed("Apartment is not available")

    _ensure_owner_accepts_bookings(db, apartment)

    if settings.REQUIRE_GUEST_IDENTITY_VERIFICATION and not guest.identity_verified:
        raise ValidationFailed("You must complete identity verification before making bookings")

    if check_in.date() < now.date():
        raise ValidationFailed("Check-in date cannot be in the past")
    if check_out <= check_in:
        raise ValidationFailed("Check-out date must be after check-in date")
    if not 1 <= guests <= settings.MAX_GUESTS:
        raise ValidationFailed(f"Number of guests must be between 1 and {settings.MAX_GUESTS}")

    # Availability check only; the number is not kept
    room_allocator.find_available_room(db, apartment.id, check_in, check_out)

    total_amount = Decimal(count_nights(check_in, check_out)) * Decimal(apartment.price)

    booking = Booking(
        apartment_id=apartment.id,
        guest_id=guest.id,
        guest_name=guest.full_name,
        guest_email=guest.email,
        check_in=check_in,
        check_out=check_out,
        guests=guests,
        total_amount=total_amount,
        payment_status=_initial_payment_status(payment_status, payment_reference),
        payment_reference=payment_reference,
        booking_status=BookingStatus.confirmed.value,
        ticket_code=make_unique_ticket_code(db),
        special_requests=special_requests,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    logger.info("Booking %s (%s) created for apartment %s", booking.id, booking.ticket_code, apartment.id)

    event_bus.publish(db, [BookingCreated(booking_id=booking.id)])
    return booking


# ---------------------------------------------------------------------------
# Check-in
# ---------------------------------------------------------------------------


def check_in(db: Session, booking_id: UUID, actor: User, now: Optional[datetime] = None) -> Booking:
    """
    Check a guest in and assign the lowest free room.

    Occupancy read and room write happen inside one critical section per
    listing, so two concurrent check-ins can never take the same room.
    A second call on a checked-in booking raises AlreadyCheckedIn with the
    room it already holds.
    """
    now = now or utcnow()
    booking = _get_booking(db, booking_id)
    _require_owner_or_admin(actor, booking.apartment)
    apartment_id = booking.apartment_id

    with apartment_lock(apartment_id):
        try:
            db.query(Apartment).filter(Apartment.id == apartment_id).with_for_update().first()
            booking = (
                db.query(Booking)
                .filter(Booking.id == booking_id)
                .populate_existing()
                .with_for_update()
                .first()
            )

            if booking.booking_status == BookingStatus.checked_in:
                raise AlreadyCheckedIn(booking.guest_name, booking.room_number, booking.check_in_time)
            if booking.booking_status != BookingStatus.confirmed:
                raise InvalidStatusTransition(booking.booking_status, BookingStatus.checked_in.value)

            if booking.room_number is None:
                booking.room_number = room_allocator.find_available_room(
                    db, apartment_id, booking.check_in, booking.check_out, exclude_booking_id=booking.id
                )
            if booking.check_in_time is None:
                booking.check_in_time = now
            booking.booking_status = BookingStatus.checked_in.value
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(booking)
    logger.info("Booking %s checked in to room %s", booking.id, booking.room_number)

    event_bus.publish(db, [BookingCheckedIn(booking_id=booking.id)])
    return booking


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


def _complete_stay(db: Session, booking: Booking, checkout_time: datetime, checked_out_by: str) -> Booking:
    if booking.check_out_time is not None:
        raise AlreadyCheckedOut(booking.check_out_time)
    if booking.booking_status != BookingStatus.checked_in:
        raise NotCheckedIn(booking.booking_status)

    booking.booking_status = BookingStatus.completed.value
    booking.check_out_time = checkout_time
    db.commit()
    db.refresh(booking)
    logger.info("Booking %s checked out (%s)", booking.id, checked_out_by)

    event_bus.publish(db, [BookingCheckedOut(booking_id=booking.id, checked_out_by=checked_out_by)])
    return booking


def checkout(db: Session, booking_id: UUID, actor: User, now: Optional[datetime] = None) -> Booking:
    """Self-checkout by the guest, or checkout by the listing owner or an admin."""
    booking = _get_booking(db, booking_id, for_update=True)
    if actor.id == booking.guest_id:
        checked_out_by = "guest"
    elif actor.is_admin:
        checked_out_by = "admin"
    elif is_listing_owner(actor, booking.apartment):
        checked_out_by = "owner"
    else:
        raise NotAuthorized("You can only check out your own bookings")
    return _complete_stay(db, booking, now or utcnow(), checked_out_by)


def auto_checkout(db: Session, booking: Booking, now: Optional[datetime] = None) -> Booking:
    """System checkout of an overdue stay, stamped now (or at the scheduled check-out when backdating)."""
    now = now or utcnow()
    stamp = as_utc(booking.check_out) if settings.AUTO_CHECKOUT_BACKDATE else now
    return _complete_stay(db, booking, stamp, "auto")


# ---------------------------------------------------------------------------
# Cancel / no-show
# ---------------------------------------------------------------------------


def cancel(db: Session, booking_id: UUID, actor: User, now: Optional[datetime] = None) -> Booking:
    """
    Cancel a confirmed booking at least CANCELLATION_LEAD_HOURS before check-in.

    Nothing needs releasing: a confirmed booking holds no room number, and
    occupancy is recomputed from live bookings anyway.
    """
    now = now or utcnow()
    booking = _get_booking(db, booking_id, for_update=True)

    if booking.guest_id != actor.id and not actor.is_admin:
        raise NotAuthorized("Not authorized to cancel this booking")
    if booking.booking_status in TERMINAL_STATUSES:
        raise AlreadyTerminal(booking.booking_status)
    if booking.booking_status != BookingStatus.confirmed:
        raise InvalidStatusTransition(booking.booking_status, BookingStatus.cancelled.value)

    hours_until_check_in = (as_utc(booking.check_in) - now).total_seconds() / 3600
    if hours_until_check_in < settings.CANCELLATION_LEAD_HOURS:
        raise TooLateToCancel(hours_until_check_in, settings.CANCELLATION_LEAD_HOURS)

    booking.booking_status = BookingStatus.cancelled.value
    booking.cancelled_at = now
    db.commit()
    db.refresh(booking)
    logger.info("Booking %s cancelled", booking.id)

    event_bus.publish(db, [BookingCancelled(booking_id=booking.id)])
    return booking


def mark_no_show(db: Session, booking_id: UUID, actor: User) -> Booking:
    booking = _get_booking(db, booking_id, for_update=True)
    _require_owner_or_admin(actor, booking.apartment)
    if booking.booking_status != BookingStatus.checked_in:
        raise InvalidStatusTransition(booking.booking_status, BookingStatus.no_show.value)

    booking.booking_status = BookingStatus.no_show.value
    db.commit()
    db.refresh(booking)
    logger.info("Booking %s marked as no-show", booking.id)
    return booking


def update_status(
    db: Session,
    booking_id: UUID,
    target: str,
    actor: User,
    now: Optional[datetime] = None,
) -> Booking:
    """Owner/admin status action, routed to the matching transition."""
    if target == BookingStatus.checked_in:
        return check_in(db, booking_id, actor, now=now)
    if target == BookingStatus.completed:
        booking = _get_booking(db, booking_id)
        _require_owner_or_admin(actor, booking.apartment)
        return checkout(db, booking_id, actor, now=now)
    if target == BookingStatus.cancelled:
        return cancel(db, booking_id, actor, now=now)
    if target == BookingStatus.no_show:
        return mark_no_show(db, booking_id, actor)
    raise ValidationFailed(f"Invalid booking status '{target}'")


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------


def update_payment_status(db: Session, booking_id: UUID, payment_status: str) -> Booking:
    """Admin payment reconciliation. A booking turning paid gets its commission."""
    if payment_status not in ADMIN_PAYMENT_STATUSES:
        raise ValidationFailed("Invalid payment status")

    booking = _get_booking(db, booking_id, for_update=True)
    became_paid = payment_status == PaymentStatus.paid and booking.payment_status != PaymentStatus.paid
    booking.payment_status = payment_status
    db.commit()
    db.refresh(booking)

    if became_paid:
        event_bus.publish(db, [BookingPaid(booking_id=booking.id)])
    return booking
