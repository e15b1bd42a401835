"""Best-effort collaborators fired after booking transitions."""
from sqlalchemy.orm import Session

from stayhub.core.exceptions import NotFound
from stayhub.models.booking import Booking, PaymentStatus
from stayhub.services import chats, commissions, notifications
from stayhub.services.events import (
    BookingCancelled,
    BookingCheckedIn,
    BookingCheckedOut,
    BookingCreated,
    BookingEvent,
    BookingPaid,
    event_bus,
)
from stayhub.utils.dates import as_utc


def _load_booking(db: Session, event: BookingEvent) -> Booking:
    booking = db.query(Booking).filter(Booking.id == event.booking_id).first()
    if not booking:
        raise NotFound("Booking not found", booking_id=event.booking_id)
    return booking


def _fmt_day(value) -> str:
    return as_utc(value).strftime("%b %d, %Y")


def _room_suffix(booking: Booking) -> str:
    return f" - Room {booking.room_number}" if booking.room_number else ""


# ---------------------------------------------------------------------------
# Commission ledger
# ---------------------------------------------------------------------------


@event_bus.subscribe(BookingCreated)
@event_bus.subscribe(BookingPaid)
def record_commission(db: Session, event: BookingEvent) -> None:
    booking = _load_booking(db, event)
    if booking.payment_status != PaymentStatus.paid:
        return
    commissions.create_commission_for_booking(db, booking)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


@event_bus.subscribe(BookingCreated)
def notify_admins_new_booking(db: Session, event: BookingEvent) -> None:
    booking = _load_booking(db, event)
    apartment = booking.apartment
    owner_name = apartment.owner.full_name if apartment.owner else "Unknown owner"
    notifications.notify_admins(
        db,
        type="new_booking",
        title="New Booking Created",
        message=(
            f"{booking.guest_name} booked \"{apartment.title}\" (owner: {owner_name}) "
            f"from {_fmt_day(booking.check_in)} to {_fmt_day(booking.check_out)}. "
            f"Ticket {booking.ticket_code}."
        ),
        booking_id=booking.id,
        apartment_id=apartment.id,
        guest_name=booking.guest_name,
        priority="medium",
    )


@event_bus.subscribe(BookingCreated)
def notify_owner_new_booking(db: Session, event: BookingEvent) -> None:
    booking = _load_booking(db, event)
    apartment = booking.apartment
    notifications.create_notification(
        db,
        user_id=apartment.owner_id,
        type="new_booking",
        title="New Booking Received!",
        message=(
            f"{booking.guest_name} has booked your apartment \"{apartment.title}\"{_room_suffix(booking)} "
            f"from {_fmt_day(booking.check_in)} to {_fmt_day(booking.check_out)}"
        ),
        booking_id=booking.id,
        apartment_id=apartment.id,
        guest_name=booking.guest_name,
        priority="high",
    )


@event_bus.subscribe(BookingCheckedIn)
def notify_guest_checked_in(db: Session, event: BookingEvent) -> None:
    booking = _load_booking(db, event)
    notifications.create_notification(
        db,
        user_id=booking.guest_id,
        type="booking_checked_in",
        title="Checked In",
        message=f"You are checked in to {booking.apartment.title}{_room_suffix(booking)}. Enjoy your stay!",
        booking_id=booking.id,
        apartment_id=booking.apartment_id,
        guest_name=booking.guest_name,
        room_number=booking.room_number,
    )


@event_bus.subscribe(BookingCheckedOut)
def notify_owner_checkout(db: Session, event: BookingCheckedOut) -> None:
    # Owners act on their own checkouts; only guest and system checkouts are news to them
    if event.checked_out_by not in ("guest", "auto"):
        return
    booking = _load_booking(db, event)
    apartment = booking.apartment
    if event.checked_out_by == "auto":
        title = "Guest Auto Check-Out"
        message = (
            f"{booking.guest_name} has been automatically checked out from "
            f"Room {booking.room_number}. Booking period ended."
        )
    else:
        title = "Guest Self-Checkout"
        message = (
            f"{booking.guest_name} has checked out from {apartment.title}{_room_suffix(booking)} "
            f"at {as_utc(booking.check_out_time).strftime('%b %d, %Y %H:%M')} UTC."
        )
    notifications.create_notification(
        db,
        user_id=apartment.owner_id,
        type="auto_checkout",
        title=title,
        message=message,
        booking_id=booking.id,
        apartment_id=apartment.id,
        guest_name=booking.guest_name,
        room_number=booking.room_number,
        priority="medium",
    )


@event_bus.subscribe(BookingPaid)
def notify_owner_payment_received(db: Session, event: BookingEvent) -> None:
    booking = _load_booking(db, event)
    apartment = booking.apartment
    notifications.create_notification(
        db,
        user_id=apartment.owner_id,
        type="payment_received",
        title="Payment Received",
        message=(
            f"Payment of {booking.total_amount} received for {booking.guest_name}'s stay at "
            f"\"{apartment.title}\" ({_fmt_day(booking.check_in)} - {_fmt_day(booking.check_out)})."
        ),
        booking_id=booking.id,
        apartment_id=apartment.id,
        guest_name=booking.guest_name,
        priority="medium",
    )


@event_bus.subscribe(BookingCancelled)
def notify_owner_cancelled(db: Session, event: BookingEvent) -> None:
    booking = _load_booking(db, event)
    apartment = booking.apartment
    notifications.create_notification(
        db,
        user_id=apartment.owner_id,
        type="booking_cancelled",
        title="Booking Cancelled",
        message=(
            f"{booking.guest_name} cancelled the booking for \"{apartment.title}\" "
            f"({_fmt_day(booking.check_in)} - {_fmt_day(booking.check_out)}). Ticket {booking.ticket_code}."
        ),
        booking_id=booking.id,
        apartment_id=apartment.id,
        guest_name=booking.guest_name,
        priority="medium",
    )


# ---------------------------------------------------------------------------
# Chat channels
# ---------------------------------------------------------------------------


@event_bus.subscribe(BookingCreated)
def open_booking_chat(db: Session, event: BookingEvent) -> None:
    chats.get_or_create_chat(db, _load_booking(db, event))


@event_bus.subscribe(BookingCheckedIn)
def sync_chat_room_number(db: Session, event: BookingEvent) -> None:
    chats.set_room_number(db, _load_booking(db, event))


@event_bus.subscribe(BookingCancelled)
def close_booking_chat(db: Session, event: BookingEvent) -> None:
    chats.deactivate_chat(db, event.booking_id)
