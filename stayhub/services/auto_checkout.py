import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from stayhub.core.config import settings
from stayhub.models.booking import Booking, BookingStatus
from stayhub.services import booking_lifecycle, notifications
from stayhub.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)


def _checked_in_with_room(db: Session):
    return (
        db.query(Booking)
        .options(joinedload(Booking.apartment))
        .filter(
            Booking.booking_status == BookingStatus.checked_in.value,
            Booking.room_number.isnot(None),
        )
    )


def run_auto_checkout_pass(db: Session, now: Optional[datetime] = None) -> int:
    """
    Force checkout of every checked-in booking whose check-out has passed.

    Each booking is processed on its own: a failure is rolled back and
    logged and the rest of the batch continues. Safe to call repeatedly.
    Returns the number of bookings checked out.
    """
    now = now or utcnow()
    expired = (
        _checked_in_with_room(db)
        .filter(Booking.check_out <= now)
        .order_by(Booking.check_out)
        .all()
    )

    processed = 0
    for booking in expired:
        booking_id = booking.id
        try:
            booking_lifecycle.auto_checkout(db, booking, now=now)
            processed += 1
        except Exception:
            db.rollback()
            logger.exception("Error auto checking out booking %s", booking_id)

    if processed:
        logger.info("Auto checkout completed: %d booking(s) checked out.", processed)
    return processed


def get_upcoming_checkouts(db: Session, now: Optional[datetime] = None, hours_ahead: Optional[int] = None) -> List[Booking]:
    """Checked-in bookings due to check out between now and ``hours_ahead`` hours from now."""
    now = now or utcnow()
    if hours_ahead is None:
        hours_ahead = settings.OWNER_REMINDER_HOURS_AHEAD
    return (
        _checked_in_with_room(db)
        .filter(Booking.check_out >= now, Booking.check_out <= now + timedelta(hours=hours_ahead))
        .order_by(Booking.check_out)
        .all()
    )


def send_owner_checkout_reminders(db: Session, now: Optional[datetime] = None) -> int:
    """Tell owners about guests checking out in the next few hours. One reminder per booking."""
    now = now or utcnow()
    sent = 0
    for booking in get_upcoming_checkouts(db, now):
        booking_id = booking.id
        try:
            apartment = booking.apartment
            if notifications.already_notified(db, apartment.owner_id, booking.id, "booking_reminder"):
                continue
            checkout_at = as_utc(booking.check_out).strftime("%b %d, %Y %H:%M")
            notifications.create_notification(
                db,
                user_id=apartment.owner_id,
                type="booking_reminder",
                title="Upcoming Guest Checkout",
                message=(
                    f"{booking.guest_name} in Room {booking.room_number} is scheduled "
                    f"to check out at {checkout_at} UTC"
                ),
                booking_id=booking.id,
                apartment_id=apartment.id,
                guest_name=booking.guest_name,
                room_number=booking.room_number,
                priority="low",
            )
            db.commit()
            sent += 1
        except Exception:
            db.rollback()
            logger.exception("Error sending checkout reminder for booking %s", booking_id)
    return sent


def send_guest_checkout_reminders(db: Session, now: Optional[datetime] = None) -> int:
    """Countdown reminder to guests whose check-out is 30 to 60 minutes away. One per booking."""
    now = now or utcnow()
    window_start = now + timedelta(minutes=settings.GUEST_REMINDER_MIN_MINUTES)
    window_end = now + timedelta(minutes=settings.GUEST_REMINDER_MAX_MINUTES)
    upcoming = (
        _checked_in_with_room(db)
        .filter(Booking.check_out >= window_start, Booking.check_out <= window_end)
        .all()
    )

    sent = 0
    for booking in upcoming:
        booking_id = booking.id
        try:
            if notifications.already_notified(db, booking.guest_id, booking.id, "checkout_reminder"):
                continue
            checkout_at = as_utc(booking.check_out)
            minutes_left = round((checkout_at - now).total_seconds() / 60)
            notifications.create_notification(
                db,
                user_id=booking.guest_id,
                type="checkout_reminder",
                title="Checkout Reminder",
                message=(
                    f"Your checkout time is approaching! You need to check out in {minutes_left} minutes "
                    f"({checkout_at.strftime('%H:%M')} UTC) from {booking.apartment.title}"
                    f"{f' - Room {booking.room_number}' if booking.room_number else ''}."
                ),
                booking_id=booking.id,
                apartment_id=booking.apartment_id,
                guest_name=booking.guest_name,
                room_number=booking.room_number,
                priority="high",
            )
            db.commit()
            sent += 1
        except Exception:
            db.rollback()
            logger.exception("Error sending guest checkout reminder for booking %s", booking_id)
    return sent
