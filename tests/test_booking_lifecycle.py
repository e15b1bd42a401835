import re
from datetime import timedelta
from decimal import Decimal

import pytest

from stayhub.core.config import settings
from stayhub.core.exceptions import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    AlreadyTerminal,
    InvalidStatusTransition,
    NoRoomsAvailable,
    NotAuthorized,
    NotCheckedIn,
    TooLateToCancel,
    ValidationFailed,
)
from stayhub.models.booking import BookingStatus, PaymentStatus
from stayhub.models.chat import Chat
from stayhub.models.commission import Commission
from stayhub.models.notification import Notification
from stayhub.models.user import UserStatus
from stayhub.services import booking_lifecycle, side_effects

from helpers import at_noon


@pytest.fixture
def book(db, guest, now):
    """Create a booking through the lifecycle manager."""
    def _book(apartment, check_in, check_out, who=None, **kwargs):
        kwargs.setdefault("guests", 1)
        return booking_lifecycle.create_booking(
            db, who or guest, apartment.id, check_in, check_out, now=now, **kwargs
        )
    return _book


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def test_create_booking_is_confirmed_without_room(book, apartment):
    booking = book(apartment, at_noon(10), at_noon(13))

    assert booking.booking_status == BookingStatus.confirmed.value
    assert booking.room_number is None
    assert booking.check_in_time is None
    assert re.fullmatch(r"[A-Z0-9]{8}", booking.ticket_code)
    assert booking.total_amount == Decimal("300.00")
    assert booking.payment_status == PaymentStatus.not_required.value


def test_create_booking_rejects_past_check_in(book, apartment, now):
    with pytest.raises(ValidationFailed):
        book(apartment, now - timedelta(days=2), now + timedelta(days=1))


def test_create_booking_rejects_guest_count_out_of_range(book, apartment):
    with pytest.raises(ValidationFailed):
        book(apartment, at_noon(10), at_noon(12), guests=settings.MAX_GUESTS + 1)
    with pytest.raises(ValidationFailed):
        book(apartment, at_noon(10), at_noon(12), guests=0)


def test_create_booking_requires_verified_owner_payout(db, book, apartment, owner):
    owner.payment_account_verified = False
    db.commit()

    with pytest.raises(ValidationFailed, match="payment account"):
        book(apartment, at_noon(10), at_noon(12))


def test_create_booking_refused_for_suspended_owner(db, book, apartment, owner):
    owner.status = UserStatus.suspended.value
    db.commit()

    with pytest.raises(ValidationFailed, match="temporarily unavailable"):
        book(apartment, at_noon(10), at_noon(12))


def test_create_booking_refused_for_inactive_apartment(db, book, apartment):
    apartment.is_active = False
    db.commit()

    with pytest.raises(ValidationFailed):
        book(apartment, at_noon(10), at_noon(12))


def test_identity_verification_gate(book, apartment, monkeypatch):
    monkeypatch.setattr(settings, "REQUIRE_GUEST_IDENTITY_VERIFICATION", True)

    with pytest.raises(ValidationFailed, match="identity verification"):
        book(apartment, at_noon(10), at_noon(12))


def test_create_booking_fails_when_all_rooms_held(book, make_apartment, make_booking):
    apartment = make_apartment(total_rooms=1)
    make_booking(apartment, at_noon(9), at_noon(12), status=BookingStatus.checked_in.value, room_number=1)

    with pytest.raises(NoRoomsAvailable) as exc_info:
        book(apartment, at_noon(10), at_noon(11))
    assert exc_info.value.total_rooms == 1


def test_create_booking_notifies_owner_and_admins_and_opens_chat(db, book, apartment, owner, admin, guest):
    booking = book(apartment, at_noon(10), at_noon(12))

    owner_notes = db.query(Notification).filter(Notification.user_id == owner.id).all()
    admin_notes = db.query(Notification).filter(Notification.user_id == admin.id).all()
    assert [n.type for n in owner_notes] == ["new_booking"]
    assert owner_notes[0].priority == "high"
    assert [n.type for n in admin_notes] == ["new_booking"]

    chat = db.query(Chat).filter(Chat.booking_id == booking.id).one()
    assert chat.owner_id == owner.id
    assert chat.renter_id == guest.id
    assert chat.is_active


def test_failing_side_effect_does_not_fail_booking(db, book, apartment, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr(side_effects.notifications, "create_notification", boom)

    booking = book(apartment, at_noon(10), at_noon(12))

    db.expire_all()
    assert booking.booking_status == BookingStatus.confirmed.value
    # Other handlers still ran
    assert db.query(Chat).filter(Chat.booking_id == booking.id).count() == 1


# ---------------------------------------------------------------------------
# Commission
# ---------------------------------------------------------------------------


def test_paid_booking_records_commission(db, book, apartment):
    booking = book(apartment, at_noon(10), at_noon(12), payment_reference="ps_123", payment_status="completed")

    assert booking.payment_status == PaymentStatus.paid.value
    commission = db.query(Commission).filter(Commission.booking_id == booking.id).one()
    assert commission.amount == Decimal("10.00")
    assert commission.owner_id == apartment.owner_id
    assert commission.status == "pending"


def test_unpaid_booking_has_no_commission_until_paid(db, book, apartment, owner):
    booking = book(apartment, at_noon(10), at_noon(12), payment_reference="ps_456")
    assert booking.payment_status == PaymentStatus.pending.value
    assert db.query(Commission).count() == 0

    booking_lifecycle.update_payment_status(db, booking.id, PaymentStatus.paid.value)
    booking_lifecycle.update_payment_status(db, booking.id, PaymentStatus.paid.value)

    assert db.query(Commission).filter(Commission.booking_id == booking.id).count() == 1
    assert db.query(Notification).filter(
        Notification.user_id == owner.id, Notification.type == "payment_received"
    ).count() == 1


def test_invalid_payment_status_is_rejected(db, book, apartment):
    booking = book(apartment, at_noon(10), at_noon(12))
    with pytest.raises(ValidationFailed):
        booking_lifecycle.update_payment_status(db, booking.id, "pending")


# ---------------------------------------------------------------------------
# Check-in
# ---------------------------------------------------------------------------


def test_check_in_assigns_lowest_room(db, book, apartment, owner, now):
    booking = book(apartment, at_noon(10), at_noon(12))

    checked_in = booking_lifecycle.check_in(db, booking.id, owner, now=now)

    assert checked_in.booking_status == BookingStatus.checked_in.value
    assert checked_in.room_number == 1
    assert checked_in.check_in_time is not None


def test_check_in_twice_reports_existing_room(db, book, apartment, owner, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    booking_lifecycle.check_in(db, booking.id, owner, now=now)

    with pytest.raises(AlreadyCheckedIn) as exc_info:
        booking_lifecycle.check_in(db, booking.id, owner, now=now + timedelta(hours=1))

    assert exc_info.value.room_number == 1
    db.refresh(booking)
    assert booking.room_number == 1
    assert booking.booking_status == BookingStatus.checked_in.value


def test_guest_cannot_check_themselves_in(db, book, apartment, guest, now):
    booking = book(apartment, at_noon(10), at_noon(12))

    with pytest.raises(NotAuthorized):
        booking_lifecycle.check_in(db, booking.id, guest, now=now)


def test_admin_can_check_in(db, book, apartment, admin, now):
    booking = book(apartment, at_noon(10), at_noon(12))

    assert booking_lifecycle.check_in(db, booking.id, admin, now=now).room_number == 1


def test_check_in_updates_chat_and_notifies_guest(db, book, apartment, owner, guest, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    booking_lifecycle.check_in(db, booking.id, owner, now=now)

    chat = db.query(Chat).filter(Chat.booking_id == booking.id).one()
    assert chat.room_number == 1
    assert db.query(Notification).filter(
        Notification.user_id == guest.id, Notification.type == "booking_checked_in"
    ).count() == 1


def test_cancelled_booking_cannot_check_in(db, book, apartment, owner, guest, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    booking_lifecycle.cancel(db, booking.id, guest, now=now)

    with pytest.raises(InvalidStatusTransition):
        booking_lifecycle.check_in(db, booking.id, owner, now=now)


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


def test_guest_checkout_completes_stay(db, book, apartment, owner, guest, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    booking_lifecycle.check_in(db, booking.id, owner, now=now)

    done = booking_lifecycle.checkout(db, booking.id, guest, now=now + timedelta(hours=3))

    assert done.booking_status == BookingStatus.completed.value
    assert done.check_out_time is not None
    assert db.query(Notification).filter(
        Notification.user_id == owner.id, Notification.type == "auto_checkout"
    ).count() == 1


def test_checkout_is_terminal(db, book, apartment, owner, guest, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    booking_lifecycle.check_in(db, booking.id, owner, now=now)
    booking_lifecycle.checkout(db, booking.id, guest, now=now)

    with pytest.raises(AlreadyCheckedOut):
        booking_lifecycle.checkout(db, booking.id, guest, now=now)
    with pytest.raises(AlreadyTerminal):
        booking_lifecycle.cancel(db, booking.id, guest, now=now)


def test_checkout_requires_check_in(db, book, apartment, guest, now):
    booking = book(apartment, at_noon(10), at_noon(12))

    with pytest.raises(NotCheckedIn) as exc_info:
        booking_lifecycle.checkout(db, booking.id, guest, now=now)
    assert exc_info.value.current_status == BookingStatus.confirmed.value


def test_stranger_cannot_check_out(db, book, apartment, owner, make_user, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    booking_lifecycle.check_in(db, booking.id, owner, now=now)

    with pytest.raises(NotAuthorized):
        booking_lifecycle.checkout(db, booking.id, make_user(full_name="Someone Else"), now=now)


def test_owner_checkout_does_not_notify_owner(db, book, apartment, owner, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    booking_lifecycle.check_in(db, booking.id, owner, now=now)
    booking_lifecycle.checkout(db, booking.id, owner, now=now)

    assert db.query(Notification).filter(
        Notification.user_id == owner.id, Notification.type == "auto_checkout"
    ).count() == 0


# ---------------------------------------------------------------------------
# Cancel
# ---------------------------------------------------------------------------


def test_cancel_25_hours_before_check_in_succeeds(db, book, apartment, guest, owner):
    booking = book(apartment, at_noon(10), at_noon(12))
    now = at_noon(10) - timedelta(hours=25)

    cancelled = booking_lifecycle.cancel(db, booking.id, guest, now=now)

    assert cancelled.booking_status == BookingStatus.cancelled.value
    assert cancelled.cancelled_at is not None
    assert db.query(Notification).filter(
        Notification.user_id == owner.id, Notification.type == "booking_cancelled"
    ).count() == 1
    assert not db.query(Chat).filter(Chat.booking_id == booking.id).one().is_active


def test_cancel_23_hours_before_check_in_is_too_late(db, book, apartment, guest):
    booking = book(apartment, at_noon(10), at_noon(12))

    with pytest.raises(TooLateToCancel) as exc_info:
        booking_lifecycle.cancel(db, booking.id, guest, now=at_noon(10) - timedelta(hours=23))

    assert round(exc_info.value.hours_until_check_in) == 23
    db.refresh(booking)
    assert booking.booking_status == BookingStatus.confirmed.value


def test_only_guest_or_admin_may_cancel(db, book, apartment, owner, admin, now):
    booking = book(apartment, at_noon(10), at_noon(12))

    with pytest.raises(NotAuthorized):
        booking_lifecycle.cancel(db, booking.id, owner, now=now)
    assert booking_lifecycle.cancel(db, booking.id, admin, now=now).booking_status == "cancelled"


def test_checked_in_booking_cannot_be_cancelled(db, book, apartment, owner, guest, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    booking_lifecycle.check_in(db, booking.id, owner, now=now)

    with pytest.raises(InvalidStatusTransition):
        booking_lifecycle.cancel(db, booking.id, guest, now=now)


def test_cancel_twice_reports_terminal_state(db, book, apartment, guest, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    booking_lifecycle.cancel(db, booking.id, guest, now=now)

    with pytest.raises(AlreadyTerminal) as exc_info:
        booking_lifecycle.cancel(db, booking.id, guest, now=now)
    assert exc_info.value.current_status == BookingStatus.cancelled.value


# ---------------------------------------------------------------------------
# Owner/admin status actions
# ---------------------------------------------------------------------------


def test_update_status_routes_to_transitions(db, book, apartment, owner, now):
    booking = book(apartment, at_noon(10), at_noon(12))

    assert booking_lifecycle.update_status(db, booking.id, "checked-in", owner, now=now).room_number == 1
    done = booking_lifecycle.update_status(db, booking.id, "completed", owner, now=now)
    assert done.booking_status == BookingStatus.completed.value


def test_guest_cannot_mark_completed(db, book, apartment, owner, guest, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    booking_lifecycle.check_in(db, booking.id, owner, now=now)

    with pytest.raises(NotAuthorized):
        booking_lifecycle.update_status(db, booking.id, "completed", guest, now=now)


def test_no_show_only_after_check_in(db, book, apartment, owner, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    with pytest.raises(InvalidStatusTransition):
        booking_lifecycle.mark_no_show(db, booking.id, owner)

    booking_lifecycle.check_in(db, booking.id, owner, now=now)
    assert booking_lifecycle.mark_no_show(db, booking.id, owner).booking_status == BookingStatus.no_show.value


def test_unknown_status_is_rejected(db, book, apartment, owner, now):
    booking = book(apartment, at_noon(10), at_noon(12))
    with pytest.raises(ValidationFailed):
        booking_lifecycle.update_status(db, booking.id, "confirmed", owner, now=now)


# ---------------------------------------------------------------------------
# Two-room listing walkthrough
# ---------------------------------------------------------------------------


@pytest.fixture
def three_stays(db, book, make_apartment, make_user):
    apartment = make_apartment(total_rooms=2)
    a = book(apartment, at_noon(1), at_noon(5), who=make_user(full_name="Guest A"))
    b = book(apartment, at_noon(2), at_noon(4), who=make_user(full_name="Guest B"))
    c = book(apartment, at_noon(3), at_noon(6), who=make_user(full_name="Guest C"))
    return a, b, c


def test_walkthrough_completed_stay_keeps_blocking_room(db, three_stays, owner, now):
    a, b, c = three_stays

    assert booking_lifecycle.check_in(db, a.id, owner, now=now).room_number == 1
    assert booking_lifecycle.check_in(db, b.id, owner, now=now).room_number == 2
    with pytest.raises(NoRoomsAvailable) as exc_info:
        booking_lifecycle.check_in(db, c.id, owner, now=now)
    assert exc_info.value.total_rooms == 2

    done = booking_lifecycle.checkout(db, a.id, a.guest, now=now)
    assert done.booking_status == BookingStatus.completed.value
    assert done.check_out_time is not None

    # A's completed stay still overlaps C's dates
    with pytest.raises(NoRoomsAvailable):
        booking_lifecycle.check_in(db, c.id, owner, now=now)
    db.refresh(c)
    assert c.booking_status == BookingStatus.confirmed.value
    assert c.room_number is None


def test_walkthrough_completed_stay_frees_room_when_configured(db, three_stays, owner, now, monkeypatch):
    monkeypatch.setattr(settings, "COMPLETED_BOOKINGS_OCCUPY_ROOMS", False)
    a, b, c = three_stays

    booking_lifecycle.check_in(db, a.id, owner, now=now)
    booking_lifecycle.check_in(db, b.id, owner, now=now)
    with pytest.raises(NoRoomsAvailable):
        booking_lifecycle.check_in(db, c.id, owner, now=now)

    booking_lifecycle.checkout(db, a.id, a.guest, now=now)

    assert booking_lifecycle.check_in(db, c.id, owner, now=now).room_number == 1
