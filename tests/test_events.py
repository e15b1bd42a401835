import uuid
from decimal import Decimal

from stayhub.models.notification import Notification
from stayhub.services import commissions, notifications
from stayhub.services.events import BookingCancelled, BookingCreated, EventBus


def test_failed_handler_is_counted_and_others_still_run(db, guest):
    bus = EventBus()
    seen = []

    @bus.subscribe(BookingCreated)
    def broken(session, event):
        notifications.create_notification(session, guest.id, "x", "half written", "never committed")
        raise RuntimeError("boom")

    @bus.subscribe(BookingCreated)
    def recorder(session, event):
        seen.append(event.booking_id)
        notifications.create_notification(session, guest.id, "ok", "Saved", "committed")

    booking_id = uuid.uuid4()
    dropped = bus.publish(db, [BookingCreated(booking_id=booking_id)])

    assert dropped == 1
    assert seen == [booking_id]
    assert [n.type for n in db.query(Notification).all()] == ["ok"]


def test_handlers_only_receive_their_event_type(db):
    bus = EventBus()
    seen = []
    bus.subscribe(BookingCancelled)(lambda session, event: seen.append(event))

    assert bus.publish(db, [BookingCreated(booking_id=uuid.uuid4())]) == 0
    assert seen == []
    assert len(bus.handlers_for(BookingCancelled)) == 1


def test_commission_amount_rounds_to_cents():
    assert commissions.commission_amount(Decimal("333.33"), Decimal("0.05")) == Decimal("16.67")
    assert commissions.commission_amount(Decimal("0"), Decimal("0.05")) == Decimal("0.00")


def test_mark_all_as_read(db, guest):
    for i in range(3):
        notifications.create_notification(db, guest.id, "info", f"Note {i}", "body")
    db.commit()

    assert notifications.mark_all_as_read(db, guest.id) == 3
    db.commit()
    assert db.query(Notification).filter(Notification.is_read == False).count() == 0  # noqa: E712
