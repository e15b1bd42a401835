"""
Booking events and the in-process bus that runs their side effects.

The lifecycle manager commits the booking first and publishes afterwards, so
commission, notification and chat writes can never roll a booking back.
Every handler gets its own commit; a failing handler is rolled back, logged
and counted, and the remaining handlers still run.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Type
from uuid import UUID

from sqlalchemy.orm import Session

from stayhub.utils.dates import utcnow

logger = logging.getLogger(__name__)


@dataclass
class BookingEvent:
    booking_id: UUID
    occurred_at: datetime = field(default_factory=utcnow)


@dataclass
class BookingCreated(BookingEvent):
    pass


@dataclass
class BookingCheckedIn(BookingEvent):
    pass


@dataclass
class BookingCheckedOut(BookingEvent):
    # "guest", "owner", "admin" or "auto"
    checked_out_by: str = "guest"


@dataclass
class BookingCancelled(BookingEvent):
    pass


@dataclass
class BookingPaid(BookingEvent):
    pass


Handler = Callable[[Session, BookingEvent], None]


class EventBus:
    def __init__(self):
        self._handlers: Dict[Type[BookingEvent], List[Handler]] = {}

    def subscribe(self, event_type: Type[BookingEvent]) -> Callable[[Handler], Handler]:
        """Decorator registering a handler for an event type. Several handlers per type are allowed."""
        def decorator(handler: Handler) -> Handler:
            self._handlers.setdefault(event_type, []).append(handler)
            logger.debug("Registered %s for %s", handler.__name__, event_type.__name__)
            return handler
        return decorator

    def handlers_for(self, event_type: Type[BookingEvent]) -> List[Handler]:
        return list(self._handlers.get(event_type, []))

    def publish(self, db: Session, events: List[BookingEvent]) -> int:
        """Run every handler for each event. Returns the number of handlers that failed."""
        dropped = 0
        for event in events:
            event_name = type(event).__name__
            for handler in self.handlers_for(type(event)):
                try:
                    handler(db, event)
                    db.commit()
                except Exception:
                    db.rollback()
                    dropped += 1
                    logger.exception(
                        "Side effect %s failed for %s (booking %s)",
                        handler.__name__, event_name, event.booking_id,
                    )
        return dropped


event_bus = EventBus()
