import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from stayhub.core.config import settings
from stayhub.core.exceptions import NotFound
from stayhub.models.booking import Booking
from stayhub.models.commission import Commission, CommissionStatus
from stayhub.utils.dates import utcnow

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def commission_amount(room_price: Decimal, rate: Decimal) -> Decimal:
    return (Decimal(room_price) * Decimal(rate)).quantize(CENTS, rounding=ROUND_HALF_UP)


def create_commission_for_booking(db: Session, booking: Booking) -> Optional[Commission]:
    """
    Stage the commission record for a paid booking.

    At most one commission exists per booking; a second call returns the
    existing one. Zero-amount bookings get none.
    """
    existing = db.query(Commission).filter(Commission.booking_id == booking.id).first()
    if existing:
        return existing
    if not booking.total_amount or Decimal(booking.total_amount) <= 0:
        return None

    rate = Decimal(str(settings.COMMISSION_RATE))
    commission = Commission(
        booking_id=booking.id,
        apartment_id=booking.apartment_id,
        owner_id=booking.apartment.owner_id,
        guest_id=booking.guest_id,
        room_price=booking.total_amount,
        rate=rate,
        amount=commission_amount(booking.total_amount, rate),
        booking_date=booking.created_at or utcnow(),
        check_in_date=booking.check_in,
        check_out_date=booking.check_out,
        payment_reference=booking.payment_reference or f"booking_{booking.id}",
        status=CommissionStatus.pending.value,
    )
    db.add(commission)
    logger.info("Commission staged for booking %s: %s", booking.id, commission.amount)
    return commission


def _get_commission(db: Session, commission_id: UUID) -> Commission:
    commission = db.query(Commission).filter(Commission.id == commission_id).first()
    if not commission:
        raise NotFound("Commission not found", commission_id=commission_id)
    return commission


def mark_paid(db: Session, commission_id: UUID, payment_reference: Optional[str] = None) -> Commission:
    commission = _get_commission(db, commission_id)
    commission.status = CommissionStatus.paid.value
    commission.payment_date = utcnow()
    if payment_reference:
        commission.payment_reference = payment_reference
    db.commit()
    db.refresh(commission)
    return commission


def mark_failed(db: Session, commission_id: UUID, notes: Optional[str] = None) -> Commission:
    commission = _get_commission(db, commission_id)
    commission.status = CommissionStatus.failed.value
    if notes:
        commission.notes = notes
    db.commit()
    db.refresh(commission)
    return commission
