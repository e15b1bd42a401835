import uuid
import enum
from sqlalchemy import Column, String, DateTime, func, DECIMAL, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
from stayhub.db.session import Base

class CommissionStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"

class Commission(Base):
    """Platform cut of a paid booking. Amount fields are fixed at creation."""
    __tablename__ = "commissions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(Uuid(as_uuid=True), ForeignKey("bookings.id"), unique=True, nullable=False, index=True)
    apartment_id = Column(Uuid(as_uuid=True), ForeignKey("apartments.id"), nullable=False, index=True)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    guest_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    room_price = Column(DECIMAL(10, 2), nullable=False)
    rate = Column(DECIMAL(5, 4), nullable=False)
    amount = Column(DECIMAL(10, 2), nullable=False)
    booking_date = Column(DateTime(timezone=True), nullable=False)
    check_in_date = Column(DateTime(timezone=True), nullable=False)
    check_out_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), default=CommissionStatus.pending.value, index=True) # pending, paid, failed
    payment_date = Column(DateTime(timezone=True), nullable=True)
    payment_reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    booking = relationship("Booking", back_populates="commission")
