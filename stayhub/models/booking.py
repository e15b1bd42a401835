import uuid
import enum
from sqlalchemy import Column, String, DateTime, func, DECIMAL, Integer, ForeignKey, Text, Index, CheckConstraint, Uuid
from sqlalchemy.orm import relationship
from stayhub.db.session import Base

class BookingStatus(str, enum.Enum):
    confirmed = "confirmed"
    checked_in = "checked-in"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"

TERMINAL_STATUSES = (BookingStatus.completed, BookingStatus.cancelled, BookingStatus.no_show)

class PaymentStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"
    refunded = "refunded"
    not_required = "not_required"

class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    apartment_id = Column(Uuid(as_uuid=True), ForeignKey("apartments.id"), nullable=False, index=True)
    guest_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    guest_name = Column(String(255), nullable=False)
    guest_email = Column(String(255), nullable=False)
    check_in = Column(DateTime(timezone=True), nullable=False)
    check_out = Column(DateTime(timezone=True), nullable=False)
    guests = Column(Integer, nullable=False, default=1)
    total_amount = Column(DECIMAL(10, 2), nullable=False)
    payment_status = Column(String(20), default=PaymentStatus.not_required.value, index=True)
    payment_reference = Column(String(100), nullable=True)
    booking_status = Column(String(20), default=BookingStatus.confirmed.value, index=True)
    ticket_code = Column(String(8), unique=True, nullable=False, index=True)
    room_number = Column(Integer, nullable=True, index=True) # assigned at check-in, never changed
    check_in_time = Column(DateTime(timezone=True), nullable=True, index=True) # actual check-in
    check_out_time = Column(DateTime(timezone=True), nullable=True, index=True) # actual check-out
    special_requests = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    __table_args__ = (
        Index("ix_bookings_apartment_dates", "apartment_id", "check_in", "check_out"),
        CheckConstraint("check_out > check_in", name="check_booking_dates_ordered"),
        CheckConstraint("room_number IS NULL OR room_number >= 1", name="check_booking_room_number_positive"),
        CheckConstraint("total_amount >= 0", name="check_booking_amount_non_negative"),
    )

    # Relationships
    apartment = relationship("Apartment", back_populates="bookings")
    guest = relationship("User")
    commission = relationship("Commission", back_populates="booking", uselist=False)
