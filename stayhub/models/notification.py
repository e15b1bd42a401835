import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Integer, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
from stayhub.db.session import Base

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False, index=True) # new_booking, auto_checkout, booking_reminder, checkout_reminder, ...
    title = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)
    booking_id = Column(Uuid(as_uuid=True), ForeignKey("bookings.id"), nullable=True, index=True)
    apartment_id = Column(Uuid(as_uuid=True), ForeignKey("apartments.id"), nullable=True, index=True)
    guest_name = Column(String(100), nullable=True)
    room_number = Column(Integer, nullable=True)
    priority = Column(String(10), default="medium", index=True) # low, medium, high
    is_read = Column(Boolean, default=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")
