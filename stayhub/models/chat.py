import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from stayhub.db.session import Base

class Chat(Base):
    """Guest <-> owner channel scoped to a single booking."""
    __tablename__ = "chats"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(Uuid(as_uuid=True), ForeignKey("bookings.id"), unique=True, nullable=False, index=True)
    apartment_id = Column(Uuid(as_uuid=True), ForeignKey("apartments.id"), nullable=False, index=True)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    renter_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    renter_name = Column(String(255), nullable=False)
    owner_name = Column(String(255), nullable=False)
    apartment_title = Column(String(100), nullable=False)
    room_number = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    booking = relationship("Booking")
