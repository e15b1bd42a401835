import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Text, DECIMAL, Integer, ForeignKey, CheckConstraint, Uuid
from sqlalchemy.orm import relationship
from stayhub.db.session import Base

class Apartment(Base):
    __tablename__ = "apartments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    country = Column(String(100), nullable=False)
    region = Column(String(100), nullable=False)
    town = Column(String(100), nullable=False, index=True)
    address = Column(String(255), nullable=False)
    price = Column(DECIMAL(10, 2), nullable=False) # per night
    total_rooms = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=True, index=True)
    status = Column(String(20), default="active", index=True) # active, inactive, suspended
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    __table_args__ = (
        CheckConstraint("total_rooms >= 1", name="check_apartment_total_rooms_positive"),
        CheckConstraint("price >= 0", name="check_apartment_price_non_negative"),
    )

    # Relationships
    owner = relationship("User", back_populates="apartments")
    bookings = relationship("Booking", back_populates="apartment")
