import uuid
import enum
from sqlalchemy import Column, String, Boolean, DateTime, func, Uuid
from sqlalchemy.orm import relationship
from stayhub.db.session import Base

class UserRole(str, enum.Enum):
    guest = "guest"
    owner = "owner"
    admin = "admin"

class UserStatus(str, enum.Enum):
    active = "active"
    suspended = "suspended"

class User(Base):
    """Local mirror of an identity-provider account."""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id = Column(String(255), unique=True, nullable=False, index=True) # identity provider subject
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    role = Column(String(20), default=UserRole.guest.value, index=True) # guest, owner, admin
    status = Column(String(20), default=UserStatus.active.value, index=True) # active, suspended
    identity_verified = Column(Boolean, default=False)

    # Payout account for owners
    payment_provider = Column(String(20), nullable=True) # paystack, momo
    payment_subaccount_code = Column(String(100), nullable=True)
    payment_account_verified = Column(Boolean, default=False)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    apartments = relationship("Apartment", back_populates="owner")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin
