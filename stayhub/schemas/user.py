from typing import Optional
from pydantic import BaseModel, EmailStr, UUID4
from datetime import datetime


# Shared properties
class UserBase(BaseModel):
    email: EmailStr
    full_name: str
    phone: Optional[str] = None
    role: str


# Properties to receive via API on update (PATCH /me)
class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None


class User(UserBase):
    id: UUID4
    external_id: str
    status: str
    identity_verified: bool
    payment_provider: Optional[str] = None
    payment_account_verified: bool
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Compact user for nested responses
class UserSummary(BaseModel):
    id: UUID4
    full_name: str
    email: str

    class Config:
        from_attributes = True


class PaymentAccountVerify(BaseModel):
    provider: str
    subaccount_code: Optional[str] = None
