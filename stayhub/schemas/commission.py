from typing import Optional
from pydantic import BaseModel, UUID4
from decimal import Decimal
from datetime import datetime


class Commission(BaseModel):
    id: UUID4
    booking_id: UUID4
    apartment_id: UUID4
    owner_id: UUID4
    guest_id: UUID4
    room_price: Decimal
    rate: Decimal
    amount: Decimal
    booking_date: datetime
    check_in_date: datetime
    check_out_date: datetime
    status: str
    payment_date: Optional[datetime] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class CommissionPaid(BaseModel):
    payment_reference: Optional[str] = None


class CommissionFailed(BaseModel):
    notes: Optional[str] = None
