from typing import Optional, Literal
from pydantic import BaseModel, Field, UUID4, model_validator
from decimal import Decimal
from datetime import date, datetime

from stayhub.schemas.user import UserSummary


# Booking — Create (POST /bookings)
class BookingCreate(BaseModel):
    apartment_id: UUID4
    check_in: date
    check_out: date
    guests: int = Field(default=1, ge=1)
    special_requests: Optional[str] = Field(default=None, max_length=500)
    payment_reference: Optional[str] = None
    payment_status: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.check_out <= self.check_in:
            raise ValueError("Check-out date must be after check-in date")
        return self


class BookingApartmentSummary(BaseModel):
    id: UUID4
    title: str
    town: str
    price: Decimal

    class Config:
        from_attributes = True


# Booking — Full response
class Booking(BaseModel):
    id: UUID4
    apartment_id: UUID4
    guest_id: UUID4
    guest_name: str
    guest_email: str
    check_in: datetime
    check_out: datetime
    guests: int
    total_amount: Decimal
    payment_status: str
    payment_reference: Optional[str] = None
    booking_status: str
    ticket_code: str
    room_number: Optional[int] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    special_requests: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    apartment: Optional[BookingApartmentSummary] = None

    class Config:
        from_attributes = True


# PATCH /bookings/{id}/status
class BookingStatusUpdate(BaseModel):
    status: Literal["checked-in", "completed", "cancelled", "no_show"]


# PATCH /admin/bookings/{id}/payment
class PaymentStatusUpdate(BaseModel):
    payment_status: Literal["paid", "failed", "refunded"]


# POST /bookings/{id}/checkout
class CheckoutResponse(BaseModel):
    id: UUID4
    apartment_title: str
    room_number: Optional[int] = None
    check_out_time: datetime
    booking_status: str
    original_check_out: datetime
    early_checkout: bool


class AutoCheckoutRunResponse(BaseModel):
    processed: int
    upcoming: int


# Admin booking view with the guest attached
class AdminBooking(Booking):
    guest: Optional[UserSummary] = None
