from typing import Optional, List
from pydantic import BaseModel, Field, UUID4, field_validator
from decimal import Decimal
from datetime import datetime


class ApartmentBase(BaseModel):
    title: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    country: str
    region: str
    town: str
    address: str
    price: Decimal = Field(ge=0)
    total_rooms: int = Field(ge=1)


class ApartmentCreate(ApartmentBase):
    pass


class ApartmentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    price: Optional[Decimal] = Field(default=None, ge=0)
    total_rooms: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None

    @field_validator("title", "price", "total_rooms", "is_active")
    @classmethod
    def reject_null(cls, v):
        # Omit a field to leave it unchanged; only description can be cleared
        if v is None:
            raise ValueError("may not be null")
        return v


class Apartment(ApartmentBase):
    id: UUID4
    owner_id: UUID4
    is_active: bool
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Room status view (GET /apartments/{id}/rooms)
class RoomOccupant(BaseModel):
    booking_id: UUID4
    guest_name: str
    check_in: datetime
    check_out: datetime
    status: str

    class Config:
        from_attributes = True


class RoomStatus(BaseModel):
    room_number: int
    is_occupied: bool
    occupant: Optional[RoomOccupant] = None

    class Config:
        from_attributes = True


class RoomAvailabilityResponse(BaseModel):
    total_rooms: int
    available_rooms: int
    occupied_rooms: int
    check_in: datetime
    check_out: datetime
    rooms: List[RoomStatus]
