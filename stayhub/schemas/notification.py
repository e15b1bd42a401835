from typing import Optional
from pydantic import BaseModel, UUID4
from datetime import datetime


class NotificationBase(BaseModel):
    type: str
    title: str
    message: str
    booking_id: Optional[UUID4] = None
    apartment_id: Optional[UUID4] = None
    guest_name: Optional[str] = None
    room_number: Optional[int] = None
    priority: str = "medium"


class Notification(NotificationBase):
    id: UUID4
    user_id: UUID4
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Chat(BaseModel):
    id: UUID4
    booking_id: UUID4
    apartment_id: UUID4
    owner_id: UUID4
    renter_id: UUID4
    renter_name: str
    owner_name: str
    apartment_title: str
    room_number: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
