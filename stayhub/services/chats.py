from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from stayhub.models.booking import Booking
from stayhub.models.chat import Chat


def get_or_create_chat(db: Session, booking: Booking) -> Chat:
    """Return the booking's guest/owner channel, staging a new one if missing."""
    chat = db.query(Chat).filter(Chat.booking_id == booking.id).first()
    if chat:
        return chat

    apartment = booking.apartment
    owner = apartment.owner
    chat = Chat(
        booking_id=booking.id,
        apartment_id=apartment.id,
        owner_id=apartment.owner_id,
        renter_id=booking.guest_id,
        renter_name=booking.guest_name,
        owner_name=owner.full_name if owner else "Property Owner",
        apartment_title=apartment.title,
        room_number=booking.room_number,
    )
    db.add(chat)
    return chat


def set_room_number(db: Session, booking: Booking) -> Optional[Chat]:
    chat = db.query(Chat).filter(Chat.booking_id == booking.id).first()
    if chat:
        chat.room_number = booking.room_number
    return chat


def deactivate_chat(db: Session, booking_id: UUID) -> Optional[Chat]:
    chat = db.query(Chat).filter(Chat.booking_id == booking_id).first()
    if chat:
        chat.is_active = False
    return chat


def list_user_chats(db: Session, user_id: UUID) -> List[Chat]:
    return (
        db.query(Chat)
        .filter(Chat.is_active == True, or_(Chat.owner_id == user_id, Chat.renter_id == user_id))  # noqa: E712
        .order_by(Chat.created_at.desc())
        .all()
    )
