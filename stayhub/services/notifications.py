from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from stayhub.models.notification import Notification
from stayhub.models.user import User, UserRole
from stayhub.utils.dates import utcnow


def create_notification(
    db: Session,
    user_id: UUID,
    type: str,
    title: str,
    message: str,
    booking_id: Optional[UUID] = None,
    apartment_id: Optional[UUID] = None,
    guest_name: Optional[str] = None,
    room_number: Optional[int] = None,
    priority: str = "medium",
) -> Notification:
    """Stage a notification on the session. The caller commits."""
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title[:100],
        message=message,
        booking_id=booking_id,
        apartment_id=apartment_id,
        guest_name=guest_name,
        room_number=room_number,
        priority=priority,
    )
    db.add(notification)
    return notification


def notify_admins(db: Session, **kwargs) -> List[Notification]:
    admins = db.query(User).filter(User.role == UserRole.admin.value, User.is_active == True).all()  # noqa: E712
    return [create_notification(db, user_id=admin.id, **kwargs) for admin in admins]


def already_notified(db: Session, user_id: UUID, booking_id: UUID, type: str) -> bool:
    return db.query(Notification.id).filter(
        Notification.user_id == user_id,
        Notification.booking_id == booking_id,
        Notification.type == type,
    ).first() is not None


def mark_as_read(db: Session, notification: Notification, now: Optional[datetime] = None) -> Notification:
    notification.is_read = True
    notification.read_at = now or utcnow()
    return notification


def mark_all_as_read(db: Session, user_id: UUID, now: Optional[datetime] = None) -> int:
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read == False,  # noqa: E712
    ).update({"is_read": True, "read_at": now or utcnow()}, synchronize_session="fetch")
