from uuid import UUID
from typing import Optional
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload

from stayhub.db.session import get_db
from stayhub.api.deps import get_current_admin_user
from stayhub.models.user import User
from stayhub.models.booking import Booking
from stayhub.models.apartment import Apartment
from stayhub.schemas.booking import AdminBooking, AutoCheckoutRunResponse, PaymentStatusUpdate
from stayhub.schemas.common import PaginatedResponse
from stayhub.services import auto_checkout, booking_lifecycle
from stayhub.utils.dates import stay_instant

router = APIRouter(prefix="/admin/bookings", tags=["Admin - Bookings"])


@router.get("/", response_model=PaginatedResponse[AdminBooking])
def list_all_bookings(
    # --- Filters ---
    apartment_id: Optional[UUID] = Query(None, description="Filter by apartment"),
    town: Optional[str] = Query(None, description="Filter by apartment town (case-insensitive)"),
    check_in_from: Optional[date] = Query(None, description="Stays starting on or after (YYYY-MM-DD)"),
    booking_status: Optional[str] = Query(None, description="Filter by booking status"),
    payment_status: Optional[str] = Query(None, description="Filter by payment status"),
    # --- Pagination ---
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Return all bookings across every apartment, newest first."""
    query = (
        db.query(Booking)
        .join(Apartment, Apartment.id == Booking.apartment_id)
        .options(joinedload(Booking.guest), joinedload(Booking.apartment))
    )

    if apartment_id:
        query = query.filter(Booking.apartment_id == apartment_id)
    if town:
        query = query.filter(Apartment.town.ilike(town))
    if check_in_from:
        query = query.filter(Booking.check_in >= stay_instant(check_in_from))
    if booking_status:
        query = query.filter(Booking.booking_status == booking_status)
    if payment_status:
        query = query.filter(Booking.payment_status == payment_status)

    total = query.count()
    bookings = (
        query.order_by(Booking.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return PaginatedResponse(
        data=bookings,
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.patch("/{booking_id}/payment", response_model=AdminBooking)
def update_payment(
    booking_id: UUID,
    data: PaymentStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Reconcile a booking's payment. Marking it paid records the platform commission."""
    return booking_lifecycle.update_payment_status(db, booking_id, data.payment_status)


@router.post("/auto-checkout", response_model=AutoCheckoutRunResponse)
def trigger_auto_checkout(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Run one auto-checkout pass now instead of waiting for the scheduler."""
    processed = auto_checkout.run_auto_checkout_pass(db)
    upcoming = auto_checkout.get_upcoming_checkouts(db)
    return AutoCheckoutRunResponse(processed=processed, upcoming=len(upcoming))
