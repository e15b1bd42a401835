from uuid import UUID
from typing import Optional
from datetime import date
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from stayhub.db.session import get_db
from stayhub.api.deps import get_current_owner_or_admin
from stayhub.models.user import User
from stayhub.models.apartment import Apartment
from stayhub.models.booking import Booking
from stayhub.schemas.apartment import (
    ApartmentCreate,
    ApartmentUpdate,
    Apartment as ApartmentSchema,
    RoomAvailabilityResponse,
)
from stayhub.schemas.booking import Booking as BookingSchema
from stayhub.schemas.common import PaginatedResponse
from stayhub.services import room_allocator
from stayhub.utils.dates import stay_instant

router = APIRouter(prefix="/apartments", tags=["Apartments"])


def _get_managed_apartment(apartment_id: UUID, user: User, db: Session) -> Apartment:
    """An apartment the user owns, or any apartment for an admin."""
    apartment = db.query(Apartment).filter(Apartment.id == apartment_id).first()
    if not apartment:
        raise HTTPException(status_code=404, detail="Apartment not found")
    if apartment.owner_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Not authorized to manage this apartment")
    return apartment


# ---------------------------------------------------------------------------
# Apartment CRUD
# ---------------------------------------------------------------------------


@router.post("/", response_model=ApartmentSchema, status_code=status.HTTP_201_CREATED)
def create_apartment(
    data: ApartmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_owner_or_admin),
):
    apartment = Apartment(**data.model_dump(), owner_id=current_user.id)
    db.add(apartment)
    db.commit()
    db.refresh(apartment)
    return apartment


@router.get("/", response_model=PaginatedResponse[ApartmentSchema])
def list_apartments(
    town: Optional[str] = None,
    region: Optional[str] = None,
    country: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = db.query(Apartment).filter(Apartment.is_active == True, Apartment.status == "active")  # noqa: E712

    if town:
        query = query.filter(Apartment.town.ilike(f"%{town}%"))
    if region:
        query = query.filter(Apartment.region.ilike(f"%{region}%"))
    if country:
        query = query.filter(Apartment.country.ilike(f"%{country}%"))

    query = query.order_by(Apartment.created_at.desc())
    total = query.count()
    apartments = query.offset((page - 1) * limit).limit(limit).all()

    return PaginatedResponse(
        data=apartments,
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.get("/{id}", response_model=ApartmentSchema)
def get_apartment(id: UUID, db: Session = Depends(get_db)):
    apartment = db.query(Apartment).filter(Apartment.id == id).first()
    if not apartment:
        raise HTTPException(status_code=404, detail="Apartment not found")
    return apartment


@router.patch("/{id}", response_model=ApartmentSchema)
def update_apartment(
    id: UUID,
    data: ApartmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_owner_or_admin),
):
    apartment = _get_managed_apartment(id, current_user, db)
    if data.total_rooms is not None:
        room_allocator.ensure_room_count_fits(db, apartment, data.total_rooms)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(apartment, field, value)
    db.commit()
    db.refresh(apartment)
    return apartment


# ---------------------------------------------------------------------------
# Owner views: bookings and room status
# ---------------------------------------------------------------------------


@router.get("/{id}/bookings", response_model=PaginatedResponse[BookingSchema])
def list_apartment_bookings(
    id: UUID,
    booking_status: Optional[str] = Query(None, description="Filter by booking status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_owner_or_admin),
):
    _get_managed_apartment(id, current_user, db)
    query = db.query(Booking).filter(Booking.apartment_id == id)
    if booking_status:
        query = query.filter(Booking.booking_status == booking_status)

    total = query.count()
    bookings = query.order_by(Booking.check_in).offset((page - 1) * limit).limit(limit).all()

    return PaginatedResponse(
        data=bookings,
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.get("/{id}/rooms", response_model=RoomAvailabilityResponse)
def get_room_availability(
    id: UUID,
    check_in: date = Query(..., description="First night (YYYY-MM-DD)"),
    check_out: date = Query(..., description="Departure day (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_owner_or_admin),
):
    """Per-room occupancy of the apartment for a date range."""
    if check_out <= check_in:
        raise HTTPException(status_code=400, detail="Check-out date must be after check-in date")
    _get_managed_apartment(id, current_user, db)

    start, end = stay_instant(check_in), stay_instant(check_out)
    occupancy = room_allocator.compute_occupancy(db, id, start, end)
    return RoomAvailabilityResponse(
        total_rooms=occupancy.total_rooms,
        available_rooms=occupancy.available_rooms,
        occupied_rooms=occupancy.occupied_rooms,
        check_in=start,
        check_out=end,
        rooms=[asdict(room) for room in occupancy.rooms],
    )
