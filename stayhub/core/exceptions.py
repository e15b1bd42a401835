"""
Domain errors raised by the booking core.

Each error knows its HTTP status and carries enough detail (room count,
current status, existing room number) for the caller to react without
re-querying. The API layer renders them as ``{"error", "message", ...}``.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder


class BookingError(Exception):
    status_code = 400
    error = "booking_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.details}


class ValidationFailed(BookingError):
    error = "validation_error"


class NotFound(BookingError):
    status_code = 404
    error = "not_found"


class NotAuthorized(BookingError):
    status_code = 403
    error = "not_authorized"


class NoRoomsAvailable(BookingError):
    error = "no_rooms_available"

    def __init__(self, total_rooms: int):
        super().__init__(
            f"No rooms available for the selected dates. "
            f"All {total_rooms} rooms are currently occupied.",
            total_rooms=total_rooms,
        )
        self.total_rooms = total_rooms


class BookingStateError(BookingError):
    error = "invalid_booking_state"


class AlreadyCheckedIn(BookingStateError):
    error = "already_checked_in"

    def __init__(self, guest_name: str, room_number: Optional[int], check_in_time: Optional[datetime]):
        super().__init__(
            f"{guest_name} is already checked in to Room {room_number}",
            room_number=room_number,
            check_in_time=check_in_time,
        )
        self.room_number = room_number
        self.check_in_time = check_in_time


class NotCheckedIn(BookingStateError):
    error = "not_checked_in"

    def __init__(self, current_status: str):
        super().__init__(
            f"Cannot check out. Booking status is '{current_status}'. "
            "Only checked-in bookings can be checked out.",
            current_status=current_status,
        )
        self.current_status = current_status


class AlreadyCheckedOut(BookingStateError):
    error = "already_checked_out"

    def __init__(self, check_out_time: datetime):
        super().__init__(
            "This booking has already been checked out",
            check_out_time=check_out_time,
        )
        self.check_out_time = check_out_time


class AlreadyTerminal(BookingStateError):
    error = "already_terminal"

    def __init__(self, current_status: str):
        super().__init__(
            f"Booking is already {current_status}",
            current_status=current_status,
        )
        self.current_status = current_status


class InvalidStatusTransition(BookingStateError):
    error = "invalid_status_transition"

    def __init__(self, current_status: str, target: str):
        super().__init__(
            f"Cannot move a '{current_status}' booking to '{target}'",
            current_status=current_status,
            target=target,
        )
        self.current_status = current_status
        self.target = target


class TooLateToCancel(BookingError):
    error = "too_late_to_cancel"

    def __init__(self, hours_until_check_in: float, lead_hours: int):
        super().__init__(
            f"Cannot cancel booking less than {lead_hours} hours before check-in",
            hours_until_check_in=round(hours_until_check_in, 2),
            lead_hours=lead_hours,
        )
        self.hours_until_check_in = hours_until_check_in


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
