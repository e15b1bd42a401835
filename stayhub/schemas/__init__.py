
from stayhub.schemas.common import PaginatedResponse, ErrorResponse, NoRoomsAvailableError, AlreadyCheckedInError
from stayhub.schemas.user import User, UserUpdate, UserSummary, PaymentAccountVerify
from stayhub.schemas.apartment import (
    Apartment, ApartmentCreate, ApartmentUpdate,
    RoomOccupant, RoomStatus, RoomAvailabilityResponse,
)
from stayhub.schemas.booking import (
    Booking, BookingCreate, BookingStatusUpdate, PaymentStatusUpdate,
    CheckoutResponse, AutoCheckoutRunResponse, AdminBooking,
)
from stayhub.schemas.commission import Commission, CommissionPaid, CommissionFailed
from stayhub.schemas.notification import Notification, Chat
