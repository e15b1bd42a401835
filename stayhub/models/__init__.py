from stayhub.models.user import User, UserRole, UserStatus
from stayhub.models.apartment import Apartment
from stayhub.models.booking import Booking, BookingStatus, PaymentStatus
from stayhub.models.commission import Commission, CommissionStatus
from stayhub.models.notification import Notification
from stayhub.models.chat import Chat
