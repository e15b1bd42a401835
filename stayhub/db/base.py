from stayhub.db.session import Base
from stayhub.models.user import User
from stayhub.models.apartment import Apartment
from stayhub.models.booking import Booking
from stayhub.models.commission import Commission
from stayhub.models.notification import Notification
from stayhub.models.chat import Chat
