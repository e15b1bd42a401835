import random
import string

from sqlalchemy.orm import Session

from stayhub.models.booking import Booking

TICKET_CODE_LENGTH = 8
TICKET_CODE_CHARS = string.ascii_uppercase + string.digits


def generate_ticket_code() -> str:
    """Random 8-character uppercase alphanumeric code."""
    return "".join(random.choices(TICKET_CODE_CHARS, k=TICKET_CODE_LENGTH))


def make_unique_ticket_code(db: Session) -> str:
    """Generate a ticket code, regenerating on collision with an existing booking."""
    while True:
        code = generate_ticket_code()
        if db.query(Booking.id).filter(Booking.ticket_code == code).first() is None:
            return code
