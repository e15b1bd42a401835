from datetime import datetime, timedelta, timezone

from stayhub.core.security import create_access_token


def at_noon(day: int, month: int = 1, year: int = 2030) -> datetime:
    return datetime(year, month, day, 12, 0, tzinfo=timezone.utc)


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.external_id)}"}


def days_from_now(days: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)
