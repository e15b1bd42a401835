from typing import Any, Dict, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from stayhub.core.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Engine keyword arguments for a database URL.

    Sync handlers and scheduler jobs run on worker threads, so SQLite
    connections must be shareable across threads, and an in-memory database
    needs a single shared connection to be visible at all.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True}
    options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


engine = create_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """One session per request, closed once the response is sent."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
