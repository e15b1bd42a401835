import logging

from fastapi import FastAPI
from contextlib import asynccontextmanager
from stayhub.db.init_db import create_database
from stayhub.db.base import Base
from stayhub.db.session import engine
from stayhub.core.config import settings
from stayhub.core.exceptions import register_exception_handlers
from stayhub.core.scheduler import build_checkout_scheduler
from stayhub.api.v1.router import api_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Ensure DB exists and create tables
    create_database()
    Base.metadata.create_all(bind=engine)

    # Auto-checkout and checkout reminders run in the background
    scheduler = build_checkout_scheduler() if settings.SCHEDULER_ENABLED else None
    if scheduler:
        scheduler.start()
        logger.info("Checkout scheduler started.")
    yield

    # Shutdown: stop background jobs
    if scheduler:
        await scheduler.stop()


from fastapi.middleware.cors import CORSMiddleware

app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
def read_root():
    return {"Hello": "StayHub"}
