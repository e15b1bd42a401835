from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "StayHub API"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "12345"
    POSTGRES_DB: str = "stayhub_db"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str = ""

    # Bookings
    COMMISSION_RATE: float = 0.05
    CANCELLATION_LEAD_HOURS: int = 24
    # A calendar date D in a request means D at this hour, UTC
    CHECK_IN_HOUR_UTC: int = 12
    MAX_GUESTS: int = 20
    REQUIRE_GUEST_IDENTITY_VERIFICATION: bool = False

    # Room allocation policy.
    # Inclusive: a stay ending on the day another starts still conflicts.
    ROOM_OVERLAP_INCLUSIVE: bool = True
    COMPLETED_BOOKINGS_OCCUPY_ROOMS: bool = True

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_INITIAL_DELAY_SECONDS: int = 5
    AUTO_CHECKOUT_INTERVAL_MINUTES: int = 30
    OWNER_REMINDER_INTERVAL_MINUTES: int = 60
    GUEST_REMINDER_INTERVAL_MINUTES: int = 15
    OWNER_REMINDER_HOURS_AHEAD: int = 2
    GUEST_REMINDER_MIN_MINUTES: int = 30
    GUEST_REMINDER_MAX_MINUTES: int = 60
    # Stamp forced checkouts with the scheduled check-out instead of "now"
    AUTO_CHECKOUT_BACKDATE: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def assemble_db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"


settings = Settings()
settings.DATABASE_URL = settings.assemble_db_url()
