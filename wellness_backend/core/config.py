import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./wellness.db")
CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:8081"])

SLOT_STEP_MINUTES = 30
DEFAULT_WORKING_START_TIME = os.getenv("DEFAULT_WORKING_START_TIME", "09:00")
DEFAULT_WORKING_END_TIME = os.getenv("DEFAULT_WORKING_END_TIME", "18:00")
DEFAULT_SERVICE_DURATION_MINUTES = _get_int(os.getenv("DEFAULT_SERVICE_DURATION_MINUTES"), 50)
BOOKING_HORIZON_DAYS = _get_int(os.getenv("BOOKING_HORIZON_DAYS"), 60)
MAX_RESCHEDULE_REASON_LENGTH = _get_int(os.getenv("MAX_RESCHEDULE_REASON_LENGTH"), 500)
SNAPSHOT_READ_WORKERS = _get_int(os.getenv("SNAPSHOT_READ_WORKERS"), 3)

def validate_runtime_config() -> None:
    if BOOKING_HORIZON_DAYS <= 0:
        raise RuntimeError("BOOKING_HORIZON_DAYS must be positive.")
    if APP_ENV.lower() == "production" and "DATABASE_URL" not in os.environ:
        raise RuntimeError("DATABASE_URL must be set in production.")
