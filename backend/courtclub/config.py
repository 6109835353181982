import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./courtclub.db")
SQL_ECHO = _env_bool("SQL_ECHO", "false")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    CORS_ORIGINS.extend(o.strip() for o in _extra.split(",") if o.strip())

# Background sweeper
SWEEPER_ENABLED = _env_bool("SWEEPER_ENABLED", "true")
EXPIRY_INTERVAL_SECONDS = int(os.getenv("EXPIRY_INTERVAL_SECONDS", "60"))
PENDING_PAYMENT_TIMEOUT_MINUTES = int(os.getenv("PENDING_PAYMENT_TIMEOUT_MINUTES", "5"))
REMINDER_INTERVAL_SECONDS = int(os.getenv("REMINDER_INTERVAL_SECONDS", "3600"))
