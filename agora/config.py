import logging
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./agora.db")
# Postgres schema for all tables; leave unset for SQLite
DB_SCHEMA = os.getenv("DB_SCHEMA") or None
SQL_ECHO = _env_bool("SQL_ECHO", False)

SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24 hours

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "*").split(",")
    if o.strip()
]

RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", True)
LIKE_RATE_LIMIT = os.getenv("LIKE_RATE_LIMIT", "30/minute;1000/day")
WRITE_RATE_LIMIT = os.getenv("WRITE_RATE_LIMIT", "6/minute;40/hour;150/day")
AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "5/minute")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def setup_logging(log_level: str = LOG_LEVEL) -> None:
    """Configure the root logger with a console handler."""
    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
