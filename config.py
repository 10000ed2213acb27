import logging
import os

from dotenv import load_dotenv

load_dotenv()  # reads values from .env when present

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./vacations.db")
SESSION_SECRET = os.getenv("SESSION_SECRET", "change-me-in-production")
SESSION_TTL_DAYS = int(os.getenv("SESSION_TTL_DAYS", 7))
SESSION_HTTPS_ONLY = os.getenv("SESSION_HTTPS_ONLY", "false").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging():
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
