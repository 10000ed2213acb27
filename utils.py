import re
from datetime import date, datetime, timezone

from errors import BadInput

ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def today() -> date:
    return date.today()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso_date(value: str, field: str) -> date:
    """Parse a ``YYYY-MM-DD`` string, raising ``BadInput`` naming ``field``."""
    try:
        value = value.strip()
        # fromisoformat alone also takes compact and week dates
        if not ISO_DATE.fullmatch(value):
            raise ValueError(value)
        return date.fromisoformat(value)
    except (AttributeError, ValueError):
        raise BadInput(f"Invalid {field}, use YYYY-MM-DD") from None
