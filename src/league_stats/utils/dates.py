"""Date handling utilities with explicit UTC semantics."""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from ..league_logging import get_logger

logger = get_logger(__name__)

# Epoch values above this are treated as milliseconds
_EPOCH_MILLIS_THRESHOLD = 10_000_000_000


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_datetime(value: Any) -> Optional[datetime]:
    """Coerce a stored timestamp into an aware UTC datetime.

    Accepts native datetimes, dates, objects exposing ``to_datetime()``,
    ISO-8601 strings (``Z`` suffix allowed) and epoch seconds or milliseconds.
    Returns None for null values.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return ensure_utc(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    converter = getattr(value, "to_datetime", None)
    if callable(converter):
        return ensure_utc(converter())

    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp value: {value!r}")

    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) >= _EPOCH_MILLIS_THRESHOLD else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            logger.warning("Unparseable timestamp", value=text)
            raise ValueError(f"Invalid timestamp format: {value!r}") from None

    raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")


def window_start(days_back: int, now: Optional[datetime] = None) -> datetime:
    """Start of a trailing window of ``days_back`` days ending at ``now``."""
    if days_back < 0:
        raise ValueError(f"days_back must be non-negative (got {days_back})")
    return (now or utcnow()) - timedelta(days=days_back)
