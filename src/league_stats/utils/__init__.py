"""Shared utilities."""

from .batching import chunked, unique
from .dates import ensure_utc, to_datetime, utcnow, window_start

__all__ = [
    "chunked",
    "unique",
    "ensure_utc",
    "to_datetime",
    "utcnow",
    "window_start",
]
