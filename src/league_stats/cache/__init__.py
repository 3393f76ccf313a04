"""Best-effort caching for computed stats and entity lookups."""

from .base import DEFAULT_TTLS, CacheBackend, CacheState
from .keys import STATS_FAMILY, TEAM_STATS_FAMILY, CacheKeys
from .redis_cache import RedisCache

__all__ = [
    "CacheBackend",
    "CacheKeys",
    "CacheState",
    "DEFAULT_TTLS",
    "RedisCache",
    "STATS_FAMILY",
    "TEAM_STATS_FAMILY",
]
