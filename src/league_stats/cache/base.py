"""Best-effort key/value cache contract."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Mapping, Optional, Union

from ..models.enums import CacheCategory


class CacheState(str, Enum):
    """Connection lifecycle of a cache backend."""

    CONNECTING = "connecting"
    READY = "ready"
    DEGRADED = "degraded"


DEFAULT_TTLS = {
    CacheCategory.PLAYERS.value: 3600,
    CacheCategory.GAMES.value: 1800,
    CacheCategory.STATS.value: 1800,
    CacheCategory.TOP_PLAYERS.value: 600,
    CacheCategory.TEAMS.value: 1800,
}


class CacheBackend(ABC):
    """Process-wide cache used purely as an optimisation.

    Every operation is best-effort and never raises: a miss, an unavailable
    backend and a disabled cache all look like ``None`` to readers, and writes
    silently do nothing.
    """

    def __init__(self, ttls: Optional[Mapping[str, int]] = None):
        self._ttls = {**DEFAULT_TTLS, **(ttls or {})}

    def ttl_for(self, category: Union[CacheCategory, str]) -> int:
        """Default TTL in seconds for a category of cached data."""
        key = category.value if isinstance(category, CacheCategory) else category
        return self._ttls[key]

    @property
    @abstractmethod
    def state(self) -> CacheState:
        """Current connection state."""

    @property
    def is_ready(self) -> bool:
        return self.state is CacheState.READY

    @abstractmethod
    async def connect(self) -> CacheState:
        """Establish the backend connection; ends Ready or Degraded."""

    @abstractmethod
    async def close(self) -> None:
        """Release the backend connection."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Decoded value, or None on miss or unavailability."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store ``value`` for ``ttl`` seconds (players TTL when omitted)."""

    @abstractmethod
    async def invalidate(self, key: str) -> None:
        """Delete one key."""

    @abstractmethod
    async def invalidate_pattern(self, substring: str) -> int:
        """Delete every key containing ``substring``; returns the count removed."""

    @abstractmethod
    async def clear_all(self) -> None:
        """Drop every cached entry."""
