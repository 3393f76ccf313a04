"""Redis-backed cache with connection retries and degraded-mode recovery."""

import json
import time
from typing import Any, Callable, List, Mapping, Optional

from pydantic_core import to_jsonable_python
from redis.asyncio import Redis
from redis.exceptions import RedisError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from ..config import AppSettings
from ..league_logging import get_logger, metrics
from ..models.enums import CacheCategory
from ..utils.batching import chunked
from .base import CacheBackend, CacheState

logger = get_logger(__name__)

_BACKEND_ERRORS = (RedisError, OSError)
_GLOB_SPECIAL = "*?[]\\"
_DELETE_CHUNK = 500


def _escape_glob(text: str) -> str:
    return "".join(f"\\{ch}" if ch in _GLOB_SPECIAL else ch for ch in text)


def _encode(value: Any) -> str:
    return json.dumps(to_jsonable_python(value, by_alias=True))


class RedisCache(CacheBackend):
    """Cache on ``redis.asyncio``.

    The cache starts Connecting, becomes Ready after a successful ping and
    falls back to Degraded when connecting exhausts its retries or any later
    operation fails. While Degraded every read is a miss and every write is a
    no-op; once ``recovery_after`` seconds have passed the next operation
    retries the backend with a single ping and resumes on success.
    """

    def __init__(self, client: Optional[Redis], *,
                 ttls: Optional[Mapping[str, int]] = None,
                 retry_max: int = 5,
                 retry_step: float = 0.5,
                 retry_cap: float = 2.0,
                 recovery_after: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        super().__init__(ttls)
        self._client = client
        self._retry_max = retry_max
        self._retry_step = retry_step
        self._retry_cap = retry_cap
        self._recovery_after = recovery_after
        self._clock = clock
        self._state = CacheState.CONNECTING
        self._degraded_at: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: AppSettings, client: Optional[Redis] = None) -> "RedisCache":
        """Build the cache from settings; a disabled cache has no client at all."""
        if client is None and settings.CACHE_ENABLED:
            client = Redis.from_url(
                settings.REDIS_URL,
                username=settings.REDIS_USERNAME,
                password=settings.REDIS_PASSWORD,
                socket_connect_timeout=settings.CACHE_CONNECT_TIMEOUT_S,
                socket_keepalive=True,
                health_check_interval=30,
                decode_responses=True,
            )
        return cls(
            client,
            ttls=settings.cache_ttls(),
            retry_max=settings.CACHE_RETRY_MAX,
            retry_step=settings.CACHE_RETRY_STEP_S,
            retry_cap=settings.CACHE_RETRY_CAP_S,
            recovery_after=settings.CACHE_RECOVERY_S,
        )

    @property
    def state(self) -> CacheState:
        return self._state

    def _set_state(self, state: CacheState, **context: Any) -> None:
        if state is self._state:
            return
        logger.info("Cache state changed", previous=self._state.value, state=state.value, **context)
        metrics.increment("cache.state_change", tags={"state": state.value})
        self._state = state

    def _degrade(self, error: BaseException, operation: str) -> None:
        metrics.increment("cache.error", tags={"operation": operation})
        logger.warning("Cache unavailable, continuing without it",
                       operation=operation, error=str(error))
        self._degraded_at = self._clock()
        self._set_state(CacheState.DEGRADED, reason=operation)

    async def connect(self) -> CacheState:
        if self._client is None:
            logger.info("Cache disabled, running without it")
            self._degraded_at = self._clock()
            self._set_state(CacheState.DEGRADED, reason="disabled")
            return self._state

        reconnecting = self._degraded_at is not None
        self._set_state(CacheState.CONNECTING)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retry_max),
                wait=wait_incrementing(start=self._retry_step, increment=self._retry_step,
                                       max=self._retry_cap),
                retry=retry_if_exception_type(_BACKEND_ERRORS),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.info("Retrying cache connection",
                                    attempt=attempt.retry_state.attempt_number,
                                    max_attempts=self._retry_max)
                    await self._client.ping()
            if reconnecting:
                await self._resync()
        except (*_BACKEND_ERRORS, RetryError) as e:
            self._degrade(e, "connect")
            return self._state

        self._set_state(CacheState.READY)
        return self._state

    async def _available(self) -> bool:
        if self._state is CacheState.READY:
            return True
        if self._state is not CacheState.DEGRADED or self._client is None:
            return False
        if self._degraded_at is not None and self._clock() - self._degraded_at < self._recovery_after:
            return False

        try:
            await self._client.ping()
            await self._resync()
        except _BACKEND_ERRORS as e:
            self._degraded_at = self._clock()
            logger.debug("Cache recovery ping failed", error=str(e))
            return False
        self._set_state(CacheState.READY, reason="recovered")
        return True

    async def _resync(self) -> None:
        # Invalidations skipped while degraded leave stale entries behind
        await self._client.flushdb()
        logger.info("Cache flushed after outage")

    async def get(self, key: str) -> Optional[Any]:
        if not await self._available():
            metrics.increment("cache.miss")
            return None
        try:
            raw = await self._client.get(key)
        except _BACKEND_ERRORS as e:
            self._degrade(e, "get")
            metrics.increment("cache.miss")
            return None

        if raw is None:
            metrics.increment("cache.miss")
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry", key=key)
            metrics.increment("cache.miss")
            return None
        metrics.increment("cache.hit")
        return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        if not await self._available():
            return
        expiry = ttl if ttl is not None else self.ttl_for(CacheCategory.PLAYERS)
        try:
            await self._client.set(key, _encode(value), ex=expiry)
        except _BACKEND_ERRORS as e:
            self._degrade(e, "set")

    async def invalidate(self, key: str) -> None:
        if not await self._available():
            return
        try:
            await self._client.delete(key)
        except _BACKEND_ERRORS as e:
            self._degrade(e, "invalidate")

    async def invalidate_pattern(self, substring: str) -> int:
        if not await self._available():
            return 0
        try:
            keys: List[str] = [
                key async for key in self._client.scan_iter(match=f"*{_escape_glob(substring)}*",
                                                            count=_DELETE_CHUNK)
            ]
            removed = 0
            for chunk in chunked(keys, _DELETE_CHUNK):
                removed += await self._client.delete(*chunk)
        except _BACKEND_ERRORS as e:
            self._degrade(e, "invalidate_pattern")
            return 0
        if removed:
            logger.debug("Cache keys invalidated", pattern=substring, count=removed)
        return removed

    async def clear_all(self) -> None:
        if not await self._available():
            return
        try:
            await self._client.flushdb()
        except _BACKEND_ERRORS as e:
            self._degrade(e, "clear_all")
            return
        logger.info("Cache cleared")

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except _BACKEND_ERRORS as e:
            logger.warning("Error closing cache connection", error=str(e))
        self._client = None
        self._degraded_at = self._clock()
        self._set_state(CacheState.DEGRADED, reason="closed")
