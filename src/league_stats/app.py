"""Composition root wiring the store, cache and services together."""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .cache import CacheBackend, RedisCache
from .config import AppSettings, get_settings
from .league_logging import get_logger
from .services import GameService, MaintenanceService, PlayerStatsService, SeasonService, TeamStatsService
from .store import DocumentStore, SqlDocumentStore
from .utils.dates import utcnow
from .workflow import StatsWorkflow

logger = get_logger(__name__)


class LeagueApp:
    """Owns the process-wide store and cache and the services built on them.

    Collaborators are created once here and handed to every service, so tests
    can substitute either one. Use ``startup()``/``shutdown()`` explicitly or
    ``async with LeagueApp(...) as app``.
    """

    def __init__(self, settings: Optional[AppSettings] = None, *,
                 store: Optional[DocumentStore] = None,
                 cache: Optional[CacheBackend] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.settings = settings or get_settings()
        self.store = store or SqlDocumentStore.from_settings(self.settings)
        self.cache = cache or RedisCache.from_settings(self.settings)

        self.games = GameService(self.store, self.cache, self.settings)
        self.seasons = SeasonService(self.store, self.cache, self.settings)
        self.player_stats = PlayerStatsService(self.store, self.cache, self.games, self.settings,
                                               clock=clock)
        self.team_stats = TeamStatsService(self.store, self.cache, self.player_stats, self.settings)
        self.workflow = StatsWorkflow(self.player_stats, self.team_stats)
        self.maintenance = MaintenanceService(self.store, self.cache)
        self._started = False

    async def startup(self) -> None:
        """Ensure tables exist and connect the cache; a failed cache only degrades."""
        if self._started:
            return
        if isinstance(self.store, SqlDocumentStore):
            await self.store.create_tables()
        state = await self.cache.connect()
        self._started = True
        logger.info("League stats backend started", env=self.settings.ENV.value, cache_state=state.value)

    async def shutdown(self) -> None:
        if not self._started:
            return
        await self.cache.close()
        await self.store.close()
        self._started = False
        logger.info("League stats backend stopped")

    async def health(self) -> Dict[str, Any]:
        """Store reachability and cache state.

        The backend is healthy whenever the store answers; a degraded cache is
        reported but does not make the backend unhealthy.
        """
        store_ok = await self.store.ping()
        return {
            "status": "healthy" if store_ok else "unhealthy",
            "store": "ok" if store_ok else "unreachable",
            "cache": self.cache.state.value,
            "env": self.settings.ENV.value,
        }

    async def __aenter__(self) -> "LeagueApp":
        await self.startup()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
