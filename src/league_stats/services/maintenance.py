"""Housekeeping jobs: orphaned stats cleanup and cache clearing."""

from typing import Dict, Optional

from ..cache import STATS_FAMILY, TEAM_STATS_FAMILY, CacheBackend, CacheKeys
from ..errors import service_operation
from ..league_logging import get_logger, monitor_operation
from ..store import GAMES, PLAYER_STATS, TEAM_STATS, DocumentStore

logger = get_logger(__name__)


class MaintenanceService:
    def __init__(self, store: DocumentStore, cache: CacheBackend):
        self.store = store
        self.cache = cache

    @service_operation("Failed to clean up orphaned stats")
    @monitor_operation("maintenance.cleanup_orphans")
    async def cleanup_orphaned_stats(self, dry_run: bool = False) -> Dict[str, int]:
        """Remove player and team stats whose game no longer exists.

        Args:
            dry_run: Count orphans without deleting them

        Returns:
            Orphan count per collection
        """
        valid_games = {doc.id for doc in await self.store.query(GAMES)}

        orphans = {}
        for collection in (PLAYER_STATS, TEAM_STATS):
            docs = await self.store.query(collection)
            orphan_ids = [d.id for d in docs if d.data.get("game_id") not in valid_games]
            orphans[collection] = len(orphan_ids)
            if orphan_ids and not dry_run:
                await self.store.delete_all(collection, orphan_ids)

        if not dry_run and any(orphans.values()):
            await self.cache.invalidate_pattern(STATS_FAMILY)
            await self.cache.invalidate_pattern(TEAM_STATS_FAMILY)

        logger.info("Orphaned stats cleanup finished", dry_run=dry_run, **orphans)
        return orphans

    async def clear_cache(self, pattern: Optional[str] = None) -> Optional[int]:
        """Drop cached entries containing ``pattern``, or everything when omitted.

        Returns the number of keys removed for a pattern, None for a full flush.
        """
        if pattern:
            removed = await self.cache.invalidate_pattern(pattern)
            logger.info("Cache entries cleared", pattern=pattern, count=removed)
            return removed
        await self.cache.clear_all()
        return None

    async def clear_season_cache(self) -> int:
        await self.cache.invalidate(CacheKeys.all_seasons())
        await self.cache.invalidate(CacheKeys.active_season())
        return await self.cache.invalidate_pattern("season:")
