"""Season management and the batched season detach on delete."""

from typing import Any, Dict, List, Mapping, Optional, Union

from ..cache import STATS_FAMILY, TEAM_STATS_FAMILY, CacheBackend, CacheKeys
from ..config import AppSettings, get_settings
from ..errors import InvalidInputError, NotFoundError, parse_input, service_operation
from ..league_logging import get_logger, monitor_operation
from ..models import CacheCategory, CreateSeason, Season, UpdateSeason
from ..store import GAMES, PLAYER_STATS, SEASONS, TEAM_STATS, DocumentStore, Filter

logger = get_logger(__name__)

# Collections carrying a season_id reference
SEASON_REFERENCES = (GAMES, PLAYER_STATS, TEAM_STATS)


class SeasonService:
    def __init__(self, store: DocumentStore, cache: CacheBackend,
                 settings: Optional[AppSettings] = None):
        self.store = store
        self.cache = cache
        self.settings = settings or get_settings()

    async def _invalidate_lists(self) -> None:
        await self.cache.invalidate(CacheKeys.all_seasons())
        await self.cache.invalidate(CacheKeys.active_season())

    async def _deactivate_others(self, keep_id: Optional[str] = None) -> None:
        active = await self.store.query(SEASONS, Filter("is_active", "==", True))
        others = [d.id for d in active if d.id != keep_id]
        if others:
            await self.store.update_all(SEASONS, others, {"is_active": False})
            for season_id in others:
                await self.cache.invalidate(CacheKeys.season(season_id))

    @service_operation("Failed to create season")
    @monitor_operation("seasons.create")
    async def create_season(self, data: Union[CreateSeason, Mapping[str, Any]]) -> Season:
        """Create a season; an active one deactivates any other active season."""
        dto = parse_input(CreateSeason, data)
        if dto.is_active:
            await self._deactivate_others()

        doc = await self.store.add(SEASONS, dto.model_dump())
        await self._invalidate_lists()
        logger.info("Season created", season_id=doc.id, name=dto.name, active=dto.is_active)
        return Season.model_validate(doc.to_record())

    @service_operation("Failed to update season")
    @monitor_operation("seasons.update")
    async def update_season(self, season_id: str,
                            changes: Union[UpdateSeason, Mapping[str, Any]]) -> Season:
        dto = parse_input(UpdateSeason, changes)
        fields = dto.supplied()
        doc = await self.store.get(SEASONS, season_id)
        if doc is None:
            raise NotFoundError(f"Season {season_id} not found")

        merged = Season.model_validate({**doc.to_record(), **fields})
        if merged.finish_date is not None and merged.finish_date < merged.begin_date:
            raise InvalidInputError("Finish date must not precede begin date",
                                    details=[{"field": "finishDate", "message": "before beginDate"}])
        if fields.get("is_active"):
            await self._deactivate_others(keep_id=season_id)

        updated = await self.store.update(SEASONS, season_id, fields) if fields else doc
        if updated is None:
            raise NotFoundError(f"Season {season_id} not found")

        await self.cache.invalidate(CacheKeys.season(season_id))
        await self._invalidate_lists()
        logger.info("Season updated", season_id=season_id, fields=sorted(fields))
        return Season.model_validate(updated.to_record())

    @service_operation("Failed to fetch season")
    async def get_season(self, season_id: str) -> Season:
        key = CacheKeys.season(season_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return Season.model_validate(cached)

        doc = await self.store.get(SEASONS, season_id)
        if doc is None:
            raise NotFoundError(f"Season {season_id} not found")
        season = Season.model_validate(doc.to_record())
        await self.cache.set(key, season, self.cache.ttl_for(CacheCategory.GAMES))
        return season

    @service_operation("Failed to fetch active season")
    async def get_active_season(self) -> Optional[Season]:
        key = CacheKeys.active_season()
        cached = await self.cache.get(key)
        if cached is not None:
            return Season.model_validate(cached)

        docs = await self.store.query(SEASONS, Filter("is_active", "==", True), limit=1)
        if not docs:
            return None
        season = Season.model_validate(docs[0].to_record())
        await self.cache.set(key, season, self.cache.ttl_for(CacheCategory.GAMES))
        return season

    @service_operation("Failed to list seasons")
    async def list_seasons(self) -> List[Season]:
        """Every season, most recent begin date first."""
        key = CacheKeys.all_seasons()
        cached = await self.cache.get(key)
        if cached is not None:
            return [Season.model_validate(item) for item in cached]

        docs = await self.store.query(SEASONS)
        seasons = sorted((Season.model_validate(d.to_record()) for d in docs),
                         key=lambda s: s.begin_date, reverse=True)
        await self.cache.set(key, seasons, self.cache.ttl_for(CacheCategory.GAMES))
        return seasons

    @service_operation("Failed to delete season")
    @monitor_operation("seasons.delete")
    async def delete_season(self, season_id: str) -> Dict[str, int]:
        """Detach every record from a season, then delete the season.

        Each collection is updated in sequential batches of at most
        ``STORE_WRITE_BATCH_LIMIT`` writes, every batch committed atomically.
        The cascade as a whole is not atomic: if it stops part way, running
        it again detaches whatever is left and finishes the delete.

        Returns:
            Number of detached rows per collection

        Raises:
            NotFoundError: If the season does not exist
            InvalidInputError: If the season is still active
        """
        doc = await self.store.get(SEASONS, season_id)
        if doc is None:
            raise NotFoundError(f"Season {season_id} not found")
        if doc.data.get("is_active"):
            raise InvalidInputError("Active seasons cannot be deleted; deactivate the season first")

        detached = {}
        for collection in SEASON_REFERENCES:
            refs = await self.store.query(collection, Filter("season_id", "==", season_id))
            detached[collection] = await self.store.update_all(
                collection, [r.id for r in refs], {"season_id": None}
            )
            logger.debug("Season references detached", collection=collection,
                         count=detached[collection])

        await self.store.delete(SEASONS, season_id)

        await self.cache.invalidate(CacheKeys.season(season_id))
        await self._invalidate_lists()
        # Cached games and stats still carry the old season id
        await self.cache.invalidate(CacheKeys.all_games())
        await self.cache.invalidate_pattern("game:")
        await self.cache.invalidate_pattern(STATS_FAMILY)
        await self.cache.invalidate_pattern(TEAM_STATS_FAMILY)

        logger.info("Season deleted", season_id=season_id, **detached)
        return detached
