"""Player box score persistence, cache-aware reads and the top players rollup."""

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from ..cache import STATS_FAMILY, CacheBackend, CacheKeys
from ..config import AppSettings, get_settings
from ..errors import InvalidInputError, NotFoundError, parse_input, service_operation
from ..league_logging import get_logger, monitor_operation
from ..models import (
    RAW_FIELDS,
    CacheCategory,
    CreatePlayerStats,
    PlayerStats,
    RawBoxScore,
    TopPlayers,
    UpdatePlayerStats,
)
from ..stats import build_top_players, check_consistency, merge_raw, stat_line
from ..store import PLAYER_STATS, Document, DocumentStore, Filter
from ..utils import chunked, to_datetime, unique, utcnow, window_start
from .games import GameService

logger = get_logger(__name__)


def _to_model(doc: Document) -> PlayerStats:
    return PlayerStats.model_validate(doc.to_record())


class PlayerStatsService:
    """CRUD over per-game player box scores.

    Derived fields are always computed here from a complete raw snapshot, and
    every write clears the ``stats:`` cache family plus the player and game
    keys it touched.
    """

    def __init__(self, store: DocumentStore, cache: CacheBackend,
                 games: Optional[GameService] = None,
                 settings: Optional[AppSettings] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.cache = cache
        self.settings = settings or get_settings()
        self.games = games or GameService(store, cache, self.settings)
        self.clock = clock

    async def _invalidate(self, player_id: Optional[str], game_id: Optional[str]) -> None:
        await self.cache.invalidate_pattern(STATS_FAMILY)
        if player_id:
            await self.cache.invalidate(CacheKeys.player_stats(player_id))
        if game_id:
            await self.cache.invalidate(CacheKeys.game_stats(game_id))

    @service_operation("Failed to create player stats")
    @monitor_operation("player_stats.create")
    async def create(self, data: Union[CreatePlayerStats, Mapping[str, Any]]) -> PlayerStats:
        dto = parse_input(CreatePlayerStats, data)
        raw = check_consistency(RawBoxScore.model_validate(dto.model_dump(include=set(RAW_FIELDS))))

        record = {
            "game_id": dto.game_id,
            "player_id": dto.player_id,
            "team_type": dto.team_type,
            "season_id": dto.season_id,
            **stat_line(raw).model_dump(),
        }
        doc = await self.store.add(PLAYER_STATS, record)
        await self._invalidate(dto.player_id, dto.game_id)

        logger.info("Player stats created", stats_id=doc.id, game_id=dto.game_id,
                    player_id=dto.player_id)
        return _to_model(doc)

    @service_operation("Failed to fetch player stats")
    async def get_by_id(self, stats_id: str) -> PlayerStats:
        doc = await self.store.get(PLAYER_STATS, stats_id)
        if doc is None:
            raise NotFoundError(f"Player stats {stats_id} not found")
        return _to_model(doc)

    @service_operation("Failed to fetch game stats")
    async def get_by_game_id(self, game_id: str) -> List[PlayerStats]:
        key = CacheKeys.game_stats(game_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return [PlayerStats.model_validate(item) for item in cached]

        docs = await self.store.query(PLAYER_STATS, Filter("game_id", "==", game_id))
        stats = [_to_model(d) for d in docs]
        await self.cache.set(key, stats, self.cache.ttl_for(CacheCategory.STATS))
        return stats

    @service_operation("Failed to fetch player stats")
    async def get_for_game(self, game_id: str, player_id: str) -> Optional[PlayerStats]:
        """One player's line in one game, or None."""
        docs = await self.store.query(
            PLAYER_STATS,
            Filter("game_id", "==", game_id),
            Filter("player_id", "==", player_id),
            limit=1,
        )
        return _to_model(docs[0]) if docs else None

    @service_operation("Failed to update player stats")
    @monitor_operation("player_stats.update")
    async def update(self, stats_id: str,
                     changes: Union[UpdatePlayerStats, Mapping[str, Any]]) -> PlayerStats:
        """Merge supplied raw fields onto the stored line and re-derive everything."""
        dto = parse_input(UpdatePlayerStats, changes)
        doc = await self.store.get(PLAYER_STATS, stats_id)
        if doc is None:
            raise NotFoundError(f"Player stats {stats_id} not found")

        current = _to_model(doc)
        merged = check_consistency(merge_raw(current.raw(), dto.supplied()))
        updated = await self.store.update(PLAYER_STATS, stats_id, stat_line(merged).model_dump())
        if updated is None:
            # Deleted between the read and the write
            raise NotFoundError(f"Player stats {stats_id} not found")

        await self._invalidate(current.player_id, current.game_id)
        logger.info("Player stats updated", stats_id=stats_id, fields=sorted(dto.supplied()))
        return _to_model(updated)

    @service_operation("Failed to delete player stats")
    @monitor_operation("player_stats.delete")
    async def delete(self, stats_id: str) -> PlayerStats:
        """Remove a line; returns what was deleted so callers can regenerate team stats."""
        doc = await self.store.get(PLAYER_STATS, stats_id)
        if doc is None:
            raise NotFoundError(f"Player stats {stats_id} not found")

        removed = _to_model(doc)
        await self.store.delete(PLAYER_STATS, stats_id)
        await self._invalidate(removed.player_id, removed.game_id)
        logger.info("Player stats deleted", stats_id=stats_id, game_id=removed.game_id)
        return removed

    @service_operation("Failed to fetch player stats")
    async def get_all_for_player(self, player_id: str) -> List[PlayerStats]:
        key = CacheKeys.player_stats(player_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return [PlayerStats.model_validate(item) for item in cached]

        docs = await self.store.query(PLAYER_STATS, Filter("player_id", "==", player_id))
        stats = [_to_model(d) for d in docs]
        await self.cache.set(key, stats, self.cache.ttl_for(CacheCategory.STATS))
        return stats

    @service_operation("Failed to fetch bulk player stats")
    @monitor_operation("player_stats.bulk")
    async def get_bulk(self, player_ids: Sequence[str]) -> Dict[str, List[PlayerStats]]:
        """Stats for many players, keyed by player id.

        Players without any stats are absent from the mapping. Lookups are
        split so no single ``in`` filter exceeds the store's limit.
        """
        ids = unique(player_ids)
        if not ids:
            return {}

        key = CacheKeys.bulk_player_stats(ids)
        cached = await self.cache.get(key)
        if cached is not None:
            return {pid: [PlayerStats.model_validate(item) for item in items]
                    for pid, items in cached.items()}

        result: Dict[str, List[PlayerStats]] = {}
        for chunk in chunked(ids, self.store.in_query_limit):
            for doc in await self.store.query(PLAYER_STATS, Filter("player_id", "in", chunk)):
                stats = _to_model(doc)
                result.setdefault(stats.player_id, []).append(stats)

        await self.cache.set(key, result, self.cache.ttl_for(CacheCategory.STATS))
        return result

    async def _stats_for_games(self, game_ids: Sequence[str]) -> List[PlayerStats]:
        stats: List[PlayerStats] = []
        for chunk in chunked(list(game_ids), self.store.in_query_limit):
            docs = await self.store.query(PLAYER_STATS, Filter("game_id", "in", chunk))
            stats.extend(_to_model(d) for d in docs)
        return stats

    @service_operation("Failed to compute top players")
    @monitor_operation("player_stats.top_players")
    async def get_top_players(self, days_back: Optional[int] = None,
                              end_date: Optional[Union[datetime, str]] = None) -> TopPlayers:
        """Leaderboard over games dated within ``[now - days_back, end_date or now]``.

        An empty window yields an all-null leaderboard that is not cached.
        """
        days = self.settings.TOP_PLAYERS_DAYS_BACK if days_back is None else days_back
        if days < 0:
            raise InvalidInputError("days_back must be non-negative",
                                    details=[{"field": "daysBack", "message": f"got {days}"}])
        try:
            end = to_datetime(end_date)
        except ValueError as e:
            raise InvalidInputError("Invalid end date",
                                    details=[{"field": "endDate", "message": str(e)}]) from e

        key = CacheKeys.top_players(days, end)
        cached = await self.cache.get(key)
        if cached is not None:
            return TopPlayers.model_validate(cached)

        now = self.clock()
        games = await self.games.get_games_in_window(window_start(days, now), end or now)
        if not games:
            logger.debug("No games in leaderboard window", days_back=days)
            return TopPlayers()

        stats = await self._stats_for_games([g.id for g in games])
        top = build_top_players(stats, self.settings.BEST_SHOOTER_MIN_ATTEMPTS)
        await self.cache.set(key, top, self.cache.ttl_for(CacheCategory.TOP_PLAYERS))

        logger.info("Top players computed", days_back=days, games=len(games),
                    players=len(top.all_player_aggregates))
        return top
