"""Team aggregates recomputed in full from their player box scores."""

from typing import Any, Dict, List, Optional, Tuple, Union

from ..cache import CacheBackend, CacheKeys
from ..config import AppSettings, get_settings
from ..errors import (
    AggregationError,
    AppError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    service_operation,
)
from ..league_logging import get_logger, metrics, monitor_operation
from ..models import CacheCategory, PlayerStats, StatLine, TeamStats, TeamType
from ..stats import stat_line, sum_raw
from ..store import PLAYER_STATS, TEAM_STATS, Document, DocumentStore, Filter
from .player_stats import PlayerStatsService

logger = get_logger(__name__)

# Rewrites allowed while contributing lines keep changing underneath
MAX_CONVERGENCE_PASSES = 3


def _to_model(doc: Document) -> TeamStats:
    return TeamStats.model_validate(doc.to_record())


def _team(team_type: Union[TeamType, str]) -> TeamType:
    try:
        return TeamType(team_type)
    except ValueError:
        raise InvalidInputError(
            f"Unknown team type: {team_type!r}",
            details=[{"field": "teamType", "message": "expected TEAM_A or TEAM_B"}],
        ) from None


def _season_of(lines: List[PlayerStats]) -> Optional[str]:
    return next((line.season_id for line in lines if line.season_id), None)


def _fingerprint(lines: List[PlayerStats]) -> List[Tuple[str, Any]]:
    return sorted((line.id, line.updated_at) for line in lines)


class TeamStatsService:
    """Derives and stores one TeamStats row per (game, team).

    ``generate`` never applies a delta: it re-reads every contributing player
    line and overwrites the aggregate, so repeated or interleaved calls all
    converge on the same sum. The row is only written once the whole
    computation has succeeded.
    """

    def __init__(self, store: DocumentStore, cache: CacheBackend,
                 player_stats: PlayerStatsService,
                 settings: Optional[AppSettings] = None):
        self.store = store
        self.cache = cache
        self.player_stats = player_stats
        self.settings = settings or get_settings()

    async def _find(self, game_id: str, team_type: TeamType) -> Optional[Document]:
        docs = await self.store.query(
            TEAM_STATS,
            Filter("game_id", "==", game_id),
            Filter("team_type", "==", team_type),
            limit=1,
        )
        return docs[0] if docs else None

    async def _invalidate(self, game_id: str, team_stats_id: Optional[str] = None) -> None:
        await self.cache.invalidate(CacheKeys.game_team_stats(game_id))
        if team_stats_id:
            await self.cache.invalidate(CacheKeys.team_stats(team_stats_id))

    async def _current_lines(self, game_id: str, team: TeamType) -> List[PlayerStats]:
        docs = await self.store.query(
            PLAYER_STATS,
            Filter("game_id", "==", game_id),
            Filter("team_type", "==", team),
        )
        return [PlayerStats.model_validate(d.to_record()) for d in docs]

    async def _upsert(self, game_id: str, team: TeamType, values: Dict[str, Any]) -> Document:
        existing = await self._find(game_id, team)
        if existing is None:
            try:
                return await self.store.add(TEAM_STATS, {"game_id": game_id, "team_type": team, **values})
            except ConflictError:
                # Another regeneration inserted the row first
                existing = await self._find(game_id, team)
                if existing is None:
                    raise
        doc = await self.store.update(TEAM_STATS, existing.id, values)
        if doc is None:
            raise NotFoundError(f"Team stats {existing.id} not found")
        return doc

    @service_operation("Failed to generate team stats")
    @monitor_operation("team_stats.generate")
    async def generate(self, game_id: str, team_type: Union[TeamType, str]) -> TeamStats:
        """Recompute the team's aggregate from its players and upsert it.

        After writing, the contributing lines are re-read from the store; if
        they changed meanwhile (a concurrent write, or a stale cached read)
        the sum is recomputed from the fresh lines and written again.
        """
        team = _team(team_type)
        lines = [s for s in await self.player_stats.get_by_game_id(game_id) if s.team_type is team]
        if not lines:
            raise NotFoundError(f"No player stats for {team.value} in game {game_id}")

        for _ in range(MAX_CONVERGENCE_PASSES):
            totals = self._totals(game_id, team, lines)
            doc = await self._upsert(game_id, team, {"season_id": _season_of(lines), **totals.model_dump()})
            current = await self._current_lines(game_id, team)
            if not current or _fingerprint(current) == _fingerprint(lines):
                break
            logger.debug("Team contributors changed during regeneration, recomputing",
                         game_id=game_id, team_type=team.value)
            lines = current

        await self._invalidate(game_id, doc.id)
        logger.info("Team stats generated", game_id=game_id, team_type=team.value,
                    contributors=len(lines), total_points=totals.total_points)
        return _to_model(doc)

    def _totals(self, game_id: str, team: TeamType, lines: List[PlayerStats]) -> StatLine:
        try:
            return stat_line(sum_raw(line.raw() for line in lines))
        except AppError:
            raise
        except Exception as e:
            metrics.increment("team_stats.aggregation_failures")
            logger.error("Team stats aggregation failed", game_id=game_id,
                         team_type=team.value, error=str(e), exc_info=e)
            raise AggregationError() from e

    async def recalculate(self, game_id: str, team_type: Union[TeamType, str]) -> TeamStats:
        return await self.generate(game_id, team_type)

    @service_operation("Failed to fetch team stats")
    async def get_by_id(self, team_stats_id: str) -> TeamStats:
        key = CacheKeys.team_stats(team_stats_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return TeamStats.model_validate(cached)

        doc = await self.store.get(TEAM_STATS, team_stats_id)
        if doc is None:
            raise NotFoundError(f"Team stats {team_stats_id} not found")
        stats = _to_model(doc)
        await self.cache.set(key, stats, self.cache.ttl_for(CacheCategory.TEAMS))
        return stats

    @service_operation("Failed to fetch team stats")
    async def get_by_game_id(self, game_id: str) -> List[TeamStats]:
        key = CacheKeys.game_team_stats(game_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return [TeamStats.model_validate(item) for item in cached]

        docs = await self.store.query(TEAM_STATS, Filter("game_id", "==", game_id))
        stats = [_to_model(d) for d in docs]
        await self.cache.set(key, stats, self.cache.ttl_for(CacheCategory.TEAMS))
        return stats

    @service_operation("Failed to fetch team stats")
    async def get_for_game(self, game_id: str, team_type: Union[TeamType, str]) -> Optional[TeamStats]:
        doc = await self._find(game_id, _team(team_type))
        return _to_model(doc) if doc else None

    @service_operation("Failed to delete team stats")
    async def delete(self, team_stats_id: str) -> None:
        doc = await self.store.get(TEAM_STATS, team_stats_id)
        if doc is None:
            raise NotFoundError(f"Team stats {team_stats_id} not found")
        await self.store.delete(TEAM_STATS, team_stats_id)
        await self._invalidate(doc.data["game_id"], team_stats_id)
        logger.info("Team stats deleted", team_stats_id=team_stats_id)

    @service_operation("Failed to delete team stats")
    async def delete_for_team(self, game_id: str, team_type: Union[TeamType, str]) -> bool:
        """Drop the aggregate of a team that no longer has any players."""
        team = _team(team_type)
        doc = await self._find(game_id, team)
        if doc is None:
            return False
        await self.store.delete(TEAM_STATS, doc.id)
        await self._invalidate(game_id, doc.id)
        logger.info("Stale team stats removed", game_id=game_id, team_type=team.value)
        return True
