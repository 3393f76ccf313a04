"""Game lookups, windowed game queries and the cascading game delete."""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from ..cache import STATS_FAMILY, TEAM_STATS_FAMILY, CacheBackend, CacheKeys
from ..config import AppSettings, get_settings
from ..errors import NotFoundError, parse_input, service_operation
from ..league_logging import get_logger, monitor_operation
from ..models import CacheCategory, CreateGame, Game, GameStatus, UpdateGame
from ..store import GAMES, PLAYER_STATS, TEAM_STATS, DocumentStore, Filter
from ..utils.dates import to_datetime

logger = get_logger(__name__)


def _newest_first(games: List[Game]) -> List[Game]:
    return sorted(games, key=lambda g: g.date, reverse=True)


class GameService:
    """Games collection access with cache-aware reads."""

    def __init__(self, store: DocumentStore, cache: CacheBackend,
                 settings: Optional[AppSettings] = None):
        self.store = store
        self.cache = cache
        self.settings = settings or get_settings()

    @service_operation("Failed to create game")
    @monitor_operation("games.create")
    async def create_game(self, data: Union[CreateGame, Mapping[str, Any]]) -> Game:
        dto = parse_input(CreateGame, data)
        doc = await self.store.add(GAMES, dto.model_dump())
        await self.cache.invalidate(CacheKeys.all_games())
        logger.info("Game created", game_id=doc.id, game_number=dto.game_number)
        return Game.model_validate(doc.to_record())

    @service_operation("Failed to update game")
    @monitor_operation("games.update")
    async def update_game(self, game_id: str, changes: Union[UpdateGame, Mapping[str, Any]]) -> Game:
        """Write the supplied fields of a game.

        A new date moves the game in or out of leaderboard windows, so the
        cached stats family is dropped as well.
        """
        dto = parse_input(UpdateGame, changes)
        fields = dto.supplied()
        doc = await self.store.get(GAMES, game_id)
        if doc is None:
            raise NotFoundError(f"Game {game_id} not found")
        if not fields:
            return Game.model_validate(doc.to_record())

        updated = await self.store.update(GAMES, game_id, fields)
        if updated is None:
            raise NotFoundError(f"Game {game_id} not found")

        await self.cache.invalidate(CacheKeys.game(game_id))
        await self.cache.invalidate(CacheKeys.all_games())
        if "date" in fields:
            await self.cache.invalidate_pattern(STATS_FAMILY)

        logger.info("Game updated", game_id=game_id, fields=sorted(fields))
        return Game.model_validate(updated.to_record())

    @service_operation("Failed to fetch game")
    async def get_game(self, game_id: str) -> Game:
        key = CacheKeys.game(game_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return Game.model_validate(cached)

        doc = await self.store.get(GAMES, game_id)
        if doc is None:
            raise NotFoundError(f"Game {game_id} not found")
        game = Game.model_validate(doc.to_record())
        await self.cache.set(key, game, self.cache.ttl_for(CacheCategory.GAMES))
        return game

    @service_operation("Failed to list games")
    async def list_games(self) -> List[Game]:
        """Every game, newest first."""
        key = CacheKeys.all_games()
        cached = await self.cache.get(key)
        if cached is not None:
            return [Game.model_validate(item) for item in cached]

        docs = await self.store.query(GAMES)
        games = _newest_first([Game.model_validate(d.to_record()) for d in docs])
        await self.cache.set(key, games, self.cache.ttl_for(CacheCategory.GAMES))
        return games

    @service_operation("Failed to list games by status")
    async def get_games_by_status(self, status: Union[GameStatus, str]) -> List[Game]:
        docs = await self.store.query(GAMES, Filter("status", "==", GameStatus(status)))
        return _newest_first([Game.model_validate(d.to_record()) for d in docs])

    @service_operation("Failed to fetch games in window")
    async def get_games_in_window(self, start: datetime, end: Optional[datetime] = None) -> List[Game]:
        """Games dated within ``[start, end]``; open ended when ``end`` is None."""
        filters = [Filter("date", ">=", to_datetime(start))]
        if end is not None:
            filters.append(Filter("date", "<=", to_datetime(end)))
        docs = await self.store.query(GAMES, *filters)
        return [Game.model_validate(d.to_record()) for d in docs]

    @service_operation("Failed to delete game")
    @monitor_operation("games.delete")
    async def delete_game(self, game_id: str) -> Dict[str, int]:
        """Delete a game along with its player and team stats.

        Dependent rows go first, in sequential atomic batches, and the game
        document last, so an interrupted run can simply be repeated.

        Returns:
            Number of removed rows per collection
        """
        if await self.store.get(GAMES, game_id) is None:
            raise NotFoundError(f"Game {game_id} not found")

        logger.info("Starting cascade delete", game_id=game_id)
        removed = {}
        for collection in (PLAYER_STATS, TEAM_STATS):
            docs = await self.store.query(collection, Filter("game_id", "==", game_id))
            removed[collection] = await self.store.delete_all(collection, [d.id for d in docs])

        await self.store.delete(GAMES, game_id)
        removed[GAMES] = 1

        await self.cache.invalidate(CacheKeys.game(game_id))
        await self.cache.invalidate(CacheKeys.all_games())
        await self.cache.invalidate_pattern(STATS_FAMILY)
        await self.cache.invalidate_pattern(TEAM_STATS_FAMILY)

        logger.info("Game and related data deleted", game_id=game_id,
                    player_stats=removed[PLAYER_STATS], team_stats=removed[TEAM_STATS])
        return removed
