"""Player stat writes followed by regeneration of the affected team aggregate."""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .league_logging import get_logger
from .models import CreatePlayerStats, PlayerStats, TeamStats, UpdatePlayerStats
from .services import PlayerStatsService, TeamStatsService

logger = get_logger(__name__)


@dataclass
class StatsChange:
    """Outcome of a player stat write.

    ``team_stats`` is None when the write left the team without any players
    and its aggregate was removed.
    """

    player_stats: PlayerStats
    team_stats: Optional[TeamStats]


class StatsWorkflow:
    """Keeps TeamStats in step with every PlayerStats create, update and delete."""

    def __init__(self, player_stats: PlayerStatsService, team_stats: TeamStatsService):
        self.player_stats = player_stats
        self.team_stats = team_stats

    async def create_player_stats(self, data: Union[CreatePlayerStats, Mapping[str, Any]]) -> StatsChange:
        created = await self.player_stats.create(data)
        team = await self.team_stats.generate(created.game_id, created.team_type)
        return StatsChange(created, team)

    async def update_player_stats(self, stats_id: str,
                                  changes: Union[UpdatePlayerStats, Mapping[str, Any]]) -> StatsChange:
        updated = await self.player_stats.update(stats_id, changes)
        team = await self.team_stats.recalculate(updated.game_id, updated.team_type)
        return StatsChange(updated, team)

    async def delete_player_stats(self, stats_id: str) -> StatsChange:
        removed = await self.player_stats.delete(stats_id)
        remaining = [
            s for s in await self.player_stats.get_by_game_id(removed.game_id)
            if s.team_type is removed.team_type
        ]
        if not remaining:
            await self.team_stats.delete_for_team(removed.game_id, removed.team_type)
            logger.info("Team has no players left, aggregate removed",
                        game_id=removed.game_id, team_type=removed.team_type.value)
            return StatsChange(removed, None)

        team = await self.team_stats.recalculate(removed.game_id, removed.team_type)
        return StatsChange(removed, team)
