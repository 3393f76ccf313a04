"""Domain services over the document store and cache."""

from .games import GameService
from .maintenance import MaintenanceService
from .player_stats import PlayerStatsService
from .seasons import SeasonService
from .team_stats import TeamStatsService

__all__ = [
    "GameService",
    "MaintenanceService",
    "PlayerStatsService",
    "SeasonService",
    "TeamStatsService",
]
