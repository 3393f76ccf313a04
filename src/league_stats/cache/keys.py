"""Cache key generators, kept in one place so reads and invalidations agree."""

from datetime import datetime
from typing import Iterable, Optional

STATS_FAMILY = "stats:"
TEAM_STATS_FAMILY = "teamStats:"


class CacheKeys:
    """Key naming for every cached collection."""

    # Games
    @staticmethod
    def all_games() -> str:
        return "games:all"

    @staticmethod
    def game(game_id: str) -> str:
        return f"game:{game_id}"

    # Seasons
    @staticmethod
    def all_seasons() -> str:
        return "seasons:all"

    @staticmethod
    def season(season_id: str) -> str:
        return f"season:{season_id}"

    @staticmethod
    def active_season() -> str:
        return "season:active"

    # Player stats
    @staticmethod
    def player_stats(player_id: str) -> str:
        return f"stats:player:{player_id}"

    @staticmethod
    def game_stats(game_id: str) -> str:
        return f"stats:game:{game_id}"

    @staticmethod
    def bulk_player_stats(player_ids: Iterable[str]) -> str:
        return f"stats:bulk:{','.join(sorted(player_ids))}"

    @staticmethod
    def top_players(days_back: int, end_date: Optional[datetime] = None) -> str:
        key = f"stats:topPlayers:{days_back}"
        if end_date is not None:
            key = f"{key}:{end_date.isoformat()}"
        return key

    # Team stats
    @staticmethod
    def game_team_stats(game_id: str) -> str:
        return f"teamStats:game:{game_id}"

    @staticmethod
    def team_stats(team_stats_id: str) -> str:
        return f"teamStats:{team_stats_id}"
