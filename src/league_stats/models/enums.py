"""Enumerations for league stats data validation."""

from enum import Enum
from typing import Any


class TeamType(str, Enum):
    """Side of a pickup game a player or aggregate belongs to."""

    TEAM_A = "TEAM_A"
    TEAM_B = "TEAM_B"

    @classmethod
    def _missing_(cls, value: Any) -> "TeamType":
        """Accept lowercase and short forms such as 'a' or 'team_b'."""
        if isinstance(value, str):
            normalized = value.strip().upper().replace("-", "_")
            aliases = {"A": cls.TEAM_A, "B": cls.TEAM_B}
            if normalized in aliases:
                return aliases[normalized]
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class GameStatus(str, Enum):
    """Game status enumeration."""

    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    POSTPONED = "Postponed"


class CacheCategory(str, Enum):
    """TTL categories for cached collections."""

    PLAYERS = "PLAYERS"
    GAMES = "GAMES"
    STATS = "STATS"
    TOP_PLAYERS = "TOP_PLAYERS"
    TEAMS = "TEAMS"
