"""Pydantic data models for league stats."""

from .enums import CacheCategory, GameStatus, TeamType
from .games import CreateGame, CreateSeason, Game, Season, UpdateGame, UpdateSeason
from .stats import (
    DERIVED_FIELDS,
    RAW_FIELDS,
    CamelModel,
    CreatePlayerStats,
    DerivedStats,
    PlayerAggregate,
    PlayerStats,
    RawBoxScore,
    StatLine,
    TeamStats,
    TopPlayers,
    UpdatePlayerStats,
)

__all__ = [
    # Enums
    "CacheCategory",
    "GameStatus",
    "TeamType",
    # Stats
    "CamelModel",
    "RawBoxScore",
    "DerivedStats",
    "StatLine",
    "PlayerStats",
    "TeamStats",
    "CreatePlayerStats",
    "UpdatePlayerStats",
    "PlayerAggregate",
    "TopPlayers",
    "RAW_FIELDS",
    "DERIVED_FIELDS",
    # Games and seasons
    "Game",
    "CreateGame",
    "UpdateGame",
    "Season",
    "CreateSeason",
    "UpdateSeason",
]
