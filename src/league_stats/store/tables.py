"""Table definitions backing each document collection."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)

PLAYER_STATS = "player_stats"
TEAM_STATS = "team_stats"
GAMES = "games"
SEASONS = "seasons"

metadata = MetaData()


def _document_columns() -> list:
    return [
        Column("id", String(64), primary_key=True),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("updated_at", DateTime(timezone=True), nullable=False),
    ]


def _stat_columns() -> list:
    return [
        Column("two_point_attempts", Integer, nullable=False, default=0),
        Column("two_point_made", Integer, nullable=False, default=0),
        Column("three_point_attempts", Integer, nullable=False, default=0),
        Column("three_point_made", Integer, nullable=False, default=0),
        Column("defensive_rebounds", Integer, nullable=False, default=0),
        Column("offensive_rebounds", Integer, nullable=False, default=0),
        Column("assists", Integer, nullable=False, default=0),
        Column("two_point_percentage", Float, nullable=False, default=0.0),
        Column("three_point_percentage", Float, nullable=False, default=0.0),
        Column("total_rebounds", Integer, nullable=False, default=0),
        Column("total_points", Integer, nullable=False, default=0),
    ]


player_stats = Table(
    PLAYER_STATS, metadata,
    *_document_columns(),
    Column("game_id", String(64), nullable=False),
    Column("player_id", String(64), nullable=False),
    Column("team_type", String(16), nullable=False),
    Column("season_id", String(64), nullable=True),
    *_stat_columns(),
    Index("ix_player_stats_game_player", "game_id", "player_id"),
    Index("ix_player_stats_player", "player_id"),
    Index("ix_player_stats_season", "season_id"),
)

team_stats = Table(
    TEAM_STATS, metadata,
    *_document_columns(),
    Column("game_id", String(64), nullable=False),
    Column("team_type", String(16), nullable=False),
    Column("season_id", String(64), nullable=True),
    *_stat_columns(),
    UniqueConstraint("game_id", "team_type", name="uq_team_stats_game_team"),
    Index("ix_team_stats_season", "season_id"),
)

games = Table(
    GAMES, metadata,
    *_document_columns(),
    Column("game_number", String(32), nullable=False),
    Column("date", DateTime(timezone=True), nullable=False),
    Column("status", String(32), nullable=False),
    Column("team_a_score", Integer, nullable=False, default=0),
    Column("team_b_score", Integer, nullable=False, default=0),
    Column("season_id", String(64), nullable=True),
    Column("team_size", Integer, nullable=True),
    Column("notes", Text, nullable=True),
    Index("ix_games_date", "date"),
    Index("ix_games_season", "season_id"),
)

seasons = Table(
    SEASONS, metadata,
    *_document_columns(),
    Column("name", String(128), nullable=False),
    Column("begin_date", DateTime(timezone=True), nullable=False),
    Column("finish_date", DateTime(timezone=True), nullable=True),
    Column("is_active", Boolean, nullable=False, default=False),
)

COLLECTIONS = {
    PLAYER_STATS: player_stats,
    TEAM_STATS: team_stats,
    GAMES: games,
    SEASONS: seasons,
}
