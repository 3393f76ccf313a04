"""Box score, aggregate and leaderboard Pydantic models."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from ..utils.dates import to_datetime
from .enums import TeamType


class CamelModel(BaseModel):
    """Base model serialising to the camelCase shape used by clients and the cache."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class RawBoxScore(CamelModel):
    """Caller-supplied box score counts."""

    two_point_attempts: int = Field(default=0, ge=0, description="Two point field goal attempts")
    two_point_made: int = Field(default=0, ge=0, description="Two point field goals made")
    three_point_attempts: int = Field(default=0, ge=0, description="Three point attempts")
    three_point_made: int = Field(default=0, ge=0, description="Three pointers made")
    defensive_rebounds: int = Field(default=0, ge=0, description="Defensive rebounds")
    offensive_rebounds: int = Field(default=0, ge=0, description="Offensive rebounds")
    assists: int = Field(default=0, ge=0, description="Assists")


RAW_FIELDS = tuple(RawBoxScore.model_fields)


class DerivedStats(CamelModel):
    """Values computed from raw counts, never settable by a caller."""

    two_point_percentage: float = Field(default=0.0, ge=0, le=100)
    three_point_percentage: float = Field(default=0.0, ge=0, le=100)
    total_rebounds: int = Field(default=0, ge=0)
    total_points: int = Field(default=0, ge=0)


DERIVED_FIELDS = tuple(DerivedStats.model_fields)


class StatLine(RawBoxScore, DerivedStats):
    """Raw counts together with their derived values."""

    def raw(self) -> RawBoxScore:
        """Raw snapshot of this line."""
        return RawBoxScore.model_validate(self.model_dump(include=set(RAW_FIELDS)))


class _Timestamped(CamelModel):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> Optional[datetime]:
        return to_datetime(v)


class PlayerStats(StatLine, _Timestamped):
    """One player's box score for one game."""

    id: str
    game_id: str
    player_id: str
    team_type: TeamType
    season_id: Optional[str] = None


class TeamStats(StatLine, _Timestamped):
    """Sum of every PlayerStats row sharing (game_id, team_type)."""

    id: str
    game_id: str
    team_type: TeamType
    season_id: Optional[str] = None


class CreatePlayerStats(RawBoxScore):
    """Input for entering a player's box score."""

    model_config = ConfigDict(extra="forbid")

    game_id: str = Field(..., min_length=1)
    player_id: str = Field(..., min_length=1)
    team_type: TeamType
    season_id: Optional[str] = None


class UpdatePlayerStats(CamelModel):
    """Partial box score update; absent fields keep their current value."""

    model_config = ConfigDict(extra="forbid")

    two_point_attempts: Optional[int] = Field(default=None, ge=0)
    two_point_made: Optional[int] = Field(default=None, ge=0)
    three_point_attempts: Optional[int] = Field(default=None, ge=0)
    three_point_made: Optional[int] = Field(default=None, ge=0)
    defensive_rebounds: Optional[int] = Field(default=None, ge=0)
    offensive_rebounds: Optional[int] = Field(default=None, ge=0)
    assists: Optional[int] = Field(default=None, ge=0)

    def supplied(self) -> Dict[str, int]:
        """Fields the caller actually provided."""
        return self.model_dump(exclude_none=True)


class PlayerAggregate(CamelModel):
    """A player's summed production across a window of games."""

    player_id: str
    total_points: int = 0
    total_rebounds: int = 0
    total_assists: int = 0
    two_point_made: int = 0
    two_point_attempts: int = 0
    three_point_made: int = 0
    three_point_attempts: int = 0
    games_played: int = 0

    @computed_field
    @property
    def shot_attempts(self) -> int:
        return self.two_point_attempts + self.three_point_attempts

    @computed_field
    @property
    def shooting_percentage(self) -> float:
        attempts = self.shot_attempts
        if attempts == 0:
            return 0.0
        return (self.two_point_made + self.three_point_made) * 100 / attempts


class TopPlayers(CamelModel):
    """Leaderboard for a window of games."""

    top_scorer: Optional[PlayerAggregate] = None
    best_shooter: Optional[PlayerAggregate] = None
    most_rebounds: Optional[PlayerAggregate] = None
    most_assists: Optional[PlayerAggregate] = None
    all_player_aggregates: List[PlayerAggregate] = Field(default_factory=list)
