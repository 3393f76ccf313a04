"""Game and season Pydantic models."""

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from ..utils.dates import to_datetime
from .enums import GameStatus
from .stats import CamelModel

ALLOWED_TEAM_SIZES = (3, 4, 5)


def _check_team_size(v: Optional[int]) -> Optional[int]:
    if v is not None and v not in ALLOWED_TEAM_SIZES:
        raise ValueError(f"team size must be one of {ALLOWED_TEAM_SIZES}")
    return v


class Game(CamelModel):
    """A scheduled or played pickup game."""

    id: str
    game_number: str = Field(..., description='Display number such as "MW#01"')
    date: datetime
    status: GameStatus = GameStatus.SCHEDULED
    team_a_score: int = 0
    team_b_score: int = 0
    season_id: Optional[str] = None
    team_size: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("date", "created_at", "updated_at", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> Optional[datetime]:
        return to_datetime(v)


class CreateGame(CamelModel):
    """Input for scheduling a game."""

    model_config = ConfigDict(extra="forbid")

    game_number: str = Field(..., min_length=1)
    date: datetime
    status: GameStatus = GameStatus.SCHEDULED
    season_id: Optional[str] = None
    team_size: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Optional[datetime]:
        return to_datetime(v)

    @field_validator("team_size")
    @classmethod
    def validate_team_size(cls, v: Optional[int]) -> Optional[int]:
        return _check_team_size(v)


def _reject_nulls(model: CamelModel, fields: Iterable[str]) -> None:
    for name in fields:
        if name in model.model_fields_set and getattr(model, name) is None:
            raise ValueError(f"{name} cannot be cleared")


class UpdateGame(CamelModel):
    """Partial game update; only supplied fields are written."""

    model_config = ConfigDict(extra="forbid")

    game_number: Optional[str] = Field(default=None, min_length=1)
    date: Optional[datetime] = None
    status: Optional[GameStatus] = None
    team_a_score: Optional[int] = Field(default=None, ge=0)
    team_b_score: Optional[int] = Field(default=None, ge=0)
    season_id: Optional[str] = None
    team_size: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Optional[datetime]:
        return to_datetime(v)

    @field_validator("team_size")
    @classmethod
    def validate_team_size(cls, v: Optional[int]) -> Optional[int]:
        return _check_team_size(v)

    @model_validator(mode="after")
    def check_required_columns(self) -> "UpdateGame":
        _reject_nulls(self, ("game_number", "date", "status", "team_a_score", "team_b_score"))
        return self

    def supplied(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class Season(CamelModel):
    """A named span of games; at most one season is active."""

    id: str
    name: str
    begin_date: datetime
    finish_date: Optional[datetime] = None
    is_active: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("begin_date", "finish_date", "created_at", "updated_at", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> Optional[datetime]:
        return to_datetime(v)


class CreateSeason(CamelModel):
    """Input for opening a season."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    begin_date: datetime
    finish_date: Optional[datetime] = None
    is_active: bool = False

    @field_validator("begin_date", "finish_date", mode="before")
    @classmethod
    def coerce_dates(cls, v: Any) -> Optional[datetime]:
        return to_datetime(v)

    @model_validator(mode="after")
    def check_range(self) -> "CreateSeason":
        if self.finish_date is not None and self.finish_date < self.begin_date:
            raise ValueError("finish date must not precede begin date")
        return self


class UpdateSeason(CamelModel):
    """Partial season update. Setting ``isActive`` deactivates every other season."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1)
    begin_date: Optional[datetime] = None
    finish_date: Optional[datetime] = None
    is_active: Optional[bool] = None

    @field_validator("begin_date", "finish_date", mode="before")
    @classmethod
    def coerce_dates(cls, v: Any) -> Optional[datetime]:
        return to_datetime(v)

    @model_validator(mode="after")
    def check_required_columns(self) -> "UpdateSeason":
        _reject_nulls(self, ("name", "begin_date", "is_active"))
        return self

    def supplied(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)
