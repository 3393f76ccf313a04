"""Configuration management for the league stats backend with safe test defaults."""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment types."""
    TEST = "TEST"
    DEV = "DEV"
    PROD = "PROD"


class LogFormat(str, Enum):
    """Supported log renderers."""
    JSON = "json"
    TEXT = "text"
    STRUCTURED = "structured"


class AppSettings(BaseSettings):
    """Application settings with safe test defaults and dotenv support.

    Environment variables can be set directly or via .env file.
    Nested settings use double underscore.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        env_nested_delimiter='__',
        case_sensitive=False,
        extra='ignore'
    )

    # ===================
    # Environment
    # ===================
    ENV: Environment = Field(
        default=Environment.TEST,
        description='Application environment: TEST, DEV, or PROD'
    )

    # ===================
    # Document store
    # ===================
    DB_URI: str = Field(
        default='sqlite+aiosqlite:///:memory:',
        description='SQLAlchemy async connection URI. Safe default for tests.'
    )
    DB_ECHO: bool = Field(default=False, description='Echo SQL statements')
    STORE_IN_QUERY_LIMIT: int = Field(
        default=10,
        ge=1,
        description='Maximum number of values accepted by an "in" filter'
    )
    STORE_WRITE_BATCH_LIMIT: int = Field(
        default=500,
        ge=1,
        description='Maximum number of operations in one atomic write batch'
    )

    # ===================
    # Cache
    # ===================
    CACHE_ENABLED: bool = Field(default=True, description='Connect to the cache backend on startup')
    REDIS_URL: str = Field(default='redis://localhost:10610/0', description='Redis connection URL')
    REDIS_USERNAME: Optional[str] = Field(default=None, description='Redis ACL username')
    REDIS_PASSWORD: Optional[str] = Field(default=None, description='Redis password')
    CACHE_CONNECT_TIMEOUT_S: float = Field(default=10.0, gt=0, description='Connect timeout in seconds')
    CACHE_RETRY_MAX: int = Field(default=5, ge=1, description='Connection attempts before degrading')
    CACHE_RETRY_STEP_S: float = Field(default=0.5, ge=0, description='Backoff increment per attempt')
    CACHE_RETRY_CAP_S: float = Field(default=2.0, ge=0, description='Maximum backoff between attempts')
    CACHE_RECOVERY_S: float = Field(
        default=60.0,
        ge=0,
        description='Seconds a degraded cache waits before probing the backend again'
    )

    # ===================
    # Cache TTLs (seconds)
    # ===================
    TTL_PLAYERS: int = Field(default=3600, description='Players rarely change')
    TTL_GAMES: int = Field(default=1800, description='Completed games do not change')
    TTL_STATS: int = Field(default=1800, description='Stats are final after the game ends')
    TTL_TOP_PLAYERS: int = Field(default=600, description='Leaderboards refresh more often')
    TTL_TEAMS: int = Field(default=1800, description='Team rosters are stable')

    # ===================
    # Rollups
    # ===================
    BEST_SHOOTER_MIN_ATTEMPTS: int = Field(
        default=10,
        ge=0,
        description='Combined shot attempts required to qualify as best shooter'
    )
    TOP_PLAYERS_DAYS_BACK: int = Field(default=30, ge=0, description='Default leaderboard window')

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = Field(default='INFO', description='Logging level')
    LOG_FORMAT: LogFormat = Field(default=LogFormat.JSON, description='Log format: json, text, or structured')

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(valid_levels)}")
        return v_upper

    @field_validator('ENV', mode='before')
    @classmethod
    def validate_env(cls, v) -> Environment:
        """Validate and normalize environment value."""
        if isinstance(v, Environment):
            return v
        if isinstance(v, str):
            v_upper = v.upper()
            if v_upper in ('TEST', 'TESTING'):
                return Environment.TEST
            elif v_upper in ('DEV', 'DEVELOPMENT', 'LOCAL'):
                return Environment.DEV
            elif v_upper in ('PROD', 'PRODUCTION'):
                return Environment.PROD
        raise ValueError(f"ENV must be TEST, DEV, or PROD (got: {v})")

    def cache_ttls(self) -> dict[str, int]:
        """TTL per cache category, keyed by category name."""
        return {
            'PLAYERS': self.TTL_PLAYERS,
            'GAMES': self.TTL_GAMES,
            'STATS': self.TTL_STATS,
            'TOP_PLAYERS': self.TTL_TOP_PLAYERS,
            'TEAMS': self.TTL_TEAMS,
        }


@lru_cache()
def get_settings() -> AppSettings:
    """Get cached application settings.

    Loads settings from:
    1. Environment variables
    2. .env file (if exists)
    3. Default values

    Returns:
        AppSettings: Cached settings instance
    """
    return AppSettings()


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
