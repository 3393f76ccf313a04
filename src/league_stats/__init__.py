"""League stats backend.

Box score storage, derived shooting and scoring stats, team aggregates kept
in step with their players, and windowed leaderboards, all behind a
best-effort Redis cache.
"""

from .version import __version__, __author__
from .config import AppSettings, get_settings

__all__ = [
    "__version__",
    "__author__",
    "AppSettings",
    "get_settings",
    # Key subpackages
    "cache",
    "models",
    "services",
    "stats",
    "store",
    "utils",
]
