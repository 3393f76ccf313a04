"""Stat derivation and rollups."""

from .calculator import (
    check_consistency,
    derive,
    merge_raw,
    percentage,
    stat_line,
    sum_raw,
    total_points,
)
from .rollup import aggregate_by_player, build_top_players, leader

__all__ = [
    "check_consistency",
    "derive",
    "merge_raw",
    "percentage",
    "stat_line",
    "sum_raw",
    "total_points",
    "aggregate_by_player",
    "build_top_players",
    "leader",
]
