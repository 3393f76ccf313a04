"""Leaderboard rollup over a window of player box scores."""

from typing import Callable, Dict, Iterable, List, Optional, Sequence

from ..models.stats import PlayerAggregate, PlayerStats, TopPlayers

DEFAULT_MIN_SHOT_ATTEMPTS = 10


def aggregate_by_player(stats: Iterable[PlayerStats]) -> List[PlayerAggregate]:
    """Sum each player's production, in order of first appearance."""
    aggregates: Dict[str, PlayerAggregate] = {}
    for line in stats:
        current = aggregates.get(line.player_id) or PlayerAggregate(player_id=line.player_id)
        aggregates[line.player_id] = PlayerAggregate(
            player_id=line.player_id,
            total_points=current.total_points + line.total_points,
            total_rebounds=current.total_rebounds + line.total_rebounds,
            total_assists=current.total_assists + line.assists,
            two_point_made=current.two_point_made + line.two_point_made,
            two_point_attempts=current.two_point_attempts + line.two_point_attempts,
            three_point_made=current.three_point_made + line.three_point_made,
            three_point_attempts=current.three_point_attempts + line.three_point_attempts,
            games_played=current.games_played + 1,
        )
    return list(aggregates.values())


def leader(aggregates: Sequence[PlayerAggregate],
           metric: Callable[[PlayerAggregate], float]) -> Optional[PlayerAggregate]:
    """Highest ``metric``; on a tie the earliest aggregate is kept."""
    best: Optional[PlayerAggregate] = None
    for candidate in aggregates:
        if best is None or metric(candidate) > metric(best):
            best = candidate
    return best


def build_top_players(stats: Iterable[PlayerStats],
                      min_shot_attempts: int = DEFAULT_MIN_SHOT_ATTEMPTS) -> TopPlayers:
    """Top scorer, best shooter, rebounder and passer for a set of box scores.

    Only players with at least ``min_shot_attempts`` combined attempts are
    considered for best shooter; the slot is None when nobody qualifies.
    """
    aggregates = aggregate_by_player(stats)
    eligible_shooters = [a for a in aggregates if a.shot_attempts >= min_shot_attempts]

    return TopPlayers(
        top_scorer=leader(aggregates, lambda a: a.total_points),
        best_shooter=leader(eligible_shooters, lambda a: a.shooting_percentage),
        most_rebounds=leader(aggregates, lambda a: a.total_rebounds),
        most_assists=leader(aggregates, lambda a: a.total_assists),
        all_player_aggregates=aggregates,
    )
