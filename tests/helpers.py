"""Shared payload builders for tests."""


def box_score(game_id, player_id, team_type="TEAM_A", **counts):
    """CreatePlayerStats payload with zeroed counts unless overridden."""
    payload = {
        "gameId": game_id,
        "playerId": player_id,
        "teamType": team_type,
        "twoPointAttempts": 0,
        "twoPointMade": 0,
        "threePointAttempts": 0,
        "threePointMade": 0,
        "defensiveRebounds": 0,
        "offensiveRebounds": 0,
        "assists": 0,
    }
    payload.update(counts)
    return payload


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now
