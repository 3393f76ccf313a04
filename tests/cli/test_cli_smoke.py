"""Smoke tests for the league stats CLI without a database or cache."""

import json

import pytest
from typer.testing import CliRunner

from league_stats.cli import app
from league_stats.errors import NotFoundError, StoreError
from league_stats.league_logging import get_trace_id, trace_id_var
from league_stats.models import PlayerAggregate, TeamStats, TeamType, TopPlayers

runner = CliRunner()


def _leaderboard():
    shooter = PlayerAggregate(player_id="ada", total_points=31, total_rebounds=4, total_assists=9,
                              two_point_made=8, two_point_attempts=12, three_point_made=5,
                              three_point_attempts=8, games_played=2)
    big = PlayerAggregate(player_id="bo", total_points=12, total_rebounds=15, total_assists=1,
                          two_point_made=6, two_point_attempts=14, games_played=2)
    return TopPlayers(top_scorer=shooter, best_shooter=shooter, most_rebounds=big,
                      most_assists=shooter, all_player_aggregates=[shooter, big])


class FakePlayerStats:
    def __init__(self, top):
        self.top = top
        self.calls = []

    async def get_top_players(self, days_back=None, end_date=None):
        self.calls.append((days_back, end_date))
        return self.top


class FakeTeamStats:
    def __init__(self, missing=()):
        self.missing = set(missing)

    async def recalculate(self, game_id, team_type):
        if team_type in self.missing:
            raise NotFoundError(f"No player stats for {team_type} in game {game_id}")
        return TeamStats(id=f"{game_id}-{team_type}", game_id=game_id, team_type=TeamType(team_type),
                         total_points=42, total_rebounds=20, assists=11)


class FakeMaintenance:
    def __init__(self):
        self.cleared = []

    async def cleanup_orphaned_stats(self, dry_run=False):
        return {"player_stats": 3, "team_stats": 1}

    async def clear_cache(self, pattern=None):
        self.cleared.append(pattern)
        return None if pattern is None else 7

    async def clear_season_cache(self):
        self.cleared.append("seasons")
        return 2


class FakeStore:
    trace_ids = []

    async def ping(self):
        FakeStore.trace_ids.append(get_trace_id())
        return True


class FakeLeague:
    """Stand-in for LeagueApp that never touches a backend."""

    top = _leaderboard()
    missing_teams = ()
    healthy = True
    instances = []

    def __init__(self):
        self.player_stats = FakePlayerStats(self.top)
        self.team_stats = FakeTeamStats(self.missing_teams)
        self.maintenance = FakeMaintenance()
        self.store = FakeStore()
        FakeLeague.instances.append(self)

    async def health(self):
        return {
            "status": "healthy" if self.healthy else "unhealthy",
            "store": "ok" if self.healthy else "unreachable",
            "cache": "degraded",
            "env": "TEST",
        }

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None


@pytest.fixture
def fake_league(monkeypatch):
    FakeLeague.instances = []
    monkeypatch.setattr("league_stats.cli.LeagueApp", FakeLeague)
    return FakeLeague


def test_top_players_table(fake_league):
    result = runner.invoke(app, ["top-players", "--days", "14"])

    assert result.exit_code == 0, f"CLI failed with output: {result.output}"
    assert "Top players" in result.output
    assert "ada" in result.output
    assert "65.0%" in result.output
    assert "Players in window: 2" in result.output
    assert fake_league.instances[0].player_stats.calls == [(14, None)]


def test_top_players_json(fake_league):
    result = runner.invoke(app, ["top-players", "--json", "--end-date", "2024-06-01"])

    assert result.exit_code == 0, f"CLI failed with output: {result.output}"
    payload = json.loads(result.output)
    assert payload["topScorer"]["playerId"] == "ada"
    assert payload["mostRebounds"]["totalRebounds"] == 15
    assert fake_league.instances[0].player_stats.calls == [(None, "2024-06-01")]


def test_top_players_empty_window(fake_league, monkeypatch):
    monkeypatch.setattr(FakeLeague, "top", TopPlayers())

    result = runner.invoke(app, ["top-players"])

    assert result.exit_code == 0
    assert "No games in the selected window" in result.output


def test_recalc_team_stats_both_teams(fake_league):
    result = runner.invoke(app, ["recalc-team-stats", "g1"])

    assert result.exit_code == 0, f"CLI failed with output: {result.output}"
    assert "TEAM_A: 42 pts, 20 reb, 11 ast" in result.output
    assert "TEAM_B: 42 pts, 20 reb, 11 ast" in result.output


def test_recalc_team_stats_skips_empty_team(fake_league, monkeypatch):
    monkeypatch.setattr(FakeLeague, "missing_teams", ("TEAM_B",))

    result = runner.invoke(app, ["recalc-team-stats", "g1"])

    assert result.exit_code == 0
    assert "TEAM_A: 42 pts" in result.output
    assert "No player stats for TEAM_B" in result.output


def test_recalc_single_missing_team_fails(fake_league, monkeypatch):
    monkeypatch.setattr(FakeLeague, "missing_teams", ("TEAM_B",))

    result = runner.invoke(app, ["recalc-team-stats", "g1", "--team", "TEAM_B"])

    assert result.exit_code == 1
    assert "No player stats for TEAM_B" in result.output


def test_cleanup_orphans_dry_run(fake_league):
    result = runner.invoke(app, ["cleanup-orphans", "--dry-run"])

    assert result.exit_code == 0
    assert "DRY RUN MODE" in result.output
    assert "player_stats: 3 orphaned" in result.output
    assert "team_stats: 1 orphaned" in result.output


def test_clear_cache_variants(fake_league):
    flushed = runner.invoke(app, ["clear-cache"])
    by_pattern = runner.invoke(app, ["clear-cache", "--pattern", "stats:"])
    seasons = runner.invoke(app, ["clear-cache", "--seasons"])

    assert "Cache flushed" in flushed.output
    assert "Removed 7 cache entries" in by_pattern.output
    assert "Removed 2 cache entries" in seasons.output
    assert [league.maintenance.cleared for league in fake_league.instances] == [[None], ["stats:"], ["seasons"]]


def test_health(fake_league, monkeypatch):
    result = runner.invoke(app, ["health"])
    assert result.exit_code == 0
    assert "status: healthy" in result.output
    assert "cache: degraded" in result.output

    monkeypatch.setattr(FakeLeague, "healthy", False)
    result = runner.invoke(app, ["health"])
    assert result.exit_code == 1
    assert "store: unreachable" in result.output


def test_init_db(fake_league):
    result = runner.invoke(app, ["init-db"])

    assert result.exit_code == 0
    assert "Tables ready" in result.output


def test_store_failure_exits_nonzero(fake_league, monkeypatch):
    async def broken_cleanup(self, dry_run=False):
        raise StoreError("Store query on 'games' failed")

    monkeypatch.setattr(FakeMaintenance, "cleanup_orphaned_stats", broken_cleanup)

    result = runner.invoke(app, ["cleanup-orphans"])

    assert result.exit_code == 1
    assert "Store query on 'games' failed" in result.output


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    for command in ("top-players", "recalc-team-stats", "cleanup-orphans", "clear-cache", "health"):
        assert command in result.output


def test_each_command_gets_its_own_trace_id(fake_league, monkeypatch):
    monkeypatch.setattr(FakeStore, "trace_ids", [])

    first = runner.invoke(app, ["init-db"])
    second = runner.invoke(app, ["init-db"])

    assert first.exit_code == 0 and second.exit_code == 0
    assert len(FakeStore.trace_ids) == 2
    assert all(len(trace_id) == 8 for trace_id in FakeStore.trace_ids)
    assert FakeStore.trace_ids[0] != FakeStore.trace_ids[1]
    assert trace_id_var.get() is None
