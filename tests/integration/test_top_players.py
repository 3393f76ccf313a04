"""Integration tests for the windowed top players rollup."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from league_stats.cache import CacheKeys, CacheState
from league_stats.errors import InvalidInputError
from league_stats.store import PLAYER_STATS

from tests.conftest import NOW
from tests.helpers import box_score

pytestmark = pytest.mark.integration


async def make_game(league, number, days_ago):
    return await league.games.create_game({
        "gameNumber": number,
        "date": NOW - timedelta(days=days_ago),
        "status": "Completed",
    })


class TestWindow:
    @pytest.mark.asyncio
    async def test_only_games_inside_window_count(self, league):
        recent = await make_game(league, "MW#10", 3)
        old = await make_game(league, "MW#01", 45)
        await league.player_stats.create(box_score(recent.id, "recent", twoPointAttempts=4, twoPointMade=2))
        await league.player_stats.create(box_score(old.id, "veteran", twoPointAttempts=30, twoPointMade=30))

        top = await league.player_stats.get_top_players(30)

        assert [a.player_id for a in top.all_player_aggregates] == ["recent"]
        assert top.top_scorer.player_id == "recent"

    @pytest.mark.asyncio
    async def test_end_date_bounds_the_window(self, league):
        early = await make_game(league, "MW#01", 10)
        late = await make_game(league, "MW#02", 2)
        await league.player_stats.create(box_score(early.id, "early", assists=3))
        await league.player_stats.create(box_score(late.id, "late", assists=8))

        top = await league.player_stats.get_top_players(30, NOW - timedelta(days=5))

        assert top.most_assists.player_id == "early"
        assert len(top.all_player_aggregates) == 1

    @pytest.mark.asyncio
    async def test_future_games_are_excluded(self, league):
        upcoming = await make_game(league, "MW#99", -2)
        await league.player_stats.create(box_score(upcoming.id, "tomorrow", assists=3))

        top = await league.player_stats.get_top_players(30)
        assert top.most_assists is None

    @pytest.mark.asyncio
    async def test_empty_window_is_all_null_and_not_cached(self, league):
        top = await league.player_stats.get_top_players(7)

        assert top.top_scorer is None
        assert top.best_shooter is None
        assert top.most_rebounds is None
        assert top.most_assists is None
        assert top.all_player_aggregates == []
        assert await league.cache.get(CacheKeys.top_players(7)) is None

    @pytest.mark.asyncio
    async def test_negative_days(self, league):
        with pytest.raises(InvalidInputError):
            await league.player_stats.get_top_players(-1)

    @pytest.mark.asyncio
    async def test_invalid_end_date(self, league):
        with pytest.raises(InvalidInputError):
            await league.player_stats.get_top_players(30, "not a date")


class TestAggregation:
    @pytest.mark.asyncio
    async def test_aggregates_across_games_and_batches_by_game(self, league, monkeypatch):
        games = [await make_game(league, f"MW#{i:02d}", i % 20 + 1) for i in range(12)]
        for g in games:
            await league.player_stats.create(box_score(g.id, "ironman", twoPointAttempts=2, twoPointMade=1))

        query = AsyncMock(wraps=league.store.query)
        monkeypatch.setattr(league.store, "query", query)

        top = await league.player_stats.get_top_players(30)

        ironman = top.top_scorer
        assert ironman.player_id == "ironman"
        assert ironman.games_played == 12
        assert ironman.total_points == 24
        assert top.best_shooter.shooting_percentage == 50.0
        stat_queries = [c for c in query.await_args_list if c.args[0] == PLAYER_STATS]
        assert len(stat_queries) == 2

    @pytest.mark.asyncio
    async def test_best_shooter_eligibility(self, league, game):
        await league.player_stats.create(box_score(game.id, "nine", twoPointAttempts=9, twoPointMade=9))
        await league.player_stats.create(box_score(game.id, "ten", twoPointAttempts=5, twoPointMade=2,
                                                   threePointAttempts=5, threePointMade=1))

        top = await league.player_stats.get_top_players(30)

        assert top.best_shooter.player_id == "ten"
        assert top.best_shooter.shot_attempts == 10
        assert top.top_scorer.player_id == "nine"

    @pytest.mark.asyncio
    async def test_ties_keep_first_player(self, league, game):
        await league.player_stats.create(box_score(game.id, "first", assists=5))
        await league.player_stats.create(box_score(game.id, "second", assists=5))

        top = await league.player_stats.get_top_players(30)
        assert top.most_assists.player_id == "first"


class TestCaching:
    @pytest.mark.asyncio
    async def test_cached_result_equals_computed_result(self, league, game):
        await league.player_stats.create(box_score(game.id, "p1", twoPointAttempts=12, twoPointMade=6))

        computed = await league.player_stats.get_top_players(30)
        again = await league.player_stats.get_top_players(30)

        assert again == computed
        if league.cache.state is CacheState.READY:
            cached = await league.cache.get(CacheKeys.top_players(30))
            assert cached["topScorer"]["playerId"] == "p1"

    @pytest.mark.asyncio
    async def test_new_stats_invalidate_leaderboard(self, league, game):
        await league.player_stats.create(box_score(game.id, "p1", assists=1))
        assert (await league.player_stats.get_top_players(30)).most_assists.player_id == "p1"

        await league.player_stats.create(box_score(game.id, "p2", assists=7))

        assert (await league.player_stats.get_top_players(30)).most_assists.player_id == "p2"
