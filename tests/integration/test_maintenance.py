"""Integration tests for orphan cleanup and cache clearing."""

import pytest

from league_stats.app import LeagueApp
from league_stats.cache import CacheKeys
from league_stats.store import GAMES, PLAYER_STATS, TEAM_STATS

from tests.conftest import NOW
from tests.helpers import box_score

pytestmark = pytest.mark.integration


@pytest.fixture
async def cached_league(settings, store, ready_cache, clock):
    return LeagueApp(settings, store=store, cache=ready_cache, clock=clock)


async def _orphan_one_game(league):
    doomed = await league.games.create_game({"gameNumber": "gone", "date": NOW})
    kept = await league.games.create_game({"gameNumber": "kept", "date": NOW})
    await league.workflow.create_player_stats(box_score(doomed.id, "p1", assists=1))
    await league.workflow.create_player_stats(box_score(doomed.id, "p2", "TEAM_B", assists=1))
    await league.workflow.create_player_stats(box_score(kept.id, "p1", assists=1))
    # Bypass the cascade to leave dangling stats behind
    await league.store.delete(GAMES, doomed.id)
    return doomed, kept


class TestOrphanCleanup:
    @pytest.mark.asyncio
    async def test_dry_run_only_counts(self, league):
        await _orphan_one_game(league)

        orphans = await league.maintenance.cleanup_orphaned_stats(dry_run=True)

        assert orphans == {PLAYER_STATS: 2, TEAM_STATS: 2}
        assert len(await league.store.query(PLAYER_STATS)) == 3

    @pytest.mark.asyncio
    async def test_removes_orphans_only(self, league):
        doomed, kept = await _orphan_one_game(league)

        orphans = await league.maintenance.cleanup_orphaned_stats()

        assert orphans == {PLAYER_STATS: 2, TEAM_STATS: 2}
        remaining = await league.store.query(PLAYER_STATS)
        assert [d.data["game_id"] for d in remaining] == [kept.id]
        assert await league.player_stats.get_by_game_id(doomed.id) == []
        assert await league.maintenance.cleanup_orphaned_stats() == {PLAYER_STATS: 0, TEAM_STATS: 0}

    @pytest.mark.asyncio
    async def test_cached_reads_refresh_after_cleanup(self, cached_league):
        doomed, _ = await _orphan_one_game(cached_league)
        assert len(await cached_league.player_stats.get_all_for_player("p1")) == 2

        await cached_league.maintenance.cleanup_orphaned_stats()

        assert len(await cached_league.player_stats.get_all_for_player("p1")) == 1


class TestClearCache:
    @pytest.mark.asyncio
    async def test_pattern_clear_counts_removed_keys(self, cached_league):
        game = await cached_league.games.create_game({"gameNumber": "MW#02", "date": NOW})
        await cached_league.player_stats.create(box_score(game.id, "p1"))
        await cached_league.player_stats.get_all_for_player("p1")
        await cached_league.player_stats.get_by_game_id(game.id)
        await cached_league.games.get_game(game.id)

        removed = await cached_league.maintenance.clear_cache("stats:")

        assert removed == 2
        assert await cached_league.cache.get(CacheKeys.game(game.id)) is not None

    @pytest.mark.asyncio
    async def test_full_flush(self, cached_league):
        game = await cached_league.games.create_game({"gameNumber": "MW#03", "date": NOW})
        await cached_league.games.get_game(game.id)

        assert await cached_league.maintenance.clear_cache() is None
        assert await cached_league.cache.get(CacheKeys.game(game.id)) is None

    @pytest.mark.asyncio
    async def test_season_cache(self, cached_league):
        season = await cached_league.seasons.create_season({"name": "Spring", "beginDate": NOW, "isActive": True})
        await cached_league.seasons.get_season(season.id)
        await cached_league.seasons.get_active_season()
        await cached_league.seasons.list_seasons()

        await cached_league.maintenance.clear_season_cache()

        for key in (CacheKeys.season(season.id), CacheKeys.active_season(), CacheKeys.all_seasons()):
            assert await cached_league.cache.get(key) is None

    @pytest.mark.asyncio
    async def test_degraded_cache_clears_nothing(self, settings, store, degraded_cache):
        league = LeagueApp(settings, store=store, cache=degraded_cache)
        assert await league.maintenance.clear_cache("stats:") == 0
        assert await league.maintenance.clear_cache() is None
