"""Integration tests for app lifecycle and health reporting."""

import pytest

from league_stats.app import LeagueApp
from league_stats.cache import CacheState, RedisCache
from league_stats.store import SqlDocumentStore, create_store_engine

pytestmark = pytest.mark.integration


class TestLeagueApp:
    @pytest.mark.asyncio
    async def test_startup_creates_tables_and_connects_cache(self, settings, redis_client):
        store = SqlDocumentStore(create_store_engine(settings))
        cache = RedisCache.from_settings(settings, client=redis_client)

        async with LeagueApp(settings, store=store, cache=cache) as league:
            assert cache.state is CacheState.READY
            assert await league.games.list_games() == []
            report = await league.health()

        assert report == {"status": "healthy", "store": "ok", "cache": "ready", "env": "TEST"}
        assert cache.state is CacheState.DEGRADED

    @pytest.mark.asyncio
    async def test_degraded_cache_stays_healthy(self, settings):
        league = LeagueApp(settings)
        await league.startup()
        try:
            report = await league.health()
        finally:
            await league.shutdown()

        assert report["status"] == "healthy"
        assert report["cache"] == "degraded"

    @pytest.mark.asyncio
    async def test_unreachable_store_is_unhealthy(self, settings, degraded_cache, monkeypatch):
        store = SqlDocumentStore(create_store_engine(settings))
        league = LeagueApp(settings, store=store, cache=degraded_cache)

        async def no_answer():
            return False

        monkeypatch.setattr(store, "ping", no_answer)
        report = await league.health()

        assert report["status"] == "unhealthy"
        assert report["store"] == "unreachable"
        await store.close()

    @pytest.mark.asyncio
    async def test_startup_and_shutdown_are_idempotent(self, settings):
        league = LeagueApp(settings)
        await league.startup()
        await league.startup()
        await league.shutdown()
        await league.shutdown()
