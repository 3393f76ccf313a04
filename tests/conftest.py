"""Test configuration and fixtures for the league stats test suite."""

import os
import sys
import pathlib

# Force test-safe defaults before any other imports
os.environ.setdefault('ENV', 'TEST')
os.environ.setdefault('DB_URI', 'sqlite+aiosqlite:///:memory:')
os.environ.setdefault('CACHE_ENABLED', 'false')
os.environ.setdefault('LOG_FORMAT', 'text')

# Ensure tests can import from src/
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from datetime import datetime, timedelta, timezone

import fakeredis
import pytest

from league_stats.app import LeagueApp
from league_stats.cache import CacheState, RedisCache
from league_stats.config import AppSettings
from league_stats.league_logging import metrics
from league_stats.store import SqlDocumentStore, create_store_engine

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Each test starts from empty counters."""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def settings():
    """Settings isolated from the developer's environment."""
    return AppSettings(
        ENV='TEST',
        DB_URI='sqlite+aiosqlite:///:memory:',
        CACHE_ENABLED=False,
        CACHE_RETRY_STEP_S=0,
        CACHE_RETRY_CAP_S=0,
    )


@pytest.fixture
def clock():
    """Fixed 'now' for windowed queries."""
    return lambda: NOW


@pytest.fixture
async def store(settings):
    """Fresh in-memory SQLite document store with all tables created."""
    store = SqlDocumentStore(create_store_engine(settings))
    await store.create_tables()
    yield store
    await store.close()


@pytest.fixture
def redis_client():
    """Fake redis server private to one test."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
async def ready_cache(settings, redis_client):
    """Cache connected to a fake redis server."""
    cache = RedisCache.from_settings(settings, client=redis_client)
    state = await cache.connect()
    assert state is CacheState.READY
    yield cache
    await cache.close()


@pytest.fixture
async def degraded_cache(settings):
    """Cache without any backend, permanently degraded."""
    cache = RedisCache.from_settings(settings)
    state = await cache.connect()
    assert state is CacheState.DEGRADED
    return cache


@pytest.fixture(params=["ready", "degraded"])
async def cache(request, settings, redis_client):
    """Runs a test once with a live cache and once with a degraded one."""
    client = redis_client if request.param == "ready" else None
    cache = RedisCache.from_settings(settings, client=client)
    await cache.connect()
    yield cache
    await cache.close()


@pytest.fixture
async def league(settings, store, cache, clock):
    """Fully wired app over the test store and cache."""
    return LeagueApp(settings, store=store, cache=cache, clock=clock)


@pytest.fixture
async def game(league):
    """A completed game played yesterday."""
    return await league.games.create_game({
        "gameNumber": "MW#01",
        "date": NOW - timedelta(days=1),
        "status": "Completed",
        "teamSize": 5,
    })

