"""Shared pytest fixtures for shard, service and API tests."""

from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import ASGITransport, AsyncClient

from shardurl.config import Settings
from shardurl.dependencies import ServiceManager, get_service_manager
from shardurl.main import app
from shardurl.service import MappingService
from shardurl.sharding import ShardMap
from shardurl.store import InMemoryShardStore

SHARD_COUNT = 3


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_shards(clock: FakeClock) -> ShardMap:
    return ShardMap(tuple(InMemoryShardStore(address=f"memory://{i}", clock=clock) for i in range(SHARD_COUNT)))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        REDIS_SHARD_URLS=",".join(f"memory://{i}" for i in range(SHARD_COUNT)),
        BASE_URL="http://short.test",
    )


@pytest.fixture
def service(memory_shards: ShardMap) -> MappingService:
    return MappingService(memory_shards, default_ttl=3600)


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Mock Redis client."""
    redis_client = AsyncMock(spec=redis.Redis)
    redis_client.get = AsyncMock(return_value=None)
    redis_client.set = AsyncMock(return_value=True)
    redis_client.delete = AsyncMock(return_value=1)
    redis_client.ping = AsyncMock(return_value=True)
    redis_client.aclose = AsyncMock(return_value=None)
    return redis_client


@pytest.fixture
def manager(settings: Settings, memory_shards: ShardMap) -> ServiceManager:
    return ServiceManager(settings, memory_shards)


@pytest_asyncio.fixture(scope="function")
async def client(manager: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_service_manager] = lambda: manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
