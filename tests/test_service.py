"""Unit tests for the mapping service lifecycle."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError

from shardurl.enums import DeleteResult, HealthStatus
from shardurl.exceptions import BackendError, NotFoundError, ValidationError
from shardurl.service import DEFAULT_TTL_SECONDS, MappingService
from shardurl.sharding import ShardMap, select_shard
from shardurl.store import InMemoryShardStore, RedisShardStore


def stored_in(shards: ShardMap, key: str) -> list[int]:
    """Indexes of the shards currently holding key."""
    return [index for index, store in enumerate(shards) if store.ttl(key) is not None]


def total_entries(shards: ShardMap) -> int:
    return sum(len(store) for store in shards)


class TestShorten:
    @pytest.mark.asyncio
    async def test_round_trip(self, service) -> None:
        key = await service.shorten("https://youtube.com", ttl=3600)
        assert len(key) == 8
        assert await service.resolve(key) == "https://youtube.com"

    @pytest.mark.asyncio
    async def test_default_ttl(self, service, memory_shards) -> None:
        key = await service.shorten("https://x.com")
        assert DEFAULT_TTL_SECONDS == 3600
        assert memory_shards.store_for(key).ttl(key) == 3600

    @pytest.mark.asyncio
    async def test_explicit_ttl(self, service, memory_shards) -> None:
        key = await service.shorten("https://x.com", ttl=120)
        assert memory_shards.store_for(key).ttl(key) == 120

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl", [0, -5])
    async def test_non_positive_ttl_uses_default(self, service, memory_shards, ttl) -> None:
        key = await service.shorten("https://x.com", ttl=ttl)
        assert memory_shards.store_for(key).ttl(key) == 3600

    @pytest.mark.asyncio
    async def test_configured_default_ttl(self, memory_shards) -> None:
        service = MappingService(memory_shards, default_ttl=60)
        key = await service.shorten("https://x.com")
        assert memory_shards.store_for(key).ttl(key) == 60

    @pytest.mark.asyncio
    async def test_configured_code_length(self, memory_shards) -> None:
        service = MappingService(memory_shards, code_length=12)
        assert len(await service.shorten("https://x.com")) == 12

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", [None, ""])
    async def test_missing_url_is_rejected_without_write(self, service, memory_shards, url) -> None:
        with pytest.raises(ValidationError, match="URL is required"):
            await service.shorten(url)
        assert total_entries(memory_shards) == 0

    @pytest.mark.asyncio
    async def test_url_is_not_checked_for_format(self, service) -> None:
        key = await service.shorten("not a url at all")
        assert await service.resolve(key) == "not a url at all"

    @pytest.mark.asyncio
    async def test_writes_exactly_one_shard(self, service, memory_shards) -> None:
        key = await service.shorten("https://example.com")
        assert stored_in(memory_shards, key) == [select_shard(key, len(memory_shards))]
        assert total_entries(memory_shards) == 1

    @pytest.mark.asyncio
    async def test_key_collision_overwrites(self, service, memory_shards) -> None:
        with patch("shardurl.service.generate_short_code", return_value="AAAAAAAA"):
            first = await service.shorten("https://first.com")
            second = await service.shorten("https://second.com")

        assert first == second == "AAAAAAAA"
        assert await service.resolve("AAAAAAAA") == "https://second.com"
        assert total_entries(memory_shards) == 1


class TestResolve:
    @pytest.mark.asyncio
    async def test_unknown_key(self, service) -> None:
        with pytest.raises(NotFoundError):
            await service.resolve("nope1234")

    @pytest.mark.asyncio
    async def test_expired_key_is_not_found(self, service, clock) -> None:
        key = await service.shorten("https://example.com", ttl=10)
        clock.advance(9)
        assert await service.resolve(key) == "https://example.com"
        clock.advance(1)
        with pytest.raises(NotFoundError):
            await service.resolve(key)

    @pytest.mark.asyncio
    async def test_default_ttl_expiry(self, service, clock) -> None:
        key = await service.shorten("https://example.com")
        clock.advance(3600)
        with pytest.raises(NotFoundError):
            await service.resolve(key)

    @pytest.mark.asyncio
    async def test_resolve_is_not_destructive(self, service) -> None:
        key = await service.shorten("https://example.com")
        for _ in range(3):
            assert await service.resolve(key) == "https://example.com"

    @pytest.mark.asyncio
    async def test_reads_only_the_owning_shard(self, memory_shards) -> None:
        service = MappingService(memory_shards)
        key = await service.shorten("https://example.com")
        index = memory_shards.index_for(key)

        # An entry planted on another shard is invisible to resolve.
        stray = "ZZZZZZZZ"
        other = (memory_shards.index_for(stray) + 1) % len(memory_shards)
        await memory_shards[other].set_with_ttl(stray, "https://stray.com", 60)

        with pytest.raises(NotFoundError):
            await service.resolve(stray)
        assert await memory_shards[index].get(key) == "https://example.com"


class TestRemove:
    @pytest.mark.asyncio
    async def test_delete_then_resolve(self, service) -> None:
        key = await service.shorten("https://example.com")
        assert await service.remove(key) is DeleteResult.REMOVED
        with pytest.raises(NotFoundError):
            await service.resolve(key)
        assert await service.remove(key) is DeleteResult.NOT_FOUND

    @pytest.mark.asyncio
    async def test_remove_unknown_key(self, service) -> None:
        assert await service.remove("missing1") is DeleteResult.NOT_FOUND

    @pytest.mark.asyncio
    async def test_remove_expired_key(self, service, clock) -> None:
        key = await service.shorten("https://example.com", ttl=5)
        clock.advance(5)
        assert await service.remove(key) is DeleteResult.NOT_FOUND

    @pytest.mark.asyncio
    async def test_remove_leaves_other_entries(self, service) -> None:
        keep = await service.shorten("https://keep.com")
        drop = await service.shorten("https://drop.com")
        await service.remove(drop)
        assert await service.resolve(keep) == "https://keep.com"


class TestShardLocality:
    @pytest.mark.asyncio
    async def test_all_operations_use_the_creation_shard(self, clock) -> None:
        stores = [InMemoryShardStore(address=f"memory://{i}", clock=clock) for i in range(3)]
        spies = []
        for store in stores:
            spy = AsyncMock(wraps=store)
            spy.address = store.address
            spies.append(spy)
        service = MappingService(ShardMap(tuple(spies)))

        key = await service.shorten("https://example.com")
        await service.resolve(key)
        await service.remove(key)

        index = select_shard(key, 3)
        for i, spy in enumerate(spies):
            touched = spy.set_with_ttl.await_count + spy.get.await_count + spy.delete.await_count
            assert touched == (3 if i == index else 0)


class TestBackendFailures:
    @pytest.fixture
    def failing_service(self, mock_redis) -> MappingService:
        mock_redis.set.side_effect = ConnectionError("refused")
        mock_redis.get.side_effect = ConnectionError("refused")
        mock_redis.delete.side_effect = ConnectionError("refused")
        return MappingService(ShardMap((RedisShardStore(mock_redis, address="redis://down:6379/0"),)))

    @pytest.mark.asyncio
    async def test_shorten_propagates_without_retry(self, failing_service, mock_redis) -> None:
        with pytest.raises(BackendError):
            await failing_service.shorten("https://example.com")
        assert mock_redis.set.await_count == 1

    @pytest.mark.asyncio
    async def test_resolve_propagates(self, failing_service, mock_redis) -> None:
        with pytest.raises(BackendError):
            await failing_service.resolve("abcdefgh")
        assert mock_redis.get.await_count == 1

    @pytest.mark.asyncio
    async def test_remove_propagates(self, failing_service) -> None:
        with pytest.raises(BackendError):
            await failing_service.remove("abcdefgh")


class TestShardHealth:
    @pytest.mark.asyncio
    async def test_all_healthy(self, service) -> None:
        report = await service.shard_health()
        assert [index for index, _, _ in report] == [0, 1, 2]
        assert all(status is HealthStatus.HEALTHY for _, _, status in report)

    @pytest.mark.asyncio
    async def test_unreachable_shard(self, clock, mock_redis) -> None:
        mock_redis.ping.side_effect = ConnectionError("refused")
        shards = ShardMap((
            InMemoryShardStore(address="memory://0", clock=clock),
            RedisShardStore(mock_redis, address="redis://down:6379/0"),
        ))
        report = await MappingService(shards).shard_health()
        assert report == [
            (0, "memory://0", HealthStatus.HEALTHY),
            (1, "redis://down:6379/0", HealthStatus.UNHEALTHY),
        ]


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_shortens_do_not_interfere(self, service, memory_shards) -> None:
        urls = [f"https://example.com/{i}" for i in range(100)]
        keys = await asyncio.gather(*(service.shorten(url) for url in urls))

        assert len(set(keys)) == len(urls)
        assert total_entries(memory_shards) == len(urls)
        resolved = await asyncio.gather(*(service.resolve(key) for key in keys))
        assert resolved == urls

    @pytest.mark.asyncio
    async def test_concurrent_mixed_operations(self, service) -> None:
        keys = [await service.shorten(f"https://example.com/{i}") for i in range(20)]
        results = await asyncio.gather(
            *(service.remove(key) for key in keys[:10]),
            *(service.resolve(key) for key in keys[10:]),
        )
        assert results[:10] == [DeleteResult.REMOVED] * 10
        assert results[10:] == [f"https://example.com/{i}" for i in range(10, 20)]
