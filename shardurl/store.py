"""Shard store adapters.

Every shard is wrapped by an adapter exposing the same small capability set,
so the mapping service never knows which backend a shard runs on.

Adapter Overview
================
::
    ShardStore (abstract)
    ├─ set_with_ttl(key, value, ttl_seconds) -> bool
    ├─ get(key) -> str | None
    ├─ delete(key) -> bool
    ├─ ping() -> bool
    └─ close() -> None

    RedisShardStore     redis://, rediss://, unix://  (SET EX / GET / DEL)
    InMemoryShardStore  memory://                     (dict + deadlines)

Key Behaviours
===============
- ``set_with_ttl`` overwrites silently; there is no compare-and-set.
- ``get`` returns None for absent and expired keys alike.
- ``delete`` returns True only if the key existed and was removed.
- Redis failures (connection loss, timeouts, error replies) surface as
  ``BackendError`` and never as a missing key.
- Adapters are long-lived and shared by all concurrent requests; the Redis
  adapter owns one connection pool for the process lifetime.

Functions:
    create_shard_store():  Build the adapter matching a shard URL scheme.
"""

import functools
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, TypeVar
from urllib.parse import urlsplit

import redis.asyncio as redis
from redis.exceptions import RedisError

from shardurl.exceptions import BackendError

__all__ = ["ShardStore", "RedisShardStore", "InMemoryShardStore", "create_shard_store"]

F = TypeVar("F", bound=Callable[..., Any])

REDIS_SCHEMES = ("redis", "rediss", "unix")
MEMORY_SCHEME = "memory"


class ShardStore(ABC):
    """Abstract base class for a single shard backend."""

    address: str

    @abstractmethod  # pragma: no cover
    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Store value under key, expiring ttl_seconds from now."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    async def get(self, key: str) -> str | None:
        """Return the live value for key, or None if absent or expired."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    async def delete(self, key: str) -> bool:
        """Remove key. Returns False if it was already gone."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    async def ping(self) -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address!r})"


def handle_redis_error(method: F) -> F:
    """Wrap Redis-interacting adapter methods to translate client errors.

    Args:
        method (Callable[..., Any]):
            Adapter coroutine performing Redis operations which may raise
            redis.exceptions.RedisError (ConnectionError, TimeoutError, ResponseError, ...).

    Returns:
        Callable[..., Any]:
            Wrapped coroutine which raises BackendError instead.

    Example:
        >>> @handle_redis_error
        ... async def get(self, key):
        ...     return await self._client.get(key)
    """

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except RedisError as e:
            raise BackendError(f"Redis shard at {self.address} failed: {e}") from e

    return wrapper


class RedisShardStore(ShardStore):
    """Shard adapter backed by one Redis instance."""

    def __init__(self, client: redis.Redis, address: str = "redis"):
        self._client = client
        self.address = address

    @classmethod
    def from_url(cls, url: str) -> "RedisShardStore":
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, address=_safe_address(url))

    @handle_redis_error
    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        assert ttl_seconds > 0, f"ttl_seconds must be positive, got {ttl_seconds!r}"
        return bool(await self._client.set(key, value, ex=ttl_seconds))

    @handle_redis_error
    async def get(self, key: str) -> str | None:
        return await self._client.get(key)

    @handle_redis_error
    async def delete(self, key: str) -> bool:
        return await self._client.delete(key) > 0

    @handle_redis_error
    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()


class InMemoryShardStore(ShardStore):
    """Process-local shard used for ``memory://`` URLs.

    Entries carry an absolute deadline taken from ``clock`` (monotonic seconds)
    and are dropped on the first access after it passes, which gives callers the
    same view a Redis key with EX gives: present until expiry, then gone.
    """

    def __init__(self, address: str = "memory://", clock: Callable[[], float] = time.monotonic):
        self.address = address
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        assert ttl_seconds > 0, f"ttl_seconds must be positive, got {ttl_seconds!r}"
        self._entries[key] = (value, self._clock() + ttl_seconds)
        return True

    async def get(self, key: str) -> str | None:
        entry = self._live_entry(key)
        return entry[0] if entry else None

    async def delete(self, key: str) -> bool:
        if self._live_entry(key) is None:
            return False
        del self._entries[key]
        return True

    async def ping(self) -> bool:
        return True

    def ttl(self, key: str) -> float | None:
        """Seconds left before key expires, or None if it is not stored."""
        entry = self._live_entry(key)
        return entry[1] - self._clock() if entry else None

    def __len__(self) -> int:
        return sum(1 for key in list(self._entries) if self._live_entry(key) is not None)

    def _live_entry(self, key: str) -> tuple[str, float] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            self._entries.pop(key, None)
            return None
        return entry


def create_shard_store(url: str) -> ShardStore:
    """Return the adapter for a shard URL.

    Parameters
    ----------
    url : str
        ``redis://``, ``rediss://`` or ``unix://`` for a Redis shard,
        ``memory://<name>`` for a process-local one.

    Raises
    ------
    ValueError
        If the scheme is not supported.
    """
    scheme = urlsplit(url).scheme.lower()
    if scheme in REDIS_SCHEMES:
        return RedisShardStore.from_url(url)
    if scheme == MEMORY_SCHEME:
        return InMemoryShardStore(address=url)
    raise ValueError(f"Unsupported shard URL scheme: {scheme!r} in {url!r}")


def _safe_address(url: str) -> str:
    parts = urlsplit(url)
    if parts.password is None:
        return url
    netloc = parts.netloc.rsplit("@", 1)[1]
    return parts._replace(netloc=f"***@{netloc}").geturl()
