"""Mapping Service Layer - Core Business Logic

This module orchestrates key generation, shard selection and the shard store
adapters to implement the shorten / resolve / remove lifecycle of a mapping
entry.

Architecture Overview
=====================
::
    ┌──────────────────────────────────────────────────────────┐
    │                     MappingService                       │
    │  ┌───────────────┐  ┌───────────────┐  ┌───────────────┐ │
    │  │ Key Generator │  │   ShardMap    │  │  ShardStore   │ │
    │  │ • nanoid, 8ch │  │ • sum(ord)%N  │  │ • SET EX      │ │
    │  │ • no counter  │  │ • immutable   │  │ • GET / DEL   │ │
    │  └───────────────┘  └───────────────┘  └───────────────┘ │
    └──────────────────────────────────────────────────────────┘
                 │                 │                 │
                 ▼                 ▼                 ▼
          ┌────────────┐    ┌────────────┐    ┌────────────┐
          │  Redis #0  │    │  Redis #1  │    │  Redis #2  │
          └────────────┘    └────────────┘    └────────────┘

Shorten Flow
------------
::
    ┌─────────────┐
    │ shorten(url)│
    └──────┬──────┘
           ▼
    ┌─────────────┐   empty   ┌─────────────────┐
    │ URL present?├──────────►│ ValidationError │
    └──────┬──────┘           └─────────────────┘
           ▼
    ┌─────────────┐
    │ Generate key│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Select shard│
    │ sum(ord)%N  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ SET key url │
    │ EX ttl      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Return key  │
    └─────────────┘

Key Behaviours
===============
- Every operation touches exactly one shard, chosen from the key alone.
- A missing URL is rejected before any shard is written.
- TTL defaults to the configured value when absent or non-positive.
- Expired, deleted and never-created keys are all reported as not found.
- A key collision silently replaces the earlier mapping; keys are not
  checked for uniqueness and creation is never retried.
- Concurrent operations on the same key are not serialized; the last
  write or delete to reach the shard wins.
- Store failures propagate as BackendError with no retry and no failover
  to another shard.

Usage Examples
==============
```python
shards = ShardMap.from_urls(settings.shard_urls)
service = MappingService(shards, default_ttl=3600)

key = await service.shorten("https://youtube.com", ttl=600)
url = await service.resolve(key)
result = await service.remove(key)   # DeleteResult.REMOVED
```
"""

import logging
import time

from prometheus_client import Counter, Histogram

from shardurl.enums import DeleteResult, HealthStatus, Operation, RequestStatus
from shardurl.exceptions import BackendError, NotFoundError, ValidationError
from shardurl.keygen import DEFAULT_CODE_LENGTH, generate_short_code
from shardurl.sharding import ShardMap

__all__ = ["DEFAULT_TTL_SECONDS", "MappingService"]


DEFAULT_TTL_SECONDS = 3600  # 1 hour


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

MAPPING_REQUESTS_TOTAL = Counter(
    "shardurl_mapping_requests_total",
    "Total mapping operations",
    ["operation", "status"],
)
MAPPING_DURATION = Histogram(
    "shardurl_mapping_duration_seconds",
    "Time taken by mapping operations",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)
SHARD_OPERATIONS_TOTAL = Counter(
    "shardurl_shard_operations_total",
    "Store operations issued per shard",
    ["shard", "operation"],
)


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================


class MappingService:
    """Create, resolve and remove short URL mappings across a fixed shard set.

    Example:
        >>> service = MappingService(ShardMap.from_urls(["memory://a", "memory://b"]))
        >>> key = await service.shorten("https://example.com")
        >>> await service.resolve(key)
        'https://example.com'
    """

    def __init__(
        self,
        shards: ShardMap,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        code_length: int = DEFAULT_CODE_LENGTH,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        assert default_ttl > 0, f"default_ttl must be positive, got {default_ttl!r}"
        self._shards = shards
        self._default_ttl = default_ttl
        self._code_length = code_length
        self._logger = logger or logging.getLogger("shardurl")

    @property
    def shards(self) -> ShardMap:
        return self._shards

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def shorten(self, original_url: str | None, ttl: int | None = None) -> str:
        """Store ``original_url`` under a freshly generated key.

        Args:
            original_url: URL to shorten. Only its presence is checked.
            ttl: Seconds until expiry. ``None`` or non-positive uses the default.

        Returns:
            str: The generated key.

        Raises:
            ValidationError: If ``original_url`` is empty or missing.
            BackendError: If the selected shard fails.
        """
        start_time = time.perf_counter()
        if not original_url:
            self._record(Operation.SHORTEN, RequestStatus.VALIDATION_ERROR, start_time)
            self._logger.warning("Shorten rejected: URL is required")
            raise ValidationError("URL is required")

        ttl_seconds = ttl if ttl is not None and ttl > 0 else self._default_ttl
        key = generate_short_code(self._code_length)
        index = self._shards.index_for(key)

        try:
            await self._shards[index].set_with_ttl(key, original_url, ttl_seconds)
        except BackendError as exc:
            self._record(Operation.SHORTEN, RequestStatus.ERROR, start_time)
            self._logger.error(f"Shorten failed on shard {index}: {exc}")
            raise
        finally:
            SHARD_OPERATIONS_TOTAL.labels(shard=str(index), operation=Operation.SHORTEN).inc()

        self._record(Operation.SHORTEN, RequestStatus.SUCCESS, start_time)
        self._logger.info(f"Stored {key} on shard {index} with ttl {ttl_seconds}s")
        return key

    async def resolve(self, key: str) -> str:
        """Return the URL stored under ``key``.

        Raises:
            NotFoundError: If the key is absent, deleted or expired.
            BackendError: If the owning shard fails.
        """
        start_time = time.perf_counter()
        index = self._shards.index_for(key)

        try:
            original_url = await self._shards[index].get(key)
        except BackendError as exc:
            self._record(Operation.RESOLVE, RequestStatus.ERROR, start_time)
            self._logger.error(f"Resolve of {key} failed on shard {index}: {exc}")
            raise
        finally:
            SHARD_OPERATIONS_TOTAL.labels(shard=str(index), operation=Operation.RESOLVE).inc()

        if original_url is None:
            self._record(Operation.RESOLVE, RequestStatus.NOT_FOUND, start_time)
            self._logger.debug(f"Key {key} not found on shard {index}")
            raise NotFoundError(f"Short URL '{key}' not found.")

        self._record(Operation.RESOLVE, RequestStatus.SUCCESS, start_time)
        return original_url

    async def remove(self, key: str) -> DeleteResult:
        """Delete the mapping for ``key`` from its shard.

        Returns:
            DeleteResult: REMOVED if the key existed, NOT_FOUND otherwise.

        Raises:
            BackendError: If the owning shard fails.
        """
        start_time = time.perf_counter()
        index = self._shards.index_for(key)

        try:
            removed = await self._shards[index].delete(key)
        except BackendError as exc:
            self._record(Operation.REMOVE, RequestStatus.ERROR, start_time)
            self._logger.error(f"Remove of {key} failed on shard {index}: {exc}")
            raise
        finally:
            SHARD_OPERATIONS_TOTAL.labels(shard=str(index), operation=Operation.REMOVE).inc()

        if not removed:
            self._record(Operation.REMOVE, RequestStatus.NOT_FOUND, start_time)
            self._logger.debug(f"Key {key} already absent from shard {index}")
            return DeleteResult.NOT_FOUND

        self._record(Operation.REMOVE, RequestStatus.SUCCESS, start_time)
        self._logger.info(f"Removed {key} from shard {index}")
        return DeleteResult.REMOVED

    async def shard_health(self) -> list[tuple[int, str, HealthStatus]]:
        """Ping every shard and report its status in shard order."""
        report = []
        for index, store in enumerate(self._shards):
            try:
                status = HealthStatus.HEALTHY if await store.ping() else HealthStatus.UNHEALTHY
            except BackendError as exc:
                self._logger.error(f"Shard {index} health check failed: {exc}")
                status = HealthStatus.UNHEALTHY
            report.append((index, store.address, status))
        return report

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    @staticmethod
    def _record(operation: Operation, status: RequestStatus, start_time: float) -> None:
        MAPPING_DURATION.labels(operation=operation).observe(time.perf_counter() - start_time)
        MAPPING_REQUESTS_TOTAL.labels(operation=operation, status=status).inc()
