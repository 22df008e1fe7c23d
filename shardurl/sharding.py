"""Shard selection for mapping entries.

A key is owned by exactly one shard, picked by summing the code points of
its characters modulo the shard count. Keys are already random, so the sum
only has to spread load; it is not meant to resist collisions.

The same key with the same shard count always lands on the same shard,
which is what lets resolve and remove find the entry shorten wrote. The
shard list is therefore fixed at startup: adding or removing a shard while
entries are alive would send their keys elsewhere.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from shardurl.store import ShardStore, create_shard_store

__all__ = ["ShardMap", "select_shard"]


def select_shard(key: str, shard_count: int) -> int:
    """Return the index in ``[0, shard_count)`` owning ``key``.

    Example:
        >>> select_shard("abc", 3)
        0
        >>> select_shard("", 3)
        0
    """
    assert isinstance(shard_count, int) and shard_count >= 1, f"shard_count must be >= 1, got {shard_count!r}"
    return sum(ord(char) for char in key) % shard_count


@dataclass(frozen=True)
class ShardMap:
    """Ordered, immutable set of shard stores.

    Attributes:
        stores: Store adapters; a store's position is its shard index.
    """

    stores: tuple[ShardStore, ...]

    def __post_init__(self) -> None:
        if not self.stores:
            raise ValueError("ShardMap requires at least one shard")
        object.__setattr__(self, "stores", tuple(self.stores))

    @classmethod
    def from_urls(cls, urls: Iterable[str]) -> "ShardMap":
        return cls(tuple(create_shard_store(url) for url in urls))

    def index_for(self, key: str) -> int:
        return select_shard(key, len(self.stores))

    def store_for(self, key: str) -> ShardStore:
        return self.stores[self.index_for(key)]

    def __len__(self) -> int:
        return len(self.stores)

    def __iter__(self) -> Iterator[ShardStore]:
        return iter(self.stores)

    def __getitem__(self, index: int) -> ShardStore:
        return self.stores[index]
