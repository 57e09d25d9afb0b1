"""Bounded in-memory backend with least-recently-used eviction."""

from collections import OrderedDict
from typing import Any

from kvchain.base import Store


class LRUHashBackend(Store):
    """In-memory store that evicts the least recently used entry when full."""

    def __init__(self, max_size: int = 1024):
        if max_size < 1:
            raise ValueError(f"max_size must be positive: {max_size}")
        self.cache: OrderedDict[Any, Any] = OrderedDict()
        self.max_size = max_size
        self.hits = 0
        self.misses = 0

    def get(self, key: Any, default: Any = None) -> Any:
        if key in self.cache:
            # Move to end (most recently used)
            self.cache.move_to_end(key)
            self.hits += 1
            return self.cache[key]
        self.misses += 1
        return default

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        self._check_ttl(ttl)
        if key in self.cache:
            self.cache.move_to_end(key)
        elif len(self.cache) >= self.max_size:
            # Remove least recently used
            self.cache.popitem(last=False)
        self.cache[key] = value

    def delete(self, key: Any) -> None:
        self.cache.pop(key, None)

    def exists(self, key: Any) -> bool:
        return key in self.cache

    def keys(self) -> list[Any]:
        return list(self.cache.keys())

    def clear(self) -> None:
        self.cache.clear()

    def stats(self) -> dict[str, int | float]:
        total = self.hits + self.misses
        hit_rate = self.hits / total if total > 0 else 0
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": hit_rate,
            "size": len(self.cache),
        }
