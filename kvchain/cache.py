"""Two-level store: a fast cache in front of a slower backend."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from kvchain.base import MISSING, Store
from kvchain.proxy import Proxy


class Cache(Proxy):
    """Read through ``cache`` and write through to both stores.

    The wrapped store is the authoritative backend. When the backend never
    expires entries, a miss in the cache falls back to the backend and copies
    the value into the cache.

    When the backend expires entries, the cache never holds a value that
    could outlive the backend's deadline. Misses are not copied in, updates
    drop the cached entry, and writes reach the cache only if the cache can
    expire them itself (with the same ttl).
    """

    def __init__(self, inner: Store, cache: Store | None = None):
        super().__init__(inner)
        if cache is None:
            from kvchain.backends.memory import MemoryBackend

            cache = MemoryBackend()
        self.cache = cache

    @property
    def fills_on_read(self) -> bool:
        """Whether backend values may be copied into the cache without a ttl."""
        return not self.inner.supports_expiry

    def get(self, key: Any, default: Any = None) -> Any:
        value = self.cache.get(key, MISSING)
        if value is not MISSING:
            return value
        value = self.inner.get(key, MISSING)
        if value is MISSING:
            return default
        if self.fills_on_read:
            self.cache.set(key, value)
        return value

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        self.inner.set(key, value, ttl)
        if self.fills_on_read or self.cache.supports_expiry:
            self.cache.set(key, value, ttl)
        else:
            self.cache.delete(key)

    def delete(self, key: Any) -> None:
        self.cache.delete(key)
        self.inner.delete(key)

    def clear(self) -> None:
        self.cache.clear()
        self.inner.clear()

    def exists(self, key: Any) -> bool:
        return self.cache.exists(key) or self.inner.exists(key)

    def update(self, key: Any, fn: Callable[[Any], Any]) -> Any:
        value = self.inner.update(key, fn)
        if self.fills_on_read:
            self.cache.set(key, value)
        else:
            # The backend keeps its own deadline, which the cache cannot see
            self.cache.delete(key)
        return value

    def close(self) -> None:
        self.cache.close()
        self.inner.close()
