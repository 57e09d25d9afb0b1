"""Mutual exclusion middleware."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from kvchain.base import Store
from kvchain.proxy import Proxy


class Lock(Proxy):
    """Serialize every operation on the inner store behind one lock.

    The lock is held for the whole of each call, so ``update`` (and with it
    ``increment``) becomes an atomic read-modify-write for callers sharing
    this layer. Scope is this instance only, not other processes.
    """

    def __init__(self, inner: Store, lock: Any = None):
        super().__init__(inner)
        self._lock = lock if lock is not None else threading.RLock()

    def get(self, key: Any, default: Any = None) -> Any:
        with self._lock:
            return self.inner.get(key, default)

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        with self._lock:
            self.inner.set(key, value, ttl)

    def delete(self, key: Any) -> None:
        with self._lock:
            self.inner.delete(key)

    def clear(self) -> None:
        with self._lock:
            self.inner.clear()

    def exists(self, key: Any) -> bool:
        with self._lock:
            return self.inner.exists(key)

    def update(self, key: Any, fn: Callable[[Any], Any]) -> Any:
        with self._lock:
            return self.inner.update(key, fn)

    def close(self) -> None:
        with self._lock:
            self.inner.close()
