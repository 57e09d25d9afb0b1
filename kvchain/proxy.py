"""Generic middleware base."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from kvchain.base import Store


class Proxy(Store):
    """Store that forwards every operation to an inner store.

    Subclasses override only the operations they intercept; everything else
    falls through to the forwarding methods below.
    """

    def __init__(self, inner: Store):
        self.inner = inner

    @property
    def supports_expiry(self) -> bool:  # type: ignore[override]
        return self.inner.supports_expiry

    def get(self, key: Any, default: Any = None) -> Any:
        return self.inner.get(key, default)

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        self.inner.set(key, value, ttl)

    def delete(self, key: Any) -> None:
        self.inner.delete(key)

    def clear(self) -> None:
        self.inner.clear()

    def exists(self, key: Any) -> bool:
        return self.inner.exists(key)

    def update(self, key: Any, fn: Callable[[Any], Any]) -> Any:
        return self.inner.update(key, fn)

    def close(self) -> None:
        self.inner.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.inner!r})"
