"""Store contract shared by every backend and middleware layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from kvchain.exceptions import ExpiryNotSupportedError


class _Missing:
    """Type of the MISSING sentinel."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()
"""Absent-marker returned by layers when no live entry exists."""


class Store(ABC):
    """Abstract key-value store.

    Backends implement the five abstract operations against a real medium.
    Middleware implements them by wrapping another store (see
    :class:`kvchain.proxy.Proxy`). Absence is never an error: ``get`` returns
    ``default`` and ``delete`` of an unknown key does nothing.
    """

    supports_expiry: bool = False

    @abstractmethod
    def get(self, key: Any, default: Any = None) -> Any:
        """Return the value stored under key, or default."""
        pass

    @abstractmethod
    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        """Store value under key, replacing any existing entry."""
        pass

    @abstractmethod
    def delete(self, key: Any) -> None:
        """Remove the entry for key if present."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove all entries."""
        pass

    def exists(self, key: Any) -> bool:
        """Check whether a live entry exists for key."""
        return self.get(key, MISSING) is not MISSING

    def update(self, key: Any, fn: Callable[[Any], Any]) -> Any:
        """Replace the value under key with ``fn(current)``.

        ``current`` is :data:`MISSING` when no entry exists. Returns the new
        value. Atomic only when a lock layer sits between the caller and the
        medium.
        """
        value = fn(self.get(key, MISSING))
        self.set(key, value)
        return value

    def increment(self, key: Any, amount: int = 1) -> Any:
        """Add amount to the number stored under key (absent counts as 0)."""
        return self.update(
            key, lambda current: (0 if current is MISSING else current) + amount
        )

    def fetch(self, key: Any, default: Any = MISSING) -> Any:
        """Like get, but raise KeyError on absence unless a default is given."""
        value = self.get(key, MISSING)
        if value is MISSING:
            if default is MISSING:
                raise KeyError(key)
            return default
        return value

    def close(self) -> None:
        """Release resources held by the store."""
        pass

    def _check_ttl(self, ttl: float | None) -> None:
        """Reject a ttl on stores without native expiry."""
        if ttl is not None and not self.supports_expiry:
            raise ExpiryNotSupportedError(type(self).__name__)

    def __getitem__(self, key: Any) -> Any:
        return self.fetch(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: Any) -> None:
        self.delete(key)

    def __contains__(self, key: Any) -> bool:
        return self.exists(key)

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
