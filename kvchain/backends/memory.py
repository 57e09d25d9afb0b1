"""In-memory storage backend."""

from copy import deepcopy
from typing import Any

from kvchain.base import Store


class MemoryBackend(Store):
    """Dictionary-backed store for tests and single-process use."""

    def __init__(self):
        self._data: dict[Any, Any] = {}

    def get(self, key: Any, default: Any = None) -> Any:
        """Read data by key."""
        if key in self._data:
            return deepcopy(self._data[key])
        return default

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        """Write data with key."""
        self._check_ttl(ttl)
        self._data[key] = deepcopy(value)

    def delete(self, key: Any) -> None:
        """Delete data by key."""
        self._data.pop(key, None)

    def exists(self, key: Any) -> bool:
        """Check if key exists."""
        return key in self._data

    def keys(self) -> list[Any]:
        """Get all keys."""
        return list(self._data.keys())

    def clear(self) -> None:
        """Clear all data."""
        self._data.clear()

    def get_size(self) -> int:
        """Get the number of stored items."""
        return len(self._data)
