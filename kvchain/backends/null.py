"""Backend that stores nothing."""

from typing import Any

from kvchain.base import Store


class NullBackend(Store):
    """Accepts every write and forgets it."""

    def get(self, key: Any, default: Any = None) -> Any:
        return default

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        self._check_ttl(ttl)

    def delete(self, key: Any) -> None:
        pass

    def clear(self) -> None:
        pass

    def exists(self, key: Any) -> bool:
        return False
