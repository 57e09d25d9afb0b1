"""Assembled store chain."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import Any

from kvchain.base import Store


class Stack(Store):
    """The built chain, outermost layer first and the backend last.

    Every operation enters through the outermost layer. The chain shape is
    fixed at construction.
    """

    def __init__(self, layers: Sequence[Store]):
        if not layers:
            raise ValueError("Stack needs at least a backend")
        self._layers: tuple[Store, ...] = tuple(layers)
        self._head = self._layers[0]

    @property
    def layers(self) -> tuple[Store, ...]:
        return self._layers

    @property
    def backend(self) -> Store:
        return self._layers[-1]

    @property
    def middleware(self) -> tuple[Store, ...]:
        return self._layers[:-1]

    @property
    def supports_expiry(self) -> bool:  # type: ignore[override]
        return self._head.supports_expiry

    def describe(self) -> list[str]:
        """Class names of the layers, outermost first."""
        return [type(layer).__name__ for layer in self._layers]

    def get(self, key: Any, default: Any = None) -> Any:
        return self._head.get(key, default)

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        self._head.set(key, value, ttl)

    def delete(self, key: Any) -> None:
        self._head.delete(key)

    def clear(self) -> None:
        self._head.clear()

    def exists(self, key: Any) -> bool:
        return self._head.exists(key)

    def update(self, key: Any, fn: Callable[[Any], Any]) -> Any:
        return self._head.update(key, fn)

    def close(self) -> None:
        self._head.close()

    def __iter__(self) -> Iterator[Store]:
        return iter(self._layers)

    def __len__(self) -> int:
        return len(self._layers)

    def __repr__(self) -> str:
        return f"Stack({' -> '.join(self.describe())})"
