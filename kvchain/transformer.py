"""Key/value encoding middleware."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from kvchain.base import MISSING, Store
from kvchain.codecs import Codec, Pipeline
from kvchain.proxy import Proxy

Stages = str | Iterable[str | Codec] | None


class Transformer(Proxy):
    """Encode keys and values before they reach the inner store.

    ``key`` and ``value`` each name one codec stage or a sequence of stages,
    e.g. ``Transformer(store, key=["msgpack", "base64"], value="msgpack")``.
    Values read back are decoded; keys are only ever encoded.
    """

    def __init__(self, inner: Store, key: Stages = None, value: Stages = None):
        super().__init__(inner)
        self.key_pipeline = Pipeline(key, "key")
        self.value_pipeline = Pipeline(value, "value")

    @staticmethod
    def validate_options(key: Stages = None, value: Stages = None) -> None:
        """Resolve both pipelines without wrapping a store."""
        Pipeline(key, "key")
        Pipeline(value, "value")

    def get(self, key: Any, default: Any = None) -> Any:
        stored = self.inner.get(self.key_pipeline.encode(key), MISSING)
        if stored is MISSING:
            return default
        return self.value_pipeline.decode(stored)

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        self.inner.set(
            self.key_pipeline.encode(key), self.value_pipeline.encode(value), ttl
        )

    def delete(self, key: Any) -> None:
        self.inner.delete(self.key_pipeline.encode(key))

    def exists(self, key: Any) -> bool:
        return self.inner.exists(self.key_pipeline.encode(key))

    def update(self, key: Any, fn: Callable[[Any], Any]) -> Any:
        result = MISSING

        def apply(stored: Any) -> Any:
            nonlocal result
            current = MISSING
            if stored is not MISSING:
                current = self.value_pipeline.decode(stored)
            result = fn(current)
            return self.value_pipeline.encode(result)

        self.inner.update(self.key_pipeline.encode(key), apply)
        return result

    def __repr__(self) -> str:
        return (
            f"Transformer({self.inner!r}, key={self.key_pipeline.names}, "
            f"value={self.value_pipeline.names})"
        )
