"""Expiration emulation for stores without native time-to-live."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from kvchain.base import MISSING, Store
from kvchain.exceptions import ConfigurationError, DeserializationError
from kvchain.proxy import Proxy

logger = logging.getLogger(__name__)


class Expires(Proxy):
    """Store each value as a ``[value, expires_at]`` record.

    Expiry is lazy: an entry whose ``expires_at`` has passed reads as absent
    immediately, and a delete is issued to the inner store on the next read
    that observes it. ``expires_at`` is ``None`` for entries that never expire.
    """

    def __init__(
        self,
        inner: Store,
        default_ttl: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(inner)
        self.validate_options(default_ttl, clock)
        self.default_ttl = default_ttl
        self.clock = clock

    @staticmethod
    def validate_options(
        default_ttl: float | None = None, clock: Callable[[], float] = time.time
    ) -> None:
        """Check the layer options before the chain is built."""
        if default_ttl is not None:
            numeric = isinstance(default_ttl, int | float)
            if isinstance(default_ttl, bool) or not numeric:
                raise ConfigurationError(
                    f"default_ttl must be a number of seconds: {default_ttl!r}"
                )
            if default_ttl < 0:
                raise ConfigurationError(
                    f"default_ttl must not be negative: {default_ttl}"
                )
        if not callable(clock):
            raise ConfigurationError(f"clock must be callable: {clock!r}")

    @property
    def supports_expiry(self) -> bool:  # type: ignore[override]
        return True

    def get(self, key: Any, default: Any = None) -> Any:
        record = self.inner.get(key, MISSING)
        if record is MISSING:
            return default
        value, expires_at = self._unwrap(record)
        if self._expired(expires_at):
            logger.debug(f"Removing expired entry: {key!r}")
            self.inner.delete(key)
            return default
        return value

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        self.inner.set(key, [value, self._expires_at(ttl)])

    def exists(self, key: Any) -> bool:
        return self.get(key, MISSING) is not MISSING

    def update(self, key: Any, fn: Callable[[Any], Any]) -> Any:
        result = MISSING

        def apply(record: Any) -> Any:
            nonlocal result
            current, expires_at = MISSING, self._expires_at(None)
            if record is not MISSING:
                value, stored_expires_at = self._unwrap(record)
                if not self._expired(stored_expires_at):
                    current, expires_at = value, stored_expires_at
            result = fn(current)
            return [result, expires_at]

        self.inner.update(key, apply)
        return result

    def _expires_at(self, ttl: float | None) -> float | None:
        if ttl is None:
            ttl = self.default_ttl
        if ttl is None:
            return None
        if ttl < 0:
            raise ValueError(f"ttl must not be negative: {ttl}")
        return self.clock() + ttl

    def _expired(self, expires_at: float | None) -> bool:
        return expires_at is not None and expires_at <= self.clock()

    @staticmethod
    def _unwrap(record: Any) -> tuple[Any, float | None]:
        if not isinstance(record, list | tuple) or len(record) != 2:
            raise DeserializationError(
                "expires", f"not an expiry record: {record!r}"
            )
        value, expires_at = record
        if expires_at is not None and not isinstance(expires_at, int | float):
            raise DeserializationError("expires", f"invalid expiry: {expires_at!r}")
        return value, expires_at
