"""Name to factory registry for middleware and backends."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from kvchain.base import Store
from kvchain.exceptions import ConfigurationError, UnknownNameError

MiddlewareFactory = Callable[..., Store]
BackendFactory = Callable[..., Store]
OptionsValidator = Callable[..., None]


class Registry:
    """Explicit, extensible maps from names to store factories.

    A middleware factory is called as ``factory(inner, **options)``, a
    backend factory as ``factory(**options)``. Names are case-insensitive.

    A name may also carry an options validator, called as
    ``validator(**options)`` before any layer of a chain is built. It raises
    :class:`ConfigurationError` for options the factory would reject.
    """

    def __init__(self):
        self._middleware: dict[str, MiddlewareFactory] = {}
        self._backends: dict[str, BackendFactory] = {}
        self._validators: dict[tuple[str, str], OptionsValidator] = {}

    @staticmethod
    def _normalize(name: str) -> str:
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Name must be a non-empty string: {name!r}")
        return name.lower()

    def register_middleware(
        self,
        name: str,
        factory: MiddlewareFactory,
        replace: bool = False,
        validator: OptionsValidator | None = None,
    ) -> None:
        """Register a middleware factory under name."""
        key = self._normalize(name)
        if key in self._middleware and not replace:
            raise ConfigurationError(f"Middleware already registered: {name}")
        self._middleware[key] = factory
        self._set_validator("middleware", key, validator)

    def register_backend(
        self,
        name: str,
        factory: BackendFactory,
        replace: bool = False,
        validator: OptionsValidator | None = None,
    ) -> None:
        """Register a backend factory under name."""
        key = self._normalize(name)
        if key in self._backends and not replace:
            raise ConfigurationError(f"Backend already registered: {name}")
        self._backends[key] = factory
        self._set_validator("backend", key, validator)

    def _set_validator(
        self, kind: str, key: str, validator: OptionsValidator | None
    ) -> None:
        if validator is None:
            self._validators.pop((kind, key), None)
        else:
            self._validators[(kind, key)] = validator

    def validator(self, kind: str, name: str) -> OptionsValidator | None:
        """Options validator for a middleware or backend name, if any."""
        return self._validators.get((kind, self._normalize(name)))

    def middleware(self, name: str) -> MiddlewareFactory:
        try:
            return self._middleware[self._normalize(name)]
        except KeyError:
            raise UnknownNameError("middleware", name) from None

    def backend(self, name: str) -> BackendFactory:
        try:
            return self._backends[self._normalize(name)]
        except KeyError:
            raise UnknownNameError("backend", name) from None

    def has_middleware(self, name: str) -> bool:
        return self._normalize(name) in self._middleware

    def has_backend(self, name: str) -> bool:
        return self._normalize(name) in self._backends

    def middleware_names(self) -> list[str]:
        return sorted(self._middleware)

    def backend_names(self) -> list[str]:
        return sorted(self._backends)

    def copy(self) -> Registry:
        """Independent copy, for registering names without global effect."""
        clone = Registry()
        clone._middleware = dict(self._middleware)
        clone._backends = dict(self._backends)
        clone._validators = dict(self._validators)
        return clone


def _default_registry() -> Registry:
    from kvchain.backends import (
        FileBackend,
        LRUHashBackend,
        MemoryBackend,
        NullBackend,
        SQLiteBackend,
        YAMLBackend,
    )
    from kvchain.cache import Cache
    from kvchain.expires import Expires
    from kvchain.lock import Lock
    from kvchain.proxy import Proxy
    from kvchain.transformer import Transformer

    default = Registry()
    middleware: dict[str, MiddlewareFactory] = {
        "proxy": Proxy,
        "transformer": Transformer,
        "expires": Expires,
        "lock": Lock,
        "cache": Cache,
    }
    backends: dict[str, BackendFactory] = {
        "memory": MemoryBackend,
        "lruhash": LRUHashBackend,
        "null": NullBackend,
        "file": FileBackend,
        "sqlite": SQLiteBackend,
        "yaml": YAMLBackend,
    }
    validators: dict[str, OptionsValidator] = {
        "transformer": Transformer.validate_options,
        "expires": Expires.validate_options,
    }
    for name, factory in middleware.items():
        default.register_middleware(name, factory, validator=validators.get(name))
    for name, factory in backends.items():
        default.register_backend(name, factory)
    return default


registry = _default_registry()


def register_middleware(name: str, factory: MiddlewareFactory, **kwargs: Any) -> None:
    """Register a middleware factory in the default registry."""
    registry.register_middleware(name, factory, **kwargs)


def register_backend(name: str, factory: BackendFactory, **kwargs: Any) -> None:
    """Register a backend factory in the default registry."""
    registry.register_backend(name, factory, **kwargs)
