"""Default store chains for the built-in backends."""

from __future__ import annotations

import logging
from typing import Any, NamedTuple

from kvchain.builder import Builder
from kvchain.exceptions import ConfigurationError
from kvchain.registry import Registry, registry as default_registry
from kvchain.stack import Stack

logger = logging.getLogger(__name__)


class Policy(NamedTuple):
    """Transformer pipelines and backend choice for a store name."""

    key: tuple[str, ...]
    value: tuple[str, ...]
    backend: str
    native_expiry: bool = False


# Backends storing Python objects take msgpack on both sides. File-like
# backends need string-safe keys; SQLite and YAML keys must be text. Escaped
# file names are limited by NAME_MAX, hashfile keys have a fixed length.
DEFAULT_PIPELINES: dict[str, Policy] = {
    "memory": Policy(("msgpack",), ("msgpack",), "memory"),
    "lruhash": Policy(("msgpack",), ("msgpack",), "lruhash"),
    "null": Policy(("msgpack",), (), "null"),
    "yaml": Policy(("msgpack", "base64"), ("msgpack",), "yaml"),
    "sqlite": Policy(("msgpack", "base64"), ("msgpack",), "sqlite", True),
    "file": Policy(("msgpack", "escape"), ("msgpack",), "file"),
    "hashfile": Policy(("msgpack", "spread"), ("msgpack",), "file"),
}


def new_store(
    name: str,
    expires: bool = False,
    threadsafe: bool = False,
    registry: Registry | None = None,
    **options: Any,
) -> Stack:
    """Create a store with the default chain for a backend.

    Args:
        name: Backend name from :data:`DEFAULT_PIPELINES`.
        expires: Add the expires middleware unless the backend expires
            entries natively.
        threadsafe: Add the lock middleware around the backend.
        registry: Registry to resolve names in (default: the global one).
        **options: Passed to the backend unchanged.

    Returns:
        The built stack: expires, transformer, lock, backend.
    """
    if not isinstance(name, str):
        raise ConfigurationError(f"Store name must be a string: {name!r}")
    for flag, value in (("expires", expires), ("threadsafe", threadsafe)):
        if not isinstance(value, bool):
            raise ConfigurationError(f"{flag} must be a boolean, got {value!r}")

    try:
        policy = DEFAULT_PIPELINES[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"No default chain for {name!r}, use Builder instead"
        ) from None

    if expires and policy.native_expiry:
        logger.debug(f"{name} expires entries natively, skipping expires layer")
        expires = False

    builder = Builder(registry=registry or default_registry)
    if expires:
        builder.use("expires")
    builder.use("transformer", key=policy.key, value=policy.value)
    if threadsafe:
        builder.use("lock")
    builder.adapter(policy.backend, **options)
    return builder.build()
