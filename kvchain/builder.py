"""Declarative assembly of store chains.

Example::

    store = (
        Builder()
        .use("expires")
        .use("transformer", key="msgpack", value="msgpack")
        .use("lock")
        .adapter("memory")
        .build()
    )

The first ``use`` becomes the outermost layer; the adapter is the backend at
the bottom of the chain.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from kvchain.base import Store
from kvchain.exceptions import ConfigurationError
from kvchain.registry import Registry, registry as default_registry
from kvchain.stack import Stack

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Directive:
    """A ``use`` or ``adapter`` declaration."""

    name: str | Store
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        if isinstance(self.name, Store):
            return type(self.name).__name__
        return self.name


class Builder:
    """Accumulates directives and builds a :class:`Stack` once."""

    def __init__(
        self, options: Mapping[str, Any] | None = None, registry: Registry | None = None
    ):
        if options is not None and not isinstance(options, Mapping):
            raise ConfigurationError(
                f"Builder options must be a mapping, got {type(options).__name__}"
            )
        self.options: dict[str, Any] = dict(options or {})
        self.registry = registry or default_registry
        self._middleware: list[Directive] = []
        self._adapters: list[Directive] = []
        self._built = False

    def use(self, name: str, **options: Any) -> Builder:
        """Append a middleware directive."""
        self._middleware.append(Directive(name, options))
        return self

    def adapter(self, name: str | Store, **options: Any) -> Builder:
        """Declare the terminal backend, by name or as a ready store."""
        self._adapters.append(Directive(name, options))
        return self

    def validate(self) -> None:
        """Check the directives without instantiating anything.

        Besides names and adapter count, every directive's options are
        checked against its factory's signature and, where the registry has
        one, the name's options validator.
        """
        if self._built:
            raise ConfigurationError("Builder has already been built")
        if not self._adapters:
            raise ConfigurationError("No adapter declared")
        if len(self._adapters) > 1:
            names = ", ".join(d.label for d in self._adapters)
            raise ConfigurationError(f"Exactly one adapter allowed, got: {names}")

        adapter = self._adapters[0]
        if isinstance(adapter.name, Store):
            if adapter.options or self.options:
                raise ConfigurationError("Options given for a ready-made adapter")
        else:
            factory = self.registry.backend(adapter.name)
            options = self._adapter_options(adapter)
            _check_options("backend", adapter.name, factory, (), options)
            validator = self.registry.validator("backend", adapter.name)
            if validator is not None:
                _run_validator("backend", adapter.name, validator, options)
        for directive in self._middleware:
            factory = self.registry.middleware(directive.name)
            _check_options(
                "middleware", directive.name, factory, (None,), directive.options
            )
            validator = self.registry.validator("middleware", directive.name)
            if validator is not None:
                _run_validator(
                    "middleware", directive.name, validator, directive.options
                )

    def build(self) -> Stack:
        """Instantiate the backend, then wrap it innermost-first."""
        self.validate()
        self._built = True

        adapter = self._adapters[0]
        if isinstance(adapter.name, Store):
            store = adapter.name
        else:
            factory = self.registry.backend(adapter.name)
            store = _instantiate(
                "backend", adapter.name, factory, (), self._adapter_options(adapter)
            )

        layers: list[Store] = [store]
        for directive in reversed(self._middleware):
            factory = self.registry.middleware(directive.name)
            store = _instantiate(
                "middleware", directive.name, factory, (store,), directive.options
            )
            layers.append(store)

        stack = Stack(list(reversed(layers)))
        logger.debug(f"Built store chain: {' -> '.join(stack.describe())}")
        return stack

    def _adapter_options(self, adapter: Directive) -> dict[str, Any]:
        return {**self.options, **adapter.options}


def _check_options(
    kind: str,
    name: str,
    factory: Callable[..., Any],
    args: tuple[Any, ...],
    options: Mapping[str, Any],
) -> None:
    """Reject options the factory cannot accept."""
    try:
        signature = inspect.signature(factory)
    except (TypeError, ValueError):
        # Some callables do not expose a signature
        return
    try:
        signature.bind(*args, **options)
    except TypeError as e:
        raise ConfigurationError(f"Invalid options for {kind} {name!r}: {e}") from e


def _run_validator(
    kind: str, name: str, validator: Callable[..., Any], options: Mapping[str, Any]
) -> None:
    try:
        validator(**options)
    except TypeError as e:
        raise ConfigurationError(f"Invalid options for {kind} {name!r}: {e}") from e


def _instantiate(
    kind: str,
    name: str,
    factory: Callable[..., Store],
    args: tuple[Any, ...],
    options: Mapping[str, Any],
) -> Store:
    try:
        return factory(*args, **options)
    except TypeError as e:
        raise ConfigurationError(f"Invalid options for {kind} {name!r}: {e}") from e


def build(
    configure: Callable[[Builder], Any] | None = None,
    registry: Registry | None = None,
    **options: Any,
) -> Stack:
    """Build a stack; ``configure`` receives the builder to declare layers.

    Example::

        store = build(lambda b: b.use("expires").adapter("memory"))
    """
    builder = Builder(options, registry=registry)
    if configure is not None:
        configure(builder)
    return builder.build()


def from_description(
    description: Mapping[str, Any], registry: Registry | None = None
) -> Stack:
    """Build a stack from a plain mapping (e.g. loaded from YAML).

    Format::

        use:
          - expires
          - name: transformer
            options: {key: [msgpack, base64], value: msgpack}
        adapter:
          name: sqlite
          options: {db_path: /tmp/store.db}
    """
    if not isinstance(description, Mapping):
        raise ConfigurationError("Build description must be a mapping")

    unknown = set(description) - {"use", "adapter", "options"}
    if unknown:
        raise ConfigurationError(f"Unknown description keys: {sorted(unknown)}")

    builder = Builder(description.get("options"), registry=registry)

    uses = description.get("use") or []
    if not isinstance(uses, list):
        raise ConfigurationError("'use' must be a list of middleware")
    for entry in uses:
        name, options = _parse_directive(entry, "use")
        builder.use(name, **options)

    if "adapter" not in description:
        raise ConfigurationError("No adapter declared")
    name, options = _parse_directive(description["adapter"], "adapter")
    builder.adapter(name, **options)

    return builder.build()


def _parse_directive(entry: Any, where: str) -> tuple[str, dict[str, Any]]:
    if isinstance(entry, str):
        return entry, {}
    if not isinstance(entry, Mapping) or "name" not in entry:
        raise ConfigurationError(f"Invalid {where} entry: {entry!r}")
    options = entry.get("options") or {}
    if not isinstance(options, Mapping):
        raise ConfigurationError(f"Options for {entry['name']!r} must be a mapping")
    if not isinstance(entry["name"], str):
        raise ConfigurationError(f"Invalid {where} name: {entry['name']!r}")
    return entry["name"], dict(options)
