"""Composable key-value stores.

One contract (``get``/``set``/``delete``/``clear``/``exists``) implemented by
every backend, plus middleware layered on top declaratively:

- **Transformer**: key and value codec pipelines (msgpack, json, base64, ...)
- **Expires**: time-to-live for backends without native expiry
- **Lock**: serialized access for backends that are not thread-safe
- **Cache**: a fast store in front of a slow one

Example::

    from kvchain import Builder, new_store

    store = new_store("memory", expires=True, threadsafe=True)
    store.set("answer", 42, ttl=60)

    store = (
        Builder()
        .use("transformer", key=["msgpack", "base64"], value="msgpack")
        .use("lock")
        .adapter("sqlite", db_path="cache.db")
        .build()
    )
"""

from kvchain.base import MISSING, Store
from kvchain.builder import Builder, build, from_description
from kvchain.cache import Cache
from kvchain.codecs import Codec, Pipeline, register_codec
from kvchain.exceptions import (
    CodecError,
    ConfigurationError,
    DeserializationError,
    ExpiryNotSupportedError,
    KVChainError,
    SerializationError,
    UnknownNameError,
)
from kvchain.expires import Expires
from kvchain.factory import new_store
from kvchain.lock import Lock
from kvchain.proxy import Proxy
from kvchain.registry import Registry, register_backend, register_middleware, registry
from kvchain.stack import Stack
from kvchain.transformer import Transformer

__version__ = "0.3.0"

__all__ = [
    "MISSING",
    "Builder",
    "Cache",
    "Codec",
    "CodecError",
    "ConfigurationError",
    "DeserializationError",
    "Expires",
    "ExpiryNotSupportedError",
    "KVChainError",
    "Lock",
    "Pipeline",
    "Proxy",
    "Registry",
    "SerializationError",
    "Stack",
    "Store",
    "Transformer",
    "UnknownNameError",
    "build",
    "from_description",
    "new_store",
    "register_backend",
    "register_codec",
    "register_middleware",
    "registry",
]
