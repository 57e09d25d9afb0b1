"""Codec stages for key and value pipelines.

Each stage is a named, pure transformation. Reversible stages carry a
``decode`` function; one-way stages (content hashing) do not and may only end
a key pipeline, since encoded keys are lookup tokens and never read back.

Built-in stages:

- **msgpack**: any msgspec-supported object to MessagePack bytes
- **json**: any msgspec-supported object to JSON bytes
- **zlib**: bytes to compressed bytes
- **base64**: bytes to an ASCII string
- **escape**: bytes or string to a filename-safe string (``%XX`` escapes)
- **spread**: MD5 digest spread over a two-level path (one-way)
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import re
import zlib
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote_to_bytes

import msgspec

from kvchain.exceptions import (
    ConfigurationError,
    DeserializationError,
    SerializationError,
    UnknownNameError,
)

_UNSAFE = re.compile(rb"[^A-Za-z0-9_-]")


@dataclass(frozen=True)
class Codec:
    """A named encode/decode stage."""

    name: str
    encode: Callable[[Any], Any]
    decode: Callable[[Any], Any] | None = None

    @property
    def reversible(self) -> bool:
        """Whether the stage can be decoded."""
        return self.decode is not None


def _to_bytes(data: Any) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, bytes | bytearray | memoryview):
        return bytes(data)
    raise TypeError(f"expected bytes or str, got {type(data).__name__}")


_msgpack_encoder = msgspec.msgpack.Encoder()
_msgpack_decoder = msgspec.msgpack.Decoder()
_json_encoder = msgspec.json.Encoder()
_json_decoder = msgspec.json.Decoder()


def _b64encode(data: Any) -> str:
    return base64.b64encode(_to_bytes(data)).decode("ascii")


def _b64decode(data: Any) -> bytes:
    return base64.b64decode(_to_bytes(data), validate=True)


def _escape(data: Any) -> str:
    escaped = _UNSAFE.sub(lambda m: b"%%%02X" % m.group()[0], _to_bytes(data))
    return escaped.decode("ascii")


def _unescape(data: Any) -> bytes:
    return unquote_to_bytes(_to_bytes(data))


def _spread(data: Any) -> str:
    digest = hashlib.md5(_to_bytes(data)).hexdigest()
    return f"{digest[:2]}/{digest[2:]}"


_CODECS: dict[str, Codec] = {
    codec.name: codec
    for codec in (
        Codec("msgpack", _msgpack_encoder.encode, _msgpack_decoder.decode),
        Codec("json", _json_encoder.encode, _json_decoder.decode),
        Codec(
            "zlib",
            lambda data: zlib.compress(_to_bytes(data)),
            lambda data: zlib.decompress(_to_bytes(data)),
        ),
        Codec("base64", _b64encode, _b64decode),
        Codec("escape", _escape, _unescape),
        Codec("spread", _spread),
    )
}

# Errors the stage functions raise on bad input
_ENCODE_ERRORS = (msgspec.EncodeError, TypeError, ValueError, OverflowError)
_DECODE_ERRORS = (
    msgspec.DecodeError,
    binascii.Error,
    zlib.error,
    TypeError,
    ValueError,
)


def register_codec(codec: Codec) -> None:
    """Register a custom codec stage under its name."""
    _CODECS[codec.name.lower()] = codec


def get_codec(name: str) -> Codec:
    """Look up a codec stage by name."""
    try:
        return _CODECS[name.lower()]
    except KeyError:
        raise UnknownNameError("codec", name) from None


def codec_names() -> list[str]:
    """Names of all registered codec stages."""
    return sorted(_CODECS)


def _resolve(stage: Any) -> Codec:
    if isinstance(stage, Codec):
        return stage
    if not isinstance(stage, str):
        raise ConfigurationError(f"Codec stage must be a name: {stage!r}")
    return get_codec(stage)


class Pipeline:
    """Ordered sequence of codec stages for one side (key or value).

    Encoding applies the stages in declared order, decoding applies their
    inverses in reverse order. The value side must be fully reversible; the
    key side may end with a single one-way stage.
    """

    def __init__(self, stages: str | Iterable[str | Codec] | None, side: str):
        if side not in ("key", "value"):
            raise ConfigurationError(f"Pipeline side must be key or value: {side}")
        if stages is None:
            stages = ()
        elif isinstance(stages, str | Codec):
            stages = (stages,)
        elif not isinstance(stages, Iterable):
            raise ConfigurationError(f"Invalid {side} stages: {stages!r}")
        self.side = side
        self.stages: tuple[Codec, ...] = tuple(_resolve(stage) for stage in stages)
        self._validate()

    def _validate(self) -> None:
        for position, stage in enumerate(self.stages):
            if stage.reversible:
                continue
            if self.side == "value":
                raise ConfigurationError(
                    f"One-way codec {stage.name!r} cannot be used for values"
                )
            if position != len(self.stages) - 1:
                raise ConfigurationError(
                    f"One-way codec {stage.name!r} must be the last key stage"
                )

    @property
    def names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    @property
    def reversible(self) -> bool:
        return all(stage.reversible for stage in self.stages)

    def encode(self, data: Any) -> Any:
        """Run data through every stage."""
        for stage in self.stages:
            try:
                data = stage.encode(data)
            except _ENCODE_ERRORS as e:
                raise SerializationError(stage.name, str(e)) from e
        return data

    def decode(self, data: Any) -> Any:
        """Undo every stage, last first."""
        for stage in reversed(self.stages):
            if stage.decode is None:
                raise DeserializationError(stage.name, "codec is one-way")
            try:
                data = stage.decode(data)
            except _DECODE_ERRORS as e:
                raise DeserializationError(stage.name, str(e)) from e
        return data

    def __bool__(self) -> bool:
        return bool(self.stages)

    def __repr__(self) -> str:
        return f"Pipeline({self.side}={self.names})"
