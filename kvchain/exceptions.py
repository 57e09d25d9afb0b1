"""Exception classes for kvchain."""


class KVChainError(Exception):
    """Base exception for all kvchain errors."""

    pass


class ConfigurationError(KVChainError, ValueError):
    """Raised when a store chain is described incorrectly."""

    pass


class UnknownNameError(ConfigurationError, LookupError):
    """Raised when a middleware, backend or codec name is not registered."""

    def __init__(self, kind: str, name: str):
        """Initialize with the kind of thing looked up and its name."""
        self.kind = kind
        self.name = name
        super().__init__(f"Unknown {kind}: {name}")


class CodecError(KVChainError):
    """Base exception for codec failures."""

    def __init__(self, codec: str, message: str):
        """Initialize with codec name and message."""
        self.codec = codec
        super().__init__(f"{codec}: {message}")


class SerializationError(CodecError):
    """Raised when a key or value cannot be encoded."""

    pass


class DeserializationError(CodecError):
    """Raised when stored data cannot be decoded."""

    pass


class ExpiryNotSupportedError(KVChainError):
    """Raised when a ttl reaches a store that cannot expire entries."""

    def __init__(self, store: str):
        """Initialize with the name of the store."""
        self.store = store
        super().__init__(
            f"{store} does not support expiration, add the expires middleware"
        )
