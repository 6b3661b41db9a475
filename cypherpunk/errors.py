"""
Cypherpunk Error Taxonomy

Every failure raised by the library derives from CypherpunkError so
callers can catch the whole family at once. Errors carry the structured
fields (remailer name, chain position, hop) needed to tell the user which
part of a chain failed and why.
"""

from typing import Optional


class CypherpunkError(Exception):
    """Base class for all library errors."""
    pass


class ConfigError(CypherpunkError):
    """Configuration file is malformed or contains invalid values."""
    pass


class DirectoryError(CypherpunkError):
    """Remailer directory could not be built or loaded."""
    pass


class ChainError(CypherpunkError):
    """A chain specification cannot be resolved."""
    pass


class EmptyChain(ChainError):
    """The chain specification has no tokens."""

    def __init__(self):
        super().__init__("Remailer chain is empty")


class ChainTooLong(ChainError):
    """The chain specification has more hops than allowed."""

    def __init__(self, length: int, maximum: int):
        self.length = length
        self.maximum = maximum
        super().__init__(f"Remailer chain has {length} hops, at most {maximum} allowed")


class UnknownRemailer(ChainError):
    """A literal chain token does not name any known remailer."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown remailer: {name!r}")


class CapabilityMismatch(ChainError):
    """A literal remailer cannot serve the chain position it was put in."""

    def __init__(self, name: str, position: int, required: Optional[str] = None):
        self.name = name
        self.position = position
        self.required = required
        detail = f" (requires {required})" if required else ""
        super().__init__(
            f"Remailer {name!r} cannot be used at chain position {position}{detail}"
        )


class NoEligibleRemailer(ChainError):
    """No remailer in the directory satisfies a position's capability."""

    def __init__(self, position: int, required: Optional[str] = None):
        self.position = position
        self.required = required
        detail = f" with capability {required}" if required else ""
        super().__init__(f"No eligible remailer{detail} for chain position {position}")


class EnvelopeError(CypherpunkError):
    """A per-hop envelope cannot be built or parsed."""
    pass


class BackendError(CypherpunkError):
    """Raised by encryption backends when encryption or key import fails."""
    pass


class BackendFailure(CypherpunkError):
    """Encryption to a specific hop failed; fatal for that chain copy."""

    def __init__(self, hop_name: str, cause: BaseException):
        self.hop_name = hop_name
        self.cause = cause
        super().__init__(f"Encryption for remailer {hop_name!r} failed: {cause}")


class UnsupportedFormat(CypherpunkError):
    """Requested output format is not recognized."""

    def __init__(self, kind: object):
        self.kind = kind
        super().__init__(f"Unsupported output format: {kind!r}")
