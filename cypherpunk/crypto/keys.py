"""
Cypherpunk Key Handling

X25519 key pairs for the sealed backend.

Key Types:
- KeyPair: long-term X25519 key pair (a remailer's, or a test recipient's)
- EphemeralKey: per-layer X25519 key, discarded after sealing

Long-term key storage is not managed here; callers persist
KeyPair.to_bytes() however they see fit.
"""

from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives import serialization

from .primitives import X25519_KEY_SIZE


class KeyFormatError(ValueError):
    """Exception raised for malformed key material."""
    pass


class KeyPair:
    """
    X25519 key pair.

    The public half is what a remailer publishes and what a
    RemailerRecord carries as its public_key handle.
    """

    def __init__(self, private: X25519PrivateKey):
        self._private = private
        self._public = private.public_key()

    @classmethod
    def generate(cls) -> 'KeyPair':
        """Generate a fresh key pair."""
        return cls(X25519PrivateKey.generate())

    @classmethod
    def from_bytes(cls, data: bytes) -> 'KeyPair':
        """
        Load a key pair from its 32-byte raw private key.

        Raises:
            KeyFormatError: If the key has the wrong length
        """
        if len(data) != X25519_KEY_SIZE:
            raise KeyFormatError(
                f"Invalid private key length: {len(data)} (expected {X25519_KEY_SIZE})"
            )
        return cls(X25519PrivateKey.from_private_bytes(data))

    def to_bytes(self) -> bytes:
        """Serialize the private key (contains secret key material)."""
        return self._private.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def exchange(self, peer_public: X25519PublicKey) -> bytes:
        """Perform X25519 key exchange, returning the 32-byte shared secret."""
        return self._private.exchange(peer_public)

    @property
    def public_bytes(self) -> bytes:
        """Get public key as bytes (32 bytes)."""
        return self._public.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )


class EphemeralKey:
    """
    Ephemeral X25519 key pair for one sealed layer.
    """

    def __init__(self):
        self._private = X25519PrivateKey.generate()
        self._public = self._private.public_key()

    def exchange(self, peer_public: X25519PublicKey) -> bytes:
        return self._private.exchange(peer_public)

    @property
    def public_bytes(self) -> bytes:
        """Get public key as bytes (32 bytes)."""
        return self._public.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )


def public_key_from_bytes(data: bytes) -> X25519PublicKey:
    """
    Load X25519 public key from bytes.

    Raises:
        KeyFormatError: If the key has the wrong length
    """
    if len(data) != X25519_KEY_SIZE:
        raise KeyFormatError(
            f"Invalid public key length: {len(data)} (expected {X25519_KEY_SIZE})"
        )

    return X25519PublicKey.from_public_bytes(data)
