"""
Encryption backend protocol.

The onion engine only ever needs one operation from a backend:
encrypt a block of bytes to a remailer's public key. Any object with
an ``encrypt`` method and a ``scheme`` attribute qualifies.
"""

from typing import Any, Protocol


class EncryptionBackend(Protocol):
    """Protocol for backends capable of encrypting one layer."""

    # Value of the "Encrypted:" remailer directive for this backend
    scheme: str

    def encrypt(self, plaintext: bytes, public_key: Any) -> bytes:
        """
        Encrypt ``plaintext`` to ``public_key``.

        Returns ASCII-armored ciphertext; raises
        :class:`~cypherpunk.errors.BackendError` on failure.
        """
