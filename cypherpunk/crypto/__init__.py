"""
Cypherpunk Cryptographic Module

Encryption backends used to build remailer layers:
- GPGBackend: the gpg command line with a private keyring (PGP)
- SealedBackend: X25519 + ChaCha20-Poly1305 sealed boxes

All in-process cryptography uses the cryptography library.
"""

from .backend import EncryptionBackend

from .keys import (
    KeyPair,
    KeyFormatError,
)

from .sealed import (
    SealedBackend,
    seal,
    open_sealed,
)

from .gpg import (
    GPGBackend,
)

__all__ = [
    'EncryptionBackend',
    # Keys
    'KeyPair',
    'KeyFormatError',
    # Sealed
    'SealedBackend',
    'seal',
    'open_sealed',
    # GPG
    'GPGBackend',
]
