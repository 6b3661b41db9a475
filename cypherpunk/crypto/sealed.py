"""
Cypherpunk Sealed-Box Backend

ECIES-style encryption using X25519, HKDF-SHA256 and ChaCha20-Poly1305.
A dependency-light alternative to GPG for offline use and testing.

Sealed format (before armoring):
    ephemeral_pubkey (32 bytes) || ciphertext || tag (16 bytes)

SECURITY NOTES:
- Each layer uses a fresh ephemeral key (forward secrecy)
- Nonce is derived from the one-time shared secret, never reused
"""

import logging
from typing import Tuple, Union

from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.exceptions import InvalidTag

from ..errors import BackendError
from .keys import EphemeralKey, KeyPair, KeyFormatError, public_key_from_bytes
from .primitives import (
    ArmorError,
    CHACHA20_KEY_SIZE,
    CHACHA20_NONCE_SIZE,
    POLY1305_TAG_SIZE,
    X25519_KEY_SIZE,
    armor,
    dearmor,
    hkdf_derive,
)


logger = logging.getLogger(__name__)

# Domain separation constants for HKDF
SEALED_KEY_INFO = b"cypherpunk-sealed-key-v1"
SEALED_NONCE_INFO = b"cypherpunk-sealed-nonce-v1"

ARMOR_LABEL = "SEALED MESSAGE"


def _derive_keys(shared_secret: bytes) -> Tuple[bytes, bytes]:
    """Derive (encryption_key, nonce) from an ECDH shared secret."""
    enc_key = hkdf_derive(
        input_key_material=shared_secret,
        length=CHACHA20_KEY_SIZE,
        info=SEALED_KEY_INFO,
    )
    nonce = hkdf_derive(
        input_key_material=shared_secret,
        length=CHACHA20_NONCE_SIZE,
        info=SEALED_NONCE_INFO,
    )
    return enc_key, nonce


def seal(plaintext: bytes, recipient_public: bytes) -> bytes:
    """
    Encrypt plaintext for the holder of an X25519 public key.

    Args:
        plaintext: Data to encrypt
        recipient_public: Recipient's 32-byte X25519 public key

    Returns:
        bytes: ephemeral_pubkey || ciphertext || tag
    """
    peer = public_key_from_bytes(recipient_public)
    ephemeral = EphemeralKey()
    enc_key, nonce = _derive_keys(ephemeral.exchange(peer))
    ciphertext = ChaCha20Poly1305(enc_key).encrypt(nonce, plaintext, None)
    return ephemeral.public_bytes + ciphertext


def open_sealed(sealed: bytes, recipient: KeyPair) -> bytes:
    """
    Decrypt a sealed box (armored or raw) with the recipient's key pair.

    Raises:
        BackendError: If the box is malformed or authentication fails
    """
    if sealed.lstrip().startswith(b"-----BEGIN"):
        try:
            sealed = dearmor(sealed, ARMOR_LABEL)
        except ArmorError as e:
            raise BackendError(f"Cannot dearmor sealed message: {e}")

    if len(sealed) < X25519_KEY_SIZE + POLY1305_TAG_SIZE:
        raise BackendError(f"Sealed message too short: {len(sealed)} bytes")

    try:
        ephemeral_public = public_key_from_bytes(sealed[:X25519_KEY_SIZE])
    except KeyFormatError as e:
        raise BackendError(f"Invalid ephemeral public key: {e}")

    enc_key, nonce = _derive_keys(recipient.exchange(ephemeral_public))
    try:
        return ChaCha20Poly1305(enc_key).decrypt(nonce, sealed[X25519_KEY_SIZE:], None)
    except InvalidTag:
        raise BackendError("Decryption failed: invalid tag (tampering or wrong key)")


class SealedBackend:
    """
    Encryption backend producing armored X25519 sealed boxes.

    Remailer records used with this backend carry their raw 32-byte
    X25519 public key as ``public_key``.
    """

    scheme = "X25519"

    def encrypt(self, plaintext: bytes, public_key: Union[bytes, bytearray]) -> bytes:
        if not isinstance(public_key, (bytes, bytearray)):
            raise BackendError(
                f"Sealed backend needs raw X25519 key bytes, got {type(public_key).__name__}"
            )
        try:
            sealed = seal(plaintext, bytes(public_key))
        except KeyFormatError as e:
            raise BackendError(str(e))
        logger.debug(f"Sealed {len(plaintext)} bytes into {len(sealed)} bytes")
        return armor(sealed, ARMOR_LABEL)
