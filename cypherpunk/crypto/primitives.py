"""
Cypherpunk Cryptographic Primitives

Low-level cryptographic helpers wrapping the cryptography library,
plus ASCII armoring so ciphertext survives plain-text e-mail transport.

Dependencies:
- cryptography
"""

import base64
import binascii

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF


# Encryption constants
CHACHA20_KEY_SIZE = 32  # bytes
CHACHA20_NONCE_SIZE = 12  # bytes
POLY1305_TAG_SIZE = 16  # bytes
X25519_KEY_SIZE = 32  # bytes

# Armor line width (matches gpg --armor output)
ARMOR_LINE_LENGTH = 64


class ArmorError(ValueError):
    """Raised when an armored block cannot be decoded."""
    pass


def hkdf_derive(
    input_key_material: bytes,
    length: int,
    info: bytes,
    salt: bytes = None,
) -> bytes:
    """
    Derive key material using HKDF (RFC 5869) over SHA-256.

    Args:
        input_key_material: Source key material (e.g., ECDH shared secret)
        length: Desired output length in bytes
        info: Context/application-specific info (for domain separation)
        salt: Optional salt (random bytes, can be public)

    Returns:
        bytes: Derived key material

    Raises:
        ValueError: If parameters are invalid
    """
    if length < 1:
        raise ValueError("Length must be at least 1")

    if length > 255 * 32:
        raise ValueError("Length too large for HKDF")

    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        info=info,
    )

    return hkdf.derive(input_key_material)


def armor(data: bytes, label: str) -> bytes:
    """
    Wrap binary data in an ASCII armor block.

    Args:
        data: Binary data
        label: Block label, e.g. "SEALED MESSAGE"

    Returns:
        bytes: "-----BEGIN <label>-----" block with base64 body
    """
    encoded = base64.b64encode(data).decode("ascii")
    lines = [
        encoded[i:i + ARMOR_LINE_LENGTH]
        for i in range(0, len(encoded), ARMOR_LINE_LENGTH)
    ]
    block = [f"-----BEGIN {label}-----", ""] + lines + [f"-----END {label}-----", ""]
    return "\n".join(block).encode("ascii")


def dearmor(block: bytes, label: str) -> bytes:
    """
    Decode an ASCII armor block produced by armor().

    Raises:
        ArmorError: If the markers are missing or the body is not base64
    """
    begin = f"-----BEGIN {label}-----"
    end = f"-----END {label}-----"
    text = block.decode("ascii", errors="replace")

    start = text.find(begin)
    stop = text.find(end)
    if start < 0 or stop < start:
        raise ArmorError(f"Missing {label} armor markers")

    body = text[start + len(begin):stop]
    try:
        return base64.b64decode("".join(body.split()), validate=True)
    except binascii.Error as e:
        raise ArmorError(f"Corrupt armor body: {e}")
