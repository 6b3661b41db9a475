"""
Cypherpunk Per-Hop Envelopes

An envelope is the plaintext block one remailer decrypts and acts on.

Envelope Structure:
    ::                          remailer instructions
    Anon-To: <address>          where this hop forwards
    Latent-Time: +2:00          optional extra directives

    ##                          recipient headers (final hop only)
    Subject: hello

    <body>

For a middle hop the body is the next hop's encrypted block:
    ::
    Encrypted: PGP

    -----BEGIN PGP MESSAGE-----
    ...

Only the final hop ever carries recipient headers; a middle hop's
envelope names the next address and nothing else about the chain.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Tuple, Union

from ..errors import EnvelopeError
from ..remailer.directory import RemailerRecord


# Section markers
INSTRUCTIONS_MARKER = b"::"
HEADERS_MARKER = b"##"

ANON_TO = "Anon-To"
ENCRYPTED = "Encrypted"
RESERVED_DIRECTIVES = {ANON_TO.lower(), ENCRYPTED.lower()}

HEADER_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]*$")

Headers = Tuple[Tuple[str, str], ...]
HeaderInput = Union[Mapping[str, str], Iterable[Tuple[str, str]], None]


def _normalize_headers(headers: HeaderInput) -> Headers:
    """Turn a mapping or pair list into a validated, ordered tuple."""
    if headers is None:
        return ()
    items = headers.items() if isinstance(headers, Mapping) else headers
    result = []
    for name, value in items:
        name = str(name).strip()
        value = str(value).strip()
        if not HEADER_NAME.match(name):
            raise EnvelopeError(f"Invalid header name: {name!r}")
        if "\r" in value or "\n" in value:
            raise EnvelopeError(f"Header {name!r} contains a line break")
        result.append((name, value))
    return tuple(result)


def _check_address(address: str) -> str:
    address = address.strip()
    if not address:
        raise EnvelopeError("Empty forwarding address")
    if "\r" in address or "\n" in address:
        raise EnvelopeError(f"Forwarding address contains a line break: {address!r}")
    if not address.isascii():
        raise EnvelopeError(f"Forwarding address is not ASCII: {address!r}")
    return address


def _render_block(marker: bytes, headers: Headers) -> bytes:
    lines = [marker] + [f"{name}: {value}".encode("utf-8") for name, value in headers]
    return b"\n".join(lines) + b"\n\n"


def _parse_block(data: bytes, marker: bytes) -> Tuple[Headers, bytes]:
    """
    Parse "<marker>\\nName: value\\n...\\n\\n" from the start of ``data``.

    Returns:
        (headers, remaining bytes)
    """
    if not data.startswith(marker + b"\n"):
        raise EnvelopeError(f"Expected {marker.decode()} section")
    end = data.find(b"\n\n", len(marker))
    if end < 0:
        raise EnvelopeError(f"Unterminated {marker.decode()} section")

    if end == len(marker):
        return (), data[end + 2:]

    headers = []
    for line in data[len(marker) + 1:end].split(b"\n"):
        name, sep, value = line.decode("utf-8").partition(":")
        if not sep:
            raise EnvelopeError(f"Malformed header line: {line!r}")
        headers.append((name.strip(), value.strip()))
    return tuple(headers), data[end + 2:]


@dataclass(frozen=True)
class Message:
    """
    What the caller wants delivered.

    ``recipient`` is opaque: it is passed through verbatim as the final
    hop's Anon-To address.
    """
    recipient: str
    body: bytes
    headers: Headers = ()

    def __post_init__(self):
        object.__setattr__(self, "headers", _normalize_headers(self.headers))


@dataclass(frozen=True)
class EncryptedLayer:
    """
    One hop's envelope after encryption to that hop's key.

    Rendered as the "::\\nEncrypted: <scheme>" block that the previous
    hop forwards.
    """
    ciphertext: bytes
    target: RemailerRecord
    scheme: str = "PGP"

    def to_bytes(self) -> bytes:
        return _render_block(
            INSTRUCTIONS_MARKER, ((ENCRYPTED, self.scheme),)
        ) + self.ciphertext


def parse_encrypted_block(data: bytes) -> Tuple[str, bytes]:
    """
    Split an "Encrypted:" block into (scheme, ciphertext).

    Raises:
        EnvelopeError: If ``data`` is not an encrypted block
    """
    headers, ciphertext = _parse_block(data, INSTRUCTIONS_MARKER)
    directives = dict((name.lower(), value) for name, value in headers)
    if ENCRYPTED.lower() not in directives:
        raise EnvelopeError("Block has no Encrypted directive")
    return directives[ENCRYPTED.lower()], ciphertext


@dataclass(frozen=True)
class Envelope:
    """
    Plaintext block for one hop.

    Attributes:
        recipient_directive: Anon-To address (next hop or end recipient)
        body: Message content (final hop) or next encrypted block
        directives: Extra remailer directives for the "::" section
        visible_headers: Recipient headers for the "##" section
    """
    recipient_directive: str
    body: bytes
    directives: Headers = field(default=())
    visible_headers: Headers = field(default=())

    def to_bytes(self) -> bytes:
        """Serialize to the remailer text format."""
        out = _render_block(
            INSTRUCTIONS_MARKER,
            ((ANON_TO, self.recipient_directive),) + self.directives,
        )
        # An empty "##" section keeps a body starting with "##" unambiguous
        if self.visible_headers or self.body.startswith(HEADERS_MARKER):
            out += _render_block(HEADERS_MARKER, self.visible_headers)
        return out + self.body

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Envelope':
        """
        Parse a serialized envelope.

        Raises:
            EnvelopeError: If the instructions section or Anon-To is missing
        """
        instructions, rest = _parse_block(data, INSTRUCTIONS_MARKER)

        recipient = None
        directives = []
        for name, value in instructions:
            if name.lower() == ANON_TO.lower():
                recipient = value
            else:
                directives.append((name, value))
        if recipient is None:
            raise EnvelopeError("Envelope has no Anon-To directive")

        visible: Headers = ()
        if rest.startswith(HEADERS_MARKER + b"\n"):
            visible, rest = _parse_block(rest, HEADERS_MARKER)

        return cls(
            recipient_directive=recipient,
            body=rest,
            directives=tuple(directives),
            visible_headers=visible,
        )


def build_envelope(
    inner_payload: Union[bytes, EncryptedLayer],
    next_hop_requirement: str,
    is_final_hop: bool,
    headers: HeaderInput = None,
    directives: HeaderInput = None,
) -> Envelope:
    """
    Build the plaintext envelope for one hop.

    Args:
        inner_payload: Message body (final hop) or the next hop's
            EncryptedLayer (middle hop)
        next_hop_requirement: Address this hop forwards to
        is_final_hop: Whether this hop delivers to the end recipient
        headers: Recipient-visible headers (final hop only)
        directives: Extra remailer directives (e.g. Latent-Time)

    Returns:
        Envelope ready to be serialized and encrypted

    Raises:
        EnvelopeError: On header injection, reserved directives, or
            recipient headers on a middle hop
    """
    address = _check_address(next_hop_requirement)
    extra = _normalize_headers(directives)
    for name, _ in extra:
        if name.lower() in RESERVED_DIRECTIVES:
            raise EnvelopeError(f"Directive {name!r} is set by the builder")

    if is_final_hop:
        if not isinstance(inner_payload, (bytes, bytearray)):
            raise EnvelopeError("Final hop needs the literal message body")
        return Envelope(
            recipient_directive=address,
            body=bytes(inner_payload),
            directives=extra,
            visible_headers=_normalize_headers(headers),
        )

    if headers:
        raise EnvelopeError("Recipient headers are only allowed on the final hop")
    if not isinstance(inner_payload, EncryptedLayer):
        raise EnvelopeError("Middle hop needs the next hop's encrypted layer")

    return Envelope(
        recipient_directive=address,
        body=inner_payload.to_bytes(),
        directives=extra,
    )
