"""
Cypherpunk Output Formats

Serializes a finished copy for the sender. All formats carry the same
encrypted block, byte for byte; only the wrapping differs.

Formats:
    native  - the outer envelope as a remailer text block:
                  ::
                  Anon-To: <first hop>

                  ::
                  Encrypted: PGP

                  -----BEGIN PGP MESSAGE-----
    mailto  - mailto:<first hop>?body=<percent-escaped encrypted block>
    eml     - RFC 5322 message to the first hop with the encrypted
              block as a 7bit text/plain body

Formatting never encrypts anything and has no side effects.
"""

from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from enum import Enum
from typing import Union
from urllib.parse import quote

from ..errors import EnvelopeError, UnsupportedFormat
from ..onion.envelope import Envelope
from ..onion.multiplex import RoutingResult


# Message-ID domain that does not reveal the sending host
MESSAGE_ID_DOMAIN = "cypherpunk.invalid"


class OutputFormat(str, Enum):
    """Supported output representations."""
    NATIVE = "native"
    MAILTO = "mailto"
    EML = "eml"

    @classmethod
    def parse(cls, kind: Union[str, 'OutputFormat']) -> 'OutputFormat':
        """
        Raises:
            UnsupportedFormat: If ``kind`` is not a known format
        """
        if isinstance(kind, cls):
            return kind
        try:
            return cls(str(kind).strip().lower())
        except ValueError:
            raise UnsupportedFormat(kind)


FILE_EXTENSIONS = {
    OutputFormat.NATIVE: "txt",
    OutputFormat.MAILTO: "url",
    OutputFormat.EML: "eml",
}


def _block_text(result: RoutingResult) -> str:
    """The encrypted block every format carries."""
    return result.payload.body.decode("ascii")


def format_native(result: RoutingResult) -> str:
    return result.payload.to_bytes().decode("ascii")


def format_mailto(result: RoutingResult) -> str:
    address = quote(result.first_hop, safe="@")
    return f"mailto:{address}?body={quote(_block_text(result), safe='')}"


def format_eml(result: RoutingResult) -> str:
    message = EmailMessage()
    message["To"] = result.first_hop
    message["Date"] = formatdate(usegmt=True)
    message["Message-ID"] = make_msgid(domain=MESSAGE_ID_DOMAIN)
    message.set_content(_block_text(result), subtype="plain", charset="us-ascii", cte="7bit")
    return message.as_string()


_FORMATTERS = {
    OutputFormat.NATIVE: format_native,
    OutputFormat.MAILTO: format_mailto,
    OutputFormat.EML: format_eml,
}


def format_result(result: RoutingResult, kind: Union[str, OutputFormat]) -> str:
    """
    Serialize one copy.

    Args:
        result: Finished copy from the multiplexer
        kind: "native", "mailto" or "eml"

    Returns:
        str: Serialized representation

    Raises:
        UnsupportedFormat: If ``kind`` is not recognized
    """
    return _FORMATTERS[OutputFormat.parse(kind)](result)


def parse_native(text: str) -> Envelope:
    """
    Parse native output back into the outer envelope.

    Raises:
        EnvelopeError: If the text is not a native block
    """
    try:
        data = text.encode("ascii")
    except UnicodeEncodeError as e:
        raise EnvelopeError(f"Native block must be ASCII: {e}")
    return Envelope.from_bytes(data)


def output_filename(result: RoutingResult, kind: Union[str, OutputFormat]) -> str:
    """File name for one copy, e.g. "copy-01.eml"."""
    fmt = OutputFormat.parse(kind)
    return f"copy-{result.index + 1:02d}.{FILE_EXTENSIONS[fmt]}"
