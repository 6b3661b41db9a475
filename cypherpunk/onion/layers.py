"""
Cypherpunk Onion Layer Construction

Builds the nested encrypted envelopes for one resolved chain.

Construction order (inside-out):
1. Final hop's envelope (Anon-To = recipient, body = message),
   encrypted to the final hop
2. Previous hop's envelope (Anon-To = final hop, body = that
   encrypted block), encrypted to the previous hop
3. ... repeated up to the first hop
4. Outer envelope (Anon-To = first hop, body = first hop's encrypted
   block), left in the clear for the sender

Each layer depends on the ciphertext of the one inside it, so a chain
is always built sequentially; the running EncryptedLayer is the
accumulator of a reduce over the chain in reverse.
"""

import logging
from functools import reduce
from typing import Tuple

from ..errors import BackendError, BackendFailure
from ..crypto.backend import EncryptionBackend
from ..remailer.chain import ResolvedChain
from ..remailer.directory import RemailerRecord
from .envelope import EncryptedLayer, Envelope, Message, build_envelope


logger = logging.getLogger(__name__)

LATENT_TIME = "Latent-Time"


class OnionBuilder:
    """
    Builds onion-encrypted remailer messages.

    Usage:
        builder = OnionBuilder(GPGBackend())

        outer = builder.encrypt_chain(chain, Message(
            recipient="alice@example.org",
            headers={"Subject": "hello"},
            body=b"Hello!",
        ))

        # outer.recipient_directive is the first hop's address
    """

    def __init__(self, backend: EncryptionBackend, latent_time: str = ""):
        """
        Initialize onion builder.

        Args:
            backend: Encryption backend used for every layer
            latent_time: Optional delay (e.g. "2:00") requested from
                every middle hop via a Latent-Time directive
        """
        self._backend = backend
        self._middle_directives: Tuple[Tuple[str, str], ...] = ()
        if latent_time:
            self._middle_directives = ((LATENT_TIME, f"+{latent_time.lstrip('+')}"),)

    @property
    def backend(self) -> EncryptionBackend:
        return self._backend

    def _encrypt(self, envelope: Envelope, hop: RemailerRecord) -> EncryptedLayer:
        """
        Encrypt one envelope to one hop.

        Raises:
            BackendFailure: If the backend fails for any reason
        """
        plaintext = envelope.to_bytes()
        try:
            ciphertext = self._backend.encrypt(plaintext, hop.public_key)
        except Exception as e:
            logger.error(f"Encryption to {hop.name} failed: {e}")
            raise BackendFailure(hop.name, e)
        if not ciphertext.isascii():
            logger.error(f"Encryption to {hop.name} returned binary output")
            raise BackendFailure(hop.name, BackendError("ciphertext is not ASCII-armored"))

        logger.debug(
            f"Layer for {hop.name}: {len(plaintext)} bytes -> {len(ciphertext)} bytes"
        )
        return EncryptedLayer(
            ciphertext=ciphertext,
            target=hop,
            scheme=self._backend.scheme,
        )

    def _wrap(self, inner: EncryptedLayer, hop: RemailerRecord) -> EncryptedLayer:
        """Build ``hop``'s envelope around ``inner`` and encrypt it to ``hop``."""
        envelope = build_envelope(
            inner,
            inner.target.address,
            is_final_hop=False,
            directives=self._middle_directives,
        )
        return self._encrypt(envelope, hop)

    def encrypt_chain(self, chain: ResolvedChain, message: Message) -> Envelope:
        """
        Encrypt a message through a chain.

        Args:
            chain: Resolved chain, first hop first
            message: Recipient, headers and body

        Returns:
            Outer envelope (unencrypted) addressed to the first hop

        Raises:
            EnvelopeError: If an envelope cannot be built
            BackendFailure: If encryption to any hop fails
        """
        final = build_envelope(
            message.body,
            message.recipient,
            is_final_hop=True,
            headers=message.headers,
        )
        innermost = self._encrypt(final, chain.last)

        outermost = reduce(self._wrap, reversed(chain.hops[:-1]), innermost)

        outer = build_envelope(outermost, outermost.target.address, is_final_hop=False)
        logger.debug(f"Built {len(chain)}-layer message via {chain}")
        return outer

