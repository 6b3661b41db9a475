"""
Cypherpunk Onion Module

Implements layered encryption through a chain of remailers.

Components:
- envelope.py: Per-hop plaintext envelopes and their text format
- layers.py: Inside-out encryption of one chain
- multiplex.py: Redundant, independently routed copies
"""

from .envelope import (
    Message,
    Envelope,
    EncryptedLayer,
    build_envelope,
    parse_encrypted_block,
)

from .layers import (
    OnionBuilder,
)

from .multiplex import (
    Multiplexer,
    RoutingResult,
    RoutingReport,
)

__all__ = [
    # Envelope
    'Message',
    'Envelope',
    'EncryptedLayer',
    'build_envelope',
    'parse_encrypted_block',
    # Layers
    'OnionBuilder',
    # Multiplex
    'Multiplexer',
    'RoutingResult',
    'RoutingReport',
]
