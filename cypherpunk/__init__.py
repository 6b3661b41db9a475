"""
Cypherpunk - Type-I Remailer Chain Builder

Builds anonymous, multi-hop messages for delivery through a chain of
Cypherpunk (Type-I) remailers. Each remailer decrypts one layer and
forwards the remainder to the next hop or the final recipient.

This package contains:
- crypto/    : Encryption backends (GPG command line, X25519 sealed boxes)
- remailer/  : Remailer directory, statistics parsing and chain resolution
- onion/     : Per-hop envelopes, layered encryption and redundancy
- packet/    : Output formats (native block, mailto: URI, .eml file)
"""

__version__ = "0.1.0"
__author__ = "Cypherpunk CLI Project"

# Chain constants
WILDCARD = "*"
DEFAULT_REDUNDANCY = 1
MAX_CHAIN_LENGTH = 8
