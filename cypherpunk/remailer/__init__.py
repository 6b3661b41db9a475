"""
Cypherpunk Remailer Module

Everything needed to pick the remailers a message travels through.

Components:
- directory.py: Remailer records and the read-only directory
- stats.py: Loading directories from rlist.txt or TOML files
- chain.py: Chain specification resolution (names and wildcards)
"""

from .directory import (
    Capability,
    RemailerRecord,
    RemailerDirectory,
)

from .stats import (
    parse_rlist,
    parse_latency,
    load_directory,
)

from .chain import (
    RandomSource,
    ResolvedChain,
    resolve,
)

__all__ = [
    # Directory
    'Capability',
    'RemailerRecord',
    'RemailerDirectory',
    # Stats
    'parse_rlist',
    'parse_latency',
    'load_directory',
    # Chain
    'RandomSource',
    'ResolvedChain',
    'resolve',
]
