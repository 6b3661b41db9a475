"""
Cypherpunk Remailer Directory

Read-only mapping from remailer name to its address, public key
material and capabilities.

Design:
- Records are immutable once loaded
- Names are unique and compared case-insensitively
- The directory never changes after construction, so concurrent
  readers need no locking
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Tuple

from ..errors import DirectoryError, UnknownRemailer


logger = logging.getLogger(__name__)


class Capability(Enum):
    """What a remailer can do at a chain position."""
    MIDDLE = "middle-hop"       # Forwards to another remailer
    FINAL = "final-delivery"    # Delivers to the end recipient

    def __str__(self) -> str:
        return self.value


ALL_CAPABILITIES = frozenset(Capability)


@dataclass(frozen=True)
class RemailerRecord:
    """
    A single remailer.

    ``public_key`` is an opaque handle understood by the encryption
    backend: a key id / fingerprint / address for GPG, raw X25519 key
    bytes for the sealed backend.
    """
    name: str
    address: str
    public_key: Any
    capabilities: FrozenSet[Capability] = ALL_CAPABILITIES

    # Published statistics
    options: Tuple[str, ...] = ()
    latency: int = 0        # seconds
    uptime: float = 100.0   # percent

    def __post_init__(self):
        # Normalise whatever iterable was passed into a frozenset
        object.__setattr__(self, "capabilities", frozenset(self.capabilities))

    @property
    def key(self) -> str:
        """Case-folded name used for lookups."""
        return self.name.casefold()

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def __str__(self) -> str:
        return self.name


class RemailerDirectory:
    """
    Immutable collection of remailer records.

    Usage:
        directory = RemailerDirectory(records)
        dizum = directory.lookup("Dizum")
        finals = directory.eligible(Capability.FINAL)
    """

    def __init__(self, records: Iterable[RemailerRecord]):
        """
        Build a directory.

        Raises:
            DirectoryError: If two records share a name (case-insensitively)
        """
        by_key: Dict[str, RemailerRecord] = {}
        for record in records:
            if record.key in by_key:
                raise DirectoryError(f"Duplicate remailer name: {record.name!r}")
            by_key[record.key] = record

        # Stable name order so eligible() is deterministic
        self._records: Dict[str, RemailerRecord] = dict(sorted(by_key.items()))

    def lookup(self, name: str) -> RemailerRecord:
        """
        Get a remailer by name.

        Raises:
            UnknownRemailer: If no remailer has that name
        """
        try:
            return self._records[name.casefold()]
        except KeyError:
            raise UnknownRemailer(name)

    def eligible(self, capability: Capability) -> List[RemailerRecord]:
        """
        All remailers offering ``capability``, in name order.

        The order is only for reproducibility; selection must not
        depend on it.
        """
        return [r for r in self._records.values() if r.supports(capability)]

    def filtered(self, min_uptime: float = 0.0, max_latency: int = 0) -> 'RemailerDirectory':
        """
        New directory restricted to remailers meeting the given statistics.

        Args:
            min_uptime: Minimum uptime percentage (0 = no limit)
            max_latency: Maximum latency in seconds (0 = no limit)
        """
        kept = [
            r for r in self._records.values()
            if r.uptime >= min_uptime and (not max_latency or r.latency <= max_latency)
        ]
        dropped = len(self._records) - len(kept)
        if dropped:
            logger.info(
                f"Filtered out {dropped} remailer(s) "
                f"(min_uptime={min_uptime}, max_latency={max_latency})"
            )
        return RemailerDirectory(kept)

    def names(self) -> List[str]:
        return [r.name for r in self._records.values()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._records

    def __iter__(self) -> Iterator[RemailerRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"RemailerDirectory({self.names()!r})"
