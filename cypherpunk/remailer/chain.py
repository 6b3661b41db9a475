"""
Cypherpunk Chain Resolution

Turns a chain specification (remailer names and "*" wildcards) into a
concrete, ordered list of remailers.

Position 0 is the first hop, i.e. the outermost encryption layer; the
last position is the final-delivery hop. Every non-final position needs
a remailer with middle-hop capability, the last one a remailer with
final-delivery capability.

Randomness is injected: any object with a ``choice(seq)`` method (such
as ``random.Random``) will do, which keeps tests deterministic and lets
redundant copies use independent generators.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple, TypeVar

from .. import MAX_CHAIN_LENGTH, WILDCARD
from ..errors import CapabilityMismatch, ChainTooLong, EmptyChain, NoEligibleRemailer
from .directory import Capability, RemailerDirectory, RemailerRecord


logger = logging.getLogger(__name__)

T = TypeVar("T")


class RandomSource(Protocol):
    """Source of uniform choices used for wildcard resolution."""

    def choice(self, seq: Sequence[T]) -> T:
        """Return one element of ``seq`` chosen uniformly at random."""


@dataclass(frozen=True)
class ResolvedChain:
    """
    Concrete remailer chain for one message copy.

    ``degraded`` is set when the directory had too few eligible
    remailers and a wildcard had to repeat a remailer already in the
    chain (reduced anonymity).
    """
    hops: Tuple[RemailerRecord, ...]
    degraded: bool = False

    @property
    def first(self) -> RemailerRecord:
        return self.hops[0]

    @property
    def last(self) -> RemailerRecord:
        return self.hops[-1]

    def names(self) -> List[str]:
        return [hop.name for hop in self.hops]

    def __len__(self) -> int:
        return len(self.hops)

    def __iter__(self):
        return iter(self.hops)

    def __str__(self) -> str:
        return " -> ".join(self.names())


def is_wildcard(token: str) -> bool:
    return token.strip() == WILDCARD


def required_capability(position: int, length: int) -> Capability:
    """Capability a remailer needs to sit at ``position`` in a chain of ``length``."""
    return Capability.FINAL if position == length - 1 else Capability.MIDDLE


def resolve(
    chain_spec: Sequence[str],
    directory: RemailerDirectory,
    rng: RandomSource,
    wildcard_pool: Optional[RemailerDirectory] = None,
    max_length: int = MAX_CHAIN_LENGTH,
) -> ResolvedChain:
    """
    Resolve a chain specification against a directory.

    Args:
        chain_spec: Remailer names and wildcards, first hop first
        directory: Directory used for literal names
        rng: Random source for wildcard draws
        wildcard_pool: Directory wildcards draw from (default: ``directory``),
            e.g. one filtered by uptime
        max_length: Most hops a chain may have

    Returns:
        ResolvedChain of the same length as ``chain_spec``

    Raises:
        EmptyChain: If ``chain_spec`` is empty
        ChainTooLong: If ``chain_spec`` is longer than ``max_length``
        UnknownRemailer: If a literal name is not in the directory
        CapabilityMismatch: If a literal remailer cannot serve its position
        NoEligibleRemailer: If no remailer can serve a wildcard position
    """
    if not chain_spec:
        raise EmptyChain()
    if len(chain_spec) > max_length:
        raise ChainTooLong(len(chain_spec), max_length)

    pool = wildcard_pool if wildcard_pool is not None else directory
    length = len(chain_spec)
    chosen: List[RemailerRecord] = []
    degraded = False

    for position, token in enumerate(chain_spec):
        required = required_capability(position, length)

        if not is_wildcard(token):
            record = directory.lookup(token.strip())
            if not record.supports(required):
                raise CapabilityMismatch(record.name, position, str(required))
            chosen.append(record)
            continue

        eligible = pool.eligible(required)
        if not eligible:
            raise NoEligibleRemailer(position, str(required))

        candidates = [r for r in eligible if r not in chosen]
        if not candidates:
            logger.warning(
                f"Only {len(eligible)} {required} remailer(s) for a chain of "
                f"{length}; position {position} repeats a remailer"
            )
            candidates = eligible
            degraded = True

        chosen.append(rng.choice(candidates))

    chain = ResolvedChain(hops=tuple(chosen), degraded=degraded)
    logger.debug(f"Resolved chain {list(chain_spec)} to {chain}")
    return chain
