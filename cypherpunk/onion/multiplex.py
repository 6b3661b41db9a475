"""
Cypherpunk Redundancy Multiplexer

Remailers drop messages now and then, so a message can be sent as
several independently routed copies. Each copy gets its own wildcard
draws and its own encryption; copies share nothing but the read-only
remailer directory.

Randomness is partitioned: every copy gets a private random.Random
seeded from the system CSPRNG, so copies can run on worker threads
without sharing a generator.
"""

import logging
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .. import MAX_CHAIN_LENGTH
from ..errors import CypherpunkError
from ..remailer.chain import RandomSource, ResolvedChain, resolve
from ..remailer.directory import RemailerDirectory
from .envelope import Envelope, Message
from .layers import OnionBuilder


logger = logging.getLogger(__name__)

RandomFactory = Callable[[int], RandomSource]


@dataclass(frozen=True)
class RoutingResult:
    """One finished copy: the chain it takes and the outer envelope."""
    index: int
    chain: ResolvedChain
    payload: Envelope

    @property
    def first_hop(self) -> str:
        """Address the payload must be mailed to."""
        return self.payload.recipient_directive


@dataclass
class RoutingReport:
    """
    Outcome of a multiplexed send.

    ``results`` are in generation order; ``failures`` pairs each failed
    copy index with its error; ``cancelled`` lists copies never started.
    """
    requested: int
    results: List[RoutingResult] = field(default_factory=list)
    failures: List[Tuple[int, CypherpunkError]] = field(default_factory=list)
    cancelled: List[int] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.results)

    @property
    def ok(self) -> bool:
        """True when every requested copy was produced."""
        return self.succeeded == self.requested


class _Cancelled(Exception):
    pass


def system_random_factory() -> RandomFactory:
    """One fresh generator per copy, seeded from the OS."""
    seeder = random.SystemRandom()

    def factory(index: int) -> RandomSource:
        return random.Random(seeder.getrandbits(128))

    return factory


class Multiplexer:
    """
    Produces redundant, independently routed copies of a message.

    Usage:
        mux = Multiplexer(directory, OnionBuilder(backend))
        report = mux.route(["*", "*", "dizum"], message, redundancy_count=3)
        for result in report.results:
            send(result.first_hop, format_result(result, "native"))
    """

    def __init__(
        self,
        directory: RemailerDirectory,
        builder: OnionBuilder,
        rng_factory: Optional[RandomFactory] = None,
        workers: int = 1,
        wildcard_pool: Optional[RemailerDirectory] = None,
        max_length: int = MAX_CHAIN_LENGTH,
    ):
        """
        Args:
            directory: Remailer directory (only read)
            builder: Onion builder wrapping the encryption backend
            rng_factory: Returns the random source for copy N
                (default: per-copy generators seeded from the OS)
            workers: Copies built concurrently (1 = sequential)
            wildcard_pool: Directory wildcards draw from (default: ``directory``)
            max_length: Most hops a chain may have
        """
        if workers < 1:
            raise ValueError(f"Invalid worker count: {workers}")
        self._directory = directory
        self._builder = builder
        self._rng_factory = rng_factory or system_random_factory()
        self._workers = workers
        self._wildcard_pool = wildcard_pool
        self._max_length = max_length

    def _route_copy(
        self,
        index: int,
        chain_spec: Sequence[str],
        message: Message,
        rng: RandomSource,
        cancel: Optional[threading.Event],
    ) -> RoutingResult:
        if cancel is not None and cancel.is_set():
            raise _Cancelled()

        chain = resolve(
            chain_spec, self._directory, rng, self._wildcard_pool, self._max_length,
        )
        payload = self._builder.encrypt_chain(chain, message)
        logger.debug(f"Copy {index}: {chain}")
        return RoutingResult(index=index, chain=chain, payload=payload)

    def _run_copy(self, *args) -> Union[RoutingResult, CypherpunkError, _Cancelled]:
        """Run one copy, turning library errors into return values."""
        try:
            return self._route_copy(*args)
        except (CypherpunkError, _Cancelled) as e:
            return e

    def route(
        self,
        chain_spec: Sequence[str],
        message: Message,
        redundancy_count: int = 1,
        cancel: Optional[threading.Event] = None,
    ) -> RoutingReport:
        """
        Build ``redundancy_count`` independent copies.

        A failing copy never aborts its siblings; its error is reported
        in the returned RoutingReport instead.

        Args:
            chain_spec: Remailer names and wildcards, first hop first
            message: Recipient, headers and body
            redundancy_count: Number of copies (at least 1)
            cancel: Set to stop starting further copies

        Raises:
            ValueError: If ``redundancy_count`` is below 1
        """
        if redundancy_count < 1:
            raise ValueError(f"Invalid redundancy count: {redundancy_count}")

        chain_spec = list(chain_spec)
        rngs = [self._rng_factory(index) for index in range(redundancy_count)]
        report = RoutingReport(requested=redundancy_count)

        if self._workers == 1 or redundancy_count == 1:
            outcomes = [
                self._run_copy(index, chain_spec, message, rngs[index], cancel)
                for index in range(redundancy_count)
            ]
        else:
            with ThreadPoolExecutor(
                max_workers=min(self._workers, redundancy_count),
                thread_name_prefix="copy",
            ) as pool:
                futures = [
                    pool.submit(
                        self._run_copy, index, chain_spec, message, rngs[index], cancel,
                    )
                    for index in range(redundancy_count)
                ]
                outcomes = [future.result() for future in futures]

        for index, outcome in enumerate(outcomes):
            if isinstance(outcome, RoutingResult):
                report.results.append(outcome)
            elif isinstance(outcome, _Cancelled):
                report.cancelled.append(index)
            else:
                logger.error(f"Copy {index} failed: {outcome}")
                report.failures.append((index, outcome))

        logger.info(
            f"Built {report.succeeded}/{redundancy_count} copies"
            + (f", {len(report.failures)} failed" if report.failures else "")
            + (f", {len(report.cancelled)} cancelled" if report.cancelled else "")
        )
        return report
