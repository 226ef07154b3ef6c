"""Bounded-concurrency execution of an async worker over contiguous partitions.

The source is split eagerly into at most `chunks` contiguous partitions.  A
worker is run per partition with no more than `max_concurrency` invocations
unresolved at any moment.  Admission is first-in first-out in partition order
and a slot is handed to the next queued partition as soon as a running one
finishes.  Results are stored by partition index, so completion order never
shows up in the output.

"Concurrent" here means interleaved on one asyncio event loop; the bound
limits outstanding awaits (outbound calls, open connections), not CPU use.
There is no timeout: a worker that never resolves holds its slot forever.
"""
import asyncio
import inspect
import logging
import math
import os
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable, Deque, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, PositiveInt

from pipecollect.errors import PartitionError
from pipecollect.util.config import get_int_setting
from pipecollect.util.constants import (
    DEFAULT_PARALLEL_CHUNKS, PARALLEL_CHUNKS, PARALLEL_MAX_CONCURRENCY
)

logger = logging.getLogger(__name__)


class ParallelOptions(BaseModel):
    """Validated partitioning and concurrency settings."""

    model_config = ConfigDict(frozen=True)

    chunks: PositiveInt
    max_concurrency: PositiveInt

    @classmethod
    def resolve(cls, chunks: Optional[int] = None, max_concurrency: Optional[int] = None) -> 'ParallelOptions':
        """Fill unset options from configuration.

        chunks falls back to the parallel_chunks setting, then the CPU count.
        max_concurrency falls back to the parallel_max_concurrency setting,
        then to chunks.
        """
        if chunks is None:
            chunks = get_int_setting(PARALLEL_CHUNKS)
            if chunks is None:
                chunks = os.cpu_count() or DEFAULT_PARALLEL_CHUNKS
        if max_concurrency is None:
            max_concurrency = get_int_setting(PARALLEL_MAX_CONCURRENCY)
            if max_concurrency is None:
                max_concurrency = chunks
        return cls(chunks=chunks, max_concurrency=max_concurrency)


class ConcurrencyToken:
    """Counting admission token with a FIFO queue of waiters.

    release() hands its slot straight to the oldest waiter, so in_flight
    never drops and rises again between one worker finishing and the next
    one starting.
    """

    def __init__(self, max_concurrency: int):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self.in_flight = 0
        self.peak_in_flight = 0
        self.waiters: Deque[asyncio.Future] = deque()

    def _admit(self):
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)

    async def acquire(self):
        if self.in_flight < self.max_concurrency and not self.waiters:
            self._admit()
            return
        waiter = asyncio.get_running_loop().create_future()
        self.waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The slot was already handed over; pass it on.
                self.release()
            elif waiter in self.waiters:
                self.waiters.remove(waiter)
            raise

    def release(self):
        self.in_flight -= 1
        while self.waiters:
            waiter = self.waiters.popleft()
            if not waiter.done():
                self._admit()
                waiter.set_result(None)
                return


@dataclass
class PartitionOutcome:
    """Result slot for one partition."""
    index: int
    value: Any = None
    error: Optional[PartitionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BoundedExecutor:
    """Runs a worker over partitions with at most max_concurrency in flight."""

    def __init__(self, max_concurrency: int):
        self.token = ConcurrencyToken(max_concurrency)

    async def run(self, partitions: Sequence, worker: Callable[[Any], Any]) -> List[PartitionOutcome]:
        outcomes = [PartitionOutcome(index=i) for i in range(len(partitions))]
        ready = deque(enumerate(partitions))
        tasks = []
        try:
            while ready:
                index, partition = ready.popleft()
                await self.token.acquire()
                logger.debug(f"Admitting partition {index} "
                             f"({self.token.in_flight}/{self.token.max_concurrency} in flight)")
                tasks.append(asyncio.create_task(self._execute(worker, partition, outcomes[index])))
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise
        return outcomes

    async def _execute(self, worker, partition, outcome: PartitionOutcome):
        try:
            result = worker(partition)
            if inspect.isawaitable(result):
                result = await result
            outcome.value = result
        except Exception as e:
            logger.warning(f"Worker failed on partition {outcome.index}: {e!r}")
            outcome.error = PartitionError(outcome.index, e)
        finally:
            self.token.release()
            logger.debug(f"Released slot for partition {outcome.index}")


def partition(items: Iterable[Any], chunks: int, wrap: Callable[[list], Any] = list) -> List[Any]:
    """Split items into at most `chunks` contiguous partitions in original order.

    Every partition has ceil(len / chunks) items except possibly the last.
    An empty input yields no partitions.
    """
    if chunks < 1:
        raise ValueError("chunks must be at least 1")
    items = list(items)
    if not items:
        return []
    size = math.ceil(len(items) / chunks)
    return [wrap(items[start:start + size]) for start in range(0, len(items), size)]


def flatten_outcomes(outcomes: Iterable[PartitionOutcome]) -> List[Any]:
    """Concatenate partition results in partition order.

    A result that is a sequence (other than str/bytes) contributes its
    elements; anything else contributes itself.  A failed partition
    contributes its PartitionError.
    """
    flat = []
    for outcome in outcomes:
        if outcome.error is not None:
            flat.append(outcome.error)
        elif isinstance(outcome.value, Sequence) and not isinstance(outcome.value, (str, bytes)):
            flat.extend(outcome.value)
        else:
            flat.append(outcome.value)
    return flat


async def run_partitions(items: Iterable[Any],
                         worker: Callable[[Any], Any],
                         chunks: Optional[int] = None,
                         max_concurrency: Optional[int] = None,
                         wrap: Callable[[list], Any] = list) -> List[PartitionOutcome]:
    """Partition items and run worker over each partition.

    Returns:
        One PartitionOutcome per partition, in partition order.
    """
    options = ParallelOptions.resolve(chunks, max_concurrency)
    partitions = partition(items, options.chunks, wrap=wrap)
    logger.debug(f"Running {len(partitions)} partition(s) with max_concurrency={options.max_concurrency}")
    executor = BoundedExecutor(options.max_concurrency)
    return await executor.run(partitions, worker)


async def parallel(items: Iterable[Any],
                   worker: Callable[[Any], Any],
                   chunks: Optional[int] = None,
                   max_concurrency: Optional[int] = None,
                   raise_on_error: bool = False,
                   wrap: Callable[[list], Any] = list) -> List[Any]:
    """Run an async worker over contiguous partitions and flatten the results.

    Args:
        items: The source items.  They are partitioned eagerly.
        worker: Called with one partition; may be a coroutine function or a
            plain callable.
        chunks: Number of partitions to aim for.  Defaults to the
            parallel_chunks setting, else the CPU count.
        max_concurrency: Upper bound on unresolved worker calls.  Defaults to
            the parallel_max_concurrency setting, else chunks.
        raise_on_error: If True, raise the first failed partition's
            PartitionError once every partition has settled.
        wrap: Applied to each partition list before it is handed to worker.

    Returns:
        The flattened results in source order.  Failed partitions contribute
        their PartitionError unless raise_on_error is set.

    Example:
        >>> async def upper(part):
        ...     return [s.upper() for s in part]
        >>> asyncio.run(parallel(['a', 'b', 'c', 'd'], upper, chunks=2, max_concurrency=1))
        ['A', 'B', 'C', 'D']
    """
    outcomes = await run_partitions(items, worker, chunks=chunks, max_concurrency=max_concurrency, wrap=wrap)
    if raise_on_error:
        for outcome in outcomes:
            if outcome.error is not None:
                raise outcome.error
    return flatten_outcomes(outcomes)
