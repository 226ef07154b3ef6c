"""Core definitions for lazy pipelines

This module contains the core definitions for deferred evaluation.
This includes the immutable Pipeline class for chaining operators over a
source sequence, and the Puller that walks a pipeline one element at a time.
"""
import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, TypeVar, Union

from pipecollect.pipe.operators import (
    Operator, OPERATOR_TYPES, TakeOp, flush, initial_state, step
)
from pipecollect.pipe.source import SourceSequence

logger = logging.getLogger(__name__)

T = TypeVar('T')


class PullerState(Enum):
    IDLE = "idle"
    PULLING = "pulling"
    EMITTING = "emitting"
    EXHAUSTED = "exhausted"
    STOPPED = "stopped"
    FAILED = "failed"


FINISHED_STATES = frozenset({PullerState.EXHAUSTED, PullerState.STOPPED, PullerState.FAILED})


class RunContext:
    """Mutable state for one traversal of a pipeline.

    One context is created per Puller, so two consumers of the same pipeline
    never share take counters or chunk buffers.
    """
    states: List[Any]
    pulled: int

    def __init__(self, operators: Iterable[Operator]):
        self.states = [initial_state(op) for op in operators]
        self.pulled = 0


class Pipeline(Generic[T]):
    """An immutable sequence of operators applied to one source sequence.

    Appending an operator returns a new Pipeline; the original is unchanged
    and can be consumed again with identical results as long as the source
    is not mutated in between.

    Key characteristics:
    - Each source element passes through every operator, in declared order,
      before the next source element is pulled
    - take/take_while stop the source pull itself, not just the output
    - Nothing runs until a Puller is driven

    Examples:
        # Using the pipe operator
        pipeline = Pipeline([1, 2, 3]) | MapOp(lambda n: n * 2) | TakeOp(2)

        # Using append
        pipeline = Pipeline([1, 2, 3]).append(FilterOp(lambda n: n % 2))

        # Execute the pipeline
        results = list(pipeline)
    """

    def __init__(self, source: Union[SourceSequence, Iterable[T]], operators: Iterable[Operator] = ()):
        self._source = source if isinstance(source, SourceSequence) else SourceSequence(source)
        self._operators = tuple(operators)
        for op in self._operators:
            _check_operator(op)

    @property
    def source(self) -> SourceSequence:
        return self._source

    @property
    def operators(self) -> tuple:
        return self._operators

    def append(self, operator: Operator) -> 'Pipeline':
        """Return a new pipeline with the operator added at the end."""
        _check_operator(operator)
        logger.debug(f"Appending {type(operator).__name__} to pipeline with {len(self._operators)} operator(s)")
        return Pipeline(self._source, self._operators + (operator,))

    def __or__(self, other: Operator) -> 'Pipeline':
        """Allows chaining operators using the | (or) operator."""
        return self.append(other)

    def puller(self) -> 'Puller':
        """Start a new, independent traversal."""
        return Puller(self)

    def __iter__(self) -> Iterator[Any]:
        return self.puller()

    def run(self, on_item: Callable[[Any], Optional[bool]]) -> int:
        """Feed every output item to on_item until the run ends.

        The run stops early when on_item returns False.

        Returns:
            The number of items delivered to on_item.
        """
        delivered = 0
        for item in self.puller():
            delivered += 1
            if on_item(item) is False:
                break
        return delivered

    def __repr__(self):
        names = ", ".join(type(op).__name__ for op in self._operators)
        return f"Pipeline({self._source!r}, [{names}])"


def _check_operator(op):
    if not isinstance(op, OPERATOR_TYPES):
        raise TypeError(f"Expected an operator, got {type(op).__name__}")


class Puller(Iterator[Any]):
    """Drives one traversal of a pipeline.

    The puller fetches a raw element from the source, pushes it depth-first
    through every operator and buffers whatever reaches the end.  It only
    pulls the next source element once that buffer is empty, so a consumer
    that stops asking stops the source as well.

    States: IDLE -> PULLING -> (EMITTING | EXHAUSTED | STOPPED) -> IDLE.
    A callback that raises moves the puller to FAILED; the exception is
    re-raised and later calls report exhaustion.

    Chunk buffers are flushed when the run ends.  After EXHAUSTED every chunk
    flushes in declared order.  After STOPPED only chunks downstream of the
    operator that stopped the run flush, since nothing upstream of it can be
    emitted any more.
    """

    def __init__(self, pipeline: Pipeline):
        self.pipeline = pipeline
        self.context = RunContext(pipeline.operators)
        self.state = PullerState.IDLE
        self._operators = pipeline.operators
        self._source = None
        self._ready = deque()
        self._stop_position = None

    @property
    def finished(self) -> bool:
        return self.state in FINISHED_STATES

    @property
    def pulled(self) -> int:
        """Number of raw elements read from the source so far."""
        return self.context.pulled

    def __iter__(self):
        return self

    def __next__(self):
        while not self._ready:
            if self.finished:
                raise StopIteration
            try:
                self._advance()
            except Exception:
                self._ready.clear()
                self._transition(PullerState.FAILED)
                raise
        return self._ready.popleft()

    def _transition(self, state: PullerState):
        self.state = state
        if state in FINISHED_STATES:
            logger.debug(f"Puller {state.value} after pulling {self.context.pulled} element(s)")

    def _advance(self):
        if self._source is None:
            if len(self.pipeline.source) == 0:
                self._finish_exhausted()
                return
            zero_take = self._zero_take_position()
            if zero_take is not None:
                self._stop_position = zero_take
                self._finish_stopped()
                return
            self._source = self.pipeline.source.iterate()

        self._transition(PullerState.PULLING)
        try:
            value = next(self._source)
        except StopIteration:
            self._finish_exhausted()
            return
        self.context.pulled += 1

        self._transition(PullerState.EMITTING)
        if self._push(0, value):
            self._transition(PullerState.IDLE)
        else:
            self._finish_stopped()

    def _zero_take_position(self) -> Optional[int]:
        positions = [i for i, op in enumerate(self._operators) if isinstance(op, TakeOp) and op.limit == 0]
        return positions[-1] if positions else None

    def _push(self, position: int, value: Any) -> bool:
        """Push one value into the operator at position.

        Returns False when some operator at or below position ended the run;
        self._stop_position then names the deepest such operator.
        """
        if position == len(self._operators):
            self._ready.append(value)
            return True
        op = self._operators[position]
        outcome = step(op, value, self.context.states[position])
        self.context.states[position] = outcome.state
        for emitted in outcome.emit:
            if not self._push(position + 1, emitted):
                return False
        if not outcome.proceed:
            self._stop_position = position
            return False
        return True

    def _flush_from(self, position: int):
        while position < len(self._operators):
            op = self._operators[position]
            pending, self.context.states[position] = flush(op, self.context.states[position])
            if pending is not None and not self._push(position + 1, pending):
                position = self._stop_position + 1
                continue
            position += 1

    def _finish_exhausted(self):
        self._flush_from(0)
        self._transition(PullerState.EXHAUSTED)

    def _finish_stopped(self):
        self._flush_from(self._stop_position + 1)
        self._transition(PullerState.STOPPED)
