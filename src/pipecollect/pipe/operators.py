"""Operator nodes for lazy pipelines.

Each operator is a small frozen dataclass describing one deferred
transformation step.  Operators hold only their callback or limit; anything
that changes while a pipeline runs (how many items a take has let through, the
partially filled buffer of a chunk) lives in per-run state created by
initial_state() and threaded through step().

    step(MapOp(str.upper), "a", None)          -> Step(emit=("A",), proceed=True)
    step(TakeOp(2), "x", 1)                    -> Step(emit=("x",), proceed=False, state=2)
    step(TakeWhileOp(lambda n: n < 3), 5, None) -> Step(emit=(), proceed=False)
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union


@dataclass(frozen=True)
class MapOp:
    """Emit fn(item) for every item."""
    fn: Callable[[Any], Any]

    def __post_init__(self):
        _require_callable(self.fn, "map")


@dataclass(frozen=True)
class FilterOp:
    """Emit the item only when predicate(item) is truthy."""
    predicate: Callable[[Any], bool]

    def __post_init__(self):
        _require_callable(self.predicate, "filter")


@dataclass(frozen=True)
class TakeOp:
    """Emit at most `limit` items, then stop the run."""
    limit: int

    def __post_init__(self):
        if not isinstance(self.limit, int) or isinstance(self.limit, bool):
            raise TypeError(f"take() expects an integer, got {type(self.limit).__name__}")
        if self.limit < 0:
            raise ValueError("take() on a lazy collection requires a non-negative count; "
                             "use Collection.take() to take from the end")


@dataclass(frozen=True)
class TakeWhileOp:
    """Emit items while predicate holds (or fails, when until=True).

    The first item that ends the run is not emitted.
    """
    predicate: Callable[[Any], bool]
    until: bool = False

    def __post_init__(self):
        _require_callable(self.predicate, "take_until" if self.until else "take_while")


@dataclass(frozen=True)
class ChunkOp:
    """Group items into lists of `size`; a shorter remainder is flushed at the end."""
    size: int

    def __post_init__(self):
        if not isinstance(self.size, int) or isinstance(self.size, bool):
            raise TypeError(f"chunk() expects an integer size, got {type(self.size).__name__}")
        if self.size < 1:
            raise ValueError("chunk() size must be at least 1")


@dataclass(frozen=True)
class FlatMapOp:
    """Emit every element of the iterable returned by fn(item), in order."""
    fn: Callable[[Any], Iterable[Any]]

    def __post_init__(self):
        _require_callable(self.fn, "flat_map")


Operator = Union[MapOp, FilterOp, TakeOp, TakeWhileOp, ChunkOp, FlatMapOp]
OPERATOR_TYPES = (MapOp, FilterOp, TakeOp, TakeWhileOp, ChunkOp, FlatMapOp)


@dataclass(frozen=True)
class Step:
    """Result of feeding one value to one operator."""
    emit: Iterable[Any] = ()
    proceed: bool = True
    state: Any = field(default=None)


def _require_callable(fn, name):
    if not callable(fn):
        raise TypeError(f"{name}() expects a callable, got {type(fn).__name__}")


def initial_state(op: Operator) -> Any:
    """Fresh per-run state for an operator."""
    match op:
        case TakeOp():
            return 0
        case ChunkOp():
            return []
        case MapOp() | FilterOp() | TakeWhileOp() | FlatMapOp():
            return None
        case _:
            raise TypeError(f"Unknown operator type: {type(op).__name__}")


def step(op: Operator, value: Any, state: Any) -> Step:
    """Apply one operator to one upstream value."""
    match op:
        case MapOp(fn=fn):
            return Step((fn(value),), True, state)
        case FilterOp(predicate=predicate):
            return Step((value,) if predicate(value) else (), True, state)
        case TakeOp(limit=limit):
            if state >= limit:
                return Step((), False, state)
            taken = state + 1
            return Step((value,), taken < limit, taken)
        case TakeWhileOp(predicate=predicate, until=until):
            if bool(predicate(value)) != until:
                return Step((value,), True, state)
            return Step((), False, state)
        case ChunkOp(size=size):
            state.append(value)
            if len(state) >= size:
                return Step((state,), True, [])
            return Step((), True, state)
        case FlatMapOp(fn=fn):
            return Step(fn(value), True, state)
        case _:
            raise TypeError(f"Unknown operator type: {type(op).__name__}")


def flush(op: Operator, state: Any) -> Tuple[Optional[List[Any]], Any]:
    """Release whatever an operator is still holding when its input ends.

    Returns the pending emission (or None) and the new state.
    """
    match op:
        case ChunkOp():
            if state:
                return state, []
            return None, state
        case MapOp() | FilterOp() | TakeOp() | TakeWhileOp() | FlatMapOp():
            return None, state
        case _:
            raise TypeError(f"Unknown operator type: {type(op).__name__}")
