"""Source sequence adapter for lazy pipelines."""
import logging
from collections.abc import Sequence
from typing import Generic, Iterable, Iterator, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class SourceSequence(Generic[T]):
    """Wraps an in-memory ordered collection as a pull-based iterable.

    The wrapped sequence is held by reference and only ever read.  Each call
    to iterate() starts an independent traversal that reads elements by index,
    one at a time, so a pipeline that stops early never touches the elements
    it did not need.

    Any iterable that is not a Sequence is materialized into a list once, when
    the adapter is created.
    """

    def __init__(self, items: Iterable[T]):
        if isinstance(items, SourceSequence):
            items = items.items
        elif not isinstance(items, Sequence):
            items = list(items)
        self._items = items

    @property
    def items(self) -> Sequence:
        return self._items

    def __len__(self) -> int:
        return len(self._items)

    def iterate(self) -> Iterator[T]:
        index = 0
        # Length is re-read every step; a shrinking source ends the run.
        while index < len(self._items):
            yield self._items[index]
            index += 1

    def __iter__(self) -> Iterator[T]:
        return self.iterate()

    def __repr__(self):
        return f"SourceSequence(length={len(self._items)})"
