"""Eager collections.

Collection wraps a list and offers chainable, eager helpers over in-memory
sequences and keyed records (dicts, objects, pydantic models).  Keys are
dotted property paths ("address.city") or callables.

The eager helpers never go through a Pipeline.  lazy(), cursor(), stream() and
parallel() are the bridges into the deferred and concurrent machinery.
"""
import functools
import logging
from collections.abc import Sequence
from typing import (
    Any, AsyncIterator, Callable, Dict, Generic, Iterable, Iterator, List, Optional, TypeVar
)

import numpy as np
from pydantic import BaseModel

from pipecollect.operations import parallel as parallel_ops
from pipecollect.pipe.lazy import LazyCollection, lazy
from pipecollect.pipe.streams import PipelineStream, validate_chunk_size
from pipecollect.util.data_manipulation import KeyLike, key_getter, to_number

logger = logging.getLogger(__name__)

T = TypeVar('T')
U = TypeVar('U')


class PaginationResult(BaseModel):
    """One page of a collection along with its position in the whole."""

    data: List[Any]
    current_page: int
    per_page: int
    total: int
    last_page: int
    has_more_pages: bool


class Collection(Sequence, Generic[T]):
    """An eager, chainable wrapper around a list.

    Examples:
        >>> collect([3, 1, 2]).sort().map(lambda n: n * 10).all()
        [10, 20, 30]
        >>> people = collect([{"name": "Ada", "team": "a"}, {"name": "Bo", "team": "b"}])
        >>> people.pluck("name").all()
        ['Ada', 'Bo']
        >>> {team: group.count() for team, group in people.group_by("team").items()}
        {'a': 1, 'b': 1}
    """

    def __init__(self, items: Optional[Iterable[T]] = None):
        if items is None:
            items = []
        elif isinstance(items, Collection):
            items = items.all()
        self._items = list(items)

    # Access

    def all(self) -> List[T]:
        return list(self._items)

    def to_list(self) -> List[T]:
        return list(self._items)

    def count(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Collection(self._items[index])
        return self._items[index]

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __eq__(self, other):
        if isinstance(other, Collection):
            return self._items == other._items
        if isinstance(other, list):
            return self._items == other
        return NotImplemented

    def __repr__(self):
        return f"Collection({self._items!r})"

    def is_empty(self) -> bool:
        return not self._items

    def is_not_empty(self) -> bool:
        return bool(self._items)

    def first(self, key: KeyLike = None, default: Any = None) -> Any:
        if not self._items:
            return default
        return key_getter(key)(self._items[0])

    def last(self, key: KeyLike = None, default: Any = None) -> Any:
        if not self._items:
            return default
        return key_getter(key)(self._items[-1])

    def nth(self, index: int, default: Any = None) -> Any:
        if -len(self._items) <= index < len(self._items):
            return self._items[index]
        return default

    # Transformation

    def map(self, fn: Callable[[T], U]) -> 'Collection[U]':
        return Collection(fn(item) for item in self._items)

    def filter(self, predicate: Optional[Callable[[T], bool]] = None) -> 'Collection[T]':
        if predicate is None:
            return Collection(item for item in self._items if item)
        return Collection(item for item in self._items if predicate(item))

    def reject(self, predicate: Callable[[T], bool]) -> 'Collection[T]':
        return Collection(item for item in self._items if not predicate(item))

    def flat_map(self, fn: Callable[[T], Iterable[U]]) -> 'Collection[U]':
        return Collection(value for item in self._items for value in fn(item))

    def reduce(self, fn: Callable[[U, T], U], initial: U) -> U:
        return functools.reduce(fn, self._items, initial)

    def each(self, fn: Callable[[T], Any]) -> 'Collection[T]':
        """Call fn for every item; stop early if fn returns False."""
        for item in self._items:
            if fn(item) is False:
                break
        return self

    def pluck(self, key: KeyLike) -> 'Collection':
        return self.map(key_getter(key))

    def take(self, n: int) -> 'Collection[T]':
        """Take the first n items, or the last -n items when n is negative."""
        if n < 0:
            return Collection(self._items[n:])
        return Collection(self._items[:n])

    def skip(self, n: int) -> 'Collection[T]':
        return Collection(self._items[max(n, 0):])

    def chunk(self, size: int) -> 'Collection[Collection[T]]':
        validate_chunk_size(size)
        return Collection(Collection(self._items[start:start + size])
                          for start in range(0, len(self._items), size))

    def unique(self, key: KeyLike = None) -> 'Collection[T]':
        """Drop items whose key was already seen, keeping first occurrences."""
        get = key_getter(key)
        seen_hashable = set()
        seen_other = []
        result = []
        for item in self._items:
            value = get(item)
            try:
                if value in seen_hashable:
                    continue
                seen_hashable.add(value)
            except TypeError:
                if value in seen_other:
                    continue
                seen_other.append(value)
            result.append(item)
        return Collection(result)

    def sort(self, compare: Optional[Callable[[T, T], int]] = None) -> 'Collection[T]':
        if compare is None:
            return Collection(sorted(self._items))
        return Collection(sorted(self._items, key=functools.cmp_to_key(compare)))

    def sort_by(self, key: KeyLike, descending: bool = False) -> 'Collection[T]':
        return Collection(sorted(self._items, key=key_getter(key), reverse=descending))

    def group_by(self, key: KeyLike) -> Dict[Any, 'Collection[T]']:
        get = key_getter(key)
        groups: Dict[Any, list] = {}
        for item in self._items:
            groups.setdefault(get(item), []).append(item)
        return {group: Collection(members) for group, members in groups.items()}

    def key_by(self, key: KeyLike) -> Dict[Any, T]:
        """Index items by key; later items win on collisions."""
        get = key_getter(key)
        return {get(item): item for item in self._items}

    def where(self, key: KeyLike, value: Any) -> 'Collection[T]':
        get = key_getter(key)
        return Collection(item for item in self._items if get(item) == value)

    def where_in(self, key: KeyLike, values: Iterable[Any]) -> 'Collection[T]':
        get = key_getter(key)
        allowed = list(values)
        return Collection(item for item in self._items if get(item) in allowed)

    # Statistics

    def _numbers(self, key: KeyLike) -> List[float]:
        get = key_getter(key)
        return [to_number(get(item)) for item in self._items]

    def sum(self, key: KeyLike = None):
        """Sum the items (or a key of each); values that are not numeric count as 0."""
        if not self._items:
            return 0
        values = self._numbers(key)
        if all(isinstance(v, int) for v in values):
            return sum(values)
        return float(np.nansum(np.asarray(values, dtype=float)))

    def avg(self, key: KeyLike = None) -> float:
        if not self._items:
            return 0
        return self.sum(key) / len(self._items)

    def median(self, key: KeyLike = None) -> Optional[float]:
        if not self._items:
            return None
        values = [to_number(v, default=None) for v in map(key_getter(key), self._items)]
        values = [v for v in values if v is not None]
        if not values:
            return None
        return np.median(np.asarray(values, dtype=float)).item()

    def min(self, key: KeyLike = None) -> Any:
        """Return the item with the smallest value (of key, when given)."""
        if not self._items:
            return None
        return min(self._items, key=key_getter(key))

    def max(self, key: KeyLike = None) -> Any:
        """Return the item with the largest value (of key, when given)."""
        if not self._items:
            return None
        return max(self._items, key=key_getter(key))

    # Pagination

    def for_page(self, page: int, per_page: int) -> 'Collection[T]':
        offset = max(page - 1, 0) * per_page
        return Collection(self._items[offset:offset + per_page])

    def paginate(self, per_page: int, page: int = 1) -> PaginationResult:
        if per_page < 1:
            raise ValueError("per_page must be at least 1")
        total = len(self._items)
        last_page = max(-(-total // per_page), 1)
        current_page = min(max(page, 1), last_page)
        return PaginationResult(
            data=self.for_page(current_page, per_page).all(),
            current_page=current_page,
            per_page=per_page,
            total=total,
            last_page=last_page,
            has_more_pages=current_page < last_page,
        )

    # Deferred, streaming and concurrent consumption

    def lazy(self) -> LazyCollection[T]:
        return lazy(self._items)

    async def cursor(self, size: int) -> AsyncIterator['Collection[T]']:
        """Asynchronously iterate the collection in chunks of at most size items."""
        async for chunk in self.lazy().cursor(size):
            yield Collection(chunk)

    def stream(self) -> PipelineStream[T]:
        return self.lazy().stream()

    @classmethod
    async def from_stream(cls, stream: PipelineStream) -> 'Collection':
        """Drain a stream into a new collection."""
        items = []
        reader = stream.get_reader()
        try:
            while True:
                result = await reader.read()
                if result.done:
                    break
                items.append(result.value)
        finally:
            reader.release_lock()
        return cls(items)

    async def parallel(self,
                       worker: Callable[['Collection[T]'], Any],
                       chunks: Optional[int] = None,
                       max_concurrency: Optional[int] = None,
                       raise_on_error: bool = False) -> 'Collection':
        """Run an async worker over contiguous partitions of this collection.

        Each partition is handed to worker as a Collection.  The results are
        flattened in original partition order regardless of which worker
        finishes first.

        Example:
            >>> async def upper(part):
            ...     return part.map(str.upper)
            >>> asyncio.run(collect(['a', 'b', 'c', 'd']).parallel(upper, chunks=2, max_concurrency=1))
            Collection(['A', 'B', 'C', 'D'])
        """
        results = await parallel_ops.parallel(self._items, worker, chunks=chunks,
                                              max_concurrency=max_concurrency,
                                              raise_on_error=raise_on_error,
                                              wrap=Collection)
        return Collection(results)


def collect(items: Optional[Iterable[T]] = None) -> Collection[T]:
    """Create an eager collection from any iterable."""
    return Collection(items)


def arange(start: int, end: int, step: int = 1) -> Collection[int]:
    """Numbers from start to end inclusive."""
    if step == 0:
        raise ValueError("step must not be zero")
    stop = end + 1 if step > 0 else end - 1
    return Collection(range(start, stop, step))


def times(n: int, fn: Callable[[int], T]) -> Collection[T]:
    """Collect fn(0) ... fn(n - 1)."""
    return Collection(fn(index) for index in range(n))


def is_collection(value: Any) -> bool:
    return isinstance(value, Collection)
