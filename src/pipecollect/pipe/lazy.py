"""Fluent lazy collections.

A LazyCollection wraps an immutable Pipeline.  Every chaining method returns a
new LazyCollection with one more operator; nothing is evaluated until a
terminal method (to_list, to_array, first, count, cursor, stream, parallel,
collect) or plain iteration drives it.

    >>> lazy([1, 2, 3, 4, 5]).map(lambda n: n * 2).filter(lambda n: n > 5).to_list()
    [6, 8, 10]
    >>> lazy(range(1, 8)).chunk(3).to_list()
    [[1, 2, 3], [4, 5, 6], [7]]
"""
import logging
from typing import Any, AsyncIterator, Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

from pipecollect.operations import parallel as parallel_ops
from pipecollect.pipe.core import Pipeline
from pipecollect.pipe.operators import (
    ChunkOp, FilterOp, FlatMapOp, MapOp, Operator, TakeOp, TakeWhileOp
)
from pipecollect.pipe.streams import PipelineStream, chunked_cursor, validate_chunk_size

logger = logging.getLogger(__name__)

T = TypeVar('T')
U = TypeVar('U')


class LazyCollection(Generic[T]):
    """Chainable, deferred view over a source sequence."""

    def __init__(self, pipeline: Pipeline):
        self._pipeline = pipeline

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    def _with(self, operator: Operator) -> 'LazyCollection':
        return LazyCollection(self._pipeline.append(operator))

    # Chaining

    def map(self, fn: Callable[[T], U]) -> 'LazyCollection[U]':
        return self._with(MapOp(fn))

    def filter(self, predicate: Callable[[T], bool]) -> 'LazyCollection[T]':
        return self._with(FilterOp(predicate))

    def take(self, n: int) -> 'LazyCollection[T]':
        """Keep the first n items and stop pulling from the source after that."""
        return self._with(TakeOp(n))

    def take_while(self, predicate: Callable[[T], bool]) -> 'LazyCollection[T]':
        return self._with(TakeWhileOp(predicate))

    def take_until(self, predicate: Callable[[T], bool]) -> 'LazyCollection[T]':
        return self._with(TakeWhileOp(predicate, until=True))

    def chunk(self, size: int) -> 'LazyCollection[List[T]]':
        return self._with(ChunkOp(size))

    def flat_map(self, fn: Callable[[T], Iterable[U]]) -> 'LazyCollection[U]':
        return self._with(FlatMapOp(fn))

    # Terminals

    def __iter__(self) -> Iterator[T]:
        return self._pipeline.puller()

    def to_list(self) -> List[T]:
        return list(self._pipeline.puller())

    async def to_array(self) -> List[T]:
        """Evaluate the pipeline into a list."""
        return self.to_list()

    def all(self) -> List[T]:
        return self.to_list()

    def first(self, default: Optional[T] = None) -> Optional[T]:
        """Return the first output item, pulling only as much of the source as needed."""
        return next(self._pipeline.puller(), default)

    def count(self) -> int:
        return sum(1 for _ in self._pipeline.puller())

    def collect(self):
        """Evaluate into an eager Collection."""
        from pipecollect.collection import Collection
        return Collection(self.to_list())

    def cursor(self, size: int) -> AsyncIterator[List[T]]:
        """Iterate the output asynchronously in lists of at most size items.

        Each chunk is produced only when the caller asks for it.
        """
        validate_chunk_size(size)
        return chunked_cursor(self._pipeline.puller(), size)

    def stream(self) -> PipelineStream[T]:
        return PipelineStream(self._pipeline)

    async def parallel(self,
                       worker: Callable[[List[T]], Any],
                       chunks: Optional[int] = None,
                       max_concurrency: Optional[int] = None,
                       raise_on_error: bool = False) -> List[Any]:
        """Evaluate the pipeline, then run worker over contiguous partitions.

        See pipecollect.operations.parallel.parallel for the options.
        """
        return await parallel_ops.parallel(self.to_list(), worker, chunks=chunks,
                                           max_concurrency=max_concurrency,
                                           raise_on_error=raise_on_error)

    def __repr__(self):
        return f"LazyCollection({self._pipeline!r})"


def lazy(items: Iterable[T]) -> LazyCollection[T]:
    """Enter lazy mode over an in-memory collection."""
    return LazyCollection(Pipeline(items))
