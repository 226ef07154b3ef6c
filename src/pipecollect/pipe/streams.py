"""Streaming terminal consumers for lazy pipelines.

Two ways to consume a pipeline incrementally:

- chunked_cursor(): an async generator yielding lists of up to `size` items.
  It pulls nothing while the caller is not iterating.
- PipelineStream: a pull-based stream read through a StreamReader, where
  every read() advances the pipeline by exactly one output item.

Both start a fresh traversal of the pipeline when created.
"""
import logging
from dataclasses import dataclass
from itertools import islice
from typing import Any, AsyncIterator, Generic, List, Optional, TypeVar

from pipecollect.errors import StreamError, StreamErroredError, StreamLockedError
from pipecollect.pipe.core import Pipeline, Puller

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def chunked_cursor(puller: Puller, size: int) -> AsyncIterator[List[Any]]:
    """Yield successive lists of at most `size` items from a puller."""
    while True:
        chunk = list(islice(puller, size))
        if not chunk:
            return
        logger.debug(f"Cursor yielding chunk of {len(chunk)} item(s)")
        yield chunk
        if len(chunk) < size:
            return


def validate_chunk_size(size: int) -> int:
    if not isinstance(size, int) or isinstance(size, bool):
        raise TypeError(f"Chunk size must be an integer, got {type(size).__name__}")
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    return size


@dataclass(frozen=True)
class ReadResult(Generic[T]):
    """Outcome of one StreamReader.read() call."""
    done: bool
    value: Optional[T] = None


class PipelineStream(Generic[T]):
    """A readable stream over one traversal of a pipeline.

    Only one reader may hold the stream at a time.  Reading after the stream
    is exhausted returns ReadResult(done=True); an exception raised while
    reading is propagated once and the stream is unusable afterwards.

    Examples:
        stream = lazy(items).map(transform).stream()
        reader = stream.get_reader()
        while not (result := await reader.read()).done:
            handle(result.value)
        reader.release_lock()

        # or simply
        async for item in lazy(items).stream():
            handle(item)
    """

    def __init__(self, pipeline: Pipeline):
        self._pipeline = pipeline
        self._puller: Optional[Puller] = None
        self._reader: Optional['StreamReader'] = None
        self._error: Optional[BaseException] = None
        self._cancelled = False

    @property
    def locked(self) -> bool:
        return self._reader is not None

    def get_reader(self) -> 'StreamReader[T]':
        if self._reader is not None:
            raise StreamLockedError("Stream is already locked to a reader")
        self._reader = StreamReader(self)
        return self._reader

    def cancel(self):
        """Stop the stream; later reads report done."""
        logger.debug("Stream cancelled")
        self._cancelled = True

    def _release(self, reader: 'StreamReader'):
        if self._reader is reader:
            self._reader = None

    def _pull(self) -> ReadResult[T]:
        if self._error is not None:
            raise StreamErroredError("Stream failed on an earlier read") from self._error
        if self._cancelled:
            return ReadResult(done=True)
        if self._puller is None:
            self._puller = self._pipeline.puller()
        try:
            value = next(self._puller)
        except StopIteration:
            return ReadResult(done=True)
        except Exception as e:
            self._error = e
            raise
        return ReadResult(done=False, value=value)

    async def __aiter__(self):
        reader = self.get_reader()
        try:
            while True:
                result = await reader.read()
                if result.done:
                    return
                yield result.value
        finally:
            reader.release_lock()


class StreamReader(Generic[T]):
    """Reads items from a PipelineStream one at a time."""

    def __init__(self, stream: PipelineStream):
        self._stream = stream
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    async def read(self) -> ReadResult[T]:
        if self._released:
            raise StreamError("Reader has released its lock on the stream")
        return self._stream._pull()

    def release_lock(self):
        self._released = True
        self._stream._release(self)

    def cancel(self):
        self._stream.cancel()
