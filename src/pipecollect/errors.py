"""Exceptions raised by pipecollect.

Exceptions raised by caller-supplied callbacks are never wrapped; they reach
the caller unchanged. The classes here cover conditions the library itself
detects.
"""


class PipeCollectError(Exception):
    """Base class for all pipecollect errors."""


class PartitionError(PipeCollectError):
    """A parallel worker failed on one partition.

    The original exception is available as ``__cause__`` and as ``cause``.
    The error occupies only its own partition's result slot.
    """

    def __init__(self, index: int, cause: BaseException):
        super().__init__(f"Worker failed on partition {index}: {cause!r}")
        self.index = index
        self.cause = cause
        self.__cause__ = cause


class StreamError(PipeCollectError):
    """Base class for stream consumer misuse."""


class StreamLockedError(StreamError):
    """A reader was requested while another reader holds the stream."""


class StreamErroredError(StreamError):
    """The stream failed on an earlier read and can no longer be used."""
