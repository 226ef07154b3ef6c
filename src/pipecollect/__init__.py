from pipecollect.collection import Collection, PaginationResult, collect, arange, times, is_collection
from pipecollect.pipe.lazy import LazyCollection, lazy
from pipecollect.pipe.core import Pipeline, Puller, PullerState
from pipecollect.pipe.streams import PipelineStream, StreamReader, ReadResult
from pipecollect.operations.parallel import parallel, run_partitions, ParallelOptions, PartitionOutcome
from pipecollect.errors import (
    PipeCollectError, PartitionError, StreamError, StreamLockedError, StreamErroredError
)
from pipecollect.util.config import configure_logger, get_config
