from pipecollect.pipe.core import Pipeline, Puller, PullerState, RunContext
from pipecollect.pipe.operators import (
    MapOp, FilterOp, TakeOp, TakeWhileOp, ChunkOp, FlatMapOp, Operator, Step, step
)
from pipecollect.pipe.source import SourceSequence
