"""fmsketch -- Flajolet-Martin distinct counting with mergeable partial states."""

from fmsketch.analytics import (
    AccumulatorState,
    BitmapSketch,
    DistinctCounter,
    Mode,
    count_distinct,
    count_distinct_partitioned,
    deserialize,
    finalize,
    merge,
    merge_all,
    mode,
    new,
    observe,
    serialize,
)
from fmsketch.config import DEFAULT_CONFIG, SketchConfig
from fmsketch.errors import (
    CapacityExceeded,
    FMSketchError,
    IncompatibleSketchShape,
    MalformedState,
    StorageExhausted,
)
from fmsketch.store import SortedValueStore

__all__ = [
    "DEFAULT_CONFIG",
    "AccumulatorState",
    "BitmapSketch",
    "CapacityExceeded",
    "DistinctCounter",
    "FMSketchError",
    "IncompatibleSketchShape",
    "MalformedState",
    "Mode",
    "SketchConfig",
    "SortedValueStore",
    "StorageExhausted",
    "count_distinct",
    "count_distinct_partitioned",
    "deserialize",
    "finalize",
    "merge",
    "merge_all",
    "mode",
    "new",
    "observe",
    "serialize",
]
