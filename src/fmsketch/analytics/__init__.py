"""Hybrid exact / Flajolet-Martin distinct counting.

Public API:
    new, observe, finalize, mode: drive one accumulator state
    merge, merge_all: combine partial states
    serialize, deserialize: flat byte-blob wire format
    BitmapSketch: the FM sketch (sketch mode)
    DistinctCounter: object facade over a single state
    count_distinct, count_distinct_partitioned: one-shot helpers
"""

from fmsketch.analytics.accumulator import (
    AccumulatorState,
    Mode,
    finalize,
    mode,
    new,
    observe,
)
from fmsketch.analytics.bitmap_sketch import BitmapSketch
from fmsketch.analytics.codec import deserialize, serialize
from fmsketch.analytics.counter import (
    DistinctCounter,
    count_distinct,
    count_distinct_partitioned,
)
from fmsketch.analytics.merge import merge, merge_all

__all__ = [
    "AccumulatorState",
    "BitmapSketch",
    "DistinctCounter",
    "Mode",
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
