"""Combine independently accumulated partial states.

Used to fold per-partition results into one answer. Both inputs are
consumed: the result may be either input, mutated, or a fresh sketch.

Cases:
    either input empty   -> the other input, untouched
    shape mismatch       -> IncompatibleSketchShape, in every mode
    sketch + sketch      -> bitwise OR
    exact + exact        -> fold the smaller store into the larger one
                            if the union fits its capacity; otherwise
                            fall through to the replay path
    anything else        -> replay every exact source into the sketch
                            (an existing one, or a fresh one)

The fall-through path turns an exact count into an estimate. That is
the price of a union that no longer fits in exact storage.
"""
from __future__ import annotations

import functools
import logging
from collections.abc import Iterable

from fmsketch.analytics.accumulator import AccumulatorState, is_empty, new, replay
from fmsketch.analytics.bitmap_sketch import BitmapSketch
from fmsketch.config import DEFAULT_CONFIG, SketchConfig
from fmsketch.errors import IncompatibleSketchShape
from fmsketch.store.sorted_values import SortedValueStore

log = logging.getLogger(__name__)


def _require_same_shape(a: AccumulatorState, b: AccumulatorState) -> None:
    """Refuse partials from workers configured with different sketch shapes.

    Checked for exact stores too: the one that ends up primary decides
    the shape of any sketch built later, so a mismatch would make the
    result depend on argument order.
    """
    if not a.config.same_shape(b.config):
        raise IncompatibleSketchShape(
            f"Cannot merge states with different sketch shapes: "
            f"{a.config.num_bitmaps}x{a.config.bitmap_bits} seed={a.config.seed} vs "
            f"{b.config.num_bitmaps}x{b.config.bitmap_bits} seed={b.config.seed}"
        )


def merge(a: AccumulatorState, b: AccumulatorState) -> AccumulatorState:
    """Merge two partial states into one.

    Raises:
        IncompatibleSketchShape: the non-empty inputs were configured
            with different bitmap counts, widths or hash seeds.
    """
    if is_empty(a):
        return b
    if is_empty(b):
        return a

    match (a, b):
        case (BitmapSketch(), BitmapSketch()):
            a.merge_from(b)
            return a
        case (SortedValueStore(), SortedValueStore()):
            _require_same_shape(a, b)
            primary, secondary = (a, b) if len(a) > len(b) else (b, a)
            if len(primary) + len(secondary) <= primary.capacity:
                for value in secondary:
                    primary.observe(value)
                return primary
            log.debug(
                "exact union of %d + %d values exceeds capacity %d; merging as sketch",
                len(primary), len(secondary), primary.capacity,
            )
            target = BitmapSketch(primary.config)
            replay(primary, target)
            replay(secondary, target)
            return target
        case (BitmapSketch(), SortedValueStore()):
            _require_same_shape(a, b)
            return replay(b, a)
        case (SortedValueStore(), BitmapSketch()):
            _require_same_shape(a, b)
            return replay(a, b)
    raise TypeError(
        f"Cannot merge {type(a).__name__} with {type(b).__name__}"
    )


def merge_all(
    states: Iterable[AccumulatorState],
    config: SketchConfig = DEFAULT_CONFIG,
) -> AccumulatorState:
    """Fold any number of partial states, starting from an empty one."""
    return functools.reduce(merge, states, new(config))
