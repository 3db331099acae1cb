"""Accumulator state and the exact-to-sketch transition.

An accumulator starts in exact mode (a SortedValueStore) and is fed one
canonical byte string at a time by a single owner. The moment a new
distinct value arrives while the store already holds MINVALS values,
the state is promoted, once:

    1. create an empty BitmapSketch with the store's configuration
    2. replay every stored value into it (order is irrelevant, bit
       setting is commutative and idempotent)
    3. drop the store and insert the incoming value into the sketch

There is no way back to exact mode. Callers always thread the returned
state into the next call, since observe() may hand back a different
object than it was given.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import TypeAlias

from fmsketch.analytics.bitmap_sketch import BitmapSketch
from fmsketch.config import DEFAULT_CONFIG, SketchConfig
from fmsketch.errors import CapacityExceeded
from fmsketch.store.sorted_values import SortedValueStore

log = logging.getLogger(__name__)

AccumulatorState: TypeAlias = SortedValueStore | BitmapSketch


class Mode(Enum):
    EXACT = 1
    SKETCH = 2


def new(config: SketchConfig = DEFAULT_CONFIG) -> SortedValueStore:
    """Fresh, empty accumulator in exact mode."""
    return SortedValueStore(config)


def mode(state: AccumulatorState) -> Mode:
    match state:
        case SortedValueStore():
            return Mode.EXACT
        case BitmapSketch():
            return Mode.SKETCH
    raise TypeError(f"Not an accumulator state: {type(state).__name__}")


def is_empty(state: AccumulatorState) -> bool:
    """True for a state that has never observed a value."""
    return isinstance(state, SortedValueStore) and len(state) == 0


def replay(values: SortedValueStore, sketch: BitmapSketch) -> BitmapSketch:
    """Feed every exactly-tracked value into `sketch`."""
    for value in values:
        sketch.insert(value)
    return sketch


def promote(store: SortedValueStore) -> BitmapSketch:
    """Build a sketch holding everything `store` has seen."""
    sketch = replay(store, BitmapSketch(store.config))
    log.debug("promoted exact store to sketch after %d distinct values", len(store))
    return sketch


def observe(state: AccumulatorState, value: bytes) -> AccumulatorState:
    """Record one canonical value and return the (possibly new) state."""
    match state:
        case SortedValueStore():
            try:
                state.observe(value)
                return state
            except CapacityExceeded:
                sketch = promote(state)
                sketch.insert(value)
                return sketch
        case BitmapSketch():
            state.insert(value)
            return state
    raise TypeError(f"Not an accumulator state: {type(state).__name__}")


def finalize(state: AccumulatorState) -> int:
    """Distinct count: exact in exact mode, an FM estimate in sketch mode."""
    match state:
        case SortedValueStore():
            return state.count()
        case BitmapSketch():
            return state.estimate()
    raise TypeError(f"Not an accumulator state: {type(state).__name__}")
