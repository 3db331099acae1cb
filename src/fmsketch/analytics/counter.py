"""High-level distinct counter built on the accumulator functions.

DistinctCounter owns one accumulator state and threads it through
observe() so callers can feed plain Python values:

    counter = DistinctCounter()
    counter.update(rows)
    counter.count()

None values are skipped, matching COUNT(DISTINCT col) in SQL.

count_distinct_partitioned() shows the intended parallel pattern: each
partition gets its own private counter, partial states are shipped as
serialized blobs (as they would be between machines), and the partials
are folded together with merge.
"""
from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from fmsketch.analytics.accumulator import AccumulatorState, Mode, finalize, mode, new, observe
from fmsketch.analytics.codec import deserialize, serialize
from fmsketch.analytics.merge import merge, merge_all
from fmsketch.config import DEFAULT_CONFIG, SketchConfig
from fmsketch.hashing.canonical import canonical_bytes


class DistinctCounter:
    """Approximate COUNT(DISTINCT) over a stream of values.

    Parameters:
        config: sketch configuration (default: 256 bitmaps of 128 bits,
            exact up to 12288 distinct values, seed 0).

    Exact while fewer than `config.promote_threshold` distinct values
    have been seen; an FM estimate afterwards.
    """

    __slots__ = ("_config", "_state", "_observed")

    def __init__(self, config: SketchConfig | None = None) -> None:
        self._config = config or DEFAULT_CONFIG
        self._state: AccumulatorState = new(self._config)
        self._observed = 0

    @classmethod
    def from_bytes(cls, blob: bytes) -> DistinctCounter:
        """Rebuild a counter from a serialized partial state."""
        state = deserialize(blob)
        counter = cls(state.config)
        counter._state = state
        return counter

    @property
    def config(self) -> SketchConfig:
        return self._config

    @property
    def state(self) -> AccumulatorState:
        return self._state

    @property
    def mode(self) -> Mode:
        return mode(self._state)

    @property
    def values_observed(self) -> int:
        """Non-None values fed to this counter (duplicates included)."""
        return self._observed

    def add(self, value: Any) -> None:
        """Count one value. None is ignored."""
        if value is None:
            return
        self._state = observe(self._state, canonical_bytes(value))
        self._observed += 1

    def add_bytes(self, data: bytes) -> None:
        """Count a value that is already in canonical byte form."""
        self._state = observe(self._state, bytes(data))
        self._observed += 1

    def update(self, values: Iterable[Any]) -> None:
        for value in values:
            self.add(value)

    def count(self) -> int:
        """Distinct-value count: exact or estimated depending on mode."""
        return finalize(self._state)

    def merge(self, other: DistinctCounter) -> None:
        """Absorb `other`'s state. `other` must not be used afterwards.

        Raises:
            IncompatibleSketchShape: the counters were configured with
                different sketch shapes or seeds.
            ValueError: `other` is this counter.
        """
        if other is self:
            raise ValueError("Cannot merge a counter into itself")
        self._state = merge(self._state, other._state)
        self._observed += other._observed
        other._state = new(other._config)
        other._observed = 0

    def to_bytes(self) -> bytes:
        return serialize(self._state)

    def memory_bytes(self) -> int:
        return self._state.memory_bytes()


def count_distinct(values: Iterable[Any], config: SketchConfig | None = None) -> int:
    """One-shot distinct count of an iterable."""
    counter = DistinctCounter(config)
    counter.update(values)
    return counter.count()


def _partial_blob(values: Iterable[Any], config: SketchConfig) -> bytes:
    counter = DistinctCounter(config)
    counter.update(values)
    return counter.to_bytes()


def count_distinct_partitioned(
    partitions: Iterable[Iterable[Any]],
    config: SketchConfig | None = None,
    max_workers: int | None = None,
) -> int:
    """Count distinct values across partitions, one private state each.

    Partials are built concurrently, serialized, then merged in
    partition order. The result does not depend on that order.
    """
    config = config or DEFAULT_CONFIG
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(_partial_blob, part, config) for part in partitions]
        blobs = [f.result() for f in futures]
    return finalize(merge_all((deserialize(b) for b in blobs), config))
