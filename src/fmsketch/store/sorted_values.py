"""Sorted, deduplicated byte-string store for exact small-cardinality counting.

FM sketches are poor estimators for small streams, so the first
MINVALS distinct values are kept verbatim and counted exactly.

Layout:
    directory: array('I')   arena offset of each value, in value order
    arena:     bytearray    length-prefixed records, in insertion order

Records never move inside the arena; only the directory is reordered on
insert, which keeps each insert to an O(log n) search plus a shift of
4-byte offsets. Membership is a binary search over the directory,
comparing the bytes each offset points at (plain lexicographic order).

The arena is preallocated at a guess of 8 bytes per value. When a new
record does not fit, the arena is copied wholesale into a buffer of
twice the size plus room for the record. Offsets stay valid because
the copy preserves every byte position.
"""
from __future__ import annotations

import array
import logging
import struct
from collections.abc import Iterator

from fmsketch.config import DEFAULT_CONFIG, SketchConfig
from fmsketch.errors import CapacityExceeded, StorageExhausted

log = logging.getLogger(__name__)

RECORD_HEADER = struct.Struct("!I")
GUESS_BYTES_PER_VALUE = 8
MAX_INITIAL_STORAGE = 1 << 20


class SortedValueStore:
    """Exact-mode accumulator state.

    INVARIANT: len(self) <= capacity, values are unique, and iteration
    yields them in ascending byte order.

    Parameters:
        config: sketch configuration. `promote_threshold` becomes the
            directory capacity; the rest is used at promotion time.
        initial_storage: starting arena size in bytes. Defaults to
            8 bytes per value of capacity, capped at 1 MiB; larger
            stores reach their size through arena growth.
    """

    __slots__ = ("_config", "_capacity", "_directory", "_arena", "_used")

    def __init__(
        self,
        config: SketchConfig = DEFAULT_CONFIG,
        initial_storage: int | None = None,
    ) -> None:
        if initial_storage is None:
            initial_storage = min(
                GUESS_BYTES_PER_VALUE * config.promote_threshold,
                MAX_INITIAL_STORAGE,
            )
        if initial_storage < 0:
            raise ValueError(f"initial_storage must be >= 0, got {initial_storage}")
        self._config = config
        self._capacity = config.promote_threshold
        self._directory = array.array("I")
        self._arena = bytearray(initial_storage)
        self._used = 0

    @classmethod
    def from_parts(
        cls,
        config: SketchConfig,
        directory: array.array,
        arena: bytearray,
    ) -> SortedValueStore:
        """Rebuild a store from an already-validated directory and arena."""
        store = cls(config, initial_storage=0)
        store._directory = directory
        store._arena = arena
        store._used = len(arena)
        return store

    @property
    def config(self) -> SketchConfig:
        return self._config

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def storage_size(self) -> int:
        """Current arena size in bytes, used or not."""
        return len(self._arena)

    @property
    def storage_used(self) -> int:
        return self._used

    def count(self) -> int:
        """Exact number of distinct values recorded."""
        return len(self._directory)

    def __len__(self) -> int:
        return len(self._directory)

    def is_full(self) -> bool:
        return len(self._directory) >= self._capacity

    def _value_at(self, i: int) -> bytes:
        off = self._directory[i]
        (n,) = RECORD_HEADER.unpack_from(self._arena, off)
        start = off + RECORD_HEADER.size
        return bytes(self._arena[start:start + n])

    def _search(self, value: bytes) -> tuple[int, bool]:
        """Binary search: (insertion index, already present)."""
        lo, hi = 0, len(self._directory)
        while lo < hi:
            mid = (lo + hi) // 2
            probe = self._value_at(mid)
            if probe < value:
                lo = mid + 1
            elif probe > value:
                hi = mid
            else:
                return mid, True
        return lo, False

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, (bytes, bytearray)):
            return False
        return self._search(bytes(value))[1]

    def __iter__(self) -> Iterator[bytes]:
        for i in range(len(self._directory)):
            yield self._value_at(i)

    def observe(self, value: bytes) -> bool:
        """Record `value` (any bytes-like object) if unseen.

        Returns True if the value was inserted, False if it was already
        present.

        Raises:
            CapacityExceeded: the value is new and the store already
                holds `capacity` values. The caller should promote.
        """
        value = bytes(value)
        pos, found = self._search(value)
        if found:
            return False
        if len(self._directory) >= self._capacity:
            raise CapacityExceeded(self._capacity)
        try:
            self._try_insert(pos, value)
        except StorageExhausted as exc:
            self._grow(exc.needed)
            self._try_insert(pos, value)
        return True

    def _try_insert(self, pos: int, value: bytes) -> None:
        need = RECORD_HEADER.size + len(value)
        available = len(self._arena) - self._used
        if need > available:
            raise StorageExhausted(need, available)
        off = self._used
        RECORD_HEADER.pack_into(self._arena, off, len(value))
        start = off + RECORD_HEADER.size
        self._arena[start:start + len(value)] = value
        self._used += need
        self._directory.insert(pos, off)

    def _grow(self, needed: int) -> None:
        """Copy the arena into a buffer at least twice as large."""
        old_size = len(self._arena)
        new_arena = bytearray(old_size * 2 + needed)
        new_arena[:self._used] = self._arena[:self._used]
        self._arena = new_arena
        log.debug("exact store arena grown %d -> %d bytes", old_size, len(new_arena))

    def directory_offsets(self) -> array.array:
        """Copy of the directory, for serialization."""
        return array.array("I", self._directory)

    def arena_bytes(self) -> bytes:
        """The used portion of the arena, for serialization."""
        return bytes(self._arena[:self._used])

    def memory_bytes(self) -> int:
        """Approximate memory held by the directory and arena."""
        return len(self._directory) * self._directory.itemsize + len(self._arena)
