"""Error taxonomy for fmsketch.

CapacityExceeded and StorageExhausted are raised and caught inside the
package: the first triggers promotion to the bitmap sketch, the second
grows the exact store's arena. Callers of observe() never see them.

IncompatibleSketchShape and MalformedState are fatal and propagate.
Both subclass ValueError so generic callers can catch them as bad input.
"""
from __future__ import annotations


class FMSketchError(Exception):
    """Base class for every fmsketch error."""


class CapacityExceeded(FMSketchError):
    """The exact store's directory already holds `capacity` values."""

    def __init__(self, capacity: int) -> None:
        super().__init__(f"Exact store is full ({capacity} distinct values)")
        self.capacity = capacity


class StorageExhausted(FMSketchError):
    """The exact store's arena has no room for the next record."""

    def __init__(self, needed: int, available: int) -> None:
        super().__init__(
            f"Arena needs {needed} bytes, only {available} available"
        )
        self.needed = needed
        self.available = available


class IncompatibleSketchShape(FMSketchError, ValueError):
    """Two sketches disagree on bitmap count, width or hash seed."""


class MalformedState(FMSketchError, ValueError):
    """A serialized state could not be decoded."""
