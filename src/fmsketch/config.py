"""Sketch configuration shared by every accumulator state.

A partial state only merges cleanly with another partial state built
from the same bitmap shape and hash seed, so the configuration travels
with the state (and inside its serialized header) instead of living in
process-wide globals.
"""
from __future__ import annotations

from dataclasses import dataclass

# Flajolet-Martin bias-correction constant.
PHI = 0.77351

# FM estimates fall below ~1% error around 12K distinct values.
DEFAULT_PROMOTE_THRESHOLD = 1024 * 12
DEFAULT_NUM_BITMAPS = 256
DEFAULT_BITMAP_BITS = 128

DIGEST_BITS = 128


@dataclass(frozen=True, slots=True)
class SketchConfig:
    """Shape of the FM sketch and the exact-mode capacity.

    Parameters:
        num_bitmaps: NMAP, the number of independent bitmap trials.
        bitmap_bits: W, width of each bitmap. Must be a multiple of 8
            and no wider than the 128-bit digest.
        promote_threshold: MINVALS, the number of distinct values held
            exactly before promotion to the sketch.
        seed: MurmurHash3 seed. Sketches built with different seeds
            cannot be merged.
    """
    num_bitmaps: int = DEFAULT_NUM_BITMAPS
    bitmap_bits: int = DEFAULT_BITMAP_BITS
    promote_threshold: int = DEFAULT_PROMOTE_THRESHOLD
    seed: int = 0

    def __post_init__(self) -> None:
        if not (1 <= self.num_bitmaps <= 0xFFFF):
            raise ValueError(
                f"num_bitmaps must be 1..65535, got {self.num_bitmaps}"
            )
        if not (8 <= self.bitmap_bits <= DIGEST_BITS) or self.bitmap_bits % 8:
            raise ValueError(
                f"bitmap_bits must be a multiple of 8 in 8..{DIGEST_BITS}, "
                f"got {self.bitmap_bits}"
            )
        if not (1 <= self.promote_threshold < 2**32):
            raise ValueError(
                f"promote_threshold must be 1..2**32-1, got {self.promote_threshold}"
            )
        if not (0 <= self.seed < 2**32):
            raise ValueError(f"seed must fit in 32 bits, got {self.seed}")

    def same_shape(self, other: SketchConfig) -> bool:
        """True if sketches built from both configs can be OR-merged.

        The exact-mode capacity does not affect the bitmaps, so it is
        not compared.
        """
        return (
            self.num_bitmaps == other.num_bitmaps
            and self.bitmap_bits == other.bitmap_bits
            and self.seed == other.seed
        )

    @property
    def bitmap_bytes(self) -> int:
        return self.bitmap_bits // 8

    @property
    def sketch_bytes(self) -> int:
        """Size of the full bitmap array."""
        return self.num_bitmaps * self.bitmap_bytes


DEFAULT_CONFIG = SketchConfig()
