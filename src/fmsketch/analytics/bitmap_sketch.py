"""Flajolet-Martin bitmap sketch (PCSA).

Answers "how many distinct values went in?" in a fixed NMAP * W bits,
regardless of how many values are fed.

Each value is hashed once. The high half of the digest picks one of
NMAP bitmaps; the position r of the lowest set bit in the digest picks
which bit to turn on, counting from the most significant end. Bit k is
turned on with probability 2^-(k+1), so after n values have reached a
bitmap, its run of leading ones R has length close to log2(n).
Averaging R over all bitmaps and undoing the known bias gives:

    E = ceil( (NMAP / phi) * 2^(S / NMAP) ),   S = sum of R_j

Accuracy is probabilistic: the relative standard error is about
0.78 / sqrt(NMAP) (~4.9% for 256 bitmaps). Estimates off by a few
percent are expected behaviour, not a bug.

Inserting a value only ever sets a bit, so inserts are idempotent and
order-independent, and two sketches merge with a bitwise OR.

References:
    Flajolet and Martin, "Probabilistic counting algorithms for data
    base applications", JCSS 31(2), 1985.
"""
from __future__ import annotations

import array
import math

from fmsketch.config import DEFAULT_CONFIG, PHI, SketchConfig
from fmsketch.errors import IncompatibleSketchShape
from fmsketch.hashing.digest import bit_position


def _leading_ones(byte: int) -> int:
    """Number of consecutive 1 bits from the top of an 8-bit value."""
    return 8 - ((~byte) & 0xFF).bit_length()


class BitmapSketch:
    """Sketch-mode accumulator state.

    Bitmap j occupies bytes [j*W/8, (j+1)*W/8) of one contiguous
    array('B'); bit 0 of a bitmap is the most significant bit of its
    first byte. Bits are set, never cleared.
    """

    __slots__ = ("_config", "_nmap", "_width", "_stride", "_bits")

    def __init__(self, config: SketchConfig = DEFAULT_CONFIG) -> None:
        self._config = config
        self._nmap = config.num_bitmaps
        self._width = config.bitmap_bits
        self._stride = config.bitmap_bytes
        self._bits = array.array("B", bytes(config.sketch_bytes))

    @classmethod
    def from_bytes(cls, config: SketchConfig, data: bytes) -> BitmapSketch:
        """Rebuild a sketch from its raw bitmap bytes."""
        if len(data) != config.sketch_bytes:
            raise ValueError(
                f"Expected {config.sketch_bytes} bitmap bytes, got {len(data)}"
            )
        sketch = cls(config)
        sketch._bits = array.array("B", data)
        return sketch

    @property
    def config(self) -> SketchConfig:
        return self._config

    @property
    def num_bitmaps(self) -> int:
        return self._nmap

    @property
    def bitmap_bits(self) -> int:
        return self._width

    def insert(self, value: bytes) -> None:
        """Hash `value` and turn on its bit in its bitmap."""
        idx, offset = bit_position(value, self._nmap, self._width, self._config.seed)
        self.set_bit(idx, offset)

    def set_bit(self, bitmap: int, offset: int) -> None:
        """Turn on bit `offset` (0 = most significant) of `bitmap`."""
        byte_idx = bitmap * self._stride + (offset >> 3)
        self._bits[byte_idx] |= 0x80 >> (offset & 7)

    def is_set(self, bitmap: int, offset: int) -> bool:
        byte_idx = bitmap * self._stride + (offset >> 3)
        return bool(self._bits[byte_idx] & (0x80 >> (offset & 7)))

    def leading_ones(self, bitmap: int) -> int:
        """R_j: position of the first 0 bit, scanning from the left.

        A bitmap with no 0 bit returns W.
        """
        start = bitmap * self._stride
        run = 0
        for i in range(start, start + self._stride):
            byte = self._bits[i]
            if byte != 0xFF:
                return run + _leading_ones(byte)
            run += 8
        return run

    def estimate(self) -> int:
        """Flajolet-Martin estimate of the number of distinct values."""
        s = sum(self.leading_ones(j) for j in range(self._nmap))
        return math.ceil((self._nmap / PHI) * 2.0 ** (s / self._nmap))

    def compatible_with(self, other: BitmapSketch) -> bool:
        return self._config.same_shape(other._config)

    def merge_from(self, other: BitmapSketch) -> None:
        """OR `other`'s bitmaps into this sketch (union).

        Raises:
            IncompatibleSketchShape: bitmap count, width or hash seed
                differ. Such sketches come from mismatched workers and
                their union has no meaning.
        """
        if not self.compatible_with(other):
            raise IncompatibleSketchShape(
                f"Cannot merge sketches with different shapes: "
                f"{self._nmap}x{self._width} seed={self._config.seed} vs "
                f"{other._nmap}x{other._width} seed={other._config.seed}"
            )
        n = len(self._bits)
        merged = (
            int.from_bytes(self._bits.tobytes(), "big")
            | int.from_bytes(other._bits.tobytes(), "big")
        )
        self._bits = array.array("B", merged.to_bytes(n, "big"))

    def to_bytes(self) -> bytes:
        return self._bits.tobytes()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitmapSketch):
            return NotImplemented
        return self.compatible_with(other) and self._bits == other._bits

    def memory_bytes(self) -> int:
        """Bytes held by the bitmap array."""
        return len(self._bits)

    def standard_error(self) -> float:
        """Approximate relative standard error of the estimate."""
        return 0.78 / math.sqrt(self._nmap)
