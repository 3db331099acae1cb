"""128-bit digests and the FM bit-selection rule.

Each value is hashed once with MurmurHash3 (x64, 128-bit). The digest
drives two choices:

    bitmap index  = high 64 bits mod NMAP
    rmost         = position of the least significant set bit

The sketch then sets bit `rmost` counted from the most significant end
of the chosen bitmap, so bit k from the left is set with probability
2^-(k+1). The index uses bits 64.. of the digest while the rmost scan
starts at bit 0; the two only overlap when the low 64 bits are all
zero.
"""
from __future__ import annotations

import mmh3

from fmsketch.config import DIGEST_BITS

_MASK64 = (1 << 64) - 1


def digest128(data: bytes, seed: int = 0) -> int:
    """Unsigned 128-bit MurmurHash3 of `data`."""
    return mmh3.hash128(data, seed=seed, signed=False)


def high64(digest: int) -> int:
    return (digest >> 64) & _MASK64


def rightmost_one(digest: int, width: int = DIGEST_BITS) -> int:
    """Index (0 = least significant) of the lowest set bit of `digest`.

    An all-zero digest has no set bit; it maps to `width - 1`, as does
    any position that would fall outside a bitmap narrower than the
    digest.
    """
    if digest == 0:
        return width - 1
    pos = (digest & -digest).bit_length() - 1
    return min(pos, width - 1)


def bit_position(data: bytes, num_bitmaps: int, width: int, seed: int = 0) -> tuple[int, int]:
    """Return (bitmap index, bit offset from the most significant end)."""
    h = digest128(data, seed)
    return high64(h) % num_bitmaps, rightmost_one(h, width)
