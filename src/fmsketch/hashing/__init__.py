"""Canonicalization and hashing of counted values.

Public API:
    canonical_bytes: value -> deterministic bytes
    digest128: bytes -> unsigned 128-bit MurmurHash3
    bit_position: bytes -> (bitmap index, bit offset)
"""

from fmsketch.hashing.canonical import canonical_bytes
from fmsketch.hashing.digest import bit_position, digest128, high64, rightmost_one

__all__ = [
    "bit_position",
    "canonical_bytes",
    "digest128",
    "high64",
    "rightmost_one",
]
