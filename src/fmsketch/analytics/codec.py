"""Flat byte-blob wire format for accumulator states.

Partial states travel between workers as one self-describing blob:

    header (18 bytes, big-endian):
        4 bytes  magic b"FMSK"
        1 byte   format version (1)
        1 byte   mode (1 = exact, 2 = sketch)
        2 bytes  num_bitmaps
        2 bytes  bitmap_bits
        4 bytes  promote_threshold (exact capacity)
        4 bytes  hash seed

    exact payload:
        4 bytes  value count n
        4 bytes  arena size a
        4n bytes directory offsets, in value order
        a bytes  arena (records: 4-byte length + value bytes)

    sketch payload:
        num_bitmaps * bitmap_bits / 8 bytes of bitmaps

The configuration rides in the header so the receiver can rebuild the
state, and so merging refuses sketches built with a different shape.
Decoding validates everything it reads; any inconsistency raises
MalformedState rather than producing a state that silently miscounts.
"""
from __future__ import annotations

import array
import struct

from fmsketch.analytics.accumulator import AccumulatorState
from fmsketch.analytics.bitmap_sketch import BitmapSketch
from fmsketch.config import SketchConfig
from fmsketch.errors import MalformedState
from fmsketch.store.sorted_values import RECORD_HEADER, SortedValueStore

MAGIC = b"FMSK"
FORMAT_VERSION = 1
MODE_EXACT = 1
MODE_SKETCH = 2

HEADER = struct.Struct("!4sBBHHII")
EXACT_HEADER = struct.Struct("!II")


def _pack_header(mode: int, config: SketchConfig) -> bytes:
    return HEADER.pack(
        MAGIC,
        FORMAT_VERSION,
        mode,
        config.num_bitmaps,
        config.bitmap_bits,
        config.promote_threshold,
        config.seed,
    )


def serialize(state: AccumulatorState) -> bytes:
    """Encode a state as a flat byte string."""
    match state:
        case SortedValueStore():
            directory = state.directory_offsets()
            arena = state.arena_bytes()
            return b"".join([
                _pack_header(MODE_EXACT, state.config),
                EXACT_HEADER.pack(len(directory), len(arena)),
                struct.pack(f"!{len(directory)}I", *directory),
                arena,
            ])
        case BitmapSketch():
            return _pack_header(MODE_SKETCH, state.config) + state.to_bytes()
    raise TypeError(f"Not an accumulator state: {type(state).__name__}")


def deserialize(blob: bytes) -> AccumulatorState:
    """Decode a blob produced by serialize().

    Raises:
        MalformedState: bad magic, unknown version or mode, invalid
            configuration, truncated or oversized payload, or an
            exact-mode directory that is out of range, unsorted or
            holds duplicates.
    """
    blob = bytes(blob)
    if len(blob) < HEADER.size:
        raise MalformedState(
            f"Blob of {len(blob)} bytes is shorter than the {HEADER.size}-byte header"
        )
    magic, version, mode, nmap, width, capacity, seed = HEADER.unpack_from(blob, 0)
    if magic != MAGIC:
        raise MalformedState(f"Bad magic {magic!r}, expected {MAGIC!r}")
    if version != FORMAT_VERSION:
        raise MalformedState(f"Unsupported format version {version}")
    try:
        config = SketchConfig(
            num_bitmaps=nmap,
            bitmap_bits=width,
            promote_threshold=capacity,
            seed=seed,
        )
    except ValueError as exc:
        raise MalformedState(f"Invalid configuration in header: {exc}") from exc

    payload = blob[HEADER.size:]
    if mode == MODE_EXACT:
        return _decode_exact(config, payload)
    if mode == MODE_SKETCH:
        if len(payload) != config.sketch_bytes:
            raise MalformedState(
                f"Sketch payload is {len(payload)} bytes, expected {config.sketch_bytes}"
            )
        return BitmapSketch.from_bytes(config, payload)
    raise MalformedState(f"Unknown mode tag {mode}")


def _decode_exact(config: SketchConfig, payload: bytes) -> SortedValueStore:
    if len(payload) < EXACT_HEADER.size:
        raise MalformedState("Truncated exact-mode header")
    count, arena_size = EXACT_HEADER.unpack_from(payload, 0)
    if count > config.promote_threshold:
        raise MalformedState(
            f"Exact state holds {count} values, capacity is {config.promote_threshold}"
        )
    dir_end = EXACT_HEADER.size + 4 * count
    expected = dir_end + arena_size
    if len(payload) != expected:
        raise MalformedState(
            f"Exact payload is {len(payload)} bytes, expected {expected}"
        )
    directory = array.array("I", struct.unpack_from(f"!{count}I", payload, EXACT_HEADER.size))
    arena = bytearray(payload[dir_end:])

    previous: bytes | None = None
    for off in directory:
        if off + RECORD_HEADER.size > arena_size:
            raise MalformedState(f"Directory offset {off} outside arena of {arena_size} bytes")
        (n,) = RECORD_HEADER.unpack_from(arena, off)
        start = off + RECORD_HEADER.size
        if start + n > arena_size:
            raise MalformedState(f"Record at offset {off} runs past the arena")
        value = bytes(arena[start:start + n])
        if previous is not None and value <= previous:
            raise MalformedState("Exact-mode directory is not strictly sorted")
        previous = value
    return SortedValueStore.from_parts(config, directory, arena)
