"""Canonical byte form for values fed into a distinct counter.

Sketch merging only works if every worker maps the same logical value
to the same bytes, in every process and on every platform. The rules:

    bytes-like   -> the bytes themselves
    str          -> UTF-8
    bool         -> b"true" / b"false"
    int, Decimal -> str() in ASCII
    float        -> repr() in ASCII (shortest round-trip form)
    UUID         -> canonical hyphenated lowercase text
    date/datetime/time -> isoformat()
    tuple        -> length-prefixed concatenation of its elements

Values are converted to their text form much as a database prints a
column value, so 1 and "1" map to the same bytes. Count one column
type per counter.
"""
from __future__ import annotations

import struct
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any


def _lp(data: bytes) -> bytes:
    """Length-prefix a byte string with a 4-byte big-endian length.

    Keeps the tuple encoding injective: ("ab", "c") and ("a", "bc")
    produce different byte strings.
    """
    return struct.pack("!I", len(data)) + data


def canonical_bytes(value: Any) -> bytes:
    """Convert a value to its canonical byte representation.

    Raises:
        TypeError: for None and for types with no canonical form.
    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return b"true" if value else b"false"
    if isinstance(value, (int, Decimal)):
        return str(value).encode("ascii")
    if isinstance(value, float):
        return repr(value).encode("ascii")
    if isinstance(value, uuid.UUID):
        return str(value).encode("ascii")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat().encode("ascii")
    if isinstance(value, tuple):
        return b"".join(_lp(canonical_bytes(v)) for v in value)
    if value is None:
        raise TypeError("None has no canonical form; skip it before hashing")
    raise TypeError(
        f"Cannot canonicalize value of type {type(value).__name__}"
    )
