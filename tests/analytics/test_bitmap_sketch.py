"""Tests for the Flajolet-Martin bitmap sketch."""
from __future__ import annotations

import math

import pytest

from fmsketch.analytics.bitmap_sketch import BitmapSketch
from fmsketch.config import PHI, SketchConfig
from fmsketch.errors import IncompatibleSketchShape


class TestSketchBasics:
    def test_empty_sketch_estimate(self):
        sketch = BitmapSketch()
        # every R_j is 0: ceil(NMAP / phi)
        assert sketch.estimate() == math.ceil(256 / PHI)

    def test_memory_size(self):
        sketch = BitmapSketch()
        assert sketch.memory_bytes() == 256 * 128 // 8
        assert sketch.num_bitmaps == 256
        assert sketch.bitmap_bits == 128

    def test_standard_error(self):
        se = BitmapSketch().standard_error()
        assert 0.045 < se < 0.055

    def test_insert_sets_one_bit(self):
        sketch = BitmapSketch()
        sketch.insert(b"agent-001")
        set_bits = sum(bin(b).count("1") for b in sketch.to_bytes())
        assert set_bits == 1

    def test_insert_idempotent(self):
        once = BitmapSketch()
        twice = BitmapSketch()
        once.insert(b"same")
        twice.insert(b"same")
        twice.insert(b"same")
        assert once == twice
        assert once.to_bytes() == twice.to_bytes()

    def test_insert_order_irrelevant(self):
        values = [f"v{i}".encode() for i in range(300)]
        fwd = BitmapSketch()
        rev = BitmapSketch()
        for v in values:
            fwd.insert(v)
        for v in reversed(values):
            rev.insert(v)
        assert fwd == rev

    def test_from_bytes_wrong_size(self):
        with pytest.raises(ValueError):
            BitmapSketch.from_bytes(SketchConfig(), b"\x00" * 10)


class TestLeadingOnes:
    def test_bit_addressing_from_left(self):
        sketch = BitmapSketch(SketchConfig(num_bitmaps=2, bitmap_bits=16))
        sketch.set_bit(1, 0)
        assert sketch.to_bytes() == b"\x00\x00\x80\x00"
        sketch.set_bit(1, 15)
        assert sketch.to_bytes() == b"\x00\x00\x80\x01"
        assert sketch.is_set(1, 15)
        assert not sketch.is_set(0, 15)

    def test_leading_ones(self):
        sketch = BitmapSketch(SketchConfig(num_bitmaps=1, bitmap_bits=16))
        assert sketch.leading_ones(0) == 0
        for k in range(10):
            sketch.set_bit(0, k)
        sketch.set_bit(0, 12)
        assert sketch.leading_ones(0) == 10

    def test_full_bitmap(self):
        sketch = BitmapSketch(SketchConfig(num_bitmaps=1, bitmap_bits=16))
        for k in range(16):
            sketch.set_bit(0, k)
        assert sketch.leading_ones(0) == 16

    def test_estimate_formula(self):
        config = SketchConfig(num_bitmaps=4, bitmap_bits=8)
        sketch = BitmapSketch(config)
        for j, r in enumerate([3, 4, 5, 4]):
            for k in range(r):
                sketch.set_bit(j, k)
        expected = math.ceil((4 / PHI) * 2 ** (16 / 4))
        assert sketch.estimate() == expected


class TestSketchMerge:
    def test_or_merge_equals_union(self):
        s1 = [f"left-{i}".encode() for i in range(2000)]
        s2 = [f"right-{i}".encode() for i in range(3000)]
        a, b, union = BitmapSketch(), BitmapSketch(), BitmapSketch()
        for v in s1:
            a.insert(v)
            union.insert(v)
        for v in s2:
            b.insert(v)
            union.insert(v)
        a.merge_from(b)
        assert a == union

    def test_merge_with_self_copy_is_noop(self):
        a = BitmapSketch()
        for i in range(100):
            a.insert(f"x{i}".encode())
        before = a.to_bytes()
        a.merge_from(BitmapSketch.from_bytes(a.config, before))
        assert a.to_bytes() == before

    @pytest.mark.parametrize("other", [
        SketchConfig(num_bitmaps=128),
        SketchConfig(bitmap_bits=64),
        SketchConfig(seed=7),
    ])
    def test_incompatible_shapes(self, other):
        with pytest.raises(IncompatibleSketchShape):
            BitmapSketch().merge_from(BitmapSketch(other))

    def test_incompatible_is_value_error(self):
        with pytest.raises(ValueError):
            BitmapSketch().merge_from(BitmapSketch(SketchConfig(seed=1)))

    def test_threshold_does_not_affect_compatibility(self):
        a = BitmapSketch(SketchConfig(promote_threshold=10))
        b = BitmapSketch(SketchConfig(promote_threshold=20))
        a.merge_from(b)
