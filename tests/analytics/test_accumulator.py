"""Tests for the exact-to-sketch transition and finalize."""
from __future__ import annotations

import logging

import pytest

from fmsketch.analytics.accumulator import (
    Mode,
    finalize,
    is_empty,
    mode,
    new,
    observe,
    promote,
)
from fmsketch.analytics.bitmap_sketch import BitmapSketch
from fmsketch.config import DEFAULT_PROMOTE_THRESHOLD, SketchConfig
from fmsketch.store.sorted_values import SortedValueStore

SMALL_THRESHOLD = 64


class TestFreshState:
    def test_new_is_empty_exact(self):
        state = new()
        assert isinstance(state, SortedValueStore)
        assert mode(state) is Mode.EXACT
        assert is_empty(state)

    def test_finalize_untouched_is_zero(self):
        assert finalize(new()) == 0

    def test_not_a_state(self):
        with pytest.raises(TypeError):
            finalize("nope")
        with pytest.raises(TypeError):
            observe(42, b"x")
        with pytest.raises(TypeError):
            mode(None)


class TestExactBelowThreshold:
    def test_three_strings(self, build):
        state = build([b"a", b"b", b"c"])
        assert finalize(state) == 3
        assert mode(state) is Mode.EXACT

    def test_duplicates_interleaved(self, build, small_config):
        stream = [i % 40 for i in range(1000)]
        state = build(stream, small_config)
        assert finalize(state) == 40
        assert mode(state) is Mode.EXACT

    def test_exactly_at_threshold(self, build, small_config):
        state = build(range(SMALL_THRESHOLD), small_config)
        assert mode(state) is Mode.EXACT
        assert finalize(state) == SMALL_THRESHOLD

    def test_duplicate_at_threshold_stays_exact(self, build, small_config):
        state = build(range(SMALL_THRESHOLD), small_config)
        state = observe(state, b"0")
        assert mode(state) is Mode.EXACT
        assert finalize(state) == SMALL_THRESHOLD


class TestPromotion:
    def test_next_distinct_value_promotes(self, build, small_config):
        state = build(range(SMALL_THRESHOLD), small_config)
        state = observe(state, b"one-more")
        assert isinstance(state, BitmapSketch)
        assert mode(state) is Mode.SKETCH
        assert state.config == small_config

    def test_promotion_replays_history(self, build, small_config):
        values = [str(i).encode() for i in range(SMALL_THRESHOLD)] + [b"extra"]
        promoted = build(values, small_config)
        direct = BitmapSketch(small_config)
        for v in values:
            direct.insert(v)
        assert promoted == direct

    def test_no_return_to_exact(self, build, small_config):
        state = build(range(SMALL_THRESHOLD + 1), small_config)
        for v in [b"0", b"1", b"2"]:
            state = observe(state, v)
            assert mode(state) is Mode.SKETCH

    def test_promote_helper(self, small_config):
        store = new(small_config)
        for v in [b"x", b"y"]:
            store.observe(v)
        sketch = promote(store)
        expected = BitmapSketch(small_config)
        expected.insert(b"x")
        expected.insert(b"y")
        assert sketch == expected

    def test_promotion_logged(self, build, small_config, caplog):
        with caplog.at_level(logging.DEBUG, logger="fmsketch"):
            build(range(SMALL_THRESHOLD + 1), small_config)
        assert any("promoted" in r.getMessage() for r in caplog.records)


class TestDefaultBoundary:
    """The default configuration promotes after 12288 distinct values."""

    def test_default_boundary(self, build):
        state = build(range(DEFAULT_PROMOTE_THRESHOLD))
        assert mode(state) is Mode.EXACT
        assert finalize(state) == DEFAULT_PROMOTE_THRESHOLD

        state = observe(state, str(DEFAULT_PROMOTE_THRESHOLD).encode())
        assert mode(state) is Mode.SKETCH
        est = finalize(state)
        expected = DEFAULT_PROMOTE_THRESHOLD + 1
        # standard error ~4.9%, allow ~4 sigma
        assert 0.8 * expected <= est <= 1.2 * expected, f"Expected ~{expected}, got {est}"

    def test_sketch_estimate_tracks_growth(self):
        config = SketchConfig(promote_threshold=1)
        state = new(config)
        for i in range(40_000):
            state = observe(state, f"item-{i}".encode())
        est = finalize(state)
        assert 32_000 <= est <= 48_000, f"Expected ~40000, got {est}"
