"""Shared fixtures for accumulator, sketch and merge tests."""
from __future__ import annotations

import pytest

from fmsketch.analytics.accumulator import AccumulatorState, new, observe
from fmsketch.config import SketchConfig


SMALL_THRESHOLD = 64


@pytest.fixture
def small_config() -> SketchConfig:
    """Promotes after 64 distinct values so tests cross the boundary cheaply."""
    return SketchConfig(promote_threshold=SMALL_THRESHOLD)


@pytest.fixture
def build():
    """Factory: accumulate `values` into a fresh state."""

    def _build(values, config: SketchConfig | None = None) -> AccumulatorState:
        state = new(config) if config is not None else new()
        for v in values:
            state = observe(state, v if isinstance(v, bytes) else str(v).encode())
        return state

    return _build
