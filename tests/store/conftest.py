"""Shared fixtures for exact-store tests."""
from __future__ import annotations

import pytest

from fmsketch.config import SketchConfig


@pytest.fixture
def tiny_config() -> SketchConfig:
    """Capacity small enough to hit the directory limit quickly."""
    return SketchConfig(promote_threshold=8)
