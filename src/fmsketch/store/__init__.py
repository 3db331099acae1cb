"""Exact-mode storage for small distinct counts."""
from fmsketch.store.sorted_values import SortedValueStore

__all__ = ["SortedValueStore"]
