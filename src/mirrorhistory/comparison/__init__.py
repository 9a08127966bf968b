"""Before/after comparison across domains."""

from mirrorhistory.comparison.engine import ComparisonEngine

__all__ = ["ComparisonEngine"]
