"""Significant-moment detection over date ranges."""

from mirrorhistory.moments.detector import MomentDetector

__all__ = ["MomentDetector"]
