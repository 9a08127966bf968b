"""Forensic zoom into single events."""

from mirrorhistory.forensic.reconstructor import ForensicReconstructor

__all__ = ["ForensicReconstructor"]
