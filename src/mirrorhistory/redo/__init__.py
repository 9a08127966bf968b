"""Moment snapshots and hour-by-hour day reconstruction."""

from mirrorhistory.redo.snapshot import SnapshotBuilder

__all__ = ["SnapshotBuilder"]
