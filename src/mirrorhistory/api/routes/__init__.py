"""
API routes for MirrorHistory.
"""

from mirrorhistory.api.routes import (
    compare,
    confrontations,
    forensic,
    inconsistencies,
    moments,
    redo,
)

__all__ = [
    "compare",
    "confrontations",
    "forensic",
    "inconsistencies",
    "moments",
    "redo",
]
