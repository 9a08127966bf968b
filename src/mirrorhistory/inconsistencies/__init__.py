"""Day-by-day scan for cross-domain contradictions."""

from mirrorhistory.inconsistencies.scanner import InconsistencyScanner

__all__ = ["InconsistencyScanner"]
