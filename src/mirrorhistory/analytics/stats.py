"""
Small aggregation helpers shared by the detectors.

All grouping is by UTC calendar date.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from mirrorhistory.utils.timeutils import as_utc

T = TypeVar("T")


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean; 0.0 for an empty input."""
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def mean_or_none(values: Iterable[float]) -> Optional[float]:
    values = list(values)
    if not values:
        return None
    return sum(values) / len(values)


def utc_date(value: datetime) -> date:
    return as_utc(value).date()


def group_by_date(
    items: Iterable[T], get_timestamp: Callable[[T], datetime]
) -> Dict[date, List[T]]:
    """
    Group items by the UTC date of their timestamp.

    Insertion order of each group follows the input order.
    """
    grouped: Dict[date, List[T]] = defaultdict(list)
    for item in items:
        grouped[utc_date(get_timestamp(item))].append(item)
    return dict(grouped)


def split_at(
    items: Iterable[T], get_timestamp: Callable[[T], datetime], midpoint: datetime
) -> tuple[List[T], List[T]]:
    """Split items into those before ``midpoint`` and those at or after it."""
    first: List[T] = []
    second: List[T] = []
    for item in items:
        if as_utc(get_timestamp(item)) < midpoint:
            first.append(item)
        else:
            second.append(item)
    return first, second
