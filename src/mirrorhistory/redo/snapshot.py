"""
Re-do: replay any moment with every data stream overlaid.

A snapshot answers "what was happening at time T" across location, mood,
spending, calendar, health, notes and voice memos. A re-do day repeats that
for each of the 24 UTC hours of a date.
"""

import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence, TypeVar

from sqlalchemy.orm import Session

from mirrorhistory.config import settings
from mirrorhistory.db.repositories import (
    CalendarRepository,
    EventRepository,
    HealthRepository,
    LocationRepository,
    MoodRepository,
    NoteRepository,
    TransactionRepository,
    VoiceMemoRepository,
)
from mirrorhistory.models.db import EventType
from mirrorhistory.models.views import HourlySlice, MomentSnapshot, MoodPoint, RedoDay
from mirrorhistory.utils.timeutils import as_utc, hour_bounds

logger = logging.getLogger(__name__)

T = TypeVar("T")


def find_closest(
    items: Sequence[T], target: datetime, get_timestamp: Callable[[T], datetime]
) -> Optional[T]:
    """
    Pick the item nearest to ``target``.

    Ties keep the earliest item in ``items`` order.
    """
    closest: Optional[T] = None
    min_diff: Optional[timedelta] = None
    for item in items:
        diff = abs(as_utc(get_timestamp(item)) - target)
        if min_diff is None or diff < min_diff:
            closest = item
            min_diff = diff
    return closest


def dominant_event_type(types: Sequence[EventType]) -> Optional[EventType]:
    """Most frequent type; on a tie the type seen first wins."""
    dominant: Optional[EventType] = None
    max_count = 0
    for event_type, count in Counter(types).items():
        if count > max_count:
            dominant = event_type
            max_count = count
    return dominant


class SnapshotBuilder:
    """Builds moment snapshots and hourly day reconstructions."""

    def __init__(self, session: Session):
        self.session = session
        self.events = EventRepository(session)
        self.locations = LocationRepository(session)
        self.moods = MoodRepository(session)
        self.transactions = TransactionRepository(session)
        self.calendar = CalendarRepository(session)
        self.health = HealthRepository(session)
        self.notes = NoteRepository(session)
        self.voice_memos = VoiceMemoRepository(session)

    def build_snapshot(
        self, center: datetime, window_minutes: Optional[int] = None
    ) -> MomentSnapshot:
        """
        Snapshot of all streams in ``[center - w, center + w]``.

        Location and mood are the single in-window records nearest to
        ``center``; every other stream lists all its in-window records.

        Args:
            center: Moment to reconstruct
            window_minutes: Half-width of the window (default from settings)

        Returns:
            MomentSnapshot stamped with ``center``
        """
        if window_minutes is None:
            window_minutes = settings.snapshot_window_minutes
        center = as_utc(center)
        delta = timedelta(minutes=window_minutes)
        start, end = center - delta, center + delta

        snapshot = self._snapshot_for_window(start, end, timestamp=center)
        snapshot.location = find_closest(
            self.locations.get_in_window(start, end), center, lambda loc: loc.timestamp
        )
        snapshot.mood = find_closest(
            self.moods.get_in_window(start, end), center, lambda mood: mood.timestamp
        )
        return snapshot

    def build_day(self, day: date) -> RedoDay:
        """
        Reconstruct a UTC day as 24 hourly slices.

        Each slice's location and mood are the first recorded in that hour,
        and its timestamp is the middle of the hour.
        """
        slices: list[HourlySlice] = []
        mood_arc: list[MoodPoint] = []
        total_events = 0

        for hour in range(24):
            hour_start, hour_end = hour_bounds(day, hour)
            events = self.events.get_events_in_window(hour_start, hour_end)
            midpoint = hour_start + (hour_end - hour_start) / 2

            snapshot = self._snapshot_for_window(hour_start, hour_end, timestamp=midpoint)
            locations = self.locations.get_in_window(hour_start, hour_end)
            moods = self.moods.get_in_window(hour_start, hour_end)
            snapshot.location = locations[0] if locations else None
            snapshot.mood = moods[0] if moods else None

            if snapshot.mood is not None:
                mood_arc.append(MoodPoint(hour=hour, score=snapshot.mood.score))

            total_events += len(events)
            slices.append(
                HourlySlice(
                    hour=hour,
                    label=f"{hour:02d}:00",
                    snapshot=snapshot,
                    event_count=len(events),
                    dominant_type=dominant_event_type([e.type for e in events]),
                )
            )

        logger.debug(f"Reconstructed {day.isoformat()}: {total_events} events")
        return RedoDay(date=day, slices=slices, mood_arc=mood_arc, total_events=total_events)

    # Names used by the HTTP and CLI surfaces
    get_moment_data = build_snapshot
    get_hourly_reconstruction = build_day

    def _snapshot_for_window(
        self, start: datetime, end: datetime, timestamp: datetime
    ) -> MomentSnapshot:
        return MomentSnapshot(
            timestamp=timestamp,
            transactions=self.transactions.get_in_window(start, end),
            calendar_events=self.calendar.get_in_window(start, end),
            health_entries=self.health.get_in_window(start, end),
            notes=self.notes.get_in_window(start, end),
            voice_memos=self.voice_memos.get_in_window(start, end),
        )
