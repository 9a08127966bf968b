"""
Significant-moment detection.

Rule-based scan of each day in a range for notable patterns: mood drops and
spikes against a two-week baseline, packed schedules, active-and-happy days,
exploration days, productive days and quiet days. At most one moment is kept
per day, and at most seven overall.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from mirrorhistory.analytics.stats import group_by_date, mean, mean_or_none
from mirrorhistory.db.repositories import EventRepository, MoodRepository
from mirrorhistory.models.db import Event, EventType, MoodEntry
from mirrorhistory.models.views import DetectedMoment, MomentType
from mirrorhistory.utils.timeutils import day_start, range_bounds, utc_now

logger = logging.getLogger(__name__)

BASELINE_DAYS = 14
DEFAULT_BASELINE_MOOD = 3.0
MAX_MOMENTS = 7
WEEKLY_LOOKBACK_DAYS = 7

MOOD_SWING = 1.0
MOOD_DROP_CEILING = 2.5
MOOD_SPIKE_FLOOR = 4.0
STRESSFUL_MIN_CALENDAR = 3
STRESSFUL_MAX_MOOD = 3.0
ACTIVE_HAPPY_MIN_MOOD = 4.0
DISCOVERY_MIN_TRANSACTIONS = 2
PRODUCTIVE_MIN_CAPTURES = 4


@dataclass
class _DayProfile:
    """Per-day counts the patterns are evaluated on."""

    day: date
    events: List[Event]
    moods: List[MoodEntry]
    avg_mood: Optional[float]
    counts: Counter

    @property
    def event_ids(self) -> List[str]:
        return [str(e.id) for e in self.events]

    @property
    def mood_event_ids(self) -> List[str]:
        return [str(m.event_id) for m in self.moods]

    def count(self, event_type: EventType) -> int:
        return self.counts.get(event_type, 0)


class MomentDetector:
    """Finds the notable days in a date range."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utc_now):
        self.session = session
        self.clock = clock
        self.events = EventRepository(session)
        self.moods = MoodRepository(session)

    def detect(self, start_date: date, end_date: date) -> List[DetectedMoment]:
        """
        Detect significant moments between two dates (inclusive, UTC days).

        Args:
            start_date: First day to analyse
            end_date: Last day to analyse

        Returns:
            Up to seven moments, most significant first, one per day
        """
        events = self.events.get_events_by_date_range(start_date, end_date)
        if not events:
            return []

        baseline = self._baseline_mood(start_date)
        period_start, period_end = range_bounds(start_date, end_date)
        moods_by_date = group_by_date(
            self.moods.get_in_window(period_start, period_end), lambda m: m.timestamp
        )

        moments: List[DetectedMoment] = []
        for day, day_events in group_by_date(events, lambda e: e.timestamp).items():
            day_moods = moods_by_date.get(day, [])
            profile = _DayProfile(
                day=day,
                events=day_events,
                moods=day_moods,
                avg_mood=mean_or_none(m.score for m in day_moods),
                counts=Counter(e.type for e in day_events),
            )
            moments.extend(self._detect_day(profile, baseline))

        # Most significant first, most recent first among equals
        moments.sort(key=lambda m: m.date, reverse=True)
        moments.sort(key=lambda m: m.score, reverse=True)

        seen_dates: set[date] = set()
        deduped: List[DetectedMoment] = []
        for moment in moments:
            if moment.date not in seen_dates:
                seen_dates.add(moment.date)
                deduped.append(moment)

        logger.debug(
            f"Detected {len(deduped)} moments between {start_date} and {end_date} "
            f"(baseline mood {baseline:.2f})"
        )
        return deduped[:MAX_MOMENTS]

    def weekly_highlights(self, today: Optional[date] = None) -> List[DetectedMoment]:
        """Moments of the last seven days, through ``today``."""
        if today is None:
            today = self.clock().date()
        return self.detect(today - timedelta(days=WEEKLY_LOOKBACK_DAYS), today)

    def _baseline_mood(self, start_date: date) -> float:
        baseline_start = day_start(start_date - timedelta(days=BASELINE_DAYS))
        baseline_end = day_start(start_date) - timedelta(milliseconds=1)
        moods = self.moods.get_in_window(baseline_start, baseline_end)
        if not moods:
            return DEFAULT_BASELINE_MOOD
        return mean(m.score for m in moods)

    def _detect_day(self, profile: _DayProfile, baseline: float) -> List[DetectedMoment]:
        day = profile.day
        avg_mood = profile.avg_mood
        found: List[DetectedMoment] = []

        def moment(
            prefix: str,
            moment_type: MomentType,
            title: str,
            description: str,
            icon: str,
            score: float,
            related: List[str],
        ) -> DetectedMoment:
            return DetectedMoment(
                id=f"{prefix}_{day.isoformat()}",
                type=moment_type,
                date=day,
                title=title,
                description=description,
                icon=icon,
                score=score,
                related_event_ids=related,
            )

        if (
            avg_mood is not None
            and avg_mood <= baseline - MOOD_SWING
            and avg_mood <= MOOD_DROP_CEILING
        ):
            found.append(
                moment(
                    "mood_drop",
                    MomentType.MOOD_DROP,
                    "Tough day",
                    f"Your mood averaged {avg_mood:.1f}/5, below your typical {baseline:.1f}",
                    "\U0001F614",
                    min(1.0, (baseline - avg_mood) / 3),
                    profile.mood_event_ids,
                )
            )

        if (
            avg_mood is not None
            and avg_mood >= baseline + MOOD_SWING
            and avg_mood >= MOOD_SPIKE_FLOOR
        ):
            found.append(
                moment(
                    "mood_spike",
                    MomentType.MOOD_SPIKE,
                    "Great day!",
                    f"Your mood hit {avg_mood:.1f}/5, well above your average {baseline:.1f}",
                    "\U0001F929",
                    min(1.0, (avg_mood - baseline) / 3),
                    profile.mood_event_ids,
                )
            )

        calendar_count = profile.count(EventType.CALENDAR_EVENT)
        if calendar_count >= STRESSFUL_MIN_CALENDAR and (
            avg_mood is None or avg_mood <= STRESSFUL_MAX_MOOD
        ):
            mood_suffix = f", mood {avg_mood:.1f}/5" if avg_mood is not None else ""
            found.append(
                moment(
                    "stressful",
                    MomentType.STRESSFUL_DAY,
                    "Packed schedule",
                    f"{calendar_count} calendar events{mood_suffix}",
                    "\U0001F4C5",
                    0.6 + (calendar_count - STRESSFUL_MIN_CALENDAR) * 0.1,
                    profile.event_ids,
                )
            )

        health_count = profile.count(EventType.HEALTH_ENTRY)
        if health_count >= 1 and avg_mood is not None and avg_mood >= ACTIVE_HAPPY_MIN_MOOD:
            found.append(
                moment(
                    "active_happy",
                    MomentType.ACTIVE_HAPPY,
                    "Active & happy",
                    f"{health_count} health entries recorded with mood {avg_mood:.1f}/5",
                    "\U0001F3CB\uFE0F",
                    0.7 + avg_mood * 0.05,
                    profile.event_ids,
                )
            )

        location_count = profile.count(EventType.LOCATION)
        tx_count = profile.count(EventType.MONEY_TRANSACTION)
        if location_count >= 1 and tx_count >= DISCOVERY_MIN_TRANSACTIONS:
            found.append(
                moment(
                    "discovery",
                    MomentType.DISCOVERY,
                    "Exploration day",
                    f"{location_count} location(s) visited, {tx_count} transactions made",
                    "\U0001F30D",
                    0.65,
                    profile.event_ids,
                )
            )

        note_count = profile.count(EventType.NOTE)
        voice_count = profile.count(EventType.VOICE_MEMO)
        if note_count + voice_count >= PRODUCTIVE_MIN_CAPTURES:
            found.append(
                moment(
                    "productive",
                    MomentType.PRODUCTIVE_DAY,
                    "Productive day",
                    f"Captured {note_count} notes and {voice_count} voice memos",
                    "\U0001F4DD",
                    0.5 + (note_count + voice_count) * 0.05,
                    profile.event_ids,
                )
            )

        if len(profile.events) == 1:
            found.append(
                moment(
                    "quiet",
                    MomentType.QUIET_DAY,
                    "Quiet day",
                    "Only 1 event recorded, a calm day",
                    "\U0001F54A\uFE0F",
                    0.3,
                    profile.event_ids,
                )
            )

        return found
