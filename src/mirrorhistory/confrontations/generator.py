"""
Confrontation generation.

Scans one period (the trailing week or month) for cross-domain correlations,
split-half trends and anomalies, and scores how uncomfortable each finding
is. Each run replaces the stored batch for its period.
"""

import logging
import uuid
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from mirrorhistory.analytics.stats import group_by_date, mean, split_at
from mirrorhistory.config import settings
from mirrorhistory.db.repositories import (
    CalendarRepository,
    ConfrontationRepository,
    HealthRepository,
    LocationRepository,
    MoodRepository,
    NoteRepository,
    TransactionRepository,
)
from mirrorhistory.exceptions import InvalidPeriodError
from mirrorhistory.models.db import (
    CalendarEvent,
    Confrontation,
    ConfrontationCategory,
    ConfrontationPeriod,
    HealthEntry,
    HealthMetricType,
    Location,
    MoneyTransaction,
    MoodEntry,
    Note,
)
from mirrorhistory.models.views import (
    ConfrontationFinding,
    ConfrontationResult,
    DataPoint,
)
from mirrorhistory.utils.timeutils import range_bounds, subtract_months, utc_now

logger = logging.getLogger(__name__)

RELATED_EVENT_LIMIT = 3

# Mood trend
MOOD_TREND_MIN_SAMPLES = 4
MOOD_TREND_MIN_DECLINE = 0.5
MOOD_TREND_BASE_SEVERITY = 0.5
MOOD_TREND_MAX_SEVERITY = 0.9

# Meeting load vs mood
MEETING_MIN_MOODS = 3
BUSY_DAY_MIN_MEETINGS = 3
CALM_DAY_MAX_MEETINGS = 1
MEETING_MIN_MOOD_GAP = 0.5
MEETING_MAX_SEVERITY = 0.9

# Spending vs mood
SPEND_MOOD_MIN_TRANSACTIONS = 5
SPEND_MOOD_MIN_MOODS = 3
LOW_MOOD_CEILING = 2.5
HIGH_MOOD_FLOOR = 3.5
SPEND_MOOD_RATIO = 1.3
SPEND_MOOD_MAX_SEVERITY = 0.9

# Exercise decline
EXERCISE_MIN_WORKOUTS = 4
EXERCISE_MIN_FIRST_HALF = 3
EXERCISE_MAX_SEVERITY = 0.85

# Silent locations
SILENT_MIN_VISITS = 4
SILENT_MIN_ADDRESS_LENGTH = 3
SILENT_MIN_WORD_LENGTH = 4
SILENT_MAX_FINDINGS = 2
SILENT_BASE_SEVERITY = 0.3
SILENT_MAX_SEVERITY = 0.7

# Spending trend
SPEND_TREND_MIN_TRANSACTIONS = 6
SPEND_TREND_RATIO = 1.3
SPEND_TREND_BASE_SEVERITY = 0.4
SPEND_TREND_MAX_SEVERITY = 0.8

# Calendar overload
OVERLOAD_MIN_EVENTS = 10
OVERLOAD_MIN_DAILY_AVG = 4
OVERLOAD_MIN_PEAK_DAY = 6
OVERLOAD_MOOD_NOTE_BELOW = 3.5
OVERLOAD_BASE_SEVERITY = 0.3
OVERLOAD_MAX_SEVERITY = 0.75


def period_window(period: ConfrontationPeriod, today: date) -> Tuple[date, date]:
    """First and last UTC day covered by a period ending on ``today``."""
    if period == ConfrontationPeriod.WEEKLY:
        return today - timedelta(days=7), today
    return subtract_months(today, 1), today


def _parse_period(period: ConfrontationPeriod | str) -> ConfrontationPeriod:
    try:
        return ConfrontationPeriod(period)
    except ValueError:
        raise InvalidPeriodError(str(period)) from None


@dataclass
class _PeriodData:
    """Everything the detectors read, loaded once per run."""

    start: datetime
    end: datetime
    moods: List[MoodEntry]
    calendar_events: List[CalendarEvent]
    spending: List[Tuple[MoneyTransaction, datetime]]
    workouts: List[HealthEntry]
    locations: List[Location]
    notes: List[Note]

    @property
    def midpoint(self) -> datetime:
        return self.start + (self.end - self.start) / 2


def _ids(rows, limit: int = RELATED_EVENT_LIMIT) -> List[str]:
    return [str(row.event_id) for row in rows[:limit]]


class ConfrontationGenerator:
    """Generates and stores confrontations for a period."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utc_now):
        self.session = session
        self.clock = clock
        self.repository = ConfrontationRepository(session)
        self.moods = MoodRepository(session)
        self.calendar = CalendarRepository(session)
        self.transactions = TransactionRepository(session)
        self.health = HealthRepository(session)
        self.locations = LocationRepository(session)
        self.notes = NoteRepository(session)

    def generate(
        self, period: ConfrontationPeriod | str, today: Optional[date] = None
    ) -> ConfrontationResult:
        """
        Regenerate the confrontations for a period.

        Runs every detector over the period window and replaces the rows
        previously stored for the same period. The replace is flushed in the
        session's transaction; the caller commits.

        Args:
            period: "weekly" or "monthly"
            today: Last day of the window (defaults to the clock's UTC date)

        Returns:
            ConfrontationResult with the stored rows

        Raises:
            InvalidPeriodError: If ``period`` is not weekly or monthly
        """
        period = _parse_period(period)
        if today is None:
            today = self.clock().date()
        start_date, end_date = period_window(period, today)
        data = self._load(start_date, end_date)

        detectors = (
            self._detect_mood_meeting_correlation,
            self._detect_spending_mood_correlation,
            self._detect_exercise_decline,
            self._detect_mood_trend,
            self._detect_silent_locations,
            self._detect_spending_trend,
            self._detect_calendar_overload,
        )
        findings: List[ConfrontationFinding] = []
        for detector in detectors:
            found = detector(data)
            logger.debug(f"{detector.__name__}: {len(found)} finding(s)")
            findings.extend(found)

        rows = self.repository.replace_for_period(
            period, start_date, end_date, findings, generated_at=self.clock()
        )
        logger.info(
            f"Generated {len(rows)} {period.value} confrontations "
            f"for {start_date} to {end_date}"
        )
        return ConfrontationResult(generated=len(rows), confrontations=rows)

    def list(self, limit: Optional[int] = None) -> List[Confrontation]:
        """Stored confrontations, most severe first."""
        return self.repository.get_recent(limit or settings.confrontation_list_limit)

    def acknowledge(self, confrontation_id: uuid.UUID) -> bool:
        return self.repository.acknowledge(confrontation_id)

    def _load(self, start_date: date, end_date: date) -> _PeriodData:
        start, end = range_bounds(start_date, end_date)
        return _PeriodData(
            start=start,
            end=end,
            moods=self.moods.get_in_window(start, end),
            calendar_events=self.calendar.get_in_window(start, end),
            spending=self.transactions.get_timed_spending(start, end),
            workouts=self.health.get_metric_in_window(HealthMetricType.WORKOUT, start, end),
            locations=self.locations.get_in_window(start, end),
            notes=self.notes.get_in_window(start, end),
        )

    # ── Correlations ──

    def _detect_mood_meeting_correlation(self, data: _PeriodData) -> List[ConfrontationFinding]:
        if len(data.moods) < MEETING_MIN_MOODS:
            return []

        meetings_by_date = group_by_date(data.calendar_events, lambda c: c.start_time)
        busy_day_moods: List[float] = []
        calm_day_moods: List[float] = []
        for day, day_moods in group_by_date(data.moods, lambda m: m.timestamp).items():
            day_avg = mean(m.score for m in day_moods)
            meeting_count = len(meetings_by_date.get(day, []))
            if meeting_count >= BUSY_DAY_MIN_MEETINGS:
                busy_day_moods.append(day_avg)
            elif meeting_count <= CALM_DAY_MAX_MEETINGS:
                calm_day_moods.append(day_avg)

        if not busy_day_moods or not calm_day_moods:
            return []

        busy_avg = mean(busy_day_moods)
        calm_avg = mean(calm_day_moods)
        diff = calm_avg - busy_avg
        if diff < MEETING_MIN_MOOD_GAP:
            return []

        return [
            ConfrontationFinding(
                title="Meetings kill your mood",
                insight=(
                    f"Your average mood on busy days (3+ meetings) is {busy_avg:.1f}/5, "
                    f"but on calm days (0-1 meetings) it's {calm_avg:.1f}/5. That's a "
                    f"{diff:.1f}-point drop every time your calendar fills up."
                ),
                severity=min(0.5 + diff / 3, MEETING_MAX_SEVERITY),
                category=ConfrontationCategory.CORRELATION,
                data_points=[
                    DataPoint("Busy day mood", f"{busy_avg:.1f}/5"),
                    DataPoint("Calm day mood", f"{calm_avg:.1f}/5"),
                    DataPoint("Drop", f"{diff:.1f} points"),
                ],
                related_event_ids=_ids(data.moods),
            )
        ]

    def _detect_spending_mood_correlation(
        self, data: _PeriodData
    ) -> List[ConfrontationFinding]:
        if (
            len(data.spending) < SPEND_MOOD_MIN_TRANSACTIONS
            or len(data.moods) < SPEND_MOOD_MIN_MOODS
        ):
            return []

        spent_by_date: dict[date, float] = defaultdict(float)
        for tx, _ in data.spending:
            spent_by_date[tx.date] += abs(tx.amount)

        low_mood_spending: List[float] = []
        high_mood_spending: List[float] = []
        for day, day_moods in group_by_date(data.moods, lambda m: m.timestamp).items():
            day_spent = spent_by_date.get(day, 0.0)
            if day_spent == 0:
                continue
            day_avg = mean(m.score for m in day_moods)
            if day_avg <= LOW_MOOD_CEILING:
                low_mood_spending.append(day_spent)
            elif day_avg >= HIGH_MOOD_FLOOR:
                high_mood_spending.append(day_spent)

        if not low_mood_spending or not high_mood_spending:
            return []

        low_avg = mean(low_mood_spending)
        high_avg = mean(high_mood_spending)
        if low_avg <= high_avg * SPEND_MOOD_RATIO:
            return []

        pct_more = round((low_avg / high_avg - 1) * 100)
        low_mood_entries = [m for m in data.moods if m.score <= LOW_MOOD_CEILING]
        return [
            ConfrontationFinding(
                title="You spend more when you're sad",
                insight=(
                    f"On low-mood days (≤2.5/5), you spend an average of ${low_avg:.0f}, "
                    f"{pct_more}% more than the ${high_avg:.0f} you spend on good days. "
                    "The worse you feel, the more you buy."
                ),
                severity=min(0.5 + pct_more / 200, SPEND_MOOD_MAX_SEVERITY),
                category=ConfrontationCategory.CORRELATION,
                data_points=[
                    DataPoint("Low-mood spending", f"${low_avg:.0f}/day"),
                    DataPoint("Good-mood spending", f"${high_avg:.0f}/day"),
                    DataPoint("Difference", f"+{pct_more}%"),
                ],
                related_event_ids=_ids(low_mood_entries),
            )
        ]

    def _detect_calendar_overload(self, data: _PeriodData) -> List[ConfrontationFinding]:
        events = data.calendar_events
        if len(events) < OVERLOAD_MIN_EVENTS:
            return []

        daily_counts = [
            len(day_events)
            for day_events in group_by_date(events, lambda c: c.start_time).values()
        ]
        avg_daily = mean(daily_counts)
        peak_day = max(daily_counts)
        if avg_daily < OVERLOAD_MIN_DAILY_AVG and peak_day < OVERLOAD_MIN_PEAK_DAY:
            return []

        mood_note = ""
        if data.moods:
            avg_mood = mean(m.score for m in data.moods)
            if avg_mood < OVERLOAD_MOOD_NOTE_BELOW:
                mood_note = f" Meanwhile, your mood averaged {avg_mood:.1f}/5. Coincidence?"

        return [
            ConfrontationFinding(
                title="Your calendar owns you",
                insight=(
                    f"{len(events)} calendar events with an average of {avg_daily:.1f} "
                    f"per day. Peak day had {peak_day} events.{mood_note} "
                    "When do you have time to think?"
                ),
                severity=min(OVERLOAD_BASE_SEVERITY + avg_daily / 8, OVERLOAD_MAX_SEVERITY),
                category=ConfrontationCategory.CORRELATION,
                data_points=[
                    DataPoint("Total events", str(len(events))),
                    DataPoint("Average/day", f"{avg_daily:.1f}"),
                    DataPoint("Busiest day", f"{peak_day} events"),
                ],
                related_event_ids=_ids(events),
            )
        ]

    # ── Trends ──

    def _detect_mood_trend(self, data: _PeriodData) -> List[ConfrontationFinding]:
        if len(data.moods) < MOOD_TREND_MIN_SAMPLES:
            return []

        first_half, second_half = split_at(data.moods, lambda m: m.timestamp, data.midpoint)
        if not first_half or not second_half:
            return []

        first_avg = mean(m.score for m in first_half)
        second_avg = mean(m.score for m in second_half)
        decline = first_avg - second_avg
        if decline <= MOOD_TREND_MIN_DECLINE:
            return []

        return [
            ConfrontationFinding(
                title="Your mood is declining",
                insight=(
                    f"Your average mood went from {first_avg:.1f}/5 to {second_avg:.1f}/5, "
                    f"a steady {decline:.1f}-point decline. This isn't a bad day. It's a trend."
                ),
                severity=min(MOOD_TREND_BASE_SEVERITY + decline / 3, MOOD_TREND_MAX_SEVERITY),
                category=ConfrontationCategory.TREND,
                data_points=[
                    DataPoint("Earlier average", f"{first_avg:.1f}/5"),
                    DataPoint("Recent average", f"{second_avg:.1f}/5"),
                    DataPoint("Decline", f"{decline:.1f} points"),
                ],
                related_event_ids=_ids(second_half),
            )
        ]

    def _detect_exercise_decline(self, data: _PeriodData) -> List[ConfrontationFinding]:
        workouts = data.workouts
        if len(workouts) < EXERCISE_MIN_WORKOUTS:
            return []

        first_half, second_half = split_at(workouts, lambda w: w.timestamp, data.midpoint)
        first_count, second_count = len(first_half), len(second_half)
        if first_count < EXERCISE_MIN_FIRST_HALF or second_count > max(1, first_count * 0.5):
            return []

        decline_pct = round((1 - second_count / first_count) * 100)
        return [
            ConfrontationFinding(
                title="You stopped working out",
                insight=(
                    f"First half: {first_count} workouts. Second half: {second_count}. "
                    f"That's a {decline_pct}% decline. Your body notices even if you "
                    "pretend it doesn't."
                ),
                severity=min(0.5 + (first_count - second_count) / 10, EXERCISE_MAX_SEVERITY),
                category=ConfrontationCategory.TREND,
                data_points=[
                    DataPoint("First half", f"{first_count} workouts"),
                    DataPoint("Second half", f"{second_count} workouts"),
                    DataPoint("Decline", f"{decline_pct}%"),
                ],
                related_event_ids=_ids(workouts),
            )
        ]

    def _detect_spending_trend(self, data: _PeriodData) -> List[ConfrontationFinding]:
        if len(data.spending) < SPEND_TREND_MIN_TRANSACTIONS:
            return []

        first_half, second_half = split_at(data.spending, lambda pair: pair[1], data.midpoint)
        first_total = sum(abs(tx.amount) for tx, _ in first_half)
        second_total = sum(abs(tx.amount) for tx, _ in second_half)
        if first_total <= 0 or second_total <= first_total * SPEND_TREND_RATIO:
            return []

        pct_increase = round((second_total / first_total - 1) * 100)
        category_totals: Counter[str] = Counter()
        for tx, _ in second_half:
            category_totals[tx.category or "Uncategorized"] += abs(tx.amount)
        top_category = category_totals.most_common(1)
        driver = ""
        if top_category:
            name, total = top_category[0]
            driver = f" Biggest driver: {name} (${total:.0f})."

        return [
            ConfrontationFinding(
                title=f"Spending up {pct_increase}%",
                insight=(
                    f"Your spending increased from ${first_total:.0f} to ${second_total:.0f}, "
                    f"up {pct_increase}%.{driver} At this rate, next month will be worse."
                ),
                severity=min(
                    SPEND_TREND_BASE_SEVERITY + pct_increase / 200, SPEND_TREND_MAX_SEVERITY
                ),
                category=ConfrontationCategory.TREND,
                data_points=[
                    DataPoint("Earlier spending", f"${first_total:.0f}"),
                    DataPoint("Recent spending", f"${second_total:.0f}"),
                    DataPoint("Increase", f"+{pct_increase}%"),
                ],
                related_event_ids=_ids([tx for tx, _ in second_half]),
            )
        ]

    # ── Anomalies ──

    def _detect_silent_locations(self, data: _PeriodData) -> List[ConfrontationFinding]:
        if len(data.locations) < SILENT_MIN_VISITS:
            return []

        visits: dict[str, List[Location]] = defaultdict(list)
        for location in data.locations:
            if not location.address or len(location.address) < SILENT_MIN_ADDRESS_LENGTH:
                continue
            visits[location.address.lower()].append(location)

        note_text = " ".join(note.content.lower() for note in data.notes)
        findings: List[ConfrontationFinding] = []
        for address, visited in visits.items():
            count = len(visited)
            if count < SILENT_MIN_VISITS:
                continue
            words = [w for w in address.split() if len(w) >= SILENT_MIN_WORD_LENGTH]
            if address in note_text or any(word in note_text for word in words):
                continue

            display = visited[0].address
            findings.append(
                ConfrontationFinding(
                    title=f"You keep going to {display}",
                    insight=(
                        f'You\'ve been to "{display}" {count} times but never mentioned it '
                        "in any note. What happens there that you don't want to record?"
                    ),
                    severity=min(SILENT_BASE_SEVERITY + count / 15, SILENT_MAX_SEVERITY),
                    category=ConfrontationCategory.ANOMALY,
                    data_points=[
                        DataPoint("Visits", f"{count} times"),
                        DataPoint("Mentioned", "Never"),
                    ],
                    related_event_ids=_ids(visited),
                )
            )
        return findings[:SILENT_MAX_FINDINGS]
