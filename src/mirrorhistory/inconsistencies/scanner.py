"""
Inconsistency scanning.

Walks a date range one UTC day at a time looking for things in the record
that do not add up: being somewhere other than the calendar says,
double-booked meetings, mood that contradicts behaviour, broken weekly
routines, emotional spending, silent hours and photos whose expression
contradicts the reported mood.

Each day's previous findings are cleared before the new ones are stored,
so re-scanning a range is idempotent.
"""

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List

from sqlalchemy.orm import Session

from mirrorhistory.analytics.stats import group_by_date, mean, mean_or_none
from mirrorhistory.config import settings
from mirrorhistory.db.repositories import (
    CalendarRepository,
    EventRepository,
    HealthRepository,
    InconsistencyRepository,
    LocationRepository,
    MoodRepository,
    PhotoRepository,
    TransactionRepository,
)
from mirrorhistory.models.db import (
    CalendarEvent,
    Event,
    HealthEntry,
    HealthMetricType,
    Inconsistency,
    InconsistencyType,
    Location,
    MoneyTransaction,
    MoodEntry,
)
from mirrorhistory.models.views import InconsistencyFinding, InconsistencyScanResult
from mirrorhistory.utils.timeutils import (
    as_utc,
    day_end,
    day_start,
    format_hm,
    iter_days,
)
from mirrorhistory.visual.metrics import detect_visual_mood_mismatches

logger = logging.getLogger(__name__)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

LOCATION_MISMATCH_SEVERITY = 0.7

MIN_OVERLAP_MINUTES = 5

HAPPY_MOOD_FLOOR = 4
HAPPY_SPEND_THRESHOLD = 100
LOW_MOOD_CEILING = 2
SOCIAL_MIN_EVENTS = 3
MOOD_SWING_MIN_ENTRIES = 3
MOOD_SWING_POINTS = 3

ROUTINE_LOOKBACK_WEEKS = 4
ROUTINE_MIN_WEEKS = 3
WORKOUT_DROP_BEFORE = 3
WORKOUT_DROP_AFTER = 1

EMOTIONAL_SPEND_MOOD_CEILING = 2.5
EMOTIONAL_SPEND_MIN_TOTAL = 20
EMOTIONAL_SPEND_BASELINE_DAYS = 14
NORMAL_MOOD_FLOOR = 3
NEUTRAL_MOOD = 3
EMOTIONAL_SPEND_RATIO = 1.5

TIME_GAP_MIN_EVENTS = 3
TIME_GAP_MIN_HOURS = 2


@dataclass
class _Day:
    """Records of one UTC day, loaded once and shared by the detectors."""

    day: date
    events: List[Event]
    calendar_events: List[CalendarEvent]
    locations: List[Location]
    moods: List[MoodEntry]
    transactions: List[MoneyTransaction]
    health: List[HealthEntry]

    @property
    def spending(self) -> List[MoneyTransaction]:
        return [t for t in self.transactions if t.amount < 0]

    @property
    def mood_ids(self) -> List[str]:
        return [str(m.event_id) for m in self.moods]


def _hour_label(hour: int) -> str:
    return f"{hour:02d}:00"


def _readable(value: str) -> str:
    return value.replace("_", " ")


class InconsistencyScanner:
    """Scans days for cross-domain contradictions and stores them."""

    def __init__(self, session: Session):
        self.session = session
        self.repository = InconsistencyRepository(session)
        self.events = EventRepository(session)
        self.calendar = CalendarRepository(session)
        self.locations = LocationRepository(session)
        self.moods = MoodRepository(session)
        self.transactions = TransactionRepository(session)
        self.health = HealthRepository(session)
        self.photos = PhotoRepository(session)

    def scan(self, start_date: date, end_date: date) -> InconsistencyScanResult:
        """
        Scan every UTC day from ``start_date`` to ``end_date`` inclusive.

        Returns:
            InconsistencyScanResult with the number of days scanned and the
            stored findings
        """
        found: List[Inconsistency] = []
        scanned_days = 0
        for day in iter_days(start_date, end_date):
            cleared = self.repository.clear_for_date(day)
            findings = self.scan_day(day)
            found.extend(self.repository.save_findings(findings))
            scanned_days += 1
            if cleared or findings:
                logger.debug(f"{day}: cleared {cleared}, found {len(findings)}")

        logger.info(
            f"Scanned {scanned_days} day(s) from {start_date} to {end_date}: "
            f"{len(found)} inconsistencies"
        )
        return InconsistencyScanResult(scanned_days=scanned_days, found=found)

    def scan_day(self, day: date) -> List[InconsistencyFinding]:
        """Run every detector over one day without storing anything."""
        data = self._load_day(day)
        findings: List[InconsistencyFinding] = []
        findings.extend(self._detect_location_mismatches(data))
        findings.extend(self._detect_schedule_conflicts(data))
        findings.extend(self._detect_mood_behavior_disconnect(data))
        findings.extend(self._detect_pattern_breaks(data))
        findings.extend(self._detect_emotional_spending(data))
        findings.extend(self._detect_time_gaps(data))
        findings.extend(self._detect_visual_mood_mismatches(data))
        return findings

    def list(self, limit: int | None = None) -> List[Inconsistency]:
        """Stored findings, most severe first."""
        return self.repository.get_recent(limit or settings.inconsistency_list_limit)

    def dismiss(self, inconsistency_id: uuid.UUID) -> bool:
        return self.repository.dismiss(inconsistency_id)

    def _load_day(self, day: date) -> _Day:
        start, end = day_start(day), day_end(day)
        return _Day(
            day=day,
            events=self.events.get_events_in_window(start, end),
            calendar_events=self.calendar.get_in_window(start, end),
            locations=self.locations.get_in_window(start, end),
            moods=self.moods.get_in_window(start, end),
            transactions=self.transactions.get_in_window(start, end),
            health=self.health.get_in_window(start, end),
        )

    def _finding(
        self, data: _Day, kind: InconsistencyType, **fields
    ) -> InconsistencyFinding:
        return InconsistencyFinding(type=kind, date=data.day, **fields)

    def _detect_location_mismatches(self, data: _Day) -> List[InconsistencyFinding]:
        findings: List[InconsistencyFinding] = []
        if not data.calendar_events or not data.locations:
            return findings

        for cal in data.calendar_events:
            if not cal.location or not cal.location.strip():
                continue
            cal_start, cal_end = as_utc(cal.start_time), as_utc(cal.end_time)
            during = [
                loc for loc in data.locations if cal_start <= as_utc(loc.timestamp) <= cal_end
            ]
            if not during:
                continue

            expected = cal.location.lower()

            def matches(loc: Location) -> bool:
                address = (loc.address or "").lower()
                return address in expected or expected in address

            if any(matches(loc) for loc in during):
                continue

            actual = during[0]
            findings.append(
                self._finding(
                    data,
                    InconsistencyType.LOCATION_MISMATCH,
                    severity=LOCATION_MISMATCH_SEVERITY,
                    title="You weren't where you said you'd be",
                    description=(
                        f'Calendar event "{cal.title}" was at "{cal.location}", but your '
                        f'location data shows you were at "{actual.address}" during that time.'
                    ),
                    evidence_event_ids=[str(cal.event_id), str(actual.event_id)],
                    suggested_question=(
                        f"Why were you at {actual.address} instead of {cal.location}?"
                    ),
                )
            )
        return findings

    def _detect_schedule_conflicts(self, data: _Day) -> List[InconsistencyFinding]:
        findings: List[InconsistencyFinding] = []
        ordered = sorted(data.calendar_events, key=lambda c: as_utc(c.start_time))
        for i, first in enumerate(ordered):
            for second in ordered[i + 1 :]:
                overlap_start = max(as_utc(first.start_time), as_utc(second.start_time))
                overlap_end = min(as_utc(first.end_time), as_utc(second.end_time))
                if overlap_end <= overlap_start:
                    continue
                overlap_min = round((overlap_end - overlap_start).total_seconds() / 60)
                if overlap_min < MIN_OVERLAP_MINUTES:
                    continue

                findings.append(
                    self._finding(
                        data,
                        InconsistencyType.SCHEDULE_CONFLICT,
                        severity=min(0.5 + overlap_min / 120, 0.9),
                        title=f"Double-booked: {overlap_min}min overlap",
                        description=(
                            f'"{first.title}" and "{second.title}" overlap by {overlap_min} '
                            "minutes. You agreed to be in two places at once."
                        ),
                        evidence_event_ids=[str(first.event_id), str(second.event_id)],
                        suggested_question=(
                            f'Which one did you actually attend, "{first.title}" '
                            f'or "{second.title}"?'
                        ),
                    )
                )
        return findings

    def _detect_mood_behavior_disconnect(self, data: _Day) -> List[InconsistencyFinding]:
        findings: List[InconsistencyFinding] = []
        if not data.moods:
            return findings
        avg_mood = mean(m.score for m in data.moods)

        if avg_mood >= HAPPY_MOOD_FLOOR:
            spending = data.spending
            total_spent = sum(abs(t.amount) for t in spending)
            if total_spent > HAPPY_SPEND_THRESHOLD:
                findings.append(
                    self._finding(
                        data,
                        InconsistencyType.MOOD_BEHAVIOR_DISCONNECT,
                        severity=0.5,
                        title=f"Happy and spending: ${total_spent:.0f} on a great day",
                        description=(
                            f"Your mood averaged {avg_mood:.1f}/5, a great day. But you spent "
                            f"${total_spent:.2f} across {len(spending)} transactions. "
                            "Euphoric spending?"
                        ),
                        evidence_event_ids=data.mood_ids
                        + [str(t.event_id) for t in data.transactions[:3]],
                        suggested_question=(
                            "Were these purchases planned, or did the good mood drive spending?"
                        ),
                    )
                )

        if avg_mood <= LOW_MOOD_CEILING:
            workouts = [h for h in data.health if h.metric_type == HealthMetricType.WORKOUT]
            if workouts:
                findings.append(
                    self._finding(
                        data,
                        InconsistencyType.MOOD_BEHAVIOR_DISCONNECT,
                        severity=0.4,
                        title="Low mood but you still worked out",
                        description=(
                            f"Mood was {avg_mood:.1f}/5, a rough day. But you logged "
                            f"{len(workouts)} workout(s). Pushing through or masking something?"
                        ),
                        evidence_event_ids=data.mood_ids + [str(w.event_id) for w in workouts],
                        suggested_question=(
                            "Was the workout an attempt to feel better, or were things not "
                            "as bad as the mood score says?"
                        ),
                    )
                )

            event_count = len(data.calendar_events)
            if event_count >= SOCIAL_MIN_EVENTS:
                findings.append(
                    self._finding(
                        data,
                        InconsistencyType.MOOD_BEHAVIOR_DISCONNECT,
                        severity=0.6,
                        title=f"Miserable but social: {event_count} events",
                        description=(
                            f"Your mood was {avg_mood:.1f}/5 but you had {event_count} calendar "
                            "events. Performing happiness for others?"
                        ),
                        evidence_event_ids=data.mood_ids
                        + [str(c.event_id) for c in data.calendar_events[:3]],
                        suggested_question=(
                            f"Were you putting on a face for the {event_count} events, "
                            "or did something happen between them?"
                        ),
                    )
                )

        if len(data.moods) >= MOOD_SWING_MIN_ENTRIES:
            high = max(data.moods, key=lambda m: m.score)
            low = min(data.moods, key=lambda m: m.score)
            swing = high.score - low.score
            if swing >= MOOD_SWING_POINTS:
                findings.append(
                    self._finding(
                        data,
                        InconsistencyType.MOOD_BEHAVIOR_DISCONNECT,
                        severity=0.7,
                        title=f"Emotional rollercoaster: {low.score:g}/5 → {high.score:g}/5",
                        description=(
                            f"Your mood swung {swing:g} points in one day. From {low.score:g}/5 "
                            f"at {format_hm(low.timestamp)} to {high.score:g}/5 at "
                            f"{format_hm(high.timestamp)}. What happened in between?"
                        ),
                        evidence_event_ids=data.mood_ids,
                        suggested_question=(
                            f"What caused the shift from {low.score:g}/5 to {high.score:g}/5?"
                        ),
                    )
                )
        return findings

    def _detect_pattern_breaks(self, data: _Day) -> List[InconsistencyFinding]:
        findings: List[InconsistencyFinding] = []
        day_name = DAY_NAMES[data.day.weekday()]
        today_types = {e.type for e in data.events}

        # Number of past same weekdays each event type showed up on
        weeks_present: dict = defaultdict(int)
        for week in range(1, ROUTINE_LOOKBACK_WEEKS + 1):
            past = data.day - timedelta(weeks=week)
            past_events = self.events.get_events_in_window(day_start(past), day_end(past))
            for event_type in {e.type for e in past_events}:
                weeks_present[event_type] += 1

        for event_type, weeks in weeks_present.items():
            if weeks < ROUTINE_MIN_WEEKS or event_type in today_types:
                continue
            readable = _readable(event_type.value)
            findings.append(
                self._finding(
                    data,
                    InconsistencyType.PATTERN_BREAK,
                    severity=0.4 + weeks / 10,
                    title=f"Broke your {day_name} routine",
                    description=(
                        f'You had "{readable}" events on {weeks} of the last '
                        f"{ROUTINE_LOOKBACK_WEEKS} {day_name}s, but not today. Routine broken."
                    ),
                    suggested_question=f"Why did you skip {readable} this {day_name}?",
                )
            )

        one_week_ago = day_start(data.day - timedelta(days=7))
        workouts = self.health.get_metric_in_window(
            HealthMetricType.WORKOUT,
            day_start(data.day - timedelta(days=14)),
            day_end(data.day),
        )
        earlier = sum(1 for w in workouts if as_utc(w.timestamp) < one_week_ago)
        recent = len(workouts) - earlier
        if earlier >= WORKOUT_DROP_BEFORE and recent <= WORKOUT_DROP_AFTER:
            findings.append(
                self._finding(
                    data,
                    InconsistencyType.PATTERN_BREAK,
                    severity=0.6,
                    title=f"Exercise dropped: {earlier}→{recent} workouts",
                    description=(
                        f"You went from {earlier} workouts two weeks ago to {recent} this "
                        "past week. The decline is significant."
                    ),
                    evidence_event_ids=[str(w.event_id) for w in workouts],
                    suggested_question=(
                        "What made you stop working out? Was it a choice or did something "
                        "get in the way?"
                    ),
                )
            )
        return findings

    def _detect_emotional_spending(self, data: _Day) -> List[InconsistencyFinding]:
        if not data.moods or not data.transactions:
            return []

        avg_mood = mean(m.score for m in data.moods)
        spending = data.spending
        total_spent = sum(abs(t.amount) for t in spending)
        if avg_mood > EMOTIONAL_SPEND_MOOD_CEILING or total_spent < EMOTIONAL_SPEND_MIN_TOTAL:
            return []

        baseline = self._normal_mood_daily_spending(data.day)
        if not baseline:
            return []
        avg_normal = mean(baseline)
        if avg_normal <= 0 or total_spent <= avg_normal * EMOTIONAL_SPEND_RATIO:
            return []

        pct_more = round((total_spent / avg_normal - 1) * 100)
        biggest = max(spending, key=lambda t: abs(t.amount))
        return [
            self._finding(
                data,
                InconsistencyType.SPENDING_MOOD_CORRELATION,
                severity=min(0.5 + pct_more / 200, 0.9),
                title=f"Emotional spending: {pct_more}% above normal",
                description=(
                    f"On a {avg_mood:.1f}/5 mood day, you spent ${total_spent:.2f}, "
                    f"{pct_more}% more than your average ${avg_normal:.2f} on normal-mood "
                    f"days. Biggest: ${abs(biggest.amount):.2f} at {biggest.merchant}."
                ),
                evidence_event_ids=data.mood_ids + [str(t.event_id) for t in spending[:3]],
                suggested_question=(
                    f"Did spending at {biggest.merchant} make you feel better or worse?"
                ),
            )
        ]

    def _normal_mood_daily_spending(self, day: date) -> List[float]:
        """Daily spend totals on normal-mood days of the two weeks before ``day``."""
        first = day - timedelta(days=EMOTIONAL_SPEND_BASELINE_DAYS)
        last = day - timedelta(days=1)
        start, end = day_start(first), day_end(last)
        moods_by_date = group_by_date(self.moods.get_in_window(start, end), lambda m: m.timestamp)
        spent_by_date = group_by_date(
            self.transactions.get_timed_spending(start, end), lambda pair: pair[1]
        )

        totals: List[float] = []
        for current in iter_days(first, last):
            day_mood = mean_or_none(m.score for m in moods_by_date.get(current, []))
            if day_mood is None:
                day_mood = NEUTRAL_MOOD
            if day_mood < NORMAL_MOOD_FLOOR:
                continue
            spent = sum(abs(tx.amount) for tx, _ in spent_by_date.get(current, []))
            if spent > 0:
                totals.append(spent)
        return totals

    def _detect_time_gaps(self, data: _Day) -> List[InconsistencyFinding]:
        if len(data.events) < TIME_GAP_MIN_EVENTS:
            return []

        active_hours = sorted({as_utc(e.timestamp).hour for e in data.events})
        first_hour, last_hour = active_hours[0], active_hours[-1]

        # (first silent hour, length in hours) for each silent run
        gaps: List[tuple[int, int]] = []
        gap_start = None
        for hour in range(first_hour, last_hour + 1):
            if hour not in active_hours:
                if gap_start is None:
                    gap_start = hour
            elif gap_start is not None:
                if hour - gap_start >= TIME_GAP_MIN_HOURS:
                    gaps.append((gap_start, hour - gap_start))
                gap_start = None

        findings: List[InconsistencyFinding] = []
        for start_hour, duration in gaps:
            start_label = _hour_label(start_hour)
            end_label = _hour_label(start_hour + duration)
            findings.append(
                self._finding(
                    data,
                    InconsistencyType.TIME_GAP,
                    severity=min(0.3 + duration / 10, 0.8),
                    title=f"{duration}h silence: {start_label}-{end_label}",
                    description=(
                        f"No recorded activity from {start_label} to {end_label}. {duration} "
                        "hours of silence in the middle of an otherwise active day. "
                        "What were you doing?"
                    ),
                    suggested_question=(
                        f"What happened between {start_label} and {end_label}? "
                        "The record was silent."
                    ),
                )
            )
        return findings

    def _detect_visual_mood_mismatches(self, data: _Day) -> List[InconsistencyFinding]:
        if not data.moods:
            return []
        photos = self.photos.get_in_window(day_start(data.day), day_end(data.day))
        return [
            self._finding(
                data,
                InconsistencyType.VISUAL_MOOD_MISMATCH,
                severity=mismatch.severity,
                title="Your face tells a different story",
                description=mismatch.description,
                evidence_event_ids=[str(mismatch.photo_event_id)],
                suggested_question=(
                    f"The photo shows {mismatch.tone}, but you reported "
                    f"{mismatch.reported_mood:.1f}/5. Which was true?"
                ),
            )
            for mismatch in detect_visual_mood_mismatches(photos, data.moods)
        ]
