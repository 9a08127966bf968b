"""
Before/after comparison of two periods.

Gathers the same per-domain metrics for both periods and lists the changes
between them, with a percentage and a direction for each metric.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import List

from sqlalchemy.orm import Session

from mirrorhistory.analytics.stats import mean
from mirrorhistory.db.repositories import (
    CalendarRepository,
    HealthRepository,
    LocationRepository,
    MoodRepository,
    NoteRepository,
    PhotoRepository,
    TransactionRepository,
    VideoRepository,
    VoiceMemoRepository,
)
from mirrorhistory.models.db import HealthMetricType
from mirrorhistory.models.views import (
    CalendarMetrics,
    ComparisonResult,
    HealthMetrics,
    LocationMetrics,
    MerchantTotal,
    MetricChange,
    MoodMetrics,
    NoteMetrics,
    PeriodMetrics,
    PeriodSummary,
    SpendingMetrics,
)
from mirrorhistory.utils.timeutils import range_bounds
from mirrorhistory.visual.metrics import describe_visual_shift, summarize_period

logger = logging.getLogger(__name__)

TOP_MERCHANT_LIMIT = 5
STABLE_CHANGE_PCT = 5


def day_count(start_date: date, end_date: date) -> int:
    """Number of days in an inclusive date range, never less than one."""
    return max(1, (end_date - start_date).days + 1)


def compute_change(domain: str, metric: str, p1: float, p2: float) -> MetricChange:
    """
    Percentage change from ``p1`` to ``p2``.

    When ``p1`` is zero the change is 100% if ``p2`` grew and 0% otherwise.
    Changes of at most 5% either way (after rounding) are "stable".
    """
    if p1 != 0:
        change_pct = (p2 - p1) / p1 * 100
    else:
        change_pct = 100.0 if p2 > 0 else 0.0
    change_pct = round(change_pct, 1)

    if abs(change_pct) <= STABLE_CHANGE_PCT:
        direction = "stable"
    elif change_pct > 0:
        direction = "up"
    else:
        direction = "down"

    return MetricChange(
        domain=domain,
        metric=metric,
        period1_value=p1,
        period2_value=p2,
        change_pct=change_pct,
        direction=direction,
    )


def compute_changes(m1: PeriodMetrics, m2: PeriodMetrics) -> List[MetricChange]:
    """All metric changes between two periods, skipping metrics zero in both."""
    pairs = [
        ("mood", "Average Mood", m1.mood.avg, m2.mood.avg),
        ("mood", "Mood Entries", m1.mood.count, m2.mood.count),
        ("spending", "Total Spending", m1.spending.total, m2.spending.total),
        ("spending", "Daily Average", m1.spending.avg_daily, m2.spending.avg_daily),
        ("health", "Average Steps", m1.health.avg_steps, m2.health.avg_steps),
        ("health", "Average Sleep", m1.health.avg_sleep, m2.health.avg_sleep),
        ("health", "Workouts", m1.health.workout_count, m2.health.workout_count),
        ("calendar", "Calendar Events", m1.calendar.event_count, m2.calendar.event_count),
        ("calendar", "Events Per Day", m1.calendar.avg_per_day, m2.calendar.avg_per_day),
        ("notes", "Notes Written", m1.notes.count, m2.notes.count),
        ("notes", "Voice Memos", m1.notes.voice_count, m2.notes.voice_count),
        (
            "locations",
            "Unique Places",
            m1.locations.unique_places,
            m2.locations.unique_places,
        ),
        ("visual", "Photos", m1.visual.photo_count, m2.visual.photo_count),
        ("visual", "Videos", m1.visual.video_count, m2.visual.video_count),
        (
            "visual",
            "Avg People in Photos",
            m1.visual.avg_people_count,
            m2.visual.avg_people_count,
        ),
    ]
    return [
        compute_change(domain, metric, p1, p2)
        for domain, metric, p1, p2 in pairs
        if not (p1 == 0 and p2 == 0)
    ]


class ComparisonEngine:
    """Compares two date ranges across every domain."""

    def __init__(self, session: Session):
        self.session = session
        self.moods = MoodRepository(session)
        self.transactions = TransactionRepository(session)
        self.health = HealthRepository(session)
        self.calendar = CalendarRepository(session)
        self.notes = NoteRepository(session)
        self.voice_memos = VoiceMemoRepository(session)
        self.locations = LocationRepository(session)
        self.photos = PhotoRepository(session)
        self.videos = VideoRepository(session)

    def compare(
        self,
        p1_start: date,
        p1_end: date,
        p2_start: date,
        p2_end: date,
    ) -> ComparisonResult:
        """
        Compare two periods (inclusive UTC date ranges).

        Returns:
            ComparisonResult with both periods' metrics, the metric changes and,
            when both periods have photos, a narrative of the visual shift
        """
        m1 = self.gather_metrics(p1_start, p1_end)
        m2 = self.gather_metrics(p2_start, p2_end)
        changes = compute_changes(m1, m2)

        narrative = None
        if m1.visual.photo_count > 0 and m2.visual.photo_count > 0:
            narrative = describe_visual_shift(m1.visual, m2.visual)

        logger.info(
            f"Compared {p1_start}..{p1_end} with {p2_start}..{p2_end}: "
            f"{len(changes)} changed metrics"
        )
        return ComparisonResult(
            period1=PeriodSummary(start=p1_start, end=p1_end, metrics=m1),
            period2=PeriodSummary(start=p2_start, end=p2_end, metrics=m2),
            changes=changes,
            narrative=narrative,
        )

    def gather_metrics(self, start_date: date, end_date: date) -> PeriodMetrics:
        """Per-domain metrics for one inclusive date range."""
        start, end = range_bounds(start_date, end_date)
        days = day_count(start_date, end_date)

        scores = [m.score for m in self.moods.get_in_window(start, end)]
        mood = MoodMetrics()
        if scores:
            mood = MoodMetrics(
                avg=mean(scores), min=min(scores), max=max(scores), count=len(scores)
            )

        spending = self.transactions.get_spending_in_window(start, end)
        total_spent = sum(abs(t.amount) for t in spending)
        merchant_totals: dict[str, float] = defaultdict(float)
        for tx in spending:
            merchant_totals[tx.merchant or "Unknown"] += abs(tx.amount)
        top_merchants = sorted(merchant_totals.items(), key=lambda kv: kv[1], reverse=True)

        health = self.health.get_in_window(start, end)
        steps = [h.value for h in health if h.metric_type == HealthMetricType.STEPS]
        sleep = [h.value for h in health if h.metric_type == HealthMetricType.SLEEP_HOURS]
        workouts = sum(1 for h in health if h.metric_type == HealthMetricType.WORKOUT)

        calendar_count = len(self.calendar.get_in_window(start, end))
        addresses = {
            loc.address.lower() for loc in self.locations.get_in_window(start, end) if loc.address
        }

        return PeriodMetrics(
            mood=mood,
            spending=SpendingMetrics(
                total=total_spent,
                avg_daily=total_spent / days,
                top_merchants=[
                    MerchantTotal(name=name, total=total)
                    for name, total in top_merchants[:TOP_MERCHANT_LIMIT]
                ],
            ),
            health=HealthMetrics(
                avg_steps=mean(steps),
                avg_sleep=mean(sleep),
                workout_count=workouts,
            ),
            calendar=CalendarMetrics(
                event_count=calendar_count,
                avg_per_day=calendar_count / days,
            ),
            notes=NoteMetrics(
                count=len(self.notes.get_in_window(start, end)),
                voice_count=len(self.voice_memos.get_in_window(start, end)),
            ),
            locations=LocationMetrics(unique_places=len(addresses)),
            visual=summarize_period(
                self.photos.get_in_window(start, end),
                self.videos.get_in_window(start, end),
            ),
        )
