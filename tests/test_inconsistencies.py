"""
Tests for the inconsistency scanner.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy.orm import Session

from conftest import RecordFactory, at
from mirrorhistory.db.repositories import InconsistencyRepository
from mirrorhistory.inconsistencies import InconsistencyScanner
from mirrorhistory.models.db import EventType, HealthMetricType, InconsistencyType

# A Wednesday
DAY = date(2025, 6, 11)


def of_type(findings, kind: InconsistencyType):
    return [f for f in findings if f.type == kind]


def days_ago(n: int) -> date:
    return DAY - timedelta(days=n)


class TestLocationMismatch:
    """Tests for calendar location vs recorded location."""

    def test_elsewhere_during_event(self, db_session: Session, factory: RecordFactory):
        cal = factory.calendar(at(DAY, 10), at(DAY, 11), "Standup", location="Office Tower")
        loc = factory.location(at(DAY, 10, 30), "Beach Club")

        findings = of_type(
            InconsistencyScanner(db_session).scan_day(DAY),
            InconsistencyType.LOCATION_MISMATCH,
        )

        assert len(findings) == 1
        finding = findings[0]
        assert finding.title == "You weren't where you said you'd be"
        assert finding.severity == 0.7
        assert finding.evidence_event_ids == [str(cal.event_id), str(loc.event_id)]
        assert finding.suggested_question == (
            "Why were you at Beach Club instead of Office Tower?"
        )

    def test_partial_match_either_way(self, db_session: Session, factory: RecordFactory):
        factory.calendar(at(DAY, 10), at(DAY, 11), "Standup", location="Office Tower")
        factory.location(at(DAY, 10, 30), "office")
        factory.calendar(at(DAY, 14), at(DAY, 15), "Lunch", location="Cafe")
        factory.location(at(DAY, 14, 30), "Cafe Nero, High Street")

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.LOCATION_MISMATCH) == []

    def test_no_location_during_event(self, db_session: Session, factory: RecordFactory):
        factory.calendar(at(DAY, 10), at(DAY, 11), "Standup", location="Office Tower")
        factory.location(at(DAY, 12), "Beach Club")

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.LOCATION_MISMATCH) == []

    def test_empty_address_counts_as_match(
        self, db_session: Session, factory: RecordFactory
    ):
        factory.calendar(at(DAY, 10), at(DAY, 11), "Standup", location="Office Tower")
        factory.location(at(DAY, 10, 30), "")

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.LOCATION_MISMATCH) == []


class TestScheduleConflict:
    """Tests for overlapping calendar events."""

    def test_overlap(self, db_session: Session, factory: RecordFactory):
        factory.calendar(at(DAY, 9), at(DAY, 10), "Design review")
        factory.calendar(at(DAY, 9, 30), at(DAY, 10, 30), "1:1")

        [finding] = of_type(
            InconsistencyScanner(db_session).scan_day(DAY),
            InconsistencyType.SCHEDULE_CONFLICT,
        )

        assert finding.title == "Double-booked: 30min overlap"
        assert finding.severity == pytest.approx(0.75)
        assert finding.suggested_question == (
            'Which one did you actually attend, "Design review" or "1:1"?'
        )

    def test_severity_capped(self, db_session: Session, factory: RecordFactory):
        factory.calendar(at(DAY, 9), at(DAY, 17), "Offsite")
        factory.calendar(at(DAY, 9), at(DAY, 17), "Conference")

        [finding] = of_type(
            InconsistencyScanner(db_session).scan_day(DAY),
            InconsistencyType.SCHEDULE_CONFLICT,
        )

        assert finding.severity == 0.9

    def test_short_overlap_ignored(self, db_session: Session, factory: RecordFactory):
        factory.calendar(at(DAY, 9), at(DAY, 10, 3), "Design review")
        factory.calendar(at(DAY, 10), at(DAY, 11), "1:1")
        factory.calendar(at(DAY, 11), at(DAY, 12), "Lunch")

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.SCHEDULE_CONFLICT) == []


class TestMoodBehaviorDisconnect:
    """Tests for mood that contradicts behaviour."""

    def titles(self, session: Session) -> list[str]:
        findings = InconsistencyScanner(session).scan_day(DAY)
        return [
            f.title for f in of_type(findings, InconsistencyType.MOOD_BEHAVIOR_DISCONNECT)
        ]

    def test_happy_and_spending(self, db_session: Session, factory: RecordFactory):
        factory.mood(at(DAY, 9), 5)
        factory.transaction(at(DAY, 12), -60.0)
        factory.transaction(at(DAY, 15), -50.0)
        factory.transaction(at(DAY, 16), 200.0, merchant="Refund")

        assert self.titles(db_session) == ["Happy and spending: $110 on a great day"]

    def test_happy_modest_spending(self, db_session: Session, factory: RecordFactory):
        factory.mood(at(DAY, 9), 5)
        factory.transaction(at(DAY, 12), -100.0)

        assert self.titles(db_session) == []

    def test_low_mood_workout(self, db_session: Session, factory: RecordFactory):
        factory.mood(at(DAY, 9), 2)
        factory.health(at(DAY, 7), HealthMetricType.WORKOUT)

        assert self.titles(db_session) == ["Low mood but you still worked out"]

    def test_low_mood_social(self, db_session: Session, factory: RecordFactory):
        factory.mood(at(DAY, 9), 1)
        for hour in (10, 13, 18):
            factory.calendar(at(DAY, hour), at(DAY, hour, 45), f"Catch-up {hour}")

        assert self.titles(db_session) == ["Miserable but social: 3 events"]

    def test_mood_swing(self, db_session: Session, factory: RecordFactory):
        factory.mood(at(DAY, 8), 1)
        factory.mood(at(DAY, 12), 3)
        factory.mood(at(DAY, 20), 5)

        [finding] = of_type(
            InconsistencyScanner(db_session).scan_day(DAY),
            InconsistencyType.MOOD_BEHAVIOR_DISCONNECT,
        )

        assert finding.title == "Emotional rollercoaster: 1/5 → 5/5"
        assert "From 1/5 at 08:00 to 5/5 at 20:00" in finding.description
        assert finding.severity == 0.7
        assert len(finding.evidence_event_ids) == 3

    def test_swing_needs_three_entries(self, db_session: Session, factory: RecordFactory):
        factory.mood(at(DAY, 8), 1)
        factory.mood(at(DAY, 20), 5)

        assert self.titles(db_session) == []


class TestPatternBreak:
    """Tests for broken weekly routines."""

    def test_routine_skipped(self, db_session: Session, factory: RecordFactory):
        for weeks in (1, 2, 3):
            factory.note(at(DAY - timedelta(weeks=weeks), 7), "Morning pages")

        [finding] = of_type(
            InconsistencyScanner(db_session).scan_day(DAY),
            InconsistencyType.PATTERN_BREAK,
        )

        assert finding.title == "Broke your Wednesday routine"
        assert finding.severity == pytest.approx(0.7)
        assert 'had "note" events on 3 of the last 4 Wednesdays' in finding.description
        assert finding.suggested_question == "Why did you skip note this Wednesday?"

    def test_counts_weeks_not_events(self, db_session: Session, factory: RecordFactory):
        for hour in (7, 9, 11):
            factory.note(at(DAY - timedelta(weeks=1), hour), "Busy Wednesday")
        factory.note(at(DAY - timedelta(weeks=2), 7), "Quiet Wednesday")

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.PATTERN_BREAK) == []

    def test_readable_type_name(self, db_session: Session, factory: RecordFactory):
        for weeks in (1, 2, 3, 4):
            factory.calendar(
                at(DAY - timedelta(weeks=weeks), 18), at(DAY - timedelta(weeks=weeks), 19)
            )

        [finding] = of_type(
            InconsistencyScanner(db_session).scan_day(DAY),
            InconsistencyType.PATTERN_BREAK,
        )

        assert "calendar event" in finding.suggested_question
        assert finding.severity == pytest.approx(0.8)

    def test_routine_kept(self, db_session: Session, factory: RecordFactory):
        for weeks in (0, 1, 2, 3):
            factory.note(at(DAY - timedelta(weeks=weeks), 7), "Morning pages")

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.PATTERN_BREAK) == []

    def test_workout_drop(self, db_session: Session, factory: RecordFactory):
        for n in (13, 12, 10):
            factory.health(at(days_ago(n), 7), HealthMetricType.WORKOUT)
        factory.health(at(days_ago(3), 7), HealthMetricType.WORKOUT)

        [finding] = of_type(
            InconsistencyScanner(db_session).scan_day(DAY),
            InconsistencyType.PATTERN_BREAK,
        )

        assert finding.title == "Exercise dropped: 3→1 workouts"
        assert finding.severity == 0.6
        assert len(finding.evidence_event_ids) == 4

    def test_workouts_kept_up(self, db_session: Session, factory: RecordFactory):
        for n in (13, 12, 10, 5, 3):
            factory.health(at(days_ago(n), 7), HealthMetricType.WORKOUT)

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.PATTERN_BREAK) == []


class TestEmotionalSpending:
    """Tests for spending on low-mood days against the normal-mood baseline."""

    def seed_baseline(self, factory: RecordFactory) -> None:
        # Normal mood: counted
        factory.mood(at(days_ago(5), 9), 4)
        factory.transaction(at(days_ago(5), 12), -20.0)
        # No mood recorded counts as neutral: counted
        factory.transaction(at(days_ago(4), 12), -30.0)
        # Low mood: excluded
        factory.mood(at(days_ago(3), 9), 1)
        factory.transaction(at(days_ago(3), 12), -500.0)
        # Outside the two weeks: excluded
        factory.transaction(at(days_ago(15), 12), -900.0)

    def test_above_baseline(self, db_session: Session, factory: RecordFactory):
        self.seed_baseline(factory)
        factory.mood(at(DAY, 9), 2)
        factory.transaction(at(DAY, 19), -45.0, merchant="Night Market")
        factory.transaction(at(DAY, 20), -15.0)

        [finding] = of_type(
            InconsistencyScanner(db_session).scan_day(DAY),
            InconsistencyType.SPENDING_MOOD_CORRELATION,
        )

        assert finding.title == "Emotional spending: 140% above normal"
        assert "your average $25.00 on normal-mood days" in finding.description
        assert "Biggest: $45.00 at Night Market." in finding.description
        assert finding.severity == 0.9
        assert finding.suggested_question == (
            "Did spending at Night Market make you feel better or worse?"
        )

    def test_within_baseline(self, db_session: Session, factory: RecordFactory):
        self.seed_baseline(factory)
        factory.mood(at(DAY, 9), 2)
        factory.transaction(at(DAY, 19), -35.0)

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.SPENDING_MOOD_CORRELATION) == []

    def test_no_baseline(self, db_session: Session, factory: RecordFactory):
        factory.mood(at(DAY, 9), 2)
        factory.transaction(at(DAY, 19), -300.0)

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.SPENDING_MOOD_CORRELATION) == []

    def test_good_mood_not_emotional(self, db_session: Session, factory: RecordFactory):
        self.seed_baseline(factory)
        factory.mood(at(DAY, 9), 3)
        factory.transaction(at(DAY, 19), -90.0)

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.SPENDING_MOOD_CORRELATION) == []


class TestTimeGaps:
    """Tests for silent stretches within an active day."""

    def test_gap(self, db_session: Session, factory: RecordFactory):
        for hour in (8, 9, 13, 14):
            factory.event(EventType.NOTE, at(DAY, hour))

        [finding] = of_type(
            InconsistencyScanner(db_session).scan_day(DAY),
            InconsistencyType.TIME_GAP,
        )

        assert finding.title == "3h silence: 10:00-13:00"
        assert finding.severity == pytest.approx(0.6)
        assert finding.suggested_question.startswith("What happened between 10:00 and 13:00?")

    def test_severity_capped(self, db_session: Session, factory: RecordFactory):
        for hour in (0, 1, 23):
            factory.event(EventType.NOTE, at(DAY, hour))

        [finding] = of_type(
            InconsistencyScanner(db_session).scan_day(DAY),
            InconsistencyType.TIME_GAP,
        )

        assert finding.title == "21h silence: 02:00-23:00"
        assert finding.severity == 0.8

    def test_one_hour_gaps_ignored(self, db_session: Session, factory: RecordFactory):
        for hour in (8, 10, 12):
            factory.event(EventType.NOTE, at(DAY, hour))

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.TIME_GAP) == []

    def test_needs_three_events(self, db_session: Session, factory: RecordFactory):
        factory.event(EventType.NOTE, at(DAY, 6))
        factory.event(EventType.NOTE, at(DAY, 22))

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.TIME_GAP) == []


class TestVisualMismatch:
    """Tests for photos contradicting the reported mood."""

    def test_joyful_face_on_bad_day(self, db_session: Session, factory: RecordFactory):
        photo = factory.photo(at(DAY, 15), tone="joyful", confidence=0.9)
        factory.mood(at(DAY, 20), 1)

        [finding] = of_type(
            InconsistencyScanner(db_session).scan_day(DAY),
            InconsistencyType.VISUAL_MOOD_MISMATCH,
        )

        assert finding.title == "Your face tells a different story"
        assert finding.evidence_event_ids == [str(photo.event_id)]
        assert finding.suggested_question == (
            "The photo shows joyful, but you reported 1.0/5. Which was true?"
        )

    def test_photo_from_other_day(self, db_session: Session, factory: RecordFactory):
        factory.photo(at(days_ago(1), 15), tone="joyful", confidence=0.9)
        factory.mood(at(DAY, 20), 1)

        findings = InconsistencyScanner(db_session).scan_day(DAY)

        assert of_type(findings, InconsistencyType.VISUAL_MOOD_MISMATCH) == []


class TestScan:
    """Tests for scanning ranges and managing stored findings."""

    def seed(self, factory: RecordFactory) -> None:
        factory.calendar(at(DAY, 9), at(DAY, 10), "Design review")
        factory.calendar(at(DAY, 9, 30), at(DAY, 10, 30), "1:1")
        for hour in (8, 12, 16):
            factory.event(EventType.NOTE, at(days_ago(1), hour))

    def test_scan_stores_findings(self, db_session: Session, factory: RecordFactory):
        self.seed(factory)

        result = InconsistencyScanner(db_session).scan(days_ago(1), DAY)

        assert result.scanned_days == 2
        assert {f.type for f in result.found} == {
            InconsistencyType.SCHEDULE_CONFLICT,
            InconsistencyType.TIME_GAP,
        }
        assert all(f.id is not None for f in result.found)
        repo = InconsistencyRepository(db_session)
        assert [f.type for f in repo.get_by_date(DAY)] == [InconsistencyType.SCHEDULE_CONFLICT]

    def test_rescan_is_idempotent(self, db_session: Session, factory: RecordFactory):
        self.seed(factory)
        scanner = InconsistencyScanner(db_session)

        first = scanner.scan(days_ago(1), DAY)
        second = scanner.scan(days_ago(1), DAY)

        assert len(second.found) == len(first.found)
        assert InconsistencyRepository(db_session).count() == len(first.found)

    def test_rescan_only_clears_scanned_days(
        self, db_session: Session, factory: RecordFactory
    ):
        self.seed(factory)
        scanner = InconsistencyScanner(db_session)
        scanner.scan(days_ago(1), DAY)

        scanner.scan(DAY, DAY)

        assert InconsistencyRepository(db_session).get_by_date(days_ago(1))

    def test_empty_range_day(self, db_session: Session):
        result = InconsistencyScanner(db_session).scan(DAY, DAY)

        assert result.scanned_days == 1
        assert result.found == []

    def test_list_and_dismiss(self, db_session: Session, factory: RecordFactory):
        self.seed(factory)
        scanner = InconsistencyScanner(db_session)
        scanner.scan(days_ago(1), DAY)

        listed = scanner.list()
        assert listed[0].type == InconsistencyType.SCHEDULE_CONFLICT
        assert len(scanner.list(limit=1)) == 1

        assert scanner.dismiss(listed[0].id) is True
        assert scanner.dismiss(listed[0].id) is False
        assert {f.type for f in scanner.list()} == {InconsistencyType.TIME_GAP}
        assert len(scanner.list()) == 2
