"""
Tests for the event store repositories.
"""

import uuid
from datetime import date, timedelta

from sqlalchemy.orm import Session

from conftest import RecordFactory, at
from mirrorhistory.db.repositories import (
    CalendarRepository,
    ConfrontationRepository,
    EventRepository,
    InconsistencyRepository,
    MoodRepository,
    NoteRepository,
    PhotoRepository,
    TransactionRepository,
)
from mirrorhistory.models.db import (
    ConfrontationCategory,
    ConfrontationPeriod,
    EventType,
    InconsistencyType,
)
from mirrorhistory.models.views import (
    ConfrontationFinding,
    DataPoint,
    InconsistencyFinding,
)
from mirrorhistory.utils.timeutils import day_end, day_start

DAY = date(2025, 3, 10)


class TestEventRepository:
    """Tests for EventRepository."""

    def test_window_is_inclusive_and_ascending(
        self, db_session: Session, factory: RecordFactory
    ):
        """Events exactly on the window edges are included, oldest first."""
        late = factory.mood(at(DAY, 13), 3)
        early = factory.mood(at(DAY, 11), 4)
        factory.mood(at(DAY, 15), 2)

        events = EventRepository(db_session).get_events_in_window(at(DAY, 11), at(DAY, 13))

        assert [e.id for e in events] == [early.event_id, late.event_id]

    def test_date_range_is_descending(self, db_session: Session, factory: RecordFactory):
        first = factory.note(at(DAY, 8), "first")
        second = factory.note(at(DAY + timedelta(days=1), 8), "second")
        factory.note(at(DAY + timedelta(days=3), 8), "outside")

        events = EventRepository(db_session).get_events_by_date_range(
            DAY, DAY + timedelta(days=1)
        )

        assert [e.id for e in events] == [second.event_id, first.event_id]

    def test_get_events_by_type(self, db_session: Session, factory: RecordFactory):
        factory.mood(at(DAY, 9), 3)
        factory.note(at(DAY, 10), "hello")

        events = EventRepository(db_session).get_events_by_type(EventType.NOTE)

        assert len(events) == 1
        assert events[0].type == EventType.NOTE

    def test_enrich_loads_domain_record(self, db_session: Session, factory: RecordFactory):
        """Test that enrichment attaches the payload implied by the event type."""
        tx = factory.transaction(at(DAY, 9), -4.5, merchant="Starbucks")
        repo = EventRepository(db_session)

        enriched = repo.get_enriched(tx.event_id)

        assert enriched is not None
        assert enriched.transaction is tx
        assert enriched.mood is None
        assert enriched.summary == "Starbucks -4.50"

    def test_enrich_event_without_payload(self, db_session: Session, factory: RecordFactory):
        event = factory.event(EventType.REMINDER, at(DAY, 9))

        enriched = EventRepository(db_session).enrich(event)

        assert enriched.payload is None

    def test_get_enriched_unknown_id(self, db_session: Session):
        assert EventRepository(db_session).get_enriched(uuid.uuid4()) is None

    def test_record_is_idempotent_by_hash(self, db_session: Session):
        repo = EventRepository(db_session)

        first, created = repo.record(EventType.NOTE, at(DAY), content_hash="abc")
        second, created_again = repo.record(EventType.NOTE, at(DAY), content_hash="abc")

        assert created is True
        assert created_again is False
        assert first.id == second.id
        assert repo.count() == 1

    def test_record_hashes_identity(self, db_session: Session):
        """Test that identifying values are hashed into a dedup key."""
        repo = EventRepository(db_session)

        first, _ = repo.record(
            EventType.MONEY_TRANSACTION, at(DAY), identity=["Starbucks", -4.5, DAY]
        )
        _, created = repo.record(
            EventType.MONEY_TRANSACTION, at(DAY), identity=["Starbucks", -4.5, DAY]
        )

        assert first.content_hash is not None
        assert created is False

    def test_record_without_hash_always_inserts(self, db_session: Session):
        repo = EventRepository(db_session)

        repo.record(EventType.NOTE, at(DAY))
        repo.record(EventType.NOTE, at(DAY))

        assert repo.count() == 2


class TestDomainRepositories:
    """Tests for the per-domain window queries."""

    def test_own_timestamp_window(self, db_session: Session, factory: RecordFactory):
        factory.mood(at(DAY, 9), 3)
        inside = factory.mood(at(DAY, 12), 4)

        moods = MoodRepository(db_session).get_in_window(at(DAY, 11), at(DAY, 13))

        assert moods == [inside]

    def test_event_timestamp_window(self, db_session: Session, factory: RecordFactory):
        """Notes are placed in time by their owning event."""
        inside = factory.note(at(DAY, 12), "inside")
        factory.note(at(DAY, 18), "outside")

        notes = NoteRepository(db_session).get_in_window(at(DAY, 11), at(DAY, 13))

        assert notes == [inside]

    def test_calendar_window_uses_start_time(
        self, db_session: Session, factory: RecordFactory
    ):
        meeting = factory.calendar(at(DAY, 10), at(DAY, 11), "Standup")

        repo = CalendarRepository(db_session)

        assert repo.get_in_window(at(DAY, 9, 30), at(DAY, 10, 30)) == [meeting]
        assert repo.get_in_window(at(DAY, 10, 30), at(DAY, 12)) == []

    def test_spending_excludes_income(self, db_session: Session, factory: RecordFactory):
        spend = factory.transaction(at(DAY, 9), -20.0)
        factory.transaction(at(DAY, 10), 1500.0, merchant="Payroll")

        repo = TransactionRepository(db_session)

        assert repo.get_spending_in_window(day_start(DAY), day_end(DAY)) == [spend]
        timed = repo.get_timed_spending(day_start(DAY), day_end(DAY))
        assert [(tx, ts.hour) for tx, ts in timed] == [(spend, 9)]

    def test_get_by_event(self, db_session: Session, factory: RecordFactory):
        mood = factory.mood(at(DAY, 9), 2)

        assert MoodRepository(db_session).get_by_event(mood.event_id) is mood

    def test_first_photo_on_date(self, db_session: Session, factory: RecordFactory):
        factory.photo(at(DAY, 15), "/photos/late.jpg")
        early = factory.photo(at(DAY, 8), "/photos/early.jpg")

        assert PhotoRepository(db_session).get_first_on_date(DAY) is early
        assert PhotoRepository(db_session).get_first_on_date(DAY + timedelta(days=1)) is None


def _finding(title: str, severity: float) -> ConfrontationFinding:
    return ConfrontationFinding(
        title=title,
        insight="insight",
        severity=severity,
        category=ConfrontationCategory.TREND,
        data_points=[DataPoint("Label", "Value")],
        related_event_ids=["e1"],
    )


class TestConfrontationRepository:
    """Tests for ConfrontationRepository."""

    def test_replace_for_period_swaps_batch(self, db_session: Session):
        repo = ConfrontationRepository(db_session)
        repo.replace_for_period(
            ConfrontationPeriod.WEEKLY, DAY, DAY, [_finding("old", 0.5)]
        )
        repo.replace_for_period(
            ConfrontationPeriod.MONTHLY, DAY, DAY, [_finding("monthly", 0.5)]
        )

        repo.replace_for_period(
            ConfrontationPeriod.WEEKLY, DAY, DAY, [_finding("new", 0.6)]
        )

        weekly = repo.get_for_period(ConfrontationPeriod.WEEKLY)
        assert [c.title for c in weekly] == ["new"]
        assert weekly[0].data_points == [{"label": "Label", "value": "Value"}]
        assert len(repo.get_for_period(ConfrontationPeriod.MONTHLY)) == 1

    def test_get_recent_orders_by_severity(self, db_session: Session):
        repo = ConfrontationRepository(db_session)
        repo.replace_for_period(
            ConfrontationPeriod.WEEKLY,
            DAY,
            DAY,
            [_finding("mild", 0.3), _finding("harsh", 0.9), _finding("medium", 0.6)],
        )

        assert [c.title for c in repo.get_recent(2)] == ["harsh", "medium"]

    def test_acknowledge(self, db_session: Session):
        repo = ConfrontationRepository(db_session)
        [row] = repo.replace_for_period(
            ConfrontationPeriod.WEEKLY, DAY, DAY, [_finding("x", 0.5)]
        )

        assert repo.acknowledge(row.id) is True
        assert repo.acknowledge(row.id) is False
        assert repo.count() == 0


class TestInconsistencyRepository:
    """Tests for InconsistencyRepository."""

    def _finding(self, day: date, severity: float = 0.5) -> InconsistencyFinding:
        return InconsistencyFinding(
            type=InconsistencyType.TIME_GAP,
            severity=severity,
            title="gap",
            description="silence",
            date=day,
        )

    def test_clear_for_date_only_touches_that_day(self, db_session: Session):
        repo = InconsistencyRepository(db_session)
        repo.save_findings([self._finding(DAY), self._finding(DAY + timedelta(days=1))])

        assert repo.clear_for_date(DAY) == 1
        assert repo.get_by_date(DAY) == []
        assert len(repo.get_by_date(DAY + timedelta(days=1))) == 1

    def test_get_recent_and_dismiss(self, db_session: Session):
        repo = InconsistencyRepository(db_session)
        low, high = repo.save_findings([self._finding(DAY, 0.3), self._finding(DAY, 0.8)])

        assert repo.get_recent() == [high, low]
        assert repo.dismiss(low.id) is True
        assert repo.dismiss(low.id) is False
