"""
Pytest configuration and fixtures for MirrorHistory tests.

This module provides shared fixtures for testing database models, repositories,
and the engines built on top of them.
"""

import os

# Keep the module-level engine off the user's data directory
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import json  # noqa: E402
from contextlib import contextmanager  # noqa: E402
from datetime import UTC, date, datetime  # noqa: E402
from typing import Generator, Optional  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from mirrorhistory.db.repositories import EventRepository  # noqa: E402
from mirrorhistory.models.db import (  # noqa: E402
    Base,
    CalendarEvent,
    Event,
    EventType,
    HealthEntry,
    HealthMetricType,
    Location,
    MoneyTransaction,
    MoodEntry,
    Note,
    Photo,
    PhotoAnalysis,
    Video,
    VoiceMemo,
)


def at(day: date, hour: int = 12, minute: int = 0) -> datetime:
    """UTC timestamp on ``day``."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=UTC)


@pytest.fixture(scope="session")
def test_engine():
    """Create a test database engine using SQLite in-memory."""
    from sqlalchemy import JSON, event
    from sqlalchemy.dialects import postgresql

    # Replace JSONB with JSON for SQLite
    @event.listens_for(Base.metadata, "before_create")
    def _set_json_type(target, connection, **kw):
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, postgresql.JSONB):
                    column.type = JSON()

    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={
            "check_same_thread": False
        },  # Allow cross-thread access for TestClient
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """
    Create a new database session for a test.

    Each test gets a fresh session with a transaction that is rolled back
    after the test completes, ensuring test isolation.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = sessionmaker(bind=connection)()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def api_client(db_session: Session):
    """Create a test client for FastAPI with database dependency override."""
    from fastapi.testclient import TestClient

    from mirrorhistory.api.app import app
    from mirrorhistory.db.connection import get_db

    # Override the get_db dependency to use test database
    def override_get_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    # Not used as a context manager, so the lifespan (logging, init_db) is skipped
    client = TestClient(app)
    yield client

    # Clean up
    app.dependency_overrides.clear()


@pytest.fixture
def patched_db_session(db_session: Session):
    """Route ``db_session()`` callers (the CLI) to the test session."""
    from unittest.mock import patch

    @contextmanager
    def _session():
        yield db_session
        db_session.flush()

    with patch("mirrorhistory.db.connection.db_session", _session):
        yield db_session


class RecordFactory:
    """Creates events together with their domain records."""

    def __init__(self, session: Session):
        self.session = session

    def _record(self, event_type: EventType, timestamp: datetime, summary: str, payload):
        event, _ = EventRepository(self.session).record(event_type, timestamp, summary)
        if payload is not None:
            payload.event_id = event.id
            self.session.add(payload)
            self.session.flush()
        return payload if payload is not None else event

    def event(self, event_type: EventType, timestamp: datetime, summary: str = "") -> Event:
        """A bare event without a domain record."""
        return self._record(event_type, timestamp, summary or event_type.value, None)

    def mood(self, timestamp: datetime, score: int, note: str = "") -> MoodEntry:
        return self._record(
            EventType.MOOD,
            timestamp,
            f"Mood {score}/5",
            MoodEntry(score=score, note=note, timestamp=timestamp),
        )

    def transaction(
        self,
        timestamp: datetime,
        amount: float,
        merchant: str = "Corner Shop",
        category: Optional[str] = None,
        on: Optional[date] = None,
    ) -> MoneyTransaction:
        return self._record(
            EventType.MONEY_TRANSACTION,
            timestamp,
            f"{merchant} {amount:.2f}",
            MoneyTransaction(
                date=on or timestamp.date(),
                merchant=merchant,
                amount=amount,
                category=category,
            ),
        )

    def location(
        self,
        timestamp: datetime,
        address: str = "",
        lat: float = 41.0,
        lng: float = 29.0,
    ) -> Location:
        return self._record(
            EventType.LOCATION,
            timestamp,
            address or "Location",
            Location(lat=lat, lng=lng, address=address, timestamp=timestamp),
        )

    def calendar(
        self,
        start: datetime,
        end: datetime,
        title: str = "Meeting",
        location: str = "",
    ) -> CalendarEvent:
        return self._record(
            EventType.CALENDAR_EVENT,
            start,
            title,
            CalendarEvent(title=title, start_time=start, end_time=end, location=location),
        )

    def health(
        self, timestamp: datetime, metric: HealthMetricType, value: float = 1.0
    ) -> HealthEntry:
        return self._record(
            EventType.HEALTH_ENTRY,
            timestamp,
            f"{metric.value} {value:g}",
            HealthEntry(metric_type=metric, value=value, timestamp=timestamp),
        )

    def note(self, timestamp: datetime, content: str) -> Note:
        return self._record(
            EventType.NOTE, timestamp, content[:40], Note(content=content, tags=[])
        )

    def voice_memo(self, timestamp: datetime, transcript: str = "") -> VoiceMemo:
        return self._record(
            EventType.VOICE_MEMO,
            timestamp,
            "Voice memo",
            VoiceMemo(transcript=transcript, duration_seconds=30.0),
        )

    def photo(
        self,
        timestamp: datetime,
        file_path: str = "/photos/img.jpg",
        tone: Optional[str] = None,
        confidence: float = 0.9,
        tags: Optional[list[str]] = None,
        people_count: int = 0,
        mood_indicators: Optional[str] = None,
    ) -> Photo:
        photo = self._record(
            EventType.PHOTO, timestamp, "Photo", Photo(file_path=file_path)
        )
        if tone is not None or tags is not None or mood_indicators is not None:
            if mood_indicators is None:
                mood_indicators = json.dumps({"tone": tone, "confidence": confidence})
            photo.analysis = PhotoAnalysis(
                tags=json.dumps(tags or []),
                mood_indicators=mood_indicators,
                people_count=people_count,
            )
            self.session.flush()
        return photo

    def video(self, timestamp: datetime, file_path: str = "/videos/clip.mp4") -> Video:
        return self._record(
            EventType.VIDEO, timestamp, "Video", Video(file_path=file_path)
        )


@pytest.fixture
def factory(db_session: Session) -> RecordFactory:
    """Factory for events with their domain records."""
    return RecordFactory(db_session)
