"""
Event repository.

The events table is the time spine every engine reads through. Besides the
window and range queries, this repository turns an Event into an
EnrichedEvent by loading the one domain record its type implies.
"""

import logging
import uuid
from datetime import date, datetime
from typing import Any, Callable, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from mirrorhistory.db.repositories.base import BaseRepository
from mirrorhistory.db.repositories.calendar import CalendarRepository
from mirrorhistory.db.repositories.domain import EventOwnedRepository
from mirrorhistory.db.repositories.health import HealthRepository
from mirrorhistory.db.repositories.location import LocationRepository
from mirrorhistory.db.repositories.mood import MoodRepository
from mirrorhistory.db.repositories.note import NoteRepository, VoiceMemoRepository
from mirrorhistory.db.repositories.photo import PhotoRepository, VideoRepository
from mirrorhistory.db.repositories.transaction import TransactionRepository
from mirrorhistory.models.db import (
    NOTE_EVENT_TYPES,
    Classification,
    Event,
    EventType,
)
from mirrorhistory.models.views import EnrichedEvent
from mirrorhistory.utils.hashing import calculate_parts_hash
from mirrorhistory.utils.timeutils import range_bounds

logger = logging.getLogger(__name__)

# Which repository holds the payload for each event type
_PAYLOAD_REPOSITORIES: dict[EventType, Callable[[Session], EventOwnedRepository]] = {
    EventType.VOICE_MEMO: VoiceMemoRepository,
    EventType.MONEY_TRANSACTION: TransactionRepository,
    EventType.LOCATION: LocationRepository,
    EventType.CALENDAR_EVENT: CalendarRepository,
    EventType.HEALTH_ENTRY: HealthRepository,
    EventType.MOOD: MoodRepository,
    EventType.PHOTO: PhotoRepository,
    EventType.VIDEO: VideoRepository,
}
_PAYLOAD_REPOSITORIES.update({t: NoteRepository for t in NOTE_EVENT_TYPES})


class EventRepository(BaseRepository[Event]):
    """Repository for Event model."""

    def __init__(self, session: Session):
        super().__init__(Event, session)

    def get_events_in_window(self, start: datetime, end: datetime) -> List[Event]:
        """
        Get events with timestamp in ``[start, end]``.

        Returns:
            Events ordered by timestamp ascending
        """
        stmt = (
            select(Event)
            .where(Event.timestamp >= start, Event.timestamp <= end)
            .order_by(Event.timestamp.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_events_by_date_range(self, start_date: date, end_date: date) -> List[Event]:
        """
        Get events on full UTC days from ``start_date`` through ``end_date``.

        Returns:
            Events ordered by timestamp descending
        """
        start, end = range_bounds(start_date, end_date)
        stmt = (
            select(Event)
            .where(Event.timestamp >= start, Event.timestamp <= end)
            .order_by(Event.timestamp.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_events_by_type(self, event_type: EventType) -> List[Event]:
        """Get every event of one type, most recent first."""
        stmt = (
            select(Event)
            .where(Event.type == event_type)
            .order_by(Event.timestamp.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def find_by_content_hash(self, content_hash: str) -> Optional[Event]:
        stmt = select(Event).where(Event.content_hash == content_hash)
        return self.session.execute(stmt).scalar_one_or_none()

    def enrich(self, event: Event) -> EnrichedEvent:
        """
        Attach the domain record implied by ``event.type``.

        Event types without a domain table (digests, rules, ...) and events
        whose record is missing get an empty payload.
        """
        repository_cls = _PAYLOAD_REPOSITORIES.get(event.type)
        if repository_cls is None:
            return EnrichedEvent(event=event)
        payload = repository_cls(self.session).get_by_event(event.id)
        return EnrichedEvent(event=event, payload=payload)

    def get_enriched(self, event_id: uuid.UUID) -> Optional[EnrichedEvent]:
        event = self.get(event_id)
        if event is None:
            return None
        return self.enrich(event)

    def get_enriched_events_in_window(
        self, start: datetime, end: datetime
    ) -> List[EnrichedEvent]:
        return [self.enrich(event) for event in self.get_events_in_window(start, end)]

    def record(
        self,
        event_type: EventType,
        timestamp: datetime,
        summary: str = "",
        details: Optional[dict[str, Any]] = None,
        content_hash: Optional[str] = None,
        confidence: float = 1.0,
        classification: Classification = Classification.LOCAL_PRIVATE,
        identity: Optional[Iterable[object]] = None,
    ) -> tuple[Event, bool]:
        """
        Insert an event unless one with the same content hash exists.

        Args:
            event_type: Kind of event
            timestamp: When it happened
            summary: One-line description
            details: Free-form detail map
            content_hash: Dedup key; events without one are always inserted
            confidence: Confidence of the source, 0-1
            classification: Privacy classification
            identity: Identifying values hashed into the content hash when no
                explicit hash is given (e.g. merchant, amount, date)

        Returns:
            Tuple of (event, created) where created is False for a duplicate
        """
        if content_hash is None and identity is not None:
            content_hash = calculate_parts_hash([event_type.value, *identity])

        if content_hash:
            existing = self.find_by_content_hash(content_hash)
            if existing is not None:
                logger.debug(f"Skipping duplicate {event_type.value} event {content_hash[:12]}")
                return existing, False

        event = self.create(
            type=event_type,
            timestamp=timestamp,
            summary=summary,
            details=details or {},
            content_hash=content_hash,
            confidence=confidence,
            classification=classification,
        )
        return event, True
