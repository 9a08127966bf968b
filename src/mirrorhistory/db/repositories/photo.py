"""
Photo and video repositories.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from mirrorhistory.db.repositories.domain import EventOwnedRepository
from mirrorhistory.models.db import Event, Photo, Video
from mirrorhistory.utils.timeutils import day_end, day_start


class PhotoRepository(EventOwnedRepository[Photo]):
    """Repository for Photo model; analyses are loaded with the photo."""

    def __init__(self, session: Session):
        super().__init__(Photo, session)

    def get_in_window(self, start: datetime, end: datetime) -> List[Photo]:
        stmt = (
            select(Photo)
            .join(Event, Photo.event_id == Event.id)
            .where(Event.timestamp >= start, Event.timestamp <= end)
            .options(selectinload(Photo.analysis))
            .order_by(Event.timestamp.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_first_on_date(self, day: date) -> Optional[Photo]:
        """Earliest photo taken on a UTC calendar date."""
        stmt = (
            select(Photo)
            .join(Event, Photo.event_id == Event.id)
            .where(Event.timestamp >= day_start(day), Event.timestamp <= day_end(day))
            .order_by(Event.timestamp.asc())
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()


class VideoRepository(EventOwnedRepository[Video]):
    """Repository for Video model; frames are loaded with the video."""

    def __init__(self, session: Session):
        super().__init__(Video, session)

    def get_in_window(self, start: datetime, end: datetime) -> List[Video]:
        stmt = (
            select(Video)
            .join(Event, Video.event_id == Event.id)
            .where(Event.timestamp >= start, Event.timestamp <= end)
            .options(selectinload(Video.frames))
            .order_by(Event.timestamp.asc())
        )
        return list(self.session.execute(stmt).scalars().all())
