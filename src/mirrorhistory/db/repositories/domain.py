"""
Shared base for repositories of event-owned domain records.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select

from mirrorhistory.db.repositories.base import BaseRepository, ModelType
from mirrorhistory.models.db import Event


class EventOwnedRepository(BaseRepository[ModelType]):
    """
    Repository for a record that belongs to exactly one Event.

    Records that carry their own time field set ``time_column``; the rest are
    placed in time through a join on the owning event's timestamp.
    """

    time_column: Optional[str] = None

    def get_by_event(self, event_id: uuid.UUID) -> Optional[ModelType]:
        """Get the record owned by an event, if any."""
        stmt = select(self.model).where(self.model.event_id == event_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_in_window(self, start: datetime, end: datetime) -> List[ModelType]:
        """
        Get records whose time lies in ``[start, end]``, ascending.

        Args:
            start: Inclusive window start
            end: Inclusive window end

        Returns:
            Records ordered by time
        """
        if self.time_column is not None:
            column = getattr(self.model, self.time_column)
            stmt = (
                select(self.model)
                .where(column >= start, column <= end)
                .order_by(column.asc())
            )
        else:
            stmt = (
                select(self.model)
                .join(Event, self.model.event_id == Event.id)
                .where(Event.timestamp >= start, Event.timestamp <= end)
                .order_by(Event.timestamp.asc())
            )
        return list(self.session.execute(stmt).scalars().all())
