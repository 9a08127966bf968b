"""
Calendar event repository.
"""

from sqlalchemy.orm import Session

from mirrorhistory.db.repositories.domain import EventOwnedRepository
from mirrorhistory.models.db import CalendarEvent


class CalendarRepository(EventOwnedRepository[CalendarEvent]):
    """Repository for CalendarEvent model.

    A calendar event is in a window when it starts inside it.
    """

    time_column = "start_time"

    def __init__(self, session: Session):
        super().__init__(CalendarEvent, session)
