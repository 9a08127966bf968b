"""
Mood entry repository.
"""

from sqlalchemy.orm import Session

from mirrorhistory.db.repositories.domain import EventOwnedRepository
from mirrorhistory.models.db import MoodEntry


class MoodRepository(EventOwnedRepository[MoodEntry]):
    """Repository for MoodEntry model."""

    time_column = "timestamp"

    def __init__(self, session: Session):
        super().__init__(MoodEntry, session)
