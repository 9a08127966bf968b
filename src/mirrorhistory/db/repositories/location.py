"""
Location repository.
"""

from sqlalchemy.orm import Session

from mirrorhistory.db.repositories.domain import EventOwnedRepository
from mirrorhistory.models.db import Location


class LocationRepository(EventOwnedRepository[Location]):
    """Repository for Location model."""

    time_column = "timestamp"

    def __init__(self, session: Session):
        super().__init__(Location, session)
