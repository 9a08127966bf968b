"""
Note and voice memo repositories.
"""

from sqlalchemy.orm import Session

from mirrorhistory.db.repositories.domain import EventOwnedRepository
from mirrorhistory.models.db import Note, VoiceMemo


class NoteRepository(EventOwnedRepository[Note]):
    """Repository for Note model (timed by the owning event)."""

    def __init__(self, session: Session):
        super().__init__(Note, session)


class VoiceMemoRepository(EventOwnedRepository[VoiceMemo]):
    """Repository for VoiceMemo model (timed by the owning event)."""

    def __init__(self, session: Session):
        super().__init__(VoiceMemo, session)
