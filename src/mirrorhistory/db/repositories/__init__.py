"""
Repository layer for database operations.

Provides a clean API for reading and writing journal data.
"""

from mirrorhistory.db.repositories.base import BaseRepository
from mirrorhistory.db.repositories.calendar import CalendarRepository
from mirrorhistory.db.repositories.confrontation import ConfrontationRepository
from mirrorhistory.db.repositories.domain import EventOwnedRepository
from mirrorhistory.db.repositories.event import EventRepository
from mirrorhistory.db.repositories.health import HealthRepository
from mirrorhistory.db.repositories.inconsistency import InconsistencyRepository
from mirrorhistory.db.repositories.location import LocationRepository
from mirrorhistory.db.repositories.mood import MoodRepository
from mirrorhistory.db.repositories.note import NoteRepository, VoiceMemoRepository
from mirrorhistory.db.repositories.photo import PhotoRepository, VideoRepository
from mirrorhistory.db.repositories.transaction import TransactionRepository

__all__ = [
    "BaseRepository",
    "CalendarRepository",
    "ConfrontationRepository",
    "EventOwnedRepository",
    "EventRepository",
    "HealthRepository",
    "InconsistencyRepository",
    "LocationRepository",
    "MoodRepository",
    "NoteRepository",
    "PhotoRepository",
    "TransactionRepository",
    "VideoRepository",
    "VoiceMemoRepository",
]
