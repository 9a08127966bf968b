"""Custom exceptions for MirrorHistory."""

from uuid import UUID


class MirrorHistoryError(Exception):
    """Base class for engine errors."""


class EventNotFoundError(MirrorHistoryError):
    """Raised when an operation references an event id that does not exist."""

    def __init__(self, event_id: UUID | str):
        self.event_id = event_id
        super().__init__(f"Event not found: {event_id}")


class InvalidPeriodError(MirrorHistoryError):
    """Raised when a confrontation period is neither weekly nor monthly."""

    def __init__(self, period: str):
        self.period = period
        super().__init__(f"Unknown period {period!r}, expected 'weekly' or 'monthly'")
