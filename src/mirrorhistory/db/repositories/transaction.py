"""
Money transaction repository.
"""

from datetime import datetime
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from mirrorhistory.db.repositories.domain import EventOwnedRepository
from mirrorhistory.models.db import Event, MoneyTransaction


class TransactionRepository(EventOwnedRepository[MoneyTransaction]):
    """Repository for MoneyTransaction model (timed by the owning event)."""

    def __init__(self, session: Session):
        super().__init__(MoneyTransaction, session)

    def get_spending_in_window(
        self, start: datetime, end: datetime
    ) -> List[MoneyTransaction]:
        """Transactions with a negative amount (money going out) in the window."""
        return [t for t in self.get_in_window(start, end) if t.amount < 0]

    def get_timed_spending(
        self, start: datetime, end: datetime
    ) -> List[Tuple[MoneyTransaction, datetime]]:
        """Spending in the window paired with the owning event's timestamp."""
        stmt = (
            select(MoneyTransaction, Event.timestamp)
            .join(Event, MoneyTransaction.event_id == Event.id)
            .where(
                Event.timestamp >= start,
                Event.timestamp <= end,
                MoneyTransaction.amount < 0,
            )
            .order_by(Event.timestamp.asc())
        )
        return [(tx, timestamp) for tx, timestamp in self.session.execute(stmt).all()]
