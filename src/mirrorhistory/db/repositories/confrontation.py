"""Repository for stored confrontations."""

import uuid
from datetime import date, datetime
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from mirrorhistory.db.repositories.base import BaseRepository
from mirrorhistory.models.db import Confrontation, ConfrontationPeriod
from mirrorhistory.models.views import ConfrontationFinding
from mirrorhistory.utils.timeutils import utc_now


class ConfrontationRepository(BaseRepository[Confrontation]):
    """Repository for managing generated confrontations."""

    def __init__(self, session: Session):
        super().__init__(Confrontation, session)

    def get_recent(self, limit: int = 20) -> List[Confrontation]:
        stmt = (
            select(Confrontation)
            .order_by(Confrontation.severity.desc(), Confrontation.generated_at.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_for_period(self, period: ConfrontationPeriod) -> List[Confrontation]:
        stmt = (
            select(Confrontation)
            .where(Confrontation.period == period)
            .order_by(Confrontation.severity.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def replace_for_period(
        self,
        period: ConfrontationPeriod,
        period_start: date,
        period_end: date,
        findings: List[ConfrontationFinding],
        generated_at: datetime | None = None,
    ) -> List[Confrontation]:
        """
        Swap the stored batch for ``period`` with ``findings``.

        The delete and the inserts are flushed in the caller's transaction;
        nothing is visible to other sessions until the caller commits.
        """
        self.clear_for_period(period)
        generated_at = generated_at or utc_now()
        rows = [
            Confrontation(
                period=period,
                period_start=period_start,
                period_end=period_end,
                title=finding.title,
                insight=finding.insight,
                severity=finding.severity,
                data_points=[point.to_dict() for point in finding.data_points],
                related_event_ids=list(finding.related_event_ids),
                category=finding.category,
                generated_at=generated_at,
            )
            for finding in findings
        ]
        self.session.add_all(rows)
        self.session.flush()
        return rows

    def clear_for_period(self, period: ConfrontationPeriod) -> int:
        stmt = delete(Confrontation).where(Confrontation.period == period)
        result = self.session.execute(stmt)
        return result.rowcount or 0

    def acknowledge(self, confrontation_id: uuid.UUID) -> bool:
        """Remove an acknowledged confrontation. Returns whether it existed."""
        return self.delete(confrontation_id)
