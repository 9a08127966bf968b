"""Repository for detected inconsistencies."""

import uuid
from datetime import date
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from mirrorhistory.db.repositories.base import BaseRepository
from mirrorhistory.models.db import Inconsistency
from mirrorhistory.models.views import InconsistencyFinding
from mirrorhistory.utils.timeutils import utc_now


class InconsistencyRepository(BaseRepository[Inconsistency]):
    """Repository for managing inconsistency findings."""

    def __init__(self, session: Session):
        super().__init__(Inconsistency, session)

    def get_recent(self, limit: int = 50) -> List[Inconsistency]:
        stmt = (
            select(Inconsistency)
            .order_by(Inconsistency.severity.desc(), Inconsistency.detected_at.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_by_date(self, day: date) -> List[Inconsistency]:
        stmt = (
            select(Inconsistency)
            .where(Inconsistency.date == day)
            .order_by(Inconsistency.severity.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def clear_for_date(self, day: date) -> int:
        stmt = delete(Inconsistency).where(Inconsistency.date == day)
        result = self.session.execute(stmt)
        return result.rowcount or 0

    def save_findings(self, findings: List[InconsistencyFinding]) -> List[Inconsistency]:
        detected_at = utc_now()
        rows = [
            Inconsistency(
                type=finding.type,
                severity=finding.severity,
                title=finding.title,
                description=finding.description,
                evidence_event_ids=list(finding.evidence_event_ids),
                suggested_question=finding.suggested_question,
                date=finding.date,
                detected_at=detected_at,
            )
            for finding in findings
        ]
        self.session.add_all(rows)
        self.session.flush()
        return rows

    def dismiss(self, inconsistency_id: uuid.UUID) -> bool:
        """Remove a dismissed finding. Returns whether it existed."""
        return self.delete(inconsistency_id)
