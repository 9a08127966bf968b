"""
Health entry repository.
"""

from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from mirrorhistory.db.repositories.domain import EventOwnedRepository
from mirrorhistory.models.db import HealthEntry, HealthMetricType


class HealthRepository(EventOwnedRepository[HealthEntry]):
    """Repository for HealthEntry model."""

    time_column = "timestamp"

    def __init__(self, session: Session):
        super().__init__(HealthEntry, session)

    def get_metric_in_window(
        self, metric_type: HealthMetricType, start: datetime, end: datetime
    ) -> List[HealthEntry]:
        """
        Get entries of one metric type in ``[start, end]``, ascending.

        Args:
            metric_type: Metric to filter on (e.g. workout)
            start: Inclusive window start
            end: Inclusive window end
        """
        stmt = (
            select(HealthEntry)
            .where(
                HealthEntry.metric_type == metric_type,
                HealthEntry.timestamp >= start,
                HealthEntry.timestamp <= end,
            )
            .order_by(HealthEntry.timestamp.asc())
        )
        return list(self.session.execute(stmt).scalars().all())
