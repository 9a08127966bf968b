"""Re-do routes: relive a moment or a whole day."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mirrorhistory.api.schemas import MomentSnapshotResponse, RedoDayResponse
from mirrorhistory.db.connection import get_db
from mirrorhistory.redo import SnapshotBuilder

router = APIRouter(prefix="/redo", tags=["redo"])


@router.get("/moment", response_model=MomentSnapshotResponse)
def get_moment(
    ts: datetime = Query(..., description="Moment to reconstruct (ISO 8601)"),
    window: int | None = Query(
        default=None, ge=1, description="Half-width of the window in minutes"
    ),
    session: Session = Depends(get_db),
) -> MomentSnapshotResponse:
    snapshot = SnapshotBuilder(session).get_moment_data(ts, window)
    return MomentSnapshotResponse.model_validate(snapshot)


@router.get("/{day}", response_model=RedoDayResponse)
def get_day(day: date, session: Session = Depends(get_db)) -> RedoDayResponse:
    """Reconstruct a UTC day as 24 hourly slices."""
    return RedoDayResponse.model_validate(
        SnapshotBuilder(session).get_hourly_reconstruction(day)
    )
