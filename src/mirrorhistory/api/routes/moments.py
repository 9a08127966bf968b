"""Significant moment routes."""

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from mirrorhistory.api.schemas import DetectedMomentResponse
from mirrorhistory.db.connection import get_db
from mirrorhistory.moments import MomentDetector
from mirrorhistory.utils.timeutils import utc_today

router = APIRouter(prefix="/moments", tags=["moments"])


@router.get("", response_model=list[DetectedMomentResponse])
def list_moments(
    start_date: date | None = Query(default=None, description="First day (UTC)"),
    end_date: date | None = Query(default=None, description="Last day (UTC)"),
    session: Session = Depends(get_db),
) -> list[DetectedMomentResponse]:
    """Detected moments in a date range (defaults to the last 7 days)."""
    if end_date is None:
        end_date = utc_today()
    if start_date is None:
        start_date = end_date - timedelta(days=7)
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date is before start_date")

    moments = MomentDetector(session).detect(start_date, end_date)
    return [DetectedMomentResponse.model_validate(m) for m in moments]


@router.get("/weekly", response_model=list[DetectedMomentResponse])
def weekly_highlights(session: Session = Depends(get_db)) -> list[DetectedMomentResponse]:
    moments = MomentDetector(session).weekly_highlights()
    return [DetectedMomentResponse.model_validate(m) for m in moments]
