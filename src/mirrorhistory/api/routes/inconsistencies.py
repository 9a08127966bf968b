"""Inconsistency routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from mirrorhistory.api.schemas import InconsistencyResponse, ScanRequest, ScanResponse
from mirrorhistory.db.connection import get_db
from mirrorhistory.inconsistencies import InconsistencyScanner

router = APIRouter(prefix="/inconsistencies", tags=["inconsistencies"])


@router.post("/scan", response_model=ScanResponse)
def scan_inconsistencies(
    payload: ScanRequest, session: Session = Depends(get_db)
) -> ScanResponse:
    """Scan a date range day by day; each day's previous findings are replaced."""
    result = InconsistencyScanner(session).scan(payload.start_date, payload.end_date)
    return ScanResponse.model_validate(result)


@router.get("", response_model=list[InconsistencyResponse])
def list_inconsistencies(
    limit: int | None = Query(default=None, ge=1, le=500),
    session: Session = Depends(get_db),
) -> list[InconsistencyResponse]:
    rows = InconsistencyScanner(session).list(limit)
    return [InconsistencyResponse.model_validate(row) for row in rows]


@router.delete("/{inconsistency_id}", status_code=204)
def dismiss_inconsistency(
    inconsistency_id: UUID, session: Session = Depends(get_db)
) -> None:
    if not InconsistencyScanner(session).dismiss(inconsistency_id):
        raise HTTPException(status_code=404, detail="Inconsistency not found")
