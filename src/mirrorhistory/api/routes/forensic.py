"""Forensic routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from mirrorhistory.api.schemas import ForensicContextResponse
from mirrorhistory.db.connection import get_db
from mirrorhistory.exceptions import EventNotFoundError
from mirrorhistory.forensic import ForensicReconstructor

router = APIRouter(prefix="/forensic", tags=["forensic"])


@router.get("/{event_id}", response_model=ForensicContextResponse)
def get_forensic_context(
    event_id: UUID,
    window: int | None = Query(
        default=None, ge=1, description="Half-width of the neighbourhood in minutes"
    ),
    session: Session = Depends(get_db),
) -> ForensicContextResponse:
    """Everything around one event: neighbours, cross-domain state, echoes."""
    try:
        context = ForensicReconstructor(session).get_context(event_id, window)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ForensicContextResponse.from_context(context)
