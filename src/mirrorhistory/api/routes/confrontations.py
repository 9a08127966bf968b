"""Confrontation routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from mirrorhistory.api.schemas import (
    ConfrontationGenerateRequest,
    ConfrontationGenerateResponse,
    ConfrontationResponse,
)
from mirrorhistory.confrontations import ConfrontationGenerator
from mirrorhistory.db.connection import get_db

router = APIRouter(prefix="/confrontations", tags=["confrontations"])


@router.post("/generate", response_model=ConfrontationGenerateResponse)
def generate_confrontations(
    payload: ConfrontationGenerateRequest,
    session: Session = Depends(get_db),
) -> ConfrontationGenerateResponse:
    """Regenerate the confrontations for a period, replacing the stored batch."""
    result = ConfrontationGenerator(session).generate(payload.period)
    return ConfrontationGenerateResponse.model_validate(result)


@router.get("", response_model=list[ConfrontationResponse])
def list_confrontations(
    limit: int | None = Query(default=None, ge=1, le=500),
    session: Session = Depends(get_db),
) -> list[ConfrontationResponse]:
    rows = ConfrontationGenerator(session).list(limit)
    return [ConfrontationResponse.model_validate(row) for row in rows]


@router.delete("/{confrontation_id}", status_code=204)
def acknowledge_confrontation(
    confrontation_id: UUID, session: Session = Depends(get_db)
) -> None:
    if not ConfrontationGenerator(session).acknowledge(confrontation_id):
        raise HTTPException(status_code=404, detail="Confrontation not found")
