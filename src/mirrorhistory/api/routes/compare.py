"""Before/after comparison route."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mirrorhistory.api.schemas import CompareRequest, ComparisonResponse
from mirrorhistory.comparison import ComparisonEngine
from mirrorhistory.db.connection import get_db

router = APIRouter(prefix="/compare", tags=["compare"])


@router.post("", response_model=ComparisonResponse)
def compare_periods(
    payload: CompareRequest, session: Session = Depends(get_db)
) -> ComparisonResponse:
    result = ComparisonEngine(session).compare(
        payload.period1_start,
        payload.period1_end,
        payload.period2_start,
        payload.period2_end,
    )
    return ComparisonResponse.model_validate(result)
