"""
Bill split routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session
from easysplit.db.session import get_db
from easysplit.core.utils import format_breakdown
from easysplit.schemas.split import (
    SplitCreate, SplitResponse, SplitCreatedResponse,
    SplitCalculateRequest, SplitCalculateResponse
)
from easysplit.api.dependencies import lookup_rate_limiter, valid_code
from easysplit.services import split_service

router = APIRouter(prefix="/splits", tags=["splits"])


def _split_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Split not found"
    )


@router.post("", response_model=SplitCreatedResponse)
async def create_split(
    split_data: SplitCreate,
    db: Session = Depends(get_db)
):
    """Save a split and return its share code."""
    code, split = split_service.create_split(db, split_data)
    return {"code": code, "split": split_service.to_response(split)}


@router.post("/calculate", response_model=SplitCalculateResponse)
async def calculate_split(request: SplitCalculateRequest):
    """Recompute per-person totals without saving anything."""
    settlement = split_service.calculate(request)
    return {"totals": settlement.totals, "grand_total": settlement.grand_total}


@router.get(
    "/{code}",
    response_model=SplitResponse,
    dependencies=[Depends(lookup_rate_limiter)]
)
async def get_split(
    code: str = Depends(valid_code),
    db: Session = Depends(get_db)
):
    """Get a split by code."""
    split = split_service.get_split(db, code)
    if not split:
        raise _split_not_found()
    return split_service.to_response(split)


@router.get(
    "/{code}/breakdown",
    response_class=PlainTextResponse,
    dependencies=[Depends(lookup_rate_limiter)]
)
async def get_split_breakdown(
    code: str = Depends(valid_code),
    db: Session = Depends(get_db)
):
    """Plain-text breakdown for pasting into a group chat."""
    split = split_service.get_split(db, code)
    if not split:
        raise _split_not_found()
    response = split_service.to_response(split)
    return format_breakdown(response.currency, response.totals, split_service.grand_total(split))


@router.patch("/{code}", response_model=SplitResponse)
async def update_split(
    split_data: SplitCreate,
    code: str = Depends(valid_code),
    db: Session = Depends(get_db)
):
    """Replace a split in place. Concurrent saves overwrite each other."""
    split = split_service.update_split(db, code, split_data)
    if not split:
        raise _split_not_found()
    return split_service.to_response(split)
