"""
Crossword Router

House word completions and the per-guest puzzle state store.
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from housecup.config import settings
from housecup.database import get_db
from housecup.rate_limit import limiter
from housecup.schemas.crossword import (
    CompletionCreate,
    CompletionResponse,
    CrosswordStatePayload,
    CrosswordStateResponse,
)
from housecup.services import crossword_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/crossword", tags=["crossword"])


@router.post("/completions", response_model=CompletionResponse, status_code=201)
@limiter.limit(settings.WRITE_RATE_LIMIT)
async def create_completion(
    request: Request,  # Required by slowapi
    payload: CompletionCreate,
    db: AsyncSession = Depends(get_db)
):
    return await crossword_service.record_completion(db, payload.house_id, payload.word_index)


@router.get("/state/{guest_id}", response_model=CrosswordStateResponse)
async def get_state(guest_id: int, db: AsyncSession = Depends(get_db)):
    state = await crossword_service.get_or_init_state(db, guest_id)
    return {"success": True, "guest_id": guest_id, "state": state}


@router.put("/state/{guest_id}", response_model=CrosswordStateResponse)
@limiter.limit(settings.WRITE_RATE_LIMIT)
async def put_state(
    request: Request,  # Required by slowapi
    guest_id: int,
    payload: CrosswordStatePayload,
    db: AsyncSession = Depends(get_db)
):
    """Store the guest's puzzle and credit their house for newly solved words."""
    result = await crossword_service.save_state(db, guest_id, payload.model_dump())
    return {
        "success": True,
        "guest_id": guest_id,
        "state": result["state"],
        "new_house_completions": result["new_house_completions"],
    }
