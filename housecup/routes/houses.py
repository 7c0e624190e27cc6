"""
Houses Router

Read-only standings and per-house score/crossword progress.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from housecup.database import get_db
from housecup.schemas.crossword import CrosswordProgressResponse
from housecup.schemas.scoring import ScoreResponse, StandingsResponse
from housecup.services import crossword_service, score_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/houses", tags=["houses"])


@router.get("", response_model=StandingsResponse)
async def get_standings(db: AsyncSession = Depends(get_db)):
    """Houses ordered by score, highest first."""
    return {"success": True, "houses": await score_service.house_standings(db)}


@router.get("/crossword-progress", response_model=CrosswordProgressResponse)
async def get_crossword_progress(db: AsyncSession = Depends(get_db)):
    return {"success": True, "progress": await crossword_service.house_progress(db)}


@router.get("/{house_id}/score", response_model=ScoreResponse)
async def get_house_score(house_id: int, db: AsyncSession = Depends(get_db)):
    score = await score_service.house_score(db, house_id)
    return {"success": True, "entity": "house", "entity_id": house_id, "score": score}
