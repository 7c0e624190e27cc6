"""
Awards Router

Append-only point ledger: award, audit log, per-subject history and
cache reconciliation.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from housecup.config import settings
from housecup.database import get_db
from housecup.rate_limit import limiter
from housecup.schemas.scoring import AwardCreate, AwardLogItem, AwardResponse, ReconcileResponse
from housecup.services import ledger_service, score_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/awards", tags=["awards"])


@router.post("", response_model=AwardResponse, status_code=201)
@limiter.limit(settings.WRITE_RATE_LIMIT)
async def create_award(
    request: Request,  # Required by slowapi
    payload: AwardCreate,
    db: AsyncSession = Depends(get_db)
):
    """Give (or take) points from exactly one guest or house."""
    subject = ledger_service.subject_from_ids(payload.guest_id, payload.house_id)
    return await ledger_service.award(db, subject, payload.amount, payload.reason)


@router.get("", response_model=List[AwardLogItem])
async def get_award_log(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: AsyncSession = Depends(get_db)
):
    """Every award, newest first."""
    return [entry.to_dict() for entry in await ledger_service.award_log(db, limit=limit)]


@router.get("/history", response_model=List[AwardResponse])
async def get_history(
    guest_id: Optional[int] = None,
    house_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db)
):
    """Awards targeting one guest or one house, oldest first."""
    subject = ledger_service.subject_from_ids(guest_id, house_id)
    return await ledger_service.history(db, subject)


@router.post("/reconcile", response_model=ReconcileResponse)
@limiter.limit(settings.WRITE_RATE_LIMIT)
async def reconcile(
    request: Request,  # Required by slowapi
    repair: bool = True,
    db: AsyncSession = Depends(get_db)
):
    """Compare cached scores against the ledger, repairing drift by default."""
    drift = await score_service.reconcile_scores(db, repair=repair)
    return {"success": True, "repaired": repair and bool(drift), "drift": [d.to_dict() for d in drift]}
