"""
Guests Router

Roster listing, registration at the door and personal scores.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from housecup.config import settings
from housecup.database import get_db
from housecup.rate_limit import limiter
from housecup.schemas.scoring import GuestRegisterRequest, GuestResponse, ScoreResponse
from housecup.services import guest_service, score_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/guests", tags=["guests"])


@router.get("", response_model=List[GuestResponse])
async def list_guests(active: Optional[bool] = None, db: AsyncSession = Depends(get_db)):
    return await guest_service.list_guests(db, active=active)


@router.post("/{guest_id}/register", response_model=GuestResponse)
@limiter.limit(settings.WRITE_RATE_LIMIT)
async def register_guest(
    request: Request,  # Required by slowapi
    guest_id: int,
    payload: Optional[GuestRegisterRequest] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    Activate a pre-populated guest.

    A guest seen before (unregistered later) is re-registered instead, and
    keeps their ledger points.
    """
    payload = payload or GuestRegisterRequest()
    guest = await guest_service.get_guest(db, guest_id)
    if guest.registered_at is not None and not guest.is_active:
        return await guest_service.reregister_guest(
            db, guest_id, house_id=payload.house_id, character=payload.character
        )
    return await guest_service.register_guest(
        db, guest_id, house_id=payload.house_id, character=payload.character
    )


@router.post("/{guest_id}/unregister", response_model=GuestResponse)
@limiter.limit(settings.WRITE_RATE_LIMIT)
async def unregister_guest(
    request: Request,  # Required by slowapi
    guest_id: int,
    db: AsyncSession = Depends(get_db)
):
    return await guest_service.unregister_guest(db, guest_id)


@router.get("/{guest_id}/score", response_model=ScoreResponse)
async def get_guest_score(guest_id: int, db: AsyncSession = Depends(get_db)):
    score = await score_service.guest_score(db, guest_id)
    return {"success": True, "entity": "guest", "entity_id": guest_id, "score": score}
