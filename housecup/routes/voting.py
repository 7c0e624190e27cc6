"""
Voting Router

Session control, ballot casting and ranked-choice results.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from housecup.config import settings
from housecup.database import get_db
from housecup.rate_limit import limiter
from housecup.schemas.voting import BallotCreate, BallotResponse, TallyResponse, VotingStatusResponse
from housecup.services import ballot_service, tally_engine
from housecup.state_machines.voting_session import VotingSession

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/voting", tags=["voting"])


def get_voting_session(db: AsyncSession = Depends(get_db)) -> VotingSession:
    return VotingSession(db)


async def _status_payload(voting: VotingSession) -> dict:
    snapshot = await voting.status()
    stats = await ballot_service.voting_stats(voting.db, voting)
    return {
        "success": True,
        "state": snapshot.state.value,
        "is_open": snapshot.is_open,
        "round_number": snapshot.round_number,
        "opened_at": snapshot.opened_at,
        "closed_at": snapshot.closed_at,
        "ballots_cast": stats["ballots_cast"],
        "active_guests": stats["active_guests"],
    }


@router.get("/status", response_model=VotingStatusResponse)
async def get_status(voting: VotingSession = Depends(get_voting_session)):
    return await _status_payload(voting)


@router.post("/open", response_model=VotingStatusResponse)
@limiter.limit(settings.WRITE_RATE_LIMIT)
async def open_voting(
    request: Request,  # Required by slowapi
    voting: VotingSession = Depends(get_voting_session)
):
    await voting.open()
    return await _status_payload(voting)


@router.post("/close", response_model=VotingStatusResponse)
@limiter.limit(settings.WRITE_RATE_LIMIT)
async def close_voting(
    request: Request,  # Required by slowapi
    voting: VotingSession = Depends(get_voting_session)
):
    await voting.close()
    return await _status_payload(voting)


@router.post("/ballots", response_model=BallotResponse, status_code=201)
@limiter.limit(settings.WRITE_RATE_LIMIT)
async def cast_ballot(
    request: Request,  # Required by slowapi
    payload: BallotCreate,
    voting: VotingSession = Depends(get_voting_session)
):
    return await ballot_service.cast(
        voting.db,
        voting,
        payload.voter_id,
        payload.first_choice_id,
        payload.second_choice_id,
        payload.third_choice_id,
    )


@router.get("/results", response_model=TallyResponse)
async def get_results(
    round_number: Optional[int] = Query(None, ge=1),
    voting: VotingSession = Depends(get_voting_session)
):
    """Ranked-choice result of the latest closed round (or the one given)."""
    result = await tally_engine.tally(voting.db, voting, round_number=round_number)
    payload = result.to_dict()
    payload["success"] = True
    return payload
