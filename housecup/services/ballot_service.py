"""
Ballot Store Service

One immutable ranked-choice ballot per voter per voting round.

Concurrency:
- The open-session check and the insert are ONE statement:
  INSERT INTO votes (...) SELECT ... FROM voting_status WHERE id = 1 AND is_open
  so a ballot racing a close is either fully accepted under OPEN or rejected
- Per-voter uniqueness is the UNIQUE (voter_id, round_number) constraint;
  the losing racer's IntegrityError is translated to DuplicateBallot
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Integer, func, insert, literal, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from housecup.exceptions import (
    ConstraintViolation,
    DuplicateBallot,
    DuplicateChoice,
    SelfVote,
    SessionClosed,
    UnknownGuest,
    classify_integrity_error,
)
from housecup.orm.house import Guest
from housecup.orm.voting import Vote, VotingStatus
from housecup.state_machines.voting_session import VotingSession

logger = logging.getLogger(__name__)


def validate_choices(voter_id: int, first_id: int, second_id: int, third_id: int) -> None:
    """Raise SelfVote / DuplicateChoice for a malformed ballot."""
    choices = (first_id, second_id, third_id)
    if voter_id in choices:
        raise SelfVote(f"Guest {voter_id} cannot vote for themselves")
    if len(set(choices)) != len(choices):
        raise DuplicateChoice("First, second and third choices must all be different")


async def _require_active_guests(db: AsyncSession, guest_ids) -> None:
    wanted = set(guest_ids)
    result = await db.execute(
        select(Guest.id).where(Guest.id.in_(wanted), Guest.is_active.is_(True))
    )
    found = set(result.scalars().all())
    missing = sorted(wanted - found)
    if missing:
        raise UnknownGuest(
            f"Unknown or unregistered guest(s): {', '.join(str(m) for m in missing)}",
            details={"guest_ids": missing}
        )


async def cast(
    db: AsyncSession,
    voting: VotingSession,
    voter_id: int,
    first_id: int,
    second_id: int,
    third_id: int
) -> Vote:
    """
    Cast a ranked ballot in the current round.

    Raises:
        SessionClosed: voting is not open
        SelfVote: a choice equals the voter
        DuplicateChoice: choices are not pairwise distinct
        UnknownGuest: voter or a choice is not an existing registered guest
        DuplicateBallot: the voter already cast a ballot this round
    """
    snapshot = await voting.status()
    if not snapshot.is_open:
        raise SessionClosed("Voting is not open")

    validate_choices(voter_id, first_id, second_id, third_id)
    await _require_active_guests(db, (voter_id, first_id, second_id, third_id))

    now = datetime.utcnow()
    guarded_row = (
        select(
            literal(voter_id, Integer),
            VotingStatus.round_number,
            literal(first_id, Integer),
            literal(second_id, Integer),
            literal(third_id, Integer),
            literal(now, DateTime),
        )
        .where(VotingStatus.id == voting.status_id, VotingStatus.is_open.is_(True))
        .with_for_update(read=True)
    )
    statement = insert(Vote.__table__).from_select(
        ["voter_id", "round_number", "first_choice_id", "second_choice_id", "third_choice_id", "submitted_at"],
        guarded_row,
    )

    try:
        result = await db.execute(statement)
        if result.rowcount == 0:
            await db.rollback()
            raise SessionClosed("Voting closed before the ballot was recorded")

        vote = (await db.execute(
            select(Vote)
            .where(Vote.voter_id == voter_id)
            .order_by(Vote.round_number.desc())
            .limit(1)
        )).scalar_one()
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        kind = classify_integrity_error(e)
        if kind == "unique":
            raise DuplicateBallot(f"Guest {voter_id} has already voted this round") from e
        if kind == "foreign_key":
            raise UnknownGuest("Ballot references a guest that no longer exists") from e
        raise ConstraintViolation(f"Ballot rejected by storage: {kind}") from e

    logger.info(f"Ballot recorded: voter={voter_id} round={vote.round_number}")
    return vote


async def _resolve_round(voting: VotingSession, round_number: Optional[int]) -> int:
    if round_number is not None:
        return round_number
    return (await voting.status()).round_number


async def get_ballot(
    db: AsyncSession,
    voting: VotingSession,
    voter_id: int,
    round_number: Optional[int] = None
) -> Optional[Vote]:
    """The voter's ballot for the round (current round by default)."""
    round_number = await _resolve_round(voting, round_number)
    result = await db.execute(
        select(Vote).where(Vote.voter_id == voter_id, Vote.round_number == round_number)
    )
    return result.scalar_one_or_none()


async def has_voted(
    db: AsyncSession,
    voting: VotingSession,
    voter_id: int,
    round_number: Optional[int] = None
) -> bool:
    return await get_ballot(db, voting, voter_id, round_number) is not None


async def list_ballots(db: AsyncSession, round_number: int) -> List[Vote]:
    """Every ballot of a round in insertion order."""
    result = await db.execute(
        select(Vote).where(Vote.round_number == round_number).order_by(Vote.id.asc())
    )
    return list(result.scalars().all())


async def voting_stats(db: AsyncSession, voting: VotingSession) -> dict:
    """Ballots cast in the current round versus registered guests."""
    snapshot = await voting.status()
    ballots = (await db.execute(
        select(func.count()).select_from(Vote).where(Vote.round_number == snapshot.round_number)
    )).scalar()
    active = (await db.execute(
        select(func.count()).select_from(Guest).where(Guest.is_active.is_(True))
    )).scalar()
    return {
        "round_number": snapshot.round_number,
        "is_open": snapshot.is_open,
        "ballots_cast": ballots,
        "active_guests": active,
    }
