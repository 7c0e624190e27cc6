"""
Event reset tooling (operator only)

reset_event() returns the database to its freshly seeded state between
events: ledger, ballots and crossword data are removed, every guest goes
back to an unregistered placeholder, and voting returns to round 0.

clear_guest_awards() is the lighter variant used after a rehearsal: guest
awards are dropped and registrations reset, house-level awards are kept.
"""
import logging

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from housecup.orm.crossword import CrosswordState, HouseCrosswordCompletion
from housecup.orm.house import Guest, House
from housecup.orm.point_award import PointAward
from housecup.orm.voting import VOTING_STATUS_ID, Vote, VotingStatus
from housecup.services.score_service import reconcile_scores

logger = logging.getLogger(__name__)


async def reset_event(db: AsyncSession) -> dict:
    """
    Wipe all event data. Houses and the guest roster are kept.

    Returns:
        Number of rows removed per table
    """
    removed = {}
    try:
        for label, model in (
            ("votes", Vote),
            ("point_awards", PointAward),
            ("crossword_completions", HouseCrosswordCompletion),
            ("crossword_states", CrosswordState),
        ):
            result = await db.execute(delete(model))
            removed[label] = result.rowcount

        await db.execute(
            update(Guest).values(
                house_id=None,
                personal_score=0,
                is_active=False,
                registered_at=None,
                character=None,
            )
        )
        await db.execute(update(House).values(score=0))
        await db.execute(
            update(VotingStatus)
            .where(VotingStatus.id == VOTING_STATUS_ID)
            .values(is_open=False, opened_at=None, closed_at=None, round_number=0)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.warning(f"Event reset: {removed}")
    return removed


async def clear_guest_awards(db: AsyncSession) -> int:
    """
    Delete guest-targeted awards and unregister every guest.

    Returns:
        Number of awards removed
    """
    try:
        result = await db.execute(delete(PointAward).where(PointAward.guest_id.is_not(None)))
        removed = result.rowcount
        await db.execute(
            update(Guest).values(personal_score=0, is_active=False, registered_at=None)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    # House caches still include the removed guest points
    await reconcile_scores(db, repair=True)

    logger.warning(f"Cleared {removed} guest award(s) and reset registrations")
    return removed
