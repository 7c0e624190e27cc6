"""
Crossword Completion Tracker

Records which of the seven puzzle words each house has solved and turns
each first-time completion into a house bonus on the point ledger.

Rules:
- word_index is in [0, 6]
- A house completes each word once; a repeat raises AlreadyCompleted
- The completion row and its bonus award commit together or not at all
- The house's seventh word also earns the full-grid bonus (if configured)

Per-guest puzzle progress is stored as an opaque JSON blob. The tracker only
reads its "completions" flags to detect words a guest has newly solved.
"""
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from housecup.config import settings
from housecup.exceptions import (
    AlreadyCompleted,
    ConstraintViolation,
    HouseCupError,
    InvalidWordIndex,
    UnknownGuest,
    UnknownHouse,
    classify_integrity_error,
)
from housecup.orm.crossword import CrosswordState, HouseCrosswordCompletion
from housecup.orm.house import Guest, House
from housecup.services.ledger_service import HouseSubject, append_award

logger = logging.getLogger(__name__)

WORD_BONUS_REASON = "Crossword word {index} completed by house"
FULL_BONUS_REASON = "Crossword completion bonus"


def validate_word_index(word_index) -> int:
    word_count = settings.CROSSWORD_WORD_COUNT
    if isinstance(word_index, bool) or not isinstance(word_index, int) or not 0 <= word_index < word_count:
        raise InvalidWordIndex(
            f"word_index must be between 0 and {word_count - 1}, got {word_index!r}"
        )
    return word_index


def _completion_error(exc: IntegrityError, house_id: int, word_index: Optional[int] = None) -> HouseCupError:
    word = "a crossword word" if word_index is None else f"word {word_index}"
    kind = classify_integrity_error(exc)
    if kind == "unique":
        return AlreadyCompleted(f"House {house_id} already completed {word}")
    if kind == "foreign_key":
        return UnknownHouse(f"House {house_id} does not exist")
    if kind == "check":
        return InvalidWordIndex(f"{word} rejected by storage")
    return ConstraintViolation(f"Completion could not be stored: {kind}")


async def append_completion(
    db: AsyncSession,
    house_id: int,
    word_index: int
) -> HouseCrosswordCompletion:
    """
    Stage a completion and its bonuses inside the caller's transaction (flush, no commit).

    A repeated completion surfaces as IntegrityError on flush; the caller
    rolls back.
    """
    validate_word_index(word_index)

    house = await db.execute(
        select(House.id).where(House.id == house_id).with_for_update()
    )
    if house.scalar_one_or_none() is None:
        raise UnknownHouse(f"House {house_id} does not exist")

    completion = HouseCrosswordCompletion(
        house_id=house_id,
        word_index=word_index,
        completed_at=datetime.utcnow()
    )
    db.add(completion)
    await db.flush()

    await append_award(
        db,
        HouseSubject(house_id),
        settings.CROSSWORD_WORD_BONUS,
        WORD_BONUS_REASON.format(index=word_index)
    )

    completed = (await db.execute(
        select(func.count())
        .select_from(HouseCrosswordCompletion)
        .where(HouseCrosswordCompletion.house_id == house_id)
    )).scalar()
    if completed == settings.CROSSWORD_WORD_COUNT and settings.CROSSWORD_FULL_BONUS:
        await append_award(db, HouseSubject(house_id), settings.CROSSWORD_FULL_BONUS, FULL_BONUS_REASON)
        logger.info(f"House {house_id} completed the whole crossword")

    logger.info(f"House {house_id} completed crossword word {word_index}")
    return completion


async def record_completion(
    db: AsyncSession,
    house_id: int,
    word_index: int
) -> HouseCrosswordCompletion:
    """
    Record a house's first completion of a word and award the bonus.

    Raises:
        InvalidWordIndex: word_index outside [0, 6]
        UnknownHouse: house does not exist
        AlreadyCompleted: the house already completed this word
    """
    try:
        completion = await append_completion(db, house_id, word_index)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise _completion_error(e, house_id, word_index) from e
    except Exception:
        await db.rollback()
        raise
    return completion


async def completed_words(db: AsyncSession, house_id: int) -> Set[int]:
    result = await db.execute(
        select(HouseCrosswordCompletion.word_index)
        .where(HouseCrosswordCompletion.house_id == house_id)
    )
    return set(result.scalars().all())


async def list_completions(db: AsyncSession, house_id: Optional[int] = None) -> List[HouseCrosswordCompletion]:
    query = select(HouseCrosswordCompletion).order_by(
        HouseCrosswordCompletion.house_id, HouseCrosswordCompletion.word_index
    )
    if house_id is not None:
        query = query.where(HouseCrosswordCompletion.house_id == house_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def house_progress(db: AsyncSession) -> Dict[int, List[bool]]:
    """house_id -> seven flags, True where the house has completed that word."""
    word_count = settings.CROSSWORD_WORD_COUNT
    house_ids = (await db.execute(select(House.id).order_by(House.id))).scalars().all()
    progress = {house_id: [False] * word_count for house_id in house_ids}

    for completion in await list_completions(db):
        if completion.house_id in progress and 0 <= completion.word_index < word_count:
            progress[completion.house_id][completion.word_index] = True
    return progress


# Per-guest crossword state (opaque blob)

def empty_state() -> dict:
    return {"filled": [], "completions": [False] * settings.CROSSWORD_WORD_COUNT}


def parse_state(raw: Optional[str]) -> dict:
    """Decode a stored blob; unreadable blobs read as an empty puzzle."""
    if not raw:
        return empty_state()
    try:
        state = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Discarding unreadable crossword state blob")
        return empty_state()
    if not isinstance(state, dict):
        return empty_state()
    state["completions"] = completion_flags(state)
    state.setdefault("filled", [])
    return state


def completion_flags(state: dict) -> List[bool]:
    word_count = settings.CROSSWORD_WORD_COUNT
    flags = state.get("completions") or []
    flags = [bool(flag) for flag in flags][:word_count]
    return flags + [False] * (word_count - len(flags))


async def get_or_init_state(db: AsyncSession, guest_id: int) -> dict:
    """Return the guest's puzzle state, creating an empty one on first access."""
    guest = await db.execute(select(Guest.id).where(Guest.id == guest_id))
    if guest.scalar_one_or_none() is None:
        raise UnknownGuest(f"Guest {guest_id} does not exist")

    row = (await db.execute(
        select(CrosswordState.state).where(CrosswordState.guest_id == guest_id)
    )).scalar_one_or_none()
    if row is not None:
        return parse_state(row)

    state = empty_state()
    db.add(CrosswordState(guest_id=guest_id, state=json.dumps(state), updated_at=datetime.utcnow()))
    try:
        await db.commit()
    except IntegrityError:
        # Another request created it first
        await db.rollback()
        row = (await db.execute(
            select(CrosswordState.state).where(CrosswordState.guest_id == guest_id)
        )).scalar_one()
        return parse_state(row)
    return state


async def save_state(db: AsyncSession, guest_id: int, state: dict) -> dict:
    """
    Replace a guest's puzzle state and record newly solved words.

    A word flagged complete now but not in the previous state is recorded for
    the guest's house. If a housemate already solved it, nothing is awarded.
    The completions, their bonuses and the new blob commit together.

    Returns:
        {"state": stored state, "new_house_completions": [word indexes]}
    """
    guest = (await db.execute(
        select(Guest.id, Guest.house_id, Guest.is_active).where(Guest.id == guest_id)
    )).one_or_none()
    if guest is None or not guest.is_active or guest.house_id is None:
        raise UnknownGuest(f"Guest {guest_id} is not a registered guest")

    previous = await get_or_init_state(db, guest_id)
    old_flags = completion_flags(previous)
    new_flags = completion_flags(state)
    solved = [index for index, (was, now) in enumerate(zip(old_flags, new_flags)) if now and not was]

    stored = dict(state)
    stored["completions"] = new_flags
    stored.setdefault("filled", [])

    # A housemate committing the same word between our read and our insert
    # fails the unique constraint once; the second pass sees their row.
    for attempt in (1, 2):
        try:
            done = await completed_words(db, guest.house_id)
            recorded = []
            for index in solved:
                if index in done:
                    logger.debug(f"Word {index} already completed by house {guest.house_id}")
                    continue
                await append_completion(db, guest.house_id, index)
                recorded.append(index)

            await db.execute(
                update(CrosswordState)
                .where(CrosswordState.guest_id == guest_id)
                .values(state=json.dumps(stored), updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            break
        except IntegrityError as e:
            await db.rollback()
            if attempt == 2 or classify_integrity_error(e) != "unique":
                raise _completion_error(e, guest.house_id) from e
            logger.info(f"Crossword completion raced for house {guest.house_id}, retrying")
        except Exception:
            await db.rollback()
            raise

    return {"state": stored, "new_house_completions": recorded}
