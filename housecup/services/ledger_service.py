"""
Point Ledger Service

Append-only ledger of point awards. The ledger is the single source of truth
for every guest and house score; cached score columns are adjusted in the
same transaction as each append.

Rules:
- Ledger is append-only (no updates, no deletes)
- Each award targets exactly one guest or exactly one house
- Guest awards require a registered (active) guest with a house
- Cached scores move with `col = col + amount`, never read-modify-write
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from housecup.config import settings
from housecup.exceptions import (
    ConstraintViolation,
    InvalidAmount,
    InvalidReason,
    InvalidSubject,
    classify_integrity_error,
)
from housecup.orm.house import Guest, House
from housecup.orm.point_award import PointAward

logger = logging.getLogger(__name__)


def _check_id(value, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidSubject(f"{label} must be a positive integer, got {value!r}")


@dataclass(frozen=True)
class GuestSubject:
    """Award target: a single guest."""
    guest_id: int

    def __post_init__(self):
        _check_id(self.guest_id, "guest_id")


@dataclass(frozen=True)
class HouseSubject:
    """Award target: a single house."""
    house_id: int

    def __post_init__(self):
        _check_id(self.house_id, "house_id")


AwardSubject = Union[GuestSubject, HouseSubject]


def subject_from_ids(guest_id: Optional[int] = None, house_id: Optional[int] = None) -> AwardSubject:
    """Build a subject from a pair of optional ids; exactly one must be given."""
    if (guest_id is None) == (house_id is None):
        raise InvalidSubject("Exactly one of guest_id or house_id must be provided")
    if guest_id is not None:
        return GuestSubject(guest_id)
    return HouseSubject(house_id)


@dataclass
class AwardLogEntry:
    id: int
    guest_name: Optional[str]
    house_name: Optional[str]
    amount: int
    reason: str
    awarded_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "guest_name": self.guest_name,
            "house_name": self.house_name,
            "amount": self.amount,
            "reason": self.reason,
            "awarded_at": self.awarded_at.isoformat() if self.awarded_at else None,
        }


def _validate_award(subject, amount, reason) -> str:
    if not isinstance(subject, (GuestSubject, HouseSubject)):
        raise InvalidSubject(f"Unsupported award subject: {subject!r}")
    if reason is None or not str(reason).strip():
        raise InvalidReason("Award reason must not be empty")
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"Award amount must be an integer, got {amount!r}")
    if amount == 0:
        if settings.LEDGER_REJECT_ZERO_AMOUNT:
            raise InvalidAmount("Zero-point awards are rejected by ledger policy")
        logger.warning("Zero-point award requested for %r (%s)", subject, reason)
    return str(reason).strip()


async def _guest_state(db: AsyncSession, guest_id: int):
    result = await db.execute(
        select(Guest.id, Guest.house_id, Guest.is_active).where(Guest.id == guest_id)
    )
    return result.one_or_none()


async def append_award(
    db: AsyncSession,
    subject: AwardSubject,
    amount: int,
    reason: str
) -> PointAward:
    """
    Append an award inside the caller's transaction (flush, no commit).

    The cached score update runs first so that, on SQLite, the write lock is
    held before the guest's house is read.

    Raises:
        InvalidSubject, InvalidReason, InvalidAmount
    """
    reason = _validate_award(subject, amount, reason)
    now = datetime.utcnow()

    if isinstance(subject, GuestSubject):
        result = await db.execute(
            update(Guest)
            .where(Guest.id == subject.guest_id, Guest.is_active.is_(True))
            .values(personal_score=Guest.personal_score + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            state = await _guest_state(db, subject.guest_id)
            if state is None:
                raise InvalidSubject(f"Guest {subject.guest_id} does not exist")
            raise InvalidSubject(f"Guest {subject.guest_id} is not registered")

        state = await _guest_state(db, subject.guest_id)
        if state.house_id is None:
            raise InvalidSubject(f"Guest {subject.guest_id} has no house")

        await db.execute(
            update(House)
            .where(House.id == state.house_id)
            .values(score=House.score + amount)
            .execution_options(synchronize_session=False)
        )
        entry = PointAward(guest_id=subject.guest_id, house_id=None, amount=amount, reason=reason, awarded_at=now)
    else:
        result = await db.execute(
            update(House)
            .where(House.id == subject.house_id)
            .values(score=House.score + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidSubject(f"House {subject.house_id} does not exist")
        entry = PointAward(guest_id=None, house_id=subject.house_id, amount=amount, reason=reason, awarded_at=now)

    db.add(entry)
    await db.flush()

    logger.info(
        "Ledger entry appended: id=%s subject=%r amount=%+d reason=%r",
        entry.id, subject, amount, reason
    )
    return entry


async def award(
    db: AsyncSession,
    subject: AwardSubject,
    amount: int,
    reason: str
) -> PointAward:
    """
    Award (or deduct) points to a guest or a house as one atomic transaction.

    Args:
        db: Database session
        subject: GuestSubject or HouseSubject
        amount: Signed point amount (negative for penalties)
        reason: Non-empty human-readable reason

    Returns:
        The persisted PointAward

    Raises:
        InvalidSubject: subject missing, unregistered, or not a valid variant
        InvalidReason: empty reason
        InvalidAmount: non-integer amount, or zero under strict policy
        ConstraintViolation: any other storage-level failure
    """
    try:
        entry = await append_award(db, subject, amount, reason)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        kind = classify_integrity_error(e)
        if kind in ("foreign_key", "check"):
            raise InvalidSubject(f"Award subject {subject!r} rejected by storage") from e
        raise ConstraintViolation(f"Award could not be stored: {kind}") from e
    except Exception:
        await db.rollback()
        raise
    return entry


async def history(db: AsyncSession, subject: AwardSubject) -> List[PointAward]:
    """
    All awards targeting the subject, oldest first.

    Ties on awarded_at are ordered by insertion id, so the sequence is stable
    across calls.
    """
    if isinstance(subject, GuestSubject):
        if await _guest_state(db, subject.guest_id) is None:
            raise InvalidSubject(f"Guest {subject.guest_id} does not exist")
        condition = PointAward.guest_id == subject.guest_id
    elif isinstance(subject, HouseSubject):
        house = await db.execute(select(House.id).where(House.id == subject.house_id))
        if house.scalar_one_or_none() is None:
            raise InvalidSubject(f"House {subject.house_id} does not exist")
        condition = PointAward.house_id == subject.house_id
    else:
        raise InvalidSubject(f"Unsupported award subject: {subject!r}")

    result = await db.execute(
        select(PointAward)
        .where(condition)
        .order_by(PointAward.awarded_at.asc(), PointAward.id.asc())
    )
    return list(result.scalars().all())


async def award_log(db: AsyncSession, limit: Optional[int] = None) -> List[AwardLogEntry]:
    """Every award with the guest/house names resolved, newest first."""
    guest = aliased(Guest)
    house = aliased(House)
    query = (
        select(
            PointAward.id,
            guest.name,
            house.name,
            PointAward.amount,
            PointAward.reason,
            PointAward.awarded_at,
        )
        .outerjoin(guest, PointAward.guest_id == guest.id)
        .outerjoin(house, PointAward.house_id == house.id)
        .order_by(PointAward.awarded_at.desc(), PointAward.id.desc())
    )
    if limit is not None:
        query = query.limit(limit)

    result = await db.execute(query)
    return [AwardLogEntry(*row) for row in result.all()]
