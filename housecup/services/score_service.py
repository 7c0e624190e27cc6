"""
Score Aggregator Service

Derives guest and house totals from the point ledger.

Definitions:
- guest score = sum of awards targeting the guest
- house score = sum of awards targeting the house (crossword bonuses included)
                + guest score of every ACTIVE guest currently in the house

The cached columns (guests.personal_score, houses.score) are an optimisation.
reconcile_scores() recomputes everything from the ledger and repairs drift.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from housecup.exceptions import UnknownGuest, UnknownHouse
from housecup.orm.house import Guest, House
from housecup.orm.point_award import PointAward

logger = logging.getLogger(__name__)


@dataclass
class ScoreSheet:
    guest_scores: Dict[int, int] = field(default_factory=dict)
    house_scores: Dict[int, int] = field(default_factory=dict)


@dataclass
class ScoreDrift:
    """A cached score column that disagrees with the ledger."""
    entity: str  # "guest" | "house"
    entity_id: int
    cached: int
    derived: int

    def to_dict(self) -> dict:
        return {
            "entity": self.entity,
            "entity_id": self.entity_id,
            "cached": self.cached,
            "derived": self.derived,
        }


def derive_totals(awards: Iterable, guests: Iterable, house_ids: Iterable[int]) -> ScoreSheet:
    """
    Pure derivation of every score from ledger rows and guest memberships.

    Args:
        awards: objects with guest_id, house_id, amount
        guests: objects with id, house_id, is_active
        house_ids: every house to report (zero if no awards)
    """
    sheet = ScoreSheet()
    guests = list(guests)

    for guest in guests:
        sheet.guest_scores[guest.id] = 0
    for house_id in house_ids:
        sheet.house_scores[house_id] = 0

    for entry in awards:
        if entry.guest_id is not None:
            sheet.guest_scores[entry.guest_id] = sheet.guest_scores.get(entry.guest_id, 0) + entry.amount
        elif entry.house_id is not None:
            sheet.house_scores[entry.house_id] = sheet.house_scores.get(entry.house_id, 0) + entry.amount
        # Orphaned awards (subject deleted) count towards nobody

    for guest in guests:
        if guest.is_active and guest.house_id is not None:
            sheet.house_scores[guest.house_id] = (
                sheet.house_scores.get(guest.house_id, 0) + sheet.guest_scores[guest.id]
            )

    return sheet


async def guest_score(db: AsyncSession, guest_id: int) -> int:
    """Sum of all awards targeting the guest."""
    exists = await db.execute(select(Guest.id).where(Guest.id == guest_id))
    if exists.scalar_one_or_none() is None:
        raise UnknownGuest(f"Guest {guest_id} does not exist")

    result = await db.execute(
        select(func.coalesce(func.sum(PointAward.amount), 0))
        .where(PointAward.guest_id == guest_id)
    )
    return int(result.scalar_one())


async def house_score(db: AsyncSession, house_id: int) -> int:
    """Direct house awards plus the ledger scores of the house's active members."""
    exists = await db.execute(select(House.id).where(House.id == house_id))
    if exists.scalar_one_or_none() is None:
        raise UnknownHouse(f"House {house_id} does not exist")

    direct = await db.execute(
        select(func.coalesce(func.sum(PointAward.amount), 0))
        .where(PointAward.house_id == house_id)
    )
    members = await db.execute(
        select(func.coalesce(func.sum(PointAward.amount), 0))
        .select_from(PointAward)
        .join(Guest, PointAward.guest_id == Guest.id)
        .where(Guest.house_id == house_id, Guest.is_active.is_(True))
    )
    return int(direct.scalar_one()) + int(members.scalar_one())


async def compute_score_sheet(db: AsyncSession) -> ScoreSheet:
    """Load the full ledger and derive every score."""
    awards = (await db.execute(
        select(PointAward.guest_id, PointAward.house_id, PointAward.amount)
    )).all()
    guests = (await db.execute(
        select(Guest.id, Guest.house_id, Guest.is_active)
    )).all()
    house_ids = (await db.execute(select(House.id))).scalars().all()
    return derive_totals(awards, guests, house_ids)


async def refresh_house_cache(db: AsyncSession, house_ids: Iterable[Optional[int]]) -> None:
    """
    Recompute cached house scores from the ledger (caller commits).

    Used whenever house membership changes, since a member's points move
    with them.
    """
    for house_id in {h for h in house_ids if h is not None}:
        value = await house_score(db, house_id)
        await db.execute(
            update(House)
            .where(House.id == house_id)
            .values(score=value)
            .execution_options(synchronize_session=False)
        )


async def reconcile_scores(db: AsyncSession, repair: bool = True) -> List[ScoreDrift]:
    """
    Compare every cached score with the ledger derivation.

    Args:
        db: Database session
        repair: rewrite drifted cache columns and commit

    Returns:
        One ScoreDrift per disagreeing column (empty when consistent)
    """
    sheet = await compute_score_sheet(db)
    drifts: List[ScoreDrift] = []

    cached_guests = (await db.execute(select(Guest.id, Guest.personal_score))).all()
    for guest_id, cached in cached_guests:
        derived = sheet.guest_scores.get(guest_id, 0)
        if cached != derived:
            drifts.append(ScoreDrift("guest", guest_id, cached, derived))

    cached_houses = (await db.execute(select(House.id, House.score))).all()
    for house_id, cached in cached_houses:
        derived = sheet.house_scores.get(house_id, 0)
        if cached != derived:
            drifts.append(ScoreDrift("house", house_id, cached, derived))

    if drifts:
        logger.warning("Score cache drift detected on %d column(s)", len(drifts))

    if repair and drifts:
        for drift in drifts:
            model = Guest if drift.entity == "guest" else House
            column = "personal_score" if drift.entity == "guest" else "score"
            await db.execute(
                update(model)
                .where(model.id == drift.entity_id)
                .values({column: drift.derived})
                .execution_options(synchronize_session=False)
            )
        await db.commit()
        logger.info("Repaired %d cached score column(s)", len(drifts))

    return drifts


async def house_standings(db: AsyncSession) -> List[dict]:
    """Houses ordered by derived score (desc), then name."""
    sheet = await compute_score_sheet(db)
    houses = (await db.execute(select(House.id, House.name))).all()
    standings = [
        {"id": house_id, "name": name, "score": sheet.house_scores.get(house_id, 0)}
        for house_id, name in houses
    ]
    standings.sort(key=lambda row: (-row["score"], row["name"]))
    return standings
