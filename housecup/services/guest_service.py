"""
Guest Registry Service

Guests are pre-populated as unregistered placeholders and activated when
they register at the event. Registration either takes an explicit house or
"sorts" the guest into one.

Sorting policy:
- Capacity per house = ceil(roster size / number of houses)
- A house is drawn at random, weighted by its remaining capacity
- If every house is full, the least populated houses share equal weight
"""
import logging
import math
import random
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from housecup.exceptions import GuestAlreadyRegistered, UnknownGuest, UnknownHouse
from housecup.orm.house import Guest, House
from housecup.services.score_service import refresh_house_cache

logger = logging.getLogger(__name__)


async def list_houses(db: AsyncSession) -> List[House]:
    result = await db.execute(select(House).order_by(House.id.asc()))
    return list(result.scalars().all())


async def list_guests(db: AsyncSession, active: Optional[bool] = None) -> List[Guest]:
    """All guests by id; filter on registration state when `active` is given."""
    query = select(Guest).order_by(Guest.id.asc())
    if active is not None:
        query = query.where(Guest.is_active.is_(active))
    result = await db.execute(query.execution_options(populate_existing=True))
    return list(result.scalars().all())


async def get_guest(db: AsyncSession, guest_id: int) -> Guest:
    result = await db.execute(
        select(Guest).where(Guest.id == guest_id).execution_options(populate_existing=True)
    )
    guest = result.scalar_one_or_none()
    if guest is None:
        raise UnknownGuest(f"Guest {guest_id} does not exist")
    return guest


async def _require_house(db: AsyncSession, house_id: int) -> None:
    result = await db.execute(select(House.id).where(House.id == house_id))
    if result.scalar_one_or_none() is None:
        raise UnknownHouse(f"House {house_id} does not exist")


async def choose_house(db: AsyncSession, rng: Optional[random.Random] = None) -> int:
    """Pick a house for a guest being sorted, balancing towards an even split."""
    rng = rng or random.Random()

    house_ids = (await db.execute(select(House.id).order_by(House.id.asc()))).scalars().all()
    if not house_ids:
        raise UnknownHouse("No houses have been seeded")

    roster_size = (await db.execute(select(func.count()).select_from(Guest))).scalar()
    capacity = max(1, math.ceil(roster_size / len(house_ids)))

    counts = dict.fromkeys(house_ids, 0)
    rows = await db.execute(
        select(Guest.house_id, func.count())
        .where(Guest.is_active.is_(True), Guest.house_id.is_not(None))
        .group_by(Guest.house_id)
    )
    for house_id, count in rows.all():
        counts[house_id] = count

    weights = [max(capacity - counts[h], 0) for h in house_ids]
    if sum(weights) == 0:
        fewest = min(counts.values())
        weights = [1 if counts[h] == fewest else 0 for h in house_ids]

    return rng.choices(house_ids, weights=weights, k=1)[0]


async def register_guest(
    db: AsyncSession,
    guest_id: int,
    house_id: Optional[int] = None,
    character: Optional[str] = None,
    rng: Optional[random.Random] = None
) -> Guest:
    """
    Activate an unregistered placeholder guest.

    Args:
        guest_id: Pre-populated guest to activate
        house_id: Target house; None sorts the guest into one
        character: Optional costume/character label
        rng: Random source for sorting (tests pass a seeded one)

    Raises:
        UnknownGuest, UnknownHouse, GuestAlreadyRegistered
    """
    guest = await get_guest(db, guest_id)
    if guest.is_active:
        raise GuestAlreadyRegistered(f"Guest {guest_id} is already registered")

    if house_id is None:
        house_id = await choose_house(db, rng)
        logger.info("Sorted guest %s into house %s", guest_id, house_id)
    else:
        await _require_house(db, house_id)

    try:
        result = await db.execute(
            update(Guest)
            .where(Guest.id == guest_id, Guest.is_active.is_(False))
            .values(
                house_id=house_id,
                character=character,
                registered_at=datetime.utcnow(),
                is_active=True,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise GuestAlreadyRegistered(f"Guest {guest_id} is already registered")

        # A returning guest brings their ledger points with them
        await refresh_house_cache(db, [house_id])
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Guest %s registered in house %s", guest_id, house_id)
    return await get_guest(db, guest_id)


async def unregister_guest(db: AsyncSession, guest_id: int) -> Guest:
    """Deactivate a guest; their points stop counting towards the house."""
    guest = await get_guest(db, guest_id)
    if not guest.is_active:
        return guest

    try:
        await db.execute(
            update(Guest)
            .where(Guest.id == guest_id)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        await refresh_house_cache(db, [guest.house_id])
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Guest %s unregistered", guest_id)
    return await get_guest(db, guest_id)


async def reregister_guest(
    db: AsyncSession,
    guest_id: int,
    house_id: Optional[int] = None,
    character: Optional[str] = None
) -> Guest:
    """
    Reactivate a guest, optionally moving house and changing character.
    registered_at is reset to now. Both the old and new house caches are
    refreshed because the guest's points move with them.
    """
    guest = await get_guest(db, guest_id)
    old_house_id = guest.house_id

    values = {"is_active": True, "registered_at": datetime.utcnow()}
    if house_id is not None:
        await _require_house(db, house_id)
        values["house_id"] = house_id
    if character is not None:
        values["character"] = character

    if values.get("house_id", old_house_id) is None:
        raise UnknownHouse(f"Guest {guest_id} has no house; pass house_id")

    try:
        await db.execute(
            update(Guest)
            .where(Guest.id == guest_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await refresh_house_cache(db, [old_house_id, values.get("house_id", old_house_id)])
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Guest %s re-registered (house %s -> %s)", guest_id, old_house_id, values.get("house_id", old_house_id))
    return await get_guest(db, guest_id)
