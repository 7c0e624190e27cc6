"""
Unit Tests for the Point Ledger

Covers subject validation, cached score maintenance and ledger queries.
"""
import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from typing import AsyncGenerator

from housecup.config import settings
from housecup.database import build_engine, create_schema, seed_guests, seed_reference_data
from housecup.exceptions import InvalidAmount, InvalidReason, InvalidSubject
from housecup.orm.house import House
from housecup.orm.point_award import PointAward
from housecup.services.guest_service import register_guest
from housecup.services.ledger_service import (
    GuestSubject,
    HouseSubject,
    award,
    award_log,
    history,
    subject_from_ids,
)
from housecup.services.score_service import guest_score, house_score, reconcile_scores

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database with houses and the voting row seeded."""
    engine = build_engine(TEST_DATABASE_URL)
    await create_schema(engine)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        await seed_reference_data(session)
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def guests(db_session: AsyncSession):
    """Harry and Hermione registered in house 1, Draco left unregistered."""
    created = await seed_guests(db_session, ["Harry", "Hermione", "Draco"])
    await register_guest(db_session, created[0].id, house_id=1)
    await register_guest(db_session, created[1].id, house_id=1)
    return {guest.name: guest.id for guest in created}


async def award_count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(PointAward))).scalar()


# ==========================================
# Subjects
# ==========================================

def test_subject_from_ids_requires_exactly_one():
    with pytest.raises(InvalidSubject):
        subject_from_ids()
    with pytest.raises(InvalidSubject):
        subject_from_ids(guest_id=1, house_id=1)

    assert subject_from_ids(guest_id=3) == GuestSubject(3)
    assert subject_from_ids(house_id=2) == HouseSubject(2)


@pytest.mark.parametrize("bad_id", [0, -1, True, "1"])
def test_subject_rejects_non_positive_ids(bad_id):
    with pytest.raises(InvalidSubject):
        GuestSubject(bad_id)
    with pytest.raises(InvalidSubject):
        HouseSubject(bad_id)


# ==========================================
# award
# ==========================================

@pytest.mark.asyncio
async def test_award_and_penalty_accumulate(db_session: AsyncSession, guests):
    """+10 then -3 leaves the guest on 7 and moves the house by the same amount."""
    harry = guests["Harry"]

    await award(db_session, GuestSubject(harry), 10, "Caught the snitch")
    await award(db_session, GuestSubject(harry), -3, "Out after curfew")

    assert await guest_score(db_session, harry) == 7
    assert await house_score(db_session, 1) == 7
    assert await reconcile_scores(db_session, repair=False) == []


@pytest.mark.asyncio
async def test_house_award_counts_only_for_the_house(db_session: AsyncSession, guests):
    await award(db_session, HouseSubject(2), 25, "Quidditch cup")

    assert await house_score(db_session, 2) == 25
    assert await house_score(db_session, 1) == 0
    assert await guest_score(db_session, guests["Harry"]) == 0
    assert await reconcile_scores(db_session, repair=False) == []


@pytest.mark.asyncio
async def test_award_returns_persisted_entry(db_session: AsyncSession, guests):
    entry = await award(db_session, GuestSubject(guests["Hermione"]), 5, "  Answered in class  ")

    assert entry.id is not None
    assert entry.guest_id == guests["Hermione"]
    assert entry.house_id is None
    assert entry.reason == "Answered in class"
    assert entry.awarded_at is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("reason", ["", "   ", None])
async def test_empty_reason_rejected(db_session: AsyncSession, guests, reason):
    with pytest.raises(InvalidReason):
        await award(db_session, GuestSubject(guests["Harry"]), 5, reason)
    assert await award_count(db_session) == 0


@pytest.mark.asyncio
async def test_unregistered_guest_rejected(db_session: AsyncSession, guests):
    with pytest.raises(InvalidSubject):
        await award(db_session, GuestSubject(guests["Draco"]), 5, "Sneaky")
    assert await award_count(db_session) == 0
    assert await reconcile_scores(db_session, repair=False) == []


@pytest.mark.asyncio
async def test_missing_subjects_rejected(db_session: AsyncSession, guests):
    with pytest.raises(InvalidSubject):
        await award(db_session, GuestSubject(999), 5, "Ghost")
    with pytest.raises(InvalidSubject):
        await award(db_session, HouseSubject(99), 5, "Fifth house")
    assert await award_count(db_session) == 0


@pytest.mark.asyncio
async def test_zero_amount_accepted_by_default(db_session: AsyncSession, guests):
    entry = await award(db_session, GuestSubject(guests["Harry"]), 0, "Participation")

    assert entry.amount == 0
    assert await award_count(db_session) == 1


@pytest.mark.asyncio
async def test_zero_amount_rejected_in_strict_mode(db_session: AsyncSession, guests, monkeypatch):
    monkeypatch.setattr(settings, "LEDGER_REJECT_ZERO_AMOUNT", True)

    with pytest.raises(InvalidAmount):
        await award(db_session, GuestSubject(guests["Harry"]), 0, "Participation")
    assert await award_count(db_session) == 0


@pytest.mark.asyncio
async def test_non_integer_amount_rejected(db_session: AsyncSession, guests):
    with pytest.raises(InvalidAmount):
        await award(db_session, GuestSubject(guests["Harry"]), 2.5, "Half points")


# ==========================================
# history / award_log
# ==========================================

@pytest.mark.asyncio
async def test_history_is_oldest_first_and_per_subject(db_session: AsyncSession, guests):
    harry, hermione = guests["Harry"], guests["Hermione"]
    await award(db_session, GuestSubject(harry), 1, "first")
    await award(db_session, GuestSubject(hermione), 2, "other guest")
    await award(db_session, GuestSubject(harry), 3, "second")
    await award(db_session, HouseSubject(1), 4, "house")

    entries = await history(db_session, GuestSubject(harry))
    assert [e.reason for e in entries] == ["first", "second"]

    house_entries = await history(db_session, HouseSubject(1))
    assert [e.amount for e in house_entries] == [4]


@pytest.mark.asyncio
async def test_history_of_missing_subject(db_session: AsyncSession):
    with pytest.raises(InvalidSubject):
        await history(db_session, GuestSubject(42))
    with pytest.raises(InvalidSubject):
        await history(db_session, HouseSubject(42))


@pytest.mark.asyncio
async def test_award_log_resolves_names_newest_first(db_session: AsyncSession, guests):
    await award(db_session, GuestSubject(guests["Harry"]), 10, "first")
    await award(db_session, HouseSubject(3), 5, "second")

    log = await award_log(db_session)
    assert [entry.reason for entry in log] == ["second", "first"]
    assert log[0].house_name == "Ravenclaw"
    assert log[0].guest_name is None
    assert log[1].guest_name == "Harry"

    assert len(await award_log(db_session, limit=1)) == 1


# ==========================================
# Concurrent appends
# ==========================================

@pytest.mark.asyncio
async def test_concurrent_awards_lose_nothing(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await create_schema(engine)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as setup:
        await seed_reference_data(setup)
        created = await seed_guests(setup, ["Harry", "Hermione"])
        for guest in created:
            await register_guest(setup, guest.id, house_id=1)
    harry, hermione = (guest.id for guest in created)

    subjects = [GuestSubject(harry), GuestSubject(hermione), HouseSubject(1), HouseSubject(2)] * 10

    async def attempt(subject, n):
        async with async_session() as session:
            return await award(session, subject, 1, f"Quidditch point {n}")

    outcomes = await asyncio.gather(*(attempt(s, n) for n, s in enumerate(subjects)))
    assert all(isinstance(o, PointAward) for o in outcomes)

    async with async_session() as check:
        assert await award_count(check) == 40
        assert await reconcile_scores(check, repair=False) == []
        assert await guest_score(check, harry) == 10
        assert await guest_score(check, hermione) == 10
        assert await house_score(check, 1) == 30
        assert await house_score(check, 2) == 10

        cached = dict((await check.execute(select(House.id, House.score))).all())
        assert cached[1] == 30
        assert cached[2] == 10

    await engine.dispose()
