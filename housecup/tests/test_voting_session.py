"""
Unit Tests for the Voting Session State Machine

Transition rules, round numbering and tally gating.
"""
import asyncio

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from typing import AsyncGenerator

from housecup.database import build_engine, create_schema, seed_reference_data
from housecup.exceptions import AlreadyClosed, AlreadyOpen, ConstraintViolation, TallyUnavailable
from housecup.state_machines.voting_session import VotingSession, VotingSnapshot, VotingState

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    engine = build_engine(TEST_DATABASE_URL)
    await create_schema(engine)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        await seed_reference_data(session)
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def voting(db_session: AsyncSession) -> VotingSession:
    return VotingSession(db_session)


# ==========================================
# Transition table
# ==========================================

def test_transition_table():
    assert VotingSession.can_transition(VotingState.CLOSED, VotingState.OPEN)
    assert VotingSession.can_transition(VotingState.OPEN, VotingState.CLOSED)
    assert not VotingSession.can_transition(VotingState.OPEN, VotingState.OPEN)
    assert not VotingSession.can_transition(VotingState.CLOSED, VotingState.CLOSED)


# ==========================================
# open / close
# ==========================================

@pytest.mark.asyncio
async def test_initial_state_is_closed(voting: VotingSession):
    snapshot = await voting.status()

    assert snapshot.state is VotingState.CLOSED
    assert snapshot.round_number == 0
    assert snapshot.opened_at is None
    assert not snapshot.has_completed_round


@pytest.mark.asyncio
async def test_open_then_close(voting: VotingSession):
    opened = await voting.open()
    assert opened.is_open
    assert opened.round_number == 1
    assert opened.opened_at is not None
    assert opened.closed_at is None

    closed = await voting.close()
    assert not closed.is_open
    assert closed.round_number == 1
    assert closed.closed_at is not None
    assert closed.has_completed_round


@pytest.mark.asyncio
async def test_open_twice_raises(voting: VotingSession):
    await voting.open()
    with pytest.raises(AlreadyOpen):
        await voting.open()

    # State unchanged by the failed transition
    assert (await voting.status()).round_number == 1


@pytest.mark.asyncio
async def test_close_when_closed_raises(voting: VotingSession):
    with pytest.raises(AlreadyClosed):
        await voting.close()

    await voting.open()
    await voting.close()
    with pytest.raises(AlreadyClosed):
        await voting.close()


@pytest.mark.asyncio
async def test_transitions_on_unseeded_database():
    engine = build_engine(TEST_DATABASE_URL)
    await create_schema(engine)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        voting = VotingSession(session)
        with pytest.raises(ConstraintViolation):
            await voting.open()
        with pytest.raises(ConstraintViolation):
            await voting.close()

    await engine.dispose()


@pytest.mark.asyncio
async def test_concurrent_openers_yield_one_round(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'voting.db'}")
    await create_schema(engine)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as setup:
        await seed_reference_data(setup)

    async def attempt():
        async with async_session() as session:
            return await VotingSession(session).open()

    outcomes = await asyncio.gather(*(attempt() for _ in range(5)), return_exceptions=True)

    opened = [o for o in outcomes if isinstance(o, VotingSnapshot)]
    assert len(opened) == 1
    assert all(isinstance(o, (VotingSnapshot, AlreadyOpen)) for o in outcomes)

    async with async_session() as check:
        snapshot = await VotingSession(check).status()
        assert snapshot.is_open
        assert snapshot.round_number == 1

    await engine.dispose()


@pytest.mark.asyncio
async def test_reopen_starts_next_round(voting: VotingSession):
    await voting.open()
    await voting.close()
    reopened = await voting.open()

    assert reopened.round_number == 2
    assert reopened.closed_at is None


@pytest.mark.asyncio
async def test_state_is_shared_between_handles(db_session: AsyncSession, voting: VotingSession):
    await voting.open()

    other = VotingSession(db_session)
    assert (await other.status()).is_open
    with pytest.raises(AlreadyOpen):
        await other.open()


# ==========================================
# require_tallyable
# ==========================================

@pytest.mark.asyncio
async def test_tally_unavailable_before_any_round(voting: VotingSession):
    with pytest.raises(TallyUnavailable):
        await voting.require_tallyable()


@pytest.mark.asyncio
async def test_tally_unavailable_while_open(voting: VotingSession):
    await voting.open()
    with pytest.raises(TallyUnavailable):
        await voting.require_tallyable()


@pytest.mark.asyncio
async def test_tally_round_resolution(voting: VotingSession):
    await voting.open()
    await voting.close()
    await voting.open()
    await voting.close()

    assert await voting.require_tallyable() == 2
    assert await voting.require_tallyable(1) == 1
    with pytest.raises(TallyUnavailable):
        await voting.require_tallyable(3)
    with pytest.raises(TallyUnavailable):
        await voting.require_tallyable(0)
