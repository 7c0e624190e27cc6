"""
Voting Session State Machine

Features:
- Single persisted row (voting_status.id = 1) is the source of truth
- Every transition is one conditional UPDATE guarded on the current state,
  so concurrent openers/closers cannot both win, across processes
- Each open starts a new numbered round; ballots are keyed by round

State Flow: closed → open → closed → open (next round) → ...
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from housecup.exceptions import (
    AlreadyClosed,
    AlreadyOpen,
    ConstraintViolation,
    HouseCupError,
    TallyUnavailable,
)
from housecup.orm.voting import VOTING_STATUS_ID, VotingStatus

logger = logging.getLogger(__name__)


class VotingState(Enum):
    """Voting session states."""
    CLOSED = "closed"
    OPEN = "open"


@dataclass(frozen=True)
class VotingSnapshot:
    state: VotingState
    round_number: int
    opened_at: Optional[datetime]
    closed_at: Optional[datetime]

    @property
    def is_open(self) -> bool:
        return self.state is VotingState.OPEN

    @property
    def has_completed_round(self) -> bool:
        return self.state is VotingState.CLOSED and self.opened_at is not None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "is_open": self.is_open,
            "round_number": self.round_number,
            "opened_at": self.opened_at.isoformat() if self.opened_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
        }


class VotingSession:
    """
    The global voting gate, passed explicitly to every voting operation.

    CRITICAL: no in-process locks. Mutual exclusion comes from the guarded
    single-row UPDATE, which the database serialises.
    """

    # Valid state transitions
    TRANSITIONS = {
        VotingState.CLOSED: [VotingState.OPEN],
        VotingState.OPEN: [VotingState.CLOSED],
    }

    def __init__(self, db: AsyncSession, status_id: int = VOTING_STATUS_ID):
        self._db = db
        self.status_id = status_id

    @property
    def db(self) -> AsyncSession:
        return self._db

    @classmethod
    def can_transition(cls, current: VotingState, target: VotingState) -> bool:
        return target in cls.TRANSITIONS[current]

    async def status(self) -> VotingSnapshot:
        """Read the current persisted state."""
        result = await self._db.execute(
            select(
                VotingStatus.is_open,
                VotingStatus.round_number,
                VotingStatus.opened_at,
                VotingStatus.closed_at,
            ).where(VotingStatus.id == self.status_id)
        )
        row = result.one_or_none()
        if row is None:
            # Unseeded database behaves as the initial state
            return VotingSnapshot(VotingState.CLOSED, 0, None, None)
        is_open, round_number, opened_at, closed_at = row
        return VotingSnapshot(
            VotingState.OPEN if is_open else VotingState.CLOSED,
            round_number,
            opened_at,
            closed_at,
        )

    async def _current_state(self) -> VotingState:
        result = await self._db.execute(
            select(VotingStatus.is_open).where(VotingStatus.id == self.status_id)
        )
        is_open = result.scalar_one_or_none()
        if is_open is None:
            await self._db.rollback()
            raise ConstraintViolation(f"Voting status row {self.status_id} has not been seeded")
        return VotingState.OPEN if is_open else VotingState.CLOSED

    async def _transition(self, target: VotingState, refusal: HouseCupError, **values) -> VotingSnapshot:
        """
        Move to `target` with one UPDATE guarded on the state that was read.

        A rowcount of 0 means a concurrent caller moved the row first.
        """
        current = await self._current_state()
        if not self.can_transition(current, target):
            await self._db.rollback()
            raise refusal

        try:
            result = await self._db.execute(
                update(VotingStatus)
                .where(
                    VotingStatus.id == self.status_id,
                    VotingStatus.is_open.is_(current is VotingState.OPEN),
                )
                .values(is_open=target is VotingState.OPEN, **values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self._db.rollback()
                raise refusal
            await self._db.commit()
        except HouseCupError:
            raise
        except Exception:
            await self._db.rollback()
            raise

        snapshot = await self.status()
        logger.info(f"Voting {target.value}: round {snapshot.round_number}")
        return snapshot

    async def open(self) -> VotingSnapshot:
        """
        closed → open. Starts a new round.

        Raises:
            AlreadyOpen: if voting is already open
            ConstraintViolation: the voting status row is missing
        """
        return await self._transition(
            VotingState.OPEN,
            AlreadyOpen("Voting is already open"),
            opened_at=datetime.utcnow(),
            closed_at=None,
            round_number=VotingStatus.round_number + 1,
        )

    async def close(self) -> VotingSnapshot:
        """
        open → closed.

        Raises:
            AlreadyClosed: if voting is already closed
            ConstraintViolation: the voting status row is missing
        """
        return await self._transition(
            VotingState.CLOSED,
            AlreadyClosed("Voting is already closed"),
            closed_at=datetime.utcnow(),
        )

    async def require_tallyable(self, round_number: Optional[int] = None) -> int:
        """
        Check that a tally may run and resolve which round to count.

        Returns:
            The round number to tally (latest completed round by default)

        Raises:
            TallyUnavailable: voting open, no completed round, or unknown round
        """
        snapshot = await self.status()
        if snapshot.is_open:
            raise TallyUnavailable("Tally unavailable: voting is still open")
        if not snapshot.has_completed_round:
            raise TallyUnavailable("Tally unavailable: no voting round has completed")
        if round_number is None:
            return snapshot.round_number
        if round_number < 1 or round_number > snapshot.round_number:
            raise TallyUnavailable(f"Tally unavailable: round {round_number} does not exist")
        return round_number
