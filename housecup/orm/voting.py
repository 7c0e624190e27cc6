"""
Voting Models

voting_status is a singleton row (id = 1) holding the open/closed flag of the
current voting round. votes holds one ranked ballot per voter per round.

Rules:
- Ballots are NEVER updated or withdrawn after insert
- UNIQUE (voter_id, round_number): exactly one ballot per voter per round
- CHECK constraints mirror the application-level self-vote and distinct-choice
  validation
"""
from datetime import datetime

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer,
    UniqueConstraint
)

from housecup.orm.base import Base

VOTING_STATUS_ID = 1


class VotingStatus(Base):
    __tablename__ = "voting_status"

    id = Column(Integer, primary_key=True, default=VOTING_STATUS_ID)
    is_open = Column(Boolean, nullable=False, default=False)
    opened_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)

    # Incremented on every open; 0 until the first round starts
    round_number = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(f"id = {VOTING_STATUS_ID}", name="ck_voting_status_singleton"),
    )


class Vote(Base):
    __tablename__ = "votes"

    id = Column(Integer, primary_key=True, autoincrement=True)

    voter_id = Column(Integer, ForeignKey("guests.id", ondelete="CASCADE"), nullable=False)
    round_number = Column(Integer, nullable=False)

    first_choice_id = Column(Integer, ForeignKey("guests.id", ondelete="RESTRICT"), nullable=False)
    second_choice_id = Column(Integer, ForeignKey("guests.id", ondelete="RESTRICT"), nullable=False)
    third_choice_id = Column(Integer, ForeignKey("guests.id", ondelete="RESTRICT"), nullable=False)

    submitted_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("voter_id", "round_number", name="uq_votes_voter_round"),
        CheckConstraint(
            "first_choice_id != voter_id AND second_choice_id != voter_id "
            "AND third_choice_id != voter_id",
            name="ck_votes_no_self_vote"
        ),
        CheckConstraint(
            "first_choice_id != second_choice_id AND second_choice_id != third_choice_id "
            "AND third_choice_id != first_choice_id",
            name="ck_votes_distinct_choices"
        ),
        Index("idx_votes_round", "round_number"),
        Index("idx_votes_submitted_at", "submitted_at"),
    )

    @property
    def choices(self) -> tuple:
        """Ranked choices, highest preference first."""
        return (self.first_choice_id, self.second_choice_id, self.third_choice_id)
