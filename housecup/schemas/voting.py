"""
Pydantic Schemas for the voting session, ballots and tally results
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class VotingStatusResponse(BaseModel):
    success: bool = True
    state: str
    is_open: bool
    round_number: int
    opened_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    ballots_cast: Optional[int] = None
    active_guests: Optional[int] = None


class BallotCreate(BaseModel):
    """A ranked ballot: three distinct guests, none of them the voter."""
    voter_id: int = Field(..., description="Guest casting the ballot")
    first_choice_id: int = Field(..., description="Most preferred guest")
    second_choice_id: int = Field(..., description="Second preference")
    third_choice_id: int = Field(..., description="Third preference")


class BallotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    voter_id: int
    round_number: int
    first_choice_id: int
    second_choice_id: int
    third_choice_id: int
    submitted_at: datetime


class CandidateCount(BaseModel):
    guest_id: int
    votes: int


class TallyRoundResponse(BaseModel):
    round_number: int
    counts: List[CandidateCount]
    eliminated: List[int]
    exhausted: int
    active_ballots: int
    winner_id: Optional[int] = None


class TallyResponse(BaseModel):
    success: bool = True
    winner_id: Optional[int] = None
    no_winner: bool
    ballot_count: int
    voting_round: Optional[int] = None
    rounds: List[TallyRoundResponse]
