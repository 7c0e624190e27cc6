from .base import Base

from .house import House, Guest
from .point_award import PointAward
from .voting import VotingStatus, Vote, VOTING_STATUS_ID
from .crossword import CrosswordState, HouseCrosswordCompletion

__all__ = [
    "Base",
    "House",
    "Guest",
    "PointAward",
    "VotingStatus",
    "Vote",
    "VOTING_STATUS_ID",
    "CrosswordState",
    "HouseCrosswordCompletion",
]
