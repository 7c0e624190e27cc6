from .voting_session import VotingSession, VotingSnapshot, VotingState

__all__ = ["VotingSession", "VotingSnapshot", "VotingState"]
