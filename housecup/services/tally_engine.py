"""
Vote Tally Engine: Ranked-Choice Elimination

Deterministic instant-runoff count over the ballots of one closed round.

Algorithm:
1. Candidates = every guest named as a choice on any ballot
2. Each ballot counts for its highest-ranked choice still in the race
3. A candidate holding a strict majority of non-exhausted ballots wins
4. Otherwise exactly one candidate with the fewest votes is eliminated
5. A ballot whose choices are all eliminated is exhausted and leaves the
   majority denominator

Elimination tie-break (fixed, part of the result contract):
- Among candidates tied for fewest votes, look back through earlier rounds,
  most recent first; the first round that separates them eliminates the
  one(s) with fewer votes there
- If they are tied in every earlier round, the smallest guest id is
  eliminated
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from housecup.services.ballot_service import list_ballots
from housecup.state_machines.voting_session import VotingSession

logger = logging.getLogger(__name__)


@dataclass
class TallyRound:
    round_number: int
    counts: List[Tuple[int, int]]          # (guest_id, votes), most votes first
    eliminated: List[int] = field(default_factory=list)
    exhausted: int = 0
    active_ballots: int = 0
    winner_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "round_number": self.round_number,
            "counts": [{"guest_id": gid, "votes": votes} for gid, votes in self.counts],
            "eliminated": list(self.eliminated),
            "exhausted": self.exhausted,
            "active_ballots": self.active_ballots,
            "winner_id": self.winner_id,
        }


@dataclass
class TallyResult:
    winner_id: Optional[int]
    rounds: List[TallyRound]
    ballot_count: int
    voting_round: Optional[int] = None

    @property
    def no_winner(self) -> bool:
        return self.winner_id is None

    def to_dict(self) -> dict:
        return {
            "winner_id": self.winner_id,
            "no_winner": self.no_winner,
            "ballot_count": self.ballot_count,
            "voting_round": self.voting_round,
            "rounds": [r.to_dict() for r in self.rounds],
        }


def _preferences(ballots: Iterable) -> List[Tuple[int, ...]]:
    """Accept Vote rows (via .choices) or plain ranked sequences."""
    return [tuple(getattr(ballot, "choices", ballot)) for ballot in ballots]


def pick_elimination(counts: Dict[int, int], earlier: Sequence[Dict[int, int]]) -> int:
    """Choose the single candidate to eliminate this round."""
    fewest = min(counts.values())
    tied = sorted(c for c, votes in counts.items() if votes == fewest)

    for past in reversed(earlier):
        if len(tied) == 1:
            break
        low = min(past.get(c, 0) for c in tied)
        tied = [c for c in tied if past.get(c, 0) == low]

    return tied[0]


def compute_ranked_choice(ballots: Iterable) -> TallyResult:
    """
    Run the ranked-choice count.

    Pure function: the same ballots always produce the same winner and the
    same round-by-round trace, independent of ballot order.
    """
    prefs = _preferences(ballots)
    active = {c for p in prefs for c in p}

    rounds: List[TallyRound] = []
    history: List[Dict[int, int]] = []
    number = 1

    while active:
        counts = dict.fromkeys(active, 0)
        exhausted = 0
        for p in prefs:
            top = next((c for c in p if c in active), None)
            if top is None:
                exhausted += 1
            else:
                counts[top] += 1

        live = len(prefs) - exhausted
        ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        current = TallyRound(number, ordered, exhausted=exhausted, active_ballots=live)
        rounds.append(current)

        leader, leader_votes = ordered[0]
        if live > 0 and leader_votes * 2 > live:
            current.winner_id = leader
            return TallyResult(leader, rounds, len(prefs))

        loser = pick_elimination(counts, history)
        history.append(counts)
        active.discard(loser)
        current.eliminated = [loser]
        number += 1

    return TallyResult(None, rounds, len(prefs))


async def tally(
    db: AsyncSession,
    voting: VotingSession,
    round_number: Optional[int] = None
) -> TallyResult:
    """
    Tally a closed voting round (the latest one by default).

    Raises:
        TallyUnavailable: voting open, nothing completed yet, or bad round
    """
    target = await voting.require_tallyable(round_number)
    ballots = await list_ballots(db, target)

    result = compute_ranked_choice(ballots)
    result.voting_round = target

    if result.no_winner:
        logger.info(f"Tally round {target}: no winner ({len(ballots)} ballots)")
    else:
        logger.info(
            f"Tally round {target}: winner guest {result.winner_id} "
            f"after {len(result.rounds)} count(s) over {len(ballots)} ballots"
        )
    return result
