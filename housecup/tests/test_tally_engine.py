"""
Determinism Tests for the Ranked-Choice Tally

The engine is pure: these tests feed plain preference tuples.
"""
import random

import pytest

from housecup.services.tally_engine import compute_ranked_choice, pick_elimination

A, B, C, D = 1, 2, 3, 4

FOUR_GUEST_BALLOTS = [
    (B, C, D),   # A
    (A, C, D),   # B
    (A, B, D),   # C
    (C, A, B),   # D
]


def trace(result):
    return [
        (r.round_number, r.counts, r.eliminated, r.exhausted, r.active_ballots, r.winner_id)
        for r in result.rounds
    ]


def test_four_guest_scenario():
    result = compute_ranked_choice(FOUR_GUEST_BALLOTS)

    assert result.winner_id == A
    assert result.ballot_count == 4
    assert trace(result) == [
        (1, [(A, 2), (B, 1), (C, 1), (D, 0)], [D], 0, 4, None),
        # B and C were also level in round 1, so the lower id goes
        (2, [(A, 2), (B, 1), (C, 1)], [B], 0, 4, None),
        # C trailed A in round 2
        (3, [(A, 2), (C, 2)], [C], 0, 4, None),
        # Guest A's own ballot has nobody left and is exhausted
        (4, [(A, 3)], [], 1, 3, A),
    ]


@pytest.mark.parametrize("seed", range(5))
def test_result_independent_of_ballot_order(seed):
    shuffled = list(FOUR_GUEST_BALLOTS)
    random.Random(seed).shuffle(shuffled)

    assert compute_ranked_choice(shuffled).to_dict() == compute_ranked_choice(FOUR_GUEST_BALLOTS).to_dict()


def test_repeated_runs_are_identical():
    first = compute_ranked_choice(FOUR_GUEST_BALLOTS)
    second = compute_ranked_choice(FOUR_GUEST_BALLOTS)

    assert first.to_dict() == second.to_dict()


def test_no_ballots_means_no_winner():
    result = compute_ranked_choice([])

    assert result.no_winner
    assert result.winner_id is None
    assert result.rounds == []
    assert result.ballot_count == 0


def test_first_round_majority_wins_immediately():
    result = compute_ranked_choice([(1, 2, 3), (1, 3, 2), (2, 1, 3)])

    assert result.winner_id == 1
    assert len(result.rounds) == 1
    assert result.rounds[0].eliminated == []


def test_tie_without_history_eliminates_lowest_id():
    ballots = [(1, 2, 3)] * 3 + [(2, 1, 3)] * 2 + [(3, 2, 1)] * 2

    result = compute_ranked_choice(ballots)

    assert result.rounds[0].eliminated == [2]
    assert result.rounds[1].counts == [(1, 5), (3, 2)]
    assert result.winner_id == 1


def test_tie_broken_by_earlier_round():
    ballots = [(1, 2, 3)] * 4 + [(2, 1, 3)] * 3 + [(3, 1, 2)] * 2 + [(4, 3, 1)]

    result = compute_ranked_choice(ballots)

    assert result.rounds[0].eliminated == [4]
    assert result.rounds[1].counts == [(1, 4), (2, 3), (3, 3)]
    # 2 and 3 are level now, but 3 had fewer votes in round 1
    assert result.rounds[1].eliminated == [3]
    assert result.winner_id == 1
    assert result.rounds[-1].counts == [(1, 7), (2, 3)]


def test_exactly_one_elimination_per_round():
    ballots = [(1, 2, 3), (2, 3, 1), (3, 1, 2), (4, 5, 6), (5, 6, 4), (6, 4, 5)]

    result = compute_ranked_choice(ballots)

    for count in result.rounds[:-1]:
        assert len(count.eliminated) == 1
    eliminated = [c for r in result.rounds for c in r.eliminated]
    assert len(eliminated) == len(set(eliminated))
    assert result.winner_id is not None


def test_pick_elimination_walks_back_through_history():
    current = {1: 2, 2: 2, 3: 2}
    earlier = [{1: 1, 2: 5, 3: 1}, {1: 3, 2: 2, 3: 2}]

    # Most recent earlier round separates 1 from 2/3; the one before separates 2 from 3
    assert pick_elimination(current, earlier) == 3


def test_pick_elimination_single_lowest():
    assert pick_elimination({7: 4, 8: 1, 9: 2}, []) == 8
