"""Tests for round-robin pairing generation."""

from itertools import combinations

import pytest

from playbook.errors import ValidationError
from playbook.scheduling import generate_round_robin, round_robin_rounds


def _pairs(pairings):
    return [(p.team1_id, p.team2_id) for p in pairings]


class TestGenerateRoundRobin:

    def test_three_teams(self):
        assert _pairs(generate_round_robin([1, 2, 3])) == [(1, 2), (1, 3), (2, 3)]

    @pytest.mark.parametrize("n", [2, 4, 5, 8])
    def test_pair_count(self, n):
        assert len(generate_round_robin(list(range(n)))) == n * (n - 1) // 2

    def test_every_pair_exactly_once(self):
        pairings = generate_round_robin(["a", "b", "c", "d", "e"])
        seen = [p.teams for p in pairings]
        assert len(seen) == len(set(seen))
        assert set(seen) == {frozenset(c) for c in combinations("abcde", 2)}

    def test_no_self_pairings(self):
        assert all(p.team1_id != p.team2_id for p in generate_round_robin([4, 5, 6]))

    def test_order_follows_input(self):
        assert _pairs(generate_round_robin([9, 3])) == [(9, 3)]

    @pytest.mark.parametrize("ids", [[], [7]])
    def test_fewer_than_two_teams_is_empty(self, ids):
        assert generate_round_robin(ids) == []

    def test_duplicates_rejected(self):
        with pytest.raises(ValidationError):
            generate_round_robin([1, 2, 2])


class TestRoundRobinRounds:

    def test_even_count(self):
        rounds = round_robin_rounds([1, 2, 3, 4])

        assert len(rounds) == 3
        for pairings in rounds:
            assert len(pairings) == 2
            playing = [team for p in pairings for team in p.teams]
            assert sorted(playing) == [1, 2, 3, 4]

    def test_odd_count_gives_byes(self):
        rounds = round_robin_rounds([1, 2, 3, 4, 5])

        assert len(rounds) == 5
        assert all(len(pairings) == 2 for pairings in rounds)

    @pytest.mark.parametrize("n", [2, 3, 6, 7])
    def test_same_fixtures_as_flat_schedule(self, n):
        ids = list(range(1, n + 1))
        grouped = {p.teams for pairings in round_robin_rounds(ids) for p in pairings}
        assert grouped == {p.teams for p in generate_round_robin(ids)}

    def test_single_team(self):
        assert round_robin_rounds([1]) == []
