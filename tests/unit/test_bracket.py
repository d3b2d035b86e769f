"""
Tests for bracket construction.

Checks the seeded playoff layout (1vN pairings, seeds 1 and 2 on opposite
halves, forward links) and the unseeded knockout with byes.
"""

import pytest

from playbook.errors import ValidationError
from playbook.scheduling import build_knockout, build_single_elimination, first_round_seed_pairs
from playbook.scheduling.bracket import (
    bracket_seed_lines,
    get_next_draw_position,
    get_next_round,
    knockout_round_name,
)


def _by_key(specs):
    return {spec.key: spec for spec in specs}


class TestSeedPairs:

    def test_four(self):
        assert first_round_seed_pairs(4) == [(1, 4), (2, 3)]

    def test_eight(self):
        assert first_round_seed_pairs(8) == [(1, 8), (4, 5), (3, 6), (2, 7)]

    def test_sixteen(self):
        assert first_round_seed_pairs(16) == [
            (1, 16), (8, 9), (5, 12), (4, 13), (3, 14), (6, 11), (7, 10), (2, 15),
        ]

    @pytest.mark.parametrize("size", [4, 8, 16])
    def test_each_seed_once(self, size):
        assert sorted(bracket_seed_lines(size)) == list(range(1, size + 1))

    @pytest.mark.parametrize("size", [2, 5, 6, 12, 32])
    def test_unsupported_sizes(self, size):
        with pytest.raises(ValidationError):
            first_round_seed_pairs(size)


class TestDrawMath:

    def test_next_round(self):
        assert get_next_round("R16") == "QF"
        assert get_next_round("SF") == "F"
        assert get_next_round("F") is None

    def test_positions(self):
        assert [get_next_draw_position(p) for p in (1, 2, 3, 4)] == [1, 1, 2, 2]


class TestSingleElimination:

    @pytest.fixture
    def eight(self):
        return build_single_elimination(["s1", "s2", "s3", "s4", "s5", "s6", "s7", "s8"])

    def test_match_count(self, eight):
        assert len(eight) == 7

    def test_final_first(self, eight):
        assert eight[0].key == "F-1"
        assert eight[0].round_name == "Finals"
        assert eight[0].next_key is None
        assert eight[0].winner_slot is None

    def test_quarterfinal_pairings(self, eight):
        specs = _by_key(eight)
        assert (specs["QF-1"].team1_id, specs["QF-1"].team2_id) == ("s1", "s8")
        assert (specs["QF-2"].team1_id, specs["QF-2"].team2_id) == ("s4", "s5")
        assert (specs["QF-3"].team1_id, specs["QF-3"].team2_id) == ("s3", "s6")
        assert (specs["QF-4"].team1_id, specs["QF-4"].team2_id) == ("s2", "s7")

    def test_links(self, eight):
        specs = _by_key(eight)
        assert (specs["QF-1"].next_key, specs["QF-1"].winner_slot) == ("SF-1", "team1")
        assert (specs["QF-2"].next_key, specs["QF-2"].winner_slot) == ("SF-1", "team2")
        assert (specs["QF-3"].next_key, specs["QF-3"].winner_slot) == ("SF-2", "team1")
        assert (specs["SF-2"].next_key, specs["SF-2"].winner_slot) == ("F-1", "team2")

    def test_two_matches_feed_each_later_match(self, eight):
        feeders = {}
        for spec in eight:
            if spec.next_key:
                feeders.setdefault(spec.next_key, []).append(spec.winner_slot)
        assert feeders == {
            "F-1": ["team1", "team2"],
            "SF-1": ["team1", "team2"],
            "SF-2": ["team1", "team2"],
        }

    def test_top_seeds_on_opposite_halves(self, eight):
        specs = _by_key(eight)
        assert specs["QF-1"].next_key != specs["QF-4"].next_key

    def test_later_rounds_start_empty(self, eight):
        for spec in eight:
            if spec.round_name != "Quarterfinals":
                assert spec.team1_id is None and spec.team2_id is None

    def test_four_teams(self):
        specs = _by_key(build_single_elimination([10, 20, 30, 40]))
        assert len(specs) == 3
        assert (specs["SF-1"].team1_id, specs["SF-1"].team2_id) == (10, 40)
        assert (specs["SF-2"].team1_id, specs["SF-2"].team2_id) == (20, 30)

    def test_sixteen_teams(self):
        specs = build_single_elimination(list(range(1, 17)))
        assert len(specs) == 15
        assert sum(1 for s in specs if s.round_name == "Round of 16") == 8

    @pytest.mark.parametrize("count", [5, 6, 7])
    def test_other_sizes_rejected(self, count):
        with pytest.raises(ValidationError):
            build_single_elimination(list(range(count)))

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValidationError):
            build_single_elimination([1, 2, 3, 3])


class TestKnockout:

    def test_two_teams_is_just_a_final(self):
        specs = build_knockout([1, 2])
        assert len(specs) == 1
        assert specs[0].round_name == "Finals"
        assert (specs[0].team1_id, specs[0].team2_id) == (1, 2)

    def test_five_teams_carry_a_bye(self):
        specs = build_knockout([1, 2, 3, 4, 5])
        by_key = _by_key(specs)

        assert len(specs) == 4
        assert [s.key for s in specs] == ["R3-1", "R2-1", "R1-1", "R1-2"]
        assert (by_key["R1-1"].team1_id, by_key["R1-1"].team2_id) == (1, 2)
        assert (by_key["R1-2"].team1_id, by_key["R1-2"].team2_id) == (3, 4)
        # Team 5 sits out until the final
        assert (by_key["R3-1"].team1_id, by_key["R3-1"].team2_id) == (None, 5)
        assert (by_key["R2-1"].next_key, by_key["R2-1"].winner_slot) == ("R3-1", "team1")

    @pytest.mark.parametrize("n", [2, 3, 6, 9, 13])
    def test_n_minus_one_matches(self, n):
        specs = build_knockout(list(range(n)))
        assert len(specs) == n - 1
        assert sum(1 for s in specs if s.next_key is None) == 1

    def test_round_names(self):
        assert knockout_round_name(3, 3) == "Finals"
        assert knockout_round_name(2, 3) == "Semifinals"
        assert knockout_round_name(1, 4) == "Round 1"

    def test_needs_two_teams(self):
        with pytest.raises(ValidationError):
            build_knockout([1])
