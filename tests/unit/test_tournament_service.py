"""Tests for schedule generation, standings, resets and finalization."""

from dataclasses import replace
from datetime import date, datetime

import pytest

from playbook.elo import RatingConfig
from playbook.errors import NotFoundError, ValidationError
from playbook.match_statuses import PENDING
from playbook.models import Match
from playbook.results import MatchResultService
from playbook.services import (
    clear_schedule,
    generate_knockout_schedule,
    generate_playoff_bracket,
    generate_round_robin_schedule,
    reset_ratings,
    standings,
)


class TestRoundRobinSchedule:

    def test_every_pair_once(self, store, make_tournament):
        tournament, teams = make_tournament(store, 4)

        stats = generate_round_robin_schedule(store, tournament.id)

        matches = store.list_matches(tournament.id)
        assert stats.matches_created == len(matches) == 6
        assert stats.rounds == 3
        pairs = {frozenset((m.team1_id, m.team2_id)) for m in matches}
        assert len(pairs) == 6
        assert all(m.status == PENDING and m.round_name == "Round Robin" for m in matches)

    def test_replaces_existing_schedule(self, store, make_tournament):
        tournament, _ = make_tournament(store, 3)
        generate_round_robin_schedule(store, tournament.id)

        stats = generate_round_robin_schedule(store, tournament.id)

        assert stats.matches_deleted == 3
        assert len(store.list_matches(tournament.id)) == 3

    def test_undated_without_window(self, store, make_tournament):
        tournament, _ = make_tournament(store, 3)

        stats = generate_round_robin_schedule(store, tournament.id)

        assert not stats.dated
        assert all(m.match_date is None for m in stats.matches)

    def test_dated_with_window(self, store, make_tournament):
        tournament, _ = make_tournament(
            store, 4, start_date=date(2024, 3, 1), end_date=date(2024, 3, 3)
        )

        stats = generate_round_robin_schedule(store, tournament.id, venues=["Field A"])

        assert stats.dated
        assert stats.matches[0].match_date == datetime(2024, 3, 1, 9, 0)
        assert stats.matches[0].venue == "Field A"
        # One round per day
        assert stats.matches[2].match_date == datetime(2024, 3, 2, 9, 0)

    @pytest.mark.parametrize("team_count", [0, 1])
    def test_needs_two_teams(self, store, make_tournament, team_count):
        tournament, _ = make_tournament(store, team_count)
        with pytest.raises(ValidationError):
            generate_round_robin_schedule(store, tournament.id)

    def test_unknown_tournament(self, store):
        with pytest.raises(NotFoundError):
            generate_round_robin_schedule(store, 404)


class TestPlayoffBracket:

    def test_seeds_by_standings(self, store, make_tournament):
        tournament, teams = make_tournament(store, 8)
        # Give the last team the best record so it becomes the 1 seed
        store.save_team(replace(teams[7], wins=5))

        stats = generate_playoff_bracket(store, tournament.id, 8)

        final, semi1, semi2, qf1, qf2, qf3, qf4 = stats.matches
        assert (qf1.team1_id, qf1.team2_id) == (teams[7].id, teams[6].id)
        assert qf1.next_match_id == semi1.id and qf1.winner_advances_to_slot == "team1"
        assert qf4.next_match_id == semi2.id and qf4.winner_advances_to_slot == "team2"
        assert semi2.next_match_id == final.id
        assert final.next_match_id is None

    def test_top_n_only(self, store, make_tournament):
        tournament, teams = make_tournament(store, 6)
        stats = generate_playoff_bracket(store, tournament.id, 4)

        seeded = {m.team1_id for m in stats.matches} | {m.team2_id for m in stats.matches}
        assert seeded - {None} == {t.id for t in teams[:4]}

    def test_keeps_round_robin(self, store, make_tournament):
        tournament, _ = make_tournament(store, 4)
        generate_round_robin_schedule(store, tournament.id)

        generate_playoff_bracket(store, tournament.id, 4)

        assert len(store.list_matches(tournament.id)) == 6 + 3

    @pytest.mark.parametrize("size", [2, 6, 32])
    def test_unsupported_size(self, store, make_tournament, size):
        tournament, _ = make_tournament(store, 8)
        with pytest.raises(ValidationError):
            generate_playoff_bracket(store, tournament.id, size)

    def test_not_enough_teams(self, store, make_tournament):
        tournament, _ = make_tournament(store, 5)
        with pytest.raises(ValidationError):
            generate_playoff_bracket(store, tournament.id, 8)


class TestKnockoutSchedule:

    @pytest.fixture
    def tournament(self, store, make_tournament):
        tournament, _ = make_tournament(
            store, 6, start_date=date(2024, 4, 1), end_date=date(2024, 4, 3)
        )
        return tournament

    def test_structure(self, store, tournament):
        stats = generate_knockout_schedule(store, tournament.id, shuffle_seed=7)

        assert stats.matches_created == 5
        assert stats.rounds == 3
        assert sum(1 for m in stats.matches if m.next_match_id is None) == 1
        assert all(m.match_date is not None and m.venue for m in stats.matches)

    def test_seeded_shuffle_is_reproducible(self, store, tournament):
        first = generate_knockout_schedule(store, tournament.id, shuffle_seed=42)
        first_pairs = [(m.team1_id, m.team2_id) for m in first.matches]
        second = generate_knockout_schedule(store, tournament.id, shuffle_seed=42)

        assert [(m.team1_id, m.team2_id) for m in second.matches] == first_pairs
        assert second.matches_deleted == 5

    def test_rounds_in_date_order(self, store, tournament):
        stats = generate_knockout_schedule(store, tournament.id, shuffle_seed=1)

        final = next(m for m in stats.matches if m.next_match_id is None)
        assert all(m.match_date <= final.match_date for m in stats.matches)

    def test_needs_dates(self, store, make_tournament):
        tournament, _ = make_tournament(store, 4)
        with pytest.raises(ValidationError):
            generate_knockout_schedule(store, tournament.id)


class TestStandingsAndReset:

    def test_standings_order(self, store, make_tournament):
        tournament, teams = make_tournament(store, 3)
        [match] = store.create_matches([
            Match(tournament_id=tournament.id, team1_id=teams[1].id, team2_id=teams[2].id)
        ])
        MatchResultService(store).log_result(match.id, 1, 4)

        assert [t.id for t in standings(store, tournament.id)] == [teams[2].id, teams[0].id, teams[1].id]

    def test_reset_ratings(self, store, make_tournament):
        tournament, teams = make_tournament(store, 2, with_departments=True)
        [match] = store.create_matches([
            Match(tournament_id=tournament.id, team1_id=teams[0].id, team2_id=teams[1].id)
        ])
        MatchResultService(store).log_result(match.id, 3, 0)

        reset_ratings(store, tournament.id, RatingConfig())

        for team in store.list_teams(tournament.id):
            assert (team.rating, team.wins, team.losses, team.win_streak) == (1200, 0, 0, 0)
        # Departments are shared, so left alone unless asked
        assert store.get_department(teams[0].department_id).rating == 1216

        reset_ratings(store, tournament.id, RatingConfig(), include_departments=True)
        assert store.get_department(teams[0].department_id).rating == 1200

    def test_clear_schedule(self, store, make_tournament):
        tournament, _ = make_tournament(store, 4)
        generate_round_robin_schedule(store, tournament.id)

        assert clear_schedule(store, tournament.id) == 6
        assert store.list_matches(tournament.id) == []
