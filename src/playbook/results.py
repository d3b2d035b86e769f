"""
Match result processing.

Turning a score line into rating, record and bracket changes:

1. Validate the scores (both required, non-negative integers, no ties)
2. Work out winner and loser
3. Compute new ratings from each team's pre-match rating
4. Winner: win +1, streak +1. Loser: loss +1, streak reset to 0
5. Department ratings move too when the teams come from different departments
6. If the match has a forward link, the winner goes into the linked slot

apply_result() does steps 1-6 as a pure calculation and returns a
ResultOutcome. MatchResultService reads the current state from a store,
calls apply_result() and hands the outcome to the store's
apply_match_result_transaction(), which writes everything atomically.

Corrections: re-logging a completed match reverses the previous outcome
first. The first completion stores a pre-match snapshot (ratings and
streaks) plus the rating changes it applied; a correction recomputes from
that snapshot and swaps the old changes for the new ones, so the result is
the same as logging the corrected score on a pending match. Keeping the
same winner only rewrites the scores. Changing the winner restores streaks
from the snapshot, so it is refused with ConflictError once either team
has played again or had its record reset (games played no longer matches
the snapshot).

Usage:
    service = MatchResultService(store, RatingConfig.from_settings())
    outcome = service.log_result(match_id=42, team1_score=10, team2_score=5)
    print(outcome.winner.rating, outcome.advance)
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from playbook.elo.calculator import EloCalculator, RatingUpdate, update_ratings
from playbook.elo.constants import RatingConfig
from playbook.errors import ConflictError, MatchLockedError, NotFoundError, ValidationError
from playbook.match_statuses import COMPLETED
from playbook.models import Department, Match, Team

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviousResult:
    """Outcome already recorded on a match that is being re-logged."""
    winner_id: int
    loser_id: int
    was_completed: bool = True

    @classmethod
    def from_match(cls, match: Match) -> Optional["PreviousResult"]:
        if match.winner_id is None:
            return None
        return cls(winner_id=match.winner_id, loser_id=match.loser_id)


@dataclass(frozen=True)
class SlotAdvance:
    """
    Write ``team_id`` into ``slot`` of match ``match_id``.

    ``replaces_team_id`` is the previous winner when a correction moves a
    different team on; the slot must still hold it (or be empty).
    """
    match_id: int
    slot: str
    team_id: int
    replaces_team_id: Optional[int] = None


@dataclass
class ResultOutcome:
    """
    Everything a result changes, ready to be written in one transaction.

    The ``original_*`` fields hold the records the outcome was computed
    from; stores compare them with what is stored to detect a concurrent
    update.
    """
    match: Match
    team1: Team
    team2: Team
    winner_id: int
    loser_id: int
    rating_update: RatingUpdate
    advance: Optional[SlotAdvance] = None
    departments: tuple[Department, ...] = ()
    correction: bool = False
    original_match: Optional[Match] = None
    original_teams: tuple[Team, ...] = ()
    original_departments: tuple[Department, ...] = ()

    @property
    def teams(self) -> tuple[Team, Team]:
        return (self.team1, self.team2)

    @property
    def winner(self) -> Team:
        return self.team1 if self.team1.id == self.winner_id else self.team2

    @property
    def loser(self) -> Team:
        return self.team2 if self.team1.id == self.winner_id else self.team1


def validate_scores(team1_score, team2_score) -> None:
    """
    Check a submitted score line.

    Raises:
        ValidationError: Missing, non-integer, negative or tied scores
    """
    if team1_score is None or team2_score is None:
        raise ValidationError("Team scores are required.")
    for score in (team1_score, team2_score):
        if isinstance(score, bool) or not isinstance(score, int):
            raise ValidationError(f"scores must be integers, got {score!r}")
        if score < 0:
            raise ValidationError(f"scores must not be negative, got {score}")
    if team1_score == team2_score:
        raise ValidationError("Tied scores are not a valid result; one team must win.")


def _settle_team(
    team: Team,
    *,
    streak_before: int,
    change: int,
    previous_change: Optional[int],
    won: bool,
    previously_won: Optional[bool],
) -> Team:
    updated = replace(team)
    updated.rating = team.rating - (previous_change or 0) + change

    # Same winner: record and streak already count this result
    if previously_won == won:
        return updated

    # Reverse the counts of the result being corrected
    if previously_won is True:
        updated.wins = max(updated.wins - 1, 0)
    elif previously_won is False:
        updated.losses = max(updated.losses - 1, 0)

    if won:
        updated.wins += 1
        updated.win_streak = streak_before + 1
    else:
        updated.losses += 1
        updated.win_streak = 0
    return updated


def _streak_before(team: Team, snapshot: Optional[int], previous: Optional[PreviousResult]) -> int:
    if previous is None:
        return team.win_streak
    if snapshot is not None:
        return snapshot
    # Matches completed without a snapshot: undo the old winner's increment
    if previous.winner_id == team.id:
        return max(team.win_streak - 1, 0)
    return team.win_streak


def _games_played(team: Team) -> int:
    return team.wins + team.losses


def _check_record_untouched(team: Team, games_before: Optional[int], match_id: Optional[int]) -> None:
    """A flipped result needs the team's record as this match left it."""
    if games_before is not None and _games_played(team) != games_before + 1:
        raise ConflictError(
            f"Team {team.id} has played or been reset since match {match_id}; "
            "correct its later results first."
        )


def apply_result(
    match: Match,
    team1: Team,
    team2: Team,
    team1_score: int,
    team2_score: int,
    config: RatingConfig,
    previous: Optional[PreviousResult] = None,
    departments: Optional[tuple[Department, Department]] = None,
) -> ResultOutcome:
    """
    Compute the full effect of a result without writing anything.

    Args:
        match: The match as currently stored
        team1: Team in the match's team1 slot
        team2: Team in the match's team2 slot
        team1_score: Points scored by team1
        team2_score: Points scored by team2
        config: Rating configuration (K factor already resolved for the tournament)
        previous: Outcome already recorded on the match, if it is being
            corrected. Derived from the match when not given.
        departments: (team1's department, team2's department) when both
            teams have one

    Returns:
        ResultOutcome with the updated match, teams, departments and any
        bracket advancement

    Raises:
        ValidationError: Bad scores, or teams that don't belong to the match
        NotFoundError: The match is still waiting on a team
        MatchLockedError: The match is finalized
        ConflictError: A correction changes the winner after either team
            has played again
    """
    validate_scores(team1_score, team2_score)
    if match.is_finalized:
        raise MatchLockedError(f"Match {match.id} is finalized and cannot be edited.")
    if match.team1_id is None or match.team2_id is None:
        raise NotFoundError("team", None, f"Match {match.id} does not have both teams assigned yet.")
    if team1.id != match.team1_id or team2.id != match.team2_id:
        raise ValidationError(f"Teams {team1.id}/{team2.id} are not the teams of match {match.id}.")

    if previous is None:
        previous = PreviousResult.from_match(match)
    if previous is not None and not previous.was_completed:
        previous = None
    if previous is not None and {previous.winner_id, previous.loser_id} != {team1.id, team2.id}:
        raise ValidationError(f"Previous result does not refer to the teams of match {match.id}.")

    team1_won = team1_score > team2_score
    winner_id, loser_id = (team1.id, team2.id) if team1_won else (team2.id, team1.id)

    previous_change1 = match.team1_rating_change if previous else None
    previous_change2 = match.team2_rating_change if previous else None
    rating1_before = team1.rating - (previous_change1 or 0)
    rating2_before = team2.rating - (previous_change2 or 0)
    if previous and match.team1_rating_before is not None and match.team2_rating_before is not None:
        rating1_before = match.team1_rating_before
        rating2_before = match.team2_rating_before
    streak1_before = _streak_before(team1, match.team1_streak_before, previous)
    streak2_before = _streak_before(team2, match.team2_streak_before, previous)
    games1_before = match.team1_games_before if previous else _games_played(team1)
    games2_before = match.team2_games_before if previous else _games_played(team2)

    if previous is not None and previous.winner_id != winner_id:
        _check_record_untouched(team1, games1_before, match.id)
        _check_record_untouched(team2, games2_before, match.id)

    update = EloCalculator(config).calculate(rating1_before, rating2_before, "A" if team1_won else "B")

    new_team1 = _settle_team(
        team1,
        streak_before=streak1_before,
        change=update.team_a_change,
        previous_change=previous_change1,
        won=team1_won,
        previously_won=None if previous is None else previous.winner_id == team1.id,
    )
    new_team2 = _settle_team(
        team2,
        streak_before=streak2_before,
        change=update.team_b_change,
        previous_change=previous_change2,
        won=not team1_won,
        previously_won=None if previous is None else previous.winner_id == team2.id,
    )

    new_departments: tuple[Department, ...] = ()
    originals: tuple[Department, ...] = ()
    department_changes: tuple[Optional[int], Optional[int]] = (None, None)
    if departments and all(departments) and departments[0].id != departments[1].id:
        dept1, dept2 = departments
        dept1_before = dept1.rating - ((match.department1_rating_change or 0) if previous else 0)
        dept2_before = dept2.rating - ((match.department2_rating_change or 0) if previous else 0)
        new_dept1, new_dept2 = update_ratings(
            dept1_before, dept2_before, 1 if team1_won else 0, config.k_factor, config.spread
        )
        new_departments = (replace(dept1, rating=new_dept1), replace(dept2, rating=new_dept2))
        originals = (dept1, dept2)
        department_changes = (new_dept1 - dept1_before, new_dept2 - dept2_before)

    completed = replace(
        match,
        team1_score=team1_score,
        team2_score=team2_score,
        status=COMPLETED,
        team1_rating_before=rating1_before,
        team2_rating_before=rating2_before,
        team1_streak_before=streak1_before,
        team2_streak_before=streak2_before,
        team1_games_before=games1_before,
        team2_games_before=games2_before,
        team1_rating_change=update.team_a_change,
        team2_rating_change=update.team_b_change,
        department1_rating_change=department_changes[0],
        department2_rating_change=department_changes[1],
        version=match.version + 1,
    )
    completed.validate()

    advance = None
    if completed.next_match_id is not None:
        advance = SlotAdvance(
            match_id=completed.next_match_id,
            slot=completed.winner_advances_to_slot,
            team_id=winner_id,
            replaces_team_id=previous.winner_id if previous else None,
        )

    return ResultOutcome(
        match=completed,
        team1=new_team1,
        team2=new_team2,
        winner_id=winner_id,
        loser_id=loser_id,
        rating_update=update,
        advance=advance,
        departments=new_departments,
        correction=previous is not None,
        original_match=match,
        original_teams=(team1, team2),
        original_departments=originals,
    )


class MatchResultService:
    """
    Logs match results against a store.

    Reads the match, its teams, their departments and the tournament's K
    factor, computes the outcome with apply_result() and commits it with
    the store's multi-entity transaction.
    """

    def __init__(self, store, config: Optional[RatingConfig] = None):
        self.store = store
        self.config = config or RatingConfig()

    def log_result(self, match_id: int, team1_score: int, team2_score: int) -> ResultOutcome:
        """
        Record a score line for a match.

        Raises:
            ValidationError: Bad scores
            NotFoundError: Unknown match, or a team slot is empty or dangling
            MatchLockedError: The match is finalized
            ConflictError: The match or its teams changed while we computed,
                or a changed winner comes after later games
        """
        validate_scores(team1_score, team2_score)

        match = self.store.get_match(match_id)
        if match.team1_id is None or match.team2_id is None:
            raise NotFoundError("team", None, f"Match {match_id} does not have both teams assigned yet.")
        team1 = self.store.get_team(match.team1_id)
        team2 = self.store.get_team(match.team2_id)

        config = self.config
        if match.tournament_id is not None:
            tournament = self.store.get_tournament(match.tournament_id)
            config = config.for_tournament(tournament.k_factor)

        departments = None
        if (
            team1.department_id is not None
            and team2.department_id is not None
            and team1.department_id != team2.department_id
        ):
            departments = (
                self.store.get_department(team1.department_id),
                self.store.get_department(team2.department_id),
            )

        outcome = apply_result(
            match,
            team1,
            team2,
            team1_score,
            team2_score,
            config,
            previous=PreviousResult.from_match(match),
            departments=departments,
        )
        self.store.apply_match_result_transaction(outcome)

        logger.info(
            "%s match %s: %s-%s, winner team %s now %s, loser team %s now %s",
            "Corrected" if outcome.correction else "Logged",
            match_id,
            team1_score,
            team2_score,
            outcome.winner_id,
            outcome.winner.rating,
            outcome.loser_id,
            outcome.loser.rating,
        )
        if outcome.advance is not None:
            logger.debug(
                "Advanced team %s to %s of match %s",
                outcome.advance.team_id,
                outcome.advance.slot,
                outcome.advance.match_id,
            )
        return outcome
