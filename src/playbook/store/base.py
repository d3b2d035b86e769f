"""
Persistence adapter contract.

Every single-entity operation is atomic on its own. Result logging needs
more: apply_match_result_transaction() writes the completed match, both
teams, their departments and the bracket advancement together or not at
all, and refuses to write over state that changed since the outcome was
computed.

Lookups raise NotFoundError instead of returning None.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from playbook.errors import ConflictError
from playbook.match_statuses import COMPLETED
from playbook.models import Department, Match, RatingModel, Team, Tournament

TEAM_STATE_FIELDS = ("rating", "wins", "losses", "win_streak")


def team_state(team) -> tuple:
    return tuple(getattr(team, name) for name in TEAM_STATE_FIELDS)


class TournamentStore(ABC):
    """Storage for tournaments, teams, departments, matches and rating models."""

    # --- tournaments ------------------------------------------------------

    @abstractmethod
    def get_tournament(self, tournament_id: int) -> Tournament: ...

    @abstractmethod
    def save_tournament(self, tournament: Tournament) -> Tournament:
        """Insert (id None) or update a tournament and return the stored copy."""

    # --- departments ------------------------------------------------------

    @abstractmethod
    def get_department(self, department_id: int) -> Department: ...

    @abstractmethod
    def save_department(self, department: Department) -> Department: ...

    @abstractmethod
    def list_departments(self) -> list[Department]: ...

    # --- teams ------------------------------------------------------------

    @abstractmethod
    def get_team(self, team_id: int) -> Team: ...

    @abstractmethod
    def save_team(self, team: Team) -> Team: ...

    @abstractmethod
    def list_teams(self, tournament_id: int) -> list[Team]:
        """Teams of a tournament in id order."""

    # --- matches ----------------------------------------------------------

    @abstractmethod
    def get_match(self, match_id: int) -> Match: ...

    @abstractmethod
    def save_match(self, match: Match) -> Match:
        """Update a stored match; bumps its version."""

    @abstractmethod
    def create_matches(self, matches: Iterable[Match]) -> list[Match]:
        """Insert new matches, returning them with ids in input order."""

    @abstractmethod
    def list_matches(
        self,
        tournament_id: Optional[int] = None,
        statuses: Optional[Iterable[str]] = None,
    ) -> list[Match]:
        """Matches ordered by match_date (undated first), then id."""

    @abstractmethod
    def delete_matches(self, tournament_id: int) -> int:
        """Delete every match of a tournament, returning how many went."""

    # --- rating models ----------------------------------------------------

    @abstractmethod
    def get_rating_model(self, name: str) -> RatingModel: ...

    @abstractmethod
    def save_rating_model(self, name: str, coefficients: dict) -> RatingModel:
        """Insert or replace the coefficient set stored under ``name``."""

    # --- results ----------------------------------------------------------

    @abstractmethod
    def apply_match_result_transaction(self, outcome) -> None:
        """
        Atomically write a playbook.results.ResultOutcome.

        Raises:
            NotFoundError: A referenced match, team or department is gone
            ConflictError: Stored state no longer matches the outcome's
                originals, or the advancement slot is already decided
        """

    # --- shared checks ----------------------------------------------------

    @staticmethod
    def check_unchanged(outcome, stored_match, stored_teams, stored_departments) -> None:
        """Raise ConflictError if anything changed since the outcome was computed."""
        if stored_match.version != outcome.original_match.version:
            raise ConflictError(
                f"Match {stored_match.id} was updated by another request; reload and retry."
            )
        for stored, original in zip(stored_teams, outcome.original_teams):
            if team_state(stored) != team_state(original):
                raise ConflictError(
                    f"Team {original.id} changed while the result was being logged; retry."
                )
        for stored, original in zip(stored_departments, outcome.original_departments):
            if stored.rating != original.rating:
                raise ConflictError(
                    f"Department {original.id} changed while the result was being logged; retry."
                )

    @staticmethod
    def check_advance(target, advance) -> None:
        """
        The advancement slot must be empty, already hold the team, or hold
        the winner being replaced. A decided downstream match must be
        corrected before its slot changes.
        """
        current = getattr(target, f"{advance.slot}_id")
        if current is None or current == advance.team_id:
            return
        if target.status == COMPLETED:
            raise ConflictError(
                f"Match {target.id} is already completed with team {current} in {advance.slot}; "
                "correct that match first."
            )
        if current != advance.replaces_team_id:
            raise ConflictError(
                f"Slot {advance.slot} of match {target.id} holds team {current}, "
                f"expected team {advance.replaces_team_id}; reload and retry."
            )
