"""
Dict-backed TournamentStore.

Used by the tests and by anything that wants the core without a database.
Records are copied on the way in and out so callers can never mutate
stored state directly. A single re-entrant lock serialises writers; the
result transaction stages every change before committing any of them.
"""

import threading
from dataclasses import replace
from datetime import datetime
from itertools import count
from typing import Iterable, Optional

from playbook.errors import NotFoundError
from playbook.models import Department, Match, RatingModel, Team, Tournament
from playbook.store.base import TournamentStore


def _match_sort_key(match: Match):
    return (match.match_date is not None, match.match_date or datetime.min, match.id)


class InMemoryStore(TournamentStore):
    def __init__(self):
        self._lock = threading.RLock()
        self._ids = {kind: count(1) for kind in ("tournament", "department", "team", "match")}
        self._tournaments: dict[int, Tournament] = {}
        self._departments: dict[int, Department] = {}
        self._teams: dict[int, Team] = {}
        self._matches: dict[int, Match] = {}
        self._models: dict[str, RatingModel] = {}

    def _save(self, kind: str, table: dict, record):
        with self._lock:
            if record.id is None:
                record = replace(record, id=next(self._ids[kind]))
            else:
                record = replace(record)
            table[record.id] = record
            return replace(record)

    @staticmethod
    def _get(kind: str, table: dict, record_id):
        record = table.get(record_id)
        if record is None:
            raise NotFoundError(kind, record_id)
        return replace(record)

    # --- tournaments ------------------------------------------------------

    def get_tournament(self, tournament_id: int) -> Tournament:
        return self._get("tournament", self._tournaments, tournament_id)

    def save_tournament(self, tournament: Tournament) -> Tournament:
        return self._save("tournament", self._tournaments, tournament)

    # --- departments ------------------------------------------------------

    def get_department(self, department_id: int) -> Department:
        return self._get("department", self._departments, department_id)

    def save_department(self, department: Department) -> Department:
        return self._save("department", self._departments, department)

    def list_departments(self) -> list[Department]:
        with self._lock:
            return [replace(d) for _, d in sorted(self._departments.items())]

    # --- teams ------------------------------------------------------------

    def get_team(self, team_id: int) -> Team:
        return self._get("team", self._teams, team_id)

    def save_team(self, team: Team) -> Team:
        return self._save("team", self._teams, team)

    def list_teams(self, tournament_id: int) -> list[Team]:
        with self._lock:
            return [
                replace(t) for _, t in sorted(self._teams.items())
                if t.tournament_id == tournament_id
            ]

    # --- matches ----------------------------------------------------------

    def get_match(self, match_id: int) -> Match:
        return self._get("match", self._matches, match_id)

    def save_match(self, match: Match) -> Match:
        match.validate()
        with self._lock:
            stored = self._get("match", self._matches, match.id)
            return self._save("match", self._matches, replace(match, version=stored.version + 1))

    def create_matches(self, matches: Iterable[Match]) -> list[Match]:
        matches = list(matches)
        for match in matches:
            match.validate()
        with self._lock:
            return [
                self._save("match", self._matches, replace(match, id=None, version=0))
                for match in matches
            ]

    def list_matches(
        self,
        tournament_id: Optional[int] = None,
        statuses: Optional[Iterable[str]] = None,
    ) -> list[Match]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            found = [
                replace(m) for m in self._matches.values()
                if (tournament_id is None or m.tournament_id == tournament_id)
                and (wanted is None or m.status in wanted)
            ]
        return sorted(found, key=_match_sort_key)

    def delete_matches(self, tournament_id: int) -> int:
        with self._lock:
            doomed = [i for i, m in self._matches.items() if m.tournament_id == tournament_id]
            for match_id in doomed:
                del self._matches[match_id]
            return len(doomed)

    # --- rating models ----------------------------------------------------

    def get_rating_model(self, name: str) -> RatingModel:
        return self._get("rating model", self._models, name)

    def save_rating_model(self, name: str, coefficients: dict) -> RatingModel:
        model = RatingModel.from_coefficients(name, coefficients, updated_at=datetime.utcnow())
        with self._lock:
            self._models[name] = model
        return replace(model)

    # --- results ----------------------------------------------------------

    def apply_match_result_transaction(self, outcome) -> None:
        with self._lock:
            stored_match = self._get("match", self._matches, outcome.match.id)
            stored_teams = [self._get("team", self._teams, t.id) for t in outcome.teams]
            stored_departments = [
                self._get("department", self._departments, d.id) for d in outcome.departments
            ]
            self.check_unchanged(outcome, stored_match, stored_teams, stored_departments)

            # Stage everything, then commit in one go
            staged_matches = {stored_match.id: replace(outcome.match)}
            if outcome.advance is not None:
                target = self._get("match", self._matches, outcome.advance.match_id)
                self.check_advance(target, outcome.advance)
                target = replace(target, version=target.version + 1)
                setattr(target, f"{outcome.advance.slot}_id", outcome.advance.team_id)
                staged_matches[target.id] = target

            self._matches.update(staged_matches)
            for team in outcome.teams:
                self._teams[team.id] = replace(team)
            for department in outcome.departments:
                self._departments[department.id] = replace(department)
