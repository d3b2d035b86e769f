"""
SQLAlchemy-backed TournamentStore.

Each operation runs in its own session (commit on success, rollback on
any exception). Records cross the boundary as playbook.models dataclasses;
rows never leave the session.

The result transaction locks rows with SELECT ... FOR UPDATE in a fixed
order: the match and its advancement target, then both teams, then their
departments, each group by ascending id. It checks nothing moved since the
outcome was computed and writes everything before the single commit.
Deadlocks and serialization failures surface as ConflictError.
"""

import logging
from contextlib import contextmanager
from dataclasses import fields
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from playbook.db.models import (
    DepartmentRecord,
    MatchRecord,
    RatingModelRecord,
    TeamRecord,
    TournamentRecord,
)
from playbook.db.session import get_session_factory, session_scope
from playbook.errors import ConflictError, NotFoundError
from playbook.models import Department, Match, RatingModel, Team, Tournament
from playbook.store.base import TEAM_STATE_FIELDS, TournamentStore

logger = logging.getLogger(__name__)

# PostgreSQL deadlock_detected and serialization_failure
RETRYABLE_PGCODES = ("40P01", "40001")


def _field_names(record_cls) -> list[str]:
    return [f.name for f in fields(record_cls)]


def _from_row(record_cls, row):
    return record_cls(**{name: getattr(row, name) for name in _field_names(record_cls)})


def _copy_into(row, record, names: Optional[Iterable[str]] = None) -> None:
    for name in names or _field_names(type(record)):
        if name != "id":
            setattr(row, name, getattr(record, name))


def _new_row(row_cls, record):
    return row_cls(**{
        name: getattr(record, name)
        for name in _field_names(type(record))
        if name != "id"
    })


class SqlAlchemyStore(TournamentStore):
    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._factory = session_factory or get_session_factory()

    @contextmanager
    def _session(self):
        try:
            with session_scope(self._factory) as session:
                yield session
        except IntegrityError as exc:
            logger.warning("Integrity error, transaction rolled back: %s", exc.orig)
            raise ConflictError(f"The database rejected the update: {exc.orig}") from exc
        except OperationalError as exc:
            if getattr(exc.orig, "pgcode", None) not in RETRYABLE_PGCODES:
                raise
            logger.warning("Transaction aborted by the database, retry: %s", exc.orig)
            raise ConflictError(f"Concurrent update, retry: {exc.orig}") from exc

    @staticmethod
    def _get_row(session: Session, row_cls, record_id, entity: str):
        row = session.get(row_cls, record_id)
        if row is None:
            raise NotFoundError(entity, record_id)
        return row

    def _get(self, row_cls, record_cls, record_id, entity: str):
        with self._session() as session:
            return _from_row(record_cls, self._get_row(session, row_cls, record_id, entity))

    def _save(self, row_cls, record, entity: str):
        with self._session() as session:
            if record.id is None:
                row = _new_row(row_cls, record)
                session.add(row)
            else:
                row = self._get_row(session, row_cls, record.id, entity)
                _copy_into(row, record)
            session.flush()
            return _from_row(type(record), row)

    @staticmethod
    def _lock_rows(session: Session, row_cls, ids: list, entity: str) -> dict:
        if not ids:
            return {}
        rows = (
            session.query(row_cls)
            .filter(row_cls.id.in_(sorted(set(ids))))
            .order_by(row_cls.id)
            .with_for_update()
            .all()
        )
        by_id = {row.id: row for row in rows}
        for record_id in ids:
            if record_id not in by_id:
                raise NotFoundError(entity, record_id)
        return by_id

    # --- tournaments ------------------------------------------------------

    def get_tournament(self, tournament_id: int) -> Tournament:
        return self._get(TournamentRecord, Tournament, tournament_id, "tournament")

    def save_tournament(self, tournament: Tournament) -> Tournament:
        return self._save(TournamentRecord, tournament, "tournament")

    # --- departments ------------------------------------------------------

    def get_department(self, department_id: int) -> Department:
        return self._get(DepartmentRecord, Department, department_id, "department")

    def save_department(self, department: Department) -> Department:
        return self._save(DepartmentRecord, department, "department")

    def list_departments(self) -> list[Department]:
        with self._session() as session:
            rows = session.query(DepartmentRecord).order_by(DepartmentRecord.id).all()
            return [_from_row(Department, row) for row in rows]

    # --- teams ------------------------------------------------------------

    def get_team(self, team_id: int) -> Team:
        return self._get(TeamRecord, Team, team_id, "team")

    def save_team(self, team: Team) -> Team:
        return self._save(TeamRecord, team, "team")

    def list_teams(self, tournament_id: int) -> list[Team]:
        with self._session() as session:
            rows = (
                session.query(TeamRecord)
                .filter(TeamRecord.tournament_id == tournament_id)
                .order_by(TeamRecord.id)
                .all()
            )
            return [_from_row(Team, row) for row in rows]

    # --- matches ----------------------------------------------------------

    def get_match(self, match_id: int) -> Match:
        return self._get(MatchRecord, Match, match_id, "match")

    def save_match(self, match: Match) -> Match:
        match.validate()
        with self._session() as session:
            row = self._get_row(session, MatchRecord, match.id, "match")
            version = row.version
            _copy_into(row, match)
            row.version = version + 1
            session.flush()
            return _from_row(Match, row)

    def create_matches(self, matches: Iterable[Match]) -> list[Match]:
        matches = list(matches)
        for match in matches:
            match.validate()
        with self._session() as session:
            rows = []
            for match in matches:
                row = _new_row(MatchRecord, match)
                row.version = 0
                session.add(row)
                rows.append(row)
            session.flush()
            return [_from_row(Match, row) for row in rows]

    def list_matches(
        self,
        tournament_id: Optional[int] = None,
        statuses: Optional[Iterable[str]] = None,
    ) -> list[Match]:
        with self._session() as session:
            query = session.query(MatchRecord)
            if tournament_id is not None:
                query = query.filter(MatchRecord.tournament_id == tournament_id)
            if statuses is not None:
                query = query.filter(MatchRecord.status.in_(list(statuses)))
            rows = query.order_by(
                MatchRecord.match_date.is_not(None),
                MatchRecord.match_date,
                MatchRecord.id,
            ).all()
            return [_from_row(Match, row) for row in rows]

    def delete_matches(self, tournament_id: int) -> int:
        with self._session() as session:
            return (
                session.query(MatchRecord)
                .filter(MatchRecord.tournament_id == tournament_id)
                .delete(synchronize_session=False)
            )

    # --- rating models ----------------------------------------------------

    def get_rating_model(self, name: str) -> RatingModel:
        with self._session() as session:
            row = session.query(RatingModelRecord).filter(RatingModelRecord.name == name).first()
            if row is None:
                raise NotFoundError("rating model", name)
            return RatingModel.from_coefficients(row.name, row.coefficients, updated_at=row.updated_at)

    def save_rating_model(self, name: str, coefficients: dict) -> RatingModel:
        model = RatingModel.from_coefficients(name, coefficients)
        with self._session() as session:
            row = (
                session.query(RatingModelRecord)
                .filter(RatingModelRecord.name == name)
                .with_for_update()
                .first()
            )
            if row is None:
                row = RatingModelRecord(name=name)
                session.add(row)
            row.coefficients = model.to_coefficients()
            row.updated_at = datetime.utcnow()
            session.flush()
            return RatingModel.from_coefficients(row.name, row.coefficients, updated_at=row.updated_at)

    # --- results ----------------------------------------------------------

    def apply_match_result_transaction(self, outcome) -> None:
        advance = outcome.advance
        match_ids = [outcome.match.id]
        if advance is not None:
            match_ids.append(advance.match_id)

        with self._session() as session:
            match_rows = self._lock_rows(session, MatchRecord, match_ids, "match")
            team_rows = self._lock_rows(session, TeamRecord, [t.id for t in outcome.teams], "team")
            department_rows = self._lock_rows(
                session, DepartmentRecord, [d.id for d in outcome.departments], "department"
            )

            match_row = match_rows[outcome.match.id]
            self.check_unchanged(
                outcome,
                match_row,
                [team_rows[t.id] for t in outcome.original_teams],
                [department_rows[d.id] for d in outcome.original_departments],
            )

            if advance is not None:
                target = match_rows[advance.match_id]
                self.check_advance(target, advance)
                setattr(target, f"{advance.slot}_id", advance.team_id)
                target.version += 1

            _copy_into(match_row, outcome.match)
            for team in outcome.teams:
                _copy_into(team_rows[team.id], team, TEAM_STATE_FIELDS)
            for department in outcome.departments:
                department_rows[department.id].rating = department.rating
            session.flush()
