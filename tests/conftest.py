"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

from datetime import date
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from playbook.db.models import Base
from playbook.models import Department, Team, Tournament
from playbook.store import InMemoryStore, SqlAlchemyStore


@pytest.fixture
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory for fast tests that don't need
    PostgreSQL-specific features. StaticPool keeps the single
    in-memory database alive across sessions (and threads, for the
    API tests).
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


@pytest.fixture
def sql_store(session_factory):
    return SqlAlchemyStore(session_factory)


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Run a test against both store implementations."""
    return request.getfixturevalue(f"{request.param}_store")


def build_tournament(
    store,
    team_count: int = 4,
    *,
    k_factor: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    with_departments: bool = False,
) -> tuple[Tournament, list[Team]]:
    """
    Store a tournament with ``team_count`` fresh teams.

    With departments, each team gets its own department.
    """
    tournament = store.save_tournament(Tournament(
        name="Spring Intramurals",
        k_factor=k_factor,
        start_date=start_date,
        end_date=end_date,
    ))
    teams = []
    for number in range(1, team_count + 1):
        department_id = None
        if with_departments:
            department = store.save_department(Department(name=f"Department {number}", acronym=f"D{number}"))
            department_id = department.id
        teams.append(store.save_team(Team(
            name=f"Team {number}",
            tournament_id=tournament.id,
            department_id=department_id,
        )))
    return tournament, teams


@pytest.fixture
def make_tournament():
    return build_tournament
