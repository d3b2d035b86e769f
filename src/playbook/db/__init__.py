"""
Database module for PlayBook.

Provides SQLAlchemy ORM models and session management.

Usage:
    from playbook.db import TeamRecord, get_session_factory, session_scope

    with session_scope(get_session_factory()) as session:
        teams = session.query(TeamRecord).all()
"""

from playbook.db.models import (
    Base,
    DepartmentRecord,
    MatchRecord,
    RatingModelRecord,
    TeamRecord,
    TournamentRecord,
)
from playbook.db.session import get_engine, get_session_factory, session_scope

__all__ = [
    # Base
    "Base",
    # Models
    "DepartmentRecord",
    "MatchRecord",
    "RatingModelRecord",
    "TeamRecord",
    "TournamentRecord",
    # Session
    "get_engine",
    "get_session_factory",
    "session_scope",
]
