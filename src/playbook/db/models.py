"""
SQLAlchemy ORM models for PlayBook.

Column names match the field names of the dataclasses in playbook.models;
playbook.store.sql copies between the two.

Tables:
- tournaments: Competitions, with an optional per-tournament K factor
- departments: Departments teams belong to (secondary rating pool)
- teams: Competitors with rating, record and win streak
- matches: All matches (pending, live and completed) with bracket links
- rating_models: Named coefficient sets for the win predictor
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    false,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from playbook.elo.constants import DEFAULT_RATING


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TournamentRecord(Base):
    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Falls back to the configured default when NULL
    k_factor: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<TournamentRecord(id={self.id}, name='{self.name}')>"


class DepartmentRecord(Base):
    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    acronym: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_RATING)

    def __repr__(self) -> str:
        return f"<DepartmentRecord(id={self.id}, acronym='{self.acronym}', rating={self.rating})>"


class TeamRecord(Base):
    """
    A competitor.

    rating/wins/losses/win_streak are only written by the result
    transaction and by an explicit ratings reset.
    """
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tournament_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    department_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )

    rating: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_RATING)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    win_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("win_streak >= 0", name="ck_teams_win_streak_non_negative"),
        CheckConstraint("wins >= 0 AND losses >= 0", name="ck_teams_record_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<TeamRecord(id={self.id}, name='{self.name}', rating={self.rating})>"


class MatchRecord(Base):
    """
    Unified match table - from generated fixture to completed result.

    Status lifecycle:
    - 'pending': Created by schedule/bracket generation
    - 'live' / 'in_progress': Being played (set by the app, not by the core)
    - 'completed': Result logged

    Either team slot may be NULL while waiting on bracket advancement.
    """
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=True
    )

    team1_id: Mapped[Optional[int]] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    team2_id: Mapped[Optional[int]] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    team1_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    team2_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    round_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Winner moves into winner_advances_to_slot ('team1'/'team2') of next_match_id
    next_match_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("matches.id", ondelete="SET NULL"), nullable=True
    )
    winner_advances_to_slot: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    match_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    venue: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_finalized: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    # ==========================================================================
    # Rating snapshot (set on first completion, reused by corrections)
    # ==========================================================================

    team1_rating_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    team2_rating_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    team1_streak_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    team2_streak_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    team1_games_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    team2_games_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    team1_rating_change: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    team2_rating_change: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    department1_rating_change: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    department2_rating_change: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(
            "(next_match_id IS NULL AND winner_advances_to_slot IS NULL)"
            " OR (next_match_id IS NOT NULL AND winner_advances_to_slot IN ('team1', 'team2'))",
            name="ck_matches_forward_link",
        ),
        CheckConstraint(
            "(team1_score IS NULL AND team2_score IS NULL)"
            " OR (team1_score IS NOT NULL AND team2_score IS NOT NULL)",
            name="ck_matches_scores_together",
        ),
        Index("idx_matches_tournament_date", "tournament_id", "match_date"),
    )

    def __repr__(self) -> str:
        return f"<MatchRecord(id={self.id}, status='{self.status}', round='{self.round_name}')>"


class RatingModelRecord(Base):
    """Coefficients for the logistic win predictor, keyed by model name."""

    __tablename__ = "rating_models"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    # {"intercept": ..., "elo_diff": ..., "win_streak_diff": ...}
    coefficients: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<RatingModelRecord(name='{self.name}')>"
