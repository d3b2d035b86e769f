"""
Domain records for the PlayBook core.

These are plain dataclasses shared by the pure rating/scheduling code and
the persistence adapters. Field names match the column names in
playbook.db.models so the SQL store can copy between them generically.

Records:
- Tournament: A competition with an optional K factor and date window
- Department: Owning department of a team (secondary rating pool)
- Team: A competitor with rating, win/loss record and current win streak
- Match: A fixture, its scores, lifecycle status and bracket forward link
- RatingModel: Coefficients for the logistic win-probability model
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Hashable, Literal, Optional

from playbook.elo.constants import DEFAULT_RATING
from playbook.errors import ValidationError
from playbook.match_statuses import COMPLETED, PENDING

MatchSlot = Literal["team1", "team2"]
MATCH_SLOTS: tuple[str, ...] = ("team1", "team2")


@dataclass
class Tournament:
    id: Optional[int] = None
    name: str = ""
    k_factor: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class Department:
    id: Optional[int] = None
    name: str = ""
    acronym: Optional[str] = None
    rating: int = DEFAULT_RATING


@dataclass
class Team:
    """
    A competitor.

    rating, wins, losses and win_streak only change through the match
    result processor (or an explicit ratings reset).
    """
    id: Optional[int] = None
    name: str = ""
    tournament_id: Optional[int] = None
    department_id: Optional[int] = None
    rating: int = DEFAULT_RATING
    wins: int = 0
    losses: int = 0
    win_streak: int = 0


@dataclass
class Match:
    """
    A fixture between two team slots.

    Either slot may be empty while the match waits on bracket advancement.
    A completed match stores the pre-match snapshot of both teams and the
    rating changes it applied, so a later correction can reverse them.
    """
    id: Optional[int] = None
    tournament_id: Optional[int] = None
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None
    status: str = PENDING
    round_name: Optional[str] = None

    # Bracket forward link: the winner is written into this slot of next_match_id
    next_match_id: Optional[int] = None
    winner_advances_to_slot: Optional[MatchSlot] = None

    match_date: Optional[datetime] = None
    venue: Optional[str] = None
    is_finalized: bool = False

    # Pre-match snapshot, set the first time the match is completed
    team1_rating_before: Optional[int] = None
    team2_rating_before: Optional[int] = None
    team1_streak_before: Optional[int] = None
    team2_streak_before: Optional[int] = None
    # Games played (wins + losses) before the match
    team1_games_before: Optional[int] = None
    team2_games_before: Optional[int] = None

    # Applied rating changes, reversed on correction
    team1_rating_change: Optional[int] = None
    team2_rating_change: Optional[int] = None
    department1_rating_change: Optional[int] = None
    department2_rating_change: Optional[int] = None

    # Bumped by every stored update, used for optimistic concurrency
    version: int = 0

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED

    @property
    def has_scores(self) -> bool:
        return self.team1_score is not None and self.team2_score is not None

    @property
    def winner_id(self) -> Optional[int]:
        if not self.is_completed or not self.has_scores or self.team1_score == self.team2_score:
            return None
        return self.team1_id if self.team1_score > self.team2_score else self.team2_id

    @property
    def loser_id(self) -> Optional[int]:
        if self.winner_id is None:
            return None
        return self.team2_id if self.winner_id == self.team1_id else self.team1_id

    def validate(self) -> None:
        """Check the record-level invariants, raising ValidationError."""
        if (self.next_match_id is None) != (self.winner_advances_to_slot is None):
            raise ValidationError(
                "next_match_id and winner_advances_to_slot must be set together"
            )
        if self.winner_advances_to_slot is not None and self.winner_advances_to_slot not in MATCH_SLOTS:
            raise ValidationError(
                f"winner_advances_to_slot must be one of {MATCH_SLOTS}, "
                f"got {self.winner_advances_to_slot!r}"
            )
        if (self.team1_score is None) != (self.team2_score is None):
            raise ValidationError("team1_score and team2_score must be set together")


@dataclass(frozen=True)
class Pairing:
    """Two competitors to be turned into a match. Not persisted."""
    team1_id: Hashable
    team2_id: Hashable

    @property
    def teams(self) -> frozenset:
        return frozenset((self.team1_id, self.team2_id))


@dataclass
class RatingModel:
    """
    Named coefficient set for the logistic win predictor.

    Persisted under ``name`` (normally "win_predictor"). Only changed by
    an explicit retrain.
    """
    name: str
    intercept: float = 0.0
    elo_diff_weight: float = 0.0
    win_streak_diff_weight: float = 0.0
    updated_at: Optional[datetime] = field(default=None, compare=False)

    # Stored coefficient keys, with the long attribute names accepted on input
    _KEY_ALIASES = {
        "intercept": ("intercept",),
        "elo_diff_weight": ("elo_diff", "elo_diff_weight"),
        "win_streak_diff_weight": ("win_streak_diff", "win_streak_diff_weight"),
    }

    @classmethod
    def from_coefficients(
        cls,
        name: str,
        coefficients: dict[str, Any],
        updated_at: Optional[datetime] = None,
    ) -> "RatingModel":
        """
        Build a model from a stored coefficient mapping.

        Raises:
            ValidationError: If a coefficient is missing or not numeric
        """
        if not isinstance(coefficients, dict):
            raise ValidationError("coefficients must be a mapping")

        values = {}
        for attr, keys in cls._KEY_ALIASES.items():
            raw = next((coefficients[k] for k in keys if k in coefficients), None)
            if raw is None:
                raise ValidationError(f"coefficient '{keys[0]}' is required")
            if isinstance(raw, bool):
                raise ValidationError(f"coefficient '{keys[0]}' must be a number")
            try:
                values[attr] = float(raw)
            except (TypeError, ValueError):
                raise ValidationError(f"coefficient '{keys[0]}' must be a number") from None
        return cls(name=name, updated_at=updated_at, **values)

    def to_coefficients(self) -> dict[str, float]:
        return {
            "intercept": self.intercept,
            "elo_diff": self.elo_diff_weight,
            "win_streak_diff": self.win_streak_diff_weight,
        }
