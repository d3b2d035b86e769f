"""
Elo rating calculator for intramural matches.

Implements the standard Elo formula with integer ratings:

  Expected score: E_A = 1 / (1 + 10^((R_B - R_A) / S))
  New rating: R'_A = round(R_A + K * (actual - expected))

Where:
  R_A, R_B = Current ratings of teams A and B
  K = How much ratings change (volatility factor)
  S = Spread factor (400)

There is no draw outcome: the actual score is 1 for a win and 0 for a loss.
Ratings are rounded half away from zero, which matches the half-up rounding
the web frontend applied for the (positive) ratings it displays.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from playbook.elo.constants import RATING_SPREAD, RatingConfig
from playbook.errors import ValidationError


def expected_score(rating_a: float, rating_b: float, spread: float = RATING_SPREAD) -> float:
    """Probability that A beats B under the Elo model."""
    try:
        return 1.0 / (1.0 + 10.0 ** ((rating_b - rating_a) / spread))
    except OverflowError:
        return 0.0 if rating_b > rating_a else 1.0


def round_rating(value: float) -> int:
    """Round a rating to the nearest integer, halves away from zero."""
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def update_ratings(
    rating_a: int,
    rating_b: int,
    score_a: int,
    k: float,
    spread: float = RATING_SPREAD,
) -> tuple[int, int]:
    """
    Calculate both teams' new ratings after a match.

    Args:
        rating_a: Team A's rating before the match
        rating_b: Team B's rating before the match
        score_a: 1 if A won, 0 if A lost
        k: K factor, must be positive
        spread: Elo spread (400 unless configured otherwise)

    Returns:
        Tuple of (new_rating_a, new_rating_b)

    Raises:
        ValidationError: If score_a is not 0 or 1, or k is not positive

    Example:
        >>> update_ratings(1200, 1200, 1, 32)
        (1216, 1184)
    """
    if score_a not in (0, 1):
        raise ValidationError(f"score_a must be 0 or 1, got {score_a!r}")
    if k <= 0:
        raise ValidationError(f"k must be positive, got {k!r}")

    exp_a = expected_score(rating_a, rating_b, spread)
    exp_b = expected_score(rating_b, rating_a, spread)

    new_a = round_rating(rating_a + k * (score_a - exp_a))
    new_b = round_rating(rating_b + k * ((1 - score_a) - exp_b))
    return new_a, new_b


@dataclass
class RatingUpdate:
    """
    Result of an Elo calculation.

    Carries everything the result processor stores on the match, plus
    what's needed to explain the update to a user.
    """
    # Ratings before the match
    team_a_before: int
    team_b_before: int

    # Ratings after the match
    team_a_after: int
    team_b_after: int

    # Expected win probabilities (before the match)
    expected_a: float
    expected_b: float

    # Who won
    winner: str  # 'A' or 'B'

    k_factor: float

    @property
    def team_a_change(self) -> int:
        return self.team_a_after - self.team_a_before

    @property
    def team_b_change(self) -> int:
        return self.team_b_after - self.team_b_before

    @property
    def was_upset(self) -> bool:
        """Whether the lower-rated team won."""
        if self.winner == "A":
            return self.team_a_before < self.team_b_before
        return self.team_b_before < self.team_a_before

    def __repr__(self) -> str:
        return (
            f"<RatingUpdate(A: {self.team_a_before} -> {self.team_a_after}, "
            f"B: {self.team_b_before} -> {self.team_b_after}, "
            f"winner={self.winner})>"
        )


class EloCalculator:
    """
    Elo calculator bound to a RatingConfig.

    Usage:
        calculator = EloCalculator(RatingConfig(k_factor=32))

        result = calculator.calculate(rating_a=1250, rating_b=1180, winner="B")
        print(f"Upset: {result.was_upset}, B gained {result.team_b_change}")
    """

    def __init__(self, config: Optional[RatingConfig] = None):
        self.config = config or RatingConfig()

    def calculate(self, rating_a: int, rating_b: int, winner: str) -> RatingUpdate:
        """
        Calculate new ratings after a match.

        Args:
            rating_a: Team A's rating before the match
            rating_b: Team B's rating before the match
            winner: 'A' if team A won, 'B' if team B won

        Raises:
            ValidationError: If winner is not 'A' or 'B'
        """
        if winner not in ("A", "B"):
            raise ValidationError(f"winner must be 'A' or 'B', got '{winner}'")

        new_a, new_b = update_ratings(
            rating_a,
            rating_b,
            1 if winner == "A" else 0,
            self.config.k_factor,
            self.config.spread,
        )
        return RatingUpdate(
            team_a_before=rating_a,
            team_b_before=rating_b,
            team_a_after=new_a,
            team_b_after=new_b,
            expected_a=self.win_probability(rating_a, rating_b),
            expected_b=self.win_probability(rating_b, rating_a),
            winner=winner,
            k_factor=self.config.k_factor,
        )

    def win_probability(self, rating_a: float, rating_b: float) -> float:
        """Probability of team A winning (the expected score)."""
        return expected_score(rating_a, rating_b, self.config.spread)
