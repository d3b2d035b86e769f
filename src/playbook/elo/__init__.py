"""
Elo rating system module.

Implements the rating math shared by team and department ratings:
- Paired integer rating updates from a binary match outcome
- Expected-score helper reused by the pure-Elo win-probability estimator
- RatingConfig for the K factor, spread and starting rating
"""

from playbook.elo.calculator import (
    EloCalculator,
    RatingUpdate,
    expected_score,
    round_rating,
    update_ratings,
)
from playbook.elo.constants import (
    DEFAULT_K_FACTOR,
    DEFAULT_MODEL_NAME,
    DEFAULT_RATING,
    RATING_SPREAD,
    RatingConfig,
)

__all__ = [
    "EloCalculator",
    "RatingUpdate",
    "expected_score",
    "round_rating",
    "update_ratings",
    "DEFAULT_K_FACTOR",
    "DEFAULT_MODEL_NAME",
    "DEFAULT_RATING",
    "RATING_SPREAD",
    "RatingConfig",
]
