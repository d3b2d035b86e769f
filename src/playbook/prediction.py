"""
Win-probability estimators.

Two estimators, both read-only with respect to teams and matches:

1. Logistic model over a persisted coefficient set:
     z = intercept + elo_diff_weight * (elo1 - elo2)
                   + win_streak_diff_weight * (streak1 - streak2)
     P(team1 wins) = 1 / (1 + e^-z)

2. Pure Elo, used when no model has been trained:
     P(team1 wins) = 1 / (1 + 10^((elo2 - elo1) / 400))

Missing ratings count as 1200 and missing streaks as 0.

Every estimate is returned as a WinProbability carrying both the raw
fractions (analytics, the API prediction endpoint, model fitting) and
whole percentages (match preview and pick'em cards).
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Sequence

import numpy as np
from sklearn.linear_model import LogisticRegression
from sklearn.preprocessing import StandardScaler

from playbook.elo.calculator import expected_score
from playbook.elo.constants import DEFAULT_MODEL_NAME, DEFAULT_RATING, RATING_SPREAD
from playbook.errors import NotFoundError, ValidationError
from playbook.match_statuses import COMPLETED
from playbook.models import Match, RatingModel, Team

logger = logging.getLogger(__name__)


def _clamp(probability: float) -> float:
    return min(1.0, max(0.0, probability))


@dataclass(frozen=True)
class WinProbability:
    """Team1/team2 win probabilities. team2 is always the complement."""
    team1: float
    team2: float
    method: str = "elo"

    @classmethod
    def from_team1(cls, probability: float, method: str) -> "WinProbability":
        probability = _clamp(probability)
        return cls(team1=probability, team2=1.0 - probability, method=method)

    @property
    def team1_percent(self) -> int:
        """Team1's chance as a whole percentage, halves rounded up."""
        return int(Decimal(repr(self.team1 * 100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @property
    def team2_percent(self) -> int:
        # Derived from team1 so the two always add up to 100
        return 100 - self.team1_percent

    def to_dict(self) -> dict:
        return {
            "team1_win_probability": self.team1,
            "team2_win_probability": self.team2,
            "team1_win_percent": self.team1_percent,
            "team2_win_percent": self.team2_percent,
            "method": self.method,
        }


def _sigmoid(z: float) -> float:
    # Split by sign so math.exp never overflows
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    ez = math.exp(z)
    return ez / (1.0 + ez)


def _rating(team: Team) -> float:
    return DEFAULT_RATING if team.rating is None else team.rating


def _streak(team: Team) -> int:
    return team.win_streak or 0


def logistic_win_probability(model: RatingModel, team1: Team, team2: Team) -> WinProbability:
    """
    Estimate team1's chance of winning with the trained logistic model.

    Example:
        >>> model = RatingModel("win_predictor", intercept=0.0, elo_diff_weight=0.01)
        >>> logistic_win_probability(model, Team(rating=1300), Team(rating=1200)).team1_percent
        73
    """
    z = (
        model.intercept
        + model.elo_diff_weight * (_rating(team1) - _rating(team2))
        + model.win_streak_diff_weight * (_streak(team1) - _streak(team2))
    )
    return WinProbability.from_team1(_sigmoid(z), method="logistic")


def elo_win_probability(
    elo1: Optional[float],
    elo2: Optional[float],
    spread: float = RATING_SPREAD,
) -> WinProbability:
    """
    Estimate team1's chance of winning from Elo ratings alone.

    Examples:
        >>> elo_win_probability(1200, 1200).team1
        0.5
        >>> elo_win_probability(None, 1200).team1
        0.5
    """
    elo1 = DEFAULT_RATING if elo1 is None else elo1
    elo2 = DEFAULT_RATING if elo2 is None else elo2
    return WinProbability.from_team1(expected_score(elo1, elo2, spread), method="elo")


def predict_teams(
    team1: Team,
    team2: Team,
    model: Optional[RatingModel] = None,
) -> WinProbability:
    """Use the logistic model when there is one, pure Elo otherwise."""
    if model is not None:
        return logistic_win_probability(model, team1, team2)
    return elo_win_probability(team1.rating, team2.rating)


def predict_match(store, match_id: int, model_name: str = DEFAULT_MODEL_NAME) -> WinProbability:
    """
    Predict a stored match.

    Falls back to pure Elo when the named model has not been trained.

    Raises:
        NotFoundError: Unknown match, or a team slot is still empty
    """
    match = store.get_match(match_id)
    if match.team1_id is None or match.team2_id is None:
        raise NotFoundError("team", None, f"Match {match_id} does not have both teams assigned yet.")
    team1 = store.get_team(match.team1_id)
    team2 = store.get_team(match.team2_id)

    try:
        model = store.get_rating_model(model_name)
    except NotFoundError:
        logger.warning("No '%s' model stored, using pure Elo for match %s", model_name, match_id)
        model = None
    return predict_teams(team1, team2, model)


# =============================================================================
# Retraining
# =============================================================================

@dataclass(frozen=True)
class TrainingSample:
    elo_diff: float
    win_streak_diff: float
    team1_won: bool


def training_samples(matches: Iterable[Match]) -> list[TrainingSample]:
    """
    Feature rows from completed matches.

    Uses the pre-match snapshot stored on each match, so the features are
    what a prediction made just before the match would have seen. Matches
    without a snapshot or a winner are skipped.
    """
    samples = []
    for match in matches:
        if match.winner_id is None:
            continue
        if match.team1_rating_before is None or match.team2_rating_before is None:
            continue
        samples.append(TrainingSample(
            elo_diff=match.team1_rating_before - match.team2_rating_before,
            win_streak_diff=(match.team1_streak_before or 0) - (match.team2_streak_before or 0),
            team1_won=match.winner_id == match.team1_id,
        ))
    return samples


def fit_win_predictor(
    samples: Sequence[TrainingSample],
    name: str = DEFAULT_MODEL_NAME,
    *,
    C: float = 1.0,
    max_iter: int = 1000,
) -> RatingModel:
    """
    Fit the logistic coefficients with scikit-learn.

    Features are standardised for the fit and the coefficients mapped back
    to raw rating/streak units. ``C`` is the inverse L2 strength, which
    keeps the weights finite when the samples are perfectly separable.

    Raises:
        ValidationError: No samples, or team1 always won (or always lost)
    """
    if not samples:
        raise ValidationError("at least one completed match is needed to fit the win predictor")

    y = np.array([1 if s.team1_won else 0 for s in samples])
    if len(np.unique(y)) < 2:
        raise ValidationError("the win predictor needs matches won by team1 and matches won by team2")
    X = np.array([[s.elo_diff, s.win_streak_diff] for s in samples], dtype=float)

    scaler = StandardScaler().fit(X)
    clf = LogisticRegression(C=C, max_iter=max_iter)
    clf.fit(scaler.transform(X), y)

    weights = clf.coef_[0] / scaler.scale_
    intercept = clf.intercept_[0] - float(np.dot(weights, scaler.mean_))
    return RatingModel(
        name=name,
        intercept=float(intercept),
        elo_diff_weight=float(weights[0]),
        win_streak_diff_weight=float(weights[1]),
        updated_at=datetime.utcnow(),
    )


def train_win_predictor(
    store,
    name: str = DEFAULT_MODEL_NAME,
    coefficients: Optional[dict] = None,
) -> RatingModel:
    """
    Replace the stored coefficient set for ``name``.

    With ``coefficients`` the given values are validated and stored as-is;
    without, the model is fitted on every completed match in the store.
    """
    if coefficients is not None:
        model = RatingModel.from_coefficients(name, coefficients, updated_at=datetime.utcnow())
    else:
        samples = training_samples(store.list_matches(statuses=[COMPLETED]))
        model = fit_win_predictor(samples, name)
        logger.info("Fitted '%s' on %s completed matches", name, len(samples))

    model = store.save_rating_model(name, model.to_coefficients())
    logger.info(
        "Stored '%s': intercept=%.4f elo_diff=%.6f win_streak_diff=%.4f",
        name,
        model.intercept,
        model.elo_diff_weight,
        model.win_streak_diff_weight,
    )
    return model
