"""
Elo rating constants and the explicit rating configuration.

K factor: Controls rating volatility (how much ratings change per match)
  - Higher K = bigger rating swings
  - Lower K = more stable ratings

Spread: The rating gap at which the stronger side is a 10:1 favourite.
Intramural ratings use the classic chess value of 400.

Tournaments may carry their own K factor; RatingConfig.k_factor is the
fallback when they don't.
"""

from dataclasses import dataclass, replace
from typing import Optional

from playbook.errors import ValidationError

# Starting rating for new teams and departments, and the value used on reset
DEFAULT_RATING = 1200

# Conventional club-level K factor
DEFAULT_K_FACTOR = 32

RATING_SPREAD = 400

# Persisted name of the logistic win-probability model
DEFAULT_MODEL_NAME = "win_predictor"


@dataclass(frozen=True)
class RatingConfig:
    """Rating parameters passed explicitly into processors and services."""

    k_factor: int = DEFAULT_K_FACTOR
    default_rating: int = DEFAULT_RATING
    spread: int = RATING_SPREAD

    def __post_init__(self):
        if self.k_factor <= 0:
            raise ValidationError(f"k_factor must be positive, got {self.k_factor}")
        if self.spread <= 0:
            raise ValidationError(f"spread must be positive, got {self.spread}")

    @classmethod
    def from_settings(cls, settings=None) -> "RatingConfig":
        if settings is None:
            from playbook.config import get_settings

            settings = get_settings()
        return cls(
            k_factor=settings.k_factor,
            default_rating=settings.default_rating,
            spread=settings.rating_spread,
        )

    def for_tournament(self, k_factor: Optional[int]) -> "RatingConfig":
        """Return a config using the tournament's K factor when it sets one."""
        if not k_factor:
            return self
        return replace(self, k_factor=k_factor)
