from __future__ import annotations

import logging
from enum import Enum

from orbtrack.utils.constants import (
    HIGH_PROBABILITY_THRESHOLD,
    HIGH_RANGE_THRESHOLD_KM,
    MEDIUM_PROBABILITY_THRESHOLD,
    MEDIUM_RANGE_THRESHOLD_KM,
)

logger = logging.getLogger(__name__)


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    def __str__(self) -> str:
        return self.value


RISK_RANK: dict[str, int] = {
    RiskLevel.HIGH.value: 3,
    RiskLevel.MEDIUM.value: 2,
    RiskLevel.LOW.value: 1,
}


def classify(min_range_km: float, probability: float) -> RiskLevel:
    """
    Classify a conjunction into a risk tier.

    Each tier is triggered by either a high enough collision probability
    or a small enough miss distance; tiers are checked from HIGH down and
    the first match wins. Inputs are not range-checked.

    Args:
        min_range_km: Predicted minimum range in km
        probability: Collision probability

    Returns:
        RiskLevel.HIGH, RiskLevel.MEDIUM or RiskLevel.LOW
    """
    if probability > HIGH_PROBABILITY_THRESHOLD or min_range_km < HIGH_RANGE_THRESHOLD_KM:
        return RiskLevel.HIGH
    if probability > MEDIUM_PROBABILITY_THRESHOLD or min_range_km < MEDIUM_RANGE_THRESHOLD_KM:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def risk_rank(level: RiskLevel | str | None) -> int:
    """Sort rank of a risk level: high=3, medium=2, low=1, anything else 0."""
    if level is None:
        return 0
    return RISK_RANK.get(str(level).lower(), 0)


def parse_risk_level(value: RiskLevel | str) -> RiskLevel:
    """Coerce a user-supplied risk level.

    Raises:
        ValueError: If the value names no risk level.
    """
    if isinstance(value, RiskLevel):
        return value
    try:
        return RiskLevel(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown risk level: {value!r}") from None


def format_probability(probability: float) -> str:
    """Human-readable odds, e.g. ``1e-4`` -> ``"1 in 10,000"``."""
    if probability <= 0:
        return "0"
    if probability >= 1:
        return "1 in 1"
    return f"1 in {round(1 / probability):,}"
