"""Confidence scoring for transaction matches."""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from .tolerances import ONE, ZERO, MatchingTolerances, ScoreWeights

SCORE_QUANTUM = Decimal("0.0001")


class ConfidenceLevel(str, Enum):
    """Display band derived from a confidence score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Band floors
THRESHOLDS = {
    ConfidenceLevel.HIGH: Decimal("0.85"),
    ConfidenceLevel.MEDIUM: Decimal("0.60"),
}


def confidence_level(score: Decimal) -> ConfidenceLevel:
    """Band a confidence score into high/medium/low."""
    if score >= THRESHOLDS[ConfidenceLevel.HIGH]:
        return ConfidenceLevel.HIGH
    elif score >= THRESHOLDS[ConfidenceLevel.MEDIUM]:
        return ConfidenceLevel.MEDIUM
    else:
        return ConfidenceLevel.LOW


class ConfidenceScorer:
    """Blends date, amount and description proximity into one score.

    Each proximity term maps linearly from the tolerance boundary (0) to an
    exact match (1), so the score never increases as the date offset or the
    amount variance grow, and never decreases as description similarity grows.
    """

    def __init__(self, weights: ScoreWeights | None = None):
        """Initialize scorer.

        Args:
            weights: Blend weights (defaults to ScoreWeights.DEFAULT)
        """
        self.weights = weights or ScoreWeights.DEFAULT

    def date_proximity(self, date_offset_days: int, tolerances: MatchingTolerances) -> Decimal:
        """1 on the scheduled date, 0 at the tolerance boundary."""
        if tolerances.date_tolerance_days == 0:
            return ONE if date_offset_days == 0 else ZERO
        ratio = Decimal(abs(date_offset_days)) / Decimal(tolerances.date_tolerance_days)
        return max(ZERO, ONE - ratio)

    def amount_proximity(
        self,
        amount_variance: Decimal,
        expected_amount: Decimal,
        tolerances: MatchingTolerances,
    ) -> Decimal:
        """1 for the expected amount, 0 at the allowed variance."""
        allowed = tolerances.allowed_variance(expected_amount)
        if allowed == ZERO:
            return ONE if amount_variance == ZERO else ZERO
        return max(ZERO, ONE - abs(amount_variance) / allowed)

    def score(
        self,
        *,
        date_offset_days: int,
        amount_variance: Decimal,
        expected_amount: Decimal,
        description_similarity: Decimal,
        tolerances: MatchingTolerances,
    ) -> Decimal:
        """Calculate the confidence score for one candidate.

        Returns:
            Score in [0, 1], quantized to 4 decimal places
        """
        score = (
            self.date_proximity(date_offset_days, tolerances) * self.weights.date
            + self.amount_proximity(amount_variance, expected_amount, tolerances)
            * self.weights.amount
            + description_similarity * self.weights.description
        )
        score = max(ZERO, min(ONE, score))
        return score.quantize(SCORE_QUANTUM, rounding=ROUND_HALF_UP)
