"""Matching tolerances and confidence weights."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar

from .errors import ValidationError

ZERO = Decimal("0")
ONE = Decimal("1")


def _to_decimal(value: Decimal | float | int | str) -> Decimal:
    # str() keeps floats like 0.01 from turning into 0.01000000000000000020816...
    return value if isinstance(value, Decimal) else Decimal(str(value))


@dataclass(frozen=True)
class MatchingTolerances:
    """How far an imported transaction may drift from a scheduled instance.

    Attributes:
        date_tolerance_days: Max days before/after the instance date
        amount_tolerance_percent: Max variance as a fraction of the expected amount (0-1)
        amount_tolerance_absolute: Max variance in currency units
        description_similarity_threshold: Min description similarity (0-1)
        auto_match_threshold: Min confidence for matching without review (0-1)
    """

    date_tolerance_days: int
    amount_tolerance_percent: Decimal
    amount_tolerance_absolute: Decimal
    description_similarity_threshold: Decimal
    auto_match_threshold: Decimal

    DEFAULT: ClassVar["MatchingTolerances"]

    @classmethod
    def create(
        cls,
        date_tolerance_days: int,
        amount_tolerance_percent: Decimal | float | str,
        amount_tolerance_absolute: Decimal | float | str,
        description_similarity_threshold: Decimal | float | str,
        auto_match_threshold: Decimal | float | str,
    ) -> "MatchingTolerances":
        """Build validated tolerances.

        Raises:
            ValidationError: If any value is out of range
        """
        percent = _to_decimal(amount_tolerance_percent)
        absolute = _to_decimal(amount_tolerance_absolute)
        similarity = _to_decimal(description_similarity_threshold)
        auto_match = _to_decimal(auto_match_threshold)

        if date_tolerance_days < 0:
            raise ValidationError("Date tolerance days cannot be negative")
        if percent < ZERO or percent > ONE:
            raise ValidationError("Amount tolerance percent must be between 0 and 1")
        if absolute < ZERO:
            raise ValidationError("Amount tolerance absolute cannot be negative")
        if not ZERO <= similarity <= ONE:
            raise ValidationError("Description similarity threshold must be between 0 and 1")
        if not ZERO <= auto_match <= ONE:
            raise ValidationError("Auto match threshold must be between 0 and 1")

        return cls(
            date_tolerance_days=date_tolerance_days,
            amount_tolerance_percent=percent,
            amount_tolerance_absolute=absolute,
            description_similarity_threshold=similarity,
            auto_match_threshold=auto_match,
        )

    def allowed_variance(self, expected_amount: Decimal) -> Decimal:
        """Largest amount variance accepted for an expected amount."""
        return max(self.amount_tolerance_absolute, self.amount_tolerance_percent * abs(expected_amount))


MatchingTolerances.DEFAULT = MatchingTolerances.create(
    date_tolerance_days=3,
    amount_tolerance_percent="0.01",
    amount_tolerance_absolute="1.00",
    description_similarity_threshold="0.60",
    auto_match_threshold="0.90",
)


@dataclass(frozen=True)
class ScoreWeights:
    """Blend of the three proximity terms in a confidence score."""

    date: Decimal
    amount: Decimal
    description: Decimal

    DEFAULT: ClassVar["ScoreWeights"]

    @classmethod
    def create(
        cls,
        date: Decimal | float | str,
        amount: Decimal | float | str,
        description: Decimal | float | str,
    ) -> "ScoreWeights":
        """Build validated weights. Weights must be non-negative and sum to 1."""
        weights = cls(
            date=_to_decimal(date),
            amount=_to_decimal(amount),
            description=_to_decimal(description),
        )
        if min(weights.date, weights.amount, weights.description) < ZERO:
            raise ValidationError("Score weights cannot be negative")
        if weights.date + weights.amount + weights.description != ONE:
            raise ValidationError("Score weights must sum to 1")
        return weights


ScoreWeights.DEFAULT = ScoreWeights.create(date="0.25", amount="0.55", description="0.20")
