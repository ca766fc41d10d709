"""Tests for matching tolerances and score weights."""

from decimal import Decimal

import pytest

from app.services.matching import MatchingTolerances, ScoreWeights, ValidationError


class TestMatchingTolerances:
    """Tests for MatchingTolerances."""

    def test_defaults(self):
        """Test default tolerance values."""
        tolerances = MatchingTolerances.DEFAULT

        assert tolerances.date_tolerance_days == 3
        assert tolerances.amount_tolerance_percent == Decimal("0.01")
        assert tolerances.amount_tolerance_absolute == Decimal("1.00")
        assert tolerances.description_similarity_threshold == Decimal("0.60")
        assert tolerances.auto_match_threshold == Decimal("0.90")

    def test_create_converts_floats_exactly(self):
        """Test floats are converted via their string form."""
        tolerances = MatchingTolerances.create(5, 0.05, 2, 0.5, 0.95)

        assert tolerances.amount_tolerance_percent == Decimal("0.05")
        assert tolerances.auto_match_threshold == Decimal("0.95")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"date_tolerance_days": -1},
            {"amount_tolerance_percent": "-0.01"},
            {"amount_tolerance_percent": "1.5"},
            {"amount_tolerance_absolute": "-1"},
            {"description_similarity_threshold": "1.1"},
            {"auto_match_threshold": "-0.1"},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        """Test out-of-range tolerances raise ValidationError."""
        values = {
            "date_tolerance_days": 3,
            "amount_tolerance_percent": "0.01",
            "amount_tolerance_absolute": "1.00",
            "description_similarity_threshold": "0.60",
            "auto_match_threshold": "0.90",
        }
        values.update(kwargs)

        with pytest.raises(ValidationError):
            MatchingTolerances.create(**values)

    def test_zero_tolerances_allowed(self):
        """Test exact-only matching is a valid configuration."""
        tolerances = MatchingTolerances.create(0, 0, 0, 0, 1)
        assert tolerances.allowed_variance(Decimal("100")) == Decimal("0")

    def test_allowed_variance_uses_larger_bound(self):
        """Test allowed variance is max(absolute, percent of expected)."""
        tolerances = MatchingTolerances.DEFAULT

        assert tolerances.allowed_variance(Decimal("15.99")) == Decimal("1.00")
        assert tolerances.allowed_variance(Decimal("1500.00")) == Decimal("15.0000")
        assert tolerances.allowed_variance(Decimal("-1500.00")) == Decimal("15.0000")

    def test_immutable(self):
        """Test tolerances cannot be modified."""
        with pytest.raises(AttributeError):
            MatchingTolerances.DEFAULT.date_tolerance_days = 10


class TestScoreWeights:
    """Tests for ScoreWeights."""

    def test_defaults_sum_to_one(self):
        """Test default weights are a valid blend."""
        weights = ScoreWeights.DEFAULT
        assert weights.date + weights.amount + weights.description == Decimal("1")

    def test_must_sum_to_one(self):
        """Test weights that do not sum to 1 are rejected."""
        with pytest.raises(ValidationError, match="sum to 1"):
            ScoreWeights.create("0.5", "0.5", "0.5")

    def test_negative_rejected(self):
        """Test negative weights are rejected."""
        with pytest.raises(ValidationError, match="negative"):
            ScoreWeights.create("-0.5", "1.0", "0.5")
