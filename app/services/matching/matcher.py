"""Tolerance-based matching of imported transactions to recurring instances."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from rapidfuzz import fuzz, utils

from app.models.recon import Transaction

from .confidence import ConfidenceLevel, ConfidenceScorer, confidence_level
from .projector import RecurringScheduleInstance
from .tolerances import ZERO, MatchingTolerances


@dataclass(frozen=True)
class MatchCandidate:
    """Scored pairing of one transaction with one recurring instance."""

    recurring_transaction_id: UUID
    instance_date: date
    confidence_score: Decimal
    amount_variance: Decimal  # expected - actual; positive means paid less
    date_offset_days: int  # actual - scheduled; positive means paid late
    description_similarity: Decimal

    @property
    def confidence_level(self) -> ConfidenceLevel:
        return confidence_level(self.confidence_score)

    @property
    def is_exact(self) -> bool:
        return self.date_offset_days == 0 and self.amount_variance == ZERO

    def sort_key(self) -> tuple[Decimal, int, Decimal]:
        return (-self.confidence_score, abs(self.date_offset_days), abs(self.amount_variance))


class TransactionMatcher:
    """Matches one imported transaction against expected recurring instances.

    A candidate is excluded when:
    - the date offset exceeds the date tolerance
    - the currency differs
    - the amount variance exceeds max(absolute, percent * |expected|)
    - description similarity is below threshold, unless date and amount are exact

    Survivors are ranked by confidence, then smallest date offset, then
    smallest amount variance.
    """

    def __init__(self, scorer: ConfidenceScorer | None = None):
        self.scorer = scorer or ConfidenceScorer()

    def find_matches(
        self,
        transaction: Transaction,
        candidates: Iterable[RecurringScheduleInstance],
        tolerances: MatchingTolerances | None = None,
    ) -> list[MatchCandidate]:
        """Score a transaction against every candidate instance.

        Args:
            transaction: Imported transaction to match
            candidates: Expected instances to match against
            tolerances: Matching tolerances (defaults to MatchingTolerances.DEFAULT)

        Returns:
            Surviving candidates, best match first
        """
        tolerances = tolerances or MatchingTolerances.DEFAULT
        matches = []

        for candidate in candidates:
            result = self.calculate_match(transaction, candidate, tolerances)
            if result is not None:
                matches.append(result)

        return sorted(matches, key=MatchCandidate.sort_key)

    def calculate_match(
        self,
        transaction: Transaction,
        candidate: RecurringScheduleInstance,
        tolerances: MatchingTolerances,
    ) -> MatchCandidate | None:
        """Score a single pairing. Returns None when any tolerance excludes it."""
        if candidate.is_skipped:
            return None

        # Date tolerance
        date_offset_days = (transaction.date - candidate.instance_date).days
        if abs(date_offset_days) > tolerances.date_tolerance_days:
            return None

        # Amount tolerance (same currency only)
        if not self._same_currency(transaction.currency, candidate.currency):
            return None
        amount_variance = candidate.expected_amount - transaction.amount
        if abs(amount_variance) > tolerances.allowed_variance(candidate.expected_amount):
            return None

        # Description is advisory when date and amount are exact
        similarity = self.description_similarity(transaction.description, candidate.description)
        is_exact = date_offset_days == 0 and amount_variance == ZERO
        if similarity < tolerances.description_similarity_threshold and not is_exact:
            return None

        score = self.scorer.score(
            date_offset_days=date_offset_days,
            amount_variance=amount_variance,
            expected_amount=candidate.expected_amount,
            description_similarity=similarity,
            tolerances=tolerances,
        )

        return MatchCandidate(
            recurring_transaction_id=candidate.recurring_transaction_id,
            instance_date=candidate.instance_date,
            confidence_score=score,
            amount_variance=amount_variance,
            date_offset_days=date_offset_days,
            description_similarity=similarity,
        )

    def description_similarity(self, description1: str | None, description2: str | None) -> Decimal:
        """Token-set similarity in [0, 1], ignoring case and punctuation.

        Bank descriptions often add noise around the merchant name
        ("NETFLIX.COM 866-579" vs "Netflix"), so a token subset scores 1.
        """
        if not description1 or not description2:
            return ZERO

        ratio = fuzz.token_set_ratio(description1, description2, processor=utils.default_process)
        return Decimal(str(round(ratio / 100, 4)))

    def _same_currency(self, currency1: str | None, currency2: str | None) -> bool:
        return (currency1 or "").upper() == (currency2 or "").upper()
