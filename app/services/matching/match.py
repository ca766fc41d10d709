"""Reconciliation match entity and its decision state machine.

Transitions are pure: each returns a new ReconciliationMatch and leaves the
original untouched. Persisting the result is the repository's job.

    SUGGESTED    --auto_match-->  AUTO_MATCHED   (fresh matches only)
    SUGGESTED    --accept/reject-->  ACCEPTED / REJECTED
    AUTO_MATCHED --accept/reject-->  ACCEPTED / REJECTED

ACCEPTED and REJECTED are terminal. resolved_at_utc is stamped once, when a
match reaches a terminal status.
"""

from dataclasses import dataclass, replace
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from app.models.recon import Transaction

from .confidence import ConfidenceLevel, confidence_level
from .errors import InvalidStateTransition, TransactionLinkError, ValidationError
from .tolerances import ONE, ZERO


class MatchStatus(str, Enum):
    """Decision state of a match."""

    SUGGESTED = "suggested"
    AUTO_MATCHED = "auto_matched"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class MatchSource(str, Enum):
    """Who proposed the match."""

    AUTO = "auto"
    MANUAL = "manual"


class BudgetScope(str, Enum):
    """Visibility of budget data."""

    SHARED = "shared"
    PERSONAL = "personal"


OPEN_STATUSES = (MatchStatus.SUGGESTED, MatchStatus.AUTO_MATCHED)
MATCHED_STATUSES = (MatchStatus.ACCEPTED, MatchStatus.AUTO_MATCHED)


@dataclass(frozen=True)
class ReconciliationMatch:
    """Pairing of an imported transaction with one recurring instance."""

    id: UUID
    imported_transaction_id: UUID
    recurring_transaction_id: UUID
    recurring_instance_date: date
    confidence_score: Decimal
    amount_variance: Decimal
    date_offset_days: int
    status: MatchStatus
    source: MatchSource
    scope: BudgetScope
    owner_user_id: UUID | None
    created_at_utc: datetime
    resolved_at_utc: datetime | None = None

    @classmethod
    def create(
        cls,
        *,
        imported_transaction_id: UUID,
        recurring_transaction_id: UUID,
        recurring_instance_date: date,
        confidence_score: Decimal,
        amount_variance: Decimal,
        date_offset_days: int,
        scope: BudgetScope | str = BudgetScope.SHARED,
        owner_user_id: UUID | None = None,
        source: MatchSource = MatchSource.AUTO,
        created_at: datetime | None = None,
    ) -> "ReconciliationMatch":
        """Create a new match in SUGGESTED status.

        Raises:
            ValidationError: If ids are missing, the score is outside [0, 1],
                or a personal-scope match has no owner
        """
        if imported_transaction_id is None:
            raise ValidationError("Imported transaction ID is required")
        if recurring_transaction_id is None:
            raise ValidationError("Recurring transaction ID is required")
        if confidence_score < ZERO or confidence_score > ONE:
            raise ValidationError("Confidence score must be between 0 and 1")

        scope = BudgetScope(scope)
        if scope == BudgetScope.PERSONAL and owner_user_id is None:
            raise ValidationError("Owner user ID is required for personal scope")

        return cls(
            id=uuid4(),
            imported_transaction_id=imported_transaction_id,
            recurring_transaction_id=recurring_transaction_id,
            recurring_instance_date=recurring_instance_date,
            confidence_score=confidence_score,
            amount_variance=amount_variance,
            date_offset_days=date_offset_days,
            status=MatchStatus.SUGGESTED,
            source=MatchSource(source),
            scope=scope,
            owner_user_id=owner_user_id if scope == BudgetScope.PERSONAL else None,
            created_at_utc=created_at or datetime.now(UTC),
        )

    @property
    def confidence_level(self) -> ConfidenceLevel:
        return confidence_level(self.confidence_score)

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at_utc is not None

    @property
    def is_terminal(self) -> bool:
        return self.status in (MatchStatus.ACCEPTED, MatchStatus.REJECTED)

    @property
    def key(self) -> tuple[UUID, UUID, date]:
        return (
            self.imported_transaction_id,
            self.recurring_transaction_id,
            self.recurring_instance_date,
        )

    def accept(self, at: datetime | None = None) -> "ReconciliationMatch":
        """Confirm the match. Legal from SUGGESTED and AUTO_MATCHED."""
        self._ensure_open("accept")
        return self._resolve(MatchStatus.ACCEPTED, at)

    def reject(self, at: datetime | None = None) -> "ReconciliationMatch":
        """Decline the match. Legal from SUGGESTED and AUTO_MATCHED."""
        self._ensure_open("reject")
        return self._resolve(MatchStatus.REJECTED, at)

    def auto_match(self) -> "ReconciliationMatch":
        """Mark a freshly created match as matched without review."""
        if self.status != MatchStatus.SUGGESTED or self.is_resolved:
            raise InvalidStateTransition("auto-match", self.status.value)
        return replace(self, status=MatchStatus.AUTO_MATCHED)

    def _ensure_open(self, action: str) -> None:
        if self.status not in OPEN_STATUSES or self.is_resolved:
            raise InvalidStateTransition(action, self.status.value)

    def _resolve(self, status: MatchStatus, at: datetime | None) -> "ReconciliationMatch":
        return replace(self, status=status, resolved_at_utc=at or datetime.now(UTC))


def link_transaction(transaction: Transaction, recurring_transaction_id: UUID, instance_date: date) -> None:
    """Link an imported transaction to the recurring instance it settles.

    Re-linking to the same instance is a no-op.

    Raises:
        TransactionLinkError: If already linked to a different instance
    """
    current = (transaction.recurring_transaction_id, transaction.recurring_instance_date)
    if current == (recurring_transaction_id, instance_date):
        return
    if transaction.recurring_transaction_id is not None:
        raise TransactionLinkError(
            f"Transaction {transaction.id} is already linked to recurring "
            f"{transaction.recurring_transaction_id} on {transaction.recurring_instance_date}"
        )
    transaction.recurring_transaction_id = recurring_transaction_id
    transaction.recurring_instance_date = instance_date


def unlink_transaction(transaction: Transaction, recurring_transaction_id: UUID, instance_date: date) -> bool:
    """Clear a transaction's link if it points at the given instance.

    Returns:
        True if the link was cleared
    """
    if (transaction.recurring_transaction_id, transaction.recurring_instance_date) != (
        recurring_transaction_id,
        instance_date,
    ):
        return False
    transaction.recurring_transaction_id = None
    transaction.recurring_instance_date = None
    return True
