"""Projection of recurring transactions into dated expected instances."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from app.models.recon import RecurringTransaction, RecurringTransactionException

from .errors import InvalidRangeError
from .recurrence import RecurrencePattern


class ExceptionType(str, Enum):
    """Per-date override kinds."""

    SKIPPED = "skipped"
    MODIFIED = "modified"


@dataclass(frozen=True)
class RecurringScheduleInstance:
    """One concrete occurrence of a recurring transaction."""

    recurring_transaction_id: UUID
    instance_date: date
    expected_amount: Decimal
    currency: str
    description: str
    is_skipped: bool = False
    is_modified: bool = False

    @property
    def key(self) -> tuple[UUID, date]:
        return (self.recurring_transaction_id, self.instance_date)


def pattern_for(recurring: RecurringTransaction) -> RecurrencePattern:
    """Build the recurrence rule stored on a recurring transaction."""
    return RecurrencePattern(
        frequency=recurring.frequency,
        interval=recurring.interval or 1,
        day_of_month=recurring.day_of_month,
        day_of_week=recurring.day_of_week,
        month_of_year=recurring.month_of_year,
    )


class RecurringInstanceProjector:
    """Expands recurring transactions into expected instances.

    Pure function of its inputs: the caller supplies recurring transactions
    with their exceptions loaded, nothing is read from storage or the clock.
    """

    def project(
        self,
        recurring_transactions: Iterable[RecurringTransaction],
        start: date,
        end: date,
    ) -> dict[date, list[RecurringScheduleInstance]]:
        """Project every active recurring transaction over [start, end].

        Skipped occurrences are dropped; modified occurrences keep their date
        with the overridden amount and/or description.

        Returns:
            Dict mapping date (ascending) to the instances on that date

        Raises:
            InvalidRangeError: If start is after end
        """
        if start > end:
            raise InvalidRangeError(start, end)

        result: dict[date, list[RecurringScheduleInstance]] = {}
        for recurring in self._active(recurring_transactions):
            exceptions = self._exceptions_by_date(recurring.exceptions)
            pattern = pattern_for(recurring)

            for day in pattern.occurrences_between(
                recurring.start_date, recurring.end_date, start, end
            ):
                exception = exceptions.get(day)
                if exception is not None and exception.exception_type == ExceptionType.SKIPPED:
                    continue
                result.setdefault(day, []).append(self._build_instance(recurring, day, exception))

        return dict(sorted(result.items()))

    def instances_for_date(
        self,
        recurring_transactions: Iterable[RecurringTransaction],
        day: date,
    ) -> list[RecurringScheduleInstance]:
        """Instances scheduled on a single day, skipped ones included and flagged."""
        instances = []
        for recurring in self._active(recurring_transactions):
            occurrences = pattern_for(recurring).occurrences_between(
                recurring.start_date, recurring.end_date, day, day
            )
            if day not in occurrences:
                continue
            exception = self._exceptions_by_date(recurring.exceptions).get(day)
            instances.append(self._build_instance(recurring, day, exception))
        return instances

    @staticmethod
    def flatten(
        instances_by_date: dict[date, list[RecurringScheduleInstance]],
    ) -> list[RecurringScheduleInstance]:
        """Non-skipped instances in date order."""
        return [
            instance
            for instances in instances_by_date.values()
            for instance in instances
            if not instance.is_skipped
        ]

    def _active(
        self, recurring_transactions: Iterable[RecurringTransaction]
    ) -> list[RecurringTransaction]:
        return sorted(
            (r for r in recurring_transactions if r.is_active),
            key=lambda r: str(r.id),
        )

    def _exceptions_by_date(
        self, exceptions: Iterable[RecurringTransactionException]
    ) -> dict[date, RecurringTransactionException]:
        return {e.original_date: e for e in exceptions}

    def _build_instance(
        self,
        recurring: RecurringTransaction,
        day: date,
        exception: RecurringTransactionException | None,
    ) -> RecurringScheduleInstance:
        amount = recurring.amount
        description = recurring.description
        is_skipped = False
        is_modified = False

        if exception is not None:
            if exception.exception_type == ExceptionType.SKIPPED:
                is_skipped = True
            elif exception.exception_type == ExceptionType.MODIFIED:
                is_modified = True
                if exception.modified_amount is not None:
                    amount = exception.modified_amount
                if exception.modified_description and exception.modified_description.strip():
                    description = exception.modified_description.strip()

        return RecurringScheduleInstance(
            recurring_transaction_id=recurring.id,
            instance_date=day,
            expected_amount=amount,
            currency=recurring.currency,
            description=description,
            is_skipped=is_skipped,
            is_modified=is_modified,
        )
