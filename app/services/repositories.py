"""Persistence for ledger entities and reconciliation matches.

Repositories translate between ORM rows and the immutable engine values. They
never commit; the orchestrator owns the unit of work.
"""

import calendar
import logging
from datetime import date
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.recon import ReconciliationMatch as ReconciliationMatchModel
from app.models.recon import RecurringTransaction, Transaction
from app.services.matching.match import (
    BudgetScope,
    MatchSource,
    MatchStatus,
    ReconciliationMatch,
)

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class TransactionRepository:
    """Imported transactions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, transaction_id: UUID) -> Transaction | None:
        return await self.session.get(Transaction, transaction_id)


class RecurringTransactionRepository:
    """Recurring transactions with their exceptions loaded."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active(self) -> list[RecurringTransaction]:
        result = await self.session.execute(
            select(RecurringTransaction)
            .where(RecurringTransaction.is_active.is_(True))
            .order_by(RecurringTransaction.id)
        )
        return list(result.scalars().all())

    async def get_by_id(self, recurring_id: UUID) -> RecurringTransaction | None:
        return await self.session.get(RecurringTransaction, recurring_id)


class ReconciliationMatchRepository:
    """Reconciliation matches, stored as rows and returned as engine values."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists(
        self,
        imported_transaction_id: UUID,
        recurring_transaction_id: UUID,
        instance_date: date,
    ) -> bool:
        result = await self.session.execute(
            select(ReconciliationMatchModel.id).where(
                *self._triple(imported_transaction_id, recurring_transaction_id, instance_date)
            )
        )
        return result.first() is not None

    async def get_by_triple(
        self,
        imported_transaction_id: UUID,
        recurring_transaction_id: UUID,
        instance_date: date,
    ) -> ReconciliationMatch | None:
        result = await self.session.execute(
            select(ReconciliationMatchModel).where(
                *self._triple(imported_transaction_id, recurring_transaction_id, instance_date)
            )
        )
        row = result.scalar_one_or_none()
        return to_domain(row) if row else None

    async def add(self, match: ReconciliationMatch) -> bool:
        """Insert a match, ignoring a conflicting triple.

        Returns:
            True if a row was written, False if the triple already existed
        """
        dialect = self.session.get_bind().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect: {dialect}")

        stmt = (
            insert(ReconciliationMatchModel.__table__)
            .values(**to_row(match))
            .on_conflict_do_nothing(
                index_elements=[
                    "imported_transaction_id",
                    "recurring_transaction_id",
                    "recurring_instance_date",
                ]
            )
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            logger.debug(f"Match already exists for {match.key}, insert skipped")
            return False
        return True

    async def save(self, match: ReconciliationMatch) -> None:
        """Persist the decision state of an existing match."""
        await self.session.execute(
            update(ReconciliationMatchModel)
            .where(ReconciliationMatchModel.id == match.id)
            .values(
                status=match.status.value,
                resolved_at_utc=match.resolved_at_utc,
            )
        )

    async def delete(self, match_id: UUID) -> None:
        await self.session.execute(
            delete(ReconciliationMatchModel).where(ReconciliationMatchModel.id == match_id)
        )

    async def get_by_id(self, match_id: UUID) -> ReconciliationMatch | None:
        result = await self.session.execute(
            select(ReconciliationMatchModel).where(ReconciliationMatchModel.id == match_id)
        )
        row = result.scalar_one_or_none()
        return to_domain(row) if row else None

    async def get_pending(self) -> list[ReconciliationMatch]:
        """Matches awaiting review, oldest instance first."""
        return await self._fetch(
            ReconciliationMatchModel.status == MatchStatus.SUGGESTED.value,
        )

    async def get_by_recurring_transaction(
        self,
        recurring_id: UUID,
        start: date,
        end: date,
    ) -> list[ReconciliationMatch]:
        return await self._fetch(
            ReconciliationMatchModel.recurring_transaction_id == recurring_id,
            ReconciliationMatchModel.recurring_instance_date >= start,
            ReconciliationMatchModel.recurring_instance_date <= end,
        )

    async def get_by_period(self, year: int, month: int) -> list[ReconciliationMatch]:
        """Matches whose instance falls in the given calendar month."""
        last_day = calendar.monthrange(year, month)[1]
        return await self.get_in_range(date(year, month, 1), date(year, month, last_day))

    async def get_in_range(self, start: date, end: date) -> list[ReconciliationMatch]:
        return await self._fetch(
            ReconciliationMatchModel.recurring_instance_date >= start,
            ReconciliationMatchModel.recurring_instance_date <= end,
        )

    async def _fetch(self, *criteria) -> list[ReconciliationMatch]:
        result = await self.session.execute(
            select(ReconciliationMatchModel)
            .where(*criteria)
            .order_by(
                ReconciliationMatchModel.recurring_instance_date,
                ReconciliationMatchModel.created_at_utc,
            )
        )
        return [to_domain(row) for row in result.scalars().all()]

    @staticmethod
    def _triple(imported_transaction_id: UUID, recurring_transaction_id: UUID, instance_date: date):
        return (
            ReconciliationMatchModel.imported_transaction_id == imported_transaction_id,
            ReconciliationMatchModel.recurring_transaction_id == recurring_transaction_id,
            ReconciliationMatchModel.recurring_instance_date == instance_date,
        )


def to_row(match: ReconciliationMatch) -> dict:
    """Column values for a match."""
    return {
        "id": match.id,
        "imported_transaction_id": match.imported_transaction_id,
        "recurring_transaction_id": match.recurring_transaction_id,
        "recurring_instance_date": match.recurring_instance_date,
        "confidence_score": match.confidence_score,
        "amount_variance": match.amount_variance,
        "date_offset_days": match.date_offset_days,
        "status": match.status.value,
        "source": match.source.value,
        "scope": match.scope.value,
        "owner_user_id": match.owner_user_id,
        "created_at_utc": match.created_at_utc,
        "resolved_at_utc": match.resolved_at_utc,
    }


def to_domain(row: ReconciliationMatchModel) -> ReconciliationMatch:
    """Rebuild the engine value from a stored row."""
    return ReconciliationMatch(
        id=row.id,
        imported_transaction_id=row.imported_transaction_id,
        recurring_transaction_id=row.recurring_transaction_id,
        recurring_instance_date=row.recurring_instance_date,
        confidence_score=row.confidence_score,
        amount_variance=row.amount_variance,
        date_offset_days=row.date_offset_days,
        status=MatchStatus(row.status),
        source=MatchSource(row.source),
        scope=BudgetScope(row.scope),
        owner_user_id=row.owner_user_id,
        created_at_utc=row.created_at_utc,
        resolved_at_utc=row.resolved_at_utc,
    )
