"""Reconciliation orchestrator - main workflow coordination."""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.recon import RecurringTransaction
from app.services.matching import (
    InvalidRangeError,
    InvalidStateTransition,
    MatchingTolerances,
    MatchSource,
    MatchStatus,
    ReconciliationError,
    ReconciliationMatch,
    RecurringInstanceProjector,
    RecurringScheduleInstance,
    TransactionMatcher,
    ValidationError,
)
from app.services.matching.match import MATCHED_STATUSES, link_transaction, unlink_transaction
from app.services.matching.tolerances import ONE
from app.services.repositories import (
    ReconciliationMatchRepository,
    RecurringTransactionRepository,
    TransactionRepository,
)

logger = logging.getLogger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2100


@dataclass
class FindMatchesResult:
    """Result of a find-matches run."""

    matches_by_transaction: dict[UUID, list[ReconciliationMatch]] = field(default_factory=dict)
    total_matches_found: int = 0
    high_confidence_count: int = 0


class InstanceState(str, Enum):
    """Reconciliation state of one expected instance."""

    MATCHED = "matched"
    PENDING = "pending"
    MISSING = "missing"


@dataclass
class InstanceStatus:
    """An expected instance with its best match, if any."""

    instance: RecurringScheduleInstance
    state: InstanceState
    match: ReconciliationMatch | None = None


@dataclass
class ReconciliationStatus:
    """Month-level reconciliation report."""

    year: int
    month: int
    total_expected: int = 0
    matched: int = 0
    pending: int = 0
    missing: int = 0
    instances: list[InstanceStatus] = field(default_factory=list)


@dataclass
class BulkAcceptResult:
    """Outcome of accepting many matches at once."""

    accepted: list[ReconciliationMatch] = field(default_factory=list)
    failed_count: int = 0


@dataclass
class LinkableInstance:
    """Instance a user may link a transaction to by hand."""

    instance: RecurringScheduleInstance
    is_already_matched: bool
    suggested_confidence: Decimal | None = None


class ReconciliationOrchestrator:
    """Orchestrates matching and review of imported transactions.

    Flow of find_matches:
    1. Load the requested transactions and all active recurring transactions
    2. Project expected instances over the date range
    3. Score each transaction against every instance
    4. Persist new matches, auto-matching those above the threshold

    Not-found inputs yield None. Domain errors propagate to the caller except
    inside bulk_accept, where they are counted as failures.
    """

    def __init__(
        self,
        session: AsyncSession,
        projector: RecurringInstanceProjector | None = None,
        matcher: TransactionMatcher | None = None,
        linkable_window_days: int | None = None,
        recurring_history_days: int | None = None,
    ):
        """Initialize orchestrator.

        Args:
            session: Database session
            projector: Recurring instance projector
            matcher: Transaction matcher
            linkable_window_days: +/- days searched for manual linking
            recurring_history_days: +/- days of matches listed per recurring transaction
        """
        self.session = session
        self.transactions = TransactionRepository(session)
        self.recurring = RecurringTransactionRepository(session)
        self.matches = ReconciliationMatchRepository(session)

        self.projector = projector or RecurringInstanceProjector()
        self.matcher = matcher or TransactionMatcher()
        self.linkable_window_days = (
            settings.linkable_window_days if linkable_window_days is None else linkable_window_days
        )
        self.recurring_history_days = (
            settings.recurring_history_days
            if recurring_history_days is None
            else recurring_history_days
        )

    async def find_matches(
        self,
        transaction_ids: list[UUID],
        start: date,
        end: date,
        tolerances: MatchingTolerances | None = None,
    ) -> FindMatchesResult:
        """Find and persist matches for imported transactions.

        Unknown transaction ids and already-recorded pairings are skipped.

        Args:
            transaction_ids: Imported transactions to match
            start: First day of expected instances to consider
            end: Last day of expected instances to consider
            tolerances: Matching tolerances (defaults to MatchingTolerances.DEFAULT)

        Returns:
            FindMatchesResult with new matches grouped by transaction

        Raises:
            InvalidRangeError: If start is after end
        """
        if start > end:
            raise InvalidRangeError(start, end)
        tolerances = tolerances or MatchingTolerances.DEFAULT

        recurring_transactions = await self.recurring.get_active()
        recurring_by_id = {r.id: r for r in recurring_transactions}
        instances = self.projector.flatten(
            self.projector.project(recurring_transactions, start, end)
        )
        logger.info(
            f"Matching {len(transaction_ids)} transactions against "
            f"{len(instances)} expected instances ({start} to {end})"
        )

        result = FindMatchesResult()
        for transaction_id in dict.fromkeys(transaction_ids):
            transaction = await self.transactions.get_by_id(transaction_id)
            if transaction is None:
                logger.debug(f"Transaction {transaction_id} not found, skipping")
                continue

            created = []
            for candidate in self.matcher.find_matches(transaction, instances, tolerances):
                if await self.matches.exists(
                    transaction.id, candidate.recurring_transaction_id, candidate.instance_date
                ):
                    logger.debug(
                        f"Match for {transaction.id} on {candidate.instance_date} already exists"
                    )
                    continue

                recurring = recurring_by_id[candidate.recurring_transaction_id]
                match = ReconciliationMatch.create(
                    imported_transaction_id=transaction.id,
                    recurring_transaction_id=candidate.recurring_transaction_id,
                    recurring_instance_date=candidate.instance_date,
                    confidence_score=candidate.confidence_score,
                    amount_variance=candidate.amount_variance,
                    date_offset_days=candidate.date_offset_days,
                    scope=recurring.scope,
                    owner_user_id=recurring.owner_user_id,
                )
                if candidate.confidence_score >= tolerances.auto_match_threshold:
                    match = match.auto_match()

                if not await self.matches.add(match):
                    continue
                created.append(match)
                if match.status == MatchStatus.AUTO_MATCHED:
                    result.high_confidence_count += 1

            if created:
                result.matches_by_transaction[transaction.id] = created
                result.total_matches_found += len(created)

        await self.session.commit()
        logger.info(
            f"Found {result.total_matches_found} new matches "
            f"({result.high_confidence_count} auto-matched)"
        )
        return result

    async def create_manual_match(
        self,
        transaction_id: UUID,
        recurring_transaction_id: UUID,
        instance_date: date,
    ) -> ReconciliationMatch | None:
        """Link a transaction to an instance by hand.

        Returns:
            The accepted match, the existing match for the same pairing, or
            None if the transaction or recurring transaction is unknown

        Raises:
            TransactionLinkError: If the transaction is linked to another instance
        """
        transaction = await self.transactions.get_by_id(transaction_id)
        recurring = await self.recurring.get_by_id(recurring_transaction_id)
        if transaction is None or recurring is None:
            return None

        existing = await self.matches.get_by_triple(
            transaction_id, recurring_transaction_id, instance_date
        )
        if existing is not None:
            return existing

        expected = self._expected_amount(recurring, instance_date)
        match = ReconciliationMatch.create(
            imported_transaction_id=transaction.id,
            recurring_transaction_id=recurring.id,
            recurring_instance_date=instance_date,
            confidence_score=ONE,
            amount_variance=expected - transaction.amount,
            date_offset_days=(transaction.date - instance_date).days,
            scope=recurring.scope,
            owner_user_id=recurring.owner_user_id,
            source=MatchSource.MANUAL,
        ).accept()

        if not await self.matches.add(match):
            # Lost a race with a concurrent writer; the winner owns the link
            return await self.matches.get_by_triple(
                transaction_id, recurring_transaction_id, instance_date
            )
        link_transaction(transaction, recurring.id, instance_date)
        await self.session.commit()

        logger.info(f"Manual match {transaction.id} -> {recurring.id} on {instance_date}")
        return match

    async def get_status(self, year: int, month: int) -> ReconciliationStatus:
        """Report which expected instances of a month are matched.

        Raises:
            ValidationError: If month is not 1-12 or year is not 2000-2100
        """
        if not 1 <= month <= 12:
            raise ValidationError("Month must be between 1 and 12")
        if not MIN_YEAR <= year <= MAX_YEAR:
            raise ValidationError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}")

        start = date(year, month, 1)
        end = date(year, month, calendar.monthrange(year, month)[1])

        recurring_transactions = await self.recurring.get_active()
        instances = self.projector.flatten(
            self.projector.project(recurring_transactions, start, end)
        )
        best = self._best_matches(await self.matches.get_by_period(year, month))

        status = ReconciliationStatus(year=year, month=month, total_expected=len(instances))
        for instance in instances:
            match = best.get(instance.key)
            if match is None:
                state = InstanceState.MISSING
                status.missing += 1
            elif match.status in MATCHED_STATUSES:
                state = InstanceState.MATCHED
                status.matched += 1
            else:
                state = InstanceState.PENDING
                status.pending += 1
            status.instances.append(InstanceStatus(instance=instance, state=state, match=match))

        return status

    async def get_pending_matches(self) -> list[ReconciliationMatch]:
        return await self.matches.get_pending()

    async def accept_match(self, match_id: UUID) -> ReconciliationMatch | None:
        """Accept a match and link its transaction.

        Raises:
            InvalidStateTransition: If the match is already accepted or rejected
            TransactionLinkError: If the transaction is linked to another instance
        """
        accepted = await self._accept(match_id)
        if accepted is not None:
            await self.session.commit()
        return accepted

    async def reject_match(self, match_id: UUID) -> ReconciliationMatch | None:
        match = await self.matches.get_by_id(match_id)
        if match is None:
            return None

        rejected = match.reject()
        await self.matches.save(rejected)
        await self.session.commit()
        return rejected

    async def bulk_accept(self, match_ids: list[UUID]) -> BulkAcceptResult:
        """Accept many matches; unknown or undecidable ones count as failures."""
        result = BulkAcceptResult()
        for match_id in dict.fromkeys(match_ids):
            try:
                accepted = await self._accept(match_id)
            except ReconciliationError as e:
                logger.warning(f"Could not accept match {match_id}: {e}")
                result.failed_count += 1
                continue

            if accepted is None:
                logger.warning(f"Match {match_id} not found")
                result.failed_count += 1
            else:
                result.accepted.append(accepted)

        await self.session.commit()
        logger.info(f"Bulk accepted {len(result.accepted)} matches, {result.failed_count} failed")
        return result

    async def unlink_match(self, match_id: UUID) -> ReconciliationMatch | None:
        """Undo a confirmed match so its instance becomes missing again.

        Returns:
            The removed match, or None if unknown

        Raises:
            InvalidStateTransition: If the match is not accepted or auto-matched
        """
        match = await self.matches.get_by_id(match_id)
        if match is None:
            return None
        if match.status not in MATCHED_STATUSES:
            raise InvalidStateTransition("unlink", match.status.value)

        transaction = await self.transactions.get_by_id(match.imported_transaction_id)
        if transaction is not None:
            unlink_transaction(
                transaction, match.recurring_transaction_id, match.recurring_instance_date
            )
        await self.matches.delete(match.id)
        await self.session.commit()

        logger.info(f"Unlinked match {match.id}")
        return match

    async def get_matches_for_recurring_transaction(
        self,
        recurring_transaction_id: UUID,
        today: date | None = None,
    ) -> list[ReconciliationMatch]:
        """Matches of one recurring transaction around today."""
        today = today or date.today()
        window = timedelta(days=self.recurring_history_days)
        return await self.matches.get_by_recurring_transaction(
            recurring_transaction_id, today - window, today + window
        )

    async def get_linkable_instances(self, transaction_id: UUID) -> list[LinkableInstance] | None:
        """Instances near a transaction's date, closest first.

        Returns:
            Linkable instances, or None if the transaction is unknown
        """
        transaction = await self.transactions.get_by_id(transaction_id)
        if transaction is None:
            return None

        window = timedelta(days=self.linkable_window_days)
        start, end = transaction.date - window, transaction.date + window

        recurring_transactions = await self.recurring.get_active()
        instances = self.projector.flatten(
            self.projector.project(recurring_transactions, start, end)
        )
        matched = {
            (m.recurring_transaction_id, m.recurring_instance_date)
            for m in await self.matches.get_in_range(start, end)
            if m.status in MATCHED_STATUSES
        }

        linkable = []
        for instance in instances:
            candidate = self.matcher.calculate_match(
                transaction, instance, MatchingTolerances.DEFAULT
            )
            linkable.append(
                LinkableInstance(
                    instance=instance,
                    is_already_matched=instance.key in matched,
                    suggested_confidence=candidate.confidence_score if candidate else None,
                )
            )

        linkable.sort(
            key=lambda li: (
                abs((li.instance.instance_date - transaction.date).days),
                li.instance.instance_date,
                str(li.instance.recurring_transaction_id),
            )
        )
        return linkable

    async def _accept(self, match_id: UUID) -> ReconciliationMatch | None:
        match = await self.matches.get_by_id(match_id)
        if match is None:
            return None

        accepted = match.accept()
        transaction = await self.transactions.get_by_id(match.imported_transaction_id)
        if transaction is not None:
            link_transaction(
                transaction, match.recurring_transaction_id, match.recurring_instance_date
            )
        await self.matches.save(accepted)
        return accepted

    def _expected_amount(self, recurring: RecurringTransaction, instance_date: date) -> Decimal:
        """Scheduled amount for a date, honouring a modified exception."""
        for instance in self.projector.instances_for_date([recurring], instance_date):
            if not instance.is_skipped:
                return instance.expected_amount
        return recurring.amount

    def _best_matches(
        self, matches: list[ReconciliationMatch]
    ) -> dict[tuple[UUID, date], ReconciliationMatch]:
        """Strongest non-rejected match per instance; confirmed beats suggested."""
        best: dict[tuple[UUID, date], ReconciliationMatch] = {}
        for match in matches:
            if match.status == MatchStatus.REJECTED:
                continue
            key = (match.recurring_transaction_id, match.recurring_instance_date)
            current = best.get(key)
            if current is None or self._rank(match) > self._rank(current):
                best[key] = match
        return best

    @staticmethod
    def _rank(match: ReconciliationMatch) -> tuple[bool, Decimal]:
        return (match.status in MATCHED_STATUSES, match.confidence_score)
