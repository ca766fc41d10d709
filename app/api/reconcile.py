"""Reconciliation API endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_session
from app.services.matching import MatchingTolerances, ReconciliationMatch, RecurringScheduleInstance
from app.services.reconcile import ReconciliationOrchestrator

router = APIRouter(prefix="/api/reconciliation", tags=["reconciliation"])


class TolerancesRequest(BaseModel):
    """Overrides for the default matching tolerances."""

    date_tolerance_days: int = MatchingTolerances.DEFAULT.date_tolerance_days
    amount_tolerance_percent: Decimal = MatchingTolerances.DEFAULT.amount_tolerance_percent
    amount_tolerance_absolute: Decimal = MatchingTolerances.DEFAULT.amount_tolerance_absolute
    description_similarity_threshold: Decimal = (
        MatchingTolerances.DEFAULT.description_similarity_threshold
    )
    auto_match_threshold: Decimal = MatchingTolerances.DEFAULT.auto_match_threshold

    def to_tolerances(self) -> MatchingTolerances:
        return MatchingTolerances.create(**self.model_dump())


class FindMatchesRequest(BaseModel):
    """Request to match imported transactions."""

    transaction_ids: list[UUID]
    start_date: date
    end_date: date
    tolerances: TolerancesRequest | None = None


class ManualMatchRequest(BaseModel):
    """Request to link a transaction to an instance by hand."""

    transaction_id: UUID
    recurring_transaction_id: UUID
    instance_date: date


class BulkMatchActionRequest(BaseModel):
    """Request to act on several matches."""

    match_ids: list[UUID]


class MatchResponse(BaseModel):
    """Reconciliation match."""

    id: UUID
    imported_transaction_id: UUID
    recurring_transaction_id: UUID
    recurring_instance_date: date
    confidence_score: Decimal
    confidence_level: str
    amount_variance: Decimal
    date_offset_days: int
    status: str
    source: str
    scope: str
    owner_user_id: UUID | None
    created_at_utc: datetime
    resolved_at_utc: datetime | None

    @classmethod
    def from_match(cls, match: ReconciliationMatch) -> "MatchResponse":
        return cls(
            id=match.id,
            imported_transaction_id=match.imported_transaction_id,
            recurring_transaction_id=match.recurring_transaction_id,
            recurring_instance_date=match.recurring_instance_date,
            confidence_score=match.confidence_score,
            confidence_level=match.confidence_level.value,
            amount_variance=match.amount_variance,
            date_offset_days=match.date_offset_days,
            status=match.status.value,
            source=match.source.value,
            scope=match.scope.value,
            owner_user_id=match.owner_user_id,
            created_at_utc=match.created_at_utc,
            resolved_at_utc=match.resolved_at_utc,
        )


class FindMatchesResponse(BaseModel):
    """Matches created by a find-matches run."""

    matches_by_transaction: dict[UUID, list[MatchResponse]]
    total_matches_found: int
    high_confidence_count: int


class InstanceResponse(BaseModel):
    """Expected instance of a recurring transaction."""

    recurring_transaction_id: UUID
    instance_date: date
    expected_amount: Decimal
    currency: str
    description: str
    is_modified: bool

    @classmethod
    def from_instance(cls, instance: RecurringScheduleInstance) -> "InstanceResponse":
        return cls(
            recurring_transaction_id=instance.recurring_transaction_id,
            instance_date=instance.instance_date,
            expected_amount=instance.expected_amount,
            currency=instance.currency,
            description=instance.description,
            is_modified=instance.is_modified,
        )


class InstanceStatusResponse(InstanceResponse):
    """Expected instance with its reconciliation state."""

    state: str
    match: MatchResponse | None = None


class ReconciliationStatusResponse(BaseModel):
    """Month-level reconciliation status."""

    year: int
    month: int
    total_expected: int
    matched: int
    pending: int
    missing: int
    instances: list[InstanceStatusResponse]


class BulkAcceptResponse(BaseModel):
    """Result of a bulk accept."""

    accepted: list[MatchResponse]
    failed_count: int


class LinkableInstanceResponse(InstanceResponse):
    """Instance available for manual linking."""

    is_already_matched: bool
    suggested_confidence: Decimal | None


async def get_orchestrator(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ReconciliationOrchestrator:
    return ReconciliationOrchestrator(session)


Orchestrator = Annotated[ReconciliationOrchestrator, Depends(get_orchestrator)]


@router.get("/status", response_model=ReconciliationStatusResponse)
async def get_status(
    orchestrator: Orchestrator,
    year: int = Query(..., description="Calendar year"),
    month: int = Query(..., description="Calendar month, 1-12"),
):
    """Reconciliation status of every expected instance in a month."""
    status = await orchestrator.get_status(year, month)

    return ReconciliationStatusResponse(
        year=status.year,
        month=status.month,
        total_expected=status.total_expected,
        matched=status.matched,
        pending=status.pending,
        missing=status.missing,
        instances=[
            InstanceStatusResponse(
                **InstanceResponse.from_instance(s.instance).model_dump(),
                state=s.state.value,
                match=MatchResponse.from_match(s.match) if s.match else None,
            )
            for s in status.instances
        ],
    )


@router.get("/pending", response_model=list[MatchResponse])
async def get_pending_matches(orchestrator: Orchestrator):
    """Matches awaiting review."""
    return [MatchResponse.from_match(m) for m in await orchestrator.get_pending_matches()]


@router.post("/find-matches", response_model=FindMatchesResponse)
async def find_matches(request: FindMatchesRequest, orchestrator: Orchestrator):
    """Match imported transactions against expected recurring instances."""
    if not request.transaction_ids:
        raise HTTPException(status_code=400, detail="At least one transaction ID is required")

    tolerances = request.tolerances.to_tolerances() if request.tolerances else None
    result = await orchestrator.find_matches(
        request.transaction_ids, request.start_date, request.end_date, tolerances
    )

    return FindMatchesResponse(
        matches_by_transaction={
            transaction_id: [MatchResponse.from_match(m) for m in matches]
            for transaction_id, matches in result.matches_by_transaction.items()
        },
        total_matches_found=result.total_matches_found,
        high_confidence_count=result.high_confidence_count,
    )


@router.post("/match", response_model=MatchResponse, status_code=201)
async def create_manual_match(request: ManualMatchRequest, orchestrator: Orchestrator):
    """Link a transaction to a recurring instance by hand."""
    match = await orchestrator.create_manual_match(
        request.transaction_id, request.recurring_transaction_id, request.instance_date
    )
    if match is None:
        raise HTTPException(
            status_code=404, detail="Transaction or recurring transaction not found"
        )
    return MatchResponse.from_match(match)


@router.post("/accept/{match_id}", response_model=MatchResponse)
async def accept_match(match_id: UUID, orchestrator: Orchestrator):
    """Accept a suggested or auto-matched match."""
    match = await orchestrator.accept_match(match_id)
    if match is None:
        raise HTTPException(status_code=404, detail=f"Match not found: {match_id}")
    return MatchResponse.from_match(match)


@router.post("/reject/{match_id}", response_model=MatchResponse)
async def reject_match(match_id: UUID, orchestrator: Orchestrator):
    """Reject a suggested or auto-matched match."""
    match = await orchestrator.reject_match(match_id)
    if match is None:
        raise HTTPException(status_code=404, detail=f"Match not found: {match_id}")
    return MatchResponse.from_match(match)


@router.delete("/matches/{match_id}", response_model=MatchResponse)
async def unlink_match(match_id: UUID, orchestrator: Orchestrator):
    """Remove a confirmed match and clear the transaction link."""
    match = await orchestrator.unlink_match(match_id)
    if match is None:
        raise HTTPException(status_code=404, detail=f"Match not found: {match_id}")
    return MatchResponse.from_match(match)


@router.post("/bulk-accept", response_model=BulkAcceptResponse)
async def bulk_accept(request: BulkMatchActionRequest, orchestrator: Orchestrator):
    """Accept several matches; failures are counted, not raised."""
    if not request.match_ids:
        raise HTTPException(status_code=400, detail="At least one match ID is required")

    result = await orchestrator.bulk_accept(request.match_ids)
    return BulkAcceptResponse(
        accepted=[MatchResponse.from_match(m) for m in result.accepted],
        failed_count=result.failed_count,
    )


@router.get("/recurring/{recurring_transaction_id}", response_model=list[MatchResponse])
async def get_matches_for_recurring_transaction(
    recurring_transaction_id: UUID,
    orchestrator: Orchestrator,
):
    """Matches of a recurring transaction within the history window."""
    matches = await orchestrator.get_matches_for_recurring_transaction(recurring_transaction_id)
    return [MatchResponse.from_match(m) for m in matches]


@router.get("/linkable-instances", response_model=list[LinkableInstanceResponse])
async def get_linkable_instances(
    orchestrator: Orchestrator,
    transaction_id: UUID = Query(..., description="Imported transaction ID"),
):
    """Instances near a transaction's date that it may be linked to."""
    instances = await orchestrator.get_linkable_instances(transaction_id)
    if instances is None:
        raise HTTPException(status_code=404, detail=f"Transaction not found: {transaction_id}")

    return [
        LinkableInstanceResponse(
            **InstanceResponse.from_instance(li.instance).model_dump(),
            is_already_matched=li.is_already_matched,
            suggested_confidence=li.suggested_confidence,
        )
        for li in instances
    ]
