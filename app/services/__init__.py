"""Services for reconciliation."""

from .reconcile import (
    BulkAcceptResult,
    FindMatchesResult,
    InstanceState,
    InstanceStatus,
    LinkableInstance,
    ReconciliationOrchestrator,
    ReconciliationStatus,
)
from .repositories import (
    ReconciliationMatchRepository,
    RecurringTransactionRepository,
    TransactionRepository,
)

__all__ = [
    "ReconciliationOrchestrator",
    "FindMatchesResult",
    "ReconciliationStatus",
    "InstanceState",
    "InstanceStatus",
    "BulkAcceptResult",
    "LinkableInstance",
    "TransactionRepository",
    "RecurringTransactionRepository",
    "ReconciliationMatchRepository",
]
