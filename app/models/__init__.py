"""Database models."""

from .recon import (
    Base,
    ReconciliationMatch,
    RecurringTransaction,
    RecurringTransactionException,
    Transaction,
)

__all__ = [
    "Base",
    "Transaction",
    "RecurringTransaction",
    "RecurringTransactionException",
    "ReconciliationMatch",
]
