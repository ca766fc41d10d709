"""Reconciliation matching engine."""

from .confidence import ConfidenceLevel, ConfidenceScorer, confidence_level
from .errors import (
    InvalidRangeError,
    InvalidStateTransition,
    ReconciliationError,
    TransactionLinkError,
    ValidationError,
)
from .match import BudgetScope, MatchSource, MatchStatus, ReconciliationMatch
from .matcher import MatchCandidate, TransactionMatcher
from .projector import ExceptionType, RecurringInstanceProjector, RecurringScheduleInstance
from .recurrence import Frequency, RecurrencePattern
from .tolerances import MatchingTolerances, ScoreWeights

__all__ = [
    "BudgetScope",
    "ConfidenceLevel",
    "ConfidenceScorer",
    "ExceptionType",
    "Frequency",
    "InvalidRangeError",
    "InvalidStateTransition",
    "MatchCandidate",
    "MatchSource",
    "MatchStatus",
    "MatchingTolerances",
    "ReconciliationError",
    "ReconciliationMatch",
    "RecurrencePattern",
    "RecurringInstanceProjector",
    "RecurringScheduleInstance",
    "ScoreWeights",
    "TransactionLinkError",
    "TransactionMatcher",
    "ValidationError",
    "confidence_level",
]
