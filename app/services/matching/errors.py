"""Domain errors raised by the reconciliation engine."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class ValidationError(ReconciliationError):
    """Input failed validation (tolerances, patterns, periods, match fields)."""

    pass


class InvalidRangeError(ValidationError):
    """Date range start is after its end."""

    def __init__(self, start, end):
        super().__init__(f"Start date {start} must be on or before end date {end}")
        self.start = start
        self.end = end


class InvalidStateTransition(ReconciliationError):
    """Match cannot move from its current status."""

    def __init__(self, action: str, status: str):
        super().__init__(f"Cannot {action} a match in status '{status}'")
        self.action = action
        self.status = status


class TransactionLinkError(ReconciliationError):
    """Transaction is already linked to a different recurring instance."""

    pass
