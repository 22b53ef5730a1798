from __future__ import annotations


class DomainError(Exception):
    """Base for errors the services raise on purpose.

    `code` is stable and safe to hand back to callers.
    """

    code = "DOMAIN_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationFailed(DomainError):
    code = "VALIDATION"


class NotFound(DomainError):
    code = "NOT_FOUND"


class PeriodClosed(DomainError):
    code = "PERIOD_CLOSED"


class ConflictingOpenPeriod(DomainError):
    code = "CONFLICTING_OPEN_PERIOD"

    def __init__(self, client_id: str, period_id: str, open_period_id: str | None = None):
        if open_period_id:
            msg = f"Client {client_id} already has open period {open_period_id}; cannot open {period_id}"
        else:
            msg = f"Client {client_id} already has an open period; cannot open {period_id}"
        super().__init__(msg)
        self.client_id = client_id
        self.period_id = period_id
        self.open_period_id = open_period_id


class InvariantViolation(DomainError):
    """A should-never-happen state. Always fatal for the transaction."""

    code = "INVARIANT_VIOLATION"
