"""Accounting period lifecycle rules.

Pure: no I/O, no session. The promotion coordinator and the close operation
consult these rules; they never bypass them.
"""
from __future__ import annotations

import enum


class PeriodStatus(str, enum.Enum):
    PLANNED = "PLANNED"
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


ALLOWED_TRANSITIONS: dict[PeriodStatus, frozenset[PeriodStatus]] = {
    PeriodStatus.PLANNED: frozenset({PeriodStatus.OPEN}),
    # Direct close is allowed; CLOSING exists for a staged close.
    PeriodStatus.OPEN: frozenset({PeriodStatus.CLOSING, PeriodStatus.CLOSED}),
    PeriodStatus.CLOSING: frozenset(),
    PeriodStatus.CLOSED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, nxt in ALLOWED_TRANSITIONS.items() if not nxt)


class PeriodTransitionError(ValueError):
    def __init__(self, from_status: PeriodStatus | str, to_status: PeriodStatus | str, message: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(message or f"Invalid period status transition: {_name(from_status)} -> {_name(to_status)}")


def _name(s: PeriodStatus | str) -> str:
    return s.value if isinstance(s, PeriodStatus) else str(s)


def to_period_status(value: object) -> PeriodStatus:
    """Coerce a stored value. Anything unrecognised is treated as CLOSED."""
    if isinstance(value, PeriodStatus):
        return value
    try:
        return PeriodStatus(str(value))
    except ValueError:
        return PeriodStatus.CLOSED


def can_transition(from_status: PeriodStatus, to_status: PeriodStatus) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def assert_valid_transition(from_status: PeriodStatus | str, to_status: PeriodStatus | str) -> None:
    # Strict parse here: an unknown status must fail, not be coerced.
    try:
        src = PeriodStatus(from_status)
        dst = PeriodStatus(to_status)
    except ValueError:
        raise PeriodTransitionError(from_status, to_status) from None
    if src == dst:
        return
    if not can_transition(src, dst):
        raise PeriodTransitionError(src, dst)
