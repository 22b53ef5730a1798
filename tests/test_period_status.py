import pytest

from services.periods.status import (
    PeriodStatus,
    PeriodTransitionError,
    TERMINAL_STATUSES,
    assert_valid_transition,
    can_transition,
    to_period_status,
)


@pytest.mark.parametrize("src,dst,ok", [
    (PeriodStatus.PLANNED, PeriodStatus.OPEN, True),
    (PeriodStatus.OPEN, PeriodStatus.CLOSING, True),
    (PeriodStatus.OPEN, PeriodStatus.CLOSED, True),
    (PeriodStatus.PLANNED, PeriodStatus.CLOSED, False),
    (PeriodStatus.CLOSED, PeriodStatus.OPEN, False),
    (PeriodStatus.CLOSING, PeriodStatus.OPEN, False),
    (PeriodStatus.CLOSING, PeriodStatus.CLOSED, False),
])
def test_can_transition(src, dst, ok):
    assert can_transition(src, dst) is ok


def test_same_status_is_a_noop():
    for s in PeriodStatus:
        assert_valid_transition(s, s)


def test_illegal_transition_carries_both_ends():
    with pytest.raises(PeriodTransitionError) as exc:
        assert_valid_transition("CLOSED", "OPEN")
    assert exc.value.from_status == PeriodStatus.CLOSED
    assert exc.value.to_status == PeriodStatus.OPEN
    assert "CLOSED -> OPEN" in str(exc.value)


def test_unknown_status_fails_the_transition_check():
    with pytest.raises(PeriodTransitionError):
        assert_valid_transition("ARCHIVED", "OPEN")


def test_unknown_stored_status_reads_as_closed():
    assert to_period_status("ARCHIVED") is PeriodStatus.CLOSED
    assert to_period_status("OPEN") is PeriodStatus.OPEN


def test_closing_and_closed_are_terminal():
    assert TERMINAL_STATUSES == {PeriodStatus.CLOSING, PeriodStatus.CLOSED}
