from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.audit import audit
from app.core.errors import ConflictingOpenPeriod, InvariantViolation, NotFound, PeriodClosed, ValidationFailed
from app.db.errors import as_unique_violation
from app.db.models.periods import AccountingPeriod, Client, ONE_OPEN_PERIOD_CONSTRAINT
from app.events.bus import publish
from services._tx import atomic
from services.periods.status import (
    PeriodStatus,
    PeriodTransitionError,
    TERMINAL_STATUSES,
    assert_valid_transition,
)

logger = logging.getLogger(__name__)

OPEN = PeriodStatus.OPEN.value
TERMINAL_STATUS_VALUES = frozenset(s.value for s in TERMINAL_STATUSES)


@dataclass(frozen=True)
class PromotionResult:
    promoted: bool


# ---- reads ----

def get_period(db: Session, client_id: str, period_id: str) -> AccountingPeriod:
    period = (db.query(AccountingPeriod)
              .filter(AccountingPeriod.id == period_id, AccountingPeriod.client_id == client_id)
              .first())
    if not period:
        raise NotFound("Accounting period not found")
    return period


def list_periods(db: Session, client_id: str) -> list[AccountingPeriod]:
    return (db.query(AccountingPeriod)
            .filter(AccountingPeriod.client_id == client_id)
            .order_by(AccountingPeriod.end_date.desc())
            .all())


def get_current_period(db: Session, client_id: str) -> AccountingPeriod | None:
    rows = (db.query(AccountingPeriod)
            .filter(AccountingPeriod.client_id == client_id,
                    AccountingPeriod.status == OPEN,
                    AccountingPeriod.is_current == True)  # noqa: E712
            .all())
    if len(rows) > 1:
        raise InvariantViolation(f"Multiple current accounting periods for client {client_id}")
    return rows[0] if rows else None


def get_prior_period(db: Session, client_id: str, period_id: str) -> AccountingPeriod | None:
    current = get_period(db, client_id, period_id)
    return (db.query(AccountingPeriod)
            .filter(AccountingPeriod.client_id == client_id, AccountingPeriod.end_date < current.end_date)
            .order_by(AccountingPeriod.end_date.desc())
            .first())


def count_open_periods(db: Session, client_id: str) -> int:
    return int(db.query(func.count(AccountingPeriod.id))
               .filter(AccountingPeriod.client_id == client_id, AccountingPeriod.status == OPEN)
               .scalar() or 0)


def next_period_dates(end_date: date) -> tuple[date, date]:
    """Default next period: starts the day after, ends one year after the current end."""
    start = end_date + timedelta(days=1)
    try:
        end = end_date.replace(year=end_date.year + 1)
    except ValueError:
        # 29 Feb
        end = end_date.replace(year=end_date.year + 1, day=28)
    return start, end


# ---- promotion ----

def _lock_client(db: Session, client_id: str) -> Client | None:
    # Taken first by every writer of a client's period statuses: promotions
    # and closes for one client run one at a time.
    return db.query(Client).filter(Client.id == client_id).with_for_update().first()


def _lock_period(db: Session, client_id: str, period_id: str) -> AccountingPeriod | None:
    return (db.query(AccountingPeriod)
            .filter(AccountingPeriod.id == period_id, AccountingPeriod.client_id == client_id)
            .with_for_update()
            .first())


def _lock_other_open(db: Session, client_id: str, period_id: str) -> AccountingPeriod | None:
    return (db.query(AccountingPeriod)
            .filter(AccountingPeriod.client_id == client_id,
                    AccountingPeriod.status == OPEN,
                    AccountingPeriod.id != period_id)
            .with_for_update()
            .first())


def _promote_locked(db: Session, client_id: str, period_id: str, *, actor: str | None) -> bool:
    """Make `period_id` the single OPEN, current period of the client.

    Runs inside the caller's transaction and never commits. Returns False when
    the period was already OPEN.
    """
    _lock_client(db, client_id)
    period = _lock_period(db, client_id, period_id)
    if not period:
        raise NotFound("Accounting period not found")

    if period.status == OPEN:
        return False
    if period.status in TERMINAL_STATUS_VALUES:
        raise PeriodClosed(f"Accounting period {period_id} is {period.status} and cannot be reopened")

    other = _lock_other_open(db, client_id, period_id)
    if other:
        logger.warning("promotion of period %s refused: client %s already has open period %s",
                       period_id, client_id, other.id)
        raise ConflictingOpenPeriod(client_id, period_id, other.id)

    try:
        assert_valid_transition(period.status, PeriodStatus.OPEN)
    except PeriodTransitionError as e:
        raise InvariantViolation(f"Promotion reached an illegal transition for period {period_id}: {e}") from e

    (db.query(AccountingPeriod)
     .filter(AccountingPeriod.client_id == client_id, AccountingPeriod.is_current == True)  # noqa: E712
     .update({AccountingPeriod.is_current: False}, synchronize_session="fetch"))
    period.status = OPEN
    period.is_current = True
    try:
        db.flush()
    except IntegrityError as e:
        violation = as_unique_violation(e)
        if violation is not None and violation.constraint == ONE_OPEN_PERIOD_CONSTRAINT:
            logger.warning("promotion of period %s lost a race on %s", period_id, ONE_OPEN_PERIOD_CONSTRAINT)
            raise ConflictingOpenPeriod(client_id, period_id) from e
        raise

    open_count = count_open_periods(db, client_id)
    if open_count != 1:
        raise InvariantViolation(f"Client {client_id} has {open_count} OPEN periods after promoting {period_id}")

    audit(db, actor=actor, action="period.promoted", entity_type="AccountingPeriod", entity_id=period_id,
          payload={"client_id": client_id})
    publish(db, "period.promoted", {"client_id": client_id, "period_id": period_id})
    return True


def _record_defect(db: Session, *, actor: str | None, client_id: str, period_id: str | None,
                   error: InvariantViolation) -> None:
    """Persist an invariant violation after the failed transaction rolled back."""
    logger.error("INVARIANT VIOLATION client=%s period=%s: %s", client_id, period_id, error)
    try:
        with atomic(db):
            audit(db, actor=actor, action="period.invariant_violation", entity_type="AccountingPeriod",
                  entity_id=period_id, success=False, payload={"client_id": client_id, "error": str(error)})
    except SQLAlchemyError:
        logger.exception("could not write invariant-violation audit row for period %s", period_id)


def promote_to_open(db: Session, client_id: str, period_id: str, *, actor: str | None = None) -> PromotionResult:
    try:
        with atomic(db):
            promoted = _promote_locked(db, client_id, period_id, actor=actor)
    except InvariantViolation as e:
        _record_defect(db, actor=actor, client_id=client_id, period_id=period_id, error=e)
        raise
    if promoted:
        logger.info("period %s promoted to OPEN for client %s", period_id, client_id)
    return PromotionResult(promoted=promoted)


# ---- lifecycle ----

def _validate_range(start_date: date, end_date: date, label: str = "Period") -> None:
    if start_date > end_date:
        raise ValidationFailed(f"{label} start date must be on or before its end date")


def _find_overlapping(db: Session, client_id: str, start_date: date, end_date: date) -> AccountingPeriod | None:
    return (db.query(AccountingPeriod)
            .filter(AccountingPeriod.client_id == client_id,
                    AccountingPeriod.start_date <= end_date,
                    AccountingPeriod.end_date >= start_date)
            .first())


def _insert_period(db: Session, client_id: str, period_name: str, start_date: date, end_date: date) -> AccountingPeriod:
    if not db.query(Client).filter(Client.id == client_id).first():
        raise NotFound("Client not found")
    if _find_overlapping(db, client_id, start_date, end_date):
        raise ValidationFailed("Accounting period overlaps an existing period")
    period = AccountingPeriod(
        client_id=client_id,
        period_name=period_name,
        start_date=start_date,
        end_date=end_date,
        status=PeriodStatus.PLANNED.value,
        is_current=False,
    )
    db.add(period)
    db.flush()
    return period


def create_period(
    db: Session,
    client_id: str,
    *,
    period_name: str,
    start_date: date,
    end_date: date,
    open_now: bool = False,
    actor: str | None = None,
) -> AccountingPeriod:
    """Create a PLANNED period; `open_now` also promotes it in the same transaction."""
    if not (period_name or "").strip():
        raise ValidationFailed("Period name is required")
    _validate_range(start_date, end_date)
    period_id = None
    try:
        with atomic(db):
            period = _insert_period(db, client_id, period_name.strip(), start_date, end_date)
            period_id = period.id
            audit(db, actor=actor, action="period.created", entity_type="AccountingPeriod", entity_id=period_id,
                  payload={"client_id": client_id, "start_date": start_date.isoformat(),
                           "end_date": end_date.isoformat()})
            if open_now:
                _promote_locked(db, client_id, period_id, actor=actor)
    except InvariantViolation as e:
        _record_defect(db, actor=actor, client_id=client_id, period_id=period_id, error=e)
        raise
    logger.info("period %s (%s) created for client %s", period.id, period.period_name, client_id)
    return period


def _find_or_create_next(db: Session, client_id: str, period_name: str, start_date: date, end_date: date) -> AccountingPeriod:
    existing = (db.query(AccountingPeriod)
                .filter(AccountingPeriod.client_id == client_id,
                        AccountingPeriod.start_date == start_date,
                        AccountingPeriod.end_date == end_date)
                .first())
    if existing:
        return existing
    return _insert_period(db, client_id, period_name, start_date, end_date)


def close_period(
    db: Session,
    client_id: str,
    period_id: str,
    *,
    next_period_name: str,
    next_start_date: date,
    next_end_date: date,
    actor: str | None = None,
) -> dict:
    """Close the current period, open the next one and roll its documents forward.

    One transaction: either the close, the promotion and the roll-forward all
    happen, or none do.
    """
    from services.rollforward.service import roll_forward_in_tx

    _validate_range(next_start_date, next_end_date, label="Next period")
    try:
        with atomic(db):
            _lock_client(db, client_id)
            period = _lock_period(db, client_id, period_id)
            if not period:
                raise NotFound("Accounting period not found")
            if period.status != OPEN:
                raise PeriodClosed(f"Accounting period {period_id} is {period.status}, not OPEN")
            if not period.is_current:
                raise ValidationFailed("Only the current period can be closed")

            earliest = period.end_date + timedelta(days=1)
            if next_start_date < earliest:
                raise ValidationFailed(
                    f"Next period must start on or after {earliest.isoformat()} "
                    "(the day after the current period end date)"
                )

            assert_valid_transition(period.status, PeriodStatus.CLOSED)
            period.status = PeriodStatus.CLOSED.value
            period.is_current = False
            db.flush()

            nxt = _find_or_create_next(db, client_id, next_period_name, next_start_date, next_end_date)
            next_id = nxt.id
            _promote_locked(db, client_id, next_id, actor=actor)
            result = roll_forward_in_tx(db, client_id, period_id, next_id, actor=actor)

            audit(db, actor=actor, action="period.closed", entity_type="AccountingPeriod", entity_id=period_id,
                  payload={"client_id": client_id, "next_period_id": next_id})
            publish(db, "period.closed", {"client_id": client_id, "period_id": period_id, "next_period_id": next_id})
    except InvariantViolation as e:
        _record_defect(db, actor=actor, client_id=client_id, period_id=period_id, error=e)
        raise

    logger.info("period %s closed for client %s; %s is now open", period_id, client_id, next_id)
    return {
        "closed_period_id": period_id,
        "next_period_id": next_id,
        "rollforward": result.as_dict(),
    }
