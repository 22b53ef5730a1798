from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from sqlalchemy.orm import Session

from app.core.audit import audit
from app.core.errors import NotFound, PeriodClosed
from app.db.models.common import utcnow
from app.db.models.documents import WorkingPaper
from app.db.models.periods import AccountingPeriod
from app.events.bus import publish
from services._tx import atomic, upsert_insert
from services.periods.status import PeriodStatus
from services.rollforward.reset import reset_document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RollForwardResult:
    considered: int = 0
    copied: int = 0
    overwritten: int = 0
    skipped: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def _period(db: Session, client_id: str, period_id: str, label: str) -> AccountingPeriod:
    period = (db.query(AccountingPeriod)
              .filter(AccountingPeriod.id == period_id, AccountingPeriod.client_id == client_id)
              .first())
    if not period:
        raise NotFound(f"{label} period not found")
    return period


def _write(db: Session, values: dict, *, overwrite: bool, exists: bool) -> bool:
    """Insert one carried document keyed on (period_id, code). Returns True if a row was written."""
    stmt = upsert_insert(db, WorkingPaper).values(**values)
    if overwrite:
        stmt = stmt.on_conflict_do_update(
            index_elements=[WorkingPaper.period_id, WorkingPaper.code],
            set_={
                "kind": stmt.excluded.kind,
                "content": stmt.excluded.content,
                "content_json": stmt.excluded.content_json,
                "is_complete": stmt.excluded.is_complete,
                "updated_at": utcnow(),
            },
        )
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=[WorkingPaper.period_id, WorkingPaper.code])
    result = db.execute(stmt)
    return bool(result.rowcount) or (overwrite and exists)


def roll_forward_in_tx(
    db: Session,
    client_id: str,
    from_period_id: str,
    to_period_id: str,
    *,
    overwrite: bool = False,
    reset_complete: bool = True,
    upgrade_headings: bool = True,
    actor: str | None = None,
) -> RollForwardResult:
    """Carry every document of one period into another, inside the caller's transaction.

    Existing target documents are left alone unless `overwrite` is set; the
    first roll-forward into a period wins.
    """
    if from_period_id == to_period_id:
        return RollForwardResult()

    _period(db, client_id, from_period_id, "Source")
    target = _period(db, client_id, to_period_id, "Target")
    if target.status == PeriodStatus.CLOSED.value:
        raise PeriodClosed("Cannot roll forward into a CLOSED period")

    sources = (db.query(WorkingPaper)
               .filter(WorkingPaper.client_id == client_id, WorkingPaper.period_id == from_period_id)
               .order_by(WorkingPaper.code)
               .all())
    existing = {
        code for (code,) in db.query(WorkingPaper.code)
        .filter(WorkingPaper.period_id == to_period_id)
        .all()
    }

    copied = overwritten = skipped = 0
    for src in sources:
        values = {
            "client_id": client_id,
            "period_id": to_period_id,
            "code": src.code,
            "kind": src.kind,
            "content": src.content or "",
            "content_json": reset_document(src.content_json, upgrade_headings=upgrade_headings),
            "is_complete": False if reset_complete else src.is_complete,
        }
        exists = src.code in existing
        written = _write(db, values, overwrite=overwrite, exists=exists)
        if not written:
            skipped += 1
        elif exists:
            overwritten += 1
        else:
            copied += 1

    # Core upserts bypass the identity map
    db.expire_all()

    result = RollForwardResult(considered=len(sources), copied=copied, overwritten=overwritten, skipped=skipped)
    audit(db, actor=actor, action="documents.rolled_forward", entity_type="AccountingPeriod",
          entity_id=to_period_id, payload={"client_id": client_id, "from_period_id": from_period_id, **result.as_dict()})
    publish(db, "documents.rolled_forward",
            {"client_id": client_id, "from_period_id": from_period_id, "to_period_id": to_period_id,
             **result.as_dict()})
    return result


def roll_forward(
    db: Session,
    client_id: str,
    from_period_id: str,
    to_period_id: str,
    *,
    overwrite: bool = False,
    reset_complete: bool = True,
    upgrade_headings: bool = True,
    actor: str | None = None,
) -> RollForwardResult:
    if from_period_id == to_period_id:
        return RollForwardResult()
    with atomic(db):
        result = roll_forward_in_tx(
            db, client_id, from_period_id, to_period_id,
            overwrite=overwrite, reset_complete=reset_complete, upgrade_headings=upgrade_headings, actor=actor,
        )
    logger.info("rolled forward %s -> %s for client %s: %s",
                from_period_id, to_period_id, client_id, result.as_dict())
    return result
