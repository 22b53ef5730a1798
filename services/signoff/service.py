"""Reviewed / completed signoffs per working paper.

One record per (client, period, code). The current state is the
`*_by_member_id` / `*_at` pairs; `history` is an append-only list of
SignoffEvent dicts `{type, memberId, at}`.
"""
from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field
from sqlalchemy import JSON, cast, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session

from app.core.audit import audit
from app.core.errors import NotFound
from app.db.models.common import utcnow
from app.db.models.periods import AccountingPeriod
from app.db.models.signoffs import DocSignoff
from app.events.bus import publish
from services._tx import atomic, dialect_name, upsert_insert

logger = logging.getLogger(__name__)

SignoffKind = Literal["REVIEWED", "COMPLETED"]

_COLUMNS = {
    "REVIEWED": ("reviewed_by_member_id", "reviewed_at"),
    "COMPLETED": ("completed_by_member_id", "completed_at"),
}


class SignoffToggle(BaseModel):
    client_id: str
    period_id: str
    code: str = Field(..., max_length=64)
    kind: SignoffKind
    checked: bool
    member_id: str | None = None


class ActionResult(BaseModel):
    success: bool
    message: str | None = None


def _load(db: Session, client_id: str, period_id: str, code: str, *, for_update: bool = False) -> DocSignoff | None:
    q = db.query(DocSignoff).filter(
        DocSignoff.client_id == client_id,
        DocSignoff.period_id == period_id,
        DocSignoff.code == code,
    )
    if for_update:
        q = q.with_for_update()
    return q.first()


def _event(toggle: SignoffToggle, existing: DocSignoff | None, at: str) -> dict:
    if toggle.checked:
        return {"type": f"{toggle.kind}_SET", "memberId": toggle.member_id, "at": at}
    member_col, _ = _COLUMNS[toggle.kind]
    previous = getattr(existing, member_col) if existing else None
    return {"type": f"{toggle.kind}_CLEARED", "memberId": previous, "at": at}


def _appended_history(db: Session, excluded):
    """Stored history with the inserted row's single event appended, evaluated by the store."""
    if dialect_name(db) == "postgresql":
        return cast(cast(DocSignoff.history, JSONB).op("||")(cast(excluded.history, JSONB)), JSON)
    return func.json_insert(DocSignoff.history, "$[#]", func.json(func.json_extract(excluded.history, "$[0]")))


def _apply(db: Session, toggle: SignoffToggle, *, actor: str | None) -> None:
    period = (db.query(AccountingPeriod)
              .filter(AccountingPeriod.id == toggle.period_id, AccountingPeriod.client_id == toggle.client_id)
              .first())
    if not period:
        raise NotFound("Accounting period not found")

    now = utcnow()
    existing = _load(db, toggle.client_id, toggle.period_id, toggle.code, for_update=True)
    event = _event(toggle, existing, now.isoformat())

    member_col, at_col = _COLUMNS[toggle.kind]
    patch = {
        member_col: toggle.member_id if toggle.checked else None,
        at_col: now if toggle.checked else None,
    }
    stmt = upsert_insert(db, DocSignoff).values(
        client_id=toggle.client_id,
        period_id=toggle.period_id,
        code=toggle.code,
        history=[event],
        **patch,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[DocSignoff.client_id, DocSignoff.period_id, DocSignoff.code],
        set_={**patch, "history": _appended_history(db, stmt.excluded), "updated_at": now},
    )
    db.execute(stmt)
    db.expire_all()

    audit(db, actor=actor, action="signoff.toggled", entity_type="DocSignoff", entity_id=toggle.code,
          payload={"client_id": toggle.client_id, "period_id": toggle.period_id, "event": event})
    publish(db, "signoff.toggled", {
        "client_id": toggle.client_id,
        "period_id": toggle.period_id,
        "code": toggle.code,
        "event": event,
    })


def toggle_signoff(db: Session, toggle: SignoffToggle, *, actor: str | None = None) -> ActionResult:
    """Set or clear one signoff. Failures are reported, never raised."""
    if toggle.checked and not toggle.member_id:
        return ActionResult(success=False, message="Member is required")
    try:
        with atomic(db):
            _apply(db, toggle, actor=actor)
    except Exception as e:
        logger.exception("signoff %s on %s/%s failed", toggle.kind, toggle.period_id, toggle.code)
        message = getattr(e, "message", None) or str(e) or "Failed to update signoff"
        return ActionResult(success=False, message=message)

    logger.info("signoff %s %s on %s for period %s",
                toggle.kind, "set" if toggle.checked else "cleared", toggle.code, toggle.period_id)
    return ActionResult(success=True)


def get_signoff(db: Session, client_id: str, period_id: str, code: str) -> dict:
    row = _load(db, client_id, period_id, code)
    if not row:
        return {"record": None, "history": []}
    return {
        "record": {
            "reviewed_by_member_id": row.reviewed_by_member_id,
            "reviewed_at": row.reviewed_at.isoformat() if row.reviewed_at else None,
            "completed_by_member_id": row.completed_by_member_id,
            "completed_at": row.completed_at.isoformat() if row.completed_at else None,
        },
        "history": list(row.history or []),
    }
