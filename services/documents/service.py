from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.audit import audit
from app.core.errors import NotFound, PeriodClosed, ValidationFailed
from app.db.models.common import utcnow
from app.db.models.documents import WorkingPaper
from app.db.models.periods import AccountingPeriod
from app.events.bus import publish
from services._tx import atomic, upsert_insert
from services.periods.status import PeriodStatus, to_period_status
from services.schedules.compute import strip_computed, with_computed_values
from services.schedules.materiality import render_from_period_setup
from services.schedules.models import (
    MaterialityDoc,
    PeriodSetupDoc,
    SimpleScheduleDoc,
    dump_document,
    parse_document,
    validate_document,
)
from services.schedules.period_setup import apply_assignment_history
from services.schedules.templates import PLANNING, TemplateDef, blank_document, get_template, list_templates

logger = logging.getLogger(__name__)

MATERIALITY_CODE = "B41"
PERIOD_SETUP_CODE = "PERIOD_SETUP"


def _template(code: str) -> TemplateDef:
    template = get_template(code)
    if not template:
        raise NotFound(f"Unknown document code {code!r}")
    return template


def _period(db: Session, client_id: str, period_id: str, *, for_update: bool = False) -> AccountingPeriod:
    q = db.query(AccountingPeriod).filter(AccountingPeriod.id == period_id, AccountingPeriod.client_id == client_id)
    if for_update:
        q = q.with_for_update()
    period = q.first()
    if not period:
        raise NotFound("Accounting period not found")
    return period


def _writable_period(db: Session, client_id: str, period_id: str) -> AccountingPeriod:
    period = _period(db, client_id, period_id, for_update=True)
    if to_period_status(period.status) is PeriodStatus.CLOSED:
        raise PeriodClosed(f"Accounting period {period_id} is CLOSED")
    return period


def _row(db: Session, client_id: str, period_id: str, code: str, *, for_update: bool = False) -> WorkingPaper | None:
    q = db.query(WorkingPaper).filter(
        WorkingPaper.client_id == client_id,
        WorkingPaper.period_id == period_id,
        WorkingPaper.code == code,
    )
    if for_update:
        q = q.with_for_update()
    return q.first()


def _with_values(content_json: Any) -> Any:
    doc = parse_document(content_json)
    if isinstance(doc, SimpleScheduleDoc):
        return with_computed_values(doc)
    return content_json


def _serialize(row: WorkingPaper) -> dict:
    template = get_template(row.code)
    return {
        "id": row.id,
        "code": row.code,
        "title": template.title if template else row.code,
        "kind": row.kind,
        "content": row.content,
        "content_json": _with_values(row.content_json),
        "is_complete": row.is_complete,
        "persisted": True,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


def blank_view(code: str) -> dict:
    """What a client sees for a document that has never been saved."""
    template = _template(code)
    return {
        "id": None,
        "code": code,
        "title": template.title,
        "kind": template.kind,
        "content": "",
        "content_json": _with_values(blank_document(code)),
        "is_complete": False,
        "persisted": False,
        "updated_at": None,
    }


# ---- reads ----

def get_document(db: Session, client_id: str, period_id: str, code: str) -> dict | None:
    """Stored document with TOTAL/CALC values attached; None when never saved."""
    _period(db, client_id, period_id)
    row = _row(db, client_id, period_id, code)
    return _serialize(row) if row else None


def list_documents(db: Session, client_id: str, period_id: str) -> list[dict]:
    _period(db, client_id, period_id)
    rows = {r.code: r for r in db.query(WorkingPaper)
            .filter(WorkingPaper.client_id == client_id, WorkingPaper.period_id == period_id)
            .all()}
    out = []
    for t in list_templates():
        row = rows.get(t.code)
        out.append({
            "code": t.code,
            "title": t.title,
            "kind": t.kind,
            "area": t.area,
            "persisted": row is not None,
            "is_complete": bool(row and row.is_complete),
        })
    return out


def planning_completion(db: Session, client_id: str, period_id: str) -> dict:
    codes = [t.code for t in list_templates(PLANNING)]
    completed = (db.query(func.count(WorkingPaper.id))
                 .filter(WorkingPaper.client_id == client_id,
                         WorkingPaper.period_id == period_id,
                         WorkingPaper.code.in_(codes),
                         WorkingPaper.is_complete == True)  # noqa: E712
                 .scalar() or 0)
    return {"completed": int(completed), "total": len(codes)}


# ---- writes ----

def _insert_blank(db: Session, client_id: str, period_id: str, template: TemplateDef) -> None:
    stmt = upsert_insert(db, WorkingPaper).values(
        client_id=client_id,
        period_id=period_id,
        code=template.code,
        kind=template.kind,
        content="",
        content_json=blank_document(template.code),
        is_complete=False,
    ).on_conflict_do_nothing(index_elements=[WorkingPaper.period_id, WorkingPaper.code])
    db.execute(stmt)


def open_document(db: Session, client_id: str, period_id: str, code: str) -> dict:
    """Return the document, creating the blank template instance on first use.

    CLOSED periods are never written to; they get the unsaved blank view.
    """
    template = _template(code)
    period = _period(db, client_id, period_id)
    row = _row(db, client_id, period_id, code)
    if row:
        return _serialize(row)
    if to_period_status(period.status) is PeriodStatus.CLOSED:
        return blank_view(code)
    with atomic(db):
        _insert_blank(db, client_id, period_id, template)
    return get_document(db, client_id, period_id, code)


def _validated(template: TemplateDef, content_json: Any) -> tuple[Any, Any]:
    """Returns (typed doc or None, JSON to store)."""
    if template.kind is None:
        if content_json is not None and not isinstance(content_json, dict):
            raise ValidationFailed("Rich-text content must be a JSON object")
        return None, content_json
    try:
        doc = validate_document(strip_computed(content_json), template.kind)
    except ValueError as e:
        raise ValidationFailed(str(e)) from e
    return doc, dump_document(doc)


def save_document(
    db: Session,
    client_id: str,
    period_id: str,
    code: str,
    content_json: Any,
    *,
    content: str | None = None,
    actor: str | None = None,
) -> dict:
    template = _template(code)
    doc, stored = _validated(template, content_json)

    with atomic(db):
        _writable_period(db, client_id, period_id)
        row = _row(db, client_id, period_id, code, for_update=True)

        if isinstance(doc, PeriodSetupDoc):
            prev = parse_document(row.content_json) if row else None
            if not isinstance(prev, PeriodSetupDoc):
                prev = PeriodSetupDoc()
            stored = dump_document(apply_assignment_history(prev, doc))

        if row is None:
            row = WorkingPaper(client_id=client_id, period_id=period_id, code=code, kind=template.kind,
                               content=content or "", content_json=stored, is_complete=False)
            db.add(row)
        else:
            row.kind = template.kind
            row.content_json = stored
            if content is not None:
                row.content = content
        db.flush()

        audit(db, actor=actor, action="document.saved", entity_type="WorkingPaper", entity_id=row.id,
              payload={"client_id": client_id, "period_id": period_id, "code": code})
        publish(db, "document.saved", {"client_id": client_id, "period_id": period_id, "code": code})

    logger.info("document %s saved for period %s", code, period_id)
    return _serialize(row)


def set_complete(
    db: Session,
    client_id: str,
    period_id: str,
    code: str,
    is_complete: bool,
    *,
    actor: str | None = None,
) -> dict:
    template = _template(code)
    with atomic(db):
        _writable_period(db, client_id, period_id)
        row = _row(db, client_id, period_id, code, for_update=True)
        if row is None:
            _insert_blank(db, client_id, period_id, template)
            row = _row(db, client_id, period_id, code, for_update=True)
        row.is_complete = bool(is_complete)
        row.updated_at = utcnow()
        db.flush()
        audit(db, actor=actor, action="document.completion_set", entity_type="WorkingPaper", entity_id=row.id,
              payload={"client_id": client_id, "period_id": period_id, "code": code, "is_complete": row.is_complete})
    return _serialize(row)


def generate_materiality(db: Session, client_id: str, period_id: str, *, actor: str | None = None) -> dict:
    """Render B41 from the period's PERIOD_SETUP inputs and save it."""
    _period(db, client_id, period_id)
    row = _row(db, client_id, period_id, PERIOD_SETUP_CODE)
    setup = parse_document(row.content_json) if row else None
    if not isinstance(setup, PeriodSetupDoc):
        setup = PeriodSetupDoc()

    doc = MaterialityDoc(
        generated_markdown=render_from_period_setup(setup),
        generated_at=datetime.now(timezone.utc).isoformat(),
    )
    return save_document(db, client_id, period_id, MATERIALITY_CODE, dump_document(doc), actor=actor)
