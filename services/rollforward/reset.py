"""Per-kind transforms applied to a document when it moves into a new period.

The carried document keeps its structure (ids, labels, formulas, styling) and
loses the period-specific data.
"""
from __future__ import annotations

from typing import Any

from services.schedules.models import (
    Assignments,
    ChecklistDoc,
    CurrentPrior,
    InputLine,
    LineItemScheduleDoc,
    MaterialityDoc,
    MaterialityInputs,
    PeriodSetupDoc,
    SimpleScheduleDoc,
    dump_document,
    parse_document,
)


def reset_line_item_schedule(doc: LineItemScheduleDoc) -> LineItemScheduleDoc:
    rows = [r.model_copy(update={"description": "", "current": None, "prior": None}) for r in doc.rows]
    return doc.model_copy(update={"rows": rows})


def reset_simple_schedule(doc: SimpleScheduleDoc) -> SimpleScheduleDoc:
    attachments = [a.model_copy(update={"url": ""}) for a in doc.attachments]
    sections = []
    for section in doc.sections:
        lines = [
            ln.model_copy(update={"amount": None}) if isinstance(ln, InputLine) else ln
            for ln in section.lines
        ]
        update: dict[str, Any] = {"lines": lines}
        if section.notes is not None:
            update["notes"] = ""
        sections.append(section.model_copy(update=update))
    return doc.model_copy(update={"attachments": attachments, "sections": sections})


def reset_checklist(doc: ChecklistDoc) -> ChecklistDoc:
    return doc.model_copy(update={"rows": [r.model_copy(update={"response": None}) for r in doc.rows]})


def reset_period_setup(doc: PeriodSetupDoc) -> PeriodSetupDoc:
    m = doc.materiality
    materiality = MaterialityInputs(
        turnover=CurrentPrior(current=None, prior=m.turnover.current),
        net_profit=CurrentPrior(current=None, prior=m.net_profit.current),
    )
    return doc.model_copy(update={"materiality": materiality, "assignments": Assignments()})


def reset_materiality(doc: MaterialityDoc) -> MaterialityDoc:
    # regenerated from the new period setup on demand
    return doc


_RESETTERS = {
    LineItemScheduleDoc: reset_line_item_schedule,
    SimpleScheduleDoc: reset_simple_schedule,
    ChecklistDoc: reset_checklist,
    PeriodSetupDoc: reset_period_setup,
    MaterialityDoc: reset_materiality,
}


def _is_tiptap_doc(value: Any) -> bool:
    if not isinstance(value, dict) or value.get("type") != "doc":
        return False
    return "content" not in value or isinstance(value["content"], list)


def upgrade_title_heading(value: Any) -> Any:
    """Promote a rich-text document's leading H2 title to H1."""
    if not _is_tiptap_doc(value):
        return value
    content = value.get("content") or []
    first = content[0] if content else None
    if not isinstance(first, dict) or first.get("type") != "heading":
        return value
    attrs = first.get("attrs") if isinstance(first.get("attrs"), dict) else {}
    if attrs.get("level") != 2:
        return value
    upgraded = {**first, "attrs": {**attrs, "level": 1}}
    return {**value, "content": [upgraded, *content[1:]]}


def reset_document(content_json: Any, *, upgrade_headings: bool = True) -> Any:
    """Transform stored JSON for the next period; unknown JSON passes through."""
    doc = parse_document(content_json)
    if doc is None:
        return upgrade_title_heading(content_json) if upgrade_headings else content_json
    return dump_document(_RESETTERS[type(doc)](doc))
