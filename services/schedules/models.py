"""Typed working-paper documents.

Every document is JSON with a `kind` discriminator and a `version`. The kinds
form a closed set; anything that does not parse as one of them is treated as
untyped content (rich-text notes) by the callers.

Field names are snake_case in Python and camelCase on the wire. Unknown keys
(e.g. `ui` styling hints) are kept so they survive a load/save round trip.
"""
from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel

LINE_ITEM_SCHEDULE = "LINE_ITEM_SCHEDULE"
SIMPLE_SCHEDULE = "SIMPLE_SCHEDULE"
CHECKLIST = "CHECKLIST"
MATERIALITY = "MATERIALITY"
PERIOD_SETUP = "PERIOD_SETUP"

DOCUMENT_KINDS = (LINE_ITEM_SCHEDULE, SIMPLE_SCHEDULE, CHECKLIST, MATERIALITY, PERIOD_SETUP)

Amount = float | None


class _Doc(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)


# ---- LINE_ITEM_SCHEDULE ----

class LineItemRow(_Doc):
    id: str
    name: str
    description: str = ""
    current: Amount = None
    prior: Amount = None


class LineItemScheduleDoc(_Doc):
    kind: Literal["LINE_ITEM_SCHEDULE"] = LINE_ITEM_SCHEDULE
    version: Literal[1] = 1
    title: str = ""
    rows: list[LineItemRow] = Field(default_factory=list)


# ---- SIMPLE_SCHEDULE ----

class InputLine(_Doc):
    kind: Literal["INPUT"] = "INPUT"
    id: str
    label: str
    amount: Amount = None
    notes: str | None = None


class TotalLine(_Doc):
    kind: Literal["TOTAL"] = "TOTAL"
    id: str
    label: str
    sum_of: list[str] = Field(default_factory=list)


class CalcLine(_Doc):
    kind: Literal["CALC"] = "CALC"
    id: str
    label: str
    add: list[str] = Field(default_factory=list)
    subtract: list[str] = Field(default_factory=list)


ScheduleLine = Annotated[Union[InputLine, TotalLine, CalcLine], Field(discriminator="kind")]


class Attachment(_Doc):
    id: str
    name: str
    url: str = ""


class Section(_Doc):
    id: str
    title: str
    notes: str | None = None
    lines: list[ScheduleLine] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _legacy_lines(cls, data: Any) -> Any:
        # Early schedules stored bare {id, label, amount} lines.
        if isinstance(data, dict) and isinstance(data.get("lines"), list):
            lines = [
                {**ln, "kind": "INPUT"} if isinstance(ln, dict) and "kind" not in ln else ln
                for ln in data["lines"]
            ]
            data = {**data, "lines": lines}
        return data


class SimpleScheduleDoc(_Doc):
    kind: Literal["SIMPLE_SCHEDULE"] = SIMPLE_SCHEDULE
    version: Literal[1] = 1
    attachments: list[Attachment] = Field(default_factory=list)
    sections: list[Section] = Field(default_factory=list)

    def iter_lines(self):
        for section in self.sections:
            yield from section.lines


# ---- CHECKLIST ----

ChecklistResponse = Literal["AGREED", "NA"]


class ChecklistRow(_Doc):
    id: str
    text: str
    response: ChecklistResponse | None = None


class ChecklistDoc(_Doc):
    kind: Literal["CHECKLIST"] = CHECKLIST
    version: Literal[1] = 1
    rows: list[ChecklistRow] = Field(default_factory=list)


# ---- MATERIALITY ----

class MaterialityDoc(_Doc):
    kind: Literal["MATERIALITY"] = MATERIALITY
    version: Literal[1] = 1
    generated_markdown: str = ""
    generated_at: str | None = None  # ISO timestamp


# ---- PERIOD_SETUP ----

class CurrentPrior(_Doc):
    current: Amount = None
    prior: Amount = None


class MaterialityInputs(_Doc):
    turnover: CurrentPrior = Field(default_factory=CurrentPrior)
    net_profit: CurrentPrior = Field(default_factory=CurrentPrior)


class Assignments(_Doc):
    reviewer_id: str | None = None
    completed_by_id: str | None = None


class AssignmentSpan(_Doc):
    role: Literal["REVIEWER", "COMPLETED_BY"]
    member_id: str
    from_: str = Field(alias="from")
    to: str | None = None


class PeriodSetupDoc(_Doc):
    kind: Literal["PERIOD_SETUP"] = PERIOD_SETUP
    version: Literal[1] = 1
    materiality: MaterialityInputs = Field(default_factory=MaterialityInputs)
    assignments: Assignments = Field(default_factory=Assignments)
    history: list[AssignmentSpan] = Field(default_factory=list)


ScheduleDoc = Annotated[
    Union[LineItemScheduleDoc, SimpleScheduleDoc, ChecklistDoc, MaterialityDoc, PeriodSetupDoc],
    Field(discriminator="kind"),
]

_adapter: TypeAdapter = TypeAdapter(ScheduleDoc)


def parse_document(raw: Any) -> ScheduleDoc | None:
    """Parse stored/posted JSON into a typed document, or None if it is not one."""
    if not isinstance(raw, dict) or raw.get("kind") not in DOCUMENT_KINDS:
        return None
    try:
        return _adapter.validate_python(raw)
    except ValidationError:
        return None


def validate_document(raw: Any, kind: str) -> ScheduleDoc:
    """Strict variant for writes: raises ValueError describing what is wrong."""
    if not isinstance(raw, dict):
        raise ValueError("document must be a JSON object")
    if raw.get("kind") != kind:
        raise ValueError(f"expected a {kind} document, got {raw.get('kind')!r}")
    try:
        return _adapter.validate_python(raw)
    except ValidationError as e:
        raise ValueError(f"invalid {kind} document: {e.error_count()} error(s): {e.errors()[0]['msg']}") from e


def _drop_absent(data: dict) -> dict:
    # Optional keys that were never set are left out instead of written as null.
    for section in data.get("sections") or []:
        if section.get("notes") is None:
            section.pop("notes", None)
        for line in section.get("lines") or []:
            if line.get("kind") == "INPUT" and line.get("notes") is None:
                line.pop("notes", None)
    for span in data.get("history") or []:
        if isinstance(span, dict) and span.get("to") is None:
            span.pop("to", None)
    return data


def dump_document(doc: BaseModel) -> dict:
    return _drop_absent(doc.model_dump(mode="json", by_alias=True))
