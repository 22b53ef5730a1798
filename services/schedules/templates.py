"""Working-paper template registry.

Templates are static data: a code, a title, the document kind the code is
bound to and a factory for a blank instance. Rich-text notes have no kind;
their blank instance is a TipTap document.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from services.schedules.models import (
    Attachment,
    CalcLine,
    ChecklistDoc,
    ChecklistRow,
    InputLine,
    LineItemRow,
    LineItemScheduleDoc,
    MaterialityDoc,
    PeriodSetupDoc,
    Section,
    SimpleScheduleDoc,
    TotalLine,
    dump_document,
)

PLANNING = "planning"
SCHEDULES = "schedules"


@dataclass(frozen=True)
class TemplateDef:
    code: str
    title: str
    kind: str | None
    order: int
    factory: Callable[[], Any]
    area: str = SCHEDULES


def _planning_checklist() -> ChecklistDoc:
    rows = [
        ("perm-info-h", "Ensure permanent information includes:"),
        ("perm-info-1", "An appropriate and up to date letter of engagement"),
        ("perm-info-2", "Signed client acceptance documentation"),
        ("perm-info-3", "Evidence of professional clearance where applicable"),
        ("ml-h", "Money laundering and client due diligence:"),
        ("ml-1", "Client due diligence completed and up to date"),
        ("ml-2", "Money laundering risk assessment documented"),
    ]
    return ChecklistDoc(rows=[ChecklistRow(id=i, text=t) for i, t in rows])


def _client_notes() -> dict:
    return {
        "type": "doc",
        "content": [
            {"type": "heading", "attrs": {"level": 1}, "content": [{"type": "text", "text": "Notes from discussions with client"}]},
            {"type": "paragraph"},
        ],
    }


def _taxation() -> SimpleScheduleDoc:
    strong = {"tone": "primary", "emphasis": "strong"}
    return SimpleScheduleDoc(
        attachments=[
            Attachment(id="tax-comp", name="Tax computation"),
            Attachment(id="tax-proof", name="Proof of tax charge"),
        ],
        sections=[
            Section(
                id="charge-for-year",
                title="Charge for period",
                notes="",
                ui=strong,
                lines=[
                    InputLine(id="ct-current", label="Corporation tax - Current period"),
                    InputLine(id="ct-overunder", label="Over/under provision"),
                    InputLine(id="dt-charge", label="Deferred tax"),
                    TotalLine(id="charge-total", label="Charge for period total",
                              sum_of=["ct-current", "ct-overunder", "dt-charge"]),
                ],
            ),
            Section(
                id="balances",
                title="Balances",
                notes="",
                ui=strong,
                lines=[
                    InputLine(
                        id="ct-payable",
                        label="Corporation tax payable/(repayable)",
                        notes="Payable amounts are transferred to creditors. "
                              "If repayable, include in other debtors.",
                    ),
                    InputLine(id="dt-balance", label="Deferred tax balance"),
                ],
            ),
        ],
    )


def _vat_control() -> SimpleScheduleDoc:
    return SimpleScheduleDoc(
        attachments=[Attachment(id="vat-returns", name="VAT returns")],
        sections=[
            Section(
                id="vat-control",
                title="VAT control account",
                lines=[
                    InputLine(id="vat-output", label="Output VAT"),
                    InputLine(id="vat-input", label="Input VAT"),
                    CalcLine(id="vat-net", label="Net VAT payable/(repayable)",
                             add=["vat-output"], subtract=["vat-input"]),
                    InputLine(id="vat-paid", label="Payments on account"),
                    CalcLine(id="vat-balance", label="Balance per control account",
                             add=["vat-net"], subtract=["vat-paid"]),
                ],
            ),
        ],
    )


def _trade_debtors() -> LineItemScheduleDoc:
    return LineItemScheduleDoc(
        title="Trade Debtors",
        rows=[LineItemRow(id="trade-debtors", name="Trade debtors")],
    )


_TEMPLATES: tuple[TemplateDef, ...] = (
    TemplateDef("PERIOD_SETUP", "Period setup", "PERIOD_SETUP", 0, PeriodSetupDoc),
    TemplateDef("B11", "Planning Checklist", "CHECKLIST", 11, _planning_checklist, PLANNING),
    TemplateDef("B21", "Notes from discussions with client", None, 21, _client_notes, PLANNING),
    TemplateDef("B41", "Materiality", "MATERIALITY", 41, MaterialityDoc, PLANNING),
    TemplateDef("B61-taxation", "Taxation", "SIMPLE_SCHEDULE", 61, _taxation),
    TemplateDef("B62-vat-control", "VAT control", "SIMPLE_SCHEDULE", 62, _vat_control),
    TemplateDef("TRADE_DEBTORS", "Trade Debtors", "LINE_ITEM_SCHEDULE", 70, _trade_debtors),
)

_BY_CODE = {t.code: t for t in _TEMPLATES}


def get_template(code: str) -> TemplateDef | None:
    return _BY_CODE.get(code)


def list_templates(area: str | None = None) -> list[TemplateDef]:
    items = [t for t in _TEMPLATES if area is None or t.area == area]
    return sorted(items, key=lambda t: t.order)


def blank_document(code: str) -> dict:
    """A fresh JSON instance of the template; raises KeyError for unknown codes."""
    template = _BY_CODE[code]
    doc = template.factory()
    if template.kind is None:
        return doc
    return dump_document(doc)
