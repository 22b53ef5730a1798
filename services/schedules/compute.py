"""Evaluate TOTAL and CALC lines of a SIMPLE_SCHEDULE.

Only INPUT amounts are stored; every derived value is recomputed on read.
Schedules are user-edited, so resolution never raises:

- references resolve by line id across the whole document, not per section;
- an unknown id, a null amount or a non-numeric line counts as 0;
- forward references and chains (CALC of a CALC) are followed;
- every line on a reference cycle evaluates to 0, and lines that depend on
  a cyclic line see it as 0.
"""
from __future__ import annotations

import copy
from typing import Any

from services.schedules.models import CalcLine, InputLine, SimpleScheduleDoc, TotalLine, dump_document

DERIVED_KINDS = ("TOTAL", "CALC")


def compute_simple_schedule(doc: SimpleScheduleDoc) -> dict[str, float]:
    lines: dict[str, Any] = {}
    for line in doc.iter_lines():
        # duplicate ids: the first definition wins
        lines.setdefault(line.id, line)

    values: dict[str, float] = {}
    cyclic: set[str] = set()
    resolving: list[str] = []

    def resolve(line_id: str) -> float:
        line = lines.get(line_id)
        if line is None:
            return 0
        if isinstance(line, InputLine):
            return line.amount or 0
        if line_id in values:
            return values[line_id]
        if line_id in resolving:
            cyclic.update(resolving[resolving.index(line_id):])
            return 0

        resolving.append(line_id)
        try:
            if isinstance(line, TotalLine):
                total = sum(resolve(ref) for ref in line.sum_of)
            elif isinstance(line, CalcLine):
                total = sum(resolve(ref) for ref in line.add) - sum(resolve(ref) for ref in line.subtract)
            else:
                total = 0
        finally:
            resolving.pop()

        values[line_id] = 0 if line_id in cyclic else total
        return values[line_id]

    for line_id, line in lines.items():
        if not isinstance(line, InputLine):
            resolve(line_id)
    return values


def with_computed_values(doc: SimpleScheduleDoc) -> dict:
    """JSON form of `doc` with a `value` on every TOTAL/CALC line."""
    values = compute_simple_schedule(doc)
    data = dump_document(doc)
    for section in data["sections"]:
        for line in section["lines"]:
            if line.get("kind") in DERIVED_KINDS:
                line["value"] = values.get(line["id"], 0)
    return data


def strip_computed(raw: Any) -> Any:
    """Remove client-echoed `value`s from derived lines before validation/persistence."""
    if not isinstance(raw, dict) or not isinstance(raw.get("sections"), list):
        return raw
    data = copy.deepcopy(raw)
    for section in data["sections"]:
        if not isinstance(section, dict):
            continue
        for line in section.get("lines") or []:
            if isinstance(line, dict) and line.get("kind") in DERIVED_KINDS:
                line.pop("value", None)
    return data
