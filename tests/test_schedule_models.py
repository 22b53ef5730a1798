import pytest

from services.schedules.models import (
    ChecklistDoc,
    PeriodSetupDoc,
    SimpleScheduleDoc,
    dump_document,
    parse_document,
    validate_document,
)
from services.schedules.period_setup import apply_assignment_history
from services.schedules.templates import PLANNING, blank_document, get_template, list_templates


def test_parse_document_never_raises():
    assert parse_document(None) is None
    assert parse_document({"kind": "SOMETHING_ELSE"}) is None
    assert parse_document({"kind": "CHECKLIST", "version": 2, "rows": []}) is None
    assert parse_document({"type": "doc", "content": []}) is None
    assert isinstance(parse_document({"kind": "CHECKLIST", "version": 1, "rows": []}), ChecklistDoc)


def test_validate_document_explains_the_problem():
    with pytest.raises(ValueError, match="expected a CHECKLIST document"):
        validate_document({"kind": "MATERIALITY", "version": 1}, "CHECKLIST")
    with pytest.raises(ValueError, match="invalid SIMPLE_SCHEDULE document"):
        validate_document({"kind": "SIMPLE_SCHEDULE", "version": 1, "sections": [{"id": "s"}]}, "SIMPLE_SCHEDULE")


def test_unknown_keys_survive_a_round_trip():
    raw = {
        "kind": "SIMPLE_SCHEDULE", "version": 1, "attachments": [],
        "sections": [{
            "id": "s", "title": "S", "ui": {"tone": "primary"},
            "lines": [{"kind": "INPUT", "id": "a", "label": "A", "amount": 1, "ui": {"emphasis": "soft"}}],
        }],
    }
    out = dump_document(parse_document(raw))
    assert out["sections"][0]["ui"] == {"tone": "primary"}
    assert out["sections"][0]["lines"][0]["ui"] == {"emphasis": "soft"}
    assert "notes" not in out["sections"][0]
    assert "notes" not in out["sections"][0]["lines"][0]


def test_every_template_produces_a_valid_blank():
    for t in list_templates():
        blank = blank_document(t.code)
        if t.kind is None:
            assert blank["type"] == "doc"
        else:
            assert validate_document(blank, t.kind).kind == t.kind


def test_template_registry():
    assert get_template("B11").kind == "CHECKLIST"
    assert get_template("nope") is None
    assert [t.code for t in list_templates(PLANNING)] == ["B11", "B21", "B41"]
    vat = SimpleScheduleDoc.model_validate(blank_document("B62-vat-control"))
    assert any(line.kind == "CALC" for line in vat.iter_lines())


def _setup(reviewer=None, completer=None, history=()):
    return PeriodSetupDoc.model_validate({
        "kind": "PERIOD_SETUP", "version": 1,
        "assignments": {"reviewerId": reviewer, "completedById": completer},
        "history": list(history),
    })


def test_assignment_history_opens_and_closes_spans():
    first = apply_assignment_history(_setup(), _setup(reviewer="m-1"), now="t1")
    assert [(h.role, h.member_id, h.from_, h.to) for h in first.history] == [("REVIEWER", "m-1", "t1", None)]

    second = apply_assignment_history(first, _setup(reviewer="m-2", completer="m-3"), now="t2")
    assert [(h.role, h.member_id, h.from_, h.to) for h in second.history] == [
        ("REVIEWER", "m-1", "t1", "t2"),
        ("COMPLETED_BY", "m-3", "t2", None),
        ("REVIEWER", "m-2", "t2", None),
    ]


def test_unchanged_or_cleared_assignment_keeps_history():
    prev = apply_assignment_history(_setup(), _setup(reviewer="m-1"), now="t1")
    assert apply_assignment_history(prev, _setup(reviewer="m-1"), now="t2").history == prev.history
    assert apply_assignment_history(prev, _setup(), now="t3").history == prev.history


def test_history_is_dumped_with_wire_names():
    doc = apply_assignment_history(_setup(), _setup(completer="m-9"), now="t1")
    assert dump_document(doc)["history"] == [{"role": "COMPLETED_BY", "memberId": "m-9", "from": "t1"}]
