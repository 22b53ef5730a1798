from datetime import date

import pytest

from app.core.errors import NotFound, PeriodClosed, ValidationFailed
from app.db.models.documents import WorkingPaper
from services.documents.service import (
    generate_materiality,
    get_document,
    list_documents,
    open_document,
    planning_completion,
    save_document,
    set_complete,
)
from services.schedules.templates import blank_document


def test_get_document_returns_none_when_never_saved(db, acme, fy2024):
    assert get_document(db, acme.id, fy2024.id, "B62-vat-control") is None


def test_get_document_requires_the_period(db, acme, fy2024, make_client):
    other = make_client("Other Ltd")
    with pytest.raises(NotFound):
        get_document(db, acme.id, "missing", "B11")
    with pytest.raises(NotFound):
        get_document(db, other.id, fy2024.id, "B11")


def test_open_document_creates_blank_once(db, acme, fy2024):
    first = open_document(db, acme.id, fy2024.id, "B62-vat-control")
    second = open_document(db, acme.id, fy2024.id, "B62-vat-control")
    assert first["persisted"] is True
    assert first["id"] == second["id"]
    assert db.query(WorkingPaper).filter(WorkingPaper.period_id == fy2024.id).count() == 1


def test_open_document_in_closed_period_is_not_persisted(db, acme, make_period):
    closed = make_period(acme, date(2020, 1, 1), date(2020, 12, 31), status="CLOSED")
    doc = open_document(db, acme.id, closed.id, "B11")
    assert doc["persisted"] is False
    assert db.query(WorkingPaper).count() == 0


def test_unknown_stored_status_is_treated_as_closed(db, acme, make_period):
    odd = make_period(acme, date(2019, 1, 1), date(2019, 12, 31), status="ARCHIVED")
    assert open_document(db, acme.id, odd.id, "B11")["persisted"] is False
    with pytest.raises(PeriodClosed):
        save_document(db, acme.id, odd.id, "B11", blank_document("B11"))


def test_save_and_read_attaches_computed_values(db, acme, fy2024):
    raw = blank_document("B62-vat-control")
    lines = raw["sections"][0]["lines"]
    lines[0]["amount"] = 1000
    lines[1]["amount"] = 400
    lines[3]["amount"] = 500
    lines[2]["value"] = 123456  # stale client-side value
    save_document(db, acme.id, fy2024.id, "B62-vat-control", raw)

    stored = db.query(WorkingPaper).filter(WorkingPaper.code == "B62-vat-control").one()
    assert "value" not in stored.content_json["sections"][0]["lines"][2]

    doc = get_document(db, acme.id, fy2024.id, "B62-vat-control")
    by_id = {ln["id"]: ln for ln in doc["content_json"]["sections"][0]["lines"]}
    assert by_id["vat-net"]["value"] == 600
    assert by_id["vat-balance"]["value"] == 100


def test_save_rejects_wrong_kind(db, acme, fy2024):
    with pytest.raises(ValidationFailed):
        save_document(db, acme.id, fy2024.id, "B11", blank_document("TRADE_DEBTORS"))


def test_save_rejects_invalid_shape(db, acme, fy2024):
    with pytest.raises(ValidationFailed):
        save_document(db, acme.id, fy2024.id, "B11", {"kind": "CHECKLIST", "version": 1,
                                                     "rows": [{"id": "x", "text": "t", "response": "MAYBE"}]})


def test_save_rejects_closed_period(db, acme, make_period):
    closed = make_period(acme, date(2020, 1, 1), date(2020, 12, 31), status="CLOSED")
    with pytest.raises(PeriodClosed):
        save_document(db, acme.id, closed.id, "B11", blank_document("B11"))


def test_unknown_code(db, acme, fy2024):
    with pytest.raises(NotFound):
        save_document(db, acme.id, fy2024.id, "Z99", {})


def test_period_setup_records_assignment_history(db, acme, fy2024):
    setup = blank_document("PERIOD_SETUP")
    setup["assignments"] = {"reviewerId": "m-1", "completedById": None}
    save_document(db, acme.id, fy2024.id, "PERIOD_SETUP", setup)

    setup["assignments"] = {"reviewerId": "m-2", "completedById": None}
    setup["history"] = []  # clients cannot rewrite history
    doc = save_document(db, acme.id, fy2024.id, "PERIOD_SETUP", setup)

    history = doc["content_json"]["history"]
    assert [(h["role"], h["memberId"]) for h in history] == [("REVIEWER", "m-1"), ("REVIEWER", "m-2")]
    assert "to" in history[0]
    assert "to" not in history[1]


def test_completion_and_planning_counts(db, acme, fy2024):
    set_complete(db, acme.id, fy2024.id, "B11", True)
    set_complete(db, acme.id, fy2024.id, "TRADE_DEBTORS", True)
    assert planning_completion(db, acme.id, fy2024.id) == {"completed": 1, "total": 3}

    listing = {d["code"]: d for d in list_documents(db, acme.id, fy2024.id)}
    assert listing["B11"]["is_complete"] is True
    assert listing["B41"]["persisted"] is False


def test_generate_materiality_from_period_setup(db, acme, fy2024):
    setup = blank_document("PERIOD_SETUP")
    setup["materiality"]["turnover"]["current"] = 400000
    setup["materiality"]["netProfit"]["current"] = 50000
    save_document(db, acme.id, fy2024.id, "PERIOD_SETUP", setup)

    doc = generate_materiality(db, acme.id, fy2024.id)
    assert doc["kind"] == "MATERIALITY"
    assert "**Materiality:** £10,500" in doc["content_json"]["generatedMarkdown"]
    assert doc["content_json"]["generatedAt"]
