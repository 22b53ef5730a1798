from datetime import date

import pytest

from app.core.errors import NotFound, PeriodClosed
from app.db.models.documents import WorkingPaper
from app.events.outbox import OutboxEvent
from services.documents.service import save_document, set_complete
from services.rollforward.reset import reset_document, upgrade_title_heading
from services.rollforward.service import roll_forward
from services.schedules.templates import blank_document


def _carried(db, period_id, code):
    db.expire_all()
    return db.query(WorkingPaper).filter(WorkingPaper.period_id == period_id, WorkingPaper.code == code).one()


@pytest.fixture()
def filled(db, acme, fy2024):
    checklist = blank_document("B11")
    for row in checklist["rows"]:
        row["response"] = "AGREED"
    save_document(db, acme.id, fy2024.id, "B11", checklist)
    set_complete(db, acme.id, fy2024.id, "B11", True)

    tax = blank_document("B61-taxation")
    tax["attachments"][0]["url"] = "https://files.example/tax-comp.pdf"
    tax["sections"][0]["notes"] = "agreed to computation"
    tax["sections"][0]["lines"][0]["amount"] = 1200
    save_document(db, acme.id, fy2024.id, "B61-taxation", tax)

    debtors = blank_document("TRADE_DEBTORS")
    debtors["rows"][0].update({"description": "per ledger", "current": 5000, "prior": 4000})
    save_document(db, acme.id, fy2024.id, "TRADE_DEBTORS", debtors)

    setup = blank_document("PERIOD_SETUP")
    setup["materiality"]["turnover"] = {"current": 900000, "prior": 800000}
    setup["assignments"] = {"reviewerId": "m-1", "completedById": "m-2"}
    save_document(db, acme.id, fy2024.id, "PERIOD_SETUP", setup)

    save_document(db, acme.id, fy2024.id, "B21", {
        "type": "doc",
        "content": [
            {"type": "heading", "attrs": {"level": 2}, "content": [{"type": "text", "text": "Notes"}]},
            {"type": "paragraph", "content": [{"type": "text", "text": "Met the director."}]},
        ],
    })
    return fy2024


def test_roll_forward_resets_each_kind(db, acme, filled, fy2025):
    result = roll_forward(db, acme.id, filled.id, fy2025.id, actor="member-1")
    assert result.as_dict() == {"considered": 5, "copied": 5, "overwritten": 0, "skipped": 0}

    checklist = _carried(db, fy2025.id, "B11")
    assert checklist.is_complete is False
    assert all(r["response"] is None for r in checklist.content_json["rows"])
    assert checklist.content_json["rows"][1]["text"] == "An appropriate and up to date letter of engagement"

    tax = _carried(db, fy2025.id, "B61-taxation").content_json
    assert tax["attachments"][0] == {"id": "tax-comp", "name": "Tax computation", "url": ""}
    assert tax["sections"][0]["notes"] == ""
    assert tax["sections"][0]["lines"][0]["amount"] is None
    assert tax["sections"][0]["lines"][3]["sumOf"] == ["ct-current", "ct-overunder", "dt-charge"]
    assert tax["sections"][0]["ui"] == {"tone": "primary", "emphasis": "strong"}

    row = _carried(db, fy2025.id, "TRADE_DEBTORS").content_json["rows"][0]
    assert row == {"id": "trade-debtors", "name": "Trade debtors", "description": "", "current": None, "prior": None}

    setup = _carried(db, fy2025.id, "PERIOD_SETUP").content_json
    assert setup["materiality"]["turnover"] == {"current": None, "prior": 900000}
    assert setup["assignments"] == {"reviewerId": None, "completedById": None}
    assert len(setup["history"]) == 2

    notes = _carried(db, fy2025.id, "B21").content_json
    assert notes["content"][0]["attrs"]["level"] == 1
    assert notes["content"][1]["content"][0]["text"] == "Met the director."

    assert db.query(OutboxEvent).filter(OutboxEvent.topic == "documents.rolled_forward").count() == 1


def test_second_roll_forward_skips_existing(db, acme, filled, fy2025):
    roll_forward(db, acme.id, filled.id, fy2025.id)
    again = roll_forward(db, acme.id, filled.id, fy2025.id)
    assert again.copied == 0
    assert again.skipped == 5


def test_overwrite_replaces_target_documents(db, acme, filled, fy2025):
    roll_forward(db, acme.id, filled.id, fy2025.id)
    edited = blank_document("TRADE_DEBTORS")
    edited["rows"][0]["description"] = "edited in new period"
    save_document(db, acme.id, fy2025.id, "TRADE_DEBTORS", edited)

    result = roll_forward(db, acme.id, filled.id, fy2025.id, overwrite=True)
    assert result.overwritten == 5
    assert result.copied == 0
    assert _carried(db, fy2025.id, "TRADE_DEBTORS").content_json["rows"][0]["description"] == ""


def test_keep_completion_when_not_resetting(db, acme, filled, fy2025):
    roll_forward(db, acme.id, filled.id, fy2025.id, reset_complete=False)
    assert _carried(db, fy2025.id, "B11").is_complete is True


def test_headings_left_alone_when_not_upgrading(db, acme, filled, fy2025):
    roll_forward(db, acme.id, filled.id, fy2025.id, upgrade_headings=False)
    assert _carried(db, fy2025.id, "B21").content_json["content"][0]["attrs"]["level"] == 2


def test_same_period_is_a_noop(db, acme, filled):
    assert roll_forward(db, acme.id, filled.id, filled.id).as_dict() == {
        "considered": 0, "copied": 0, "overwritten": 0, "skipped": 0,
    }


def test_target_must_exist_and_be_writable(db, acme, filled, make_period):
    with pytest.raises(NotFound):
        roll_forward(db, acme.id, filled.id, "missing")
    closed = make_period(acme, date(2020, 1, 1), date(2020, 12, 31), status="CLOSED")
    with pytest.raises(PeriodClosed):
        roll_forward(db, acme.id, filled.id, closed.id)


def test_reset_document_passes_unknown_json_through():
    assert reset_document({"foo": 1}) == {"foo": 1}
    assert reset_document(None) is None
    assert reset_document("plain text") == "plain text"


def test_materiality_document_is_carried_unchanged():
    doc = {"kind": "MATERIALITY", "version": 1, "generatedMarkdown": "# x", "generatedAt": "2024-12-31T00:00:00+00:00"}
    assert reset_document(doc) == doc


def test_upgrade_title_heading_only_touches_a_leading_h2():
    h3 = {"type": "doc", "content": [{"type": "heading", "attrs": {"level": 3}}]}
    assert upgrade_title_heading(h3) == h3
    para_first = {"type": "doc", "content": [{"type": "paragraph"}, {"type": "heading", "attrs": {"level": 2}}]}
    assert upgrade_title_heading(para_first) == para_first
    assert upgrade_title_heading({"type": "doc"}) == {"type": "doc"}
