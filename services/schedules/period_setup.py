from __future__ import annotations

from datetime import datetime, timezone

from services.schedules.models import AssignmentSpan, PeriodSetupDoc

ROLE_FIELDS = (
    ("COMPLETED_BY", "completed_by_id"),
    ("REVIEWER", "reviewer_id"),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def apply_assignment_history(prev: PeriodSetupDoc, nxt: PeriodSetupDoc, *, now: str | None = None) -> PeriodSetupDoc:
    """Return `nxt` with a history that records reviewer/completer changes.

    History is taken from `prev` (clients cannot rewrite it). A newly set
    member opens a span; replacing a member closes the previous open span.
    Clearing an assignment leaves the history untouched.
    """
    now = now or _now_iso()
    history = [span.model_copy() for span in prev.history]

    for role, attr in ROLE_FIELDS:
        new_id = getattr(nxt.assignments, attr)
        if not new_id:
            continue
        prev_id = getattr(prev.assignments, attr)
        if prev_id == new_id:
            continue
        if prev_id:
            for i in range(len(history) - 1, -1, -1):
                span = history[i]
                if span.role == role and span.member_id == prev_id and not span.to:
                    history[i] = span.model_copy(update={"to": now})
                    break
        history.append(AssignmentSpan(role=role, member_id=new_id, from_=now))

    return nxt.model_copy(update={"history": history})
