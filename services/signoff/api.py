from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.security import Principal, get_principal, require_member
from app.db.session import get_db
from services.signoff.service import SignoffKind, SignoffToggle, get_signoff, toggle_signoff

router = APIRouter(prefix="/clients/{client_id}/periods/{period_id}/documents", tags=["signoff"])


class SignoffIn(BaseModel):
    kind: SignoffKind
    checked: bool
    member_id: str | None = None  # defaults to the caller


@router.post("/{code}/signoff")
def toggle(client_id: str, period_id: str, code: str, payload: SignoffIn, db: Session = Depends(get_db),
           p: Principal = Depends(require_member)):
    toggle_in = SignoffToggle(
        client_id=client_id,
        period_id=period_id,
        code=code,
        kind=payload.kind,
        checked=payload.checked,
        member_id=payload.member_id or (p.member_id if payload.checked else None),
    )
    result = toggle_signoff(db, toggle_in, actor=p.member_id)
    return result.model_dump(exclude_none=True)


@router.get("/{code}/signoff")
def read(client_id: str, period_id: str, code: str, db: Session = Depends(get_db), p=Depends(get_principal)):
    return get_signoff(db, client_id, period_id, code)
