from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.errors import DomainError
from app.core.security import Principal, require_member
from app.db.session import get_db
from services._http import http_error
from services.rollforward.service import roll_forward

router = APIRouter(prefix="/clients/{client_id}/periods", tags=["rollforward"])


class RollForwardIn(BaseModel):
    to_period_id: str
    overwrite: bool = False
    reset_complete: bool = True
    upgrade_headings: bool = True


@router.post("/{from_period_id}/roll-forward")
def roll(client_id: str, from_period_id: str, payload: RollForwardIn, db: Session = Depends(get_db),
         p: Principal = Depends(require_member)):
    try:
        result = roll_forward(
            db, client_id, from_period_id, payload.to_period_id,
            overwrite=payload.overwrite,
            reset_complete=payload.reset_complete,
            upgrade_headings=payload.upgrade_headings,
            actor=p.member_id,
        )
    except DomainError as e:
        raise http_error(e)
    return result.as_dict()
