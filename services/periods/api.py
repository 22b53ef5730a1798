from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.errors import DomainError
from app.core.security import Principal, get_principal, require_member
from app.db.models.periods import AccountingPeriod
from app.db.session import get_db
from services._http import http_error
from services.periods import service
from services.periods.status import PeriodTransitionError

router = APIRouter(prefix="/clients/{client_id}/periods", tags=["periods"])


# ---- Schemas ----
class PeriodIn(BaseModel):
    period_name: str = Field(..., min_length=1, max_length=128)
    start_date: date
    end_date: date
    open_now: bool = False


class NextPeriodIn(BaseModel):
    period_name: str | None = Field(default=None, max_length=128)
    start_date: date | None = None
    end_date: date | None = None


class CloseIn(BaseModel):
    next_period: NextPeriodIn = Field(default_factory=NextPeriodIn)


def _out(p: AccountingPeriod | None) -> dict | None:
    if p is None:
        return None
    return {
        "id": p.id,
        "client_id": p.client_id,
        "period_name": p.period_name,
        "start_date": p.start_date.isoformat(),
        "end_date": p.end_date.isoformat(),
        "status": p.status,
        "is_current": p.is_current,
    }


@router.post("")
def create(client_id: str, payload: PeriodIn, db: Session = Depends(get_db),
           p: Principal = Depends(require_member)):
    try:
        period = service.create_period(
            db, client_id,
            period_name=payload.period_name,
            start_date=payload.start_date,
            end_date=payload.end_date,
            open_now=payload.open_now,
            actor=p.member_id,
        )
    except (DomainError, PeriodTransitionError) as e:
        raise http_error(e)
    return _out(period)


@router.get("")
def list_all(client_id: str, db: Session = Depends(get_db), p=Depends(get_principal)):
    return [_out(r) for r in service.list_periods(db, client_id)]


@router.get("/current")
def current(client_id: str, db: Session = Depends(get_db), p=Depends(get_principal)):
    try:
        return {"period": _out(service.get_current_period(db, client_id))}
    except DomainError as e:
        raise http_error(e)


@router.get("/{period_id}")
def get_one(client_id: str, period_id: str, db: Session = Depends(get_db), p=Depends(get_principal)):
    try:
        return _out(service.get_period(db, client_id, period_id))
    except DomainError as e:
        raise http_error(e)


@router.get("/{period_id}/prior")
def prior(client_id: str, period_id: str, db: Session = Depends(get_db), p=Depends(get_principal)):
    try:
        return {"period": _out(service.get_prior_period(db, client_id, period_id))}
    except DomainError as e:
        raise http_error(e)


@router.post("/{period_id}/promote")
def promote(client_id: str, period_id: str, db: Session = Depends(get_db),
            p: Principal = Depends(require_member)):
    try:
        result = service.promote_to_open(db, client_id, period_id, actor=p.member_id)
    except DomainError as e:
        raise http_error(e)
    return {"promoted": result.promoted}


@router.post("/{period_id}/close")
def close(client_id: str, period_id: str, payload: CloseIn | None = None, db: Session = Depends(get_db),
          p: Principal = Depends(require_member)):
    nxt = (payload or CloseIn()).next_period
    try:
        current = service.get_period(db, client_id, period_id)
        default_start, default_end = service.next_period_dates(current.end_date)
        start = nxt.start_date or default_start
        end = nxt.end_date or default_end
        name = (nxt.period_name or "").strip() or f"Year ended {end.isoformat()}"
        return service.close_period(
            db, client_id, period_id,
            next_period_name=name,
            next_start_date=start,
            next_end_date=end,
            actor=p.member_id,
        )
    except (DomainError, PeriodTransitionError) as e:
        raise http_error(e)
