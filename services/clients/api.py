from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.audit import audit
from app.core.security import Principal, get_principal, require_member
from app.core.organization import get_organization_id
from app.db.models.periods import Client
from app.db.session import get_db
from services._tx import atomic

router = APIRouter(prefix="/clients", tags=["clients"])


class ClientIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)


def _out(c: Client) -> dict:
    return {"id": c.id, "organization_id": c.organization_id, "name": c.name}


@router.post("")
def create_client(payload: ClientIn, db: Session = Depends(get_db), p: Principal = Depends(require_member)):
    with atomic(db):
        row = Client(organization_id=get_organization_id(), name=payload.name.strip())
        db.add(row)
        db.flush()
        audit(db, actor=p.member_id, action="client.created", entity_type="Client", entity_id=row.id)
    return _out(row)


@router.get("/{client_id}")
def get_client(client_id: str, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = db.query(Client).filter(Client.id == client_id).first()
    if not row:
        raise HTTPException(404, "Client not found")
    return _out(row)
