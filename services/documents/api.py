from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.errors import DomainError
from app.core.security import Principal, get_principal, require_member
from app.db.session import get_db
from services._http import http_error
from services.documents import service

router = APIRouter(prefix="/clients/{client_id}/periods/{period_id}", tags=["documents"])


class DocumentIn(BaseModel):
    content_json: Any = None
    content: str | None = None


class CompleteIn(BaseModel):
    is_complete: bool = True


@router.get("/documents")
def list_documents(client_id: str, period_id: str, db: Session = Depends(get_db), p=Depends(get_principal)):
    try:
        return {
            "documents": service.list_documents(db, client_id, period_id),
            "planning": service.planning_completion(db, client_id, period_id),
        }
    except DomainError as e:
        raise http_error(e)


@router.get("/documents/{code}")
def get_document(client_id: str, period_id: str, code: str, db: Session = Depends(get_db),
                 p=Depends(get_principal)):
    try:
        doc = service.get_document(db, client_id, period_id, code)
        return doc if doc is not None else service.blank_view(code)
    except DomainError as e:
        raise http_error(e)


@router.post("/documents/{code}/open")
def open_document(client_id: str, period_id: str, code: str, db: Session = Depends(get_db),
                  p: Principal = Depends(require_member)):
    try:
        return service.open_document(db, client_id, period_id, code)
    except DomainError as e:
        raise http_error(e)


@router.put("/documents/{code}")
def save_document(client_id: str, period_id: str, code: str, payload: DocumentIn,
                  db: Session = Depends(get_db), p: Principal = Depends(require_member)):
    try:
        return service.save_document(db, client_id, period_id, code, payload.content_json,
                                     content=payload.content, actor=p.member_id)
    except DomainError as e:
        raise http_error(e)


@router.post("/documents/{code}/complete")
def complete(client_id: str, period_id: str, code: str, payload: CompleteIn | None = None,
             db: Session = Depends(get_db), p: Principal = Depends(require_member)):
    is_complete = payload.is_complete if payload else True
    try:
        return service.set_complete(db, client_id, period_id, code, is_complete, actor=p.member_id)
    except DomainError as e:
        raise http_error(e)


@router.post("/materiality/generate")
def generate_materiality(client_id: str, period_id: str, db: Session = Depends(get_db),
                         p: Principal = Depends(require_member)):
    try:
        return service.generate_materiality(db, client_id, period_id, actor=p.member_id)
    except DomainError as e:
        raise http_error(e)
