from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.security import Principal, require_roles
from app.db.session import get_db
from app.events.outbox import OutboxEvent


router = APIRouter(prefix="/admin/events", tags=["admin_events"])


@router.get("")
def list_events(
    topic: str | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles("ADMIN")),
):
    """Outbox rows, newest first. Delivery happens elsewhere."""
    q = db.query(OutboxEvent)
    if topic:
        q = q.filter(OutboxEvent.topic == topic)
    rows = q.order_by(OutboxEvent.created_at.desc()).offset(offset).limit(limit).all()
    return [
        {
            "id": e.id,
            "organization_id": e.organization_id,
            "topic": e.topic,
            "payload": e.payload or {},
            "created_at": e.created_at.isoformat() if e.created_at else None,
        }
        for e in rows
    ]
