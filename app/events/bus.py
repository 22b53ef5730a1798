from __future__ import annotations

from sqlalchemy.orm import Session

from app.core.organization import get_organization_id
from app.events.outbox import OutboxEvent


def publish(db: Session, topic: str, payload: dict) -> OutboxEvent:
    """Publish an event by writing to the transactional outbox.

    Does not commit: the event becomes visible with the caller's transaction.
    """
    evt = OutboxEvent(
        organization_id=get_organization_id(),
        topic=topic,
        payload=payload or {},
    )
    db.add(evt)
    return evt
