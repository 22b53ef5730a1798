from __future__ import annotations

from sqlalchemy import Index, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.db.models.common import HasCreatedAt, HasId


class OutboxEvent(Base, HasId, HasCreatedAt):
    """Transactional outbox.

    Rows are written in the same transaction as the change they describe, so an
    event exists if and only if the change committed. Delivery to other systems
    reads this table; nothing in this service consumes it.
    """

    __tablename__ = "outbox_event"

    organization_id: Mapped[str] = mapped_column(String(64), default="default", nullable=False, index=True)
    topic: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)


Index("ix_outbox_topic_created", OutboxEvent.topic, OutboxEvent.created_at)
