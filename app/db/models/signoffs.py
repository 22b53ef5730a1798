from __future__ import annotations
from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt, HasUpdatedAt

CLIENT_PERIOD_CODE_CONSTRAINT = "uq_doc_signoff_client_period_code"

class DocSignoff(Base, HasId, HasCreatedAt, HasUpdatedAt):
    __tablename__ = "doc_signoff"
    __table_args__ = (UniqueConstraint("client_id", "period_id", "code", name=CLIENT_PERIOD_CODE_CONSTRAINT),)

    client_id: Mapped[str] = mapped_column(ForeignKey("client.id", ondelete="RESTRICT"), nullable=False, index=True)
    period_id: Mapped[str] = mapped_column(ForeignKey("accounting_period.id", ondelete="RESTRICT"), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False)

    reviewed_by_member_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_by_member_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Append-only: [{type, memberId, at}, ...]
    history: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
