from __future__ import annotations
from sqlalchemy import String, Boolean, ForeignKey, JSON, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt, HasUpdatedAt

PERIOD_CODE_CONSTRAINT = "uq_working_paper_period_code"

class WorkingPaper(Base, HasId, HasCreatedAt, HasUpdatedAt):
    """One working-paper document per period per template code."""

    __tablename__ = "working_paper"
    __table_args__ = (UniqueConstraint("period_id", "code", name=PERIOD_CODE_CONSTRAINT),)

    client_id: Mapped[str] = mapped_column(ForeignKey("client.id", ondelete="RESTRICT"), nullable=False, index=True)
    period_id: Mapped[str] = mapped_column(ForeignKey("accounting_period.id", ondelete="RESTRICT"), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False)  # e.g. "B11", "B14-2(a)"
    kind: Mapped[str | None] = mapped_column(String(32), nullable=True)  # LINE_ITEM_SCHEDULE|SIMPLE_SCHEDULE|CHECKLIST|MATERIALITY|PERIOD_SETUP, null for rich text
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    content_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    is_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
