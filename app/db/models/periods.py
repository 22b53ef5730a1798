from __future__ import annotations
from datetime import date
from sqlalchemy import String, Date, Boolean, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt

ONE_OPEN_PERIOD_CONSTRAINT = "uq_accounting_period_one_open_per_client"

class Client(Base, HasId, HasCreatedAt):
    __tablename__ = "client"
    organization_id: Mapped[str] = mapped_column(String(64), default="default", index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)

class AccountingPeriod(Base, HasId, HasCreatedAt):
    __tablename__ = "accounting_period"
    client_id: Mapped[str] = mapped_column(ForeignKey("client.id", ondelete="RESTRICT"), nullable=False, index=True)
    period_name: Mapped[str] = mapped_column(String(128), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="PLANNED", nullable=False, index=True)  # PLANNED|OPEN|CLOSING|CLOSED
    is_current: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    client: Mapped[Client] = relationship()

Index("ix_accounting_period_client_dates", AccountingPeriod.client_id, AccountingPeriod.start_date, AccountingPeriod.end_date)
# At most one OPEN period per client, enforced by the store as well as by row locks.
Index(
    ONE_OPEN_PERIOD_CONSTRAINT,
    AccountingPeriod.client_id,
    unique=True,
    postgresql_where=text("status = 'OPEN'"),
    sqlite_where=text("status = 'OPEN'"),
)
