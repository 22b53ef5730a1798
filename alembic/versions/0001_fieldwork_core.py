"""fieldwork core tables

Revision ID: 0001_fieldwork_core
Revises:
Create Date: 2026-10-19T09:00:00Z
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_fieldwork_core"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _updated_at():
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade():
    op.create_table(
        "client",
        _id(),
        _created_at(),
        sa.Column("organization_id", sa.String(length=64), nullable=False, server_default="default"),
        sa.Column("name", sa.String(length=256), nullable=False),
    )
    op.create_index("ix_client_organization_id", "client", ["organization_id"])

    op.create_table(
        "accounting_period",
        _id(),
        _created_at(),
        sa.Column("client_id", sa.String(length=36), sa.ForeignKey("client.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("period_name", sa.String(length=128), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PLANNED"),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_accounting_period_client_id", "accounting_period", ["client_id"])
    op.create_index("ix_accounting_period_status", "accounting_period", ["status"])
    op.create_index("ix_accounting_period_client_dates", "accounting_period", ["client_id", "start_date", "end_date"])
    # At most one OPEN period per client
    op.create_index(
        "uq_accounting_period_one_open_per_client",
        "accounting_period",
        ["client_id"],
        unique=True,
        postgresql_where=sa.text("status = 'OPEN'"),
        sqlite_where=sa.text("status = 'OPEN'"),
    )

    op.create_table(
        "working_paper",
        _id(),
        _created_at(),
        _updated_at(),
        sa.Column("client_id", sa.String(length=36), sa.ForeignKey("client.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("period_id", sa.String(length=36), sa.ForeignKey("accounting_period.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=True),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("content_json", sa.JSON(), nullable=True),
        sa.Column("is_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("period_id", "code", name="uq_working_paper_period_code"),
    )
    op.create_index("ix_working_paper_client_id", "working_paper", ["client_id"])
    op.create_index("ix_working_paper_period_id", "working_paper", ["period_id"])

    op.create_table(
        "doc_signoff",
        _id(),
        _created_at(),
        _updated_at(),
        sa.Column("client_id", sa.String(length=36), sa.ForeignKey("client.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("period_id", sa.String(length=36), sa.ForeignKey("accounting_period.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("reviewed_by_member_id", sa.String(length=64), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_by_member_id", sa.String(length=64), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("history", sa.JSON(), nullable=False),
        sa.UniqueConstraint("client_id", "period_id", "code", name="uq_doc_signoff_client_period_code"),
    )
    op.create_index("ix_doc_signoff_client_id", "doc_signoff", ["client_id"])
    op.create_index("ix_doc_signoff_period_id", "doc_signoff", ["period_id"])

    op.create_table(
        "sys_audit_log",
        _id(),
        _created_at(),
        sa.Column("organization_id", sa.String(length=64), nullable=False, server_default="default"),
        sa.Column("actor", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("payload", sa.JSON(), nullable=False),
    )
    for col in ("organization_id", "actor", "action", "entity_type", "entity_id"):
        op.create_index(f"ix_sys_audit_log_{col}", "sys_audit_log", [col])
    op.create_index("ix_audit_org_time", "sys_audit_log", ["organization_id", "created_at"])

    op.create_table(
        "outbox_event",
        _id(),
        _created_at(),
        sa.Column("organization_id", sa.String(length=64), nullable=False, server_default="default"),
        sa.Column("topic", sa.String(length=128), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
    )
    op.create_index("ix_outbox_event_organization_id", "outbox_event", ["organization_id"])
    op.create_index("ix_outbox_event_topic", "outbox_event", ["topic"])
    op.create_index("ix_outbox_topic_created", "outbox_event", ["topic", "created_at"])


def downgrade():
    op.drop_table("outbox_event")
    op.drop_table("sys_audit_log")
    op.drop_table("doc_signoff")
    op.drop_table("working_paper")
    op.drop_index("uq_accounting_period_one_open_per_client", table_name="accounting_period")
    op.drop_table("accounting_period")
    op.drop_table("client")
