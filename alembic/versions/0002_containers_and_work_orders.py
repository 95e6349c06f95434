"""work orders, containers, damage reports and chat

Revision ID: 0002_containers_and_work_orders
Revises: 0001_auth_and_roster
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0002_containers_and_work_orders"
down_revision = "0001_auth_and_roster"
branch_labels = None
depends_on = None


def scoped_columns() -> list[sa.Column]:
    return [
        sa.Column("building", sa.String(20), nullable=False, index=True),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True, index=True),
        sa.Column("created_by_email", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "work_orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shift", sa.String(10), nullable=True),
        sa.Column("work_order_code", sa.String(120), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="Pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        *scoped_columns(),
        sa.CheckConstraint("status IN ('Pending', 'Active', 'Completed', 'Locked')", name="ck_work_orders_status"),
    )
    op.create_table(
        "containers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shift", sa.String(10), nullable=True),
        sa.Column("work_date", sa.Date(), nullable=False, index=True),
        sa.Column("container_no", sa.String(120), nullable=False),
        sa.Column("pieces_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("skus_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("palletized", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pay_total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("workers", sa.JSON(), nullable=False),
        sa.Column(
            "work_order_id",
            sa.Integer(),
            sa.ForeignKey("work_orders.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        *scoped_columns(),
    )
    op.create_table(
        "damage_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shift", sa.String(10), nullable=True),
        sa.Column("container_no", sa.String(120), nullable=False),
        sa.Column("work_order_no", sa.String(120), nullable=True),
        sa.Column("damage_type", sa.String(40), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("pieces_damaged", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pieces_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("damage_percent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rework_percent", sa.Float(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("reporter_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="Open"),
        *scoped_columns(),
        sa.CheckConstraint("status IN ('Open', 'In Review', 'Closed')", name="ck_damage_reports_status"),
    )
    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shift", sa.String(10), nullable=True),
        sa.Column("channel", sa.String(20), nullable=False, server_default="General"),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("author_name", sa.String(255), nullable=True),
        sa.Column("author_role", sa.String(40), nullable=True),
        sa.Column("pinned", sa.Boolean(), nullable=False, server_default=sa.false()),
        *scoped_columns(),
    )


def downgrade() -> None:
    op.drop_table("chat_messages")
    op.drop_table("damage_reports")
    op.drop_table("containers")
    op.drop_table("work_orders")
