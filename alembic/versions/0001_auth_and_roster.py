"""users, sessions, workforce roster and hiring pipeline

Revision ID: 0001_auth_and_roster
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_auth_and_roster"
down_revision = None
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
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("access_role", sa.String(40), nullable=False, server_default="Worker / Lumper"),
        sa.Column("building", sa.String(20), nullable=True),
        sa.Column("shift", sa.String(10), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("must_change_password", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "sessions",
        sa.Column("session_id", sa.String(128), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )
    op.create_table(
        "workforce",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("job_role", sa.String(120), nullable=True),
        sa.Column("access_role", sa.String(40), nullable=True),
        sa.Column("shift", sa.String(10), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="Active"),
        sa.Column("rate_type", sa.String(20), nullable=False, server_default="None"),
        sa.Column("rate_value", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *scoped_columns(),
        sa.CheckConstraint("status IN ('Active', 'On Leave', 'Terminated', 'Candidate')", name="ck_workforce_status"),
    )
    op.create_table(
        "hiring_candidates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("role_applied", sa.String(120), nullable=True),
        sa.Column("stage", sa.String(20), nullable=False, server_default="Applied"),
        sa.Column("source", sa.String(120), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *scoped_columns(),
    )


def downgrade() -> None:
    op.drop_table("hiring_candidates")
    op.drop_table("workforce")
    op.drop_table("sessions")
    op.drop_table("users")
