"""injury reports with uploads, readiness reports and terminations

Revision ID: 0003_injury_readiness_terminations
Revises: 0002_containers_and_work_orders
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0003_injury_readiness_terminations"
down_revision = "0002_containers_and_work_orders"
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
        "injury_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shift", sa.String(10), nullable=True),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("reported_by_name", sa.String(255), nullable=True),
        sa.Column("reported_by_role", sa.String(40), nullable=True),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        sa.Column("employee_name", sa.String(255), nullable=False),
        sa.Column("employee_phone", sa.String(40), nullable=True),
        sa.Column("employee_dob", sa.Date(), nullable=True),
        sa.Column("employee_job_title", sa.String(120), nullable=True),
        sa.Column("incident_datetime", sa.DateTime(timezone=True), nullable=False),
        sa.Column("incident_location", sa.String(255), nullable=False),
        sa.Column("incident_area", sa.String(255), nullable=True),
        sa.Column("incident_type", sa.String(120), nullable=False),
        sa.Column("body_part", sa.String(120), nullable=False),
        sa.Column("injury_description", sa.Text(), nullable=False),
        sa.Column("immediate_actions", sa.Text(), nullable=False),
        sa.Column("first_aid_given", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("first_aid_by", sa.String(255), nullable=True),
        sa.Column("ems_called", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sent_to_clinic", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("clinic_name", sa.String(255), nullable=True),
        sa.Column("medical_refused", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("refusal_reason", sa.Text(), nullable=True),
        sa.Column("supervisor_on_duty", sa.String(255), nullable=True),
        sa.Column("witnesses", sa.JSON(), nullable=False),
        sa.Column("employee_statement", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="Draft", index=True),
        sa.Column("hr_notes", sa.Text(), nullable=True),
        sa.Column("employee_signed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("manager_signed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("work_order_id", sa.Integer(), sa.ForeignKey("work_orders.id", ondelete="SET NULL"), nullable=True),
        sa.Column("emailed_draft_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("emailed_submitted_at", sa.DateTime(timezone=True), nullable=True),
        *scoped_columns(),
        sa.CheckConstraint("status IN ('Draft', 'Submitted', 'Closed')", name="ck_injury_reports_status"),
    )
    op.create_table(
        "injury_report_files",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "report_id",
            sa.Integer(),
            sa.ForeignKey("injury_reports.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("mime_type", sa.String(120), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("category", sa.String(40), nullable=False, server_default="other"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "readiness_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shift", sa.String(10), nullable=False),
        sa.Column("report_date", sa.Date(), nullable=False, index=True),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *scoped_columns(),
    )
    op.create_table(
        "terminations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("employee_name", sa.String(255), nullable=False),
        sa.Column("job_role", sa.String(120), nullable=True),
        sa.Column("workforce_id", sa.Integer(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("checklist_variant", sa.String(20), nullable=False, server_default="standard"),
        sa.Column("checklist", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *scoped_columns(),
        sa.CheckConstraint("checklist_variant IN ('standard', 'extended')", name="ck_terminations_variant"),
    )


def downgrade() -> None:
    op.drop_table("terminations")
    op.drop_table("readiness_reports")
    op.drop_table("injury_report_files")
    op.drop_table("injury_reports")
