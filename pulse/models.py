from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pulse.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    access_role: Mapped[str] = mapped_column(String(40), nullable=False, default="Worker / Lumper")
    building: Mapped[str | None] = mapped_column(String(20), nullable=True)
    shift: Mapped[str | None] = mapped_column(String(10), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    must_change_password: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    sessions = relationship("SessionRecord", back_populates="user", cascade="all, delete-orphan")


class SessionRecord(Base):
    __tablename__ = "sessions"

    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    user = relationship("User", back_populates="sessions")


class ScopedRecord:
    """Columns shared by every building-scoped table."""

    building: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    created_by_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    created_by_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class WorkOrder(ScopedRecord, Base):
    __tablename__ = "work_orders"
    __table_args__ = (
        CheckConstraint("status IN ('Pending', 'Active', 'Completed', 'Locked')", name="ck_work_orders_status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shift: Mapped[str | None] = mapped_column(String(10), nullable=True)
    work_order_code: Mapped[str] = mapped_column(String(120), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Pending")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class Container(ScopedRecord, Base):
    __tablename__ = "containers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shift: Mapped[str | None] = mapped_column(String(10), nullable=True)
    work_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    container_no: Mapped[str] = mapped_column(String(120), nullable=False)
    pieces_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skus_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    palletized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pay_total: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    workers: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    work_order_id: Mapped[int | None] = mapped_column(ForeignKey("work_orders.id", ondelete="SET NULL"), nullable=True, index=True)


class WorkforcePerson(ScopedRecord, Base):
    __tablename__ = "workforce"
    __table_args__ = (
        CheckConstraint("status IN ('Active', 'On Leave', 'Terminated', 'Candidate')", name="ck_workforce_status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    job_role: Mapped[str | None] = mapped_column(String(120), nullable=True)
    access_role: Mapped[str | None] = mapped_column(String(40), nullable=True)
    shift: Mapped[str | None] = mapped_column(String(10), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Active")
    rate_type: Mapped[str] = mapped_column(String(20), nullable=False, default="None")
    rate_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class Candidate(ScopedRecord, Base):
    __tablename__ = "hiring_candidates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    role_applied: Mapped[str | None] = mapped_column(String(120), nullable=True)
    stage: Mapped[str] = mapped_column(String(20), nullable=False, default="Applied")
    source: Mapped[str | None] = mapped_column(String(120), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class InjuryReport(ScopedRecord, Base):
    __tablename__ = "injury_reports"
    __table_args__ = (
        CheckConstraint("status IN ('Draft', 'Submitted', 'Closed')", name="ck_injury_reports_status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shift: Mapped[str | None] = mapped_column(String(10), nullable=True)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)

    reported_by_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reported_by_role: Mapped[str | None] = mapped_column(String(40), nullable=True)

    employee_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    employee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    employee_phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    employee_dob: Mapped[date | None] = mapped_column(Date, nullable=True)
    employee_job_title: Mapped[str | None] = mapped_column(String(120), nullable=True)

    incident_datetime: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    incident_location: Mapped[str] = mapped_column(String(255), nullable=False)
    incident_area: Mapped[str | None] = mapped_column(String(255), nullable=True)
    incident_type: Mapped[str] = mapped_column(String(120), nullable=False)
    body_part: Mapped[str] = mapped_column(String(120), nullable=False)
    injury_description: Mapped[str] = mapped_column(Text, nullable=False)
    immediate_actions: Mapped[str] = mapped_column(Text, nullable=False)

    first_aid_given: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    first_aid_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ems_called: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sent_to_clinic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    clinic_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    medical_refused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    refusal_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    supervisor_on_duty: Mapped[str | None] = mapped_column(String(255), nullable=True)
    witnesses: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    employee_statement: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Draft", index=True)
    hr_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    employee_signed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    manager_signed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    work_order_id: Mapped[int | None] = mapped_column(ForeignKey("work_orders.id", ondelete="SET NULL"), nullable=True)

    emailed_draft_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    emailed_submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    files = relationship("InjuryReportFile", back_populates="report", cascade="all, delete-orphan")


class InjuryReportFile(Base):
    __tablename__ = "injury_report_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    report_id: Mapped[int] = mapped_column(ForeignKey("injury_reports.id", ondelete="CASCADE"), nullable=False, index=True)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(120), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    category: Mapped[str] = mapped_column(String(40), nullable=False, default="other")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    report = relationship("InjuryReport", back_populates="files")


class ReadinessReport(ScopedRecord, Base):
    __tablename__ = "readiness_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shift: Mapped[str] = mapped_column(String(10), nullable=False)
    report_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    items: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class TerminationRecord(ScopedRecord, Base):
    __tablename__ = "terminations"
    __table_args__ = (
        CheckConstraint("checklist_variant IN ('standard', 'extended')", name="ck_terminations_variant"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    job_role: Mapped[str | None] = mapped_column(String(120), nullable=True)
    workforce_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    checklist_variant: Mapped[str] = mapped_column(String(20), nullable=False, default="standard")
    checklist: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class DamageReport(ScopedRecord, Base):
    __tablename__ = "damage_reports"
    __table_args__ = (
        CheckConstraint("status IN ('Open', 'In Review', 'Closed')", name="ck_damage_reports_status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shift: Mapped[str | None] = mapped_column(String(10), nullable=True)
    container_no: Mapped[str] = mapped_column(String(120), nullable=False)
    work_order_no: Mapped[str | None] = mapped_column(String(120), nullable=True)
    damage_type: Mapped[str] = mapped_column(String(40), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    pieces_damaged: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pieces_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    damage_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rework_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    reporter_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Open")


class ChatMessage(ScopedRecord, Base):
    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shift: Mapped[str | None] = mapped_column(String(10), nullable=True)
    channel: Mapped[str] = mapped_column(String(20), nullable=False, default="General")
    message: Mapped[str] = mapped_column(Text, nullable=False)
    author_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    author_role: Mapped[str | None] = mapped_column(String(40), nullable=True)
    pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
