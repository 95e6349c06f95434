from __future__ import annotations

import logging
import time
from datetime import date, datetime
from typing import Any, Literal

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from pulse.access import Actor, RecordRef, injury_policy
from pulse.api.common import (
    Building,
    PermissionsOut,
    Shift,
    check_building_link,
    creator_fields,
    ensure,
    list_scoped,
    ny_today,
    record_ref,
    resolve_location,
)
from pulse.auth import get_actor
from pulse.db import get_db
from pulse.errors import BackendError, ConflictError, NotFoundError, ValidationError
from pulse.models import InjuryReport, InjuryReportFile, WorkOrder
from pulse.notify import Notifier, get_notifier, send_injury_email
from pulse.storage import INJURY_UPLOADS_BUCKET, FileStorage, get_storage, safe_file_name
from pulse.stores import RecordStore
from pulse.workflow import (
    INJURY_CLOSED,
    INJURY_DRAFT,
    INJURY_SUBMITTED,
    is_injury_locked,
    missing_injury_fields,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/injury-reports", tags=["injury-reports"])

FileCategory = Literal["photo", "statement", "medical", "other"]

MAX_UPLOAD_BYTES = 15 * 1024 * 1024


class Witness(BaseModel):
    name: str = ""
    phone: str = ""
    statement: str = ""


class InjuryReportIn(BaseModel):
    building: Building | None = None
    shift: Shift | None = None
    work_date: date | None = None
    employee_id: int | None = None
    employee_name: str | None = None
    employee_phone: str | None = None
    employee_dob: date | None = None
    employee_job_title: str | None = None
    incident_datetime: datetime | None = None
    incident_location: str | None = None
    incident_area: str | None = None
    incident_type: str | None = None
    body_part: str | None = None
    injury_description: str | None = None
    immediate_actions: str | None = None
    first_aid_given: bool | None = None
    first_aid_by: str | None = None
    ems_called: bool | None = None
    sent_to_clinic: bool | None = None
    clinic_name: str | None = None
    medical_refused: bool | None = None
    refusal_reason: str | None = None
    supervisor_on_duty: str | None = None
    witnesses: list[Witness] | None = None
    employee_statement: str | None = None
    employee_signed: bool | None = None
    manager_signed: bool | None = None
    work_order_id: int | None = None


class ClosePayload(BaseModel):
    hr_notes: str | None = Field(default=None, max_length=5000)


class InjuryFileOut(BaseModel):
    id: int
    report_id: int
    file_name: str
    mime_type: str | None
    file_size: int | None
    category: str
    created_at: datetime
    url: str


class InjuryReportOut(BaseModel):
    id: int
    building: str
    shift: str | None
    work_date: date
    reported_by_name: str | None
    reported_by_role: str | None
    employee_id: int | None
    employee_name: str
    employee_phone: str | None
    employee_dob: date | None
    employee_job_title: str | None
    incident_datetime: datetime
    incident_location: str
    incident_area: str | None
    incident_type: str
    body_part: str
    injury_description: str
    immediate_actions: str
    first_aid_given: bool
    first_aid_by: str | None
    ems_called: bool
    sent_to_clinic: bool
    clinic_name: str | None
    medical_refused: bool
    refusal_reason: str | None
    supervisor_on_duty: str | None
    witnesses: list[Witness]
    employee_statement: str | None
    status: str
    hr_notes: str | None
    employee_signed: bool
    manager_signed: bool
    work_order_id: int | None
    emailed_draft_at: datetime | None
    emailed_submitted_at: datetime | None
    created_by_user_id: int | None
    created_by_email: str | None
    created_at: datetime
    updated_at: datetime
    permissions: PermissionsOut
    can_close: bool


_BOOLEAN_FIELDS = ("first_aid_given", "ems_called", "sent_to_clinic", "medical_refused", "employee_signed", "manager_signed")
_TEXT_FIELDS = (
    "employee_name",
    "employee_phone",
    "employee_job_title",
    "incident_location",
    "incident_area",
    "incident_type",
    "body_part",
    "injury_description",
    "immediate_actions",
    "first_aid_by",
    "clinic_name",
    "refusal_reason",
    "supervisor_on_duty",
    "employee_statement",
)


def _store(db: Session) -> RecordStore[InjuryReport]:
    return RecordStore(db, InjuryReport, "injury report")


def _ref(row: InjuryReport) -> RecordRef:
    return record_ref(row, locked=is_injury_locked(row.status))


def _can_close(actor: Actor, row: InjuryReport) -> bool:
    return (
        actor.capabilities.can_close_injury_reports
        and injury_policy.can_view(actor, _ref(row))
        and row.status == INJURY_SUBMITTED
    )


def _serialize(row: InjuryReport, actor: Actor) -> InjuryReportOut:
    values = {key: getattr(row, key) for key in InjuryReport.__table__.columns.keys()}
    values["witnesses"] = [Witness(**witness) for witness in row.witnesses or []]
    return InjuryReportOut(
        **values,
        permissions=PermissionsOut.from_permissions(injury_policy.permissions(actor, _ref(row))),
        can_close=_can_close(actor, row),
    )


def _form_values(payload: InjuryReportIn, fields: set[str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key in fields:
        if key in ("building", "shift"):
            continue
        value = getattr(payload, key)
        if key in _TEXT_FIELDS and isinstance(value, str):
            value = value.strip() or None
        elif key in _BOOLEAN_FIELDS:
            value = bool(value)
        elif key == "witnesses":
            value = [witness.model_dump() for witness in value or [] if witness.name.strip() or witness.statement.strip()]
        values[key] = value
    return values


def _require_complete(values: dict[str, Any]) -> None:
    missing = missing_injury_fields(values)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}.")


def _load_file(db: Session, report_id: int, file_id: int) -> InjuryReportFile:
    row = db.get(InjuryReportFile, file_id)
    if row is None or row.report_id != report_id:
        raise NotFoundError("File not found")
    return row


def _serialize_file(row: InjuryReportFile, storage: FileStorage) -> InjuryFileOut:
    return InjuryFileOut(
        id=row.id,
        report_id=row.report_id,
        file_name=row.file_name,
        mime_type=row.mime_type,
        file_size=row.file_size,
        category=row.category,
        created_at=row.created_at,
        url=storage.signed_url(INJURY_UPLOADS_BUCKET, row.file_path),
    )


@router.get("", response_model=list[InjuryReportOut])
def list_injury_reports(
    building: str | None = Query(default=None),
    shift: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[InjuryReportOut]:
    rows = list_scoped(
        _store(db),
        injury_policy,
        actor,
        {"building": building, "shift": shift, "status": status_filter},
        _ref,
    )
    return [_serialize(row, actor) for row in rows]


@router.get("/{report_id}", response_model=InjuryReportOut)
def get_injury_report(
    report_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> InjuryReportOut:
    row = _store(db).get(report_id)
    ensure(injury_policy.can_view(actor, _ref(row)))
    return _serialize(row, actor)


@router.post("", response_model=InjuryReportOut, status_code=status.HTTP_201_CREATED)
def create_injury_report(
    payload: InjuryReportIn,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> InjuryReportOut:
    ensure(injury_policy.can_create(actor))
    building, shift = resolve_location(injury_policy, actor, payload.building, payload.shift)
    values = _form_values(payload, set(InjuryReportIn.model_fields))
    values["work_date"] = values.get("work_date") or ny_today()
    _require_complete({**values, "building": building})
    check_building_link(db, WorkOrder, values.get("work_order_id"), building, "work order")

    row = _store(db).insert(
        {
            **values,
            "building": building,
            "shift": shift,
            "status": INJURY_DRAFT,
            "reported_by_name": actor.name,
            "reported_by_role": actor.role,
            **creator_fields(actor),
        }
    )
    logger.info("injury report %s saved as draft by %s", row.id, actor.email)
    background_tasks.add_task(send_injury_email, notifier, row.id, "draft")
    return _serialize(row, actor)


@router.patch("/{report_id}", response_model=InjuryReportOut)
def update_injury_report(
    report_id: int,
    payload: InjuryReportIn,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> InjuryReportOut:
    store = _store(db)
    row = store.get(report_id)
    ensure(injury_policy.can_edit(actor, _ref(row)), "Submitted reports can only be edited by a Building Manager or Super Admin.")
    if row.status == INJURY_CLOSED and not actor.is_super_admin:
        raise ConflictError("Closed reports can no longer be edited.")

    building, shift = resolve_location(
        injury_policy,
        actor,
        payload.building or row.building,
        payload.shift or row.shift,
    )
    values = _form_values(payload, payload.model_fields_set)
    merged = {key: getattr(row, key) for key in InjuryReport.__table__.columns.keys()}
    merged.update(values)
    merged["building"] = building
    _require_complete(merged)
    if "work_order_id" in values or building != row.building:
        check_building_link(db, WorkOrder, merged["work_order_id"], building, "work order")

    row = store.update(row, {**values, "building": building, "shift": shift})
    if row.status == INJURY_DRAFT:
        background_tasks.add_task(send_injury_email, notifier, row.id, "draft")
    return _serialize(row, actor)


@router.post("/{report_id}/submit", response_model=InjuryReportOut)
def submit_injury_report(
    report_id: int,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> InjuryReportOut:
    store = _store(db)
    row = store.get(report_id)
    ensure(injury_policy.can_edit(actor, _ref(row)))
    if row.status != INJURY_DRAFT:
        raise ConflictError("Only draft reports can be submitted.")
    values = {key: getattr(row, key) for key in InjuryReport.__table__.columns.keys()}
    _require_complete(values)

    row = store.update(row, {"status": INJURY_SUBMITTED})
    logger.info("injury report %s submitted by %s", row.id, actor.email)
    background_tasks.add_task(send_injury_email, notifier, row.id, "submitted")
    return _serialize(row, actor)


@router.post("/{report_id}/close", response_model=InjuryReportOut)
def close_injury_report(
    report_id: int,
    payload: ClosePayload,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> InjuryReportOut:
    store = _store(db)
    row = store.get(report_id)
    ensure(
        actor.capabilities.can_close_injury_reports and injury_policy.can_view(actor, _ref(row)),
        "Only HR, Director of Operations or Super Admin can close injury reports.",
    )
    if row.status != INJURY_SUBMITTED:
        raise ConflictError("Only submitted reports can be closed.")
    patch: dict[str, Any] = {"status": INJURY_CLOSED}
    if payload.hr_notes is not None:
        patch["hr_notes"] = payload.hr_notes.strip() or None
    row = store.update(row, patch)
    logger.info("injury report %s closed by %s", row.id, actor.email)
    return _serialize(row, actor)


@router.delete("/{report_id}")
def delete_injury_report(
    report_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
) -> dict[str, bool]:
    store = _store(db)
    row = store.get(report_id)
    ensure(injury_policy.can_delete(actor, _ref(row)), "Submitted reports can only be deleted by a Building Manager or Super Admin.")
    paths = [upload.file_path for upload in row.files]
    store.delete(row)
    for path in paths:
        storage.remove(INJURY_UPLOADS_BUCKET, path)
    return {"ok": True}


@router.get("/{report_id}/files", response_model=list[InjuryFileOut])
def list_injury_files(
    report_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
) -> list[InjuryFileOut]:
    report = _store(db).get(report_id)
    ensure(injury_policy.can_view(actor, _ref(report)))
    stmt = (
        select(InjuryReportFile)
        .where(InjuryReportFile.report_id == report.id)
        .order_by(InjuryReportFile.created_at.desc(), InjuryReportFile.id.desc())
    )
    return [_serialize_file(row, storage) for row in db.scalars(stmt).all()]


@router.post("/{report_id}/files", response_model=InjuryFileOut, status_code=status.HTTP_201_CREATED)
async def upload_injury_file(
    report_id: int,
    file: UploadFile = File(...),
    category: FileCategory = Form(default="other"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
) -> InjuryFileOut:
    report = _store(db).get(report_id)
    ensure(injury_policy.can_edit(actor, _ref(report)))
    data = await file.read()
    if not data:
        raise ValidationError("Uploaded file is empty.")
    if len(data) > MAX_UPLOAD_BYTES:
        raise ValidationError("Uploaded file is larger than 15 MB.")

    file_name = safe_file_name(file.filename or "")
    path = f"reports/{report.id}/{int(time.time() * 1000)}-{file_name}"
    storage.upload(INJURY_UPLOADS_BUCKET, path, data)
    store = RecordStore(db, InjuryReportFile, "injury report file")
    try:
        row = store.insert(
            {
                "report_id": report.id,
                "file_path": path,
                "file_name": file_name,
                "mime_type": file.content_type,
                "file_size": len(data),
                "category": category,
            }
        )
    except BackendError:
        storage.remove(INJURY_UPLOADS_BUCKET, path)
        raise
    return _serialize_file(row, storage)


@router.get("/{report_id}/files/{file_id}/url")
def injury_file_url(
    report_id: int,
    file_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
) -> dict[str, str]:
    report = _store(db).get(report_id)
    ensure(injury_policy.can_view(actor, _ref(report)))
    row = _load_file(db, report.id, file_id)
    return {"url": storage.signed_url(INJURY_UPLOADS_BUCKET, row.file_path)}


@router.delete("/{report_id}/files/{file_id}")
def delete_injury_file(
    report_id: int,
    file_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
) -> dict[str, bool]:
    report = _store(db).get(report_id)
    ensure(injury_policy.can_edit(actor, _ref(report)))
    row = _load_file(db, report.id, file_id)
    path = row.file_path
    RecordStore(db, InjuryReportFile, "injury report file").delete(row)
    storage.remove(INJURY_UPLOADS_BUCKET, path)
    return {"ok": True}
