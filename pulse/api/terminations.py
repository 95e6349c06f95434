from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pulse.access import Actor, RecordRef, termination_policy
from pulse.api.common import (
    Building,
    PermissionsOut,
    check_building_link,
    clean_optional,
    creator_fields,
    ensure,
    list_scoped,
    record_ref,
    require_text,
    resolve_location,
)
from pulse.auth import get_actor
from pulse.db import get_db
from pulse.errors import BackendError, PartialFailure
from pulse.models import TerminationRecord, WorkforcePerson
from pulse.stores import RecordStore
from pulse.workflow import (
    TERMINATION_COMPLETED,
    is_termination_locked,
    merge_termination_checklist,
    termination_status,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/terminations", tags=["terminations"])

ChecklistVariant = Literal["standard", "extended"]


class TerminationIn(BaseModel):
    employee_name: str
    building: Building | None = None
    job_role: str | None = None
    workforce_id: int | None = None
    reason: str | None = None
    checklist_variant: ChecklistVariant = "standard"
    checklist: dict[str, bool] = Field(default_factory=dict)
    notes: str | None = None


class TerminationPatch(BaseModel):
    employee_name: str | None = None
    building: Building | None = None
    job_role: str | None = None
    workforce_id: int | None = None
    reason: str | None = None
    checklist_variant: ChecklistVariant | None = None
    checklist: dict[str, bool] | None = None
    notes: str | None = None


class TerminationOut(BaseModel):
    id: int
    employee_name: str
    building: str
    job_role: str | None
    workforce_id: int | None
    reason: str | None
    checklist_variant: str
    checklist: dict[str, bool]
    status: str
    notes: str | None
    created_by_user_id: int | None
    created_by_email: str | None
    created_at: datetime
    updated_at: datetime
    permissions: PermissionsOut


def _store(db: Session) -> RecordStore[TerminationRecord]:
    return RecordStore(db, TerminationRecord, "termination")


def _ref(row: TerminationRecord) -> RecordRef:
    return record_ref(row, locked=is_termination_locked(row.checklist or {}))


def _serialize(row: TerminationRecord, actor: Actor) -> TerminationOut:
    checklist = row.checklist or {}
    return TerminationOut(
        id=row.id,
        employee_name=row.employee_name,
        building=row.building,
        job_role=row.job_role,
        workforce_id=row.workforce_id,
        reason=row.reason,
        checklist_variant=row.checklist_variant,
        checklist=checklist,
        status=termination_status(checklist),
        notes=row.notes,
        created_by_user_id=row.created_by_user_id,
        created_by_email=row.created_by_email,
        created_at=row.created_at,
        updated_at=row.updated_at,
        permissions=PermissionsOut.from_permissions(termination_policy.permissions(actor, _ref(row))),
    )


def _find_workforce_person(db: Session, row: TerminationRecord) -> WorkforcePerson | None:
    if row.workforce_id is not None:
        person = db.get(WorkforcePerson, row.workforce_id)
        if person is None or person.building != row.building:
            return None
        return person
    stmt = (
        select(WorkforcePerson)
        .where(
            WorkforcePerson.building == row.building,
            func.lower(WorkforcePerson.name) == row.employee_name.strip().lower(),
        )
        .order_by(WorkforcePerson.id)
    )
    return db.scalars(stmt).first()


def mark_workforce_terminated(db: Session, row: TerminationRecord) -> bool:
    """Set the roster status of the terminated employee.

    Runs as its own write after the termination row is saved. A failure is
    logged as a partial failure and the termination row stays as written.
    """
    try:
        person = _find_workforce_person(db, row)
        if person is None:
            logger.info("termination %s: no roster entry matches %r", row.id, row.employee_name)
            return False
        if person.status == "Terminated":
            return True
        RecordStore(db, WorkforcePerson, "workforce entry").update(person, {"status": "Terminated"})
    except BackendError as exc:
        failure = PartialFailure(f"termination {row.id} saved but roster status update failed: {exc.message}")
        logger.error("%s", failure.message)
        return False
    return True


@router.get("", response_model=list[TerminationOut])
def list_terminations(
    building: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[TerminationOut]:
    rows = list_scoped(_store(db), termination_policy, actor, {"building": building}, _ref)
    return [_serialize(row, actor) for row in rows]


@router.post("", response_model=TerminationOut, status_code=status.HTTP_201_CREATED)
def create_termination(
    payload: TerminationIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> TerminationOut:
    ensure(termination_policy.can_create(actor))
    building, _ = resolve_location(termination_policy, actor, payload.building, None)
    check_building_link(db, WorkforcePerson, payload.workforce_id, building, "workforce entry")
    row = _store(db).insert(
        {
            "employee_name": require_text(payload.employee_name, "Employee name"),
            "building": building,
            "job_role": clean_optional(payload.job_role),
            "workforce_id": payload.workforce_id,
            "reason": clean_optional(payload.reason),
            "checklist_variant": payload.checklist_variant,
            "checklist": merge_termination_checklist(payload.checklist_variant, None, payload.checklist),
            "notes": clean_optional(payload.notes),
            **creator_fields(actor),
        }
    )
    mark_workforce_terminated(db, row)
    return _serialize(row, actor)


@router.patch("/{termination_id}", response_model=TerminationOut)
def update_termination(
    termination_id: int,
    payload: TerminationPatch,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> TerminationOut:
    store = _store(db)
    row = store.get(termination_id)
    ensure(termination_policy.can_edit(actor, _ref(row)), "Completed terminations can no longer be edited.")
    building, _ = resolve_location(termination_policy, actor, payload.building or row.building, None)
    fields = payload.model_fields_set
    workforce_id = payload.workforce_id if "workforce_id" in fields else row.workforce_id
    if "workforce_id" in fields or building != row.building:
        check_building_link(db, WorkforcePerson, workforce_id, building, "workforce entry")
    variant = payload.checklist_variant or row.checklist_variant
    was_completed = termination_status(row.checklist or {}) == TERMINATION_COMPLETED

    patch = {
        "building": building,
        "checklist_variant": variant,
        "checklist": merge_termination_checklist(variant, row.checklist, payload.checklist),
    }
    if payload.employee_name is not None:
        patch["employee_name"] = require_text(payload.employee_name, "Employee name")
    if "workforce_id" in fields:
        patch["workforce_id"] = workforce_id
    for key in ("job_role", "reason", "notes"):
        if key in fields:
            patch[key] = clean_optional(getattr(payload, key))
    row = store.update(row, patch)

    if not was_completed and termination_status(row.checklist) == TERMINATION_COMPLETED:
        logger.info("termination %s checklist completed by %s", row.id, actor.email)
        mark_workforce_terminated(db, row)
    return _serialize(row, actor)


@router.delete("/{termination_id}")
def delete_termination(
    termination_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    store = _store(db)
    row = store.get(termination_id)
    ensure(termination_policy.can_delete(actor, _ref(row)), "Completed terminations can no longer be deleted.")
    store.delete(row)
    return {"ok": True}
