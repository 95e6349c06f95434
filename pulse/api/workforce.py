from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from pulse.access import Actor, sanitize_role, workforce_policy
from pulse.api.common import (
    Building,
    PermissionsOut,
    Shift,
    clean_optional,
    creator_fields,
    ensure,
    list_scoped,
    record_ref,
    relocate,
    require_text,
    resolve_location,
)
from pulse.auth import get_actor
from pulse.db import get_db
from pulse.errors import ValidationError
from pulse.models import TerminationRecord, WorkforcePerson
from pulse.stores import RecordStore

router = APIRouter(prefix="/api/workforce", tags=["workforce"])

WorkforceStatus = Literal["Active", "On Leave", "Terminated", "Candidate"]
RateType = Literal["Hourly", "Production", "None"]


class WorkforceIn(BaseModel):
    name: str
    building: Building | None = None
    shift: Shift | None = None
    job_role: str | None = None
    access_role: str | None = None
    status: WorkforceStatus = "Active"
    rate_type: RateType = "None"
    rate_value: float | None = Field(default=None, ge=0)
    notes: str | None = None


class WorkforcePatch(BaseModel):
    name: str | None = None
    building: Building | None = None
    shift: Shift | None = None
    job_role: str | None = None
    access_role: str | None = None
    status: WorkforceStatus | None = None
    rate_type: RateType | None = None
    rate_value: float | None = Field(default=None, ge=0)
    notes: str | None = None


class WorkforceOut(BaseModel):
    id: int
    name: str
    building: str
    shift: str | None
    job_role: str | None
    access_role: str | None
    status: str
    rate_type: str
    rate_value: float | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
    permissions: PermissionsOut


def _store(db: Session) -> RecordStore[WorkforcePerson]:
    return RecordStore(db, WorkforcePerson, "workforce entry")


def _rate(rate_type: str, rate_value: float | None) -> float | None:
    if rate_type == "None":
        return None
    if rate_value is None:
        raise ValidationError(f"Rate value is required for {rate_type} pay.")
    return rate_value


def _access_role(raw: str | None) -> str | None:
    cleaned = clean_optional(raw)
    return sanitize_role(cleaned) if cleaned else None


def _serialize(row: WorkforcePerson, actor: Actor) -> WorkforceOut:
    return WorkforceOut(
        id=row.id,
        name=row.name,
        building=row.building,
        shift=row.shift,
        job_role=row.job_role,
        access_role=row.access_role,
        status=row.status,
        rate_type=row.rate_type,
        rate_value=row.rate_value,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
        permissions=PermissionsOut.from_permissions(workforce_policy.permissions(actor, record_ref(row))),
    )


@router.get("", response_model=list[WorkforceOut])
def list_workforce(
    building: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[WorkforceOut]:
    rows = list_scoped(
        _store(db),
        workforce_policy,
        actor,
        {"building": building, "status": status_filter},
        record_ref,
    )
    needle = (search or "").strip().lower()
    if needle:
        rows = [
            row
            for row in rows
            if needle in row.name.lower() or needle in (row.job_role or "").lower()
        ]
    return [_serialize(row, actor) for row in rows]


@router.post("", response_model=WorkforceOut, status_code=status.HTTP_201_CREATED)
def create_workforce_person(
    payload: WorkforceIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> WorkforceOut:
    ensure(workforce_policy.can_create(actor))
    building, shift = resolve_location(workforce_policy, actor, payload.building, payload.shift)
    row = _store(db).insert(
        {
            "name": require_text(payload.name, "Name"),
            "building": building,
            "shift": shift,
            "job_role": clean_optional(payload.job_role),
            "access_role": _access_role(payload.access_role),
            "status": payload.status,
            "rate_type": payload.rate_type,
            "rate_value": _rate(payload.rate_type, payload.rate_value),
            "notes": clean_optional(payload.notes),
            **creator_fields(actor),
        }
    )
    return _serialize(row, actor)


@router.patch("/{person_id}", response_model=WorkforceOut)
def update_workforce_person(
    person_id: int,
    payload: WorkforcePatch,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> WorkforceOut:
    store = _store(db)
    row = store.get(person_id)
    ensure(workforce_policy.can_edit(actor, record_ref(row)))
    building, shift = relocate(workforce_policy, actor, row, payload.building, payload.shift)
    fields = payload.model_fields_set
    rate_type = payload.rate_type or row.rate_type
    rate_value = payload.rate_value if "rate_value" in fields else row.rate_value

    patch = {
        "building": building,
        "shift": shift,
        "rate_type": rate_type,
        "rate_value": _rate(rate_type, rate_value),
    }
    if payload.name is not None:
        patch["name"] = require_text(payload.name, "Name")
    if payload.status is not None:
        patch["status"] = payload.status
    for key in ("job_role", "notes"):
        if key in fields:
            patch[key] = clean_optional(getattr(payload, key))
    if "access_role" in fields:
        patch["access_role"] = _access_role(payload.access_role)
    row = store.update(row, patch)
    return _serialize(row, actor)


@router.delete("/{person_id}")
def delete_workforce_person(
    person_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    store = _store(db)
    row = store.get(person_id)
    ensure(workforce_policy.can_delete(actor, record_ref(row)))
    store.delete(row, unlink=(TerminationRecord.workforce_id,))
    return {"ok": True}
