from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pulse.access import Actor, hiring_policy
from pulse.api.common import (
    Building,
    PermissionsOut,
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
from pulse.models import Candidate
from pulse.stores import RecordStore

router = APIRouter(prefix="/api/hiring", tags=["hiring"])

Stage = Literal["Applied", "Phone Screen", "Onsite", "Offer", "Hired", "Rejected"]


class CandidateIn(BaseModel):
    full_name: str
    building: Building | None = None
    phone: str | None = None
    role_applied: str | None = None
    stage: Stage = "Applied"
    source: str | None = None
    notes: str | None = None


class CandidatePatch(BaseModel):
    full_name: str | None = None
    building: Building | None = None
    phone: str | None = None
    role_applied: str | None = None
    stage: Stage | None = None
    source: str | None = None
    notes: str | None = None


class CandidateOut(BaseModel):
    id: int
    full_name: str
    building: str
    phone: str | None
    role_applied: str | None
    stage: str
    source: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
    permissions: PermissionsOut


def _store(db: Session) -> RecordStore[Candidate]:
    return RecordStore(db, Candidate, "candidate")


def _serialize(row: Candidate, actor: Actor) -> CandidateOut:
    return CandidateOut(
        id=row.id,
        full_name=row.full_name,
        building=row.building,
        phone=row.phone,
        role_applied=row.role_applied,
        stage=row.stage,
        source=row.source,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
        permissions=PermissionsOut.from_permissions(hiring_policy.permissions(actor, record_ref(row))),
    )


@router.get("", response_model=list[CandidateOut])
def list_candidates(
    building: str | None = Query(default=None),
    stage: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[CandidateOut]:
    rows = list_scoped(_store(db), hiring_policy, actor, {"building": building, "stage": stage}, record_ref)
    return [_serialize(row, actor) for row in rows]


@router.post("", response_model=CandidateOut, status_code=status.HTTP_201_CREATED)
def create_candidate(
    payload: CandidateIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> CandidateOut:
    ensure(hiring_policy.can_create(actor))
    building, _ = resolve_location(hiring_policy, actor, payload.building, None)
    row = _store(db).insert(
        {
            "full_name": require_text(payload.full_name, "Candidate name"),
            "building": building,
            "phone": clean_optional(payload.phone),
            "role_applied": clean_optional(payload.role_applied),
            "stage": payload.stage,
            "source": clean_optional(payload.source),
            "notes": clean_optional(payload.notes),
            **creator_fields(actor),
        }
    )
    return _serialize(row, actor)


@router.patch("/{candidate_id}", response_model=CandidateOut)
def update_candidate(
    candidate_id: int,
    payload: CandidatePatch,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> CandidateOut:
    store = _store(db)
    row = store.get(candidate_id)
    ensure(hiring_policy.can_edit(actor, record_ref(row)))
    building, _ = resolve_location(hiring_policy, actor, payload.building or row.building, None)
    fields = payload.model_fields_set
    patch = {"building": building}
    if payload.full_name is not None:
        patch["full_name"] = require_text(payload.full_name, "Candidate name")
    # Any stage may follow any other.
    if payload.stage is not None:
        patch["stage"] = payload.stage
    for key in ("phone", "role_applied", "source", "notes"):
        if key in fields:
            patch[key] = clean_optional(getattr(payload, key))
    row = store.update(row, patch)
    return _serialize(row, actor)


@router.delete("/{candidate_id}")
def delete_candidate(
    candidate_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    store = _store(db)
    row = store.get(candidate_id)
    ensure(hiring_policy.can_delete(actor, record_ref(row)))
    store.delete(row)
    return {"ok": True}
