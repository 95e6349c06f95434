from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from pulse.access import Actor, RecordRef, work_order_policy
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
from pulse.api.containers import ContainerOut, serialize_container
from pulse.auth import get_actor
from pulse.db import get_db
from pulse.models import Container, InjuryReport, WorkOrder
from pulse.stores import RecordStore
from pulse.workflow import is_work_order_locked

router = APIRouter(prefix="/api/work-orders", tags=["work-orders"])

WorkOrderStatus = Literal["Pending", "Active", "Completed", "Locked"]


class WorkOrderIn(BaseModel):
    building: Building | None = None
    shift: Shift | None = None
    work_order_code: str
    status: WorkOrderStatus = "Pending"
    notes: str | None = None


class WorkOrderPatch(BaseModel):
    building: Building | None = None
    shift: Shift | None = None
    work_order_code: str | None = None
    status: WorkOrderStatus | None = None
    notes: str | None = None


class WorkOrderOut(BaseModel):
    id: int
    building: str
    shift: str | None
    work_order_code: str
    status: str
    notes: str | None
    container_count: int
    pay_total: float
    created_by_user_id: int | None
    created_by_email: str | None
    created_at: datetime
    updated_at: datetime
    permissions: PermissionsOut


def _store(db: Session) -> RecordStore[WorkOrder]:
    return RecordStore(db, WorkOrder, "work order")


def _ref(row: WorkOrder) -> RecordRef:
    return record_ref(row, locked=is_work_order_locked(row.status))


def _containers_for(db: Session, work_order_id: int) -> list[Container]:
    stmt = select(Container).where(Container.work_order_id == work_order_id).order_by(Container.id)
    return list(db.scalars(stmt).all())


def _serialize(db: Session, row: WorkOrder, actor: Actor) -> WorkOrderOut:
    containers = _containers_for(db, row.id)
    return WorkOrderOut(
        id=row.id,
        building=row.building,
        shift=row.shift,
        work_order_code=row.work_order_code,
        status=row.status,
        notes=row.notes,
        container_count=len(containers),
        pay_total=round(sum(container.pay_total for container in containers), 2),
        created_by_user_id=row.created_by_user_id,
        created_by_email=row.created_by_email,
        created_at=row.created_at,
        updated_at=row.updated_at,
        permissions=PermissionsOut.from_permissions(work_order_policy.permissions(actor, _ref(row))),
    )


@router.get("", response_model=list[WorkOrderOut])
def list_work_orders(
    building: str | None = Query(default=None),
    shift: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[WorkOrderOut]:
    rows = list_scoped(
        _store(db),
        work_order_policy,
        actor,
        {"building": building, "shift": shift, "status": status_filter},
        _ref,
    )
    return [_serialize(db, row, actor) for row in rows]


@router.get("/{work_order_id}/containers", response_model=list[ContainerOut])
def list_work_order_containers(
    work_order_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[ContainerOut]:
    row = _store(db).get(work_order_id)
    ensure(work_order_policy.can_view(actor, _ref(row)))
    return [serialize_container(container, actor) for container in _containers_for(db, row.id)]


@router.post("", response_model=WorkOrderOut, status_code=status.HTTP_201_CREATED)
def create_work_order(
    payload: WorkOrderIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> WorkOrderOut:
    ensure(work_order_policy.can_create(actor))
    building, shift = resolve_location(work_order_policy, actor, payload.building, payload.shift)
    row = _store(db).insert(
        {
            "building": building,
            "shift": shift,
            "work_order_code": require_text(payload.work_order_code, "Work order number"),
            "status": payload.status,
            "notes": clean_optional(payload.notes),
            **creator_fields(actor),
        }
    )
    return _serialize(db, row, actor)


@router.patch("/{work_order_id}", response_model=WorkOrderOut)
def update_work_order(
    work_order_id: int,
    payload: WorkOrderPatch,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> WorkOrderOut:
    store = _store(db)
    row = store.get(work_order_id)
    ensure(work_order_policy.can_edit(actor, _ref(row)), "This work order can no longer be edited.")
    building, shift = relocate(work_order_policy, actor, row, payload.building, payload.shift)
    patch = {"building": building, "shift": shift}
    if payload.work_order_code is not None:
        patch["work_order_code"] = require_text(payload.work_order_code, "Work order number")
    if payload.status is not None:
        patch["status"] = payload.status
    if "notes" in payload.model_fields_set:
        patch["notes"] = clean_optional(payload.notes)
    row = store.update(row, patch)
    return _serialize(db, row, actor)


@router.delete("/{work_order_id}")
def delete_work_order(
    work_order_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    store = _store(db)
    row = store.get(work_order_id)
    ensure(work_order_policy.can_delete(actor, _ref(row)), "This work order can no longer be deleted.")
    store.delete(row, unlink=(Container.work_order_id, InjuryReport.work_order_id))
    return {"ok": True}
