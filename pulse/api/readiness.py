from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from pulse.access import Actor, RecordRef, readiness_policy
from pulse.api.common import (
    Building,
    PermissionsOut,
    Shift,
    creator_fields,
    ensure,
    list_scoped,
    ny_today,
    record_ref,
    resolve_location,
)
from pulse.auth import get_actor
from pulse.db import get_db
from pulse.errors import ConflictError, ValidationError
from pulse.models import ReadinessReport, utcnow
from pulse.stores import RecordStore
from pulse.workflow import (
    COMPLETED_AT_KEY,
    READINESS_META_KEY,
    READINESS_READY,
    is_readiness_locked,
    merge_readiness_items,
    readiness_progress,
    readiness_status,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/readiness", tags=["readiness"])


class ReadinessIn(BaseModel):
    building: Building | None = None
    shift: Shift | None = None
    report_date: date | None = None
    items: dict[str, Any] = Field(default_factory=dict)


class ReadinessPatch(BaseModel):
    building: Building | None = None
    shift: Shift | None = None
    report_date: date | None = None
    items: dict[str, Any] | None = None


class ReadinessOut(BaseModel):
    id: int
    building: str
    shift: str
    report_date: date
    items: dict[str, Any]
    status: str
    progress_done: int
    progress_total: int
    completed_at: datetime | None
    created_by_user_id: int | None
    created_by_email: str | None
    created_at: datetime
    updated_at: datetime
    permissions: PermissionsOut


def _store(db: Session) -> RecordStore[ReadinessReport]:
    return RecordStore(db, ReadinessReport, "readiness report")


def _ref(row: ReadinessReport) -> RecordRef:
    return record_ref(row, locked=is_readiness_locked(row.items or {}))


def _serialize(row: ReadinessReport, actor: Actor) -> ReadinessOut:
    items = row.items or {}
    done, total = readiness_progress(items)
    return ReadinessOut(
        id=row.id,
        building=row.building,
        shift=row.shift,
        report_date=row.report_date,
        items=items,
        status=readiness_status(items),
        progress_done=done,
        progress_total=total,
        completed_at=row.completed_at,
        created_by_user_id=row.created_by_user_id,
        created_by_email=row.created_by_email,
        created_at=row.created_at,
        updated_at=row.updated_at,
        permissions=PermissionsOut.from_permissions(readiness_policy.permissions(actor, _ref(row))),
    )


def _ensure_unique(db: Session, building: str, shift: str, report_date: date, exclude_id: int | None = None) -> None:
    stmt = select(ReadinessReport.id).where(
        ReadinessReport.building == building,
        ReadinessReport.shift == shift,
        ReadinessReport.report_date == report_date,
    )
    if exclude_id is not None:
        stmt = stmt.where(ReadinessReport.id != exclude_id)
    if db.scalars(stmt).first() is not None:
        raise ConflictError(
            f"A readiness report already exists for {building} {shift} shift on {report_date.isoformat()}."
        )


def _stamp(items: dict[str, Any], actor: Actor, prefix: str) -> dict[str, Any]:
    meta = dict(items.get(READINESS_META_KEY) or {})
    meta[f"{prefix}_by_email"] = actor.email
    meta[f"{prefix}_by_name"] = actor.name
    meta[f"{prefix}_at"] = utcnow().isoformat()
    items[READINESS_META_KEY] = meta
    return items


@router.get("", response_model=list[ReadinessOut])
def list_readiness_reports(
    building: str | None = Query(default=None),
    shift: str | None = Query(default=None),
    report_date: date | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[ReadinessOut]:
    rows = list_scoped(
        _store(db),
        readiness_policy,
        actor,
        {"building": building, "shift": shift, "report_date": report_date},
        _ref,
    )
    out = [_serialize(row, actor) for row in rows]
    if status_filter and status_filter != "ALL":
        out = [report for report in out if report.status == status_filter]
    return out


@router.post("", response_model=ReadinessOut, status_code=status.HTTP_201_CREATED)
def create_readiness_report(
    payload: ReadinessIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> ReadinessOut:
    ensure(readiness_policy.can_create(actor))
    building, shift = resolve_location(readiness_policy, actor, payload.building, payload.shift, shift_required=True)
    report_date = payload.report_date or ny_today()
    _ensure_unique(db, building, shift, report_date)

    items = merge_readiness_items(None, payload.items)
    _stamp(items, actor, "created")
    row = _store(db).insert(
        {
            "building": building,
            "shift": shift,
            "report_date": report_date,
            "items": items,
            **creator_fields(actor),
        }
    )
    return _serialize(row, actor)


@router.patch("/{report_id}", response_model=ReadinessOut)
def update_readiness_report(
    report_id: int,
    payload: ReadinessPatch,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> ReadinessOut:
    store = _store(db)
    row = store.get(report_id)
    ensure(readiness_policy.can_edit(actor, _ref(row)), "Completed readiness reports can no longer be edited.")
    building, shift = resolve_location(
        readiness_policy,
        actor,
        payload.building or row.building,
        payload.shift or row.shift,
        shift_required=True,
    )
    report_date = payload.report_date or row.report_date
    if (building, shift, report_date) != (row.building, row.shift, row.report_date):
        _ensure_unique(db, building, shift, report_date, exclude_id=row.id)

    items = merge_readiness_items(row.items, payload.items)
    _stamp(items, actor, "updated")
    row = store.update(row, {"building": building, "shift": shift, "report_date": report_date, "items": items})
    return _serialize(row, actor)


@router.post("/{report_id}/complete", response_model=ReadinessOut)
def complete_readiness_report(
    report_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> ReadinessOut:
    store = _store(db)
    row = store.get(report_id)
    ensure(readiness_policy.can_edit(actor, _ref(row)), "Completed readiness reports can no longer be edited.")
    items = merge_readiness_items(row.items, None)
    if readiness_status(items) != READINESS_READY:
        raise ValidationError("Every required readiness item must be checked before completing.")

    completed_at = utcnow()
    items["confirmation"][COMPLETED_AT_KEY] = completed_at.isoformat()
    _stamp(items, actor, "completed")
    row = store.update(row, {"items": items, "completed_at": completed_at})
    logger.info("readiness report %s completed by %s", row.id, actor.email)
    return _serialize(row, actor)


@router.delete("/{report_id}")
def delete_readiness_report(
    report_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    store = _store(db)
    row = store.get(report_id)
    ensure(readiness_policy.can_delete(actor, _ref(row)), "Only a Super Admin can delete readiness reports.")
    store.delete(row)
    return {"ok": True}
