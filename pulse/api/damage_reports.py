from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from pulse.access import Actor, damage_policy
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
from pulse.models import DamageReport
from pulse.stores import RecordStore

router = APIRouter(prefix="/api/damage-reports", tags=["damage-reports"])

DamageType = Literal["Product Damage", "Shortage", "Overage", "Mis-pick", "Pallet / Wrap Issue", "Other"]
Severity = Literal["Minor", "Moderate", "Severe"]
DamageStatus = Literal["Open", "In Review", "Closed"]


class DamageReportIn(BaseModel):
    building: Building | None = None
    shift: Shift | None = None
    container_no: str
    work_order_no: str | None = None
    damage_type: DamageType = "Product Damage"
    severity: Severity = "Minor"
    pieces_damaged: int = Field(default=0, ge=0)
    pieces_total: int = Field(default=0, ge=0)
    rework_percent: float | None = Field(default=None, ge=0, le=100)
    description: str | None = None
    status: DamageStatus = "Open"


class DamageReportPatch(BaseModel):
    building: Building | None = None
    shift: Shift | None = None
    container_no: str | None = None
    work_order_no: str | None = None
    damage_type: DamageType | None = None
    severity: Severity | None = None
    pieces_damaged: int | None = Field(default=None, ge=0)
    pieces_total: int | None = Field(default=None, ge=0)
    rework_percent: float | None = Field(default=None, ge=0, le=100)
    description: str | None = None
    status: DamageStatus | None = None


class DamageReportOut(BaseModel):
    id: int
    building: str
    shift: str | None
    container_no: str
    work_order_no: str | None
    damage_type: str
    severity: str
    pieces_damaged: int
    pieces_total: int
    damage_percent: float
    rework_percent: float | None
    description: str | None
    reporter_name: str | None
    status: str
    created_by_user_id: int | None
    created_by_email: str | None
    created_at: datetime
    updated_at: datetime
    permissions: PermissionsOut


def damage_percent(pieces_damaged: int, pieces_total: int) -> float:
    if pieces_total <= 0:
        return 0.0
    return round(pieces_damaged / pieces_total * 100, 2)


def _check_counts(pieces_damaged: int, pieces_total: int) -> None:
    if pieces_total > 0 and pieces_damaged > pieces_total:
        raise ValidationError("Damaged pieces cannot exceed total pieces.")


def _store(db: Session) -> RecordStore[DamageReport]:
    return RecordStore(db, DamageReport, "damage report")


def _serialize(row: DamageReport, actor: Actor) -> DamageReportOut:
    return DamageReportOut(
        id=row.id,
        building=row.building,
        shift=row.shift,
        container_no=row.container_no,
        work_order_no=row.work_order_no,
        damage_type=row.damage_type,
        severity=row.severity,
        pieces_damaged=row.pieces_damaged,
        pieces_total=row.pieces_total,
        damage_percent=row.damage_percent,
        rework_percent=row.rework_percent,
        description=row.description,
        reporter_name=row.reporter_name,
        status=row.status,
        created_by_user_id=row.created_by_user_id,
        created_by_email=row.created_by_email,
        created_at=row.created_at,
        updated_at=row.updated_at,
        permissions=PermissionsOut.from_permissions(damage_policy.permissions(actor, record_ref(row))),
    )


@router.get("", response_model=list[DamageReportOut])
def list_damage_reports(
    building: str | None = Query(default=None),
    shift: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[DamageReportOut]:
    rows = list_scoped(
        _store(db),
        damage_policy,
        actor,
        {"building": building, "shift": shift, "status": status_filter},
        record_ref,
    )
    return [_serialize(row, actor) for row in rows]


@router.post("", response_model=DamageReportOut, status_code=status.HTTP_201_CREATED)
def create_damage_report(
    payload: DamageReportIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> DamageReportOut:
    ensure(damage_policy.can_create(actor))
    building, shift = resolve_location(damage_policy, actor, payload.building, payload.shift)
    _check_counts(payload.pieces_damaged, payload.pieces_total)
    row = _store(db).insert(
        {
            "building": building,
            "shift": shift,
            "container_no": require_text(payload.container_no, "Container number"),
            "work_order_no": clean_optional(payload.work_order_no),
            "damage_type": payload.damage_type,
            "severity": payload.severity,
            "pieces_damaged": payload.pieces_damaged,
            "pieces_total": payload.pieces_total,
            "damage_percent": damage_percent(payload.pieces_damaged, payload.pieces_total),
            "rework_percent": payload.rework_percent,
            "description": clean_optional(payload.description),
            "reporter_name": actor.name,
            "status": payload.status,
            **creator_fields(actor),
        }
    )
    return _serialize(row, actor)


@router.patch("/{report_id}", response_model=DamageReportOut)
def update_damage_report(
    report_id: int,
    payload: DamageReportPatch,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> DamageReportOut:
    store = _store(db)
    row = store.get(report_id)
    ensure(damage_policy.can_edit(actor, record_ref(row)))
    building, shift = relocate(damage_policy, actor, row, payload.building, payload.shift)
    fields = payload.model_fields_set
    pieces_damaged = payload.pieces_damaged if payload.pieces_damaged is not None else row.pieces_damaged
    pieces_total = payload.pieces_total if payload.pieces_total is not None else row.pieces_total
    _check_counts(pieces_damaged, pieces_total)

    patch = {
        "building": building,
        "shift": shift,
        "pieces_damaged": pieces_damaged,
        "pieces_total": pieces_total,
        "damage_percent": damage_percent(pieces_damaged, pieces_total),
    }
    if payload.container_no is not None:
        patch["container_no"] = require_text(payload.container_no, "Container number")
    for key in ("damage_type", "severity", "status"):
        value = getattr(payload, key)
        if value is not None:
            patch[key] = value
    for key in ("work_order_no", "description"):
        if key in fields:
            patch[key] = clean_optional(getattr(payload, key))
    if "rework_percent" in fields:
        patch["rework_percent"] = payload.rework_percent
    row = store.update(row, patch)
    return _serialize(row, actor)


@router.delete("/{report_id}")
def delete_damage_report(
    report_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    store = _store(db)
    row = store.get(report_id)
    ensure(damage_policy.can_delete(actor, record_ref(row)))
    store.delete(row)
    return {"ok": True}
