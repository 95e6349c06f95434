from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from pulse.access import Actor, container_policy
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
    relocate,
    require_text,
    resolve_location,
)
from pulse.auth import get_actor
from pulse.db import get_db
from pulse.errors import AuthorizationError, ValidationError
from pulse.models import Container, WorkOrder
from pulse.payouts import PayoutSplit, WorkerLine, allocate
from pulse.payscale import container_price
from pulse.stores import RecordStore

router = APIRouter(prefix="/api/containers", tags=["containers"])


class WorkerIn(BaseModel):
    name: str = ""
    minutes_worked: float = Field(default=0, ge=0)
    percent_contribution: float = Field(default=0, ge=0, le=100)


class WorkerOut(WorkerIn):
    payout: float


class QuoteIn(BaseModel):
    pieces_total: int = Field(default=0, ge=0)
    palletized: bool = False
    workers: list[WorkerIn] = Field(default_factory=list)


class QuoteOut(BaseModel):
    pay_total: float
    percent_sum: float
    valid: bool
    error: str | None = None
    workers: list[WorkerOut]


class ContainerIn(BaseModel):
    building: Building | None = None
    shift: Shift = "1st"
    work_date: date | None = None
    container_no: str
    pieces_total: int = Field(ge=0)
    skus_total: int = Field(default=0, ge=0)
    palletized: bool = False
    workers: list[WorkerIn] = Field(default_factory=list)
    work_order_id: int | None = None


class ContainerPatch(BaseModel):
    building: Building | None = None
    shift: Shift | None = None
    work_date: date | None = None
    container_no: str | None = None
    pieces_total: int | None = Field(default=None, ge=0)
    skus_total: int | None = Field(default=None, ge=0)
    palletized: bool | None = None
    workers: list[WorkerIn] | None = None
    work_order_id: int | None = None


class ContainerOut(BaseModel):
    id: int
    building: str
    shift: str | None
    work_date: date
    container_no: str
    pieces_total: int
    skus_total: int
    palletized: bool
    pay_total: float
    workers: list[WorkerOut]
    work_order_id: int | None
    created_by_user_id: int | None
    created_by_email: str | None
    created_at: datetime
    updated_at: datetime
    permissions: PermissionsOut


def _store(db: Session) -> RecordStore[Container]:
    return RecordStore(db, Container, "container")


def _worker_lines(workers: list[WorkerIn] | list[dict]) -> list[WorkerLine]:
    lines = []
    for worker in workers:
        data = worker.model_dump() if isinstance(worker, BaseModel) else worker
        lines.append(
            WorkerLine(
                name=str(data.get("name") or ""),
                minutes_worked=float(data.get("minutes_worked") or 0),
                percent_contribution=float(data.get("percent_contribution") or 0),
            )
        )
    return lines


def price_and_split(pieces_total: int, palletized: bool, workers: list[WorkerIn] | list[dict]) -> PayoutSplit:
    return allocate(container_price(pieces_total, palletized), _worker_lines(workers))


def _check_work_order(db: Session, work_order_id: int | None, building: str) -> None:
    check_building_link(db, WorkOrder, work_order_id, building, "work order")


def serialize_container(row: Container, actor: Actor) -> ContainerOut:
    return ContainerOut(
        id=row.id,
        building=row.building,
        shift=row.shift,
        work_date=row.work_date,
        container_no=row.container_no,
        pieces_total=row.pieces_total,
        skus_total=row.skus_total,
        palletized=row.palletized,
        pay_total=row.pay_total,
        workers=[WorkerOut(**worker) for worker in row.workers or []],
        work_order_id=row.work_order_id,
        created_by_user_id=row.created_by_user_id,
        created_by_email=row.created_by_email,
        created_at=row.created_at,
        updated_at=row.updated_at,
        permissions=PermissionsOut.from_permissions(container_policy.permissions(actor, record_ref(row))),
    )


@router.post("/quote", response_model=QuoteOut)
def quote_container(payload: QuoteIn, _: Actor = Depends(get_actor)) -> QuoteOut:
    split = price_and_split(payload.pieces_total, payload.palletized, payload.workers)
    return QuoteOut(
        pay_total=round(split.container_pay, 2),
        percent_sum=round(split.percent_sum, 4),
        valid=split.is_valid,
        error=split.error,
        workers=[
            WorkerOut(
                name=line.name,
                minutes_worked=line.minutes_worked,
                percent_contribution=line.percent_contribution,
                payout=round(line.payout, 2),
            )
            for line in split.lines
        ],
    )


@router.get("", response_model=list[ContainerOut])
def list_containers(
    building: str | None = Query(default=None),
    shift: str | None = Query(default=None),
    work_date: date | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[ContainerOut]:
    rows = list_scoped(
        _store(db),
        container_policy,
        actor,
        {"building": building, "shift": shift, "work_date": work_date},
        record_ref,
    )
    return [serialize_container(row, actor) for row in rows]


@router.post("", response_model=ContainerOut, status_code=status.HTTP_201_CREATED)
def create_container(
    payload: ContainerIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> ContainerOut:
    if actor.is_lead:
        raise AuthorizationError("Leads log container work through work orders.")
    ensure(container_policy.can_create(actor))
    building, shift = resolve_location(container_policy, actor, payload.building, payload.shift)
    container_no = require_text(payload.container_no, "Container number")
    if payload.pieces_total <= 0 and not payload.palletized:
        raise ValidationError("Pieces total must be greater than 0.")
    _check_work_order(db, payload.work_order_id, building)

    split = price_and_split(payload.pieces_total, payload.palletized, payload.workers)
    split.ensure_valid()

    row = _store(db).insert(
        {
            "building": building,
            "shift": shift,
            "work_date": payload.work_date or ny_today(),
            "container_no": container_no,
            "pieces_total": payload.pieces_total,
            "skus_total": payload.skus_total,
            "palletized": payload.palletized,
            "pay_total": round(split.container_pay, 2),
            "workers": split.persisted_lines(),
            "work_order_id": payload.work_order_id,
            **creator_fields(actor),
        }
    )
    return serialize_container(row, actor)


@router.patch("/{container_id}", response_model=ContainerOut)
def update_container(
    container_id: int,
    payload: ContainerPatch,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> ContainerOut:
    store = _store(db)
    row = store.get(container_id)
    ensure(container_policy.can_edit(actor, record_ref(row)), "You can only edit your own container entries.")

    building, shift = relocate(container_policy, actor, row, payload.building, payload.shift)
    pieces_total = payload.pieces_total if payload.pieces_total is not None else row.pieces_total
    palletized = payload.palletized if payload.palletized is not None else row.palletized
    workers = payload.workers if payload.workers is not None else list(row.workers or [])
    if pieces_total <= 0 and not palletized:
        raise ValidationError("Pieces total must be greater than 0.")

    work_order_id = payload.work_order_id if "work_order_id" in payload.model_fields_set else row.work_order_id
    _check_work_order(db, work_order_id, building)

    split = price_and_split(pieces_total, palletized, workers)
    split.ensure_valid()

    patch = {
        "building": building,
        "shift": shift,
        "pieces_total": pieces_total,
        "palletized": palletized,
        "pay_total": round(split.container_pay, 2),
        "workers": split.persisted_lines(),
        "work_order_id": work_order_id,
    }
    if payload.container_no is not None:
        patch["container_no"] = require_text(payload.container_no, "Container number")
    if payload.work_date is not None:
        patch["work_date"] = payload.work_date
    if payload.skus_total is not None:
        patch["skus_total"] = payload.skus_total
    row = store.update(row, patch)
    return serialize_container(row, actor)


@router.delete("/{container_id}")
def delete_container(
    container_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    store = _store(db)
    row = store.get(container_id)
    ensure(container_policy.can_delete(actor, record_ref(row)), "You can only delete your own container entries.")
    store.delete(row)
    return {"ok": True}
