"""Production pay reports built from the worker lines saved on containers."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from pulse.access import Actor, container_policy
from pulse.api.common import list_scoped, record_ref
from pulse.auth import get_actor
from pulse.buildings import ALL_BUILDINGS
from pulse.db import get_db
from pulse.errors import ValidationError
from pulse.models import Container, WorkforcePerson
from pulse.stores import RecordStore

router = APIRouter(prefix="/api/reports", tags=["reports"])

UNASSIGNED_SHIFT = "Unassigned"


class WorkerPayRow(BaseModel):
    worker_name: str
    role: str | None
    building: str
    total_containers: int
    total_minutes: float
    total_payout: float
    avg_per_container: float


class ShiftPerformanceRow(BaseModel):
    building: str
    shift: str
    total_containers: int
    total_pieces: int
    total_minutes: float
    total_payout: float
    pieces_per_hour: float


class WorkerHistoryLine(BaseModel):
    container_id: int
    work_date: date
    building: str
    shift: str | None
    container_no: str
    palletized: bool
    pieces_total: int
    container_pay_total: float
    minutes_worked: float
    percent_contribution: float
    payout: float
    work_order_id: int | None


class WorkerHistoryOut(BaseModel):
    worker_name: str
    lines: list[WorkerHistoryLine]
    total_containers: int
    total_minutes: float
    total_pieces: int
    total_payout: float


class ReportFilters:
    def __init__(
        self,
        building: str | None = Query(default=None),
        shift: str | None = Query(default=None),
        date_from: date | None = Query(default=None),
        date_to: date | None = Query(default=None),
    ) -> None:
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must be on or before date_to.")
        self.building = building
        self.shift = shift
        self.date_from = date_from
        self.date_to = date_to

    def csv_columns(self) -> list[str]:
        building = self.building if self.building and self.building != ALL_BUILDINGS else "All"
        return [
            building,
            self.date_from.isoformat() if self.date_from else "",
            self.date_to.isoformat() if self.date_to else "",
        ]


def _containers(db: Session, actor: Actor, filters: ReportFilters) -> list[Container]:
    rows = list_scoped(
        RecordStore(db, Container, "container"),
        container_policy,
        actor,
        {"building": filters.building, "shift": filters.shift},
        record_ref,
    )
    return [
        row
        for row in rows
        if (filters.date_from is None or row.work_date >= filters.date_from)
        and (filters.date_to is None or row.work_date <= filters.date_to)
    ]


def _roster_roles(db: Session, buildings: Iterable[str]) -> dict[tuple[str, str], str]:
    stmt = select(WorkforcePerson).where(WorkforcePerson.building.in_(set(buildings)))
    roles: dict[tuple[str, str], str] = {}
    for person in db.scalars(stmt).all():
        if person.job_role:
            roles.setdefault((person.building, person.name.strip().lower()), person.job_role)
    return roles


def worker_pay_rows(containers: Iterable[Container], roles: dict[tuple[str, str], str], search: str | None = None) -> list[WorkerPayRow]:
    grouped: dict[tuple[str, str], dict] = {}
    for container in containers:
        for worker in container.workers or []:
            name = str(worker.get("name") or "").strip()
            if not name:
                continue
            key = (name.lower(), container.building)
            entry = grouped.setdefault(
                key,
                {"worker_name": name, "building": container.building, "containers": 0, "minutes": 0.0, "payout": 0.0},
            )
            entry["containers"] += 1
            entry["minutes"] += float(worker.get("minutes_worked") or 0)
            entry["payout"] += float(worker.get("payout") or 0)

    rows = [
        WorkerPayRow(
            worker_name=entry["worker_name"],
            role=roles.get((building, name_key)),
            building=building,
            total_containers=entry["containers"],
            total_minutes=entry["minutes"],
            total_payout=round(entry["payout"], 2),
            avg_per_container=round(entry["payout"] / entry["containers"], 2),
        )
        for (name_key, building), entry in grouped.items()
    ]
    query = (search or "").strip().lower()
    if query:
        rows = [row for row in rows if query in row.worker_name.lower() or query in (row.role or "").lower()]
    rows.sort(key=lambda row: (-row.total_payout, row.worker_name.lower(), row.building))
    return rows


def shift_performance_rows(containers: Iterable[Container]) -> list[ShiftPerformanceRow]:
    grouped: dict[tuple[str, str], dict] = {}
    for container in containers:
        entry = grouped.setdefault(
            (container.building, container.shift or UNASSIGNED_SHIFT),
            {"containers": 0, "pieces": 0, "minutes": 0.0, "payout": 0.0},
        )
        entry["containers"] += 1
        entry["pieces"] += container.pieces_total or 0
        entry["payout"] += container.pay_total or 0
        entry["minutes"] += sum(float(worker.get("minutes_worked") or 0) for worker in container.workers or [])

    rows = []
    for (building, shift), entry in grouped.items():
        pph = entry["pieces"] * 60 / entry["minutes"] if entry["minutes"] else 0.0
        rows.append(
            ShiftPerformanceRow(
                building=building,
                shift=shift,
                total_containers=entry["containers"],
                total_pieces=entry["pieces"],
                total_minutes=entry["minutes"],
                total_payout=round(entry["payout"], 2),
                pieces_per_hour=round(pph, 2),
            )
        )
    rows.sort(key=lambda row: (row.building, row.shift))
    return rows


def _csv_response(header: list[str], lines: Iterable[list]) -> Response:
    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerow(header)
    for line in lines:
        writer.writerow(line)
    return Response(content=out.getvalue(), media_type="text/csv")


def _worker_pay(db: Session, actor: Actor, filters: ReportFilters, search: str | None) -> list[WorkerPayRow]:
    containers = _containers(db, actor, filters)
    roles = _roster_roles(db, {container.building for container in containers})
    return worker_pay_rows(containers, roles, search)


@router.get("/worker-pay", response_model=list[WorkerPayRow])
def worker_pay_report(
    search: str | None = Query(default=None),
    filters: ReportFilters = Depends(),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[WorkerPayRow]:
    return _worker_pay(db, actor, filters, search)


@router.get("/worker-pay/csv")
def worker_pay_csv(
    search: str | None = Query(default=None),
    filters: ReportFilters = Depends(),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> Response:
    rows = _worker_pay(db, actor, filters, search)
    return _csv_response(
        [
            "Worker Name",
            "Role",
            "Building",
            "Total Containers",
            "Total Minutes",
            "Total Payout",
            "Average $ Per Container",
            "Filter Building",
            "Filter Date From",
            "Filter Date To",
        ],
        (
            [
                row.worker_name,
                row.role or "",
                row.building,
                row.total_containers,
                f"{row.total_minutes:g}",
                f"{row.total_payout:.2f}",
                f"{row.avg_per_container:.2f}",
                *filters.csv_columns(),
            ]
            for row in rows
        ),
    )


@router.get("/shift-performance", response_model=list[ShiftPerformanceRow])
def shift_performance_report(
    filters: ReportFilters = Depends(),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[ShiftPerformanceRow]:
    return shift_performance_rows(_containers(db, actor, filters))


@router.get("/shift-performance/csv")
def shift_performance_csv(
    filters: ReportFilters = Depends(),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> Response:
    rows = shift_performance_rows(_containers(db, actor, filters))
    return _csv_response(
        [
            "Building",
            "Shift",
            "Total Containers",
            "Total Pieces",
            "Total Minutes",
            "Total Payout",
            "Pieces Per Hour",
            "Filter Building",
            "Filter Date From",
            "Filter Date To",
        ],
        (
            [
                row.building,
                row.shift,
                row.total_containers,
                row.total_pieces,
                f"{row.total_minutes:g}",
                f"{row.total_payout:.2f}",
                f"{row.pieces_per_hour:.2f}",
                *filters.csv_columns(),
            ]
            for row in rows
        ),
    )


@router.get("/worker-history", response_model=WorkerHistoryOut)
def worker_history_report(
    name: str = Query(...),
    filters: ReportFilters = Depends(),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> WorkerHistoryOut:
    target = name.strip().lower()
    if not target:
        raise ValidationError("Worker name is required.")

    lines: list[WorkerHistoryLine] = []
    for container in _containers(db, actor, filters):
        match = next(
            (worker for worker in container.workers or [] if str(worker.get("name") or "").strip().lower() == target),
            None,
        )
        if match is None:
            continue
        lines.append(
            WorkerHistoryLine(
                container_id=container.id,
                work_date=container.work_date,
                building=container.building,
                shift=container.shift,
                container_no=container.container_no,
                palletized=container.palletized,
                pieces_total=container.pieces_total,
                container_pay_total=container.pay_total,
                minutes_worked=float(match.get("minutes_worked") or 0),
                percent_contribution=float(match.get("percent_contribution") or 0),
                payout=float(match.get("payout") or 0),
                work_order_id=container.work_order_id,
            )
        )
    lines.sort(key=lambda line: (line.work_date, line.container_id), reverse=True)
    return WorkerHistoryOut(
        worker_name=name.strip(),
        lines=lines,
        total_containers=len(lines),
        total_minutes=sum(line.minutes_worked for line in lines),
        total_pieces=sum(line.pieces_total for line in lines),
        total_payout=round(sum(line.payout for line in lines), 2),
    )
