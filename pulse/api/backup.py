"""Super Admin snapshot export and restore.

A snapshot is ``{"version", "createdAt", "createdBy", "data"}`` where ``data``
maps ``precisionpulse_<entity>`` keys to lists of rows. Restore overwrites only
the keys present in the uploaded snapshot and skips keys it does not know.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field
from sqlalchemy import Date, DateTime, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pulse.auth import get_super_admin_user
from pulse.db import get_db
from pulse.errors import ValidationError
from pulse.models import (
    Candidate,
    ChatMessage,
    Container,
    DamageReport,
    InjuryReport,
    InjuryReportFile,
    ReadinessReport,
    TerminationRecord,
    User,
    WorkforcePerson,
    WorkOrder,
    utcnow,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

SNAPSHOT_VERSION = 1
KEY_PREFIX = "precisionpulse_"

# Parents come before children so restored foreign keys resolve.
BACKUP_TABLES: dict[str, type] = {
    f"{KEY_PREFIX}workforce": WorkforcePerson,
    f"{KEY_PREFIX}work_orders": WorkOrder,
    f"{KEY_PREFIX}containers": Container,
    f"{KEY_PREFIX}hiring_pipeline": Candidate,
    f"{KEY_PREFIX}injury_reports": InjuryReport,
    f"{KEY_PREFIX}injury_report_files": InjuryReportFile,
    f"{KEY_PREFIX}startup_checklists": ReadinessReport,
    f"{KEY_PREFIX}terminations": TerminationRecord,
    f"{KEY_PREFIX}damage_reports": DamageReport,
    f"{KEY_PREFIX}chats": ChatMessage,
}


class Snapshot(BaseModel):
    version: int = SNAPSHOT_VERSION
    createdAt: str | None = None
    createdBy: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class RestorePayload(BaseModel):
    confirm: bool = False
    snapshot: Snapshot


class RestoreResult(BaseModel):
    restored: list[str]
    failed: list[str]
    skipped: list[str]


def dump_rows(db: Session, model: type) -> list[dict[str, Any]]:
    columns = model.__table__.columns.keys()
    rows = db.scalars(select(model).order_by(model.id)).all()
    return [jsonable_encoder({column: getattr(row, column) for column in columns}) for row in rows]


def _coerce(model: type, raw: dict[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for column in model.__table__.columns:
        if column.name not in raw:
            continue
        value = raw[column.name]
        if isinstance(value, str) and isinstance(column.type, DateTime):
            value = datetime.fromisoformat(value)
        elif isinstance(value, str) and isinstance(column.type, Date):
            value = date.fromisoformat(value[:10])
        values[column.name] = value
    return values


def restore_table(db: Session, model: type, rows: list[dict[str, Any]]) -> None:
    db.execute(delete(model))
    for raw in rows:
        db.add(model(**_coerce(model, raw)))
    db.commit()


@router.get("/backup", response_model=Snapshot)
def create_backup(
    admin: User = Depends(get_super_admin_user),
    db: Session = Depends(get_db),
) -> Snapshot:
    data = {key: dump_rows(db, model) for key, model in BACKUP_TABLES.items()}
    logger.info("backup created by %s", admin.email)
    return Snapshot(
        version=SNAPSHOT_VERSION,
        createdAt=utcnow().isoformat(),
        createdBy=admin.email,
        data=data,
    )


@router.post("/restore", response_model=RestoreResult)
def restore_backup(
    payload: RestorePayload,
    admin: User = Depends(get_super_admin_user),
    db: Session = Depends(get_db),
) -> RestoreResult:
    if not payload.confirm:
        raise ValidationError("Restore overwrites existing records; confirm to continue.")
    if payload.snapshot.version != SNAPSHOT_VERSION:
        raise ValidationError(f"Unsupported backup version {payload.snapshot.version}.")

    data = payload.snapshot.data
    restored: list[str] = []
    failed: list[str] = []
    skipped = sorted(key for key in data if key not in BACKUP_TABLES)
    for key, model in BACKUP_TABLES.items():
        rows = data.get(key)
        if rows is None:
            continue
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            failed.append(key)
            continue
        try:
            restore_table(db, model, rows)
        except (SQLAlchemyError, TypeError, ValueError):
            db.rollback()
            logger.exception("restore of %s failed", key)
            failed.append(key)
            continue
        restored.append(key)

    logger.info("restore by %s: restored=%s failed=%s skipped=%s", admin.email, restored, failed, skipped)
    return RestoreResult(restored=restored, failed=failed, skipped=skipped)
