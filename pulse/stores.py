from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pulse.errors import BackendError, NotFoundError

logger = logging.getLogger(__name__)

M = TypeVar("M")


class RecordStore(Generic[M]):
    """Thin CRUD facade over one table.

    Lists are newest-first. Database failures surface as ``BackendError`` after
    the session is rolled back.
    """

    def __init__(self, db: Session, model: type[M], label: str) -> None:
        self.db = db
        self.model = model
        self.label = label

    def _columns(self) -> set[str]:
        return set(self.model.__table__.columns.keys())

    def _fail(self, action: str, exc: SQLAlchemyError) -> BackendError:
        self.db.rollback()
        logger.exception("%s %s failed", action, self.label)
        return BackendError(f"Failed to {action} {self.label}: {exc.__class__.__name__}")

    def list(self, filters: Mapping[str, Any] | None = None) -> list[M]:
        columns = self._columns()
        stmt = select(self.model)
        for key, value in (filters or {}).items():
            if key in columns:
                stmt = stmt.where(getattr(self.model, key) == value)
        stmt = stmt.order_by(self.model.created_at.desc(), self.model.id.desc())
        try:
            return list(self.db.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise self._fail("load", exc) from exc

    def find(self, record_id: int) -> M | None:
        try:
            return self.db.get(self.model, record_id)
        except SQLAlchemyError as exc:
            raise self._fail("load", exc) from exc

    def get(self, record_id: int) -> M:
        record = self.find(record_id)
        if record is None:
            raise NotFoundError(f"{self.label.capitalize()} not found")
        return record

    def insert(self, fields: Mapping[str, Any]) -> M:
        record = self.model(**fields)
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as exc:
            raise self._fail("save", exc) from exc
        return record

    def update(self, record: M, patch: Mapping[str, Any]) -> M:
        columns = self._columns()
        for key, value in patch.items():
            if key in columns:
                setattr(record, key, value)
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as exc:
            raise self._fail("save", exc) from exc
        return record

    def delete(self, record: M, unlink: Sequence[Any] = ()) -> None:
        """Delete ``record``, clearing each foreign key column in ``unlink`` that points at it."""
        try:
            for column in unlink:
                self.db.execute(update(column.class_).where(column == record.id).values({column: None}))
            self.db.delete(record)
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete", exc) from exc
