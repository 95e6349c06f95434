from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any, Literal, TypeVar
from zoneinfo import ZoneInfo

from pydantic import BaseModel
from sqlalchemy.orm import Session

from pulse.access import AccessPolicy, Actor, Permissions, RecordRef
from pulse.buildings import BUILDINGS
from pulse.errors import AuthorizationError, ValidationError
from pulse.stores import RecordStore

NY_TZ = ZoneInfo("America/New_York")

Building = Literal["DC1", "DC5", "DC11", "DC14", "DC18", "DC301"]
Shift = Literal["1st", "2nd", "3rd", "4th"]

T = TypeVar("T")


class PermissionsOut(BaseModel):
    can_view: bool
    can_edit: bool
    can_delete: bool

    @classmethod
    def from_permissions(cls, permissions: Permissions) -> "PermissionsOut":
        return cls(
            can_view=permissions.can_view,
            can_edit=permissions.can_edit,
            can_delete=permissions.can_delete,
        )


def ny_today() -> date:
    return datetime.now(NY_TZ).date()


def record_ref(row: Any, locked: bool = False) -> RecordRef:
    return RecordRef(
        building=row.building,
        shift=getattr(row, "shift", None),
        created_by_user_id=row.created_by_user_id,
        created_by_email=row.created_by_email,
        locked=locked,
    )


def ensure(allowed: bool, message: str = "Not allowed") -> None:
    if not allowed:
        raise AuthorizationError(message)


def creator_fields(actor: Actor) -> dict[str, Any]:
    return {"created_by_user_id": actor.id, "created_by_email": actor.email}


def require_text(value: str | None, label: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{label} is required.")
    return cleaned


def clean_optional(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def resolve_location(
    policy: AccessPolicy,
    actor: Actor,
    building: str | None,
    shift: str | None,
    shift_required: bool = False,
) -> tuple[str, str | None]:
    scope = policy.scope_for(actor, building, shift)
    if not scope.effective_building:
        raise ValidationError("Building is required.")
    if scope.effective_building not in BUILDINGS:
        raise ValidationError(f"Unknown building {scope.effective_building}.")
    if shift_required and not scope.effective_shift:
        raise ValidationError("Shift is required.")
    return scope.effective_building, scope.effective_shift


def relocate(
    policy: AccessPolicy,
    actor: Actor,
    row: Any,
    building: str | None,
    shift: str | None,
) -> tuple[str, str | None]:
    current_shift = getattr(row, "shift", None)
    return resolve_location(
        policy,
        actor,
        building if building is not None else row.building,
        shift if shift is not None else current_shift,
    )


def check_building_link(db: Session, model: type[Any], record_id: int | None, building: str, label: str) -> None:
    if record_id is None:
        return
    linked = db.get(model, record_id)
    if linked is None:
        raise ValidationError(f"Linked {label} does not exist.")
    if linked.building != building:
        raise ValidationError(f"Linked {label} belongs to a different building.")


def list_scoped(
    store: RecordStore[T],
    policy: AccessPolicy,
    actor: Actor,
    requested: Mapping[str, Any],
    ref: Callable[[T], RecordRef],
) -> list[T]:
    filters = policy.query_filter(actor, requested)
    if filters is None:
        return []
    return policy.visible(actor, store.list(filters), ref)
