"""Role, building and shift scoped access rules shared by every record type.

The policy only answers questions; it never raises. Route handlers turn a
denial into ``AuthorizationError`` before anything is written.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from pulse.buildings import ALL_BUILDINGS

SUPER_ADMIN = "Super Admin"
DIRECTOR_OF_OPERATIONS = "Director of Operations"
REGIONAL_MANAGER = "Regional Manager"
BUILDING_MANAGER = "Building Manager"
HR = "HR"
LEAD = "Lead"
WORKER = "Worker / Lumper"
OTHER = "Other"

ACCESS_ROLES = (
    SUPER_ADMIN,
    DIRECTOR_OF_OPERATIONS,
    REGIONAL_MANAGER,
    BUILDING_MANAGER,
    HR,
    LEAD,
    WORKER,
    OTHER,
)

OFFICE_ROLES = frozenset({DIRECTOR_OF_OPERATIONS, REGIONAL_MANAGER, HR})
MANAGEMENT_ROLES = frozenset({SUPER_ADMIN, BUILDING_MANAGER, LEAD}) | OFFICE_ROLES
BUILDING_SCOPED_ROLES = frozenset({BUILDING_MANAGER, LEAD})

_ROLE_ALIASES = {
    "worker": WORKER,
    "lumper": WORKER,
    "worker/lumper": WORKER,
}

T = TypeVar("T")


def sanitize_role(raw: str | None) -> str:
    if not raw or not isinstance(raw, str):
        return WORKER
    cleaned = raw.strip().lower()
    for role in ACCESS_ROLES:
        if role.lower() == cleaned:
            return role
    return _ROLE_ALIASES.get(cleaned.replace(" ", ""), WORKER)


@dataclass(frozen=True)
class Capabilities:
    can_view_all_buildings: bool
    can_close_injury_reports: bool
    can_manage_users: bool


def capabilities_for(role: str) -> Capabilities:
    return Capabilities(
        can_view_all_buildings=role == SUPER_ADMIN or role in OFFICE_ROLES,
        can_close_injury_reports=role in (SUPER_ADMIN, HR, DIRECTOR_OF_OPERATIONS),
        can_manage_users=role == SUPER_ADMIN,
    )


@dataclass(frozen=True)
class Actor:
    id: int
    email: str
    role: str
    building: str | None = None
    shift: str | None = None
    name: str = ""

    @property
    def capabilities(self) -> Capabilities:
        return capabilities_for(self.role)

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN

    @property
    def is_lead(self) -> bool:
        return self.role == LEAD


@dataclass(frozen=True)
class RecordRef:
    building: str | None
    shift: str | None = None
    created_by_user_id: int | None = None
    created_by_email: str | None = None
    locked: bool = False


@dataclass(frozen=True)
class Permissions:
    can_view: bool
    can_edit: bool
    can_delete: bool


@dataclass(frozen=True)
class Scope:
    effective_building: str | None
    effective_shift: str | None
    building_locked: bool
    shift_locked: bool


@dataclass(frozen=True)
class EntityRules:
    name: str
    create_roles: frozenset[str]
    lead_can_edit: bool = True
    lead_owns_records: bool = True
    lead_shift_scoped: bool = False
    lead_sees_own_only: bool = False
    delete_super_admin_only: bool = False


def is_creator(actor: Actor, record: RecordRef) -> bool:
    if record.created_by_user_id is not None and record.created_by_user_id == actor.id:
        return True
    if record.created_by_email and actor.email:
        return record.created_by_email.strip().lower() == actor.email.strip().lower()
    return False


class AccessPolicy:
    def __init__(self, rules: EntityRules) -> None:
        self.rules = rules

    def can_create(self, actor: Actor) -> bool:
        if actor.role not in self.rules.create_roles:
            return False
        if actor.role in BUILDING_SCOPED_ROLES and not actor.building:
            return False
        return True

    def can_view(self, actor: Actor, record: RecordRef) -> bool:
        if actor.role not in MANAGEMENT_ROLES:
            return False
        if actor.capabilities.can_view_all_buildings:
            return True
        if not actor.building or record.building != actor.building:
            return False
        if actor.role == BUILDING_MANAGER:
            return True
        if self.rules.lead_shift_scoped and actor.shift and record.shift != actor.shift:
            return False
        if self.rules.lead_sees_own_only and not is_creator(actor, record):
            return False
        return True

    def can_edit(self, actor: Actor, record: RecordRef) -> bool:
        if not self.can_view(actor, record):
            return False
        if actor.role in (SUPER_ADMIN, BUILDING_MANAGER):
            return True
        if actor.role == LEAD:
            if not self.rules.lead_can_edit:
                return False
            if self.rules.lead_owns_records and not is_creator(actor, record):
                return False
            return not record.locked
        # Office roles that may create a record may keep editing their own until it locks.
        if actor.role not in self.rules.create_roles:
            return False
        return is_creator(actor, record) and not record.locked

    def can_delete(self, actor: Actor, record: RecordRef) -> bool:
        if self.rules.delete_super_admin_only:
            return actor.is_super_admin
        return self.can_edit(actor, record)

    def permissions(self, actor: Actor, record: RecordRef) -> Permissions:
        return Permissions(
            can_view=self.can_view(actor, record),
            can_edit=self.can_edit(actor, record),
            can_delete=self.can_delete(actor, record),
        )

    def scope_for(self, actor: Actor, intended_building: str | None, intended_shift: str | None = None) -> Scope:
        if actor.role == BUILDING_MANAGER:
            return Scope(actor.building, intended_shift, building_locked=True, shift_locked=False)
        if actor.role == LEAD:
            shift_locked = actor.shift is not None
            return Scope(
                actor.building,
                actor.shift if shift_locked else intended_shift,
                building_locked=True,
                shift_locked=shift_locked,
            )
        if actor.role in MANAGEMENT_ROLES:
            return Scope(intended_building, intended_shift, building_locked=False, shift_locked=False)
        return Scope(actor.building, actor.shift, building_locked=True, shift_locked=True)

    def forced_filter(self, actor: Actor) -> dict[str, str] | None:
        """Filter every list query must carry; None means the actor sees nothing."""
        if actor.role not in MANAGEMENT_ROLES:
            return None
        if actor.capabilities.can_view_all_buildings:
            return {}
        if not actor.building:
            return None
        forced = {"building": actor.building}
        if actor.role == LEAD and self.rules.lead_shift_scoped and actor.shift:
            forced["shift"] = actor.shift
        return forced

    def query_filter(self, actor: Actor, requested: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        forced = self.forced_filter(actor)
        if forced is None:
            return None
        merged = {key: value for key, value in (requested or {}).items() if value not in (None, "", ALL_BUILDINGS)}
        merged.update(forced)
        return merged

    def visible(self, actor: Actor, rows: Iterable[T], ref: Callable[[T], RecordRef]) -> list[T]:
        return [row for row in rows if self.can_view(actor, ref(row))]


CONTAINERS = EntityRules("containers", create_roles=frozenset({SUPER_ADMIN, BUILDING_MANAGER}))
WORK_ORDERS = EntityRules("work_orders", create_roles=frozenset({SUPER_ADMIN, BUILDING_MANAGER, LEAD}))
WORKFORCE = EntityRules(
    "workforce",
    create_roles=frozenset({SUPER_ADMIN, BUILDING_MANAGER}),
    lead_can_edit=False,
)
HIRING = EntityRules(
    "hiring_candidates",
    create_roles=frozenset({SUPER_ADMIN, BUILDING_MANAGER, LEAD}),
    lead_owns_records=False,
)
INJURY_REPORTS = EntityRules("injury_reports", create_roles=MANAGEMENT_ROLES)
READINESS = EntityRules(
    "readiness_reports",
    create_roles=frozenset({SUPER_ADMIN, BUILDING_MANAGER, LEAD}),
    lead_shift_scoped=True,
    lead_sees_own_only=True,
    delete_super_admin_only=True,
)
TERMINATIONS = EntityRules("terminations", create_roles=frozenset({SUPER_ADMIN, BUILDING_MANAGER, LEAD}))
DAMAGE_REPORTS = EntityRules(
    "damage_reports",
    create_roles=frozenset({SUPER_ADMIN, BUILDING_MANAGER, LEAD}),
    lead_owns_records=False,
)
CHAT = EntityRules(
    "chat_messages",
    create_roles=MANAGEMENT_ROLES,
    lead_can_edit=False,
    delete_super_admin_only=True,
)

container_policy = AccessPolicy(CONTAINERS)
work_order_policy = AccessPolicy(WORK_ORDERS)
workforce_policy = AccessPolicy(WORKFORCE)
hiring_policy = AccessPolicy(HIRING)
injury_policy = AccessPolicy(INJURY_REPORTS)
readiness_policy = AccessPolicy(READINESS)
termination_policy = AccessPolicy(TERMINATIONS)
damage_policy = AccessPolicy(DAMAGE_REPORTS)
chat_policy = AccessPolicy(CHAT)
