"""Status values and status derivation for the workflow-driven records.

Readiness and termination status are never stored; they are derived from the
checklist flags every time a row is read.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

WORKFORCE_STATUSES = ("Active", "On Leave", "Terminated", "Candidate")
RATE_TYPES = ("Hourly", "Production", "None")
CANDIDATE_STAGES = ("Applied", "Phone Screen", "Onsite", "Offer", "Hired", "Rejected")
WORK_ORDER_STATUSES = ("Pending", "Active", "Completed", "Locked")
DAMAGE_STATUSES = ("Open", "In Review", "Closed")
DAMAGE_TYPES = ("Product Damage", "Shortage", "Overage", "Mis-pick", "Pallet / Wrap Issue", "Other")
DAMAGE_SEVERITIES = ("Minor", "Moderate", "Severe")
CHAT_CHANNELS = ("General", "Shift Ops", "HR", "Safety", "Other")

INJURY_DRAFT = "Draft"
INJURY_SUBMITTED = "Submitted"
INJURY_CLOSED = "Closed"
INJURY_STATUSES = (INJURY_DRAFT, INJURY_SUBMITTED, INJURY_CLOSED)

INJURY_REQUIRED_FIELDS: dict[str, str] = {
    "building": "Building",
    "work_date": "Work date",
    "employee_name": "Employee name",
    "incident_datetime": "Incident date/time",
    "incident_location": "Incident location",
    "incident_type": "Incident type",
    "body_part": "Body part",
    "injury_description": "Injury description",
    "immediate_actions": "Immediate actions taken",
}


def missing_injury_fields(values: Mapping[str, Any]) -> list[str]:
    missing = []
    for field_name, label in INJURY_REQUIRED_FIELDS.items():
        value = values.get(field_name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(label)
    return missing


def is_injury_locked(status: str | None) -> bool:
    return (status or INJURY_DRAFT) != INJURY_DRAFT


def is_work_order_locked(status: str | None) -> bool:
    return status == "Locked"


# Readiness reports -----------------------------------------------------------

READINESS_DRAFT = "Draft"
READINESS_IN_PROGRESS = "In Progress"
READINESS_READY = "Ready"
READINESS_COMPLETED = "Completed"
READINESS_STATUSES = (READINESS_DRAFT, READINESS_IN_PROGRESS, READINESS_READY, READINESS_COMPLETED)

READINESS_SECTIONS: dict[str, tuple[str, ...]] = {
    "staffing": ("headcount_confirmed", "leads_assigned", "call_outs_covered"),
    "safety": ("safety_talk_completed", "ppe_verified", "first_aid_kit_checked"),
    "facility": ("dock_aisles_clear", "lighting_ok", "trash_staged"),
    "equipment": ("equipment_checked", "forklift_inspections_done", "scanners_charged"),
    "plan": ("goals_reviewed", "container_plan_posted"),
    "communication": ("broadcast_sent", "handoff_notes_reviewed"),
    "confirmation": ("lead_confirmed",),
}

READY_REQUIRED: tuple[tuple[str, str], ...] = (
    ("staffing", "headcount_confirmed"),
    ("staffing", "leads_assigned"),
    ("safety", "safety_talk_completed"),
    ("safety", "ppe_verified"),
    ("facility", "dock_aisles_clear"),
    ("equipment", "equipment_checked"),
    ("plan", "goals_reviewed"),
    ("communication", "broadcast_sent"),
    ("confirmation", "lead_confirmed"),
)

READINESS_META_KEY = "_meta"
COMPLETED_AT_KEY = "completed_at"


def default_readiness_items() -> dict[str, Any]:
    items: dict[str, Any] = {section: {flag: False for flag in flags} for section, flags in READINESS_SECTIONS.items()}
    items["confirmation"][COMPLETED_AT_KEY] = None
    items[READINESS_META_KEY] = {}
    return items


def merge_readiness_items(existing: Mapping[str, Any] | None, patch: Mapping[str, Any] | None) -> dict[str, Any]:
    merged = default_readiness_items()
    for source in (existing or {}, patch or {}):
        for section, flags in READINESS_SECTIONS.items():
            values = source.get(section)
            if not isinstance(values, Mapping):
                continue
            for flag in flags:
                if flag in values:
                    merged[section][flag] = bool(values[flag])
    confirmation = (existing or {}).get("confirmation")
    if isinstance(confirmation, Mapping):
        merged["confirmation"][COMPLETED_AT_KEY] = confirmation.get(COMPLETED_AT_KEY)
    meta = (existing or {}).get(READINESS_META_KEY)
    if isinstance(meta, Mapping):
        merged[READINESS_META_KEY] = dict(meta)
    return merged


def readiness_progress(items: Mapping[str, Any]) -> tuple[int, int]:
    done = 0
    total = 0
    for section, flags in READINESS_SECTIONS.items():
        values = items.get(section) or {}
        for flag in flags:
            total += 1
            if values.get(flag) is True:
                done += 1
    return done, total


def readiness_completed_at(items: Mapping[str, Any]) -> str | None:
    confirmation = items.get("confirmation") or {}
    return confirmation.get(COMPLETED_AT_KEY) or None


def readiness_status(items: Mapping[str, Any]) -> str:
    if readiness_completed_at(items):
        return READINESS_COMPLETED
    if all((items.get(section) or {}).get(flag) is True for section, flag in READY_REQUIRED):
        return READINESS_READY
    done, _ = readiness_progress(items)
    if done > 0:
        return READINESS_IN_PROGRESS
    return READINESS_DRAFT


def is_readiness_locked(items: Mapping[str, Any]) -> bool:
    return readiness_completed_at(items) is not None


# Terminations ----------------------------------------------------------------

TERMINATION_IN_PROGRESS = "In Progress"
TERMINATION_COMPLETED = "Completed"

TERMINATION_CHECKLISTS: dict[str, tuple[str, ...]] = {
    "standard": ("equipment_collected", "badge_collected", "exit_interview", "payroll_updated"),
    "extended": (
        "equipment_collected",
        "badge_collected",
        "exit_interview",
        "payroll_updated",
        "system_access_revoked",
        "final_pay_confirmed",
        "hr_file_closed",
    ),
}


def merge_termination_checklist(
    variant: str,
    existing: Mapping[str, Any] | None,
    patch: Mapping[str, Any] | None,
) -> dict[str, bool]:
    items = TERMINATION_CHECKLISTS[variant]
    merged = {item: False for item in items}
    for source in (existing or {}, patch or {}):
        for item in items:
            if item in source:
                merged[item] = bool(source[item])
    return merged


def termination_status(checklist: Mapping[str, Any]) -> str:
    if checklist and all(bool(value) for value in checklist.values()):
        return TERMINATION_COMPLETED
    return TERMINATION_IN_PROGRESS


def is_termination_locked(checklist: Mapping[str, Any]) -> bool:
    return termination_status(checklist) == TERMINATION_COMPLETED
