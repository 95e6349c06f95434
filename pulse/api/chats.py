from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from pulse.access import BUILDING_MANAGER, SUPER_ADMIN, Actor, chat_policy
from pulse.api.common import (
    Building,
    PermissionsOut,
    Shift,
    creator_fields,
    ensure,
    list_scoped,
    record_ref,
    require_text,
    resolve_location,
)
from pulse.auth import get_actor
from pulse.db import get_db
from pulse.models import ChatMessage
from pulse.stores import RecordStore

router = APIRouter(prefix="/api/chat", tags=["chat"])

Channel = Literal["General", "Shift Ops", "HR", "Safety", "Other"]

MAX_MESSAGE_LENGTH = 2000


class ChatMessageIn(BaseModel):
    building: Building | None = None
    shift: Shift | None = None
    channel: Channel = "General"
    message: str = Field(max_length=MAX_MESSAGE_LENGTH)


class ChatMessageOut(BaseModel):
    id: int
    building: str
    shift: str | None
    channel: str
    message: str
    author_name: str | None
    author_role: str | None
    pinned: bool
    created_by_user_id: int | None
    created_at: datetime
    permissions: PermissionsOut
    can_pin: bool


def _store(db: Session) -> RecordStore[ChatMessage]:
    return RecordStore(db, ChatMessage, "chat message")


def _can_pin(actor: Actor, row: ChatMessage) -> bool:
    if not chat_policy.can_view(actor, record_ref(row)):
        return False
    return actor.role in (SUPER_ADMIN, BUILDING_MANAGER)


def _serialize(row: ChatMessage, actor: Actor) -> ChatMessageOut:
    return ChatMessageOut(
        id=row.id,
        building=row.building,
        shift=row.shift,
        channel=row.channel,
        message=row.message,
        author_name=row.author_name,
        author_role=row.author_role,
        pinned=row.pinned,
        created_by_user_id=row.created_by_user_id,
        created_at=row.created_at,
        permissions=PermissionsOut.from_permissions(chat_policy.permissions(actor, record_ref(row))),
        can_pin=_can_pin(actor, row),
    )


@router.get("", response_model=list[ChatMessageOut])
def list_messages(
    building: str | None = Query(default=None),
    shift: str | None = Query(default=None),
    channel: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[ChatMessageOut]:
    rows = list_scoped(
        _store(db),
        chat_policy,
        actor,
        {"building": building, "shift": shift, "channel": channel},
        record_ref,
    )
    # Pinned messages float to the top, newest first within each group.
    rows.sort(key=lambda row: not row.pinned)
    return [_serialize(row, actor) for row in rows]


@router.post("", response_model=ChatMessageOut, status_code=status.HTTP_201_CREATED)
def post_message(
    payload: ChatMessageIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> ChatMessageOut:
    ensure(chat_policy.can_create(actor))
    building, shift = resolve_location(chat_policy, actor, payload.building, payload.shift)
    row = _store(db).insert(
        {
            "building": building,
            "shift": shift,
            "channel": payload.channel,
            "message": require_text(payload.message, "Message"),
            "author_name": actor.name,
            "author_role": actor.role,
            "pinned": False,
            **creator_fields(actor),
        }
    )
    return _serialize(row, actor)


@router.post("/{message_id}/pin", response_model=ChatMessageOut)
def toggle_pin(
    message_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> ChatMessageOut:
    store = _store(db)
    row = store.get(message_id)
    ensure(_can_pin(actor, row), "Only a Building Manager or Super Admin can pin messages.")
    row = store.update(row, {"pinned": not row.pinned})
    return _serialize(row, actor)


@router.delete("/{message_id}")
def delete_message(
    message_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    store = _store(db)
    row = store.get(message_id)
    ensure(chat_policy.can_delete(actor, record_ref(row)), "Only a Super Admin can delete chat messages.")
    store.delete(row)
    return {"ok": True}
