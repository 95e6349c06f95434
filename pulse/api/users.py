from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pulse.access import ACCESS_ROLES, SUPER_ADMIN, sanitize_role
from pulse.api.auth import UserOut, ensure_password_strength, ensure_valid_email
from pulse.api.common import Building, Shift
from pulse.auth import get_super_admin_user
from pulse.db import get_db
from pulse.models import User
from pulse.security import hash_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["admin"])


class UserCreatePayload(BaseModel):
    email: str
    temporary_password: str
    name: str | None = None
    access_role: str = "Worker / Lumper"
    building: Building | None = None
    shift: Shift | None = None


class UserPatchPayload(BaseModel):
    name: str | None = None
    access_role: str | None = None
    building: Building | None = None
    shift: Shift | None = None
    temporary_password: str | None = None
    is_active: bool | None = None


def _role(raw: str) -> str:
    role = sanitize_role(raw)
    if role.lower() != raw.strip().lower():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown access role. Choose one of: {', '.join(ACCESS_ROLES)}",
        )
    return role


def ensure_active_super_admin_remains(db: Session, target_user: User, next_role: str, next_is_active: bool) -> None:
    if sanitize_role(target_user.access_role) != SUPER_ADMIN or target_user.is_active is False:
        return
    if next_role == SUPER_ADMIN and next_is_active:
        return
    active_count = (
        db.scalar(select(func.count(User.id)).where(User.access_role == SUPER_ADMIN, User.is_active.is_(True))) or 0
    )
    if active_count <= 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="At least one active Super Admin must remain")


@router.get("", response_model=list[UserOut])
def admin_list_users(
    _: User = Depends(get_super_admin_user),
    db: Session = Depends(get_db),
) -> list[UserOut]:
    users = db.scalars(select(User).order_by(User.created_at.asc(), User.id.asc())).all()
    return [UserOut.from_orm_user(user) for user in users]


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def admin_create_user(
    payload: UserCreatePayload,
    admin: User = Depends(get_super_admin_user),
    db: Session = Depends(get_db),
) -> UserOut:
    email = ensure_valid_email(payload.email)
    ensure_password_strength(payload.temporary_password)
    existing = db.scalar(select(User).where(User.email == email))
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")
    user = User(
        email=email,
        name=(payload.name or "").strip() or None,
        password_hash=hash_password(payload.temporary_password),
        access_role=_role(payload.access_role),
        building=payload.building,
        shift=payload.shift,
        is_active=True,
        must_change_password=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("%s created user %s as %s", admin.email, email, user.access_role)
    return UserOut.from_orm_user(user)


@router.patch("/{user_id}", response_model=UserOut)
def admin_patch_user(
    user_id: int,
    payload: UserPatchPayload,
    admin: User = Depends(get_super_admin_user),
    db: Session = Depends(get_db),
) -> UserOut:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    fields = payload.model_fields_set
    if not fields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates were provided")

    next_role = _role(payload.access_role) if payload.access_role is not None else sanitize_role(user.access_role)
    next_is_active = payload.is_active if payload.is_active is not None else user.is_active
    if user.id == admin.id:
        if next_role != sanitize_role(user.access_role):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role")
        if not next_is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot disable your own account")
    ensure_active_super_admin_remains(db, user, next_role, next_is_active)

    user.access_role = next_role
    user.is_active = next_is_active
    if "name" in fields:
        user.name = (payload.name or "").strip() or None
    if "building" in fields:
        user.building = payload.building
    if "shift" in fields:
        user.shift = payload.shift
    if payload.temporary_password:
        ensure_password_strength(payload.temporary_password)
        user.password_hash = hash_password(payload.temporary_password)
        user.must_change_password = user.id != admin.id
    db.add(user)
    db.commit()
    db.refresh(user)
    return UserOut.from_orm_user(user)
