from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.audit import log_audit, request_meta, snapshot
from app.db import get_db
from app.errors import bad_request, not_found
from app.models import AuditLog, Task, User, UserRole
from app.schemas import UserCreate, UserRead, UserUpdate
from app.security import CurrentUser, hash_password, require_roles

router = APIRouter(tags=["users"])

USER_NOT_FOUND = "Korisnik nije pronađen"
ASSIGNABLE_ROLES = frozenset(role.value for role in UserRole if role is not UserRole.NEWSROOM)

require_user_admin = require_roles(UserRole.ADMIN, message="Samo administrator može upravljati korisnicima")


def _user_read(user: User) -> UserRead:
    item = UserRead.model_validate(user)
    item.newsroom_name = user.newsroom.name if user.newsroom is not None else None
    return item


def _validate_role(role: str) -> str:
    if role not in ASSIGNABLE_ROLES:
        raise bad_request("Neispravna uloga", code="VALIDATION_ERROR")
    return role


@router.get("/api/users")
def list_users(
    _admin: CurrentUser = Depends(require_user_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = db.scalars(select(User).order_by(User.name.asc())).all()
    return {"success": True, "data": [_user_read(row) for row in rows]}


@router.post("/api/users", status_code=201)
def create_user(
    payload: UserCreate,
    request: Request,
    admin: CurrentUser = Depends(require_user_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    username = (payload.username or "").strip()
    name = (payload.name or "").strip()
    if not username or not name or not payload.password or not payload.role:
        raise bad_request("Sva obavezna polja moraju biti popunjena", code="VALIDATION_ERROR")
    role = _validate_role(payload.role)

    existing = db.scalar(select(User).where(User.username == username))
    if existing is not None and existing.is_active:
        raise bad_request("Korisničko ime već postoji", code="DUPLICATE_USERNAME")

    if existing is not None:
        # A deactivated account with the same username is reactivated with the new data.
        user = existing
        user.name = name
        user.password = hash_password(payload.password)
        user.role = role
        user.newsroom_id = payload.newsroom_id
        user.is_active = True
    else:
        user = User(
            username=username,
            name=name,
            password=hash_password(payload.password),
            role=role,
            newsroom_id=payload.newsroom_id,
        )
        db.add(user)
    db.commit()
    db.refresh(user)

    log_audit(
        db,
        user_id=admin.user_id,
        action="CREATE: User created",
        table_name="users",
        record_id=user.id,
        new_data={"username": username, "name": name, "role": role, "newsroom_id": payload.newsroom_id},
        description=f"Kreiran novi korisnik: {name} ({username}) - {role}",
        **request_meta(request),
    )
    return {"success": True, "data": {"id": user.id}, "message": "Korisnik je uspješno kreiran"}


@router.put("/api/users/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    admin: CurrentUser = Depends(require_user_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    user = db.get(User, user_id)
    if user is None:
        raise not_found(USER_NOT_FOUND)

    changes = payload.model_dump(exclude_unset=True)
    old_data = snapshot(user, exclude={"password"})

    username = (changes.get("username") or "").strip()
    if username and username != user.username:
        taken = db.scalar(select(User.id).where(User.username == username, User.id != user.id))
        if taken is not None:
            raise bad_request("Korisničko ime već postoji", code="DUPLICATE_USERNAME")
        user.username = username
    if changes.get("name"):
        user.name = changes["name"].strip()
    if changes.get("password"):
        user.password = hash_password(changes["password"])
    if changes.get("role"):
        user.role = _validate_role(changes["role"])
    if "newsroom_id" in changes:
        user.newsroom_id = changes["newsroom_id"] or None
    if changes.get("is_active") is not None:
        user.is_active = bool(changes["is_active"])
    db.commit()
    db.refresh(user)

    log_audit(
        db,
        user_id=admin.user_id,
        action="UPDATE: User updated",
        table_name="users",
        record_id=user.id,
        old_data=old_data,
        new_data={key: value for key, value in changes.items() if key != "password"},
        description=f"Ažuriran korisnik: {user.name} ({user.username})",
        **request_meta(request),
    )
    return {"success": True, "data": _user_read(user), "message": "Korisnik je uspješno ažuriran"}


@router.delete("/api/users/{user_id}")
def delete_user(
    user_id: int,
    request: Request,
    admin: CurrentUser = Depends(require_user_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    user = db.get(User, user_id)
    if user is None:
        raise not_found(USER_NOT_FOUND)
    if user.id == admin.user_id:
        raise bad_request("Ne možete obrisati sami sebe")

    old_data = snapshot(user, exclude={"password"})
    tasks_created = int(db.scalar(select(func.count()).select_from(Task).where(Task.created_by == user.id)) or 0)
    audit_rows = int(db.scalar(select(func.count()).select_from(AuditLog).where(AuditLog.user_id == user.id)) or 0)

    if tasks_created or audit_rows:
        user.is_active = False
        db.commit()
        log_audit(
            db,
            user_id=admin.user_id,
            action="DELETE: User deactivated",
            table_name="users",
            record_id=user_id,
            old_data=old_data,
            new_data={"is_active": False},
            description=f"Deaktiviran korisnik (ima {tasks_created} zadataka): {user.name} ({user.username})",
            **request_meta(request),
        )
        return {"success": True, "message": f"Korisnik je deaktiviran (ima {tasks_created} zadataka u sistemu)"}

    db.delete(user)
    db.commit()
    log_audit(
        db,
        user_id=admin.user_id,
        action="DELETE: User permanently deleted",
        table_name="users",
        record_id=user_id,
        old_data=old_data,
        description=f"Trajno obrisan korisnik: {old_data['name']} ({old_data['username']}) - {old_data['role']}",
        **request_meta(request),
    )
    return {"success": True, "message": "Korisnik je uspješno trajno obrisan"}
