from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.db import get_db
from app.errors import bad_request, not_found
from app.models import Permission, Role, RolePermission, UserRole
from app.schemas import PermissionRead, PermissionWrite, RoleRead, RoleWrite
from app.security import CurrentUser, get_current_user, require_roles

router = APIRouter(tags=["roles"])

ROLE_NOT_FOUND = "Uloga nije pronađena"
PERMISSION_NOT_FOUND = "Dozvola nije pronađena"

require_role_admin = require_roles(UserRole.ADMIN, message="Nemate dozvolu za upravljanje ulogama")


def _replace_role_permissions(db: Session, role: Role, permission_ids: list[int]) -> None:
    known = set(db.scalars(select(Permission.id).where(Permission.id.in_(permission_ids))).all())
    unknown = sorted(set(permission_ids) - known)
    if unknown:
        raise bad_request(f"Nepoznate dozvole: {', '.join(str(item) for item in unknown)}", code="VALIDATION_ERROR")
    db.execute(delete(RolePermission).where(RolePermission.role_id == role.id))
    for permission_id in dict.fromkeys(permission_ids):
        db.add(RolePermission(role_id=role.id, permission_id=permission_id))


@router.get("/api/roles")
def list_roles(
    _user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = db.scalars(select(Role).order_by(Role.name.asc())).all()
    return {"success": True, "data": [RoleRead.model_validate(row) for row in rows]}


@router.get("/api/roles/{role_name}/permissions")
def list_role_permissions(
    role_name: str,
    _user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    role = db.scalar(select(Role).where(Role.name == role_name))
    if role is None:
        raise not_found(ROLE_NOT_FOUND)
    names = db.scalars(
        select(Permission.name)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .where(RolePermission.role_id == role.id)
        .order_by(Permission.category.asc(), Permission.name.asc())
    ).all()
    return {"success": True, "data": list(names)}


@router.post("/api/roles", status_code=201)
def create_role(
    payload: RoleWrite,
    _admin: CurrentUser = Depends(require_role_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if not payload.name:
        raise bad_request("Naziv uloge je obavezan", code="VALIDATION_ERROR")
    if db.scalar(select(Role.id).where(Role.name == payload.name)) is not None:
        raise bad_request("Uloga sa ovim nazivom već postoji", code="DUPLICATE_ROLE")

    role = Role(name=payload.name, description=payload.description or "")
    db.add(role)
    db.flush()
    if payload.permissions:
        _replace_role_permissions(db, role, payload.permissions)
    db.commit()
    db.refresh(role)
    return {"success": True, "data": RoleRead.model_validate(role)}


@router.put("/api/roles/{role_id}")
def update_role(
    role_id: int,
    payload: RoleWrite,
    _admin: CurrentUser = Depends(require_role_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if not payload.name:
        raise bad_request("Naziv uloge je obavezan", code="VALIDATION_ERROR")
    role = db.get(Role, role_id)
    if role is None:
        raise not_found(ROLE_NOT_FOUND)

    role.name = payload.name
    role.description = payload.description or ""
    if payload.permissions is not None:
        _replace_role_permissions(db, role, payload.permissions)
    db.commit()
    db.refresh(role)
    return {"success": True, "data": RoleRead.model_validate(role)}


@router.delete("/api/roles/{role_id}")
def delete_role(
    role_id: int,
    _admin: CurrentUser = Depends(require_role_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    role = db.get(Role, role_id)
    if role is None:
        raise not_found(ROLE_NOT_FOUND)
    db.delete(role)
    db.commit()
    return {"success": True}


@router.get("/api/permissions")
def list_permissions(
    _user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = db.scalars(select(Permission).order_by(Permission.category.asc(), Permission.name.asc())).all()
    return {"success": True, "data": [PermissionRead.model_validate(row) for row in rows]}


@router.post("/api/permissions", status_code=201)
def create_permission(
    payload: PermissionWrite,
    _admin: CurrentUser = Depends(require_role_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if not payload.name or not payload.description:
        raise bad_request("Naziv i opis dozvole su obavezni", code="VALIDATION_ERROR")
    if db.scalar(select(Permission.id).where(Permission.name == payload.name)) is not None:
        raise bad_request("Dozvola sa ovim nazivom već postoji", code="DUPLICATE_PERMISSION")

    permission = Permission(
        name=payload.name,
        description=payload.description,
        category=payload.category or "General",
    )
    db.add(permission)
    db.commit()
    db.refresh(permission)
    return {"success": True, "data": PermissionRead.model_validate(permission)}


@router.put("/api/permissions/{permission_id}")
def update_permission(
    permission_id: int,
    payload: PermissionWrite,
    _admin: CurrentUser = Depends(require_role_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if not payload.name or not payload.description:
        raise bad_request("Naziv i opis dozvole su obavezni", code="VALIDATION_ERROR")
    permission = db.get(Permission, permission_id)
    if permission is None:
        raise not_found(PERMISSION_NOT_FOUND)

    permission.name = payload.name
    permission.description = payload.description
    permission.category = payload.category or "General"
    db.commit()
    db.refresh(permission)
    return {"success": True, "data": PermissionRead.model_validate(permission)}


@router.delete("/api/permissions/{permission_id}")
def delete_permission(
    permission_id: int,
    _admin: CurrentUser = Depends(require_role_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    permission = db.get(Permission, permission_id)
    if permission is None:
        raise not_found(PERMISSION_NOT_FOUND)
    db.delete(permission)
    db.commit()
    return {"success": True}
