from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import get_db
from app.errors import bad_request, not_found
from app.models import CoverageType, TaskPreset
from app.schemas import TaskPresetRead, TaskPresetWrite
from app.security import NEWSROOM_ADMIN_ROLES, CurrentUser, get_current_user
from app.services.tasks import normalize_attachment_type

router = APIRouter(tags=["task-presets"])

PRESET_NOT_FOUND = "Predložak zadatka nije pronađen"


def _apply_payload(preset: TaskPreset, payload: TaskPresetWrite, *, newsroom_id: int | None) -> None:
    if not payload.name:
        raise bad_request("Naziv je obavezan", code="VALIDATION_ERROR")
    preset.name = payload.name
    preset.title = payload.title or payload.name
    preset.slugline = payload.slugline or ""
    preset.location = payload.location or ""
    preset.coverage_type = payload.coverage_type or CoverageType.ENG.value
    preset.attachment_type = normalize_attachment_type(payload.attachment_type)
    preset.description = payload.description or ""
    preset.newsroom_id = newsroom_id
    preset.journalist_ids = list(payload.journalist_ids)
    preset.cameraman_ids = list(payload.cameraman_ids)
    preset.vehicle_id = payload.vehicle_id or None
    preset.flags = list(payload.flags)


@router.get("/api/task-presets")
def list_presets(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(TaskPreset).order_by(TaskPreset.name.asc())
    if user.role not in NEWSROOM_ADMIN_ROLES:
        if user.newsroom_id is None:
            return {"success": True, "data": []}
        stmt = stmt.where(TaskPreset.newsroom_id == user.newsroom_id)
    rows = db.scalars(stmt).all()
    return {"success": True, "data": [TaskPresetRead.model_validate(row) for row in rows]}


@router.post("/api/task-presets", status_code=201)
def create_preset(
    payload: TaskPresetWrite,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    newsroom_id = payload.newsroom_id if user.role in NEWSROOM_ADMIN_ROLES else user.newsroom_id
    preset = TaskPreset(created_by=user.id)
    _apply_payload(preset, payload, newsroom_id=newsroom_id)
    db.add(preset)
    db.commit()
    db.refresh(preset)
    return {"success": True, "data": {"id": preset.id}}


@router.put("/api/task-presets/{preset_id}")
def update_preset(
    preset_id: int,
    payload: TaskPresetWrite,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    preset = db.get(TaskPreset, preset_id)
    if preset is None:
        raise not_found(PRESET_NOT_FOUND)
    newsroom_id = payload.newsroom_id if user.role in NEWSROOM_ADMIN_ROLES else user.newsroom_id
    _apply_payload(preset, payload, newsroom_id=newsroom_id or None)
    db.commit()
    db.refresh(preset)
    return {"success": True, "data": TaskPresetRead.model_validate(preset)}


@router.delete("/api/task-presets/{preset_id}")
def delete_preset(
    preset_id: int,
    _user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    preset = db.get(TaskPreset, preset_id)
    if preset is None:
        raise not_found(PRESET_NOT_FOUND)
    db.delete(preset)
    db.commit()
    return {"success": True}
