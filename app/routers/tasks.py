from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Path, Query, Request, Response
from sqlalchemy.orm import Session

from app.audit import log_audit, request_meta
from app.db import get_db
from app.schemas import AssignCameraRequest, TaskStatusRequest, TaskWrite
from app.security import CurrentUser, get_current_user
from app.services import tasks as task_service
from app.services.exports import build_daily_tasks_xlsx_bytes

router = APIRouter(tags=["tasks"])


@router.get("/api/tasks")
def list_tasks(
    date: str | None = Query(default=None),
    status: str | None = Query(default=None),
    coverage_type: str | None = Query(default=None),
    newsroom_id: int | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = task_service.list_tasks(
        db,
        user,
        date=date,
        status=status,
        coverage_type=coverage_type,
        newsroom_id=newsroom_id,
    )
    return {"success": True, "data": [task_service.serialize_task(task) for task in rows]}


@router.get("/api/tasks/export/{day}")
def export_tasks(
    request: Request,
    day: str = Path(pattern=r"^\d{4}-\d{2}-\d{2}$"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    rows = task_service.list_tasks(db, user, date=day)
    content = build_daily_tasks_xlsx_bytes(db, day=day, tasks=rows)
    log_audit(
        db,
        user_id=user.user_id,
        action="EXPORT: Tasks",
        table_name="tasks",
        description=f"Izvoz zadataka za {day} ({len(rows)} zadataka)",
        **request_meta(request),
    )
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="zadaci-{day}.xlsx"'},
    )


@router.get("/api/tasks/{task_id}")
def get_task(
    task_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    task = task_service.get_task_for_user(db, user, task_id)
    return {"success": True, "data": task_service.serialize_task(task)}


@router.post("/api/tasks", status_code=201)
def create_task(
    payload: TaskWrite,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    task = task_service.create_task(db, user, payload, meta=request_meta(request))
    return {
        "success": True,
        "data": task_service.serialize_task(task),
        "message": "Zadatak je uspješno kreiran",
    }


@router.put("/api/tasks/{task_id}")
def update_task(
    task_id: int,
    payload: TaskWrite,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    task = task_service.update_task(db, user, task_id, payload, meta=request_meta(request))
    return {
        "success": True,
        "data": task_service.serialize_task(task),
        "message": "Zadatak je uspješno ažuriran",
    }


@router.delete("/api/tasks/{task_id}")
def delete_task(
    task_id: int,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    task_service.delete_task(db, user, task_id, meta=request_meta(request))
    return {"success": True, "message": "Zadatak je uspješno obrisan"}


@router.post("/api/tasks/{task_id}/mark-done")
def mark_task_done(
    task_id: int,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    task = task_service.mark_task_done(db, user, task_id, meta=request_meta(request))
    return {"success": True, "data": task_service.serialize_task(task), "message": "Zadatak je označen kao urađen"}


@router.post("/api/tasks/{task_id}/assign-camera")
def assign_camera(
    task_id: int,
    payload: AssignCameraRequest,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    task = task_service.assign_camera(db, user, task_id, payload.cameraman_id, meta=request_meta(request))
    return {"success": True, "data": task_service.serialize_task(task), "message": "Kamerman je dodijeljen"}


@router.post("/api/tasks/{task_id}/confirm-recorded")
def confirm_recorded(
    task_id: int,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    task = task_service.confirm_recorded(db, user, task_id, meta=request_meta(request))
    return {"success": True, "data": task_service.serialize_task(task), "message": "Snimanje je potvrđeno"}


@router.put("/api/tasks/{task_id}/status")
def update_task_status(
    task_id: int,
    payload: TaskStatusRequest,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    task = task_service.update_task_status(db, user, task_id, payload.status, meta=request_meta(request))
    return {"success": True, "data": task_service.serialize_task(task), "message": "Status je ažuriran"}
