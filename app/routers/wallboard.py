from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import get_db
from app.errors import bad_request, not_found
from app.models import Person, Task, TaskStatus
from app.schemas import TaskStatusRequest
from app.security import CurrentUser, get_current_user
from app.services.dates import normalize_query_date
from app.services.notifications import notify_wallboard_status
from app.services.tasks import TASK_NOT_FOUND

logger = logging.getLogger("app.tasks")

router = APIRouter(tags=["wallboard"])


def _known_names(db: Session, person_ids: list[int] | None) -> list[str]:
    ids = list(person_ids or [])
    if not ids:
        return []
    names = dict(db.execute(select(Person.id, Person.name).where(Person.id.in_(ids))).all())
    return [names[person_id] for person_id in ids if person_id in names]


def _wallboard_row(db: Session, task: Task) -> dict[str, Any]:
    is_completed = task.status == TaskStatus.COMPLETED.value
    return {
        "id": task.id,
        "title": task.title,
        "slugline": task.slugline or "",
        "location": task.location or "",
        "description": task.description or "",
        "date": task.date,
        "time_start": task.time_start or "",
        "time_end": task.time_end or "",
        "status": task.status,
        "flags": list(task.flags or []),
        "coverage_type": task.coverage_type or "",
        "newsroom_id": task.newsroom_id,
        "newsroom_name": task.newsroom.name if task.newsroom else "",
        "journalist_ids": list(task.journalist_ids or []),
        "journalist_names": _known_names(db, task.journalist_ids),
        "cameraman_ids": list(task.cameraman_ids or []),
        "cameraman_name": ", ".join(_known_names(db, task.cameraman_ids)),
        "vehicle_id": task.vehicle_id,
        "vehicle_name": task.vehicle.name if task.vehicle else "",
        "equipment_id": task.equipment_id,
        "confirmed_by_name": task.confirmed_by_name,
        "is_completed": is_completed,
        "completed_at": task.updated_at if is_completed else None,
        "created_at": task.created_at,
        "updated_at": task.updated_at,
    }


def _sort_key(task: Task) -> tuple[int, str, Any, int]:
    return (0 if task.time_start else 1, task.time_start or "", task.created_at, task.id)


@router.get("/api/wallboard/tasks")
def wallboard_tasks(
    date: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    if not date:
        raise bad_request("Datum je obavezan", code="VALIDATION_ERROR")
    day = normalize_query_date(date)
    tasks = sorted(db.scalars(select(Task).where(Task.date == day)).all(), key=_sort_key)
    logger.info("wallboard_tasks_loaded", extra={"date": day, "count": len(tasks)})
    return [_wallboard_row(db, task) for task in tasks]


@router.put("/api/wallboard/tasks/{task_id}/status")
def wallboard_status(
    task_id: int,
    payload: TaskStatusRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if not payload.status:
        raise bad_request("Status je obavezan", code="VALIDATION_ERROR")
    task = db.get(Task, task_id)
    if task is None:
        raise not_found(TASK_NOT_FOUND)

    # The confirming name always comes from the session, never from the body.
    task.status = payload.status
    task.confirmed_by_name = user.name
    db.commit()
    db.refresh(task)

    notify_wallboard_status(db, task, payload.status, confirmed_by_name=user.name)

    logger.info(
        "wallboard_status_updated",
        extra={"task_id": task.id, "status": payload.status, "actor_role": user.role},
    )
    return {"success": True, "message": "Status zadatka je ažuriran"}


@router.put("/api/wallboard/tasks/{task_id}/complete")
def wallboard_complete(task_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    task = db.get(Task, task_id)
    if task is None:
        raise not_found(TASK_NOT_FOUND)
    task.status = TaskStatus.COMPLETED.value
    db.commit()
    return {"success": True, "message": "Zadatak je označen kao završen"}
