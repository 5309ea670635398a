from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.audit import log_audit, snapshot
from app.errors import ApiError
from app.models import (
    AttachmentType,
    AuditLog,
    CoverageType,
    EmployeeSchedule,
    Notification,
    Person,
    Task,
    TaskFlag,
    TaskPreset,
    TaskStatus,
    UserRole,
)
from app.schemas import TaskRead, TaskWrite
from app.security import (
    NEWSROOM_ADMIN_ROLES,
    READ_ONLY_TASK_ROLES,
    TASK_OVERSIGHT_ROLES,
    CurrentUser,
)
from app.services import notifications
from app.services.dates import normalize_query_date
from app.services.push_notifications import send_push_to_roles
from app.services.visibility import (
    ScopeKind,
    ensure_scope_allowed,
    load_visible_tasks,
    person_in_ids,
    resolve_person_for_user,
    resolve_task_scope,
    task_in_scope,
)

logger = logging.getLogger("app.tasks")

TASK_NOT_FOUND = "Zadatak nije pronađen"
NOT_ASSIGNED = "Niste dodijeljeni ovom zadatku"

COVERAGE_VALUES = frozenset(item.value for item in CoverageType)
ATTACHMENT_VALUES = frozenset(item.value for item in AttachmentType)
STATUS_VALUES = frozenset(item.value for item in TaskStatus)

DELETE_ROLES = frozenset(
    {UserRole.ADMIN.value, UserRole.PRODUCER.value, UserRole.EDITOR.value, UserRole.DESK_EDITOR.value}
)
CREATOR_BOUND_DELETE_ROLES = frozenset({UserRole.DESK_EDITOR.value, UserRole.CAMERMAN_EDITOR.value})
STATUS_UPDATE_ROLES = frozenset(
    {
        UserRole.ADMIN.value,
        UserRole.PRODUCER.value,
        UserRole.CHIEF_CAMERA.value,
        UserRole.CAMERMAN_EDITOR.value,
        UserRole.CAMERA.value,
    }
)
CONFIRM_RECORDED_ROLES = STATUS_UPDATE_ROLES | {UserRole.CONTROL_ROOM.value}
PUSH_ON_CREATE_ROLES = frozenset(
    {UserRole.CHIEF_CAMERA.value, UserRole.CAMERMAN_EDITOR.value, UserRole.PRODUCER.value, UserRole.ADMIN.value}
)


def _forbidden(message: str) -> ApiError:
    return ApiError(status_code=403, code="FORBIDDEN", message=message)


def _unique_ids(values: Iterable[Any] | None) -> list[int]:
    result: list[int] = []
    for value in values or []:
        item = int(value)
        if item not in result:
            result.append(item)
    return result


def normalize_attachment_type(value: str | None) -> str | None:
    if value is None:
        return None
    candidate = str(value).strip()
    if not candidate or candidate.lower() in {"null", "undefined"}:
        return None
    upper = candidate.upper()
    if upper in ATTACHMENT_VALUES:
        return upper
    logger.warning("invalid_attachment_type_dropped", extra={"attachment_type": candidate})
    return None


def _validate_coverage(value: str | None) -> str:
    if not value:
        return CoverageType.ENG.value
    if value not in COVERAGE_VALUES:
        raise ApiError(status_code=400, code="VALIDATION_ERROR", message="Neispravan tip pokrivanja")
    return value


def _validate_status(value: str | None, *, default: str) -> str:
    if not value:
        return default
    if value not in STATUS_VALUES:
        raise ApiError(status_code=400, code="VALIDATION_ERROR", message="Neispravan status zadatka")
    return value


def serialize_task(task: Task) -> TaskRead:
    item = TaskRead.model_validate(task)
    if task.newsroom is not None:
        item.newsroom_name = task.newsroom.name
    if task.vehicle is not None:
        item.vehicle_name = task.vehicle.name
        item.vehicle_plate = task.vehicle.plate_number
        item.vehicle_type = task.vehicle.type
    if task.cameraman is not None:
        item.cameraman_name = task.cameraman.name
        item.cameraman_phone = task.cameraman.phone
    return item


def _get_task_or_404(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if task is None:
        raise ApiError(status_code=404, code="NOT_FOUND", message=TASK_NOT_FOUND)
    return task


def _ensure_assigned_cameraman(db: Session, user: CurrentUser, task: Task) -> Person:
    person = resolve_person_for_user(db, user)
    if person is None or not person_in_ids(person.id, task.cameraman_ids):
        raise _forbidden(NOT_ASSIGNED)
    return person


def list_tasks(
    db: Session,
    user: CurrentUser,
    *,
    date: str | None = None,
    status: str | None = None,
    coverage_type: str | None = None,
    newsroom_id: int | None = None,
) -> list[Task]:
    scope = resolve_task_scope(db, user, requested_newsroom_id=newsroom_id)
    ensure_scope_allowed(scope)

    stmt = select(Task)
    if date:
        stmt = stmt.where(Task.date == normalize_query_date(date))
    if status:
        stmt = stmt.where(Task.status == status)
    if coverage_type:
        stmt = stmt.where(Task.coverage_type == coverage_type)
    stmt = stmt.order_by(Task.time_start.asc(), Task.title.asc())
    return load_visible_tasks(db, scope, stmt)


def get_task_for_user(db: Session, user: CurrentUser, task_id: int) -> Task:
    task = _get_task_or_404(db, task_id)
    scope = resolve_task_scope(db, user)
    ensure_scope_allowed(scope)
    if scope.kind in (ScopeKind.PERSON, ScopeKind.NONE):
        if not task_in_scope(task, scope):
            raise _forbidden(NOT_ASSIGNED)
        return task
    if not task_in_scope(task, scope):
        raise ApiError(status_code=404, code="NOT_FOUND", message=TASK_NOT_FOUND)
    return task


def create_task(db: Session, user: CurrentUser, payload: TaskWrite, *, meta: dict[str, Any]) -> Task:
    if user.role in READ_ONLY_TASK_ROLES:
        raise _forbidden("Nemate dozvolu za kreiranje zadataka")
    if not payload.date or not payload.title or not payload.newsroom_id:
        raise ApiError(
            status_code=400,
            code="VALIDATION_ERROR",
            message="Datum, naslov i redakcija su obavezni",
        )
    if user.role not in NEWSROOM_ADMIN_ROLES and user.newsroom_id != payload.newsroom_id:
        raise _forbidden("Možete kreirati zadatke samo za svoju redakciju")

    task = Task(
        date=payload.date,
        time_start=payload.time_start or None,
        time_end=payload.time_end or None,
        title=payload.title,
        slugline=payload.slugline or "",
        location=payload.location or "",
        description=payload.description or "",
        newsroom_id=payload.newsroom_id,
        coverage_type=_validate_coverage(payload.coverage_type),
        attachment_type=normalize_attachment_type(payload.attachment_type),
        status=_validate_status(payload.status, default=TaskStatus.PLANIRANO.value),
        flags=list(dict.fromkeys(payload.flags or [])),
        journalist_ids=_unique_ids(payload.journalist_ids),
        cameraman_ids=_unique_ids(payload.cameraman_ids),
        cameraman_id=payload.cameraman_id,
        vehicle_id=payload.vehicle_id or None,
        equipment_id=payload.equipment_id or None,
        created_by=user.user_id,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info("task_created", extra={"task_id": task.id, "user_id": user.id, "newsroom_id": task.newsroom_id})

    notifications.notify_task_created(db, task)

    description = f'Kreiran novi zadatak: "{task.title}" ({task.date}, {task.time_start or "bez vremena"})'
    if task.journalist_ids:
        names = notifications.person_names(db, task.journalist_ids, missing_prefix="ID ")
        description += f" - Novinari: {', '.join(names)}"
    log_audit(
        db,
        user_id=user.user_id,
        action="CREATE: Task created",
        table_name="tasks",
        record_id=task.id,
        new_data=snapshot(task),
        description=description,
        **meta,
    )

    urgent = TaskFlag.HITNO.value in (task.flags or [])
    send_push_to_roles(
        db,
        roles=PUSH_ON_CREATE_ROLES,
        title="🚨 HITNO: Novi zadatak" if urgent else "📋 Novi zadatak",
        body=f'🚨 HITNO: "{task.title}"' if urgent else f'"{task.title}"',
        data={"url": f"/dispozicija?task={task.id}", "taskId": task.id, "type": "task_created"},
    )
    return task


def _apply_camera_status_update(
    db: Session,
    user: CurrentUser,
    task_id: int,
    changes: dict[str, Any],
    *,
    meta: dict[str, Any],
) -> Task:
    task = _get_task_or_404(db, task_id)
    _ensure_assigned_cameraman(db, user, task)
    if not changes.get("status"):
        raise ApiError(status_code=400, code="VALIDATION_ERROR", message="Nema dozvoljenih polja za ažuriranje")

    new_status = _validate_status(changes["status"], default=task.status)
    previous_status = task.status
    task.status = new_status
    db.commit()
    db.refresh(task)

    log_audit(
        db,
        user_id=user.user_id,
        action="UPDATE: Task status updated",
        table_name="tasks",
        record_id=task.id,
        old_data={"status": previous_status},
        new_data={"status": new_status},
        description=f"Task {task.id} status updated to {new_status}",
        **meta,
    )
    if new_status != previous_status:
        notifications.notify_status_change(db, task, new_status, actor_id=user.user_id)
    return task


def _restrict_to_appended_cameramen(task: Task, changes: dict[str, Any]) -> dict[str, Any]:
    """Another user owns the crew: only appending cameramen is allowed."""
    if "cameraman_ids" not in changes:
        raise _forbidden(
            "Ne možete mijenjati zadatke gdje su kamermane dodijelili drugi korisnici. "
            "Možete samo dodavati nove kamermane."
        )
    existing = _unique_ids(task.cameraman_ids)
    requested = _unique_ids(changes.get("cameraman_ids"))
    if any(person_id not in requested for person_id in existing):
        raise _forbidden(
            "Ne možete uklanjati kamermane koje je dodijelio neko drugi. Možete samo dodavati nove kamermane."
        )
    added = [person_id for person_id in requested if person_id not in existing]
    if not added:
        raise _forbidden("Ne možete mijenjati postojeće kamermane. Možete samo dodavati nove kamermane.")
    return {"cameraman_ids": existing + added}


def update_task(
    db: Session,
    user: CurrentUser,
    task_id: int,
    payload: TaskWrite,
    *,
    meta: dict[str, Any],
) -> Task:
    if user.role == UserRole.VIEWER.value:
        raise _forbidden("Nemate dozvolu za uređivanje zadataka")

    changes = payload.model_dump(exclude_unset=True)
    if user.role == UserRole.CAMERA.value:
        return _apply_camera_status_update(db, user, task_id, changes, meta=meta)

    task = _get_task_or_404(db, task_id)
    if user.role not in TASK_OVERSIGHT_ROLES:
        if user.newsroom_id != task.newsroom_id:
            raise _forbidden("Možete uređivati zadatke samo za svoju redakciju")
        if "newsroom_id" in changes and changes["newsroom_id"] != user.newsroom_id:
            raise _forbidden("Možete uređivati zadatke samo za svoju redakciju")

    if (
        user.role == UserRole.CAMERMAN_EDITOR.value
        and task.cameraman_assigned_by is not None
        and task.cameraman_assigned_by != user.user_id
    ):
        changes = _restrict_to_appended_cameramen(task, changes)

    old_data = snapshot(task)
    old_flags = list(task.flags or [])
    old_cameramen = _unique_ids(task.cameraman_ids)
    old_journalists = _unique_ids(task.journalist_ids)
    old_status = task.status

    for field in ("date", "time_start", "time_end", "title", "newsroom_id", "cameraman_id"):
        if field in changes:
            setattr(task, field, changes[field])
    for field in ("slugline", "location", "description"):
        if field in changes:
            setattr(task, field, changes[field] or "")
    for field in ("vehicle_id", "equipment_id"):
        if field in changes:
            setattr(task, field, changes[field] or None)
    if "coverage_type" in changes:
        task.coverage_type = _validate_coverage(changes["coverage_type"])
    if "attachment_type" in changes:
        task.attachment_type = normalize_attachment_type(changes["attachment_type"])
    if "status" in changes:
        task.status = _validate_status(changes["status"], default=TaskStatus.DRAFT.value)
    if "flags" in changes:
        task.flags = list(dict.fromkeys(changes["flags"] or []))
    if "journalist_ids" in changes:
        task.journalist_ids = _unique_ids(changes["journalist_ids"])
    if "cameraman_ids" in changes:
        task.cameraman_ids = _unique_ids(changes["cameraman_ids"])
        if user.role == UserRole.CHIEF_CAMERA.value:
            task.cameraman_assigned_by = user.user_id
        elif user.role == UserRole.CAMERMAN_EDITOR.value and task.cameraman_assigned_by is None:
            task.cameraman_assigned_by = user.user_id

    if not task.title or not task.date:
        raise ApiError(status_code=400, code="VALIDATION_ERROR", message="Datum, naslov i redakcija su obavezni")

    db.commit()
    db.refresh(task)
    logger.info("task_updated", extra={"task_id": task.id, "user_id": user.id, "fields": sorted(changes)})

    log_audit(
        db,
        user_id=user.user_id,
        action="UPDATE: Task updated",
        table_name="tasks",
        record_id=task.id,
        old_data=old_data,
        new_data=snapshot(task),
        description=f'Ažuriran zadatak: "{task.title}"',
        **meta,
    )
    _audit_journalist_changes(db, user, task, old_journalists, meta=meta)

    if "flags" in changes:
        notifications.notify_flags_added(db, task, old_flags)

    added_cameramen = [person_id for person_id in _unique_ids(task.cameraman_ids) if person_id not in old_cameramen]
    if added_cameramen:
        notifications.notify_cameramen_added(db, task, added_cameramen, old_flags=old_flags)
        names = notifications.person_names(db, added_cameramen)
        log_audit(
            db,
            user_id=user.user_id,
            action="UPDATE: Cameraman assigned",
            table_name="tasks",
            record_id=task.id,
            old_data={"cameraman_ids": old_cameramen},
            new_data={"cameraman_ids": task.cameraman_ids},
            description=f'Dodijeljen kamerman {", ".join(names)} na zadatak "{task.title}"',
            **meta,
        )

    if task.status != old_status:
        notifications.notify_status_change(db, task, task.status, actor_id=user.user_id)
    return task


def _audit_journalist_changes(
    db: Session,
    user: CurrentUser,
    task: Task,
    old_journalists: list[int],
    *,
    meta: dict[str, Any],
) -> None:
    current = _unique_ids(task.journalist_ids)
    added = [person_id for person_id in current if person_id not in old_journalists]
    removed = [person_id for person_id in old_journalists if person_id not in current]
    if added:
        log_audit(
            db,
            user_id=user.user_id,
            action="UPDATE: Journalist added",
            table_name="tasks",
            record_id=task.id,
            old_data={"journalist_ids": old_journalists},
            new_data={"journalist_ids": current},
            description=(
                f'Dodan novinar {", ".join(notifications.person_names(db, added, missing_prefix="ID "))} '
                f'na zadatak "{task.title}"'
            ),
            **meta,
        )
    if removed:
        log_audit(
            db,
            user_id=user.user_id,
            action="UPDATE: Journalist removed",
            table_name="tasks",
            record_id=task.id,
            old_data={"journalist_ids": old_journalists},
            new_data={"journalist_ids": current},
            description=(
                f'Uklonjen novinar {", ".join(notifications.person_names(db, removed, missing_prefix="ID "))} '
                f'sa zadatka "{task.title}"'
            ),
            **meta,
        )


def delete_task(db: Session, user: CurrentUser, task_id: int, *, meta: dict[str, Any]) -> None:
    if user.role in READ_ONLY_TASK_ROLES:
        raise _forbidden("Nemate dozvolu za brisanje zadataka")
    task = _get_task_or_404(db, task_id)
    if user.role not in DELETE_ROLES:
        raise _forbidden("Nemate dozvolu za brisanje zadataka")
    if user.role not in NEWSROOM_ADMIN_ROLES and user.newsroom_id != task.newsroom_id:
        raise _forbidden("Možete brisati zadatke samo iz svoje redakcije")
    if user.role in CREATOR_BOUND_DELETE_ROLES and task.created_by != user.user_id:
        raise _forbidden("Možete brisati samo zadatke koje ste sami kreirali")
    if task.created_by is None and user.role not in NEWSROOM_ADMIN_ROLES:
        raise _forbidden("Samo ADMIN i PRODUCER mogu brisati zadatke bez kreatora")

    old_data = snapshot(task)
    related = {
        "employee_schedules": db.scalar(
            select(func.count()).select_from(EmployeeSchedule).where(EmployeeSchedule.task_id == task.id)
        ),
        "task_presets": db.scalar(select(func.count()).select_from(TaskPreset).where(TaskPreset.task_id == task.id)),
        "audit_rows": db.scalar(
            select(func.count())
            .select_from(AuditLog)
            .where(AuditLog.table_name == "tasks", AuditLog.record_id == task.id)
        ),
    }
    deleted_notifications = db.execute(delete(Notification).where(Notification.task_id == task.id)).rowcount
    db.delete(task)
    db.commit()
    logger.info(
        "task_deleted",
        extra={
            "task_id": task_id,
            "user_id": user.id,
            "deleted_notifications": int(deleted_notifications or 0),
            "related": related,
        },
    )

    log_audit(
        db,
        user_id=user.user_id,
        action="DELETE: Task deleted",
        table_name="tasks",
        record_id=task_id,
        old_data=old_data,
        description=f'Obrisan zadatak: "{old_data.get("title")}" ({old_data.get("date")})',
        **meta,
    )


def mark_task_done(db: Session, user: CurrentUser, task_id: int, *, meta: dict[str, Any]) -> Task:
    if user.role not in NEWSROOM_ADMIN_ROLES:
        raise _forbidden("Samo ADMIN i PRODUCER mogu označiti zadatak kao urađen")
    task = _get_task_or_404(db, task_id)
    flags = list(task.flags or [])
    if TaskFlag.POTVRDJENO.value not in flags:
        task.flags = flags + [TaskFlag.POTVRDJENO.value]
        db.commit()
        db.refresh(task)

    log_audit(
        db,
        user_id=user.user_id,
        action="UPDATE: Task marked done",
        table_name="tasks",
        record_id=task.id,
        new_data={"flags": task.flags},
        description=f'Službeni nalog za zadatak "{task.title}" označen kao urađen',
        **meta,
    )
    notifications.notify_task_done(db, task)
    return task


def assign_camera(
    db: Session,
    user: CurrentUser,
    task_id: int,
    cameraman_id: int | None,
    *,
    meta: dict[str, Any],
) -> Task:
    if user.role not in TASK_OVERSIGHT_ROLES:
        raise _forbidden("Nemate dozvolu za dodjelu kamermana")
    task = _get_task_or_404(db, task_id)
    person = db.get(Person, cameraman_id) if cameraman_id is not None else None
    if cameraman_id is not None and person is None:
        raise ApiError(status_code=404, code="NOT_FOUND", message="Kamerman nije pronađen")

    task.cameraman_id = cameraman_id
    task.cameraman_assigned_by = user.user_id
    db.commit()
    db.refresh(task)

    log_audit(
        db,
        user_id=user.user_id,
        action="UPDATE: Cameraman assigned",
        table_name="tasks",
        record_id=task.id,
        new_data={"cameraman_id": cameraman_id},
        description=f'Dodijeljen kamerman {person.name if person else "-"} na zadatak "{task.title}"',
        **meta,
    )
    if person is not None:
        notifications.notify_camera_assigned(db, task, person)
    return task


def confirm_recorded(db: Session, user: CurrentUser, task_id: int, *, meta: dict[str, Any]) -> Task:
    if user.role not in CONFIRM_RECORDED_ROLES:
        raise _forbidden("Nemate dozvolu za potvrdu snimanja")
    task = _get_task_or_404(db, task_id)
    if user.role == UserRole.CAMERA.value:
        _ensure_assigned_cameraman(db, user, task)
    task.status = TaskStatus.ZAVRSEN.value
    db.commit()
    db.refresh(task)
    log_audit(
        db,
        user_id=user.user_id,
        action="UPDATE: Task recorded",
        table_name="tasks",
        record_id=task.id,
        new_data={"status": task.status},
        description=f'Potvrđeno snimanje zadatka "{task.title}"',
        **meta,
    )
    return task


def update_task_status(
    db: Session,
    user: CurrentUser,
    task_id: int,
    status: str | None,
    *,
    meta: dict[str, Any],
) -> Task:
    if user.role not in STATUS_UPDATE_ROLES:
        raise _forbidden("Nemate dozvolu za ažuriranje statusa zadatka")
    task = _get_task_or_404(db, task_id)
    if user.role == UserRole.CAMERA.value:
        _ensure_assigned_cameraman(db, user, task)
    if not status:
        raise ApiError(status_code=400, code="VALIDATION_ERROR", message="Status je obavezan")

    new_status = _validate_status(status, default=task.status)
    previous_status = task.status
    task.status = new_status
    db.commit()
    db.refresh(task)

    log_audit(
        db,
        user_id=user.user_id,
        action="UPDATE: Task status updated",
        table_name="tasks",
        record_id=task.id,
        old_data={"status": previous_status},
        new_data={"status": new_status},
        description=f"Task {task.id} status updated to {new_status}",
        **meta,
    )
    notifications.notify_status_change(db, task, new_status, actor_id=user.user_id)
    return task
