"""Dashboard counters and statistics reports.

All numbers are computed in Python over the visible task set for the
requested range; nothing is cached between requests.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models import AttachmentType, CoverageType, Newsroom, Person, Task, TaskFlag, TaskStatus, UserRole
from app.security import TASK_OVERSIGHT_ROLES, CurrentUser
from app.services.dates import local_today_str, normalize_query_date
from app.services.visibility import (
    ensure_scope_allowed,
    load_visible_tasks,
    person_in_ids,
    resolve_task_scope,
)
from app.settings import get_settings

UNKNOWN_NEWSROOM = "Nepoznato"
UNASSIGNED = "Nije dodjeljen"

REPORT_FLAGS: tuple[str, ...] = (
    TaskFlag.TEMA.value,
    TaskFlag.UZIVO.value,
    TaskFlag.REZIJA.value,
    TaskFlag.VIBER_SKYPE.value,
    TaskFlag.PACKAGE.value,
    TaskFlag.SLUZBENI_PUT.value,
    TaskFlag.EMISIJA.value,
    TaskFlag.HITNO.value,
    TaskFlag.RAZMJENA.value,
)
NEWSROOM_REPORT_FLAGS = REPORT_FLAGS[:-1]
COVERAGE_TYPES: tuple[str, ...] = tuple(item.value for item in CoverageType)
ATTACHMENT_TYPES: tuple[str, ...] = tuple(item.value for item in AttachmentType)

COMPLETED_STATUSES = frozenset({TaskStatus.SNIMLJENO.value, TaskStatus.ZAVRSEN.value})
ACTIVE_STATUSES = frozenset({TaskStatus.U_TOKU.value, TaskStatus.DODIJELJENO.value})


def _percent(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


def _scoped_tasks(
    db: Session,
    user: CurrentUser,
    *,
    date_from: str | None,
    date_to: str | None,
    newsroom_id: int | None = None,
    unrestricted_roles: frozenset[str] = TASK_OVERSIGHT_ROLES,
    extra_where: tuple[Any, ...] = (),
) -> list[Task]:
    scope = resolve_task_scope(
        db,
        user,
        unrestricted_roles=unrestricted_roles,
        requested_newsroom_id=newsroom_id,
    )
    ensure_scope_allowed(scope)
    stmt = select(Task).where(*extra_where)
    if date_from:
        stmt = stmt.where(Task.date >= normalize_query_date(date_from))
    if date_to:
        stmt = stmt.where(Task.date <= normalize_query_date(date_to))
    stmt = stmt.order_by(Task.date.asc(), Task.time_start.asc(), Task.title.asc())
    return load_visible_tasks(db, scope, stmt)


def dashboard_stats(db: Session, user: CurrentUser, *, day: str | None = None) -> dict[str, int]:
    current_day = (day or local_today_str())[:10]
    tasks = _scoped_tasks(db, user, date_from=current_day, date_to=current_day)

    active_statuses = set(ACTIVE_STATUSES)
    if user.role == UserRole.EDITOR.value:
        active_statuses.add(TaskStatus.PLANIRANO.value)

    data = {
        "todayTasks": len(tasks),
        "plannedTasks": sum(1 for task in tasks if task.status == TaskStatus.PLANIRANO.value),
        "activeTasks": sum(1 for task in tasks if task.status in active_statuses),
        "completedTasks": sum(1 for task in tasks if task.status in COMPLETED_STATUSES),
        "cancelledTasks": sum(1 for task in tasks if task.status == TaskStatus.OTKAZANO.value),
        "activeCameramen": len({task.cameraman_id for task in tasks if task.cameraman_id}),
    }
    if user.role == UserRole.CAMERMAN_EDITOR.value:
        mine = [task for task in tasks if task.cameraman_assigned_by == user.user_id]
        data["assignedTasks"] = len(mine)
        data["myCompletedTasks"] = sum(1 for task in mine if task.status == TaskStatus.SNIMLJENO.value)
        data["myCancelledTasks"] = sum(1 for task in mine if task.status == TaskStatus.OTKAZANO.value)
    return data


def today_tasks(db: Session, user: CurrentUser, *, day: str | None = None) -> list[Task]:
    current_day = (day or local_today_str())[:10]
    return _scoped_tasks(db, user, date_from=current_day, date_to=current_day)


def upcoming_tasks(db: Session, user: CurrentUser, *, limit: int = 10) -> list[Task]:
    scope = resolve_task_scope(db, user)
    ensure_scope_allowed(scope)
    stmt = (
        select(Task)
        .where(Task.date > local_today_str())
        .order_by(Task.date.asc(), Task.time_start.asc(), Task.title.asc())
    )
    return load_visible_tasks(db, scope, stmt)[:limit]


def _newsroom_names(db: Session) -> dict[int, str]:
    return dict(db.execute(select(Newsroom.id, Newsroom.name)).all())


def overview(
    db: Session,
    user: CurrentUser,
    *,
    date_from: str | None,
    date_to: str | None,
    newsroom_id: int | None,
) -> dict[str, Any]:
    tasks = _scoped_tasks(db, user, date_from=date_from, date_to=date_to, newsroom_id=newsroom_id)
    names = _newsroom_names(db)

    by_status: Counter[str] = Counter()
    by_newsroom: Counter[str] = Counter()
    by_flag: Counter[str] = Counter()
    by_coverage: Counter[str] = Counter()
    by_attachment: Counter[str] = Counter()
    newsroom_flags: dict[str, Counter[str]] = {}

    for task in tasks:
        by_status[task.status] += 1
        newsroom_name = names.get(task.newsroom_id or 0, UNKNOWN_NEWSROOM)
        by_newsroom[newsroom_name] += 1
        flag_counter = newsroom_flags.setdefault(newsroom_name, Counter())
        for flag in task.flags or []:
            by_flag[flag] += 1
            if flag in NEWSROOM_REPORT_FLAGS:
                flag_counter[flag] += 1
        if task.coverage_type:
            by_coverage[task.coverage_type] += 1
        if task.attachment_type:
            by_attachment[task.attachment_type] += 1

    ranked = sorted(by_newsroom.items(), key=lambda item: item[1], reverse=True)
    return {
        "totalTasks": len(tasks),
        "tasksByStatus": dict(by_status),
        "tasksByNewsroom": [{"name": name, "count": count} for name, count in ranked],
        "tasksByNewsroomDetailed": [
            {
                "name": name,
                "total": count,
                "flags": {flag: newsroom_flags[name][flag] for flag in NEWSROOM_REPORT_FLAGS},
            }
            for name, count in ranked
        ],
        "tasksByFlag": dict(by_flag),
        "tasksByCoverageType": dict(by_coverage),
        "tasksByAttachmentType": dict(by_attachment),
    }


def _counted_people(task: Task, *, include_journalists: bool) -> list[int]:
    ids = list(task.cameraman_ids or [])
    if include_journalists:
        ids = list(task.journalist_ids or []) + ids
    return [int(item) for item in ids if isinstance(item, int) or str(item).isdigit()]


def people_report(
    db: Session,
    user: CurrentUser,
    *,
    date_from: str | None,
    date_to: str | None,
    newsroom_id: int | None,
    employee_id: int | None,
) -> dict[str, Any]:
    tasks = _scoped_tasks(db, user, date_from=date_from, date_to=date_to, newsroom_id=newsroom_id)
    if employee_id is not None:
        tasks = [
            task
            for task in tasks
            if person_in_ids(employee_id, task.journalist_ids) or person_in_ids(employee_id, task.cameraman_ids)
        ]

    is_editor = user.role == UserRole.EDITOR.value
    people_stmt = select(Person.id, Person.name)
    if is_editor and user.newsroom_id is not None:
        people_stmt = people_stmt.where(Person.newsroom_id == user.newsroom_id)
    people = dict(db.execute(people_stmt).all())

    flag_totals: Counter[str] = Counter()
    coverage_totals: Counter[str] = Counter()
    attachment_totals: Counter[str] = Counter()
    stats: dict[str, dict[str, Any]] = {}
    most_active, max_tasks = "N/A", 0

    for task in tasks:
        task_flags = list(task.flags or [])
        for flag in task_flags:
            if flag in REPORT_FLAGS:
                flag_totals[flag] += 1
        if task.coverage_type in COVERAGE_TYPES:
            coverage_totals[task.coverage_type] += 1
        if task.attachment_type in ATTACHMENT_TYPES:
            attachment_totals[task.attachment_type] += 1

        person_ids = _counted_people(task, include_journalists=is_editor) or [0]
        for person_id in person_ids:
            if person_id == 0:
                name = UNASSIGNED
            elif person_id in people:
                name = people[person_id]
            elif is_editor and user.newsroom_id is not None:
                # Editors only see people from their own newsroom.
                continue
            else:
                name = f"ID: {person_id}"

            entry = stats.setdefault(
                name,
                {"total": 0, "completed": 0, "cancelled": 0, "flags": {flag: 0 for flag in REPORT_FLAGS}},
            )
            entry["total"] += 1
            if task.status == TaskStatus.SNIMLJENO.value:
                entry["completed"] += 1
            elif task.status == TaskStatus.OTKAZANO.value:
                entry["cancelled"] += 1
            for flag in task_flags:
                if flag in entry["flags"]:
                    entry["flags"][flag] += 1
            if entry["total"] > max_tasks:
                max_tasks = entry["total"]
                most_active = name

    total = len(tasks)
    total_completed = sum(1 for task in tasks if task.status == TaskStatus.SNIMLJENO.value)
    total_cancelled = sum(1 for task in tasks if task.status == TaskStatus.OTKAZANO.value)
    total_cameramen = db.scalar(
        select(func.count()).select_from(Person).where(Person.newsroom_id == get_settings().camera_newsroom_id)
    )

    return {
        "totalTasks": total,
        "tasksByPeople": [{"name": name, "count": entry["total"]} for name, entry in stats.items()],
        "tasksByPeopleDetailed": [
            {
                "name": name,
                "total": entry["total"],
                "completed": entry["completed"],
                "cancelled": entry["cancelled"],
                "successRate": _percent(entry["completed"], entry["total"]),
                "flags": entry["flags"],
            }
            for name, entry in stats.items()
        ],
        "tasksByFlags": [{"flag": flag, "count": flag_totals[flag]} for flag in REPORT_FLAGS],
        "tasksByCoverageType": [{"type": item, "count": coverage_totals[item]} for item in COVERAGE_TYPES],
        "tasksByAttachmentType": [{"type": item, "count": attachment_totals[item]} for item in ATTACHMENT_TYPES],
        "mostActivePerson": most_active,
        "overall": {
            "totalCameramen": int(total_cameramen or 0),
            "totalTasks": total,
            "totalCompleted": total_completed,
            "totalCancelled": total_cancelled,
            "averageSuccessRate": _percent(total_completed, total),
            "mostActiveCameraman": {"name": most_active, "tasks": max_tasks},
        },
    }


def cameraman_report(
    db: Session,
    user: CurrentUser,
    *,
    date_from: str | None,
    date_to: str | None,
) -> dict[str, dict[str, int]]:
    tasks = _scoped_tasks(
        db,
        user,
        date_from=date_from,
        date_to=date_to,
        extra_where=(Task.cameraman_id.is_not(None),),
    )
    names = dict(db.execute(select(Person.id, Person.name)).all())
    report: dict[str, dict[str, int]] = {}
    for task in tasks:
        name = names.get(task.cameraman_id or 0, "Nepoznat")
        entry = report.setdefault(
            name,
            {"totalTasks": 0, "completedTasks": 0, "inProgressTasks": 0, "completionRate": 0},
        )
        entry["totalTasks"] += 1
        if task.status == TaskStatus.ZAVRSEN.value:
            entry["completedTasks"] += 1
        elif task.status == TaskStatus.U_TOKU.value:
            entry["inProgressTasks"] += 1

    for entry in report.values():
        entry["completionRate"] = _percent(entry["completedTasks"], entry["totalTasks"])
    return report
