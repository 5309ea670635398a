from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db import get_db
from app.security import CurrentUser, get_current_user
from app.services import statistics
from app.services.tasks import serialize_task

router = APIRouter(tags=["dashboard", "statistics"])


@router.get("/api/dashboard/stats")
def dashboard_stats(
    date: str | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return {"success": True, "data": statistics.dashboard_stats(db, user, day=date)}


@router.get("/api/dashboard/today-tasks")
def today_tasks(
    date: str | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = statistics.today_tasks(db, user, day=date)
    return {"success": True, "data": [serialize_task(task) for task in rows]}


@router.get("/api/dashboard/upcoming-tasks")
def upcoming_tasks(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = statistics.upcoming_tasks(db, user)
    return {"success": True, "data": [serialize_task(task) for task in rows]}


@router.get("/api/statistics")
def statistics_overview(
    date_from: str | None = Query(default=None, alias="dateFrom"),
    date_to: str | None = Query(default=None, alias="dateTo"),
    newsroom_id: int | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    data = statistics.overview(db, user, date_from=date_from, date_to=date_to, newsroom_id=newsroom_id)
    return {"success": True, "data": data}


@router.get("/api/statistics/people")
def statistics_people(
    date_from: str | None = Query(default=None, alias="dateFrom"),
    date_to: str | None = Query(default=None, alias="dateTo"),
    newsroom_id: int | None = Query(default=None, alias="newsroomId"),
    employee_id: int | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    data = statistics.people_report(
        db,
        user,
        date_from=date_from,
        date_to=date_to,
        newsroom_id=newsroom_id,
        employee_id=employee_id,
    )
    return {"success": True, "data": data}


@router.get("/api/statistics/cameraman")
def statistics_cameraman(
    date_from: str | None = Query(default=None, alias="dateFrom"),
    date_to: str | None = Query(default=None, alias="dateTo"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    data = statistics.cameraman_report(db, user, date_from=date_from, date_to=date_to)
    return {"success": True, "data": data}
