from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Select, delete, select
from sqlalchemy.orm import Session

from app.db import get_db
from app.errors import bad_request
from app.models import AuditLog, User
from app.schemas import AuditDeleteRequest, AuditLogRead
from app.security import CurrentUser, require_admin
from app.services.dates import local_day_end_utc, local_day_start_utc, parse_iso_date
from app.settings import get_settings

router = APIRouter(tags=["audit"])

UNKNOWN_USER = "Nepoznat korisnik"


def _parse_day(value: str | None, field: str) -> date | None:
    if not value:
        return None
    parsed = parse_iso_date(value)
    if parsed is None:
        raise bad_request(f"Neispravan datum: {field}", code="VALIDATION_ERROR")
    return parsed


def _delete_bounds(payload: AuditDeleteRequest) -> tuple[date | None, date | None, date | None]:
    """Returns (from_day, to_day, before_day) for the rows to drop."""
    date_from = _parse_day(payload.date_from, "dateFrom")
    date_to = _parse_day(payload.date_to, "dateTo")
    marker = payload.delete_all_before
    if isinstance(marker, str) and marker:
        return None, None, _parse_day(marker, "deleteAllBefore")
    if marker is True and date_from is not None:
        return None, None, date_from
    return date_from, date_to, None


@router.get("/api/audit")
def list_audit(
    date_from: str | None = Query(default=None, alias="dateFrom"),
    date_to: str | None = Query(default=None, alias="dateTo"),
    action: str | None = Query(default=None),
    user_name: str | None = Query(default=None, alias="user"),
    _admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    stmt: Select = select(AuditLog, User.name, User.role).outerjoin(User, User.id == AuditLog.user_id)
    start_day = _parse_day(date_from, "dateFrom")
    end_day = _parse_day(date_to, "dateTo")
    if start_day is not None:
        stmt = stmt.where(AuditLog.created_at >= local_day_start_utc(start_day))
    if end_day is not None:
        stmt = stmt.where(AuditLog.created_at < local_day_end_utc(end_day))
    if action:
        stmt = stmt.where(AuditLog.action.ilike(f"%{action}%"))
    if user_name:
        stmt = stmt.where(User.name.ilike(f"%{user_name}%"))
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(get_settings().audit_list_limit)

    data = []
    for row, name, role in db.execute(stmt).all():
        item = AuditLogRead(
            id=row.id,
            user_id=row.user_id,
            user_name=name or UNKNOWN_USER,
            user_role=role,
            action=row.action,
            table_name=row.table_name,
            record_id=row.record_id,
            old_data=row.old_data,
            new_data=row.new_data,
            description=row.description,
            ip_address=row.ip_address,
            user_agent=row.user_agent,
            created_at=row.created_at,
        )
        data.append(item)
    return {"success": True, "data": data}


@router.delete("/api/audit")
def purge_audit(
    payload: AuditDeleteRequest,
    _admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if not payload.date_from and not payload.date_to and not payload.delete_all_before:
        raise bad_request("Morate specificirati datum ili opseg datuma", code="VALIDATION_ERROR")

    from_day, to_day, before_day = _delete_bounds(payload)
    stmt = delete(AuditLog)
    if before_day is not None:
        stmt = stmt.where(AuditLog.created_at < local_day_start_utc(before_day))
    else:
        if from_day is None and to_day is None:
            raise bad_request("Morate specificirati datum ili opseg datuma", code="VALIDATION_ERROR")
        if from_day is not None:
            stmt = stmt.where(AuditLog.created_at >= local_day_start_utc(from_day))
        if to_day is not None:
            stmt = stmt.where(AuditLog.created_at < local_day_end_utc(to_day))

    result = db.execute(stmt)
    db.commit()
    deleted = int(result.rowcount or 0)
    return {
        "success": True,
        "data": {"deleted": deleted},
        "message": f"Uspješno obrisano {deleted} audit log zapisa",
    }
