from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from app.models import AuditLog

logger = logging.getLogger("app.audit")


def request_meta(request: Request | None) -> dict[str, str | None]:
    """Client address, user agent and request id for audit rows."""
    if request is None:
        return {"ip": None, "user_agent": None, "request_id": None}
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    return {
        "ip": ip,
        "user_agent": user_agent[:512] if user_agent else None,
        "request_id": getattr(request.state, "request_id", None),
    }


def snapshot(row: Any, *, exclude: set[str] | None = None) -> dict[str, Any]:
    skipped = exclude or set()
    values = {
        column.key: getattr(row, column.key)
        for column in row.__table__.columns
        if column.key not in skipped
    }
    return jsonable_encoder(values)


def log_audit(
    db: Session,
    *,
    user_id: int | None,
    action: str,
    table_name: str | None = None,
    record_id: int | None = None,
    old_data: dict[str, Any] | None = None,
    new_data: dict[str, Any] | None = None,
    description: str | None = None,
    ip: str | None = None,
    user_agent: str | None = None,
    request_id: str | None = None,
) -> None:
    audit = AuditLog(
        user_id=user_id,
        action=action,
        table_name=table_name,
        record_id=record_id,
        old_data=jsonable_encoder(old_data) if old_data is not None else None,
        new_data=jsonable_encoder(new_data) if new_data is not None else None,
        description=description,
        ip_address=ip,
        user_agent=user_agent,
    )
    db.add(audit)
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "audit_log_write_failed",
            extra={
                "request_id": request_id,
                "action": action,
                "user_id": user_id,
                "table_name": table_name,
                "record_id": record_id,
            },
        )
        return

    logger.info(
        "audit_event",
        extra={
            "request_id": request_id,
            "action": action,
            "user_id": user_id,
            "table_name": table_name,
            "record_id": record_id,
            "ip": ip,
            "description": description,
        },
    )
