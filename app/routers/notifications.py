from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.audit import log_audit, request_meta, snapshot
from app.db import get_db
from app.errors import ApiError, not_found
from app.schemas import NotificationRead, PushSubscribeRequest, PushUnsubscribeRequest
from app.security import CurrentUser, get_current_user
from app.services.notifications import delete_notification, list_user_notifications, mark_notification_read
from app.services.push_notifications import (
    get_vapid_public_key,
    remove_push_subscription,
    upsert_push_subscription,
)
from app.settings import get_settings

router = APIRouter(tags=["notifications"])

NOTIFICATION_NOT_FOUND = "Notifikacija nije pronađena"


def _require_user_account(user: CurrentUser) -> int:
    if user.user_id is None:
        raise ApiError(
            status_code=400,
            code="USER_ACCOUNT_REQUIRED",
            message="Push obavještenja zahtijevaju korisnički nalog",
        )
    return user.user_id


@router.get("/api/notifications")
def list_notifications(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    # Newsroom PIN sessions have no user row and therefore no inbox.
    if user.user_id is None:
        return {"success": True, "data": []}
    rows = list_user_notifications(db, user_id=user.user_id, limit=get_settings().notifications_list_limit)
    return {"success": True, "data": [NotificationRead.model_validate(row) for row in rows]}


@router.put("/api/notifications/{notification_id}/read")
def read_notification(
    notification_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if user.user_id is None:
        raise not_found(NOTIFICATION_NOT_FOUND)
    mark_notification_read(db, notification_id=notification_id, user_id=user.user_id)
    return {"success": True, "message": "Notifikacija označena kao pročitana"}


@router.delete("/api/notifications/{notification_id}")
def remove_notification(
    notification_id: int,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if user.user_id is None:
        raise not_found(NOTIFICATION_NOT_FOUND)
    notification = delete_notification(db, notification_id=notification_id, user_id=user.user_id)
    log_audit(
        db,
        user_id=user.user_id,
        action="DELETE: Notification deleted",
        table_name="notifications",
        record_id=notification_id,
        old_data=snapshot(notification),
        description=f"Obrisana notifikacija: {notification.title}",
        **request_meta(request),
    )
    return {"success": True, "message": "Notifikacija je obrisana"}


@router.get("/api/push/vapid-public-key")
def vapid_public_key() -> dict[str, Any]:
    key = get_vapid_public_key()
    if not key:
        raise ApiError(status_code=503, code="PUSH_DISABLED", message="Push obavještenja nisu konfigurisana")
    return {"success": True, "data": {"publicKey": key}}


@router.post("/api/push/subscribe")
def push_subscribe(
    payload: PushSubscribeRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    user_id = _require_user_account(user)
    row = upsert_push_subscription(db, user_id=user_id, subscription=payload.subscription)
    return {"success": True, "data": {"id": row.id}, "message": "Pretplata na push obavještenja je sačuvana"}


@router.post("/api/push/unsubscribe")
def push_unsubscribe(
    payload: PushUnsubscribeRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    user_id = _require_user_account(user)
    removed = remove_push_subscription(db, user_id=user_id, endpoint=payload.endpoint)
    return {"success": True, "data": {"removed": removed}}
