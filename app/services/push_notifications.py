from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from pywebpush import WebPushException, webpush
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.errors import ApiError
from app.models import PushSubscription, User
from app.settings import get_settings, is_push_enabled

logger = logging.getLogger("app.push")

PUSH_ICON = "/rtvtk-logo.jpg"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_vapid_public_key() -> str | None:
    settings = get_settings()
    return settings.push_vapid_public_key if is_push_enabled() else None


def _parse_subscription_payload(subscription: dict[str, Any] | None) -> tuple[str, str, str]:
    if not isinstance(subscription, dict):
        raise ApiError(status_code=400, code="INVALID_PUSH_SUBSCRIPTION", message="Invalid subscription data")
    endpoint = str(subscription.get("endpoint") or "").strip()
    keys = subscription.get("keys")
    if not endpoint or not isinstance(keys, dict):
        raise ApiError(status_code=400, code="INVALID_PUSH_SUBSCRIPTION", message="Invalid subscription data")

    p256dh = str(keys.get("p256dh") or "").strip()
    auth = str(keys.get("auth") or "").strip()
    if not p256dh or not auth:
        raise ApiError(status_code=400, code="INVALID_PUSH_SUBSCRIPTION", message="Invalid subscription data")
    return endpoint, p256dh, auth


def upsert_push_subscription(db: Session, *, user_id: int, subscription: dict[str, Any] | None) -> PushSubscription:
    endpoint, p256dh, auth = _parse_subscription_payload(subscription)

    row = db.scalar(
        select(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint == endpoint,
        )
    )
    if row is None:
        row = PushSubscription(user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth)
        db.add(row)
    else:
        row.p256dh = p256dh
        row.auth = auth
        row.updated_at = _utcnow()

    db.commit()
    db.refresh(row)
    return row


def remove_push_subscription(db: Session, *, user_id: int, endpoint: str | None) -> int:
    normalized_endpoint = (endpoint or "").strip()
    if not normalized_endpoint:
        raise ApiError(status_code=400, code="INVALID_PUSH_SUBSCRIPTION", message="Endpoint is required")

    result = db.execute(
        delete(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint == normalized_endpoint,
        )
    )
    db.commit()
    return int(result.rowcount or 0)


def _send_to_subscription_row(
    row: PushSubscription,
    *,
    title: str,
    body: str,
    data: dict[str, Any] | None,
) -> tuple[bool, str | None, int | None]:
    if not is_push_enabled():
        return False, "push_disabled", None

    settings = get_settings()
    payload_data = {"url": "/"}
    payload_data.update(data or {})
    payload = {
        "title": title,
        "body": body,
        "icon": PUSH_ICON,
        "badge": PUSH_ICON,
        "tag": "newsroom-notification",
        "data": payload_data,
    }
    try:
        webpush(
            subscription_info={
                "endpoint": row.endpoint,
                "keys": {
                    "p256dh": row.p256dh,
                    "auth": row.auth,
                },
            },
            data=json.dumps(payload, ensure_ascii=False),
            vapid_private_key=settings.push_vapid_private_key,
            vapid_claims={"sub": settings.push_vapid_subject},
            ttl=60,
        )
        return True, None, None
    except WebPushException as exc:
        status_code: int | None = None
        if exc.response is not None:
            status_code = exc.response.status_code
        return False, str(exc), status_code


def send_push_to_subscriptions(
    db: Session,
    *,
    subscriptions: list[PushSubscription],
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    sent = 0
    failed = 0
    removed = 0

    for row in subscriptions:
        ok, error_text, status_code = _send_to_subscription_row(row, title=title, body=body, data=data)
        if ok:
            sent += 1
            continue

        failed += 1
        if status_code in {404, 410}:
            db.delete(row)
            removed += 1
        logger.warning(
            "push_send_failed",
            extra={
                "subscription_id": row.id,
                "user_id": row.user_id,
                "status_code": status_code,
                "error": error_text,
            },
        )

    if removed:
        db.commit()
    return {
        "total_targets": len(subscriptions),
        "sent": sent,
        "failed": failed,
        "removed": removed,
    }


def send_push_to_users(
    db: Session,
    *,
    user_ids: list[int],
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    if not is_push_enabled() or not user_ids:
        return {"total_targets": 0, "sent": 0, "failed": 0, "removed": 0}

    subscriptions = list(
        db.scalars(select(PushSubscription).where(PushSubscription.user_id.in_(user_ids))).all()
    )
    return send_push_to_subscriptions(db, subscriptions=subscriptions, title=title, body=body, data=data)


def send_push_to_roles(
    db: Session,
    *,
    roles: set[str] | frozenset[str],
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Best-effort push fan-out; failures are logged, never raised."""
    try:
        user_ids = list(
            db.scalars(
                select(User.id).where(User.role.in_(sorted(roles)), User.is_active.is_(True))
            ).all()
        )
        return send_push_to_users(db, user_ids=user_ids, title=title, body=body, data=data)
    except Exception:
        db.rollback()
        logger.exception("push_fanout_failed", extra={"roles": sorted(roles), "title": title})
        return {"total_targets": 0, "sent": 0, "failed": 0, "removed": 0}
