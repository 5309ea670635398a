from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.audit import log_audit
from app.db import SessionLocal
from app.errors import ApiError
from app.models import Newsroom, Notification, Person, Task, TaskFlag, TaskStatus, User, UserRole
from app.security import CAMERA_MANAGER_ROLES
from app.services.dates import local_day_start_utc, local_today
from app.services.visibility import resolve_user_for_person

logger = logging.getLogger("app.notifications")

RECENT_DUPLICATE_WINDOW = timedelta(minutes=1)
STATUS_NOTIFY_VALUES = frozenset({TaskStatus.SNIMLJENO.value, TaskStatus.OTKAZANO.value})
EDITOR_ROLES = frozenset({UserRole.EDITOR.value, UserRole.DESK_EDITOR.value})


class Dedupe(str, enum.Enum):
    NONE = "NONE"
    # Same recipient, task and type already exists.
    TASK_TYPE = "TASK_TYPE"
    # Same recipient, task, type and message within RECENT_DUPLICATE_WINDOW.
    RECENT_MESSAGE = "RECENT_MESSAGE"


@dataclass(frozen=True, slots=True)
class NotificationContent:
    title: str
    message: str
    type: str
    task_id: int | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def active_user_ids(
    db: Session,
    *,
    roles: Iterable[str],
    newsroom_id: int | None = None,
) -> list[int]:
    stmt = select(User.id).where(User.role.in_(sorted(set(roles))), User.is_active.is_(True))
    if newsroom_id is not None:
        stmt = stmt.where(User.newsroom_id == newsroom_id)
    return list(db.scalars(stmt.order_by(User.id.asc())).all())


def _is_duplicate(
    db: Session,
    *,
    user_id: int,
    content: NotificationContent,
    dedupe: Dedupe,
    now_utc: datetime,
) -> bool:
    if dedupe == Dedupe.NONE:
        return False
    stmt = select(Notification.id).where(
        Notification.user_id == user_id,
        Notification.task_id == content.task_id,
        Notification.type == content.type,
    )
    if dedupe == Dedupe.RECENT_MESSAGE:
        stmt = stmt.where(
            Notification.message == content.message,
            Notification.created_at > now_utc - RECENT_DUPLICATE_WINDOW,
        )
    return db.scalar(stmt.limit(1)) is not None


def deliver(
    db: Session,
    user_ids: Iterable[int],
    content: NotificationContent,
    *,
    dedupe: Dedupe = Dedupe.NONE,
    exclude_user_ids: Iterable[int | None] = (),
) -> list[int]:
    """Insert one notification per recipient. Never raises."""
    excluded = {item for item in exclude_user_ids if item is not None}
    recipients: list[int] = []
    for user_id in user_ids:
        if user_id in excluded or user_id in recipients:
            continue
        recipients.append(user_id)

    now_utc = _utcnow()
    created: list[int] = []
    try:
        for user_id in recipients:
            if _is_duplicate(db, user_id=user_id, content=content, dedupe=dedupe, now_utc=now_utc):
                continue
            db.add(
                Notification(
                    user_id=user_id,
                    title=content.title,
                    message=content.message,
                    type=content.type,
                    task_id=content.task_id,
                    is_read=False,
                    created_at=now_utc,
                )
            )
            created.append(user_id)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "notification_fanout_failed",
            extra={"type": content.type, "task_id": content.task_id, "recipients": recipients},
        )
        return []

    if created:
        logger.info(
            "notifications_created",
            extra={"type": content.type, "task_id": content.task_id, "user_ids": created},
        )
    return created


def person_names(db: Session, person_ids: Iterable[int], *, missing_prefix: str = "ID: ") -> list[str]:
    ids = list(person_ids)
    if not ids:
        return []
    names = dict(db.execute(select(Person.id, Person.name).where(Person.id.in_(ids))).all())
    return [names.get(person_id) or f"{missing_prefix}{person_id}" for person_id in ids]


def _newsroom_label(db: Session, task: Task) -> str:
    if task.newsroom_id is None:
        return "Nepoznato"
    newsroom = db.get(Newsroom, task.newsroom_id)
    return newsroom.name if newsroom is not None else f"Redakcija ID: {task.newsroom_id}"


def notify_task_created(db: Session, task: Task) -> list[int]:
    flags = set(task.flags or [])
    if TaskFlag.HITNO.value in flags:
        message = f'🚨 HITNO: Novi zadatak: "{task.title}"'
    else:
        message = f'📋 Novi zadatak: "{task.title}"'
    created = deliver(
        db,
        active_user_ids(db, roles=CAMERA_MANAGER_ROLES),
        NotificationContent(title="Novi zadatak kreiran", message=message, type="task_created", task_id=task.id),
        dedupe=Dedupe.TASK_TYPE,
    )
    if TaskFlag.RAZMJENA.value in flags:
        created += notify_exchange_needed(db, task)
    return created


def notify_exchange_needed(db: Session, task: Task) -> list[int]:
    return deliver(
        db,
        active_user_ids(db, roles={UserRole.PRODUCER.value}),
        NotificationContent(
            title="RAZMJENA - Potrebno pronaći materijal",
            message=f'🔄 RAZMJENA: "{task.title}" - Potrebno pronaći materijal za razmjenu',
            type="razmjena_flag",
            task_id=task.id,
        ),
        dedupe=Dedupe.TASK_TYPE,
    )


def notify_travel_requested(db: Session, task: Task) -> list[int]:
    return deliver(
        db,
        active_user_ids(db, roles=CAMERA_MANAGER_ROLES),
        NotificationContent(
            title="🚗 Službeni put zahtjev",
            message=f'Zadatak "{task.title}" zahtijeva službeni put',
            type="travel_request",
            task_id=task.id,
        ),
        dedupe=Dedupe.TASK_TYPE,
    )


def notify_flags_added(db: Session, task: Task, old_flags: Iterable[str]) -> list[int]:
    previous = set(old_flags or [])
    current = set(task.flags or [])
    created: list[int] = []
    if TaskFlag.RAZMJENA.value in current - previous:
        created += notify_exchange_needed(db, task)
    if TaskFlag.SLUZBENI_PUT.value in current - previous:
        created += notify_travel_requested(db, task)
    return created


def _notify_urgent_assignment(
    db: Session, task: Task, names: list[str], *, flags: Iterable[str] | None = None
) -> list[int]:
    if TaskFlag.HITNO.value not in ((task.flags if flags is None else flags) or []):
        return []
    return deliver(
        db,
        active_user_ids(db, roles=CAMERA_MANAGER_ROLES),
        NotificationContent(
            title="🚨 Hitni zadatak - KAMERMAN dodijeljen",
            message=(
                f'🚨 HITNO: KAMERMAN {", ".join(names)} je dodijeljen na zadatak '
                f'"{task.title}" ({_newsroom_label(db, task)})'
            ),
            type="urgent_camera_assigned",
            task_id=task.id,
        ),
        dedupe=Dedupe.TASK_TYPE,
    )


def _notify_cameraman_user(db: Session, task: Task, person: Person, *, dedupe: Dedupe) -> list[int]:
    user = resolve_user_for_person(db, person)
    if user is None:
        logger.info("cameraman_user_not_found", extra={"person_id": person.id, "task_id": task.id})
        return []
    return deliver(
        db,
        [user.id],
        NotificationContent(
            title="📹 Novi zadatak dodijeljen",
            message=f'Dodijeljeni ste na zadatak "{task.title}" ({task.date}, {task.time_start or "N/A"})',
            type="cameraman_assigned",
            task_id=task.id,
        ),
        dedupe=dedupe,
    )


def notify_cameramen_added(
    db: Session, task: Task, added_ids: list[int], *, old_flags: Iterable[str] | None = None
) -> list[int]:
    """Fan-out for cameramen appended to a task.

    The urgent branch looks at the flags the task had before the update.
    """
    if not added_ids:
        return []
    created = deliver(
        db,
        active_user_ids(db, roles={UserRole.PRODUCER.value}),
        NotificationContent(
            title="🚗 Službeni put potreban",
            message=f'Zadatak "{task.title}" - potreban službeni nalog',
            type="cameraman_assigned",
            task_id=task.id,
        ),
    )
    names = person_names(db, added_ids)
    created += _notify_urgent_assignment(db, task, names, flags=old_flags)

    for person_id in added_ids:
        person = db.get(Person, person_id)
        if person is not None:
            created += _notify_cameraman_user(db, task, person, dedupe=Dedupe.NONE)

    editor_content = NotificationContent(
        title="📹 KAMERMAN dodijeljen",
        message=f'KAMERMAN {", ".join(person_names(db, added_ids, missing_prefix="ID "))} je dodijeljen zadatku "{task.title}"',
        type="cameraman_assigned",
        task_id=task.id,
    )
    creator = db.get(User, task.created_by) if task.created_by is not None else None
    if creator is not None and creator.role in EDITOR_ROLES:
        created += deliver(db, [creator.id], editor_content)
    if task.newsroom_id is not None:
        stmt = select(User.id).where(
            User.newsroom_id == task.newsroom_id,
            User.role == UserRole.DESK_EDITOR.value,
            User.is_active.is_(True),
        )
        if task.created_by is not None:
            stmt = stmt.where(User.id != task.created_by)
        desk_editor_id = db.scalar(stmt.order_by(User.id.asc()).limit(1))
        if desk_editor_id is not None:
            created += deliver(db, [desk_editor_id], editor_content)
    return created


def notify_camera_assigned(db: Session, task: Task, person: Person) -> list[int]:
    created = _notify_urgent_assignment(db, task, [person.name])
    created += _notify_cameraman_user(db, task, person, dedupe=Dedupe.TASK_TYPE)
    return created


def _status_message(task: Task, status: str, suffix: str = "") -> str:
    if status == TaskStatus.SNIMLJENO.value:
        return f'🎥 Zadatak "{task.title}" je snimljen!{suffix}'
    return f'❌ Zadatak "{task.title}" je otkazan!{suffix}'


def notify_status_change(db: Session, task: Task, status: str, *, actor_id: int | None) -> list[int]:
    if status not in STATUS_NOTIFY_VALUES:
        return []
    recipients: list[int] = []
    if task.newsroom_id is not None:
        recipients += active_user_ids(db, roles=EDITOR_ROLES, newsroom_id=task.newsroom_id)
    recipients += active_user_ids(db, roles={UserRole.CHIEF_CAMERA.value})
    recipients += active_user_ids(db, roles={UserRole.CAMERMAN_EDITOR.value})
    if task.created_by is not None:
        recipients.append(task.created_by)
    return deliver(
        db,
        recipients,
        NotificationContent(
            title="Status zadatka ažuriran",
            message=_status_message(task, status),
            type="task_status_update",
            task_id=task.id,
        ),
        dedupe=Dedupe.RECENT_MESSAGE,
        exclude_user_ids=[actor_id],
    )


def notify_wallboard_status(db: Session, task: Task, status: str, *, confirmed_by_name: str | None) -> list[int]:
    if status not in STATUS_NOTIFY_VALUES:
        return []
    suffix = f" (potvrdio/la: {confirmed_by_name})" if confirmed_by_name else ""
    recipients: list[int] = []
    if task.created_by is not None:
        recipients.append(task.created_by)
    recipients += active_user_ids(db, roles={UserRole.PRODUCER.value})
    return deliver(
        db,
        recipients,
        NotificationContent(
            title="✅ Zadatak završen" if status == TaskStatus.SNIMLJENO.value else "❌ Zadatak otkazan",
            message=_status_message(task, status, suffix),
            type="task_status_update",
            task_id=task.id,
        ),
        dedupe=Dedupe.RECENT_MESSAGE,
    )


def notify_task_done(db: Session, task: Task) -> list[int]:
    recipients: list[int] = []
    if task.newsroom_id is not None:
        recipients += active_user_ids(db, roles=EDITOR_ROLES, newsroom_id=task.newsroom_id)
    recipients += active_user_ids(db, roles=CAMERA_MANAGER_ROLES)
    return deliver(
        db,
        recipients,
        NotificationContent(
            title="✅ Službeni nalog urađen",
            message=f'Službeni nalog za zadatak "{task.title}" je urađen',
            type="task_done",
            task_id=task.id,
        ),
    )


def purge_notifications_before(db: Session, cutoff_utc: datetime, *, user_id: int | None = None) -> int:
    stmt = delete(Notification).where(Notification.created_at < cutoff_utc)
    if user_id is not None:
        stmt = stmt.where(Notification.user_id == user_id)
    result = db.execute(stmt)
    db.commit()
    return int(result.rowcount or 0)


def list_user_notifications(
    db: Session,
    *,
    user_id: int,
    limit: int,
    now_utc: datetime | None = None,
) -> list[Notification]:
    cutoff = local_day_start_utc(local_today(now_utc))
    purged = purge_notifications_before(db, cutoff, user_id=user_id)
    if purged:
        logger.info("notifications_purged_for_user", extra={"user_id": user_id, "deleted": purged})
    stmt = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(db.scalars(stmt).all())


def _get_own_notification(db: Session, *, notification_id: int, user_id: int) -> Notification:
    notification = db.scalar(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
    )
    if notification is None:
        raise ApiError(status_code=404, code="NOT_FOUND", message="Notifikacija nije pronađena")
    return notification


def mark_notification_read(db: Session, *, notification_id: int, user_id: int) -> Notification:
    notification = _get_own_notification(db, notification_id=notification_id, user_id=user_id)
    notification.is_read = True
    db.commit()
    return notification


def delete_notification(db: Session, *, notification_id: int, user_id: int) -> Notification:
    notification = _get_own_notification(db, notification_id=notification_id, user_id=user_id)
    db.delete(notification)
    db.commit()
    return notification


def run_daily_notification_cleanup(now_utc: datetime, *, session: Session | None = None) -> int:
    """Drop every notification created before the start of the local day."""
    cutoff = local_day_start_utc(local_today(now_utc))

    def _run(db: Session) -> int:
        deleted = purge_notifications_before(db, cutoff)
        log_audit(
            db,
            user_id=None,
            action="DELETE: Daily notification cleanup",
            table_name="notifications",
            description=f"Automatski obrisano {deleted} obavještenja starijih od {cutoff.isoformat()}",
        )
        return deleted

    if session is not None:
        return _run(session)
    with SessionLocal() as managed_db:
        return _run(managed_db)
