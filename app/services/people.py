from __future__ import annotations

import logging
import re

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from app.errors import ApiError
from app.models import EmployeeSchedule, LeaveRequest, Person, Schedule, Task, UserRole
from app.schemas import PersonWrite
from app.security import NEWSROOM_ADMIN_ROLES, READ_ONLY_TASK_ROLES, CurrentUser
from app.settings import get_settings

logger = logging.getLogger("app.people")

_TRANSLITERATION = str.maketrans({"č": "c", "ć": "c", "š": "s", "ž": "z"})
DEFAULT_PERSON_ROLE = UserRole.VIEWER.value


def generate_email_from_name(name: str | None) -> str | None:
    if not name:
        return None
    local = name.strip().lower().replace("đ", "dz").translate(_TRANSLITERATION)
    local = re.sub(r"\s+", ".", local)
    local = re.sub(r"[^a-z0-9.]", "", local)
    local = re.sub(r"\.+", ".", local).strip(".")
    if not local:
        return None
    return f"{local}@{get_settings().email_domain}"


def format_phone_number(phone: str | None) -> str | None:
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if not digits:
        return None
    if digits.startswith("387"):
        return f"+{digits}"
    if digits.startswith("0"):
        return f"+387{digits[1:]}"
    return f"+387{digits}"


def list_people(db: Session, *, role: str | None = None, newsroom_id: int | None = None) -> list[Person]:
    stmt = select(Person).where(Person.is_active.is_(True))
    if role:
        stmt = stmt.where(Person.role == role)
    if newsroom_id is not None:
        stmt = stmt.where(Person.newsroom_id == newsroom_id)
    return list(db.scalars(stmt.order_by(Person.name.asc())).all())


def _ensure_can_manage_people(user: CurrentUser, message: str) -> None:
    if user.role in READ_ONLY_TASK_ROLES:
        raise ApiError(status_code=403, code="FORBIDDEN", message=message)


def create_person(db: Session, *, payload: PersonWrite, user: CurrentUser) -> Person:
    _ensure_can_manage_people(user, "Nemate dozvolu za dodavanje uposlenika")
    name = (payload.name or "").strip()
    if not name:
        raise ApiError(status_code=400, code="VALIDATION_ERROR", message="Ime je obavezno")

    newsroom_id = payload.newsroom_id
    if user.role not in NEWSROOM_ADMIN_ROLES:
        if newsroom_id is not None and newsroom_id != user.newsroom_id:
            raise ApiError(
                status_code=403,
                code="FORBIDDEN",
                message="Možete dodavati uposlenike samo u svojoj redakciji",
            )
        if newsroom_id is None:
            newsroom_id = user.newsroom_id

    person = Person(
        name=name,
        role=DEFAULT_PERSON_ROLE,
        phone=format_phone_number(payload.phone),
        email=payload.email or generate_email_from_name(name),
        position=payload.position,
        newsroom_id=newsroom_id,
        is_active=True,
    )
    db.add(person)
    db.commit()
    db.refresh(person)
    return person


def update_person(db: Session, *, person_id: int, payload: PersonWrite, user: CurrentUser) -> Person:
    _ensure_can_manage_people(user, "Nemate dozvolu za ažuriranje uposlenika")
    person = db.get(Person, person_id)
    if person is None:
        raise ApiError(status_code=404, code="NOT_FOUND", message="Uposlenik nije pronađen")

    changes = payload.model_dump(exclude_unset=True)
    if user.role not in NEWSROOM_ADMIN_ROLES:
        if person.newsroom_id != user.newsroom_id:
            raise ApiError(
                status_code=403,
                code="FORBIDDEN",
                message="Možete ažurirati samo uposlenike iz svoje redakcije",
            )
        target_newsroom = changes.get("newsroom_id")
        if target_newsroom is not None and target_newsroom != user.newsroom_id:
            raise ApiError(
                status_code=403,
                code="FORBIDDEN",
                message="Možete premestiti uposlenika samo u svoju redakciju",
            )

    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ApiError(status_code=400, code="VALIDATION_ERROR", message="Ime je obavezno")
        person.name = name
    if "email" in changes:
        person.email = changes["email"] or generate_email_from_name(person.name)
    elif not person.email:
        person.email = generate_email_from_name(person.name)
    if "phone" in changes:
        person.phone = format_phone_number(changes["phone"])
    if "position" in changes:
        person.position = changes["position"]
    if "newsroom_id" in changes:
        person.newsroom_id = changes["newsroom_id"]
    person.role = DEFAULT_PERSON_ROLE

    db.commit()
    db.refresh(person)
    return person


def delete_person(db: Session, *, person_id: int, user: CurrentUser) -> dict[str, int]:
    """Hard-delete a roster entry together with the rows that reference it."""
    _ensure_can_manage_people(user, "Nemate dozvolu za brisanje uposlenika")
    person = db.get(Person, person_id)
    if person is None:
        raise ApiError(status_code=404, code="NOT_FOUND", message="Uposlenik nije pronađen")

    if user.role not in NEWSROOM_ADMIN_ROLES:
        if user.newsroom_id is None:
            raise ApiError(
                status_code=403,
                code="FORBIDDEN",
                message="Nemate dodijeljenu redakciju. Kontaktirajte administratora.",
            )
        if person.newsroom_id is None:
            raise ApiError(
                status_code=403,
                code="FORBIDDEN",
                message="Ovaj uposlenik nije dodijeljen nijednoj redakciji. Samo administrator može ga obrisati.",
            )
        if person.newsroom_id != user.newsroom_id:
            raise ApiError(
                status_code=403,
                code="FORBIDDEN",
                message="Možete obrisati samo uposlenike iz svoje redakcije.",
            )

    counts = {
        "employee_schedules": db.execute(
            delete(EmployeeSchedule).where(EmployeeSchedule.person_id == person_id)
        ).rowcount,
        "schedules": db.execute(delete(Schedule).where(Schedule.cameraman_id == person_id)).rowcount,
        "leave_requests": db.execute(delete(LeaveRequest).where(LeaveRequest.person_id == person_id)).rowcount,
        "tasks_unlinked": db.execute(
            update(Task).where(Task.cameraman_id == person_id).values(cameraman_id=None)
        ).rowcount,
    }
    db.delete(person)
    db.commit()
    logger.info("person_deleted", extra={"person_id": person_id, "user_id": user.id, **counts})
    return {key: int(value or 0) for key, value in counts.items()}
