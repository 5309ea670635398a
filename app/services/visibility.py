"""Who can see which tasks.

A user's role decides the task scope. JOURNALIST and CAMERA accounts are
matched to a roster ``Person`` and only see tasks that list that person;
newsroom roles see their newsroom; oversight roles see everything.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import String, cast, func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from app.errors import ApiError
from app.models import Person, Task, User, UserRole
from app.security import TASK_OVERSIGHT_ROLES, CurrentUser

NO_NEWSROOM_MESSAGE = "Nemate pristup zadacima. Kontaktirajte administratora da vam dodijeli redakciju."

_PERSON_SCOPED_FIELDS = {
    UserRole.JOURNALIST.value: "journalist_ids",
    UserRole.CAMERA.value: "cameraman_ids",
}


class ScopeKind(str, enum.Enum):
    ALL = "ALL"
    NEWSROOM = "NEWSROOM"
    PERSON = "PERSON"
    NONE = "NONE"
    DENIED = "DENIED"


@dataclass(frozen=True, slots=True)
class TaskScope:
    kind: ScopeKind
    newsroom_id: int | None = None
    person_id: int | None = None
    field: str | None = None

    @property
    def is_person(self) -> bool:
        return self.kind == ScopeKind.PERSON


def titlecase_username(username: str) -> str:
    words = username.replace(".", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def resolve_person_for_user(db: Session, user: CurrentUser) -> Person | None:
    """Match a login account to its roster entry: email, then name, then username."""
    username = (user.username or "").strip()
    if username:
        person = db.scalar(
            select(Person)
            .where(Person.email.is_not(None), Person.email.contains(username, autoescape=True))
            .order_by(Person.id.asc())
            .limit(1)
        )
        if person is not None:
            return person

    if user.name:
        person = db.scalar(select(Person).where(Person.name == user.name).order_by(Person.id.asc()).limit(1))
        if person is not None:
            return person

    if username:
        return db.scalar(
            select(Person)
            .where(Person.name == titlecase_username(username))
            .order_by(Person.id.asc())
            .limit(1)
        )
    return None


def resolve_user_for_person(db: Session, person: Person) -> User | None:
    """Find the CAMERA login that belongs to a roster cameraman."""
    base = select(User).where(User.role == UserRole.CAMERA.value, User.is_active.is_(True))

    email = (person.email or "").strip()
    if "@" in email:
        local_part = email.split("@", 1)[0]
        user = db.scalar(base.where(User.username == local_part).limit(1))
        if user is not None:
            return user

    user = db.scalar(base.where(User.name == person.name).limit(1))
    if user is not None:
        return user

    slug = re.sub(r"\s+", ".", person.name.strip().lower())
    return db.scalar(base.where(User.username == slug).limit(1))


def resolve_task_scope(
    db: Session,
    user: CurrentUser,
    *,
    unrestricted_roles: Iterable[str] = TASK_OVERSIGHT_ROLES,
    requested_newsroom_id: int | None = None,
) -> TaskScope:
    if user.role in set(unrestricted_roles):
        if requested_newsroom_id is not None:
            return TaskScope(kind=ScopeKind.NEWSROOM, newsroom_id=requested_newsroom_id)
        return TaskScope(kind=ScopeKind.ALL)

    field = _PERSON_SCOPED_FIELDS.get(user.role)
    if field is not None:
        person = resolve_person_for_user(db, user)
        if person is None:
            return TaskScope(kind=ScopeKind.NONE)
        return TaskScope(kind=ScopeKind.PERSON, person_id=person.id, field=field)

    if user.role == UserRole.VIEWER.value:
        if user.newsroom_id is None:
            return TaskScope(kind=ScopeKind.ALL)
        return TaskScope(kind=ScopeKind.NEWSROOM, newsroom_id=user.newsroom_id)

    if user.newsroom_id is None:
        return TaskScope(kind=ScopeKind.DENIED)
    return TaskScope(kind=ScopeKind.NEWSROOM, newsroom_id=user.newsroom_id)


def ensure_scope_allowed(scope: TaskScope) -> None:
    if scope.kind == ScopeKind.DENIED:
        raise ApiError(status_code=403, code="NO_NEWSROOM", message=NO_NEWSROOM_MESSAGE)


def person_in_ids(person_id: int, ids: Iterable[object] | None) -> bool:
    if not ids:
        return False
    for value in ids:
        try:
            if int(value) == person_id:  # type: ignore[call-overload]
                return True
        except (TypeError, ValueError):
            continue
    return False


def apply_scope(stmt: Select, scope: TaskScope) -> Select:
    """Narrow a task query in SQL.

    Person scopes only get a textual prefilter here; callers must pass the
    rows through :func:`filter_for_scope` for the exact membership check.
    """
    if scope.kind == ScopeKind.NEWSROOM:
        return stmt.where(Task.newsroom_id == scope.newsroom_id)
    if scope.kind in (ScopeKind.NONE, ScopeKind.DENIED):
        return stmt.where(Task.id.is_(None))
    if scope.kind == ScopeKind.PERSON:
        column = getattr(Task, scope.field or "journalist_ids")
        return stmt.where(func.coalesce(cast(column, String), "").like(f"%{scope.person_id}%"))
    return stmt


def filter_for_scope(tasks: Iterable[Task], scope: TaskScope) -> list[Task]:
    if not scope.is_person:
        return list(tasks)
    field = scope.field or "journalist_ids"
    return [task for task in tasks if person_in_ids(scope.person_id or 0, getattr(task, field))]


def task_in_scope(task: Task, scope: TaskScope) -> bool:
    if scope.kind == ScopeKind.ALL:
        return True
    if scope.kind == ScopeKind.NEWSROOM:
        return task.newsroom_id == scope.newsroom_id
    if scope.kind == ScopeKind.PERSON:
        return person_in_ids(scope.person_id or 0, getattr(task, scope.field or "journalist_ids"))
    return False


def load_visible_tasks(db: Session, scope: TaskScope, stmt: Select | None = None) -> list[Task]:
    query = stmt if stmt is not None else select(Task)
    return filter_for_scope(db.scalars(apply_scope(query, scope)).all(), scope)
