from __future__ import annotations

import unittest
from collections.abc import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base, get_db
from app.main import app
from app.models import Newsroom, Person, Task, User, UserRole
from app.security import CurrentUser, get_current_user


def _enable_foreign_keys(dbapi_connection, _record):  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


class ApiTestCase(unittest.TestCase):
    """Fresh in-memory database per test, wired into the app's dependencies."""

    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        event.listen(self.engine, "connect", _enable_foreign_keys)
        Base.metadata.create_all(self.engine)
        self.session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        self.db: Session = self.session_factory()

        def _override_get_db() -> Generator[Session, None, None]:
            session = self.session_factory()
            try:
                yield session
            finally:
                session.close()

        app.dependency_overrides[get_db] = _override_get_db
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.db.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def login_as(self, user: User | CurrentUser) -> CurrentUser:
        if isinstance(user, User):
            current = CurrentUser(
                id=user.id,
                username=user.username,
                name=user.name,
                role=user.role,
                newsroom_id=user.newsroom_id,
            )
        else:
            current = user
        app.dependency_overrides[get_current_user] = lambda: current
        return current

    def add_newsroom(self, name: str, *, pin: str | None = None, newsroom_id: int | None = None) -> Newsroom:
        newsroom = Newsroom(id=newsroom_id, name=name, pin=pin)
        self.db.add(newsroom)
        self.db.commit()
        return newsroom

    def add_user(
        self,
        username: str,
        role: UserRole,
        *,
        name: str | None = None,
        newsroom: Newsroom | None = None,
        is_active: bool = True,
        password: str = "not-a-real-hash",
    ) -> User:
        user = User(
            username=username,
            name=name or username,
            password=password,
            role=role.value,
            newsroom_id=newsroom.id if newsroom else None,
            is_active=is_active,
        )
        self.db.add(user)
        self.db.commit()
        return user

    def add_person(
        self,
        name: str,
        *,
        role: str = "JOURNALIST",
        email: str | None = None,
        newsroom: Newsroom | None = None,
        person_id: int | None = None,
    ) -> Person:
        person = Person(
            id=person_id,
            name=name,
            role=role,
            email=email,
            newsroom_id=newsroom.id if newsroom else None,
        )
        self.db.add(person)
        self.db.commit()
        return person

    def add_task(self, title: str, *, newsroom: Newsroom | None = None, date: str = "2026-03-10", **fields) -> Task:
        values = {"flags": [], "journalist_ids": [], "cameraman_ids": [], "status": "PLANIRANO", **fields}
        task = Task(title=title, date=date, newsroom_id=newsroom.id if newsroom else None, **values)
        self.db.add(task)
        self.db.commit()
        return task
