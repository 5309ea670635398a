"""Idempotent default data for a fresh database."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models import Newsroom, Permission, Person, Role, RolePermission, User, UserRole
from app.security import hash_password
from app.settings import get_settings

logger = logging.getLogger("app.bootstrap")

DEFAULT_ROLES: dict[str, str] = {
    "ADMIN": "Administrator - puna kontrola sistema",
    "PRODUCER": "Producent - upravljanje sadržajem",
    "EDITOR": "Urednik - kreiranje i uređivanje zadataka",
    "DESK_EDITOR": "Desk urednik - zadaci za svoju redakciju, pregled rasporeda",
    "CAMERMAN_EDITOR": "Kamerman urednik - zadaci za kamermane, pregled rasporeda",
    "CHIEF_CAMERA": "Šef kamere - upravljanje rasporedom kamermana",
    "CONTROL_ROOM": "Kontrolna soba - upravljanje režijom",
    "VIEWER": "Pregledač - samo pregled zadataka",
    "CAMERA": "Kamerman - dodjeljivanje zadataka",
    "JOURNALIST": "Novinar - pregled rasporeda i svojih zadataka",
}

# name -> (category, description)
DEFAULT_PERMISSIONS: dict[str, tuple[str, str]] = {
    "admin.access": ("Administracija", "Pristup administraciji"),
    "user.manage": ("Administracija", "Upravljanje korisnicima"),
    "user.view": ("Administracija", "Pregled korisnika"),
    "newsroom.manage": ("Administracija", "Upravljanje redakcijama"),
    "audit.view": ("Administracija", "Pregled audit loga"),
    "task.create": ("Zadaci", "Kreiranje zadataka"),
    "task.edit": ("Zadaci", "Uređivanje zadataka"),
    "task.delete": ("Zadaci", "Brisanje zadataka"),
    "task.view": ("Zadaci", "Pregled zadataka"),
    "task.assign_camera": ("Zadaci", "Dodjela kamermana"),
    "task.confirm_recorded": ("Zadaci", "Potvrda snimanja"),
    "task.export": ("Zadaci", "Izvoz zadataka"),
    "task.print": ("Zadaci", "Štampanje zadataka"),
    "schedule.manage": ("Raspored", "Upravljanje rasporedom"),
    "schedule.view": ("Raspored", "Pregled rasporeda"),
    "schedule.export": ("Raspored", "Izvoz rasporeda"),
    "schedule.print": ("Raspored", "Štampanje rasporeda"),
    "people.manage": ("Uposlenici", "Upravljanje uposlenicima"),
    "people.view": ("Uposlenici", "Pregled uposlenika"),
    "people.delete": ("Uposlenici", "Brisanje uposlenika"),
    "people.export": ("Uposlenici", "Izvoz uposlenika"),
    "people.print": ("Uposlenici", "Štampanje uposlenika"),
    "camera.manage": ("Kamere", "Upravljanje kamermanima"),
    "statistics.view": ("Statistika", "Pregled statistike"),
    "statistics.export": ("Statistika", "Izvoz statistike"),
    "dashboard.view": ("General", "Pregled kontrolne ploče"),
    "wallboard.view": ("Wallboard", "Pregled wallboarda"),
    "wallboard.control_room": ("Wallboard", "Upravljanje režijom na wallboardu"),
}

_MANAGEMENT_PERMISSIONS = [
    "admin.access", "user.manage", "newsroom.manage", "audit.view",
    "task.create", "task.edit", "task.delete", "task.view", "task.assign_camera",
    "task.confirm_recorded", "task.export", "task.print",
    "schedule.manage", "schedule.export", "schedule.print",
    "people.manage", "people.delete", "people.export", "people.print",
    "camera.manage", "statistics.view", "statistics.export", "dashboard.view", "user.view",
    "wallboard.view", "wallboard.control_room",
]

ROLE_PERMISSIONS: dict[str, list[str]] = {
    "ADMIN": _MANAGEMENT_PERMISSIONS,
    "PRODUCER": _MANAGEMENT_PERMISSIONS,
    "EDITOR": [
        "task.create", "task.edit", "task.delete", "task.view", "task.export", "task.print",
        "schedule.manage", "schedule.view", "schedule.export", "schedule.print",
        "people.manage", "people.delete", "people.export", "people.print",
        "statistics.view", "statistics.export", "dashboard.view",
    ],
    "DESK_EDITOR": [
        "task.create", "task.edit", "task.delete", "task.view", "task.export", "task.print",
        "schedule.view", "schedule.export", "schedule.print", "people.view", "dashboard.view",
    ],
    "CAMERMAN_EDITOR": [
        "task.view", "task.assign_camera", "task.confirm_recorded", "task.export", "task.print",
        "schedule.view", "schedule.export", "schedule.print", "people.view", "dashboard.view",
    ],
    "CHIEF_CAMERA": [
        "task.view", "task.assign_camera", "task.confirm_recorded", "task.export", "task.print",
        "schedule.manage", "schedule.export", "schedule.print",
        "people.manage", "people.delete", "people.export", "people.print",
        "camera.manage", "statistics.view", "statistics.export", "dashboard.view", "user.view",
    ],
    "CONTROL_ROOM": [
        "task.view", "task.confirm_recorded", "task.export", "task.print",
        "statistics.view", "statistics.export", "dashboard.view", "wallboard.view", "wallboard.control_room",
    ],
    "VIEWER": ["task.view", "statistics.view", "dashboard.view"],
    "CAMERA": ["task.view", "task.confirm_recorded", "dashboard.view", "schedule.view"],
    "JOURNALIST": ["task.view", "dashboard.view", "schedule.view"],
}

DEFAULT_NEWSROOMS: list[tuple[str, str | None]] = [
    ("IPP", "IPP123"),
    ("DOP", "DOP123"),
    ("DJEČIJA", "DJE123"),
    ("KZP", "KZP123"),
    ("MUZIČKA", "MUZ123"),
]
CAMERA_NEWSROOM_NAME = "KAMERMANI"

# username, name, password, newsroom name
DEFAULT_EDITORS: list[tuple[str, str, str, str]] = [
    ("ipp", "IPP Redakcija", "ipp123", "IPP"),
    ("dop", "DOP Redakcija", "dop123", "DOP"),
    ("djecja", "Dječija Redakcija", "dje123", "DJEČIJA"),
    ("kzp", "KZP Redakcija", "kzp123", "KZP"),
    ("muzicka", "Muzička Redakcija", "muz123", "MUZIČKA"),
]

# name, role, phone, email, newsroom name, position
DEFAULT_PEOPLE: list[tuple[str, str, str, str, str, str]] = [
    ("Mirsad Jusić", "CAMERAMAN", "+387 61 234 567", "mirsad@rtvtk.ba", "IPP", "Glavni kamerman"),
    ("Nijaz Bašić", "CAMERAMAN", "+387 61 234 568", "nijaz@rtvtk.ba", "IPP", "Kamerman"),
    ("Muhamed Kahrimanović", "CAMERAMAN", "+387 61 234 569", "muhamed@rtvtk.ba", "DOP", "Kamerman"),
    ("Alma Softić", "JOURNALIST", "+387 61 234 570", "alma@rtvtk.ba", "IPP", "Novinar"),
    ("Dženana Džafić", "JOURNALIST", "+387 61 234 571", "dzenana@rtvtk.ba", "DOP", "Novinar"),
]


def _seed_roles_and_permissions(db: Session) -> int:
    created = 0
    roles = {role.name: role for role in db.scalars(select(Role)).all()}
    for name, description in DEFAULT_ROLES.items():
        if name not in roles:
            roles[name] = Role(name=name, description=description)
            db.add(roles[name])
            created += 1

    permissions = {permission.name: permission for permission in db.scalars(select(Permission)).all()}
    for name, (category, description) in DEFAULT_PERMISSIONS.items():
        if name not in permissions:
            permissions[name] = Permission(name=name, category=category, description=description)
            db.add(permissions[name])
            created += 1
    db.flush()

    # Links are only seeded for roles that have none, so admin edits survive restarts.
    linked_role_ids = set(db.scalars(select(RolePermission.role_id).distinct()).all())
    for role_name, permission_names in ROLE_PERMISSIONS.items():
        role = roles[role_name]
        if role.id in linked_role_ids:
            continue
        for permission_name in permission_names:
            db.add(RolePermission(role_id=role.id, permission_id=permissions[permission_name].id))
            created += 1
    return created


def _seed_newsrooms(db: Session) -> dict[str, Newsroom]:
    newsrooms = {newsroom.name: newsroom for newsroom in db.scalars(select(Newsroom)).all()}
    if not newsrooms:
        for name, pin in DEFAULT_NEWSROOMS:
            newsrooms[name] = Newsroom(name=name, pin=pin)
            db.add(newsrooms[name])

    camera_newsroom_id = get_settings().camera_newsroom_id
    if db.get(Newsroom, camera_newsroom_id) is None and CAMERA_NEWSROOM_NAME not in newsrooms:
        newsrooms[CAMERA_NEWSROOM_NAME] = Newsroom(id=camera_newsroom_id, name=CAMERA_NEWSROOM_NAME)
        db.add(newsrooms[CAMERA_NEWSROOM_NAME])
    db.flush()
    return newsrooms


def _seed_users(db: Session, newsrooms: dict[str, Newsroom]) -> int:
    if db.scalar(select(User.id).where(User.username == "admin")) is not None:
        return 0
    db.add(User(username="admin", name="Administrator", password=hash_password("admin123"), role=UserRole.ADMIN.value))
    created = 1
    for username, name, password, newsroom_name in DEFAULT_EDITORS:
        newsroom = newsrooms.get(newsroom_name)
        db.add(
            User(
                username=username,
                name=name,
                password=hash_password(password),
                role=UserRole.EDITOR.value,
                newsroom_id=newsroom.id if newsroom else None,
            )
        )
        created += 1
    return created


def _seed_people(db: Session, newsrooms: dict[str, Newsroom]) -> int:
    if db.scalar(select(func.count()).select_from(Person)):
        return 0
    for name, role, phone, email, newsroom_name, position in DEFAULT_PEOPLE:
        newsroom = newsrooms.get(newsroom_name)
        db.add(
            Person(
                name=name,
                role=role,
                phone=phone,
                email=email,
                newsroom_id=newsroom.id if newsroom else None,
                position=position,
            )
        )
    return len(DEFAULT_PEOPLE)


def seed_default_data(db: Session) -> dict[str, int]:
    roles_and_permissions = _seed_roles_and_permissions(db)
    newsrooms = _seed_newsrooms(db)
    users = _seed_users(db, newsrooms)
    people = _seed_people(db, newsrooms)
    db.commit()

    summary = {"roles_and_permissions": roles_and_permissions, "users": users, "people": people}
    logger.info("default_data_seeded", extra=summary)
    return summary
