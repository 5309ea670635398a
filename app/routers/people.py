from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import Newsroom
from app.schemas import NewsroomRead, PersonRead, PersonWrite
from app.security import CurrentUser, get_current_user
from app.services import people as people_service

router = APIRouter(tags=["people"])


@router.get("/api/newsrooms")
def list_newsrooms(
    _user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = db.scalars(select(Newsroom).order_by(Newsroom.name.asc())).all()
    return {"success": True, "data": [NewsroomRead.model_validate(row) for row in rows]}


@router.get("/api/people")
def list_people(
    role: str | None = Query(default=None),
    newsroom_id: int | None = Query(default=None),
    _user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = people_service.list_people(db, role=role, newsroom_id=newsroom_id)
    return {"success": True, "data": [PersonRead.model_validate(row) for row in rows]}


@router.get("/api/people/role/{role}")
def list_people_by_role(
    role: str,
    _user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = people_service.list_people(db, role=role)
    return {"success": True, "data": [PersonRead.model_validate(row) for row in rows]}


@router.post("/api/people", status_code=201)
def create_person(
    payload: PersonWrite,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    person = people_service.create_person(db, payload=payload, user=user)
    return {
        "success": True,
        "data": {"id": person.id, "email": person.email, "phone": person.phone},
        "message": "Uposlenik je uspješno dodan",
    }


@router.put("/api/people/{person_id}")
def update_person(
    person_id: int,
    payload: PersonWrite,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    person = people_service.update_person(db, person_id=person_id, payload=payload, user=user)
    return {"success": True, "data": PersonRead.model_validate(person), "message": "Uposlenik je uspješno ažuriran"}


@router.delete("/api/people/{person_id}")
def delete_person(
    person_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    counts = people_service.delete_person(db, person_id=person_id, user=user)
    return {"success": True, "data": counts, "message": "Uposlenik je uspješno obrisan"}
