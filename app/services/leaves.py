from __future__ import annotations

from datetime import date

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import LeaveRequest, LeaveStatus, Person
from app.schemas import LeaveRequestCreate


def create_leave_request(db: Session, payload: LeaveRequestCreate) -> LeaveRequest:
    person = db.get(Person, payload.person_id)
    if person is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Uposlenik nije pronađen")

    if payload.end_date < payload.start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Datum završetka mora biti nakon datuma početka",
        )

    leave = LeaveRequest(
        person_id=payload.person_id,
        start_date=payload.start_date.isoformat(),
        end_date=payload.end_date.isoformat(),
        type=payload.type.value,
        status=payload.status.value,
        notes=payload.notes,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    return leave


def list_leave_requests(
    db: Session,
    *,
    person_id: int | None,
    start: date | None,
    end: date | None,
    newsroom_id: int | None = None,
) -> list[LeaveRequest]:
    stmt = select(LeaveRequest).order_by(LeaveRequest.start_date.asc(), LeaveRequest.id.asc())
    if person_id is not None:
        stmt = stmt.where(LeaveRequest.person_id == person_id)
    if newsroom_id is not None:
        stmt = stmt.join(Person, Person.id == LeaveRequest.person_id).where(Person.newsroom_id == newsroom_id)

    # Overlap with the requested window.
    if end is not None:
        stmt = stmt.where(LeaveRequest.start_date <= end.isoformat())
    if start is not None:
        stmt = stmt.where(LeaveRequest.end_date >= start.isoformat())

    return list(db.scalars(stmt).all())


def set_leave_request_status(db: Session, leave_id: int, new_status: LeaveStatus) -> LeaveRequest:
    leave = db.get(LeaveRequest, leave_id)
    if leave is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Zahtjev za odsustvo nije pronađen")
    leave.status = new_status.value
    db.commit()
    db.refresh(leave)
    return leave


def delete_leave_request(db: Session, leave_id: int) -> None:
    leave = db.get(LeaveRequest, leave_id)
    if leave is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Zahtjev za odsustvo nije pronađen")

    db.delete(leave)
    db.commit()
