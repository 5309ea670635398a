from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.audit import log_audit, request_meta, snapshot
from app.db import get_db
from app.errors import bad_request, forbidden, not_found
from app.models import EmployeeSchedule, Person, Schedule, ScheduleNote, ShiftType
from app.schemas import (
    EmployeeScheduleRead,
    EmployeeScheduleWrite,
    LeaveRequestCreate,
    LeaveRequestRead,
    LeaveStatusUpdate,
    ScheduleNoteRead,
    ScheduleNoteWrite,
    ScheduleRead,
    ScheduleWrite,
    ShiftTypeRead,
    ShiftTypeWrite,
)
from app.security import (
    CAMERA_MANAGER_ROLES,
    NEWSROOM_ADMIN_ROLES,
    SCHEDULE_MANAGE_ROLES,
    CurrentUser,
    get_current_user,
)
from app.services.leaves import (
    create_leave_request,
    delete_leave_request,
    list_leave_requests,
    set_leave_request_status,
)
from app.settings import get_settings

router = APIRouter(tags=["scheduling"])

EMPLOYEE_SCHEDULE_NOT_FOUND = "Raspored uposlenika nije pronađen"
NOTE_NOT_FOUND = "Napomena rasporeda nije pronađena"


def _ensure_schedule_manager(user: CurrentUser, message: str) -> None:
    if user.role not in SCHEDULE_MANAGE_ROLES:
        raise forbidden(message)


# Weekly cameraman availability


@router.get("/api/schedules")
def list_schedules(
    cameraman_id: int | None = Query(default=None),
    _user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(Schedule)
    if cameraman_id is not None:
        stmt = stmt.where(Schedule.cameraman_id == cameraman_id)
    rows = db.scalars(stmt.order_by(Schedule.day_of_week.asc(), Schedule.time_start.asc())).all()
    return {"success": True, "data": [ScheduleRead.model_validate(row) for row in rows]}


@router.post("/api/schedules", status_code=201)
def create_schedule(
    payload: ScheduleWrite,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za kreiranje rasporeda")
    if db.get(Person, payload.cameraman_id) is None:
        raise not_found("Kamerman nije pronađen")
    schedule = Schedule(**payload.model_dump())
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    return {"success": True, "data": ScheduleRead.model_validate(schedule)}


@router.put("/api/schedules/{schedule_id}")
def update_schedule(
    schedule_id: int,
    payload: ScheduleWrite,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za ažuriranje rasporeda")
    schedule = db.get(Schedule, schedule_id)
    if schedule is None:
        raise not_found("Raspored nije pronađen")
    for field, value in payload.model_dump().items():
        setattr(schedule, field, value)
    db.commit()
    db.refresh(schedule)
    return {"success": True, "data": ScheduleRead.model_validate(schedule)}


@router.delete("/api/schedules/{schedule_id}")
def delete_schedule(
    schedule_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za brisanje rasporeda")
    schedule = db.get(Schedule, schedule_id)
    if schedule is None:
        raise not_found("Raspored nije pronađen")
    db.delete(schedule)
    db.commit()
    return {"success": True}


# Employee shifts


def _employee_schedule_read(row: EmployeeSchedule) -> EmployeeScheduleRead:
    person = row.person
    return EmployeeScheduleRead(
        id=row.id,
        person_id=row.person_id,
        date=row.date,
        shift_start=row.shift_start,
        shift_end=row.shift_end,
        shift_type=row.shift_type,
        custom_shift_name=row.custom_shift_name,
        notes=row.notes,
        person_name=person.name if person else None,
        role=person.role if person else None,
        newsroom_id=person.newsroom_id if person else None,
        newsroom_name=person.newsroom.name if person and person.newsroom else None,
    )


def _schedule_newsroom_filter(user: CurrentUser) -> int | None:
    if user.role in NEWSROOM_ADMIN_ROLES:
        return None
    if user.role in CAMERA_MANAGER_ROLES:
        return get_settings().camera_newsroom_id
    if user.newsroom_id is None:
        raise forbidden("Nemate pristup rasporedu. Kontaktirajte administratora da vam dodijeli redakciju.")
    return user.newsroom_id


def _validated_shift(payload: EmployeeScheduleWrite) -> dict[str, Any]:
    values = payload.model_dump()
    if not all(values[key] for key in ("person_id", "date", "shift_start", "shift_end", "shift_type")):
        raise bad_request("Svi obavezni podaci moraju biti uneseni", code="VALIDATION_ERROR")
    return values


@router.get("/api/employee-schedules")
def list_employee_schedules(
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    newsroom_id = _schedule_newsroom_filter(user)
    stmt = select(EmployeeSchedule).join(Person, Person.id == EmployeeSchedule.person_id, isouter=True)
    if newsroom_id is not None:
        stmt = stmt.where(Person.newsroom_id == newsroom_id)
    if start:
        stmt = stmt.where(EmployeeSchedule.date >= start[:10])
    if end:
        stmt = stmt.where(EmployeeSchedule.date <= end[:10])
    rows = db.scalars(stmt.order_by(EmployeeSchedule.date.asc(), EmployeeSchedule.shift_start.asc())).all()
    return {"success": True, "data": [_employee_schedule_read(row) for row in rows]}


@router.post("/api/employee-schedules", status_code=201)
def create_employee_schedule(
    payload: EmployeeScheduleWrite,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za kreiranje rasporeda")
    values = _validated_shift(payload)
    person = db.get(Person, values["person_id"])
    if person is None:
        raise not_found("Uposlenik nije pronađen")

    row = EmployeeSchedule(**values)
    db.add(row)
    db.commit()
    db.refresh(row)

    log_audit(
        db,
        user_id=user.user_id,
        action="CREATE: Schedule created",
        table_name="employee_schedules",
        record_id=row.id,
        new_data=values,
        description=f"Kreiran raspored za {person.name} - {row.date} ({row.shift_start}-{row.shift_end})",
        **request_meta(request),
    )
    return {"success": True, "data": {"id": row.id}}


@router.put("/api/employee-schedules/{schedule_id}")
def update_employee_schedule(
    schedule_id: int,
    payload: EmployeeScheduleWrite,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za ažuriranje rasporeda")
    values = _validated_shift(payload)
    row = db.get(EmployeeSchedule, schedule_id)
    if row is None:
        raise not_found(EMPLOYEE_SCHEDULE_NOT_FOUND)

    old_data = snapshot(row)
    for field, value in values.items():
        setattr(row, field, value)
    db.commit()
    db.refresh(row)

    log_audit(
        db,
        user_id=user.user_id,
        action="UPDATE: Schedule updated",
        table_name="employee_schedules",
        record_id=row.id,
        old_data=old_data,
        new_data=values,
        description=f"Ažuriran raspored - {row.date} ({row.shift_start}-{row.shift_end})",
        **request_meta(request),
    )
    return {"success": True, "data": _employee_schedule_read(row)}


@router.delete("/api/employee-schedules/{schedule_id}")
def delete_employee_schedule(
    schedule_id: int,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za brisanje rasporeda")
    row = db.get(EmployeeSchedule, schedule_id)
    if row is None:
        raise not_found(EMPLOYEE_SCHEDULE_NOT_FOUND)

    old_data = snapshot(row)
    person_name = row.person.name if row.person else f"ID {row.person_id}"
    db.delete(row)
    db.commit()

    log_audit(
        db,
        user_id=user.user_id,
        action="DELETE: Schedule deleted",
        table_name="employee_schedules",
        record_id=schedule_id,
        old_data=old_data,
        description=(
            f"Obrisan raspored za {person_name} - {old_data['date']} "
            f"({old_data['shift_start']}-{old_data['shift_end']})"
        ),
        **request_meta(request),
    )
    return {"success": True}


# Shift types


@router.get("/api/shift-types")
def list_shift_types(
    _user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = db.scalars(select(ShiftType).where(ShiftType.is_active.is_(True)).order_by(ShiftType.name.asc())).all()
    return {"success": True, "data": [ShiftTypeRead.model_validate(row) for row in rows]}


@router.post("/api/shift-types", status_code=201)
def create_shift_type(
    payload: ShiftTypeWrite,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za kreiranje tipa smjene")
    if not payload.name:
        raise bad_request("Naziv je obavezan", code="VALIDATION_ERROR")
    row = ShiftType(
        name=payload.name,
        start_time=payload.start_time,
        end_time=payload.end_time,
        newsroom_id=payload.newsroom_id or None,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return {"success": True, "data": {"id": row.id}}


@router.put("/api/shift-types/{shift_type_id}")
def update_shift_type(
    shift_type_id: int,
    payload: ShiftTypeWrite,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za ažuriranje tipa smjene")
    if not payload.name:
        raise bad_request("Naziv je obavezan", code="VALIDATION_ERROR")
    row = db.get(ShiftType, shift_type_id)
    if row is None:
        raise not_found("Tip smjene nije pronađen")
    row.name = payload.name
    row.start_time = payload.start_time
    row.end_time = payload.end_time
    row.newsroom_id = payload.newsroom_id or None
    db.commit()
    return {"success": True}


@router.delete("/api/shift-types/{shift_type_id}")
def delete_shift_type(
    shift_type_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za brisanje tipa smjene")
    row = db.get(ShiftType, shift_type_id)
    if row is None:
        raise not_found("Tip smjene nije pronađen")
    row.is_active = False
    db.commit()
    return {"success": True}


# Personal schedule notes


def _own_note(db: Session, user: CurrentUser, note_id: int) -> ScheduleNote:
    note = db.scalar(select(ScheduleNote).where(ScheduleNote.id == note_id, ScheduleNote.created_by == user.id))
    if note is None:
        raise not_found(NOTE_NOT_FOUND)
    return note


def _validated_note(payload: ScheduleNoteWrite) -> tuple[str, str]:
    if not payload.date or not payload.note:
        raise bad_request("Datum i napomena su obavezni", code="VALIDATION_ERROR")
    return payload.date[:10], payload.note


@router.get("/api/schedule/notes")
def list_schedule_notes(
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(ScheduleNote).where(ScheduleNote.created_by == user.id)
    if start:
        stmt = stmt.where(ScheduleNote.date >= start[:10])
    if end:
        stmt = stmt.where(ScheduleNote.date <= end[:10])
    rows = db.scalars(stmt.order_by(ScheduleNote.date.asc())).all()
    return {"success": True, "data": [ScheduleNoteRead.model_validate(row) for row in rows]}


@router.post("/api/schedule/notes", status_code=201)
def create_schedule_note(
    payload: ScheduleNoteWrite,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za kreiranje napomena rasporeda")
    note_date, text = _validated_note(payload)
    note = ScheduleNote(date=note_date, note=text, created_by=user.id)
    db.add(note)
    db.commit()
    db.refresh(note)
    return {"success": True, "data": {"id": note.id}}


@router.put("/api/schedule/notes/{note_id}")
def update_schedule_note(
    note_id: int,
    payload: ScheduleNoteWrite,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za ažuriranje napomena rasporeda")
    note_date, text = _validated_note(payload)
    note = _own_note(db, user, note_id)
    note.date = note_date
    note.note = text
    db.commit()
    return {"success": True}


@router.delete("/api/schedule/notes/{note_id}")
def delete_schedule_note(
    note_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za brisanje napomena rasporeda")
    note = _own_note(db, user, note_id)
    db.delete(note)
    db.commit()
    return {"success": True}


# Leave requests


@router.get("/api/leave-requests")
def list_leaves(
    person_id: int | None = Query(default=None),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    newsroom_id = None if user.role in SCHEDULE_MANAGE_ROLES | CAMERA_MANAGER_ROLES else user.newsroom_id
    rows = list_leave_requests(db, person_id=person_id, start=start, end=end, newsroom_id=newsroom_id)
    return {"success": True, "data": [LeaveRequestRead.model_validate(row) for row in rows]}


@router.post("/api/leave-requests", status_code=201)
def create_leave(
    payload: LeaveRequestCreate,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za upravljanje odsustvima")
    leave = create_leave_request(db, payload)
    log_audit(
        db,
        user_id=user.user_id,
        action="CREATE: Leave request created",
        table_name="leave_requests",
        record_id=leave.id,
        new_data=snapshot(leave),
        description=f"Kreirano odsustvo {leave.type} ({leave.start_date} - {leave.end_date})",
        **request_meta(request),
    )
    return {"success": True, "data": LeaveRequestRead.model_validate(leave)}


@router.put("/api/leave-requests/{leave_id}/status")
def update_leave_status(
    leave_id: int,
    payload: LeaveStatusUpdate,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za upravljanje odsustvima")
    leave = set_leave_request_status(db, leave_id, payload.status)
    log_audit(
        db,
        user_id=user.user_id,
        action="UPDATE: Leave request status",
        table_name="leave_requests",
        record_id=leave.id,
        new_data={"status": leave.status},
        **request_meta(request),
    )
    return {"success": True, "data": LeaveRequestRead.model_validate(leave)}


@router.delete("/api/leave-requests/{leave_id}")
def delete_leave(
    leave_id: int,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_schedule_manager(user, "Nemate dozvolu za upravljanje odsustvima")
    delete_leave_request(db, leave_id)
    log_audit(
        db,
        user_id=user.user_id,
        action="DELETE: Leave request deleted",
        table_name="leave_requests",
        record_id=leave_id,
        **request_meta(request),
    )
    return {"success": True}
