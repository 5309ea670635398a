from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.audit import log_audit, request_meta, snapshot
from app.db import get_db
from app.errors import bad_request, forbidden, not_found
from app.models import Task, Vehicle
from app.schemas import VehicleRead, VehicleWrite
from app.security import READ_ONLY_TASK_ROLES, CurrentUser, get_current_user

router = APIRouter(tags=["vehicles"])

VEHICLE_NOT_FOUND = "Vozilo nije pronađeno"
DUPLICATE_PLATE = "Vozilo s tim registarskim brojem već postoji"


def _ensure_can_manage(user: CurrentUser) -> None:
    if user.role in READ_ONLY_TASK_ROLES:
        raise forbidden("Nemate dozvolu za upravljanje vozilima")


@router.get("/api/vehicles")
def list_vehicles(
    _user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = db.scalars(select(Vehicle).where(Vehicle.is_active.is_(True)).order_by(Vehicle.name.asc())).all()
    return {"success": True, "data": [VehicleRead.model_validate(row) for row in rows]}


@router.post("/api/vehicles", status_code=201)
def create_vehicle(
    payload: VehicleWrite,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_can_manage(user)
    if not payload.name or not payload.type or not payload.license_plate:
        raise bad_request("Naziv, tip i registarski broj su obavezni", code="VALIDATION_ERROR")
    if db.scalar(select(Vehicle.id).where(Vehicle.plate_number == payload.license_plate)) is not None:
        raise bad_request(DUPLICATE_PLATE, code="DUPLICATE_PLATE")

    vehicle = Vehicle(name=payload.name, type=payload.type, plate_number=payload.license_plate)
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)

    log_audit(
        db,
        user_id=user.user_id,
        action="CREATE: Vehicle created",
        table_name="vehicles",
        record_id=vehicle.id,
        new_data={"name": payload.name, "type": payload.type, "license_plate": payload.license_plate},
        description=f"Kreirano vozilo: {vehicle.name} ({vehicle.plate_number})",
        **request_meta(request),
    )
    return {"success": True, "data": {"id": vehicle.id}, "message": "Vozilo je uspješno kreirano"}


@router.put("/api/vehicles/{vehicle_id}")
def update_vehicle(
    vehicle_id: int,
    payload: VehicleWrite,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_can_manage(user)
    vehicle = db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise not_found(VEHICLE_NOT_FOUND)

    if payload.license_plate and payload.license_plate != vehicle.plate_number:
        duplicate = db.scalar(
            select(Vehicle.id).where(Vehicle.plate_number == payload.license_plate, Vehicle.id != vehicle.id)
        )
        if duplicate is not None:
            raise bad_request(DUPLICATE_PLATE, code="DUPLICATE_PLATE")

    old_data = snapshot(vehicle)
    vehicle.name = payload.name or vehicle.name
    vehicle.type = payload.type or vehicle.type
    vehicle.plate_number = payload.license_plate or vehicle.plate_number
    if payload.is_available is not None:
        vehicle.is_available = payload.is_available
    db.commit()
    db.refresh(vehicle)

    log_audit(
        db,
        user_id=user.user_id,
        action="UPDATE: Vehicle updated",
        table_name="vehicles",
        record_id=vehicle.id,
        old_data=old_data,
        new_data=payload.model_dump(exclude_unset=True),
        description=f"Ažurirano vozilo: {vehicle.name}",
        **request_meta(request),
    )
    return {"success": True, "data": VehicleRead.model_validate(vehicle), "message": "Vozilo je uspješno ažurirano"}


@router.delete("/api/vehicles/{vehicle_id}")
def delete_vehicle(
    vehicle_id: int,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _ensure_can_manage(user)
    vehicle = db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise not_found(VEHICLE_NOT_FOUND)
    assigned = db.scalar(select(func.count()).select_from(Task).where(Task.vehicle_id == vehicle.id))
    if assigned:
        raise bad_request("Vozilo se ne može obrisati jer je dodijeljeno zadacima", code="VEHICLE_IN_USE")

    old_data = snapshot(vehicle)
    vehicle.is_active = False
    db.commit()

    log_audit(
        db,
        user_id=user.user_id,
        action="DELETE: Vehicle deleted",
        table_name="vehicles",
        record_id=vehicle_id,
        old_data=old_data,
        description=f"Obrisano vozilo: {vehicle.name} ({vehicle.plate_number})",
        **request_meta(request),
    )
    return {"success": True, "message": "Vozilo je uspješno obrisano"}
