from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models import LeaveStatus, LeaveType


class PinLoginRequest(BaseModel):
    pin: str | None = None
    newsroom_id: int | None = None


class AdminLoginRequest(BaseModel):
    username: str | None = None
    password: str | None = None


class NewsroomRead(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class SessionUserRead(BaseModel):
    id: int
    username: str
    name: str
    role: str
    newsroom_id: int | None = None
    newsroom: NewsroomRead | None = None


class TaskWrite(BaseModel):
    """Shared task payload. Updates only touch the fields the client sent."""

    date: str | None = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    time_start: str | None = None
    time_end: str | None = None
    title: str | None = None
    slugline: str | None = None
    location: str | None = None
    description: str | None = None
    newsroom_id: int | None = None
    coverage_type: str | None = None
    attachment_type: str | None = None
    status: str | None = None
    flags: list[str] | None = None
    journalist_ids: list[int] | None = None
    cameraman_ids: list[int] | None = None
    cameraman_id: int | None = None
    vehicle_id: int | None = None
    equipment_id: int | None = None


class TaskStatusRequest(BaseModel):
    status: str | None = None


class AssignCameraRequest(BaseModel):
    cameraman_id: int | None = None


class TaskRead(BaseModel):
    id: int
    date: str
    time_start: str | None = None
    time_end: str | None = None
    title: str
    slugline: str | None = None
    location: str | None = None
    description: str | None = None
    newsroom_id: int | None = None
    coverage_type: str
    attachment_type: str | None = None
    status: str
    flags: list[str] = Field(default_factory=list)
    journalist_ids: list[int] = Field(default_factory=list)
    cameraman_ids: list[int] = Field(default_factory=list)
    cameraman_id: int | None = None
    vehicle_id: int | None = None
    equipment_id: int | None = None
    created_by: int | None = None
    cameraman_assigned_by: int | None = None
    confirmed_by_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    newsroom_name: str | None = None
    vehicle_name: str | None = None
    vehicle_plate: str | None = None
    vehicle_type: str | None = None
    cameraman_name: str | None = None
    cameraman_phone: str | None = None

    model_config = ConfigDict(from_attributes=True)


class PersonWrite(BaseModel):
    name: str | None = None
    role: str | None = None
    phone: str | None = None
    email: str | None = None
    newsroom_id: int | None = None
    position: str | None = None


class PersonRead(BaseModel):
    id: int
    name: str
    role: str | None = None
    phone: str | None = None
    email: str | None = None
    newsroom_id: int | None = None
    position: str | None = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    username: str | None = None
    name: str | None = None
    password: str | None = None
    role: str | None = None
    newsroom_id: int | None = None


class UserUpdate(BaseModel):
    username: str | None = None
    name: str | None = None
    password: str | None = None
    role: str | None = None
    newsroom_id: int | None = None
    is_active: bool | None = None


class UserRead(BaseModel):
    id: int
    username: str
    name: str
    role: str
    newsroom_id: int | None = None
    newsroom_name: str | None = None
    is_active: bool
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class VehicleWrite(BaseModel):
    name: str | None = None
    type: str | None = None
    license_plate: str | None = None
    is_available: bool | None = None


class VehicleRead(BaseModel):
    id: int
    name: str
    type: str
    plate_number: str
    is_available: bool
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class ScheduleWrite(BaseModel):
    cameraman_id: int
    day_of_week: int = Field(ge=0, le=6)
    time_start: str
    time_end: str
    is_available: bool = True


class ScheduleRead(BaseModel):
    id: int
    cameraman_id: int
    day_of_week: int
    time_start: str
    time_end: str
    is_available: bool

    model_config = ConfigDict(from_attributes=True)


class EmployeeScheduleWrite(BaseModel):
    person_id: int | None = None
    date: str | None = None
    shift_start: str | None = None
    shift_end: str | None = None
    shift_type: str | None = None
    custom_shift_name: str | None = None
    notes: str | None = None


class EmployeeScheduleRead(BaseModel):
    id: int
    person_id: int
    date: str
    shift_start: str
    shift_end: str
    shift_type: str
    custom_shift_name: str | None = None
    notes: str | None = None
    person_name: str | None = None
    role: str | None = None
    newsroom_id: int | None = None
    newsroom_name: str | None = None


class ShiftTypeWrite(BaseModel):
    name: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    newsroom_id: int | None = None


class ShiftTypeRead(BaseModel):
    id: int
    name: str
    start_time: str | None = None
    end_time: str | None = None
    newsroom_id: int | None = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class ScheduleNoteWrite(BaseModel):
    date: str | None = None
    note: str | None = None


class ScheduleNoteRead(BaseModel):
    id: int
    date: str
    note: str
    created_by: int
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class LeaveRequestCreate(BaseModel):
    person_id: int = Field(ge=1)
    start_date: date
    end_date: date
    type: LeaveType
    status: LeaveStatus = LeaveStatus.PENDING
    notes: str | None = None


class LeaveStatusUpdate(BaseModel):
    status: LeaveStatus


class LeaveRequestRead(BaseModel):
    id: int
    person_id: int
    start_date: str
    end_date: str
    type: str
    status: str
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TaskPresetWrite(BaseModel):
    name: str | None = None
    title: str | None = None
    slugline: str | None = None
    location: str | None = None
    coverage_type: str | None = None
    attachment_type: str | None = None
    description: str | None = None
    newsroom_id: int | None = None
    journalist_ids: list[int] = Field(default_factory=list)
    cameraman_ids: list[int] = Field(default_factory=list)
    vehicle_id: int | None = None
    flags: list[str] = Field(default_factory=list)


class TaskPresetRead(BaseModel):
    id: int
    name: str
    title: str
    slugline: str | None = None
    location: str | None = None
    coverage_type: str
    attachment_type: str | None = None
    description: str | None = None
    newsroom_id: int | None = None
    journalist_ids: list[int] = Field(default_factory=list)
    cameraman_ids: list[int] = Field(default_factory=list)
    vehicle_id: int | None = None
    flags: list[str] = Field(default_factory=list)
    created_by: int | None = None

    model_config = ConfigDict(from_attributes=True)


class RoleWrite(BaseModel):
    name: str | None = None
    description: str | None = None
    permissions: list[int] | None = None


class RoleRead(BaseModel):
    id: int
    name: str
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class PermissionWrite(BaseModel):
    name: str | None = None
    description: str | None = None
    category: str | None = None


class PermissionRead(BaseModel):
    id: int
    name: str
    description: str
    category: str

    model_config = ConfigDict(from_attributes=True)


class NotificationRead(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: str
    is_read: bool
    task_id: int | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PushSubscribeRequest(BaseModel):
    subscription: dict[str, Any] | None = None


class PushUnsubscribeRequest(BaseModel):
    endpoint: str | None = None


class AuditDeleteRequest(BaseModel):
    date_from: str | None = Field(default=None, alias="dateFrom")
    date_to: str | None = Field(default=None, alias="dateTo")
    delete_all_before: bool | str | None = Field(default=None, alias="deleteAllBefore")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def validate_range(self) -> "AuditDeleteRequest":
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("dateTo must be greater than or equal to dateFrom")
        return self


class AuditLogRead(BaseModel):
    id: int
    user_id: int | None = None
    user_name: str
    user_role: str | None = None
    action: str
    table_name: str | None = None
    record_id: int | None = None
    old_data: dict[str, Any] | None = None
    new_data: dict[str, Any] | None = None
    description: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime
