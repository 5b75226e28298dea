# barbershop/schemas.py

from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime, date
from typing import List, Optional

from .status import AppointmentStatus

HHMM_PATTERN = r"^\d{2}:\d{2}$"


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRole(str, Enum):
    barber = "barber"
    client = "client"


class UserPublic(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: UserRole


class ServicePublic(BaseModel):
    id: int
    name: str
    price: float
    duration_minutes: int
    description: Optional[str] = None


class WorkingHoursEntry(BaseModel):
    day_of_week: int = Field(ge=0, le=6)  # 0=Sun ... 6=Sat
    is_working: bool = True
    start_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)


class WorkingHoursPublic(WorkingHoursEntry):
    id: int
    barber_id: int


class AvailabilityResponse(BaseModel):
    barber_id: int
    date: date
    available_slots: List[str]


class ClientAppointmentCreate(BaseModel):
    service_id: int
    date: date
    time: str = Field(pattern=HHMM_PATTERN)
    notes: Optional[str] = None


class AppointmentCreate(ClientAppointmentCreate):
    client_id: int


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentPublic(BaseModel):
    id: int
    barber_id: int
    client_id: int
    service_id: int
    date: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    notification_read: bool
    created_at: datetime


class NotificationPublic(BaseModel):
    id: int
    type: str
    title: str
    message: str
    appointment_id: Optional[int] = None
    read: bool
    created_at: datetime


class UnreadCount(BaseModel):
    count: int
