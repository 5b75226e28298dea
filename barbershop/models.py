# barbershop/models.py

from typing import Optional
from datetime import datetime

from sqlalchemy import Column, DateTime, Index, UniqueConstraint, text
from sqlmodel import SQLModel, Field

from .status import AppointmentStatus


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    first_name: str = ""
    last_name: str = ""
    role: str  # barber or client

    @property
    def full_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    price: float
    duration_minutes: int
    description: Optional[str] = None


class WorkingHours(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("barber_id", "day_of_week", name="uq_barber_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    barber_id: int = Field(foreign_key="user.id", index=True)
    day_of_week: int  # 0=Sun, 1=Mon ... 6=Sat
    is_working: bool = True
    start_time: Optional[str] = None  # "09:00"
    end_time: Optional[str] = None  # "18:00"


class Appointment(SQLModel, table=True):
    # Cancelled rows keep their timestamp but no longer hold the slot
    __table_args__ = (
        Index(
            "uq_barber_active_slot",
            "barber_id",
            "date",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    barber_id: int = Field(foreign_key="user.id", index=True)
    client_id: int = Field(foreign_key="user.id", index=True)
    service_id: int = Field(foreign_key="service.id")
    # Naive local wall-clock time, single calendar
    date: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False, index=True))
    status: AppointmentStatus = Field(default=AppointmentStatus.pending)
    notes: Optional[str] = None
    notification_read: bool = False
    created_at: datetime = Field(
        default_factory=datetime.now,
        sa_column=Column(DateTime(timezone=False), nullable=False),
    )


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    barber_id: int = Field(foreign_key="user.id", index=True)
    type: str  # "new_appointment", "appointment_cancelled"
    title: str
    message: str
    appointment_id: Optional[int] = Field(default=None, foreign_key="appointment.id")
    read: bool = False
    created_at: datetime = Field(
        default_factory=datetime.now,
        sa_column=Column(DateTime(timezone=False), nullable=False),
    )
