# barbershop/deps.py

from fastapi import Depends, HTTPException
from sqlmodel import Session

from .allocator import AppointmentAllocator
from .auth import get_current_user
from .config import AUTO_CONFIRM_APPOINTMENTS, SLOT_MINUTES
from .db import get_session
from .models import User
from .notifications import NotificationHub, hub


def require_role(user: User, role: str):
    if user.role != role:
        raise HTTPException(status_code=403, detail="Forbidden")


def get_current_barber(current_user: User = Depends(get_current_user)) -> User:
    require_role(current_user, "barber")
    return current_user


def get_current_client(current_user: User = Depends(get_current_user)) -> User:
    require_role(current_user, "client")
    return current_user


def get_notification_hub() -> NotificationHub:
    return hub


def get_allocator(
    session: Session = Depends(get_session),
    sink: NotificationHub = Depends(get_notification_hub),
) -> AppointmentAllocator:
    return AppointmentAllocator(
        session,
        sink=sink,
        auto_confirm=AUTO_CONFIRM_APPOINTMENTS,
        slot_minutes=SLOT_MINUTES,
    )
