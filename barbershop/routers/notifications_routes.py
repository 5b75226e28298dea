# barbershop/routers/notifications_routes.py

from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from barbershop import notifications
from barbershop.config import NOTIFICATION_INBOX_LIMIT
from barbershop.db import get_session
from barbershop.deps import get_current_barber
from barbershop.models import User
from barbershop.schemas import NotificationPublic, UnreadCount

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


@router.get("", response_model=List[NotificationPublic])
def list_notifications(
    session: Session = Depends(get_session),
    barber: User = Depends(get_current_barber),
):
    return notifications.list_notifications(session, barber.id, limit=NOTIFICATION_INBOX_LIMIT)


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(
    session: Session = Depends(get_session),
    barber: User = Depends(get_current_barber),
):
    return {"count": notifications.unread_count(session, barber.id)}


@router.put("/{notification_id}/read", response_model=NotificationPublic)
def mark_read(
    notification_id: int,
    session: Session = Depends(get_session),
    barber: User = Depends(get_current_barber),
):
    return notifications.mark_read(session, barber.id, notification_id)
