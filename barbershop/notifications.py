# barbershop/notifications.py

"""Barber notifications.

Two paths: a live, best-effort event published to whoever is subscribed
(a push transport, a test, nobody at all), and a durable ``Notification``
row the barber can read later from the inbox.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import func
from sqlmodel import Session, select

from .errors import NotFound
from .models import Appointment, Notification

logger = logging.getLogger(__name__)

NEW_APPOINTMENT = "new_appointment"

Subscriber = Callable[[dict], None]


class AppointmentEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: str = NEW_APPOINTMENT
    appointment_id: int
    barber_id: int
    client_id: int
    service_id: int
    client_name: str
    service_name: str
    date: str  # dd/mm/yyyy
    time: str  # HH:MM
    message: str
    timestamp: str

    def payload(self) -> dict:
        return self.model_dump(by_alias=True)


class NotificationHub:
    """In-process publish/subscribe for live events.

    ``publish`` never raises: a failing subscriber is logged and skipped,
    and an event with no subscribers is dropped.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: dict) -> int:
        """Send ``event`` to every subscriber; returns how many received it."""
        with self._lock:
            subscribers = list(self._subscribers)

        if not subscribers:
            logger.debug(f"No live subscribers, dropping {event.get('type')} event")
            return 0

        delivered = 0
        for callback in subscribers:
            try:
                callback(event)
                delivered += 1
            except Exception:
                logger.exception(f"Live notification subscriber failed for {event.get('type')} event")
        return delivered


# One hub per process, handed to the allocator through deps.get_notification_hub
hub = NotificationHub()


def describe_booking(client_name: str, service_name: str, when: datetime) -> str:
    return f"{client_name} booked {service_name} for {when:%d/%m/%Y} at {when:%H:%M}"


def build_event(appointment: Appointment, client_name: str, service_name: str) -> AppointmentEvent:
    when = appointment.date
    return AppointmentEvent(
        appointment_id=appointment.id,
        barber_id=appointment.barber_id,
        client_id=appointment.client_id,
        service_id=appointment.service_id,
        client_name=client_name,
        service_name=service_name,
        date=when.strftime("%d/%m/%Y"),
        time=when.strftime("%H:%M"),
        message=describe_booking(client_name, service_name, when),
        timestamp=datetime.now().isoformat(),
    )


# ---------------------------------------------------------------------------
# Durable inbox
# ---------------------------------------------------------------------------

def record_notification(
    session: Session,
    barber_id: int,
    type: str,
    title: str,
    message: str,
    appointment_id=None,
) -> Notification:
    """Add a Notification row to the session; the caller commits."""
    notification = Notification(
        barber_id=barber_id,
        type=type,
        title=title,
        message=message,
        appointment_id=appointment_id,
    )
    session.add(notification)
    return notification


def list_notifications(session: Session, barber_id: int, limit: int = 50) -> List[Notification]:
    return list(
        session.exec(
            select(Notification)
            .where(Notification.barber_id == barber_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        ).all()
    )


def unread_count(session: Session, barber_id: int) -> int:
    return session.exec(
        select(func.count())
        .select_from(Notification)
        .where(Notification.barber_id == barber_id)
        .where(Notification.read == False)  # noqa: E712
    ).one()


def mark_read(session: Session, barber_id: int, notification_id: int) -> Notification:
    notification = session.get(Notification, notification_id)
    if notification is None or notification.barber_id != barber_id:
        raise NotFound("Notification not found")
    notification.read = True
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification


def mark_appointment_notifications_read(session: Session, appointment_id: int) -> None:
    """Flag every inbox row raised by ``appointment_id`` as read; the caller commits."""
    rows = session.exec(
        select(Notification)
        .where(Notification.appointment_id == appointment_id)
        .where(Notification.read == False)  # noqa: E712
    ).all()
    for row in rows:
        row.read = True
        session.add(row)
