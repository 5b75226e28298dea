# barbershop/allocator.py

import logging
import threading
from contextlib import contextmanager
from datetime import date as Date, datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .config import AUTO_CONFIRM_APPOINTMENTS, SLOT_MINUTES
from .errors import NotFound, OutOfWindow, SlotConflict, ValidationError
from .ledger import booked_times, working_hours_for
from .models import Appointment, Notification, Service, User
from .notifications import (
    NEW_APPOINTMENT,
    NotificationHub,
    build_event,
    describe_booking,
    hub,
    mark_appointment_notifications_read,
    record_notification,
)
from .slots import candidate_slots, format_hhmm, generate_slots, parse_hhmm, slot_datetime
from .status import AppointmentStatus, transition

logger = logging.getLogger(__name__)

APPOINTMENT_CANCELLED = "appointment_cancelled"


class SlotLocks:
    """Per (barber_id, date) locks shared by every request in the process.

    Entries are reference counted and dropped once the last holder leaves.
    """

    def __init__(self):
        self._locks = {}  # key -> [lock, holders]
        self._guard = threading.Lock()

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, barber_id: int, day: Date):
        key = (barber_id, day)
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


slot_locks = SlotLocks()


class AppointmentAllocator:
    """Books slots and drives appointment status changes.

    The check of the open slots and the insert happen under the
    (barber, date) lock; across processes the partial unique index on
    (barber_id, date) for non-cancelled rows turns the loser's insert into
    an IntegrityError, reported as SlotConflict as well.
    """

    def __init__(
        self,
        session: Session,
        sink: Optional[NotificationHub] = None,
        auto_confirm: bool = AUTO_CONFIRM_APPOINTMENTS,
        slot_minutes: int = SLOT_MINUTES,
        locks: Optional[SlotLocks] = None,
    ):
        self.session = session
        self.sink = sink if sink is not None else hub
        self.auto_confirm = auto_confirm
        self.slot_minutes = slot_minutes
        self.locks = locks if locks is not None else slot_locks

    def _get_barber(self, barber_id: int) -> User:
        barber = self.session.get(User, barber_id)
        if barber is None or barber.role != "barber":
            raise NotFound("Barber not found")
        return barber

    def open_slots(self, barber_id: int, day: Date, now: Optional[datetime] = None) -> list:
        self._get_barber(barber_id)
        hours = working_hours_for(self.session, barber_id, day)
        slots = generate_slots(hours, booked_times(self.session, barber_id, day), self.slot_minutes)

        # Times already gone today cannot be booked
        now = now or datetime.now()
        if day == now.date():
            slots = [s for s in slots if slot_datetime(day, s) >= now]
        return slots

    def book(
        self,
        barber_id: int,
        client_id: int,
        service_id: int,
        day: Date,
        requested_time: str,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Appointment:
        # 1) Validate input before touching the ledger
        self._get_barber(barber_id)

        client = self.session.get(User, client_id)
        if client is None or client.role != "client":
            raise ValidationError("Unknown client")

        service = self.session.get(Service, service_id)
        if service is None:
            raise ValidationError("Unknown service")

        requested = format_hhmm(parse_hhmm(requested_time))
        starts_at = slot_datetime(day, requested)
        if starts_at < (now or datetime.now()):
            raise ValidationError("Cannot book an appointment in the past")

        # 2) Re-check against the current ledger and write, atomically
        with self.locks.hold(barber_id, day):
            hours = working_hours_for(self.session, barber_id, day)
            if requested not in candidate_slots(hours, self.slot_minutes):
                raise OutOfWindow(f"{requested} is not a bookable slot on {day.isoformat()}")

            taken = booked_times(self.session, barber_id, day)
            if requested not in generate_slots(hours, taken, self.slot_minutes):
                logger.warning(f"Slot conflict for barber {barber_id} at {starts_at:%Y-%m-%d %H:%M}")
                raise SlotConflict(f"{requested} on {day.isoformat()} is no longer available")

            appointment = Appointment(
                barber_id=barber_id,
                client_id=client_id,
                service_id=service_id,
                date=starts_at,
                status=AppointmentStatus.pending,
                notes=notes,
            )
            self.session.add(appointment)
            try:
                self.session.flush()
            except IntegrityError:
                self.session.rollback()
                logger.warning(f"Unique slot index rejected barber {barber_id} at {starts_at:%Y-%m-%d %H:%M}")
                raise SlotConflict(f"{requested} on {day.isoformat()} is no longer available")

            # 3) Auto-confirm policy
            if self.auto_confirm:
                transition(appointment, AppointmentStatus.confirmed)

            # 4) Durable inbox entry, same transaction as the booking
            record_notification(
                self.session,
                barber_id=barber_id,
                type=NEW_APPOINTMENT,
                title="New appointment",
                message=describe_booking(client.full_name, service.name, starts_at),
                appointment_id=appointment.id,
            )
            self.session.commit()
            self.session.refresh(appointment)

        logger.info(
            f"Booked appointment {appointment.id} for barber {barber_id} "
            f"at {starts_at:%Y-%m-%d %H:%M} ({appointment.status.value})"
        )

        # 5) Live event, best-effort
        event = build_event(appointment, client.full_name, service.name)
        self.sink.publish(event.payload())
        return appointment

    def get(self, appointment_id: int) -> Appointment:
        appointment = self.session.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFound("Appointment not found")
        return appointment

    def update_status(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        notify_barber: bool = False,
    ) -> Appointment:
        """Apply a status transition and persist it.

        Confirming marks the booking's inbox entries read. ``notify_barber``
        records (and publishes) a cancellation notice when a client cancels.
        """
        appointment = self.get(appointment_id)
        previous = appointment.status
        transition(appointment, new_status)

        if appointment.status == AppointmentStatus.confirmed:
            appointment.notification_read = True
            mark_appointment_notifications_read(self.session, appointment.id)

        event = None
        if notify_barber and appointment.status == AppointmentStatus.cancelled:
            client = self.session.get(User, appointment.client_id)
            service = self.session.get(Service, appointment.service_id)
            client_name = client.full_name if client else "A client"
            service_name = service.name if service else "an appointment"
            message = f"{client_name} cancelled {service_name} on {appointment.date:%d/%m/%Y} at {appointment.date:%H:%M}"
            record_notification(
                self.session,
                barber_id=appointment.barber_id,
                type=APPOINTMENT_CANCELLED,
                title="Appointment cancelled",
                message=message,
                appointment_id=appointment.id,
            )
            event = build_event(appointment, client_name, service_name)
            event.type = APPOINTMENT_CANCELLED
            event.message = message

        self.session.add(appointment)
        self.session.commit()
        self.session.refresh(appointment)

        logger.info(f"Appointment {appointment.id}: {previous.value} -> {appointment.status.value}")
        if event is not None:
            self.sink.publish(event.payload())
        return appointment

    def delete(self, appointment_id: int) -> None:
        appointment = self.get(appointment_id)
        # Inbox rows keep their text but lose the link
        for notification in self._notifications_for(appointment.id):
            notification.appointment_id = None
            self.session.add(notification)
        self.session.delete(appointment)
        self.session.commit()
        logger.info(f"Deleted appointment {appointment_id}")

    def _notifications_for(self, appointment_id: int):
        return self.session.exec(
            select(Notification).where(Notification.appointment_id == appointment_id)
        ).all()
