# barbershop/ledger.py

"""Working hours store and booking ledger queries."""

import logging
from datetime import date as Date, datetime, timedelta
from typing import List, Optional

from sqlmodel import Session, select

from .errors import ValidationError
from .models import Appointment, WorkingHours
from .slots import parse_hhmm
from .status import AppointmentStatus

logger = logging.getLogger(__name__)


def day_of_week(day: Date) -> int:
    """0 = Sunday ... 6 = Saturday (``date.weekday()`` starts on Monday)."""
    return (day.weekday() + 1) % 7


def day_bounds(day: Date):
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


# ---------------------------------------------------------------------------
# WorkingHoursStore
# ---------------------------------------------------------------------------

def get_working_hours(session: Session, barber_id: int) -> List[WorkingHours]:
    return list(
        session.exec(
            select(WorkingHours)
            .where(WorkingHours.barber_id == barber_id)
            .order_by(WorkingHours.day_of_week)
        ).all()
    )


def working_hours_for(session: Session, barber_id: int, day: Date) -> Optional[WorkingHours]:
    return session.exec(
        select(WorkingHours)
        .where(WorkingHours.barber_id == barber_id)
        .where(WorkingHours.day_of_week == day_of_week(day))
    ).first()


def _validate_entries(entries) -> None:
    if len(entries) > 7:
        raise ValidationError("At most one entry per day of the week (7 entries)")

    days = [e.day_of_week for e in entries]
    for day in days:
        if not (0 <= day <= 6):
            raise ValidationError("day_of_week must be an integer between 0 and 6")
    if len(days) != len(set(days)):
        raise ValidationError("day_of_week cannot contain duplicates")

    for e in entries:
        if not e.is_working:
            continue
        if not e.start_time or not e.end_time:
            raise ValidationError(f"Working day {e.day_of_week} needs start_time and end_time")
        if parse_hhmm(e.end_time) < parse_hhmm(e.start_time):
            raise ValidationError(f"end_time cannot be before start_time on day {e.day_of_week}")


def replace_working_hours(session: Session, barber_id: int, entries) -> List[WorkingHours]:
    """Replace every working-hours row of the barber with ``entries``.

    No partial-day merge: days missing from ``entries`` end up with no row,
    which the slot generator treats as closed.
    """
    _validate_entries(entries)

    for existing in get_working_hours(session, barber_id):
        session.delete(existing)
    # Deletes must reach the DB before the inserts hit uq_barber_day
    session.flush()

    for e in entries:
        session.add(
            WorkingHours(
                barber_id=barber_id,
                day_of_week=e.day_of_week,
                is_working=e.is_working,
                start_time=e.start_time if e.is_working else None,
                end_time=e.end_time if e.is_working else None,
            )
        )
    session.commit()

    logger.info(f"Replaced working hours for barber {barber_id} ({len(entries)} days)")
    return get_working_hours(session, barber_id)


# ---------------------------------------------------------------------------
# BookingLedger
# ---------------------------------------------------------------------------

def appointments_on(session: Session, barber_id: int, day: Date, include_cancelled: bool = False) -> List[Appointment]:
    day_start, day_end = day_bounds(day)
    stmt = (
        select(Appointment)
        .where(Appointment.barber_id == barber_id)
        .where(Appointment.date >= day_start)
        .where(Appointment.date < day_end)
    )
    if not include_cancelled:
        stmt = stmt.where(Appointment.status != AppointmentStatus.cancelled)
    return list(session.exec(stmt.order_by(Appointment.date)).all())


def booked_times(session: Session, barber_id: int, day: Date) -> List[datetime]:
    """Timestamps held by the barber's non-cancelled appointments on ``day``."""
    return [a.date for a in appointments_on(session, barber_id, day)]
