# barbershop/slots.py

"""Open slot generation.

A slot is an "HH:MM" string valid for one calendar date. Slots are never
stored: they are recomputed from the barber's working window for that
weekday minus the times already held by non-cancelled appointments.
"""

import re
from datetime import datetime, time, timedelta
from typing import Iterable, List, Union

from .config import SLOT_MINUTES
from .errors import ValidationError


_HHMM = re.compile(r"^(\d{2}):(\d{2})$")

Booked = Union[datetime, time, str]


def parse_hhmm(value: str) -> time:
    match = _HHMM.match(value or "")
    if not match:
        raise ValidationError(f"Invalid time format (HH:MM): {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValidationError(f"Invalid time of day: {value!r}")
    return time(hour, minute)


def format_hhmm(value: Booked) -> str:
    if isinstance(value, str):
        return value
    return value.strftime("%H:%M")


def candidate_slots(hours, slot_minutes: int = SLOT_MINUTES) -> List[str]:
    """Every slot of the working window, ignoring bookings.

    The window is half-open: slots start at ``start_time`` and step by
    ``slot_minutes`` while strictly before ``end_time``. An unaligned start
    (09:15) anchors the grid (09:15, 09:45, ...).
    """
    if hours is None or not hours.is_working:
        return []
    if not hours.start_time or not hours.end_time:
        return []

    start = parse_hhmm(hours.start_time)
    end = parse_hhmm(hours.end_time)

    # Any fixed date works, only time of day matters
    anchor = datetime(2000, 1, 1)
    current = datetime.combine(anchor, start)
    stop = datetime.combine(anchor, end)
    step = timedelta(minutes=slot_minutes)

    slots = []
    while current < stop:
        slots.append(current.strftime("%H:%M"))
        current += step
    return slots


def generate_slots(
    hours,
    booked: Iterable[Booked] = (),
    slot_minutes: int = SLOT_MINUTES,
) -> List[str]:
    """Open slots for one date, chronological.

    ``hours`` is the day's working window (or None when the barber has no
    entry for that weekday). ``booked`` holds the times of the date's
    non-cancelled appointments; a candidate is dropped when its "HH:MM"
    matches one of them.
    """
    taken = {format_hhmm(b) for b in booked}
    return [slot for slot in candidate_slots(hours, slot_minutes) if slot not in taken]


def slot_datetime(day, requested_time: str) -> datetime:
    return datetime.combine(day, parse_hhmm(requested_time))

