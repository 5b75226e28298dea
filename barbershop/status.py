# barbershop/status.py

from enum import Enum

from .errors import InvalidTransition


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


# Legal moves; completed and cancelled are terminal
TRANSITIONS = {
    AppointmentStatus.pending: {AppointmentStatus.confirmed, AppointmentStatus.cancelled},
    AppointmentStatus.confirmed: {
        AppointmentStatus.in_progress,
        AppointmentStatus.completed,
        AppointmentStatus.cancelled,
    },
    AppointmentStatus.in_progress: {AppointmentStatus.completed},
    AppointmentStatus.completed: set(),
    AppointmentStatus.cancelled: set(),
}

TERMINAL = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def can_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    return AppointmentStatus(new) in TRANSITIONS[AppointmentStatus(current)]


def check_transition(current: AppointmentStatus, new: AppointmentStatus) -> None:
    current = AppointmentStatus(current)
    new = AppointmentStatus(new)
    if not can_transition(current, new):
        if current in TERMINAL:
            raise InvalidTransition(f"Appointment is already {current.value}")
        raise InvalidTransition(f"Cannot change status from {current.value} to {new.value}")


def transition(appointment, new: AppointmentStatus):
    """Move ``appointment`` to ``new`` or raise InvalidTransition.

    Works on anything with a ``status`` attribute; persisting the change is
    the caller's job.
    """
    check_transition(appointment.status, new)
    appointment.status = AppointmentStatus(new)
    return appointment
