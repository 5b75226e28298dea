# barbershop/errors.py

"""Scheduling errors surfaced to API callers.

Every error carries a human readable ``reason`` plus the HTTP status the
API layer answers with. None of them are retried automatically.
"""


class SchedulingError(Exception):
    status_code = 400
    code = "scheduling_error"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ValidationError(SchedulingError):
    """Malformed input or unknown client/service id. Nothing was written."""

    status_code = 422
    code = "validation_error"


class NotFound(SchedulingError):
    status_code = 404
    code = "not_found"


class SlotConflict(SchedulingError):
    """The requested time is already taken; refetch slots and pick another."""

    status_code = 409
    code = "slot_conflict"


class OutOfWindow(SchedulingError):
    """The requested time is not one of the generated slots for that date."""

    status_code = 422
    code = "out_of_window"


class InvalidTransition(SchedulingError):
    status_code = 409
    code = "invalid_transition"
