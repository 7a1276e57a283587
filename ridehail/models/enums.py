from sqlalchemy import Enum


def _enum(*values: str, name: str):
    return Enum(*values, name=name, native_enum=False, create_constraint=False)


PENDING = "pending"
ACCEPTED = "accepted"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
CANCELLED = "cancelled"

RIDE_STATUSES = (PENDING, ACCEPTED, IN_PROGRESS, COMPLETED, CANCELLED)
TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})
# statuses in which driver_id is bound
DRIVER_BOUND_STATUSES = frozenset({ACCEPTED, IN_PROGRESS, COMPLETED})

RideStatus = _enum(*RIDE_STATUSES, name="ride_status")
