from .base import Base, TimestampMixin
from .enums import (
    ACCEPTED,
    CANCELLED,
    COMPLETED,
    DRIVER_BOUND_STATUSES,
    IN_PROGRESS,
    PENDING,
    RIDE_STATUSES,
    TERMINAL_STATUSES,
)
from .ride import Ride

__all__ = [
    "Base",
    "TimestampMixin",
    "Ride",
    "PENDING",
    "ACCEPTED",
    "IN_PROGRESS",
    "COMPLETED",
    "CANCELLED",
    "RIDE_STATUSES",
    "TERMINAL_STATUSES",
    "DRIVER_BOUND_STATUSES",
]
