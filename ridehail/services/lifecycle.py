"""Ride lifecycle: the status state machine and its field invariants.

Status flow: pending -> accepted -> in_progress -> completed, with cancelled
reachable from any non-terminal status. Every mutation is one conditional
UPDATE on the status it expects, so concurrent callers cannot interleave a
read and a write.
"""

import datetime as dt
import logging
import uuid
from typing import Any

from sqlalchemy.orm import Session

from ridehail.errors import Conflict, Forbidden, InvalidTransition, ValidationError
from ridehail.models import (
    ACCEPTED,
    CANCELLED,
    COMPLETED,
    IN_PROGRESS,
    PENDING,
    RIDE_STATUSES,
    TERMINAL_STATUSES,
    Ride,
)
from ridehail.services.pricing import estimate_trip
from ridehail.services.store import (
    get_ride,
    insert_ride,
    patch_ride,
    validate_party_id,
    validate_place,
    validate_point,
    validate_positive,
)
from ridehail.settings import settings

logger = logging.getLogger(__name__)

VALID_STATE_TRANSITIONS = {
    PENDING: {ACCEPTED, CANCELLED},
    ACCEPTED: {IN_PROGRESS, CANCELLED},
    IN_PROGRESS: {COMPLETED, CANCELLED},
    COMPLETED: set(),
    CANCELLED: set(),
}

# edges driven by advance_status; accept and cancel have their own operations
ADVANCE_EDGES = {ACCEPTED: IN_PROGRESS, IN_PROGRESS: COMPLETED}

_ADVANCE_TIMESTAMPS = {IN_PROGRESS: "started_at", COMPLETED: "completed_at"}

ACTIVE_STATUSES = frozenset({ACCEPTED, IN_PROGRESS})


def validate_ride_transition(current_status: str, new_status: str) -> bool:
    return new_status in VALID_STATE_TRANSITIONS.get(current_status, set())


def _now(now: dt.datetime | None) -> dt.datetime:
    return now or dt.datetime.now(dt.timezone.utc)


def _require_status(value: Any, field: str) -> str:
    if value not in RIDE_STATUSES:
        raise ValidationError(f"{field} must be one of {', '.join(RIDE_STATUSES)}", field=field)
    return value


# ===================== Requester Operations =====================

def create_ride(
    db: Session,
    requester_id: str,
    pickup,
    destination,
    fare: float | None = None,
    distance: float | None = None,
    duration: float | None = None,
    *,
    now: dt.datetime | None = None,
    fare_per_km: float | None = None,
    minutes_per_km: float | None = None,
) -> uuid.UUID:
    """
    Create a pending ride and return its id.

    Estimates the caller leaves out are derived from the straight-line
    distance between pickup and destination.

    Raises:
        ValidationError: malformed ids, points, addresses or estimates
    """
    validate_party_id(requester_id, field="requester_id")
    validate_place(pickup, field="pickup")
    validate_place(destination, field="destination")
    for field, value in (("fare", fare), ("distance", distance), ("duration", duration)):
        if value is not None:
            validate_positive(value, field=field)

    estimate = estimate_trip(
        pickup,
        destination,
        fare_per_km=fare_per_km or settings.FARE_PER_KM,
        minutes_per_km=minutes_per_km or settings.MINUTES_PER_KM,
        distance=distance,
        duration=duration,
        fare=fare,
    )

    created_at = _now(now)
    ride = Ride(
        requester_id=requester_id,
        driver_id=None,
        pickup_latitude=pickup.latitude,
        pickup_longitude=pickup.longitude,
        pickup_address=pickup.address,
        destination_latitude=destination.latitude,
        destination_longitude=destination.longitude,
        destination_address=destination.address,
        status=PENDING,
        fare=estimate.fare,
        distance=estimate.distance,
        duration=estimate.duration,
        created_at=created_at,
        updated_at=created_at,
    )
    ride_id = insert_ride(db, ride)

    logger.info(
        "Ride %s requested by %s: %s -> %s, distance=%skm fare=%s",
        ride_id,
        requester_id,
        pickup.address,
        destination.address,
        estimate.distance,
        estimate.fare,
    )
    return ride_id


def cancel_ride(db: Session, ride_id: Any, actor_id: str, reason: str | None = None, *, now: dt.datetime | None = None) -> Ride:
    """
    Cancel a non-terminal ride on behalf of its requester or its bound driver.

    The driver binding is released; ``cancelled_by`` keeps who cancelled.

    Raises:
        NotFound: unknown ride
        Forbidden: actor is neither the requester nor the bound driver
        InvalidTransition: ride already completed or cancelled
    """
    validate_party_id(actor_id, field="actor_id")
    now = _now(now)
    ride = get_ride(db, ride_id)

    # a lost compare-and-set means the status moved; re-evaluate against it
    for _ in range(len(RIDE_STATUSES)):
        if ride.status in TERMINAL_STATUSES:
            raise InvalidTransition(f"cannot cancel a ride that is {ride.status}", ride_id=str(ride.id), status=ride.status)
        if actor_id not in (ride.requester_id, ride.driver_id):
            logger.warning("Cancel of ride %s refused for %s", ride.id, actor_id)
            raise Forbidden("only the requester or the assigned driver may cancel this ride", ride_id=str(ride.id))

        previous = ride.status
        cancelled = patch_ride(
            db,
            ride.id,
            {
                "status": CANCELLED,
                "driver_id": None,
                "cancelled_at": now,
                "cancelled_by": actor_id,
                "cancellation_reason": reason,
            },
            Ride.status == previous,
            now=now,
        )
        ride = get_ride(db, ride.id)
        if cancelled:
            logger.info("Ride %s cancelled by %s (was %s)", ride.id, actor_id, previous)
            return ride

    raise InvalidTransition("ride changed while cancelling, try again", ride_id=str(ride.id), status=ride.status)


# ===================== Driver Operations =====================

def accept_ride(db: Session, ride_id: Any, driver_id: str, *, now: dt.datetime | None = None) -> Ride:
    """
    Bind ``driver_id`` to a pending ride.

    The status check and the write are one conditional UPDATE, so of several
    drivers accepting the same ride exactly one wins.

    Raises:
        NotFound: unknown ride
        Conflict: a driver is already bound (including the caller)
        InvalidTransition: the ride was cancelled
    """
    validate_party_id(driver_id, field="driver_id")
    now = _now(now)

    won = patch_ride(
        db,
        ride_id,
        {"status": ACCEPTED, "driver_id": driver_id, "accepted_at": now},
        Ride.status == PENDING,
        Ride.driver_id.is_(None),
        now=now,
    )
    ride = get_ride(db, ride_id)

    if won:
        logger.info("Ride %s accepted by driver %s", ride.id, driver_id)
        return ride

    if ride.driver_id is not None:
        logger.warning("Driver %s lost accept of ride %s (status %s)", driver_id, ride.id, ride.status)
        raise Conflict("ride already accepted by another driver", ride_id=str(ride.id), status=ride.status)
    raise InvalidTransition(f"cannot accept a ride that is {ride.status}", ride_id=str(ride.id), status=ride.status)


def _check_location_writer(ride: Ride, driver_id: str) -> None:
    if ride.driver_id is not None and ride.driver_id != driver_id:
        logger.warning("Location update for ride %s refused for driver %s", ride.id, driver_id)
        raise Forbidden("only the assigned driver may report its location", ride_id=str(ride.id))
    if ride.status not in ACTIVE_STATUSES:
        raise InvalidTransition(
            f"cannot report driver location while ride is {ride.status}", ride_id=str(ride.id), status=ride.status
        )


def update_driver_location(db: Session, ride_id: Any, driver_id: str, location, *, now: dt.datetime | None = None) -> Ride:
    validate_party_id(driver_id, field="driver_id")
    if location is None:
        raise ValidationError("location is required", field="location")
    validate_point(location.latitude, location.longitude, field="location")
    now = _now(now)

    ride = get_ride(db, ride_id)
    _check_location_writer(ride, driver_id)

    written = patch_ride(
        db,
        ride.id,
        {
            "driver_latitude": float(location.latitude),
            "driver_longitude": float(location.longitude),
            "driver_location_at": now,
        },
        Ride.driver_id == driver_id,
        Ride.status.in_(ACTIVE_STATUSES),
        now=now,
    )
    ride = get_ride(db, ride.id)
    if not written:
        _check_location_writer(ride, driver_id)
        raise InvalidTransition("ride changed while updating location, try again", ride_id=str(ride.id))

    logger.debug("Ride %s driver location %s,%s", ride.id, location.latitude, location.longitude)
    return ride


def advance_status(
    db: Session,
    ride_id: Any,
    expected_current: str,
    next_status: str,
    *,
    actor_id: str | None = None,
    now: dt.datetime | None = None,
) -> Ride:
    """
    Move a ride along accepted -> in_progress -> completed.

    Applies only when the stored status still equals ``expected_current``.
    When ``actor_id`` is given it must be the bound driver.
    """
    _require_status(expected_current, "expected_current")
    _require_status(next_status, "next")
    now = _now(now)

    ride = get_ride(db, ride_id)
    if ADVANCE_EDGES.get(expected_current) != next_status:
        raise InvalidTransition(
            f"transition {expected_current} -> {next_status} is not allowed", ride_id=str(ride.id), status=ride.status
        )

    conditions = [Ride.status == expected_current]
    if actor_id is not None:
        conditions.append(Ride.driver_id == actor_id)

    moved = patch_ride(
        db,
        ride.id,
        {"status": next_status, _ADVANCE_TIMESTAMPS[next_status]: now},
        *conditions,
        now=now,
    )
    ride = get_ride(db, ride.id)

    if moved:
        logger.info("Ride %s moved %s -> %s", ride.id, expected_current, next_status)
        return ride

    if ride.status != expected_current:
        raise InvalidTransition(
            f"ride is {ride.status}, expected {expected_current}", ride_id=str(ride.id), status=ride.status
        )
    logger.warning("Status change of ride %s refused for %s", ride.id, actor_id)
    raise Forbidden("only the assigned driver may advance this ride", ride_id=str(ride.id))


def update_ride_status(
    db: Session,
    ride_id: Any,
    status: str,
    *,
    actor_id: str | None = None,
    reason: str | None = None,
    now: dt.datetime | None = None,
) -> Ride:
    """Set a ride's status, routed through the operation owning that edge."""
    _require_status(status, "status")

    if status == CANCELLED:
        if actor_id is None:
            ride = get_ride(db, ride_id)
            if ride.status in TERMINAL_STATUSES:
                raise InvalidTransition(
                    f"cannot cancel a ride that is {ride.status}", ride_id=str(ride.id), status=ride.status
                )
            raise Forbidden("cancelling a ride requires an actor id", ride_id=str(ride.id))
        return cancel_ride(db, ride_id, actor_id, reason, now=now)

    ride = get_ride(db, ride_id)
    if status in (PENDING, ACCEPTED):
        raise InvalidTransition(
            f"status {status} cannot be set directly", ride_id=str(ride.id), status=ride.status
        )
    return advance_status(db, ride.id, ride.status, status, actor_id=actor_id, now=now)
