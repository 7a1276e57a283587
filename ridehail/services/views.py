"""Read-only ride projections for requester and driver screens.

Each view reads the store at call time and returns ``RideOut`` objects,
newest first. Nothing is cached; callers poll at their own cadence.
"""

from typing import Any

from sqlalchemy.orm import Session

from ridehail.models import PENDING, Ride
from ridehail.schemas import RideOut
from ridehail.services.store import find_rides, get_ride


def _to_out(rides) -> list[RideOut]:
    return [RideOut.from_ride(r) for r in rides]


def pending_rides(db: Session) -> list[RideOut]:
    return _to_out(find_rides(db, Ride.status == PENDING))


def ride_by_id(db: Session, ride_id: Any) -> RideOut:
    return RideOut.from_ride(get_ride(db, ride_id))


def rides_by_requester(db: Session, requester_id: str) -> list[RideOut]:
    return _to_out(find_rides(db, Ride.requester_id == requester_id))


def rides_by_driver(db: Session, driver_id: str) -> list[RideOut]:
    return _to_out(find_rides(db, Ride.driver_id == driver_id))
