import datetime as dt
import logging
import math
import uuid
from contextlib import contextmanager
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ridehail.errors import NotFound, StoreUnavailable, ValidationError
from ridehail.models import DRIVER_BOUND_STATUSES, RIDE_STATUSES, Ride

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = frozenset(
    {
        "status",
        "driver_id",
        "driver_latitude",
        "driver_longitude",
        "driver_location_at",
        "accepted_at",
        "started_at",
        "completed_at",
        "cancelled_at",
        "cancelled_by",
        "cancellation_reason",
    }
)


@contextmanager
def _guard(db: Session):
    try:
        yield
    except OperationalError as exc:
        db.rollback()
        logger.warning("Ride store operation failed: %s", exc.orig if exc.orig is not None else exc)
        raise StoreUnavailable() from exc


def parse_ride_id(ride_id: Any) -> uuid.UUID:
    if isinstance(ride_id, uuid.UUID):
        return ride_id
    try:
        return uuid.UUID(str(ride_id))
    except (TypeError, ValueError):
        raise NotFound("ride not found", ride_id=str(ride_id))


# -------------------------
# Validation
# -------------------------

def _number(value: Any, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field} must be a number", field=field)
    if not math.isfinite(value):
        raise ValidationError(f"{field} must be finite", field=field)
    return float(value)


def validate_point(latitude: Any, longitude: Any, *, field: str) -> None:
    lat = _number(latitude, f"{field}.latitude")
    lng = _number(longitude, f"{field}.longitude")
    if not -90.0 <= lat <= 90.0:
        raise ValidationError(f"{field}.latitude must be within [-90, 90]", field=f"{field}.latitude")
    if not -180.0 <= lng <= 180.0:
        raise ValidationError(f"{field}.longitude must be within [-180, 180]", field=f"{field}.longitude")


def validate_place(place: Any, *, field: str) -> None:
    if place is None:
        raise ValidationError(f"{field} is required", field=field)
    validate_point(getattr(place, "latitude", None), getattr(place, "longitude", None), field=field)
    address = getattr(place, "address", None)
    if not isinstance(address, str) or not address.strip():
        raise ValidationError(f"{field}.address must not be empty", field=f"{field}.address")


def validate_positive(value: Any, *, field: str) -> None:
    if _number(value, field) <= 0:
        raise ValidationError(f"{field} must be positive", field=field)


def validate_party_id(value: Any, *, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string", field=field)


def validate_new_ride(ride: Ride) -> None:
    validate_party_id(ride.requester_id, field="requester_id")
    validate_point(ride.pickup_latitude, ride.pickup_longitude, field="pickup")
    validate_point(ride.destination_latitude, ride.destination_longitude, field="destination")
    for field, address in (("pickup", ride.pickup_address), ("destination", ride.destination_address)):
        if not isinstance(address, str) or not address.strip():
            raise ValidationError(f"{field}.address must not be empty", field=f"{field}.address")
    validate_positive(ride.fare, field="fare")
    validate_positive(ride.distance, field="distance")
    validate_positive(ride.duration, field="duration")

    if ride.status not in RIDE_STATUSES:
        raise ValidationError(f"unknown ride status {ride.status!r}", field="status")
    if (ride.driver_id is not None) != (ride.status in DRIVER_BOUND_STATUSES):
        raise ValidationError("driver_id must be set exactly when a driver is bound", field="driver_id")


# -------------------------
# Primitives
# -------------------------

def insert_ride(db: Session, ride: Ride) -> uuid.UUID:
    validate_new_ride(ride)
    if ride.id is None:
        ride.id = uuid.uuid4()
    with _guard(db):
        db.add(ride)
        db.commit()
    return ride.id


def get_ride(db: Session, ride_id: Any) -> Ride:
    rid = parse_ride_id(ride_id)
    with _guard(db):
        ride = db.get(Ride, rid, populate_existing=True)
    if ride is None:
        raise NotFound("ride not found", ride_id=str(rid))
    return ride


def patch_ride(db: Session, ride_id: Any, fields: dict[str, Any], *conditions, now: dt.datetime | None = None) -> bool:
    """Apply ``fields`` to one ride in a single UPDATE.

    Extra ``conditions`` turn the update into a compare-and-set: returns False
    when the row exists but did not match them.
    """
    illegal = set(fields) - MUTABLE_FIELDS
    if illegal:
        raise ValidationError("immutable ride fields cannot be patched", fields=sorted(illegal))

    rid = parse_ride_id(ride_id)
    values = dict(fields)
    values["updated_at"] = now or dt.datetime.now(dt.timezone.utc)

    stmt = (
        update(Ride)
        .where(Ride.id == rid, *conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    with _guard(db):
        result = db.execute(stmt)
        db.commit()

    if result.rowcount == 1:
        return True

    with _guard(db):
        exists = db.get(Ride, rid) is not None
    if not exists:
        raise NotFound("ride not found", ride_id=str(rid))
    return False


def find_rides(db: Session, *criteria) -> list[Ride]:
    """Rides matching ``criteria``, newest first."""
    with _guard(db):
        return (
            db.query(Ride)
            .filter(*criteria)
            .order_by(Ride.created_at.desc(), Ride.id.desc())
            .populate_existing()
            .all()
        )
