import datetime as dt
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


RideStatusLiteral = Literal["pending", "accepted", "in_progress", "completed", "cancelled"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GeoPoint(BaseModel):
    latitude: float = Field(..., validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(..., validation_alias=AliasChoices("longitude", "lng"))


class Place(GeoPoint):
    address: str


# =====================
# Request bodies
# =====================

class RideCreate(_CamelModel):
    requester_id: str
    pickup: Place
    destination: Place
    fare: Optional[float] = None
    distance: Optional[float] = None
    duration: Optional[float] = None


class RideCreated(BaseModel):
    id: str


class AcceptRideBody(_CamelModel):
    driver_id: str


class DriverLocationBody(_CamelModel):
    driver_id: str
    location: GeoPoint


class RideStatusBody(_CamelModel):
    status: str
    actor_id: Optional[str] = None


class AdvanceStatusBody(_CamelModel):
    expected_current: str
    next: str
    actor_id: Optional[str] = None


class CancelRideBody(_CamelModel):
    actor_id: str
    reason: Optional[str] = None


# =====================
# Ride projection
# =====================

class RideOut(_CamelModel):
    id: str
    requester_id: str
    driver_id: Optional[str] = None
    pickup: Place
    destination: Place
    status: RideStatusLiteral
    fare: float
    distance: float
    duration: float
    created_at: dt.datetime
    updated_at: Optional[dt.datetime] = None
    driver_location: Optional[GeoPoint] = None

    @classmethod
    def from_ride(cls, ride) -> "RideOut":
        driver_location = None
        if ride.driver_latitude is not None and ride.driver_longitude is not None:
            driver_location = GeoPoint(latitude=ride.driver_latitude, longitude=ride.driver_longitude)
        return cls(
            id=str(ride.id),
            requester_id=ride.requester_id,
            driver_id=ride.driver_id,
            pickup=Place(
                latitude=ride.pickup_latitude,
                longitude=ride.pickup_longitude,
                address=ride.pickup_address,
            ),
            destination=Place(
                latitude=ride.destination_latitude,
                longitude=ride.destination_longitude,
                address=ride.destination_address,
            ),
            status=ride.status,
            fare=float(ride.fare),
            distance=float(ride.distance),
            duration=float(ride.duration),
            created_at=ride.created_at,
            updated_at=ride.updated_at,
            driver_location=driver_location,
        )


class OkOut(BaseModel):
    ok: bool = True


__all__ = [
    "GeoPoint",
    "Place",
    "RideCreate",
    "RideCreated",
    "AcceptRideBody",
    "DriverLocationBody",
    "RideStatusBody",
    "AdvanceStatusBody",
    "CancelRideBody",
    "RideOut",
    "OkOut",
    "RideStatusLiteral",
]
