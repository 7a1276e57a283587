from dataclasses import dataclass
from math import atan2, cos, radians, sin, sqrt

EARTH_RADIUS_KM = 6371.0

# smallest derived estimate; a trip of a few metres still costs something
MIN_ESTIMATE = 0.01


@dataclass(frozen=True)
class TripEstimate:
    fare: float
    distance: float
    duration: float


def haversine_km(a_lat: float, a_lng: float, b_lat: float, b_lng: float) -> float:
    lat1 = radians(a_lat)
    lon1 = radians(a_lng)
    lat2 = radians(b_lat)
    lon2 = radians(b_lng)
    dlon = lon2 - lon1
    dlat = lat2 - lat1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(h), sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def _derived(value: float) -> float:
    if not value > 0:
        return 0.0
    return max(round(value, 2), MIN_ESTIMATE)


def estimate_trip(
    pickup,
    destination,
    *,
    fare_per_km: float,
    minutes_per_km: float,
    distance: float | None = None,
    duration: float | None = None,
    fare: float | None = None,
) -> TripEstimate:
    """Fill in whichever of fare/distance/duration the caller did not supply.

    Distance defaults to the straight-line distance between the two points;
    duration and fare scale linearly with the unrounded distance. Derived
    values of a non-empty trip never round down to zero; a zero-length trip
    stays at zero and is rejected by the store.
    """
    raw_distance = distance
    if raw_distance is None:
        raw_distance = haversine_km(pickup.latitude, pickup.longitude, destination.latitude, destination.longitude)
        distance = _derived(raw_distance)
    if duration is None:
        duration = _derived(raw_distance * minutes_per_km)
    if fare is None:
        fare = _derived(raw_distance * fare_per_km)
    return TripEstimate(fare=fare, distance=distance, duration=duration)
