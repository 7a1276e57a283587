import pytest

from ridehail.schemas import Place
from ridehail.services.pricing import estimate_trip, haversine_km


def test_haversine_one_degree_of_longitude_at_equator():
    assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(111.19, abs=0.01)


def test_haversine_same_point_is_zero():
    assert haversine_km(-1.29, 36.82, -1.29, 36.82) == 0.0


def test_haversine_is_symmetric():
    a = (-1.2921, 36.8219)
    b = (-1.3192, 36.9278)
    assert haversine_km(*a, *b) == pytest.approx(haversine_km(*b, *a))


def test_estimate_trip_fills_everything_from_distance():
    est = estimate_trip(
        Place(latitude=0, longitude=0, address="A"),
        Place(latitude=0, longitude=1, address="B"),
        fare_per_km=15.0,
        minutes_per_km=3.0,
    )

    assert est.distance == 111.19
    assert est.duration == pytest.approx(333.58)
    assert est.fare == pytest.approx(1667.92)


def test_estimate_trip_keeps_supplied_values():
    est = estimate_trip(
        Place(latitude=0, longitude=0, address="A"),
        Place(latitude=0, longitude=1, address="B"),
        fare_per_km=15.0,
        minutes_per_km=3.0,
        distance=4.0,
        fare=99.0,
    )

    assert (est.fare, est.distance, est.duration) == (99.0, 4.0, 12.0)


def test_estimate_trip_uses_unrounded_distance():
    # about 4 metres; the fare scales from the raw distance, not the rounded one
    est = estimate_trip(
        Place(latitude=0, longitude=0, address="A"),
        Place(latitude=0, longitude=0.00004, address="B"),
        fare_per_km=15.0,
        minutes_per_km=3.0,
    )

    assert est.distance == 0.01
    assert est.duration == 0.01
    assert est.fare == 0.07


def test_estimate_trip_zero_length_stays_zero():
    est = estimate_trip(
        Place(latitude=1, longitude=1, address="A"),
        Place(latitude=1, longitude=1, address="A"),
        fare_per_km=15.0,
        minutes_per_km=3.0,
    )

    assert (est.fare, est.distance, est.duration) == (0.0, 0.0, 0.0)
