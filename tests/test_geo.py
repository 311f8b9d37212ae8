import pytest

from hydrowatch.utils.geo import haversine_meters, latitude_band


def test_zero_distance():
    assert haversine_meters(10.0, 10.0, 10.0, 10.0) == 0


def test_one_degree_of_latitude():
    assert haversine_meters(0.0, 0.0, 1.0, 0.0) == pytest.approx(111195, rel=1e-3)


def test_plant1_example_distance_within_five_km():
    assert haversine_meters(10.0, 10.0, 10.001, 10.001) == pytest.approx(156, abs=2)


def test_latitude_band_contains_radius():
    low, high = latitude_band(10.0, 5000)
    assert haversine_meters(10.0, 0.0, high, 0.0) == pytest.approx(5000, rel=1e-6)
    assert haversine_meters(10.0, 0.0, low, 0.0) == pytest.approx(5000, rel=1e-6)


def test_latitude_band_clamped_at_poles():
    low, high = latitude_band(89.99, 10000)
    assert high == 90.0
    assert low < 89.99
