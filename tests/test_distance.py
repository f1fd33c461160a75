import math

import pytest

from clickcollect.schemas.pickup import Coordinates, GeoPoint
from clickcollect.services.distance import EARTH_RADIUS_KM, haversine_km, number_or


class TestHaversine:

    def test_identical_points_are_zero(self):
        p = GeoPoint(lat=17.385, lng=78.4867, formatted="Hyderabad")
        assert haversine_km(p, p) == pytest.approx(0.0, abs=1e-9)

    def test_one_degree_of_latitude(self):
        a = Coordinates(lat=0.0, lng=0.0)
        b = Coordinates(lat=1.0, lng=0.0)
        assert haversine_km(a, b) == pytest.approx(EARTH_RADIUS_KM * math.pi / 180, rel=1e-9)

    def test_symmetric(self):
        delhi = Coordinates(lat=28.6139, lng=77.2090)
        mumbai = Coordinates(lat=19.0760, lng=72.8777)
        assert haversine_km(delhi, mumbai) == pytest.approx(haversine_km(mumbai, delhi))
        assert 1100 < haversine_km(delhi, mumbai) < 1200

    def test_antipodal_points_are_half_circumference(self):
        a = Coordinates(lat=10.0, lng=20.0)
        b = Coordinates(lat=-10.0, lng=-160.0)
        assert haversine_km(a, b) == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-9)

    def test_nearly_antipodal_along_equator(self):
        a = Coordinates(lat=0.0, lng=0.0)
        b = Coordinates(lat=0.0, lng=179.9999)
        assert haversine_km(a, b) == pytest.approx(EARTH_RADIUS_KM * math.radians(179.9999), rel=1e-9)

    def test_nearly_identical_points(self):
        a = Coordinates(lat=12.9716, lng=77.5946)
        b = Coordinates(lat=12.9716 + 1e-7, lng=77.5946)
        assert haversine_km(a, b) == pytest.approx(EARTH_RADIUS_KM * math.radians(1e-7), rel=1e-6)

    def test_crosses_antimeridian(self):
        a = Coordinates(lat=0.0, lng=179.5)
        b = Coordinates(lat=0.0, lng=-179.5)
        assert haversine_km(a, b) == pytest.approx(EARTH_RADIUS_KM * math.pi / 180, rel=1e-9)


class TestNumberOr:

    @pytest.mark.parametrize("value,expected", [
        ("50", 50.0),
        (25, 25.0),
        (0, 0.0),
        ("12.5", 12.5),
    ])
    def test_numeric_values(self, value, expected):
        assert number_or(value, 100) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", float("nan"), float("inf"), True, [], {}])
    def test_non_numeric_values_fall_back(self, value):
        assert number_or(value, 100) == 100
