"""
tests/test_geo.py — Great-circle distance.

Covers the numeric edge cases: identical points, antipodes, poles, the
±180° seam, tiny separations, and output rounding.
"""

from __future__ import annotations

import math

import pytest

from regionmap.constants import EARTH_RADIUS_KM, KM_TO_MILES
from regionmap.geo import distance_payload, haversine_km, km_to_miles

HALF_CIRCUMFERENCE_KM = math.pi * EARTH_RADIUS_KM  # ~20015.09


class TestHaversine:

    def test_identical_points_zero(self):
        assert haversine_km(39.04, -77.49, 39.04, -77.49) == 0.0

    def test_identical_points_payload_zero(self):
        assert distance_payload(haversine_km(51.5, -0.13, 51.5, -0.13)) == {
            "km": 0.0,
            "miles": 0.0,
        }

    def test_one_degree_on_equator(self):
        expected = EARTH_RADIUS_KM * math.radians(1)
        assert haversine_km(0, 0, 0, 1) == pytest.approx(expected, rel=1e-12)

    def test_symmetric(self):
        a = haversine_km(35.68, 139.69, -33.87, 151.21)
        b = haversine_km(-33.87, 151.21, 35.68, 139.69)
        assert a == pytest.approx(b, rel=1e-12)

    @pytest.mark.parametrize(
        "lat1, lng1, lat2, lng2",
        [
            (0, 0, 0, 180),
            (0, 0, 0, -180),
            (90, 0, -90, 0),
            (45, 90, -45, -90),
            (10, 20, -10, -160),
        ],
    )
    def test_antipodes_half_circumference(self, lat1, lng1, lat2, lng2):
        d = haversine_km(lat1, lng1, lat2, lng2)
        assert d == pytest.approx(HALF_CIRCUMFERENCE_KM, abs=0.01)
        assert not math.isnan(d)

    def test_antipodal_payload(self):
        assert distance_payload(haversine_km(0, 0, 0, 180))["km"] == pytest.approx(20015.09, abs=0.01)

    def test_seam_crossing_is_short(self):
        """179.5 and -179.5 are one degree apart across the seam, not 359."""
        d = haversine_km(0, 179.5, 0, -179.5)
        assert d == pytest.approx(EARTH_RADIUS_KM * math.radians(1), rel=1e-9)

    def test_seam_endpoints_same_meridian(self):
        assert haversine_km(12.5, 180, 12.5, -180) == pytest.approx(0.0, abs=1e-9)

    def test_pole_longitude_irrelevant(self):
        assert haversine_km(90, 0, 90, 123.4) == pytest.approx(0.0, abs=1e-9)
        assert haversine_km(-90, -180, -90, 45) == pytest.approx(0.0, abs=1e-9)

    def test_pole_to_equator_quarter(self):
        assert haversine_km(90, 0, 0, 77) == pytest.approx(HALF_CIRCUMFERENCE_KM / 2, rel=1e-12)

    def test_tiny_separation_precise(self):
        """~1.1 m apart: the atan2 form keeps full relative precision."""
        d = haversine_km(10.0, 10.0, 10.00001, 10.0)
        expected = EARTH_RADIUS_KM * math.radians(0.00001)
        assert d == pytest.approx(expected, rel=1e-6)
        assert d > 0

    def test_known_city_pair(self):
        """London to Paris is about 343 km on the 6371 km sphere."""
        assert haversine_km(51.5074, -0.1278, 48.8566, 2.3522) == pytest.approx(343.5, abs=1.0)

    @pytest.mark.parametrize(
        "point",
        [
            (90.0001, 0, 0, 0),
            (0, 180.5, 0, 0),
            (0, 0, -91, 0),
            (0, 0, 0, -181),
        ],
    )
    def test_out_of_range_raises(self, point):
        with pytest.raises(ValueError, match="Invalid"):
            haversine_km(*point)


class TestDistancePayload:

    def test_rounds_to_two_places(self):
        assert distance_payload(1234.56789) == {
            "km": 1234.57,
            "miles": round(1234.56789 * KM_TO_MILES, 2),
        }

    def test_miles_from_unrounded_km(self):
        """miles is derived from raw km, not from the rounded km value."""
        km = 10.004
        payload = distance_payload(km)
        assert payload["km"] == 10.0
        assert payload["miles"] == 6.22
        assert round(payload["km"] * KM_TO_MILES, 2) == 6.21

    def test_km_to_miles_factor(self):
        assert km_to_miles(100.0) == pytest.approx(62.1371)
