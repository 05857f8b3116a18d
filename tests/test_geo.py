"""Tests for distance and coordinate helpers."""
import math

import pytest

from carassist.services.geo import (
    EARTH_RADIUS_METERS,
    InvalidCoordinatesError,
    haversine_meters,
    parse_coordinate_pair,
    parse_float,
    validate_coordinates,
)


class TestHaversine:

    def test_identical_points_are_zero(self):
        assert haversine_meters(12.9716, 77.5946, 12.9716, 77.5946) == 0
        assert haversine_meters(-33.86, 151.21, -33.86, 151.21) == 0

    def test_one_degree_of_latitude(self):
        expected = EARTH_RADIUS_METERS * math.pi / 180
        assert haversine_meters(0, 0, 1, 0) == pytest.approx(expected)

    def test_symmetric(self):
        a = haversine_meters(19.076, 72.8777, 28.7041, 77.1025)
        b = haversine_meters(28.7041, 77.1025, 19.076, 72.8777)
        assert a == pytest.approx(b)

    def test_mumbai_to_delhi(self):
        """Roughly 1150 km as the crow flies."""
        d = haversine_meters(19.076, 72.8777, 28.7041, 77.1025)
        assert 1_100_000 < d < 1_200_000

    def test_antipodes(self):
        assert haversine_meters(0, 0, 0, 180) == pytest.approx(math.pi * EARTH_RADIUS_METERS)


class TestParsing:

    @pytest.mark.parametrize("raw", [None, "", "  ", "abc", "nan", "inf", "-Infinity"])
    def test_parse_float_rejects(self, raw):
        assert parse_float(raw) is None

    def test_parse_float_accepts(self):
        assert parse_float("12.5") == 12.5
        assert parse_float(" -7 ") == -7.0

    def test_validate_requires_both(self):
        with pytest.raises(InvalidCoordinatesError, match="lat and lng are required"):
            validate_coordinates(12.0, None)

    def test_validate_ranges(self):
        with pytest.raises(InvalidCoordinatesError):
            validate_coordinates(91, 0)
        with pytest.raises(InvalidCoordinatesError):
            validate_coordinates(0, -181)
        assert validate_coordinates(-90, 180) == (-90, 180)

    def test_coordinate_pair(self):
        assert parse_coordinate_pair("12.97, 77.59") == (12.97, 77.59)
        assert parse_coordinate_pair("-33.8,151.2") == (-33.8, 151.2)

    def test_coordinate_pair_not_a_pair(self):
        assert parse_coordinate_pair("Indiranagar, Bengaluru") is None
        assert parse_coordinate_pair("") is None

    def test_coordinate_pair_out_of_range(self):
        with pytest.raises(InvalidCoordinatesError):
            parse_coordinate_pair("123.0, 77.0")
