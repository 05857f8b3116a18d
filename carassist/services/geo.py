"""Great-circle distance and coordinate parsing helpers."""

import math
import re
from typing import Optional

# Mean Earth radius used for all distance calculations
EARTH_RADIUS_METERS = 6371000.0

_COORD_PAIR = re.compile(r"^\s*(-?\d+(?:\.\d*)?)\s*,\s*(-?\d+(?:\.\d*)?)\s*$")


class InvalidCoordinatesError(ValueError):
    """Raised when a latitude/longitude pair is missing or out of range."""


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in meters between two WGS84 points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def parse_float(value: Optional[str]) -> Optional[float]:
    """Parse a query-string number; None for blanks, NaN, infinities and junk."""
    if value is None or not str(value).strip():
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def validate_coordinates(lat: Optional[float], lng: Optional[float]) -> tuple[float, float]:
    if lat is None or lng is None:
        raise InvalidCoordinatesError("lat and lng are required numeric query params")
    if not -90 <= lat <= 90:
        raise InvalidCoordinatesError(f"lat must be between -90 and 90, got {lat}")
    if not -180 <= lng <= 180:
        raise InvalidCoordinatesError(f"lng must be between -180 and 180, got {lng}")
    return lat, lng


def parse_coordinate_pair(text: str) -> Optional[tuple[float, float]]:
    """Parse "12.97, 77.59" style input. Returns None if text is not a pair."""
    m = _COORD_PAIR.match(text or "")
    if not m:
        return None
    return validate_coordinates(float(m.group(1)), float(m.group(2)))
