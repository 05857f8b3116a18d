"""
Nearby mechanic search

Sources:
- OpenStreetMap Overpass API (free, no key required)
- Nominatim geocoder (via geopy) for free-text locations
"""

from typing import Optional

import requests
from geopy.exc import GeopyError
from geopy.geocoders import Nominatim
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from carassist.config.settings import (
    DEFAULT_SEARCH_RADIUS,
    GEOCODER_USER_AGENT,
    MAX_SEARCH_RADIUS,
    MECHANIC_RESULT_LIMIT,
    OVERPASS_URL,
    REQUEST_TIMEOUT,
    load_sources_config,
)
from carassist.schemas import Mechanic
from carassist.services.geo import haversine_meters, parse_coordinate_pair, validate_coordinates

DEFAULT_MECHANIC_NAME = "Mechanic / Car Repair"
ADDRESS_PARTS = ("addr:housenumber", "addr:street", "addr:city", "addr:state", "addr:postcode")


class OverpassError(Exception):
    """Upstream geodata failure; surfaced to clients as a 502."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: str = ""):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class GeocodingError(Exception):
    """Geocoder unreachable or returned an error."""


def format_address(tags: dict) -> Optional[str]:
    """addr:full, else the non-empty addr:* parts joined with commas."""
    if tags.get("addr:full"):
        return tags["addr:full"]
    parts = [tags.get(key) for key in ADDRESS_PARTS]
    joined = ", ".join(p for p in parts if p)
    return joined or None


def element_center(element: dict) -> Optional[tuple[float, float]]:
    """Nodes carry lat/lon directly; ways and relations carry a center."""
    if element.get("type") == "node":
        if element.get("lat") is None or element.get("lon") is None:
            return None
        return element["lat"], element["lon"]
    center = element.get("center")
    if not center or center.get("lat") is None or center.get("lon") is None:
        return None
    return center["lat"], center["lon"]


def element_to_mechanic(element: dict, origin_lat: float, origin_lng: float) -> Optional[Mechanic]:
    center = element_center(element)
    if center is None:
        return None
    tags = element.get("tags") or {}
    lat, lng = center
    return Mechanic(
        id=f"{element.get('type')}/{element.get('id')}",
        name=tags.get("name") or DEFAULT_MECHANIC_NAME,
        lat=lat,
        lng=lng,
        distance_meters=haversine_meters(origin_lat, origin_lng, lat, lng),
        address=format_address(tags),
        phone=tags.get("phone") or tags.get("contact:phone") or None,
        opening_hours=tags.get("opening_hours") or None,
    )


def rank_mechanics(mechanics: list[Mechanic], radius: float, limit: int = MECHANIC_RESULT_LIMIT) -> list[Mechanic]:
    """Drop anything beyond radius, closest first, keep the top `limit`."""
    within = [m for m in mechanics if m.distance_meters <= radius]
    within.sort(key=lambda m: m.distance_meters)
    return within[:limit]


class MechanicFinder:
    """Find car repair shops around a point via the Overpass API."""

    def __init__(self, base_url: Optional[str] = None, session: Optional[requests.Session] = None):
        self.config = load_sources_config()["overpass"]
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": GEOCODER_USER_AGENT,
        })
        self.base_url = base_url or OVERPASS_URL

    def build_query(self, lat: float, lng: float, radius: int) -> str:
        """Overpass QL for every configured car repair selector around the point."""
        around = f"(around:{radius},{lat},{lng})"
        lines = [
            f'  {s["element"]}["{s["key"]}"="{s["value"]}"]{around};'
            for s in self.config["selectors"]
        ]
        return (
            f"[out:json][timeout:{self.config.get('timeout', 25)}];\n"
            "(\n"
            + "\n".join(lines)
            + "\n);\n"
            f"out center tags {self.config.get('max_elements', 50)};\n"
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )
    def _post_overpass(self, query: str) -> requests.Response:
        """POST the query form-encoded, retrying transient network errors."""
        return self.session.post(self.base_url, data={"data": query}, timeout=REQUEST_TIMEOUT)

    def fetch_elements(self, lat: float, lng: float, radius: int) -> list[dict]:
        query = self.build_query(lat, lng, radius)
        try:
            resp = self._post_overpass(query)
        except requests.RequestException as e:
            logger.warning(f"Overpass request failed at ({lat}, {lng}): {e}")
            raise OverpassError("Overpass API error", details=str(e)) from e

        if not resp.ok:
            logger.warning(f"Overpass returned HTTP {resp.status_code} for ({lat}, {lng})")
            raise OverpassError("Overpass API error", status_code=resp.status_code, details=resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise OverpassError("Overpass API error", status_code=resp.status_code, details="Invalid JSON response") from e
        if not isinstance(data, dict):
            raise OverpassError("Overpass API error", status_code=resp.status_code, details="Unexpected response shape")
        return data.get("elements") or []

    def find_nearby(
        self,
        lat: float,
        lng: float,
        radius: int = DEFAULT_SEARCH_RADIUS,
        limit: int = MECHANIC_RESULT_LIMIT,
    ) -> list[Mechanic]:
        """
        Closest car repair shops around (lat, lng).
        Results are within `radius` meters, sorted by distance, at most `limit` long.
        """
        lat, lng = validate_coordinates(lat, lng)
        if radius <= 0 or radius > MAX_SEARCH_RADIUS:
            raise ValueError(f"radius must be between 1 and {MAX_SEARCH_RADIUS} meters, got {radius}")

        elements = self.fetch_elements(lat, lng, radius)
        candidates = []
        for el in elements:
            mechanic = element_to_mechanic(el, lat, lng)
            if mechanic is not None:
                candidates.append(mechanic)

        results = rank_mechanics(candidates, radius, limit)
        logger.info(f"Overpass: {len(results)} mechanics within {radius}m of ({lat:.5f}, {lng:.5f}) "
                    f"({len(elements)} elements returned)")
        return results


class LocationResolver:
    """Turn a free-text location into coordinates."""

    def __init__(self, geocoder=None):
        self.config = load_sources_config().get("geocoder", {})
        self.geocoder = geocoder or Nominatim(
            user_agent=GEOCODER_USER_AGENT,
            timeout=self.config.get("timeout", 10),
        )

    def resolve(self, text: str) -> Optional[tuple[float, float]]:
        """Coordinate pairs are parsed directly; anything else goes to the geocoder."""
        pair = parse_coordinate_pair(text)
        if pair is not None:
            return pair
        try:
            location = self.geocoder.geocode(text.strip())
        except GeopyError as e:
            logger.warning(f"Geocoding failed for {text!r}: {e}")
            raise GeocodingError(str(e)) from e
        if not location:
            return None
        return location.latitude, location.longitude
