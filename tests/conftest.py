import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, timezone
from types import SimpleNamespace
from typing import Iterator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from carassist.main import app, get_location_resolver, get_mechanic_finder, get_now, get_session
from carassist.services.mechanics import LocationResolver, MechanicFinder

# 09:30 UTC, so calendar dates never sit exactly on "now"
FIXED_NOW = datetime(2026, 1, 10, 9, 30, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()

ORIGIN = (12.9716, 77.5946)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; records every POST."""

    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[Exception] = None):
        self.headers = {}
        self.response = response
        self.error = error
        self.calls: List[dict] = []

    def post(self, url, data=None, timeout=None):
        self.calls.append({"url": url, "data": data, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


class FakeGeocoder:
    def __init__(self, places: Optional[dict] = None, error: Optional[Exception] = None):
        self.places = places or {}
        self.error = error
        self.queries: List[str] = []

    def geocode(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        coords = self.places.get(query)
        if coords is None:
            return None
        return SimpleNamespace(latitude=coords[0], longitude=coords[1])


def node(osm_id: int, lat: float, lon: float, **tags) -> dict:
    return {"type": "node", "id": osm_id, "lat": lat, "lon": lon, "tags": tags}


def way(osm_id: int, lat: float, lon: float, **tags) -> dict:
    return {"type": "way", "id": osm_id, "center": {"lat": lat, "lon": lon}, "tags": tags}


def overpass_finder(elements: list, status_code: int = 200, text: str = "") -> MechanicFinder:
    payload = {"elements": elements} if status_code < 400 else None
    session = FakeSession(FakeResponse(status_code, payload, text))
    return MechanicFinder(base_url="https://overpass.test/api/interpreter", session=session)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture()
def session(engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture()
def finder() -> MechanicFinder:
    return overpass_finder([
        node(1, ORIGIN[0] + 0.01, ORIGIN[1], name="Sharma Motors", phone="+91 80 1234 5678"),
        way(2, ORIGIN[0] + 0.002, ORIGIN[1], **{"addr:street": "100 Feet Road", "addr:city": "Bengaluru"}),
        node(3, ORIGIN[0] + 0.05, ORIGIN[1], name="Too Far Garage"),
    ])


@pytest.fixture()
def geocoder() -> FakeGeocoder:
    return FakeGeocoder({"Indiranagar, Bengaluru": ORIGIN})


@pytest.fixture()
def client(engine, finder, geocoder) -> Iterator[TestClient]:
    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_now] = lambda: FIXED_NOW
    app.dependency_overrides[get_mechanic_finder] = lambda: finder
    app.dependency_overrides[get_location_resolver] = lambda: LocationResolver(geocoder=geocoder)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def user(client) -> dict:
    response = client.post("/users", json={
        "full_name": "Test User",
        "email": "test@test.com",
        "phone": "0000000000",
    })
    assert response.status_code == 201
    return response.json()


def days_from_today(days: int) -> str:
    return date.fromordinal(TODAY.toordinal() + days).isoformat()
