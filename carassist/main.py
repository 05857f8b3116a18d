from datetime import datetime, timezone
from typing import Iterator, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlmodel import Session, SQLModel, create_engine

from carassist import storage
from carassist.config.settings import CORS_ORIGINS, DATABASE_URL, DEFAULT_SEARCH_RADIUS
from carassist.models import Car, Document, Notification, User
from carassist.schemas import (
    CarCreate,
    CarStatus,
    CarUpdate,
    DocumentCreate,
    DocumentUpdate,
    ExpiryNotification,
    MechanicSearchResponse,
    NotificationCreate,
    NotificationRead,
    UserCreate,
    UserUpdate,
)
from carassist.services.expiry import car_compliance_status, collect_expiry_notifications
from carassist.services.geo import parse_float, validate_coordinates
from carassist.services.mechanics import GeocodingError, LocationResolver, MechanicFinder, OverpassError


app = FastAPI(title="CarAssist")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SQLModel.metadata.create_all(engine)


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session


def get_now() -> datetime:
    return datetime.now(timezone.utc)


def get_mechanic_finder() -> Iterator[MechanicFinder]:
    # requests.Session is not shared across threadpool workers
    finder = MechanicFinder()
    try:
        yield finder
    finally:
        finder.session.close()


def get_location_resolver() -> LocationResolver:
    return LocationResolver()


@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Unexpected error"})


def _require_user(session: Session, user_id: str) -> User:
    user = storage.get_user(session, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found.")
    return user


def _require_car(session: Session, car_id: str) -> Car:
    car = storage.get_car(session, car_id)
    if car is None:
        raise HTTPException(status_code=404, detail="Car not found.")
    return car


# ─── Mechanics ───

@app.get("/api/mechanics", response_model=MechanicSearchResponse)
def nearby_mechanics(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    radius: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    finder: MechanicFinder = Depends(get_mechanic_finder),
    resolver: LocationResolver = Depends(get_location_resolver),
):
    search_radius = DEFAULT_SEARCH_RADIUS
    if radius is not None and radius.strip():
        parsed = parse_float(radius)
        if parsed is None:
            raise HTTPException(status_code=400, detail="radius must be a number of meters")
        search_radius = int(parsed)

    try:
        if lat is None and lng is None and location:
            coords = resolver.resolve(location)
            if coords is None:
                raise HTTPException(status_code=404, detail="Unable to locate that place.")
            user_lat, user_lng = coords
        else:
            user_lat, user_lng = validate_coordinates(parse_float(lat), parse_float(lng))
        results = finder.find_nearby(user_lat, user_lng, search_radius)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GeocodingError as e:
        raise HTTPException(status_code=502, detail={"error": "Geocoder error", "details": str(e)})
    except OverpassError as e:
        raise HTTPException(status_code=502, detail={"error": e.message, "details": e.details})

    return {
        "center": {"lat": round(user_lat, 6), "lng": round(user_lng, 6)},
        "radius": search_radius,
        "results": results,
    }


# ─── Users ───

@app.post("/users", response_model=User, status_code=201)
def register_user(payload: UserCreate, session: Session = Depends(get_session)):
    try:
        return storage.create_user(session, payload)
    except storage.DuplicateUserError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/users/{user_id}", response_model=User)
def read_user(user_id: str, session: Session = Depends(get_session)):
    return _require_user(session, user_id)


@app.patch("/users/{user_id}", response_model=User)
def edit_user(user_id: str, payload: UserUpdate, session: Session = Depends(get_session)):
    user = storage.update_user(session, user_id, payload)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found.")
    return user


# ─── Cars ───

@app.post("/users/{user_id}/cars", response_model=Car, status_code=201)
def add_car(user_id: str, payload: CarCreate, session: Session = Depends(get_session)):
    _require_user(session, user_id)
    return storage.create_car(session, user_id, payload)


@app.get("/users/{user_id}/cars", response_model=List[Car])
def list_user_cars(user_id: str, session: Session = Depends(get_session)):
    _require_user(session, user_id)
    return storage.list_cars(session, user_id)


@app.get("/cars/{car_id}", response_model=Car)
def read_car(car_id: str, session: Session = Depends(get_session)):
    return _require_car(session, car_id)


@app.patch("/cars/{car_id}", response_model=Car)
def edit_car(car_id: str, payload: CarUpdate, session: Session = Depends(get_session)):
    car = storage.update_car(session, car_id, payload)
    if car is None:
        raise HTTPException(status_code=404, detail="Car not found.")
    return car


@app.delete("/cars/{car_id}", status_code=204)
def remove_car(car_id: str, session: Session = Depends(get_session)):
    if not storage.delete_car(session, car_id):
        raise HTTPException(status_code=404, detail="Car not found.")


@app.get("/cars/{car_id}/status", response_model=CarStatus)
def car_status(
    car_id: str,
    session: Session = Depends(get_session),
    now: datetime = Depends(get_now),
):
    return car_compliance_status(_require_car(session, car_id), now)


# ─── Documents ───

@app.post("/cars/{car_id}/documents", response_model=Document, status_code=201)
def add_document(car_id: str, payload: DocumentCreate, session: Session = Depends(get_session)):
    car = _require_car(session, car_id)
    return storage.create_document(session, car, payload)


@app.get("/cars/{car_id}/documents", response_model=List[Document])
def list_car_documents(car_id: str, session: Session = Depends(get_session)):
    _require_car(session, car_id)
    return storage.list_documents_for_car(session, car_id)


@app.get("/users/{user_id}/documents", response_model=List[Document])
def list_user_documents(user_id: str, session: Session = Depends(get_session)):
    _require_user(session, user_id)
    return storage.list_documents_for_user(session, user_id)


@app.patch("/documents/{document_id}", response_model=Document)
def edit_document(document_id: str, payload: DocumentUpdate, session: Session = Depends(get_session)):
    document = storage.update_document(session, document_id, payload)
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found.")
    return document


@app.delete("/documents/{document_id}", status_code=204)
def remove_document(document_id: str, session: Session = Depends(get_session)):
    if not storage.delete_document(session, document_id):
        raise HTTPException(status_code=404, detail="Document not found.")


# ─── Notifications ───

@app.get("/users/{user_id}/notifications/expiry", response_model=List[ExpiryNotification])
def expiry_notifications(
    user_id: str,
    session: Session = Depends(get_session),
    now: datetime = Depends(get_now),
):
    _require_user(session, user_id)
    return collect_expiry_notifications(session, user_id, now)


@app.get("/users/{user_id}/notifications", response_model=List[NotificationRead])
def notification_feed(
    user_id: str,
    session: Session = Depends(get_session),
    now: datetime = Depends(get_now),
):
    """Computed expiry reminders first, then stored fine/reminder/info notices."""
    _require_user(session, user_id)
    computed = collect_expiry_notifications(session, user_id, now)
    stored = [
        NotificationRead.model_validate(n, from_attributes=True)
        for n in storage.list_notifications(session, user_id)
    ]
    return [*computed, *stored]


@app.post("/users/{user_id}/notifications", response_model=Notification, status_code=201)
def add_notification(user_id: str, payload: NotificationCreate, session: Session = Depends(get_session)):
    _require_user(session, user_id)
    return storage.create_notification(session, user_id, payload)


@app.post("/notifications/{notification_id}/read", status_code=204)
def read_notification(notification_id: str, session: Session = Depends(get_session)):
    if not storage.mark_notification_read(session, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found.")
