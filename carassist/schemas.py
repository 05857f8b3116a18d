from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from carassist.models import DocumentType, ExpiryStatus, NotificationType


def reject_null(value):
    """Partial updates may omit a NOT NULL column but never set it to null."""
    if value is None:
        raise ValueError("may be omitted but not null")
    return value


class UserCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str = ""


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None

    @field_validator("full_name", "phone")
    @classmethod
    def _not_null(cls, value):
        return reject_null(value)


class CarCreate(BaseModel):
    car_name: str = Field(..., min_length=1)
    registration_number: str = Field(..., min_length=1)
    chassis_number: str = ""
    engine_number: str = ""
    make: str = ""
    model: str = ""
    year: Optional[int] = Field(default=None, ge=1900)
    color: str = ""
    fuel_type: str = ""
    puc_expiry: Optional[date] = None
    insurance_expiry: Optional[date] = None
    insurance_provider: str = ""
    notes: str = ""
    rc_book_url: Optional[str] = None
    insurance_url: Optional[str] = None


class CarUpdate(BaseModel):
    """Partial car update; only fields that are sent are applied."""
    car_name: Optional[str] = Field(default=None, min_length=1)
    registration_number: Optional[str] = Field(default=None, min_length=1)
    chassis_number: Optional[str] = None
    engine_number: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1900)
    color: Optional[str] = None
    fuel_type: Optional[str] = None
    puc_expiry: Optional[date] = None
    insurance_expiry: Optional[date] = None
    insurance_provider: Optional[str] = None
    notes: Optional[str] = None
    rc_book_url: Optional[str] = None
    insurance_url: Optional[str] = None

    @field_validator(
        "car_name", "registration_number", "chassis_number", "engine_number", "make",
        "model", "color", "fuel_type", "insurance_provider", "notes",
    )
    @classmethod
    def _not_null(cls, value):
        return reject_null(value)


class DocumentCreate(BaseModel):
    type: DocumentType
    name: str = Field(..., min_length=1)
    expiry_date: Optional[date] = None
    file_url: Optional[str] = None


class DocumentUpdate(BaseModel):
    type: Optional[DocumentType] = None
    name: Optional[str] = Field(default=None, min_length=1)
    expiry_date: Optional[date] = None
    file_url: Optional[str] = None

    @field_validator("type", "name")
    @classmethod
    def _not_null(cls, value):
        return reject_null(value)


class NotificationCreate(BaseModel):
    type: NotificationType = NotificationType.info
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    car_id: Optional[str] = None
    document_id: Optional[str] = None
    expiry_date: Optional[date] = None


class NotificationRead(BaseModel):
    """Feed entry: a stored notification or a computed expiry reminder."""
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    car_id: Optional[str] = None
    document_id: Optional[str] = None
    expiry_date: Optional[date] = None
    days_until_expiry: Optional[int] = None
    status: Optional[ExpiryStatus] = None
    is_read: bool = False
    created_at: datetime


class ExpiryNotification(NotificationRead):
    """Expiry reminder computed on the fly from a document or car date."""
    type: NotificationType = NotificationType.expiry
    expiry_date: date
    days_until_expiry: int
    status: ExpiryStatus


class CarStatus(BaseModel):
    car_id: str
    status: str
    puc_days_left: Optional[int] = None
    insurance_days_left: Optional[int] = None


class Mechanic(BaseModel):
    id: str = Field(..., description="OSM element key, e.g. node/123")
    name: str
    lat: float
    lng: float
    distance_meters: float = Field(..., ge=0)
    address: Optional[str] = None
    phone: Optional[str] = None
    opening_hours: Optional[str] = None


class MechanicSearchResponse(BaseModel):
    center: dict
    radius: int
    results: List[Mechanic]
