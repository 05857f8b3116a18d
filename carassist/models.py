from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlmodel import Field, SQLModel


def new_id() -> str:
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentType(str, Enum):
    rc = "rc"
    insurance = "insurance"
    puc = "puc"
    license = "license"
    other = "other"


class NotificationType(str, Enum):
    expiry = "expiry"
    fine = "fine"
    reminder = "reminder"
    info = "info"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    full_name: str
    email: str = Field(index=True, unique=True)
    phone: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class Car(SQLModel, table=True):
    __tablename__ = "cars"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    car_name: str
    registration_number: str
    chassis_number: str = ""
    engine_number: str = ""
    make: str = ""
    model: str = ""
    year: Optional[int] = None
    color: str = ""
    fuel_type: str = ""
    puc_expiry: Optional[date] = None
    insurance_expiry: Optional[date] = None
    insurance_provider: str = ""
    notes: str = ""
    rc_book_url: Optional[str] = None
    insurance_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Document(SQLModel, table=True):
    __tablename__ = "documents"

    id: str = Field(default_factory=new_id, primary_key=True)
    car_id: str = Field(foreign_key="cars.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    type: DocumentType
    name: str
    expiry_date: Optional[date] = None
    file_url: Optional[str] = None
    uploaded_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    type: NotificationType
    title: str
    message: str
    car_id: Optional[str] = None
    document_id: Optional[str] = None
    expiry_date: Optional[date] = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class ExpiryStatus(str, Enum):
    expired = "expired"
    urgent = "urgent"
    expiring = "expiring"
    active = "active"
