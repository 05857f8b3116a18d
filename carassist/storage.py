"""CRUD helpers for users, cars, documents and stored notifications."""

from typing import Optional

from loguru import logger
from sqlmodel import Session, select

from carassist.models import Car, Document, Notification, User, utcnow
from carassist.schemas import (
    CarCreate,
    CarUpdate,
    DocumentCreate,
    DocumentUpdate,
    NotificationCreate,
    UserCreate,
    UserUpdate,
)


class DuplicateUserError(ValueError):
    """A user with that email already exists."""


# ─── Users ───

def create_user(session: Session, data: UserCreate) -> User:
    email = data.email.strip().lower()
    if get_user_by_email(session, email) is not None:
        raise DuplicateUserError(f"User already exists: {email}")
    user = User(full_name=data.full_name.strip(), email=email, phone=data.phone.strip())
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info(f"Created user {user.id}")
    return user


def get_user(session: Session, user_id: str) -> Optional[User]:
    return session.get(User, user_id)


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    statement = select(User).where(User.email == email.strip().lower())
    return session.exec(statement).first()


def update_user(session: Session, user_id: str, data: UserUpdate) -> Optional[User]:
    user = session.get(User, user_id)
    if user is None:
        return None
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(user, key, value.strip())
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


# ─── Cars ───

def create_car(session: Session, user_id: str, data: CarCreate) -> Car:
    car = Car(user_id=user_id, **data.model_dump())
    session.add(car)
    session.commit()
    session.refresh(car)
    logger.info(f"Created car {car.id} for user {user_id}")
    return car


def get_car(session: Session, car_id: str) -> Optional[Car]:
    return session.get(Car, car_id)


def list_cars(session: Session, user_id: str) -> list[Car]:
    """Cars owned by a user, newest first."""
    statement = select(Car).where(Car.user_id == user_id).order_by(Car.created_at.desc())
    return list(session.exec(statement).all())


def update_car(session: Session, car_id: str, data: CarUpdate) -> Optional[Car]:
    car = session.get(Car, car_id)
    if car is None:
        return None
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(car, key, value)
    car.updated_at = utcnow()
    session.add(car)
    session.commit()
    session.refresh(car)
    return car


def delete_car(session: Session, car_id: str) -> bool:
    """Delete a car together with its documents."""
    car = session.get(Car, car_id)
    if car is None:
        return False
    for doc in list_documents_for_car(session, car_id):
        session.delete(doc)
    session.delete(car)
    session.commit()
    logger.info(f"Deleted car {car_id}")
    return True


# ─── Documents ───

def create_document(session: Session, car: Car, data: DocumentCreate) -> Document:
    document = Document(car_id=car.id, user_id=car.user_id, **data.model_dump())
    session.add(document)
    session.commit()
    session.refresh(document)
    return document


def get_document(session: Session, document_id: str) -> Optional[Document]:
    return session.get(Document, document_id)


def list_documents_for_car(session: Session, car_id: str) -> list[Document]:
    statement = (
        select(Document)
        .where(Document.car_id == car_id)
        .order_by(Document.uploaded_at.desc())
    )
    return list(session.exec(statement).all())


def list_documents_for_user(session: Session, user_id: str) -> list[Document]:
    statement = (
        select(Document)
        .where(Document.user_id == user_id)
        .order_by(Document.uploaded_at.desc())
    )
    return list(session.exec(statement).all())


def update_document(session: Session, document_id: str, data: DocumentUpdate) -> Optional[Document]:
    document = session.get(Document, document_id)
    if document is None:
        return None
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(document, key, value)
    document.updated_at = utcnow()
    session.add(document)
    session.commit()
    session.refresh(document)
    return document


def delete_document(session: Session, document_id: str) -> bool:
    document = session.get(Document, document_id)
    if document is None:
        return False
    session.delete(document)
    session.commit()
    return True


# ─── Stored notifications ───

def create_notification(session: Session, user_id: str, data: NotificationCreate) -> Notification:
    notification = Notification(user_id=user_id, **data.model_dump())
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification


def list_notifications(session: Session, user_id: str) -> list[Notification]:
    statement = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
    )
    return list(session.exec(statement).all())


def mark_notification_read(session: Session, notification_id: str) -> bool:
    notification = session.get(Notification, notification_id)
    if notification is None:
        return False
    notification.is_read = True
    session.add(notification)
    session.commit()
    return True
