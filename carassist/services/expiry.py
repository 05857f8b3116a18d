"""
Expiry Reminders - Recomputes compliance reminders from stored dates.

Sources of expiry dates:
- Documents (RC, insurance, PUC, licence, other) with an expiry_date
- Car PUC and insurance expiry dates

Nothing is persisted: every call rebuilds the reminders from the current data.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional

from sqlmodel import Session

from carassist import storage
from carassist.config.settings import EXPIRY_WINDOW_DAYS, URGENT_WINDOW_DAYS
from carassist.models import Car, Document, DocumentType, ExpiryStatus
from carassist.schemas import CarStatus, ExpiryNotification

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class ExpiringItem:
    """One dated compliance item, before it becomes a notification."""
    key: str
    label: str
    expiry_date: date
    car: Optional[Car]
    car_id: Optional[str]
    document_id: Optional[str] = None


def as_utc_midnight(value: date) -> datetime:
    """Calendar dates are interpreted as 00:00 UTC on that day."""
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _aware(now: datetime) -> datetime:
    return now if now.tzinfo else now.replace(tzinfo=timezone.utc)


def days_until_expiry(expiry: date, now: datetime) -> int:
    """ceil((expiry - now) / 1 day); zero or negative once the date has passed."""
    delta = as_utc_midnight(expiry) - _aware(now)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def is_within_window(expiry: date, now: datetime, window_days: int = EXPIRY_WINDOW_DAYS) -> bool:
    return as_utc_midnight(expiry) <= _aware(now) + timedelta(days=window_days)


def classify(days: int, window_days: int = EXPIRY_WINDOW_DAYS) -> ExpiryStatus:
    if days <= 0:
        return ExpiryStatus.expired
    if days <= URGENT_WINDOW_DAYS:
        return ExpiryStatus.urgent
    if days <= window_days:
        return ExpiryStatus.expiring
    return ExpiryStatus.active


def describe(days: int) -> str:
    if days > 1:
        return f"expires in {days} days"
    if days == 1:
        return "expires in 1 day"
    if days == 0:
        return "expires today"
    if days == -1:
        return "expired 1 day ago"
    return f"expired {abs(days)} days ago"


def _collect_items(documents: Iterable[Document], cars: Iterable[Car]) -> list[ExpiringItem]:
    cars_by_id = {car.id: car for car in cars}
    items: list[ExpiringItem] = []

    for doc in documents:
        if doc.expiry_date:
            items.append(ExpiringItem(
                key=f"expiry:document:{doc.id}",
                label=DocumentType(doc.type).value,
                expiry_date=doc.expiry_date,
                car=cars_by_id.get(doc.car_id),
                car_id=doc.car_id,
                document_id=doc.id,
            ))

    for car in cars_by_id.values():
        if car.puc_expiry:
            items.append(ExpiringItem(
                key=f"expiry:car:{car.id}:puc",
                label="PUC",
                expiry_date=car.puc_expiry,
                car=car,
                car_id=car.id,
            ))
        if car.insurance_expiry:
            items.append(ExpiringItem(
                key=f"expiry:car:{car.id}:insurance",
                label="insurance",
                expiry_date=car.insurance_expiry,
                car=car,
                car_id=car.id,
            ))
    return items


def _title(item: ExpiringItem, days: int) -> str:
    if item.document_id is not None:
        name = item.label.upper()
    else:
        name = item.label if item.label.isupper() else item.label.capitalize()
    if days <= 0:
        return f"{name} expired!"
    return f"{name} expiring soon!"


def check_document_expiry(
    user_id: str,
    documents: Iterable[Document],
    cars: Iterable[Car],
    now: datetime,
    window_days: int = EXPIRY_WINDOW_DAYS,
) -> list[ExpiryNotification]:
    """
    Build expiry notifications for every dated item due within `window_days`.

    Items already past their date are included (days_until_expiry <= 0).
    Output is ordered by days_until_expiry, soonest first.
    """
    now = _aware(now)
    notifications: list[ExpiryNotification] = []

    for item in _collect_items(documents, cars):
        if not is_within_window(item.expiry_date, now, window_days):
            continue
        days = days_until_expiry(item.expiry_date, now)
        car_name = item.car.car_name if item.car and item.car.car_name else "Your car"
        notifications.append(ExpiryNotification(
            id=item.key,
            user_id=user_id,
            title=_title(item, days),
            message=f"{car_name}'s {item.label} {describe(days)}",
            car_id=item.car_id,
            document_id=item.document_id,
            expiry_date=item.expiry_date,
            days_until_expiry=days,
            status=classify(days, window_days),
            created_at=now,
        ))

    notifications.sort(key=lambda n: n.days_until_expiry)
    return notifications


def collect_expiry_notifications(
    session: Session,
    user_id: str,
    now: Optional[datetime] = None,
    window_days: int = EXPIRY_WINDOW_DAYS,
) -> list[ExpiryNotification]:
    """Load a user's documents and cars and recompute their expiry notifications."""
    documents = storage.list_documents_for_user(session, user_id)
    cars = storage.list_cars(session, user_id)
    return check_document_expiry(
        user_id,
        documents,
        cars,
        now or datetime.now(timezone.utc),
        window_days,
    )


def car_compliance_status(car: Car, now: datetime, window_days: int = EXPIRY_WINDOW_DAYS) -> CarStatus:
    """Overall PUC/insurance state of a car: expired, expiring soon or active."""
    puc_days = days_until_expiry(car.puc_expiry, now) if car.puc_expiry else None
    insurance_days = days_until_expiry(car.insurance_expiry, now) if car.insurance_expiry else None
    dated = [d for d in (puc_days, insurance_days) if d is not None]

    if any(d <= 0 for d in dated):
        status = "expired"
    elif any(is_within_window(e, now, window_days) for e in (car.puc_expiry, car.insurance_expiry) if e):
        status = "expiring soon"
    else:
        status = "active"

    return CarStatus(
        car_id=car.id,
        status=status,
        puc_days_left=puc_days,
        insurance_days_left=insurance_days,
    )
