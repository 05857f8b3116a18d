from datetime import date, timedelta
from pathlib import Path
from typing import Optional

import pandas as pd
from loguru import logger
from sqlmodel import Session, SQLModel, create_engine

from carassist import storage
from carassist.config.settings import DATABASE_URL, REFERENCE_DIR
from carassist.schemas import CarCreate, UserCreate

DEMO_CSV = REFERENCE_DIR / "demo_garage.csv"


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [col.strip().lower() for col in df.columns]
    return df


def validate_columns(df: pd.DataFrame) -> None:
    required = {
        "email",
        "full_name",
        "car_name",
        "registration_number",
    }
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")


def apply_offsets(df: pd.DataFrame, today: date) -> pd.DataFrame:
    """Turn *_expiry_days offsets into absolute dates so demo data never goes stale."""
    df = df.copy()
    for kind in ("puc", "insurance"):
        offset_col = f"{kind}_expiry_days"
        if offset_col not in df.columns:
            continue
        offsets = pd.to_numeric(df[offset_col], errors="coerce")
        df[f"{kind}_expiry"] = [
            None if pd.isna(days) else today + timedelta(days=int(days))
            for days in offsets
        ]
        df = df.drop(columns=[offset_col])

    return df


def _clean(value) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return str(value).strip()


def seed_dataframe(session: Session, df: pd.DataFrame) -> tuple[int, int]:
    """Create missing users and their cars. Returns (users created, cars created)."""
    users_created = 0
    cars_created = 0
    car_fields = set(CarCreate.model_fields)

    for row in df.to_dict(orient="records"):
        email = _clean(row["email"]).lower()
        user = storage.get_user_by_email(session, email)
        if user is None:
            user = storage.create_user(session, UserCreate(
                full_name=_clean(row["full_name"]),
                email=email,
                phone=_clean(row.get("phone")) or "",
            ))
            users_created += 1

        existing = {c.registration_number for c in storage.list_cars(session, user.id)}
        if _clean(row["registration_number"]) in existing:
            continue

        car_data = {}
        for key in car_fields & set(row):
            value = row[key]
            if key == "year":
                car_data[key] = None if pd.isna(value) else int(value)
            elif key in ("puc_expiry", "insurance_expiry"):
                car_data[key] = None if value is None or pd.isna(value) else value
            elif _clean(value) is not None:
                car_data[key] = _clean(value)
        storage.create_car(session, user.id, CarCreate(**car_data))
        cars_created += 1

    return users_created, cars_created


def main(csv_path: Optional[Path] = None, database_url: str = DATABASE_URL) -> None:
    csv_path = csv_path or DEMO_CSV
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found at {csv_path}")

    df = pd.read_csv(csv_path, dtype={"phone": str})
    df = normalize_columns(df)
    validate_columns(df)
    df = apply_offsets(df, date.today())

    engine = create_engine(database_url)
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        users, cars = seed_dataframe(session, df)
    logger.info(f"Seeded {users} users and {cars} cars from {csv_path}")


if __name__ == "__main__":
    main()
