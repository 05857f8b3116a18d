from datetime import date, timedelta

import pandas as pd
import pytest
from sqlmodel import Session, create_engine

from carassist import storage
from carassist.seed import DEMO_CSV, apply_offsets, main, normalize_columns, seed_dataframe, validate_columns

TODAY = date(2026, 1, 10)


@pytest.fixture()
def frame() -> pd.DataFrame:
    df = pd.DataFrame([
        {
            "Email": "Test@Test.com ",
            "Full_Name": "Test User",
            "phone": "0000000000",
            "car_name": "Daily Swift",
            "registration_number": "KA01AB1234",
            "year": 2019,
            "puc_expiry_days": 12,
            "insurance_expiry_days": None,
        },
        {
            "Email": "test@test.com",
            "Full_Name": "Test User",
            "phone": "0000000000",
            "car_name": "Weekend Creta",
            "registration_number": "KA05MN4321",
            "year": None,
            "puc_expiry_days": -3,
            "insurance_expiry_days": 28,
        },
    ])
    return apply_offsets(normalize_columns(df), TODAY)


def test_validate_columns_missing():
    with pytest.raises(ValueError, match="registration_number"):
        validate_columns(pd.DataFrame({"email": [], "full_name": [], "car_name": []}))


def test_apply_offsets(frame):
    assert "puc_expiry_days" not in frame.columns
    assert frame.loc[0, "puc_expiry"] == TODAY + timedelta(days=12)
    assert frame.loc[1, "puc_expiry"] == TODAY - timedelta(days=3)
    assert frame.loc[0, "insurance_expiry"] is None


def test_seed_dataframe_is_idempotent(session, frame):
    assert seed_dataframe(session, frame) == (1, 2)
    assert seed_dataframe(session, frame) == (0, 0)

    user = storage.get_user_by_email(session, "test@test.com")
    cars = {c.registration_number: c for c in storage.list_cars(session, user.id)}
    assert cars["KA01AB1234"].year == 2019
    assert cars["KA01AB1234"].insurance_expiry is None
    assert cars["KA05MN4321"].year is None
    assert cars["KA05MN4321"].insurance_expiry == TODAY + timedelta(days=28)


def test_main_loads_demo_csv(tmp_path):
    url = f"sqlite:///{tmp_path / 'seed.db'}"
    main(DEMO_CSV, url)
    with Session(create_engine(url)) as session:
        user = storage.get_user_by_email(session, "demo@demo.com")
        assert user is not None
        assert [c.car_name for c in storage.list_cars(session, user.id)] == ["Family Innova"]


def test_main_missing_csv(tmp_path):
    with pytest.raises(FileNotFoundError):
        main(tmp_path / "nope.csv", f"sqlite:///{tmp_path / 'seed.db'}")
