from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from io import BytesIO

from fastapi.testclient import TestClient
from openpyxl import load_workbook
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.database import Base, get_session
from affiliate_desk.exporting import export_full_workbook
from affiliate_desk.main import app
from affiliate_desk.routers.auth import get_current_user
from affiliate_desk.schemas import AccountCreate, CategoryCreate, SalesDataCreate


def _make_db():
    engine = create_engine(
        "sqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return SessionLocal()


@contextmanager
def _override_dependencies(session, user):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_session, None)
        app.dependency_overrides.pop(get_current_user, None)


def test_export_xlsx_requires_superadmin():
    session = _make_db()

    user = User.create_user("normal@example.com", "password123", role="user")
    session.add(user)
    session.commit()

    with _override_dependencies(session, user):
        client = TestClient(app)
        resp = client.get("/dashboard/export-xlsx")
        assert resp.status_code == 403


def test_export_xlsx_superadmin():
    session = _make_db()

    user = User.create_user("admin@example.com", "password123", role="superadmin")
    session.add(user)
    session.commit()

    with _override_dependencies(session, user):
        client = TestClient(app)
        resp = client.get("/dashboard/export-xlsx")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "attachment" in resp.headers.get("content-disposition", "")


def test_workbook_contains_every_sheet():
    session = _make_db()
    category = crud.create_category(session, CategoryCreate(name="Fashion"))
    account = crud.create_account(
        session,
        AccountCreate(username="tokobaju", email="toko@example.com", category_id=category.id),
    )
    crud.upsert_sales_data(
        session,
        [SalesDataCreate(account_id=account.id, date=date(2025, 3, 1), gross_commission=Decimal("1250.50"))],
    )

    workbook = load_workbook(BytesIO(export_full_workbook(session)))

    assert workbook.sheetnames == ["Accounts", "SalesData", "IncentiveRules", "IncentiveTiers", "Files"]
    accounts = list(workbook["Accounts"].iter_rows(values_only=True))
    assert accounts[0][:3] == ("account_id", "account_code", "username")
    assert accounts[1][2] == "tokobaju"
    assert accounts[1][5] == "Aktif"
    assert accounts[1][7] == "Fashion"
    sales = list(workbook["SalesData"].iter_rows(values_only=True))
    assert sales[1][6] == 1250.5
