import csv
import io
from contextlib import contextmanager
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.database import Base, get_session
from affiliate_desk.main import app
from affiliate_desk.routers.auth import get_current_user
from affiliate_desk.schemas import (
    AccountCreate,
    IncentiveRuleCreate,
    IncentiveTierCreate,
    SalesDataCreate,
)


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def superadmin(db_session):
    user = User.create_user("boss@example.com", "password123", name="Boss", role="superadmin")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def manager(db_session):
    user = User.create_user("sinta@example.com", "password123", name="Sinta")
    db_session.add(user)
    db_session.commit()
    return user


@contextmanager
def _client(session, user=None):
    def override_session():
        try:
            yield session
        finally:
            session.rollback()

    app.dependency_overrides[get_session] = override_session
    if user is not None:
        app.dependency_overrides[get_current_user] = lambda: user
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_session, None)
        app.dependency_overrides.pop(get_current_user, None)


def _seed_accounts(session, manager):
    mine = crud.create_account(session, AccountCreate(username="tokobaju", email="toko@example.com"), manager)
    other = crud.create_account(session, AccountCreate(username="gadgetku", email="gadget@example.com"))
    return mine, other


def test_login_sets_session_cookie(db_session, manager):
    with _client(db_session) as client:
        bad = client.post("/login", data={"email": "sinta@example.com", "password": "nope"})
        assert bad.status_code == 401

        resp = client.post("/login", data={"email": "SINTA@example.com", "password": "password123"})
        assert resp.status_code == 200
        assert "user_id" in resp.cookies

        me = client.get("/me")
        assert me.status_code == 200
        assert me.json()["email"] == "sinta@example.com"

        client.post("/logout")
        client.cookies.clear()
        assert client.get("/me").status_code == 401


def test_manager_sees_only_managed_accounts(db_session, manager):
    mine, other = _seed_accounts(db_session, manager)

    with _client(db_session, manager) as client:
        resp = client.get("/accounts")
        assert resp.status_code == 200
        payload = resp.json()
        assert [item["id"] for item in payload["accounts"]] == [mine.id]
        assert payload["stats"]["total"] == 1
        assert payload["accounts"][0]["category_name"] == "Belum Diatur"

        assert client.get(f"/accounts/{other.id}").status_code == 404
        assert client.patch(f"/accounts/{other.id}", json={"status": "inactive"}).status_code == 404


def test_superadmin_lists_everything_and_filters(db_session, superadmin, manager):
    _seed_accounts(db_session, manager)

    with _client(db_session, superadmin) as client:
        payload = client.get("/accounts").json()
        assert payload["stats"]["total"] == 2

        filtered = client.get("/accounts", params={"search": "GADGET"}).json()
        assert [item["username"] for item in filtered["accounts"]] == ["gadgetku"]

        picker = client.get("/accounts/search", params={"q": "toko"}).json()
        assert picker[0]["label"].startswith("tokobaju (AFF-")


def test_create_account_assigns_manager(db_session, manager):
    with _client(db_session, manager) as client:
        resp = client.post(
            "/accounts",
            json={"username": "baru", "email": "BARU@example.com", "payment_data": "utamakan"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["email"] == "baru@example.com"
        assert body["payment_label"] == "Utamakan"
        assert body["account_code"] == f"AFF-{body['id']:05d}"

    db_session.refresh(manager)
    assert manager.managed_accounts == [body["id"]]


def test_inline_edit_rejects_invalid_status(db_session, manager):
    mine, _ = _seed_accounts(db_session, manager)
    with _client(db_session, manager) as client:
        assert client.patch(f"/accounts/{mine.id}", json={"status": "banned"}).status_code == 422
        resp = client.patch(f"/accounts/{mine.id}", json={"status": "violation"})
        assert resp.json()["status_label"] == "Pelanggaran"


def test_category_writes_require_superadmin(db_session, superadmin, manager):
    with _client(db_session, manager) as client:
        assert client.post("/categories", json={"name": "Fashion"}).status_code == 403
        assert client.get("/categories").status_code == 200

    with _client(db_session, superadmin) as client:
        assert client.post("/categories", json={"name": "Fashion"}).status_code == 201
        duplicate = client.post("/categories", json={"name": "Fashion"})
        assert duplicate.status_code == 409
        assert duplicate.json()["detail"].startswith("Failed to add category")


def test_sales_upsert_and_delete(db_session, manager):
    mine, other = _seed_accounts(db_session, manager)
    row = {"account_id": mine.id, "date": "2025-03-01", "clicks": 10, "gross_commission": "1500"}

    with _client(db_session, manager) as client:
        forbidden = client.post("/sales", json=[{**row, "account_id": other.id}])
        assert forbidden.status_code == 404

        assert client.post("/sales", json=[row]).status_code == 200
        assert client.post("/sales", json=[{**row, "clicks": 30}]).status_code == 200
        listed = client.get("/sales").json()
        assert len(listed) == 1
        assert listed[0]["clicks"] == 30

        bad_range = client.post("/sales/delete", json={"account_id": mine.id, "start": "2025-03-01"})
        assert bad_range.status_code == 422

        deleted = client.post("/sales/delete", json={"account_id": mine.id})
        assert deleted.json() == {"deleted": 1}


def test_sales_import_csv(db_session, manager):
    mine, other = _seed_accounts(db_session, manager)
    content = (
        "Account Code,Tanggal,Clicks,Orders,Komisi,Total Purchases\n"
        f"{mine.account_code},2025-03-01,100,4,\"50,000\",1000000\n"
        f"{other.account_code},2025-03-01,5,1,100,1000\n"
        "AFF-99999,2025-03-01,1,1,1,1\n"
    )
    with _client(db_session, manager) as client:
        resp = client.post("/sales/import", files={"file": ("sales.csv", content.encode(), "text/csv")})
        assert resp.status_code == 200
        summary = resp.json()

    assert summary["rows_upserted"] == 1
    assert summary["rows_skipped"] == 2
    rows = crud.list_sales_data(db_session, [mine.id])
    assert rows[0].gross_commission == Decimal("50000.00")


def test_sales_import_damaged_workbook_is_bad_request(db_session, manager):
    with _client(db_session, manager) as client:
        resp = client.post(
            "/sales/import",
            files={"file": ("sales.xlsx", b"PK\x03\x04not really a zip", "application/octet-stream")},
        )

    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Could not read 'sales.xlsx'")


def test_report_and_csv_export(db_session, manager):
    mine, other = _seed_accounts(db_session, manager)
    today = date.today()
    crud.upsert_sales_data(
        db_session,
        [
            SalesDataCreate(
                account_id=mine.id,
                date=today,
                clicks=200,
                orders=10,
                gross_commission=Decimal("100000"),
                total_purchases=Decimal("1000000"),
            ),
            SalesDataCreate(account_id=mine.id, date=today - timedelta(days=60), clicks=100),
            SalesDataCreate(account_id=other.id, date=today, clicks=999),
        ],
    )

    with _client(db_session, manager) as client:
        report = client.get("/reports", params={"preset": "30"}).json()
        assert report["row_count"] == 1
        assert report["metrics"]["total_clicks"] == 200
        assert report["metrics"]["avg_commission_rate"] == 10.0
        assert report["accumulated"][0]["username"] == "tokobaju"

        assert client.get("/reports", params={"preset": "soon"}).status_code == 400

        export = client.get("/reports/export")
        assert export.status_code == 200
        assert "accumulated-sales-report-" in export.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(export.text)))

    assert rows[0][0] == "Account"
    assert len(rows) == 2
    assert rows[1][3] == "2"


def test_incentive_overview(db_session, superadmin, manager):
    mine, _ = _seed_accounts(db_session, manager)
    crud.create_incentive_rule(
        db_session,
        IncentiveRuleCreate(
            name="Quest",
            is_active=True,
            min_commission_threshold=Decimal("100000"),
            commission_rate_min=Decimal("5"),
            commission_rate_max=Decimal("12.5"),
            base_revenue_threshold=Decimal("1000000"),
            tiers=[IncentiveTierCreate(revenue_threshold=Decimal("1000000"), incentive_rate=Decimal("1"))],
        ),
    )
    crud.upsert_sales_data(
        db_session,
        [
            SalesDataCreate(
                account_id=mine.id,
                date=date(2025, 3, 10),
                gross_commission=Decimal("200000"),
                total_purchases=Decimal("2000000"),
            )
        ],
    )

    with _client(db_session, superadmin) as client:
        resp = client.get("/incentives/overview", params={"month": 3, "year": 2025})
        assert resp.status_code == 200
        body = resp.json()

    assert body["period_label"] == "Maret 2025"
    rows = {row["user_name"]: row for row in body["rows"]}
    assert rows["Sinta"]["incentive_amount"] == 20000.0
    assert rows["Sinta"]["incentive_amount_display"] == "Rp 20.000"
    assert rows["Sinta"]["quest"]["category"] == "High Commission"
    assert rows["Boss"]["total_revenue"] == 0.0


def test_incentive_rule_writes_require_superadmin(db_session, manager):
    with _client(db_session, manager) as client:
        resp = client.post("/incentives/rules", json={"name": "Quest"})
        assert resp.status_code == 403


def test_files_listing_and_pin(db_session, superadmin, manager):
    with _client(db_session, superadmin) as client:
        created = client.post(
            "/files",
            json={"name": "Rekap", "spreadsheet_url": "https://docs.google.com/x", "file_size": 2048},
        )
        assert created.status_code == 201
        file_id = created.json()["id"]
        assert created.json()["file_size_display"] == "2.0 KB"

        bad = client.post("/files", json={"name": "Bad", "spreadsheet_url": "ftp://nope"})
        assert bad.status_code == 422

        pinned = client.post(f"/files/{file_id}/pin").json()
        assert pinned["is_pinned"] is True

    with _client(db_session, manager) as client:
        listing = client.get("/files", params={"search": "rekap"}).json()
        assert [item["id"] for item in listing["pinned"]] == [file_id]
        assert client.delete(f"/files/{file_id}").status_code == 403


def test_change_password_flow(db_session, manager):
    with _client(db_session, manager) as client:
        mismatch = client.post(
            "/profile/change-password",
            json={"current_password": "password123", "new_password": "abcdefgh1", "confirm_password": "other"},
        )
        assert mismatch.status_code == 400

        wrong = client.post(
            "/profile/change-password",
            json={"current_password": "bad", "new_password": "abcdefgh1", "confirm_password": "abcdefgh1"},
        )
        assert wrong.status_code == 401

        ok = client.post(
            "/profile/change-password",
            json={"current_password": "password123", "new_password": "abcdefgh1", "confirm_password": "abcdefgh1"},
        )
        assert ok.status_code == 200

    assert manager.verify_password("abcdefgh1")


def test_user_admin_requires_superadmin(db_session, superadmin, manager):
    with _client(db_session, manager) as client:
        assert client.get("/users").status_code == 403

    with _client(db_session, superadmin) as client:
        created = client.post(
            "/users",
            json={"email": "new@example.com", "name": "New", "password": "password123"},
        )
        assert created.status_code == 201
        duplicate = client.post(
            "/users",
            json={"email": "new@example.com", "name": "Again", "password": "password123"},
        )
        assert duplicate.status_code == 400
        assert client.delete(f"/users/{superadmin.id}").status_code == 400


def test_health():
    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "ok"}
