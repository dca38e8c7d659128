from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.models import SalesData
from affiliate_desk.schemas import (
    AccountCreate,
    AccountUpdate,
    CategoryCreate,
    FileCreate,
    FileUpdate,
    IncentiveRuleCreate,
    IncentiveRuleUpdate,
    IncentiveTierCreate,
    ProfileUpdate,
    SalesDataCreate,
    UserCreate,
)


def _user(session, role="user"):
    user = User.create_user(f"{uuid4().hex[:8]}@example.com", "password123", role=role)
    session.add(user)
    session.commit()
    return user


def _account(session, username="tokobaju", owner=None, **extra):
    payload = AccountCreate(username=username, email=f"{username}@example.com", **extra)
    return crud.create_account(session, payload, current_user=owner)


def test_create_account_generates_code_and_assigns_creator(test_db):
    user = _user(test_db)
    account = _account(test_db, owner=user)

    assert account.account_code == f"AFF-{account.id:05d}"
    assert account.user_id == user.id
    test_db.refresh(user)
    assert user.managed_accounts == [account.id]


def test_superadmin_created_account_is_not_added_to_managed_list(test_db):
    admin = _user(test_db, role="superadmin")
    account = _account(test_db, owner=admin)

    assert account.user_id == admin.id
    test_db.refresh(admin)
    assert admin.managed_accounts == []


def test_create_account_rejects_unknown_category(test_db):
    with pytest.raises(ValueError):
        _account(test_db, category_id=9999)


def test_update_account_partial(test_db):
    account = _account(test_db)
    updated = crud.update_account(test_db, account, AccountUpdate(status="violation"))

    assert updated.status == "violation"
    assert updated.username == "tokobaju"


def test_delete_account_prunes_managed_lists(test_db):
    user = _user(test_db)
    account = _account(test_db, owner=user)
    account_id = account.id
    crud.delete_account(test_db, account)

    test_db.refresh(user)
    assert account_id not in user.managed_accounts
    assert crud.get_account(test_db, account_id) is None


def test_upsert_sales_overwrites_same_day(test_db):
    account = _account(test_db)
    day = date(2025, 3, 1)
    crud.upsert_sales_data(test_db, [SalesDataCreate(account_id=account.id, date=day, clicks=10)])
    crud.upsert_sales_data(
        test_db,
        [SalesDataCreate(account_id=account.id, date=day, clicks=25, gross_commission=Decimal("1000"))],
    )

    rows = crud.list_sales_data(test_db, [account.id])
    assert len(rows) == 1
    assert rows[0].clicks == 25
    assert rows[0].gross_commission == Decimal("1000.00")


def test_upsert_sales_unknown_account(test_db):
    with pytest.raises(ValueError):
        crud.upsert_sales_data(test_db, [SalesDataCreate(account_id=424242, date=date(2025, 1, 1))])


def test_delete_sales_data_with_range(test_db):
    account = _account(test_db)
    crud.upsert_sales_data(
        test_db,
        [SalesDataCreate(account_id=account.id, date=date(2025, 3, day)) for day in (1, 10, 20)],
    )

    deleted = crud.delete_sales_data(test_db, account.id, date(2025, 3, 5), date(2025, 3, 20))
    assert deleted == 2
    assert [row.date for row in crud.list_sales_data(test_db, [account.id])] == [date(2025, 3, 1)]

    assert crud.delete_sales_data(test_db, account.id) == 1
    assert test_db.query(SalesData).count() == 0


def test_incentive_rule_update_replaces_tiers(test_db):
    rule = crud.create_incentive_rule(
        test_db,
        IncentiveRuleCreate(
            name="Quest Maret",
            base_revenue_threshold=Decimal("10000000"),
            is_active=True,
            tiers=[
                IncentiveTierCreate(revenue_threshold=Decimal("30000000"), incentive_rate=Decimal("2")),
                IncentiveTierCreate(revenue_threshold=Decimal("10000000"), incentive_rate=Decimal("1")),
            ],
        ),
    )
    assert [tier.revenue_threshold for tier in rule.tiers] == [Decimal("10000000.00"), Decimal("30000000.00")]

    updated = crud.update_incentive_rule(
        test_db,
        rule,
        IncentiveRuleUpdate(
            description="revised",
            tiers=[IncentiveTierCreate(revenue_threshold=Decimal("5000000"), incentive_rate=Decimal("0.5"))],
        ),
    )
    assert updated.description == "revised"
    assert len(updated.tiers) == 1
    assert updated.tiers[0].incentive_rate == Decimal("0.5000")


def test_incentive_rule_update_rejects_inverted_range(test_db):
    rule = crud.create_incentive_rule(test_db, IncentiveRuleCreate(name="Range", commission_rate_max=Decimal("10")))
    with pytest.raises(ValueError):
        crud.update_incentive_rule(test_db, rule, IncentiveRuleUpdate(commission_rate_min=Decimal("20")))
    test_db.rollback()


def test_change_password_checks_current(test_db):
    user = _user(test_db)
    with pytest.raises(ValueError, match="Current password is incorrect"):
        crud.change_password(test_db, user, "wrong-password", "newpassword1")

    crud.change_password(test_db, user, "password123", "newpassword1")
    assert user.verify_password("newpassword1")


def test_update_profile_blank_fields_become_null(test_db):
    user = _user(test_db)
    updated = crud.update_profile(test_db, user, ProfileUpdate(name="Sinta", phone="  ", bio="Halo"))

    assert updated.name == "Sinta"
    assert updated.phone is None
    assert updated.bio == "Halo"


def test_create_user_rejects_duplicate_email(test_db):
    email = f"{uuid4().hex[:8]}@example.com"
    crud.create_user(test_db, UserCreate(email=email, name="First", password="password123"))
    with pytest.raises(ValueError, match="Email already exists"):
        crud.create_user(test_db, UserCreate(email=email.upper(), name="Second", password="password123"))


def test_files_pinned_first_and_toggle(test_db):
    category = crud.create_category(test_db, CategoryCreate(name="Panduan"))
    first = crud.create_file(
        test_db,
        FileCreate(name="Rekap", spreadsheet_url="https://docs.google.com/a", category_id=category.id),
    )
    second = crud.create_file(test_db, FileCreate(name="SOP", spreadsheet_url="https://docs.google.com/b"))

    crud.toggle_file_pin(test_db, second)
    assert [item.id for item in crud.list_files(test_db)][0] == second.id

    renamed = crud.update_file(test_db, first, FileUpdate(name="Rekap Bulanan"))
    assert renamed.name == "Rekap Bulanan"
    assert renamed.spreadsheet_url == "https://docs.google.com/a"


def test_reset_application_data_keeps_users(test_db):
    user = _user(test_db)
    _account(test_db, owner=user)

    counts = crud.reset_application_data(test_db)

    assert counts["accounts"] == 1
    assert crud.get_user(test_db, user.id) is not None
    test_db.refresh(user)
    assert user.managed_accounts == []
