"""Database access helpers."""
from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Iterable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from affiliate_desk.auth import User
from affiliate_desk.models import (
    Account,
    AuditLog,
    Category,
    FileData,
    IncentiveRule,
    IncentiveTier,
    SalesData,
)
from affiliate_desk.schemas import (
    AccountCreate,
    AccountUpdate,
    CategoryCreate,
    CategoryUpdate,
    FileCreate,
    FileUpdate,
    IncentiveRuleCreate,
    IncentiveRuleUpdate,
    IncentiveTierCreate,
    ProfileUpdate,
    SalesDataCreate,
    UserCreate,
    UserUpdate,
)
from affiliate_desk.security import PasswordValidator

logger = logging.getLogger(__name__)

ACCOUNT_CODE_PREFIX = "AFF"

_SALES_FIELDS = ("clicks", "orders", "gross_commission", "products_sold", "total_purchases", "new_buyers")


# --- Categories -------------------------------------------------------------

def list_categories(db: Session) -> Sequence[Category]:
    return db.execute(select(Category).order_by(Category.name)).scalars().all()


def get_category(db: Session, category_id: int) -> Category | None:
    return db.get(Category, category_id)


def create_category(db: Session, payload: CategoryCreate) -> Category:
    category = Category(**payload.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, category: Category, payload: CategoryUpdate) -> Category:
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(category, key, value)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category: Category) -> None:
    db.delete(category)
    db.commit()


# --- Accounts ---------------------------------------------------------------

def list_accounts(db: Session) -> Sequence[Account]:
    stmt = select(Account).order_by(Account.created_at.desc(), Account.id.desc())
    return db.execute(stmt).scalars().all()


def get_account(db: Session, account_id: int) -> Account | None:
    return db.get(Account, account_id)


def get_account_by_code(db: Session, code: str) -> Account | None:
    stmt = select(Account).where(Account.account_code == code.strip().upper())
    return db.execute(stmt).scalars().first()


def format_account_code(account_id: int) -> str:
    return f"{ACCOUNT_CODE_PREFIX}-{account_id:05d}"


def _ensure_references(db: Session, category_id: int | None, user_id: int | None) -> None:
    if category_id is not None and db.get(Category, category_id) is None:
        raise ValueError(f"Category {category_id} does not exist.")
    if user_id is not None and db.get(User, user_id) is None:
        raise ValueError(f"User {user_id} does not exist.")


def create_account(db: Session, payload: AccountCreate, current_user: User | None = None) -> Account:
    data = payload.model_dump()
    if data.get("user_id") is None and current_user is not None:
        data["user_id"] = current_user.id
    _ensure_references(db, data.get("category_id"), data.get("user_id"))

    account = Account(**data)
    db.add(account)
    db.flush()
    account.account_code = format_account_code(account.id)
    db.commit()
    db.refresh(account)

    if current_user is not None and account.user_id == current_user.id and not current_user.is_superadmin():
        _auto_assign_account(db, current_user, account)
    return account


def _auto_assign_account(db: Session, user: User, account: Account) -> None:
    """Add a freshly created account to its creator's managed list.

    The account itself is already committed, so a failure here is only logged.
    """
    try:
        managed = list(user.managed_accounts or [])
        if account.id not in managed:
            user.managed_accounts = managed + [account.id]
            db.add(user)
            db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Could not auto-assign account %s to user %s: %s", account.id, user.id, exc)


def update_account(db: Session, account: Account, payload: AccountUpdate) -> Account:
    changes = payload.model_dump(exclude_unset=True)
    _ensure_references(db, changes.get("category_id"), None)
    for key, value in changes.items():
        if key in ("username", "email", "status", "payment_data") and value is None:
            raise ValueError(f"{key.replace('_', ' ').title()} cannot be empty.")
        setattr(account, key, "" if key == "phone" and value is None else value)
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


def delete_account(db: Session, account: Account) -> None:
    account_id = account.id
    db.delete(account)
    db.flush()
    # Managed lists are plain id arrays, so prune them by hand
    for user in db.execute(select(User)).scalars():
        if account_id in (user.managed_accounts or []):
            user.managed_accounts = [value for value in user.managed_accounts if value != account_id]
            db.add(user)
    db.commit()


# --- Sales data -------------------------------------------------------------

def list_sales_data(db: Session, account_ids: Iterable[int] | None = None) -> Sequence[SalesData]:
    stmt = select(SalesData)
    if account_ids is not None:
        stmt = stmt.where(SalesData.account_id.in_(list(account_ids)))
    stmt = stmt.order_by(SalesData.date.desc(), SalesData.account_id)
    return db.execute(stmt).scalars().all()


def upsert_sales_data(db: Session, rows: Iterable[SalesDataCreate]) -> list[SalesData]:
    """Insert rows, overwriting any existing row for the same account and date."""
    incoming: dict[tuple[int, date], SalesDataCreate] = {}
    for row in rows:
        incoming[(row.account_id, row.date)] = row
    if not incoming:
        return []

    account_ids = {account_id for account_id, _ in incoming}
    known = set(db.execute(select(Account.id).where(Account.id.in_(account_ids))).scalars())
    missing = sorted(account_ids - known)
    if missing:
        raise ValueError(f"Unknown account id(s): {', '.join(str(value) for value in missing)}")

    dates = {row_date for _, row_date in incoming}
    existing_stmt = select(SalesData).where(
        SalesData.account_id.in_(account_ids),
        SalesData.date.in_(dates),
    )
    existing = {(item.account_id, item.date): item for item in db.execute(existing_stmt).scalars()}

    stored: list[SalesData] = []
    for key, row in incoming.items():
        record = existing.get(key)
        if record is None:
            record = SalesData(account_id=row.account_id, date=row.date)
            db.add(record)
        for name in _SALES_FIELDS:
            setattr(record, name, getattr(row, name))
        stored.append(record)
    db.commit()
    for record in stored:
        db.refresh(record)
    return stored


def delete_sales_data(
    db: Session,
    account_id: int,
    start: date | None = None,
    end: date | None = None,
) -> int:
    stmt = delete(SalesData).where(SalesData.account_id == account_id)
    if start is not None and end is not None:
        stmt = stmt.where(SalesData.date >= start, SalesData.date <= end)
    result = db.execute(stmt)
    db.commit()
    return result.rowcount or 0


# --- Users ------------------------------------------------------------------

def list_users(db: Session) -> Sequence[User]:
    stmt = select(User).order_by(User.created_at.desc(), User.id.desc())
    return db.execute(stmt).scalars().all()


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    stmt = select(User).where(User.email == email.strip().lower())
    return db.execute(stmt).scalars().first()


def _check_managed_accounts(db: Session, account_ids: list[int]) -> None:
    if not account_ids:
        return
    known = set(db.execute(select(Account.id).where(Account.id.in_(account_ids))).scalars())
    missing = [value for value in account_ids if value not in known]
    if missing:
        raise ValueError(f"Unknown account id(s): {', '.join(str(value) for value in missing)}")


def create_user(db: Session, payload: UserCreate) -> User:
    if get_user_by_email(db, payload.email):
        raise ValueError("Email already exists")
    is_valid, error_msg = PasswordValidator.validate(payload.password)
    if not is_valid:
        raise ValueError(error_msg)
    _check_managed_accounts(db, payload.managed_accounts)

    data = payload.model_dump(exclude={"password"})
    user = User(**data, password_hash=User.hash_password(payload.password))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, user: User, payload: UserUpdate) -> User:
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("email") and changes["email"] != user.email:
        if get_user_by_email(db, changes["email"]):
            raise ValueError("Email already exists")
    if changes.get("managed_accounts") is not None:
        _check_managed_accounts(db, changes["managed_accounts"])
    for key, value in changes.items():
        if value is None and key in ("email", "name", "role", "managed_accounts"):
            continue
        setattr(user, key, value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    db.delete(user)
    db.commit()


def update_profile(db: Session, user: User, payload: ProfileUpdate) -> User:
    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes and not (changes["name"] or "").strip():
        raise ValueError("Name cannot be empty.")
    for key, value in changes.items():
        setattr(user, key, value.strip() if isinstance(value, str) else value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    if not user.verify_password(current_password):
        raise ValueError("Current password is incorrect")
    is_valid, error_msg = PasswordValidator.validate(new_password)
    if not is_valid:
        raise ValueError(error_msg)
    user.password_hash = User.hash_password(new_password)
    db.add(user)
    db.commit()


# --- Incentive rules --------------------------------------------------------

def list_incentive_rules(db: Session) -> Sequence[IncentiveRule]:
    stmt = (
        select(IncentiveRule)
        .options(selectinload(IncentiveRule.tiers))
        .order_by(IncentiveRule.created_at.desc(), IncentiveRule.id.desc())
    )
    return db.execute(stmt).scalars().all()


def get_incentive_rule(db: Session, rule_id: int) -> IncentiveRule | None:
    return db.get(IncentiveRule, rule_id)


def _build_tiers(tiers: Iterable[IncentiveTierCreate]) -> list[IncentiveTier]:
    return [
        IncentiveTier(revenue_threshold=tier.revenue_threshold, incentive_rate=tier.incentive_rate)
        for tier in sorted(tiers, key=lambda item: item.revenue_threshold)
    ]


def create_incentive_rule(db: Session, payload: IncentiveRuleCreate) -> IncentiveRule:
    rule = IncentiveRule(**payload.model_dump(exclude={"tiers"}))
    rule.tiers = _build_tiers(payload.tiers)
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def update_incentive_rule(db: Session, rule: IncentiveRule, payload: IncentiveRuleUpdate) -> IncentiveRule:
    """Update scalar fields; a supplied tier list replaces the existing tiers."""
    changes = payload.model_dump(exclude_unset=True, exclude={"tiers"})
    for key, value in changes.items():
        if value is None and key != "description":
            continue
        setattr(rule, key, value)
    if rule.commission_rate_min > rule.commission_rate_max:
        raise ValueError("Minimum commission rate cannot exceed the maximum rate.")
    if payload.tiers is not None:
        rule.tiers = _build_tiers(payload.tiers)
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def delete_incentive_rule(db: Session, rule: IncentiveRule) -> None:
    db.delete(rule)
    db.commit()


# --- Files ------------------------------------------------------------------

def list_files(db: Session) -> Sequence[FileData]:
    stmt = select(FileData).order_by(FileData.is_pinned.desc(), FileData.updated_at.desc(), FileData.id.desc())
    return db.execute(stmt).scalars().all()


def get_file(db: Session, file_id: int) -> FileData | None:
    return db.get(FileData, file_id)


def create_file(db: Session, payload: FileCreate, created_by: User | None = None) -> FileData:
    _ensure_references(db, payload.category_id, None)
    record = FileData(
        **payload.model_dump(),
        is_pinned=False,
        created_by=created_by.id if created_by else None,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def update_file(db: Session, record: FileData, payload: FileUpdate) -> FileData:
    changes = payload.model_dump(exclude_unset=True)
    _ensure_references(db, changes.get("category_id"), None)
    for key, value in changes.items():
        if value is None and key in ("name", "spreadsheet_url", "is_pinned"):
            continue
        setattr(record, key, value)
    record.updated_at = datetime.now()
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def toggle_file_pin(db: Session, record: FileData) -> FileData:
    record.is_pinned = not record.is_pinned
    record.updated_at = datetime.now()
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def delete_file(db: Session, record: FileData) -> None:
    db.delete(record)
    db.commit()


# --- Maintenance ------------------------------------------------------------

def log_admin_action(db: Session, user_id: int | None, action: str, details: dict | None = None) -> None:
    entry = AuditLog(
        user_id=user_id,
        action=action,
        details=json.dumps(details, default=str) if details else None,
    )
    db.add(entry)
    db.commit()


def reset_application_data(db: Session) -> dict[str, int]:
    """Delete all domain rows while keeping user logins; managed lists are cleared."""
    counts: dict[str, int] = {}
    for model in (SalesData, IncentiveTier, IncentiveRule, FileData, Account, Category, AuditLog):
        result = db.execute(delete(model))
        counts[model.__tablename__] = result.rowcount or 0
    for user in db.execute(select(User)).scalars():
        if user.managed_accounts:
            user.managed_accounts = []
            db.add(user)
    db.commit()
    return counts
