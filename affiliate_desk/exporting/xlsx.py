from __future__ import annotations

from io import BytesIO
from typing import Iterable

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from affiliate_desk.models import (
    ACCOUNT_STATUS_LABELS,
    PAYMENT_DATA_LABELS,
    UNSET_CATEGORY_LABEL,
    Account,
    Category,
    FileData,
    IncentiveRule,
    IncentiveTier,
    SalesData,
)

ACCOUNT_COLUMNS = [
    "account_id",
    "account_code",
    "username",
    "email",
    "phone",
    "status",
    "payment_data",
    "category",
    "owner_email",
    "created_at",
]
SALES_COLUMNS = [
    "sales_id",
    "account_id",
    "account_code",
    "date",
    "clicks",
    "orders",
    "gross_commission (IDR)",
    "products_sold",
    "total_purchases (IDR)",
    "new_buyers",
]


def _money(value) -> float | None:
    return float(value) if value is not None else None


def _accounts_df(accounts: Iterable[Account]) -> pd.DataFrame:
    rows = []
    for item in accounts:
        rows.append(
            {
                "account_id": item.id,
                "account_code": item.account_code,
                "username": item.username,
                "email": item.email,
                "phone": item.phone,
                "status": ACCOUNT_STATUS_LABELS.get(item.status, item.status),
                "payment_data": PAYMENT_DATA_LABELS.get(item.payment_data, item.payment_data),
                "category": item.category.name if item.category else UNSET_CATEGORY_LABEL,
                "owner_email": item.owner.email if item.owner else None,
                "created_at": item.created_at,
            }
        )
    return pd.DataFrame(rows, columns=ACCOUNT_COLUMNS)


def _sales_df(sales: Iterable[SalesData]) -> pd.DataFrame:
    rows = []
    for item in sales:
        rows.append(
            {
                "sales_id": item.id,
                "account_id": item.account_id,
                "account_code": item.account.account_code if getattr(item, "account", None) else None,
                "date": item.date,
                "clicks": item.clicks,
                "orders": item.orders,
                "gross_commission (IDR)": _money(item.gross_commission),
                "products_sold": item.products_sold,
                "total_purchases (IDR)": _money(item.total_purchases),
                "new_buyers": item.new_buyers,
            }
        )
    return pd.DataFrame(rows, columns=SALES_COLUMNS)


def _rules_df(rules: Iterable[IncentiveRule]) -> pd.DataFrame:
    rows = []
    for item in rules:
        rows.append(
            {
                "rule_id": item.id,
                "name": item.name,
                "description": item.description,
                "is_active": item.is_active,
                "min_commission_threshold": _money(item.min_commission_threshold),
                "commission_rate_min": _money(item.commission_rate_min),
                "commission_rate_max": _money(item.commission_rate_max),
                "base_revenue_threshold": _money(item.base_revenue_threshold),
                "tier_count": len(item.tiers),
                "created_at": item.created_at,
            }
        )
    return pd.DataFrame(rows)


def _tiers_df(tiers: Iterable[IncentiveTier]) -> pd.DataFrame:
    rows = []
    for item in tiers:
        rows.append(
            {
                "tier_id": item.id,
                "rule_id": item.rule_id,
                "rule_name": item.rule.name if getattr(item, "rule", None) else None,
                "revenue_threshold": _money(item.revenue_threshold),
                "incentive_rate": _money(item.incentive_rate),
            }
        )
    return pd.DataFrame(rows)


def _files_df(files: Iterable[FileData], category_names: dict[int, str]) -> pd.DataFrame:
    rows = []
    for item in files:
        rows.append(
            {
                "file_id": item.id,
                "name": item.name,
                "category": category_names.get(item.category_id, UNSET_CATEGORY_LABEL),
                "spreadsheet_url": item.spreadsheet_url,
                "description": item.description,
                "is_pinned": item.is_pinned,
                "file_size": item.file_size,
                "created_at": item.created_at,
                "updated_at": item.updated_at,
            }
        )
    return pd.DataFrame(rows)


def export_full_workbook(db: Session) -> bytes:
    """Return an XLSX workbook (bytes) with every affiliate table."""

    accounts = db.execute(select(Account).order_by(Account.account_code, Account.id)).scalars().all()
    sales = db.execute(select(SalesData).order_by(SalesData.account_id, SalesData.date)).scalars().all()
    rules = db.execute(select(IncentiveRule).order_by(IncentiveRule.id)).scalars().all()
    tiers = (
        db.execute(select(IncentiveTier).order_by(IncentiveTier.rule_id, IncentiveTier.revenue_threshold))
        .scalars()
        .all()
    )
    files = db.execute(select(FileData).order_by(FileData.is_pinned.desc(), FileData.name)).scalars().all()
    category_names = {item.id: item.name for item in db.execute(select(Category)).scalars()}

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        _accounts_df(accounts).to_excel(writer, sheet_name="Accounts", index=False)
        _sales_df(sales).to_excel(writer, sheet_name="SalesData", index=False)
        _rules_df(rules).to_excel(writer, sheet_name="IncentiveRules", index=False)
        _tiers_df(tiers).to_excel(writer, sheet_name="IncentiveTiers", index=False)
        _files_df(files, category_names).to_excel(writer, sheet_name="Files", index=False)

    buffer.seek(0)
    return buffer.getvalue()
