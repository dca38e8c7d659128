"""Utilities for importing daily sales rows from CSV or Excel exports."""
from __future__ import annotations

import logging
import numbers
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import PurePath
from typing import Any, Iterable

import pandas as pd
from dateutil import parser as date_parser
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy import select
from sqlalchemy.orm import Session

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.core.access import can_access_account
from affiliate_desk.models import Account
from affiliate_desk.schemas import SalesDataCreate

logger = logging.getLogger(__name__)

SALES_COLUMNS: dict[str, dict[str, Any]] = {
    "account": {
        "aliases": ["account code", "account_code", "kode akun", "code", "account", "username", "akun"],
        "required": True,
    },
    "date": {"aliases": ["date", "tanggal", "day", "sales date"], "required": True},
    "clicks": {"aliases": ["clicks", "klik", "click"], "required": False},
    "orders": {"aliases": ["orders", "pesanan", "order"], "required": False},
    "gross_commission": {
        "aliases": ["gross commission", "gross_commission", "commission", "komisi kotor", "komisi"],
        "required": False,
    },
    "products_sold": {
        "aliases": ["products sold", "products_sold", "produk terjual", "items sold"],
        "required": False,
    },
    "total_purchases": {
        "aliases": ["total purchases", "total_purchases", "revenue", "total pembelian", "gmv"],
        "required": False,
    },
    "new_buyers": {"aliases": ["new buyers", "new_buyers", "pembeli baru"], "required": False},
}

COUNT_FIELDS = ("clicks", "orders", "products_sold", "new_buyers")
MONEY_FIELDS = ("gross_commission", "total_purchases")
DATE_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")
EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xls")

# 1.234.567 or 1.234.567,50
_DOTTED_THOUSANDS = re.compile(r"^-?\d{1,3}(\.\d{3})+(,\d+)?$")


def _row_number(idx: Any) -> int:
    try:
        return int(idx) + 2
    except (TypeError, ValueError):
        return 0


@dataclass
class ImportSummary:
    rows_read: int = 0
    rows_upserted: int = 0
    duplicates_in_file: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def rows_skipped(self) -> int:
        return len(self.errors)

    def as_dict(self) -> dict[str, Any]:
        return {
            "rows_read": self.rows_read,
            "rows_upserted": self.rows_upserted,
            "rows_skipped": self.rows_skipped,
            "duplicates_in_file": self.duplicates_in_file,
            "errors": self.errors,
        }


def resolve_column(df: pd.DataFrame, aliases: Iterable[str]) -> str | None:
    lookup = {str(col).strip().lower(): str(col) for col in df.columns}
    for alias in aliases:
        key = alias.strip().lower()
        if key in lookup:
            return lookup[key]
    return None


def normalize_columns(df: pd.DataFrame, spec: dict[str, dict[str, Any]], label: str) -> pd.DataFrame:
    mapping: dict[str, str] = {}
    for canonical, column_spec in spec.items():
        source = resolve_column(df, column_spec["aliases"])
        if source and source not in mapping:
            mapping[source] = canonical
        elif source is None and column_spec.get("required", False):
            raise ValueError(f"Missing required column '{canonical}' in {label} file")
    renamed = df.rename(columns=mapping)
    return renamed[list(mapping.values())]


def parse_date_value(raw: Any, field_name: str) -> date:
    if raw is None or pd.isna(raw):
        raise ValueError(f"{field_name} is missing")
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    if not text:
        raise ValueError(f"{field_name} is empty")
    for pattern in DATE_FORMATS:
        try:
            return datetime.strptime(text, pattern).date()
        except ValueError:
            continue
    try:
        return date_parser.parse(text, dayfirst=True).date()
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Could not parse {field_name} value '{raw}'") from exc


def _numeric_text(raw: Any) -> str | None:
    """Normalise a typed-in amount; dot-grouped thousands are only read from text."""
    if raw is None or pd.isna(raw):
        return None
    text = str(raw).strip().replace("Rp", "").replace("%", "").replace(" ", "")
    if not text:
        return None
    if _DOTTED_THOUSANDS.match(text):
        return text.replace(".", "").replace(",", ".")
    return text.replace(",", "")


def parse_decimal_value(raw: Any, field_name: str) -> Decimal:
    """Blank cells count as zero; negative amounts are rejected."""
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, numbers.Number) and not isinstance(raw, bool):
        # Numeric spreadsheet cells are already numbers
        if pd.isna(raw):
            return Decimal("0")
        value = Decimal(str(raw))
    else:
        text = _numeric_text(raw)
        if text is None:
            return Decimal("0")
        try:
            value = Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"Invalid {field_name} value '{raw}'") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid {field_name} value '{raw}'")
    if value < 0:
        raise ValueError(f"{field_name} cannot be negative (got {value})")
    return value


def parse_int_value(raw: Any, field_name: str) -> int:
    value = parse_decimal_value(raw, field_name)
    if value != value.to_integral_value():
        raise ValueError(f"{field_name} must be a whole number (got {raw})")
    return int(value)


def clean_string(raw: Any) -> str | None:
    if raw is None or pd.isna(raw):
        return None
    text = str(raw).strip()
    return text or None


def load_table(content: bytes, filename: str) -> pd.DataFrame:
    suffix = PurePath(filename or "").suffix.lower()
    try:
        if suffix in EXCEL_SUFFIXES:
            return pd.read_excel(BytesIO(content))
        if suffix in (".csv", ".txt", ""):
            return pd.read_csv(BytesIO(content), dtype=str, keep_default_na=True)
    except (ValueError, pd.errors.ParserError, zipfile.BadZipFile, InvalidFileException) as exc:
        raise ValueError(f"Could not read '{filename}': {exc}") from exc
    raise ValueError(f"Unsupported file type '{suffix}'. Upload a CSV or Excel file.")


def _account_lookup(session: Session) -> tuple[dict[str, Account], dict[str, Account]]:
    accounts = session.execute(select(Account)).scalars().all()
    by_code = {account.account_code.upper(): account for account in accounts if account.account_code}
    by_username = {account.username.strip().lower(): account for account in accounts}
    return by_code, by_username


def import_sales_frame(df: pd.DataFrame, session: Session, current_user: User) -> ImportSummary:
    summary = ImportSummary()
    normalized = normalize_columns(df, SALES_COLUMNS, "sales")
    records = normalized.dropna(how="all")
    by_code, by_username = _account_lookup(session)

    staged: dict[tuple[int, date], SalesDataCreate] = {}
    for idx, row in records.iterrows():
        summary.rows_read += 1
        key = clean_string(row.get("account"))
        if not key:
            summary.errors.append(f"Row {_row_number(idx)}: account is missing")
            continue
        account = by_code.get(key.upper()) or by_username.get(key.lower())
        if account is None:
            summary.errors.append(f"Row {_row_number(idx)}: unknown account '{key}'")
            continue
        if not can_access_account(current_user, account.id):
            summary.errors.append(f"Row {_row_number(idx)}: account '{key}' is not managed by you")
            continue
        try:
            values: dict[str, Any] = {"account_id": account.id, "date": parse_date_value(row.get("date"), "date")}
            for name in COUNT_FIELDS:
                values[name] = parse_int_value(row.get(name), name.replace("_", " "))
            for name in MONEY_FIELDS:
                values[name] = parse_decimal_value(row.get(name), name.replace("_", " "))
            item = SalesDataCreate(**values)
        except ValueError as exc:
            summary.errors.append(f"Row {_row_number(idx)}: {exc}")
            continue

        if (item.account_id, item.date) in staged:
            summary.duplicates_in_file += 1
        staged[(item.account_id, item.date)] = item

    if staged:
        stored = crud.upsert_sales_data(session, staged.values())
        summary.rows_upserted = len(stored)
    logger.info(
        "Sales import by user %s: %s rows read, %s upserted, %s skipped",
        current_user.id,
        summary.rows_read,
        summary.rows_upserted,
        summary.rows_skipped,
    )
    return summary


def import_sales_file(session: Session, content: bytes, filename: str, current_user: User) -> ImportSummary:
    """Read an uploaded sales export and upsert its valid rows."""
    df = load_table(content, filename)
    return import_sales_frame(df, session, current_user)
