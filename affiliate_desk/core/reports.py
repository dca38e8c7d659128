"""Sales report filtering, aggregation and CSV export."""
from __future__ import annotations

import csv
import io
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable, Sequence

from affiliate_desk.core.formatting import format_display_date

ALL = "all"
CUSTOM = "custom"
DATE_PRESETS = (ALL, "7", "30", "90", CUSTOM)

CSV_HEADERS = [
    "Account",
    "Account Code",
    "Period",
    "Data Days",
    "Total Clicks",
    "Total Orders",
    "Total Commission (IDR)",
    "Total Revenue (IDR)",
    "Commission %",
    "Products Sold",
    "Conversion Rate %",
]


@dataclass(frozen=True)
class DateFilter:
    preset: str = ALL
    start_date: date | None = None
    end_date: date | None = None

    def __post_init__(self) -> None:
        if self.preset not in (ALL, CUSTOM):
            try:
                days = int(self.preset)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Unknown date preset '{self.preset}'") from exc
            if days < 0:
                raise ValueError("Date preset must be a positive number of days")

    def with_preset(self, preset: str) -> "DateFilter":
        """Switch preset; leaving ``custom`` clears the custom dates."""
        if preset != CUSTOM:
            return DateFilter(preset=preset)
        return replace(self, preset=preset)

    @property
    def has_custom_range(self) -> bool:
        return self.preset == CUSTOM and self.start_date is not None and self.end_date is not None


@dataclass
class ReportMetrics:
    total_commission: Decimal = Decimal("0")
    total_revenue: Decimal = Decimal("0")
    total_orders: int = 0
    total_clicks: int = 0
    total_products_sold: int = 0
    total_new_buyers: int = 0

    @property
    def avg_commission_rate(self) -> Decimal:
        return _percent(self.total_commission, self.total_revenue)

    @property
    def conversion_rate(self) -> Decimal:
        return _percent(self.total_orders, self.total_clicks)

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_commission": float(self.total_commission),
            "total_revenue": float(self.total_revenue),
            "total_orders": self.total_orders,
            "total_clicks": self.total_clicks,
            "total_products_sold": self.total_products_sold,
            "total_new_buyers": self.total_new_buyers,
            "avg_commission_rate": float(self.avg_commission_rate),
            "conversion_rate": float(self.conversion_rate),
        }


@dataclass
class AccountAccumulation:
    account_id: int
    start: date
    end: date
    clicks: int = 0
    orders: int = 0
    gross_commission: Decimal = Decimal("0")
    products_sold: int = 0
    total_purchases: Decimal = Decimal("0")
    new_buyers: int = 0
    data_count: int = 0

    @property
    def commission_rate(self) -> Decimal:
        return _percent(self.gross_commission, self.total_purchases)

    @property
    def conversion_rate(self) -> Decimal:
        return _percent(self.orders, self.clicks)

    @property
    def period_label(self) -> str:
        if self.start == self.end:
            return format_display_date(self.start)
        return f"{format_display_date(self.start)} - {format_display_date(self.end)}"

    def as_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "clicks": self.clicks,
            "orders": self.orders,
            "gross_commission": float(self.gross_commission),
            "products_sold": self.products_sold,
            "total_purchases": float(self.total_purchases),
            "new_buyers": self.new_buyers,
            "data_count": self.data_count,
            "date_range": {"start": self.start.isoformat(), "end": self.end.isoformat()},
            "period": self.period_label,
            "commission_rate": float(self.commission_rate),
            "conversion_rate": float(self.conversion_rate),
        }


def _dec(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _percent(numerator: Any, denominator: Any) -> Decimal:
    denominator = _dec(denominator)
    if denominator <= 0:
        return Decimal("0")
    return _dec(numerator) / denominator * 100


def filter_sales(
    rows: Sequence,
    account_id: int | str | None = ALL,
    date_filter: DateFilter | None = None,
    today: date | None = None,
) -> list:
    filtered = list(rows)
    if account_id not in (None, "", ALL):
        filtered = [row for row in filtered if str(row.account_id) == str(account_id)]

    date_filter = date_filter or DateFilter()
    if date_filter.preset == CUSTOM:
        if date_filter.has_custom_range:
            start, end = date_filter.start_date, date_filter.end_date
            filtered = [row for row in filtered if start <= row.date <= end]
    elif date_filter.preset != ALL:
        cutoff = (today or date.today()) - timedelta(days=int(date_filter.preset))
        filtered = [row for row in filtered if row.date >= cutoff]
    return filtered


def report_metrics(rows: Iterable) -> ReportMetrics:
    metrics = ReportMetrics()
    for row in rows:
        metrics.total_commission += _dec(row.gross_commission)
        metrics.total_revenue += _dec(row.total_purchases)
        metrics.total_orders += row.orders or 0
        metrics.total_clicks += row.clicks or 0
        metrics.total_products_sold += row.products_sold or 0
        metrics.total_new_buyers += row.new_buyers or 0
    return metrics


def accumulate_by_account(rows: Iterable) -> list[AccountAccumulation]:
    """Per-account totals and date span, highest commission first."""
    by_account: dict[int, AccountAccumulation] = {}
    for row in rows:
        acc = by_account.get(row.account_id)
        if acc is None:
            acc = AccountAccumulation(account_id=row.account_id, start=row.date, end=row.date)
            by_account[row.account_id] = acc
        acc.clicks += row.clicks or 0
        acc.orders += row.orders or 0
        acc.gross_commission += _dec(row.gross_commission)
        acc.products_sold += row.products_sold or 0
        acc.total_purchases += _dec(row.total_purchases)
        acc.new_buyers += row.new_buyers or 0
        acc.data_count += 1
        if row.date < acc.start:
            acc.start = row.date
        if row.date > acc.end:
            acc.end = row.date
    return sorted(by_account.values(), key=lambda item: item.gross_commission, reverse=True)


def _plain_number(value: Decimal) -> str:
    """Whole amounts print without a trailing ``.00``."""
    normalized = value.normalize()
    if normalized == normalized.to_integral_value():
        return str(int(normalized))
    return f"{normalized:f}"


def csv_rows(accumulated: Iterable[AccountAccumulation], accounts: Iterable) -> list[list[Any]]:
    lookup = {account.id: account for account in accounts}
    rows: list[list[Any]] = []
    for item in accumulated:
        account = lookup.get(item.account_id)
        rows.append(
            [
                account.username if account else "Unknown",
                (account.account_code or "Unknown") if account else "Unknown",
                item.period_label,
                item.data_count,
                item.clicks,
                item.orders,
                _plain_number(item.gross_commission),
                _plain_number(item.total_purchases),
                f"{item.commission_rate:.2f}",
                item.products_sold,
                f"{item.conversion_rate:.2f}",
            ]
        )
    return rows


def build_csv(accumulated: Iterable[AccountAccumulation], accounts: Iterable) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(csv_rows(accumulated, accounts))
    return buffer.getvalue()


def csv_filename(today: date | None = None) -> str:
    return f"accumulated-sales-report-{(today or date.today()).isoformat()}.csv"
