"""Monthly incentive calculation from a tiered commission-rate schedule."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

DEFAULT_MIDPOINT_RATE = Decimal("6.5")
DECADE_SPAN = 16
_RATE_PLACES = Decimal("0.0001")


@dataclass
class QuestCategory:
    category: str
    range: str

    def as_dict(self) -> dict[str, str]:
        return {"category": self.category, "range": self.range}


@dataclass
class UserIncentiveRow:
    user_id: int
    user_name: str
    total_accounts: int = 0
    qualifying_accounts: int = 0
    total_revenue: Decimal = Decimal("0")
    total_commission: Decimal = Decimal("0")
    avg_commission_rate: Decimal = Decimal("0")
    incentive_amount: Decimal | None = None
    quest: QuestCategory | None = None
    qualifying_account_ids: list[int] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "user_name": self.user_name,
            "total_accounts": self.total_accounts,
            "qualifying_accounts": self.qualifying_accounts,
            "total_revenue": float(self.total_revenue),
            "total_commission": float(self.total_commission),
            "avg_commission_rate": float(self.avg_commission_rate),
            "incentive_amount": float(self.incentive_amount) if self.incentive_amount is not None else None,
            "quest": self.quest.as_dict() if self.quest else None,
            "qualifying_account_ids": self.qualifying_account_ids,
        }


def _dec(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def active_rule(rules: Iterable):
    """First active rule in the given order, or ``None``."""
    for rule in rules:
        if rule.is_active:
            return rule
    return None


def calculate_tiered_incentive(revenue: Decimal | int | float, rule) -> Decimal:
    """Apply the rate of the highest tier reached to the whole revenue.

    Revenue below ``base_revenue_threshold`` earns nothing. Revenue at or
    above the base but below the first tier still uses the first tier's rate.
    """
    revenue = _dec(revenue)
    if revenue < _dec(rule.base_revenue_threshold):
        return Decimal("0")
    tiers = sorted(rule.tiers, key=lambda tier: _dec(tier.revenue_threshold))
    if not tiers:
        return Decimal("0")

    applicable = tiers[0]
    for tier in tiers:
        if revenue >= _dec(tier.revenue_threshold):
            applicable = tier
        else:
            break
    return revenue * _dec(applicable.incentive_rate) / Decimal("100")


def _range_label(rule) -> str:
    rate_min = _dec(rule.commission_rate_min).normalize()
    rate_max = _dec(rule.commission_rate_max)
    max_display = "∞" if rate_max == Decimal("100") else f"{rate_max.normalize():f}%"
    return f"{rate_min:f}% - {max_display}"


def quest_category(
    avg_commission_rate: Decimal | float,
    rule,
    midpoint: Decimal = DEFAULT_MIDPOINT_RATE,
) -> QuestCategory | None:
    if rule is None:
        return None
    rate = _dec(avg_commission_rate)
    if _dec(rule.commission_rate_min) <= rate <= _dec(rule.commission_rate_max):
        label = "Standard Commission" if rate < midpoint else "High Commission"
        return QuestCategory(category=label, range=_range_label(rule))
    return QuestCategory(category="Not Qualifying", range="Outside range")


def _in_period(value: date, month: int, year: int) -> bool:
    return value.month == month and value.year == year


def user_accounts_overview(
    users: Sequence,
    accounts: Sequence,
    sales: Sequence,
    month: int,
    year: int,
    rule,
    midpoint: Decimal = DEFAULT_MIDPOINT_RATE,
) -> list[UserIncentiveRow]:
    """Aggregate each user's owned accounts for one month and price the incentive."""
    if rule is None:
        return []
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12 (got {month})")

    min_commission = _dec(rule.min_commission_threshold)
    base_revenue = _dec(rule.base_revenue_threshold)

    period_sales: dict[int, list] = {}
    for sale in sales:
        if _in_period(sale.date, month, year):
            period_sales.setdefault(sale.account_id, []).append(sale)

    rows: list[UserIncentiveRow] = []
    for user in users:
        owned = [account for account in accounts if account.user_id == user.id]
        row = UserIncentiveRow(user_id=user.id, user_name=user.name, total_accounts=len(owned))

        for account in owned:
            account_sales = period_sales.get(account.id, [])
            commission = sum((_dec(sale.gross_commission) for sale in account_sales), Decimal("0"))
            # Accounts below the commission floor are ignored entirely
            if commission >= min_commission:
                revenue = sum((_dec(sale.total_purchases) for sale in account_sales), Decimal("0"))
                row.total_revenue += revenue
                row.total_commission += commission
                row.qualifying_accounts += 1
                row.qualifying_account_ids.append(account.id)

        if row.total_revenue > 0:
            row.avg_commission_rate = (row.total_commission / row.total_revenue * 100).quantize(
                _RATE_PLACES, rounding=ROUND_HALF_UP
            )
        row.quest = quest_category(row.avg_commission_rate, rule, midpoint)
        if row.total_revenue >= base_revenue:
            row.incentive_amount = calculate_tiered_incentive(row.total_revenue, rule)
        rows.append(row)

    rows.sort(key=lambda item: item.total_revenue, reverse=True)
    return rows


def decade_years(start_year: int) -> list[int]:
    """Years shown by the period picker's decade view."""
    return [start_year + offset for offset in range(DECADE_SPAN)]
