"""Role-based visibility of accounts and their sales data.

Superadmins see everything. Every other user sees only the accounts listed in
their ``managed_accounts`` and the sales rows that belong to those accounts.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence, TypeVar

from affiliate_desk.models import UNSET_CATEGORY_LABEL

ALL = "all"


class _Viewer(Protocol):
    role: str
    managed_accounts: list[int]


class _HasAccountId(Protocol):
    account_id: int


RowT = TypeVar("RowT", bound=_HasAccountId)


@dataclass
class AccountStats:
    total: int = 0
    active: int = 0
    violation: int = 0
    priority_payment: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "active": self.active,
            "violation": self.violation,
            "priority_payment": self.priority_payment,
        }


def is_superadmin(user: _Viewer | None) -> bool:
    return user is not None and user.role == "superadmin"


def can_access_account(user: _Viewer | None, account_id: int) -> bool:
    if user is None:
        return False
    if is_superadmin(user):
        return True
    return account_id in (user.managed_accounts or [])


def visible_accounts(accounts: Sequence, user: _Viewer | None) -> list:
    if user is None:
        return []
    if is_superadmin(user):
        return list(accounts)
    managed = set(user.managed_accounts or [])
    return [account for account in accounts if account.id in managed]


def visible_sales_data(rows: Sequence[RowT], user: _Viewer | None) -> list[RowT]:
    if user is None:
        return []
    if is_superadmin(user):
        return list(rows)
    managed = set(user.managed_accounts or [])
    return [row for row in rows if row.account_id in managed]


def category_name(categories: Iterable, category_id: int | None) -> str:
    if not category_id:
        return UNSET_CATEGORY_LABEL
    for category in categories:
        if category.id == category_id:
            return category.name
    return UNSET_CATEGORY_LABEL


def _is_active_filter(value: object) -> bool:
    return value not in (None, "", ALL)


def filter_accounts(
    accounts: Sequence,
    search: str | None = None,
    status: str | None = ALL,
    payment: str | None = ALL,
    category: int | str | None = ALL,
) -> list:
    """Apply the account list's search box and dropdown filters."""
    term = (search or "").strip()
    lowered = term.lower()
    results = []
    for account in accounts:
        if term:
            matches_search = (
                lowered in (account.username or "").lower()
                or lowered in (account.email or "").lower()
                or lowered in (account.account_code or "").lower()
                or term in (account.phone or "")
            )
            if not matches_search:
                continue
        if _is_active_filter(status) and account.status != status:
            continue
        if _is_active_filter(payment) and account.payment_data != payment:
            continue
        if _is_active_filter(category) and str(account.category_id) != str(category):
            continue
        results.append(account)
    return results


def search_accounts(accounts: Sequence, term: str | None, categories: Iterable) -> list:
    """Account-picker search, which also matches on category name."""
    lowered = (term or "").strip().lower()
    if not lowered:
        return list(accounts)
    categories = list(categories)
    results = []
    for account in accounts:
        haystacks = (
            account.username or "",
            account.email or "",
            account.account_code or "",
            category_name(categories, account.category_id),
        )
        if any(lowered in value.lower() for value in haystacks):
            results.append(account)
    return results


def account_stats(accounts: Iterable) -> AccountStats:
    stats = AccountStats()
    for account in accounts:
        stats.total += 1
        if account.status == "active":
            stats.active += 1
        elif account.status == "violation":
            stats.violation += 1
        if account.payment_data == "utamakan":
            stats.priority_payment += 1
    return stats


def account_label(account, categories: Iterable) -> str:
    """``username (code) - category`` as shown by the report account picker."""
    return f"{account.username} ({account.account_code}) - {category_name(categories, account.category_id)}"
