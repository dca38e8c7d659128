from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from affiliate_desk.core.incentives import (
    active_rule,
    calculate_tiered_incentive,
    decade_years,
    quest_category,
    user_accounts_overview,
)


def _tier(threshold, rate):
    return SimpleNamespace(revenue_threshold=Decimal(threshold), incentive_rate=Decimal(rate))


def _rule(tiers=None, base="0", min_commission="0", rate_min="5", rate_max="12.5", is_active=True):
    return SimpleNamespace(
        name="Quest",
        tiers=tiers if tiers is not None else [],
        base_revenue_threshold=Decimal(base),
        min_commission_threshold=Decimal(min_commission),
        commission_rate_min=Decimal(rate_min),
        commission_rate_max=Decimal(rate_max),
        is_active=is_active,
    )


def _sale(account_id, day, commission, revenue):
    return SimpleNamespace(
        account_id=account_id,
        date=day,
        gross_commission=Decimal(commission),
        total_purchases=Decimal(revenue),
    )


def test_tiered_incentive_uses_highest_reached_tier():
    rule = _rule(tiers=[_tier("30000000", "2"), _tier("10000000", "1")], base="10000000")

    assert calculate_tiered_incentive(Decimal("15000000"), rule) == Decimal("150000")
    assert calculate_tiered_incentive(Decimal("40000000"), rule) == Decimal("800000")


def test_tiered_incentive_below_base_is_zero():
    rule = _rule(tiers=[_tier("10000000", "1")], base="10000000")
    assert calculate_tiered_incentive(Decimal("9999999"), rule) == 0


def test_tiered_incentive_below_first_tier_uses_first_rate():
    rule = _rule(tiers=[_tier("20000000", "1.5"), _tier("50000000", "3")], base="5000000")
    assert calculate_tiered_incentive(Decimal("6000000"), rule) == Decimal("90000")


def test_tiered_incentive_without_tiers_is_zero():
    assert calculate_tiered_incentive(Decimal("1000000"), _rule(tiers=[])) == 0


def test_active_rule_picks_first_active():
    inactive = _rule(is_active=False)
    first = _rule(is_active=True)
    second = _rule(is_active=True)
    assert active_rule([inactive, first, second]) is first
    assert active_rule([inactive]) is None


def test_quest_category_bands():
    rule = _rule(rate_min="5", rate_max="12.5")

    standard = quest_category(Decimal("6.4999"), rule)
    assert standard.category == "Standard Commission"
    assert standard.range == "5% - 12.5%"
    assert quest_category(Decimal("6.5"), rule).category == "High Commission"

    outside = quest_category(Decimal("13"), rule)
    assert outside.category == "Not Qualifying"
    assert outside.range == "Outside range"
    assert quest_category(Decimal("7"), None) is None


def test_quest_category_unbounded_range_label():
    rule = _rule(rate_min="0", rate_max="100")
    assert quest_category(Decimal("20"), rule).range == "0% - ∞"


def test_user_overview_counts_only_qualifying_accounts():
    users = [SimpleNamespace(id=1, name="Alice"), SimpleNamespace(id=2, name="Bob")]
    accounts = [
        SimpleNamespace(id=10, user_id=1),
        SimpleNamespace(id=11, user_id=1),
        SimpleNamespace(id=20, user_id=2),
    ]
    sales = [
        _sale(10, date(2025, 3, 1), "600000", "8000000"),
        _sale(10, date(2025, 3, 2), "600000", "4000000"),
        # Below the commission floor, ignored entirely
        _sale(11, date(2025, 3, 5), "100000", "2000000"),
        # Different month
        _sale(20, date(2025, 2, 28), "900000", "9000000"),
    ]
    rule = _rule(tiers=[_tier("10000000", "1")], base="10000000", min_commission="500000")

    rows = user_accounts_overview(users, accounts, sales, 3, 2025, rule)

    assert [row.user_name for row in rows] == ["Alice", "Bob"]
    alice, bob = rows
    assert alice.total_accounts == 2
    assert alice.qualifying_accounts == 1
    assert alice.qualifying_account_ids == [10]
    assert alice.total_revenue == Decimal("12000000")
    assert alice.total_commission == Decimal("1200000")
    assert alice.avg_commission_rate == Decimal("10.0000")
    assert alice.incentive_amount == Decimal("120000")
    assert alice.quest.category == "High Commission"

    assert bob.total_revenue == 0
    assert bob.avg_commission_rate == 0
    assert bob.incentive_amount is None
    assert bob.quest.category == "Not Qualifying"


def test_user_overview_without_rule_is_empty():
    assert user_accounts_overview([SimpleNamespace(id=1, name="A")], [], [], 1, 2025, None) == []


def test_user_overview_rejects_bad_month():
    with pytest.raises(ValueError):
        user_accounts_overview([], [], [], 13, 2025, _rule())


def test_decade_years_spans_sixteen_years():
    years = decade_years(2020)
    assert len(years) == 16
    assert years[0] == 2020
    assert years[-1] == 2035
