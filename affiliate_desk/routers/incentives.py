"""Incentive rule management and the monthly incentive overview."""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.config import get_settings
from affiliate_desk.core.formatting import format_idr, format_percent, format_period_label
from affiliate_desk.core.incentives import active_rule, decade_years, user_accounts_overview
from affiliate_desk.database import get_session
from affiliate_desk.errors import not_found, store_errors
from affiliate_desk.routers.auth import get_current_user, get_superadmin_user
from affiliate_desk.schemas import IncentiveRuleCreate, IncentiveRuleRead, IncentiveRuleUpdate

router = APIRouter(prefix="/incentives", tags=["Incentives"])


@router.get("/rules", response_model=list[IncentiveRuleRead])
def list_rules(db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return crud.list_incentive_rules(db)


@router.post("/rules", response_model=IncentiveRuleRead, status_code=status.HTTP_201_CREATED)
def create_rule(
    payload: IncentiveRuleCreate,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    with store_errors(db, "add incentive rule"):
        return crud.create_incentive_rule(db, payload)


@router.patch("/rules/{rule_id}", response_model=IncentiveRuleRead)
def update_rule(
    rule_id: int,
    payload: IncentiveRuleUpdate,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    rule = crud.get_incentive_rule(db, rule_id)
    if not rule:
        raise not_found("Incentive rule")
    with store_errors(db, "update incentive rule"):
        return crud.update_incentive_rule(db, rule, payload)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(
    rule_id: int,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    rule = crud.get_incentive_rule(db, rule_id)
    if not rule:
        raise not_found("Incentive rule")
    with store_errors(db, "delete incentive rule"):
        crud.delete_incentive_rule(db, rule)


@router.get("/overview")
def incentive_overview(
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=2000, le=2100),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Per-user incentive rows for one month; non-superadmins only see their own row."""
    today = date.today()
    month = month or today.month
    year = year or today.year

    rule = active_rule(crud.list_incentive_rules(db))
    users = crud.list_users(db) if user.is_superadmin() else [user]
    rows = user_accounts_overview(
        users,
        crud.list_accounts(db),
        crud.list_sales_data(db),
        month,
        year,
        rule,
        midpoint=get_settings().midpoint_rate,
    )

    payload_rows = []
    for row in rows:
        item = row.as_dict()
        item["total_revenue_display"] = format_idr(row.total_revenue)
        item["total_commission_display"] = format_idr(row.total_commission)
        item["avg_commission_rate_display"] = format_percent(row.avg_commission_rate)
        item["incentive_amount_display"] = (
            format_idr(row.incentive_amount) if row.incentive_amount is not None else None
        )
        payload_rows.append(item)

    return {
        "month": month,
        "year": year,
        "period_label": format_period_label(month, year),
        "rule": IncentiveRuleRead.model_validate(rule).model_dump(mode="json") if rule else None,
        "rows": payload_rows,
    }


@router.get("/years")
def picker_years(
    start: int | None = Query(default=None, ge=1900, le=2200),
    user: User = Depends(get_current_user),
):
    start = start if start is not None else date.today().year // 10 * 10
    return {"start": start, "years": decade_years(start)}
