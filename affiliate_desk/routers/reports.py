"""Sales report routes: filtered metrics, per-account accumulation, CSV export."""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.core.access import ALL, visible_accounts, visible_sales_data
from affiliate_desk.core.formatting import format_idr
from affiliate_desk.core.reports import (
    DateFilter,
    accumulate_by_account,
    build_csv,
    csv_filename,
    filter_sales,
    report_metrics,
)
from affiliate_desk.database import get_session
from affiliate_desk.routers.auth import get_current_user

router = APIRouter(prefix="/reports", tags=["Reports"])


def _date_filter(preset: str, start_date: date | None, end_date: date | None) -> DateFilter:
    try:
        return DateFilter(preset=preset, start_date=start_date, end_date=end_date)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _filtered_rows(db: Session, user: User, account_id: str, date_filter: DateFilter) -> list:
    rows = visible_sales_data(crud.list_sales_data(db), user)
    return filter_sales(rows, account_id, date_filter)


@router.get("")
def sales_report(
    account_id: str = Query(default=ALL),
    preset: str = Query(default=ALL),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    date_filter = _date_filter(preset, start_date, end_date)
    rows = _filtered_rows(db, user, account_id, date_filter)
    accounts = {account.id: account for account in visible_accounts(crud.list_accounts(db), user)}

    metrics = report_metrics(rows)
    accumulated = []
    for item in accumulate_by_account(rows):
        entry = item.as_dict()
        account = accounts.get(item.account_id)
        entry["username"] = account.username if account else "Unknown"
        entry["account_code"] = account.account_code if account else None
        entry["gross_commission_display"] = format_idr(item.gross_commission)
        entry["total_purchases_display"] = format_idr(item.total_purchases)
        accumulated.append(entry)

    return {
        "filters": {
            "account_id": account_id,
            "preset": date_filter.preset,
            "start_date": date_filter.start_date,
            "end_date": date_filter.end_date,
        },
        "row_count": len(rows),
        "metrics": metrics.as_dict(),
        "accumulated": accumulated,
    }


@router.get("/export")
def export_report_csv(
    account_id: str = Query(default=ALL),
    preset: str = Query(default=ALL),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
) -> StreamingResponse:
    """Download the accumulated rows currently on screen as CSV."""
    date_filter = _date_filter(preset, start_date, end_date)
    rows = _filtered_rows(db, user, account_id, date_filter)
    content = build_csv(accumulate_by_account(rows), visible_accounts(crud.list_accounts(db), user))

    headers = {"Content-Disposition": f'attachment; filename="{csv_filename()}"'}
    return StreamingResponse(iter([content]), media_type="text/csv", headers=headers)
