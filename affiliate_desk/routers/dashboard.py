"""Dashboard summary and full workbook export."""
from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.core.access import account_stats, visible_accounts, visible_sales_data
from affiliate_desk.core.formatting import format_idr, format_period_label
from affiliate_desk.core.incentives import active_rule
from affiliate_desk.core.reports import report_metrics
from affiliate_desk.database import get_session
from affiliate_desk.exporting import export_full_workbook
from affiliate_desk.routers.auth import get_current_user, get_superadmin_user

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    today = date.today()
    accounts = visible_accounts(crud.list_accounts(db), user)
    month_rows = [
        row
        for row in visible_sales_data(crud.list_sales_data(db), user)
        if row.date.year == today.year and row.date.month == today.month
    ]
    metrics = report_metrics(month_rows)
    rule = active_rule(crud.list_incentive_rules(db))

    return {
        "user": {"id": user.id, "name": user.name, "role_label": user.role_label},
        "accounts": account_stats(accounts).as_dict(),
        "period_label": format_period_label(today.month, today.year),
        "month_metrics": metrics.as_dict(),
        "month_commission_display": format_idr(metrics.total_commission),
        "month_revenue_display": format_idr(metrics.total_revenue),
        "active_rule": rule.name if rule else None,
        "file_count": len(crud.list_files(db)),
    }


@router.get("/dashboard/export-xlsx")
def export_dashboard_xlsx(db: Session = Depends(get_session), admin: User = Depends(get_superadmin_user)) -> Response:
    content = export_full_workbook(db)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"affiliate_full_export_{timestamp}.xlsx"
    return Response(
        content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
