"""Daily sales data routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.core.access import can_access_account, visible_sales_data
from affiliate_desk.database import get_session
from affiliate_desk.errors import not_found, store_errors
from affiliate_desk.importers import import_sales_file
from affiliate_desk.routers.auth import get_current_user
from affiliate_desk.schemas import SalesDataCreate, SalesDataDelete, SalesDataRead

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.get("", response_model=list[SalesDataRead])
def list_sales(
    account_id: int | None = Query(default=None),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    rows = visible_sales_data(crud.list_sales_data(db), user)
    if account_id is not None:
        rows = [row for row in rows if row.account_id == account_id]
    return rows


@router.post("", response_model=list[SalesDataRead])
def upsert_sales(
    payload: list[SalesDataCreate],
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Insert rows or overwrite existing rows for the same account and date."""
    if not payload:
        raise HTTPException(status_code=400, detail="No sales rows supplied")
    for row in payload:
        if not can_access_account(user, row.account_id):
            raise not_found("Account")
    with store_errors(db, "save sales data"):
        return crud.upsert_sales_data(db, payload)


@router.post("/delete")
def delete_sales(
    payload: SalesDataDelete,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    if not can_access_account(user, payload.account_id) or not crud.get_account(db, payload.account_id):
        raise not_found("Account")
    with store_errors(db, "delete sales data"):
        deleted = crud.delete_sales_data(db, payload.account_id, payload.start, payload.end)
    return {"deleted": deleted}


@router.post("/import")
async def import_sales(
    file: UploadFile = File(...),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    with store_errors(db, "import sales data"):
        summary = import_sales_file(db, content, file.filename or "", user)
    return summary.as_dict()
