"""Affiliate account routes."""
from __future__ import annotations

from typing import Any, Iterable

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.core.access import (
    ALL,
    account_label,
    account_stats,
    can_access_account,
    category_name,
    filter_accounts,
    search_accounts,
    visible_accounts,
)
from affiliate_desk.database import get_session
from affiliate_desk.errors import not_found, store_errors
from affiliate_desk.models import ACCOUNT_STATUS_LABELS, PAYMENT_DATA_LABELS, Account
from affiliate_desk.routers.auth import get_current_user, get_superadmin_user
from affiliate_desk.schemas import AccountCreate, AccountRead, AccountUpdate

router = APIRouter(prefix="/accounts", tags=["Accounts"])


def _serialize_account(account: Account, categories: Iterable) -> dict[str, Any]:
    payload = AccountRead.model_validate(account).model_dump(mode="json")
    payload["category_name"] = category_name(categories, account.category_id)
    payload["status_label"] = ACCOUNT_STATUS_LABELS.get(account.status, account.status)
    payload["payment_label"] = PAYMENT_DATA_LABELS.get(account.payment_data, account.payment_data)
    return payload


def _get_visible_account(db: Session, account_id: int, user: User) -> Account:
    account = crud.get_account(db, account_id)
    # Accounts outside the user's managed list are reported as missing
    if not account or not can_access_account(user, account.id):
        raise not_found("Account")
    return account


@router.get("")
def list_accounts(
    search: str | None = Query(default=None),
    status_filter: str = Query(default=ALL, alias="status"),
    payment: str = Query(default=ALL),
    category: str = Query(default=ALL),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    categories = crud.list_categories(db)
    accounts = visible_accounts(crud.list_accounts(db), user)
    filtered = filter_accounts(accounts, search, status_filter, payment, category)
    return {
        "accounts": [_serialize_account(account, categories) for account in filtered],
        "stats": account_stats(accounts).as_dict(),
        "total_visible": len(accounts),
    }


@router.get("/search")
def search_accounts_for_picker(
    q: str | None = Query(default=None),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    categories = crud.list_categories(db)
    accounts = visible_accounts(crud.list_accounts(db), user)
    return [
        {"id": account.id, "label": account_label(account, categories)}
        for account in search_accounts(accounts, q, categories)
    ]


@router.get("/{account_id}")
def get_account(account_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    account = _get_visible_account(db, account_id, user)
    return _serialize_account(account, crud.list_categories(db))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    if not user.is_superadmin() and payload.user_id not in (None, user.id):
        raise HTTPException(status_code=403, detail="Only superadmins can create accounts for other users")
    with store_errors(db, "add account"):
        account = crud.create_account(db, payload, current_user=user)
    return _serialize_account(account, crud.list_categories(db))


@router.patch("/{account_id}")
def update_account(
    account_id: int,
    payload: AccountUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Partial update; inline edits send a single field."""
    account = _get_visible_account(db, account_id, user)
    with store_errors(db, "update account"):
        account = crud.update_account(db, account, payload)
    return _serialize_account(account, crud.list_categories(db))


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: int,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    account = crud.get_account(db, account_id)
    if not account:
        raise not_found("Account")
    with store_errors(db, "delete account"):
        crud.delete_account(db, account)
