"""Category routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.database import get_session
from affiliate_desk.errors import not_found, store_errors
from affiliate_desk.routers.auth import get_current_user, get_superadmin_user
from affiliate_desk.schemas import CategoryCreate, CategoryRead, CategoryUpdate

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=list[CategoryRead])
def list_categories(db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return crud.list_categories(db)


@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    with store_errors(db, "add category"):
        return crud.create_category(db, payload)


@router.patch("/{category_id}", response_model=CategoryRead)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    category = crud.get_category(db, category_id)
    if not category:
        raise not_found("Category")
    with store_errors(db, "update category"):
        return crud.update_category(db, category, payload)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    category = crud.get_category(db, category_id)
    if not category:
        raise not_found("Category")
    with store_errors(db, "delete category"):
        crud.delete_category(db, category)
