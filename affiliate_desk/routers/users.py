"""Superadmin user administration."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.database import get_session
from affiliate_desk.errors import not_found, store_errors
from affiliate_desk.routers.auth import get_superadmin_user
from affiliate_desk.schemas import UserCreate, UserRead, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=list[UserRead])
def list_users(db: Session = Depends(get_session), admin: User = Depends(get_superadmin_user)):
    return crud.list_users(db)


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, db: Session = Depends(get_session), admin: User = Depends(get_superadmin_user)):
    user = crud.get_user(db, user_id)
    if not user:
        raise not_found("User")
    return user


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    with store_errors(db, "add user"):
        user = crud.create_user(db, payload)
        crud.log_admin_action(db, admin.id, "create_user", {"user_id": user.id, "email": user.email})
    return user


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    user = crud.get_user(db, user_id)
    if not user:
        raise not_found("User")
    if user.id == admin.id and payload.role is not None and payload.role != "superadmin":
        raise HTTPException(status_code=400, detail="You cannot remove your own superadmin role")
    with store_errors(db, "update user"):
        user = crud.update_user(db, user, payload)
        crud.log_admin_action(db, admin.id, "update_user", {"user_id": user.id})
    return user


@router.put("/{user_id}/accounts", response_model=UserRead)
def assign_accounts(
    user_id: int,
    account_ids: list[int] = Body(...),
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    """Replace the user's managed account list."""
    user = crud.get_user(db, user_id)
    if not user:
        raise not_found("User")
    with store_errors(db, "assign accounts"):
        user = crud.update_user(db, user, UserUpdate(managed_accounts=account_ids))
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    user = crud.get_user(db, user_id)
    if not user:
        raise not_found("User")
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    with store_errors(db, "delete user"):
        email = user.email
        crud.delete_user(db, user)
        crud.log_admin_action(db, admin.id, "delete_user", {"user_id": user_id, "email": email})
    logger.info("User %s deleted by %s", email, admin.email)
