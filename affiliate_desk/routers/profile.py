"""User profile routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.database import get_session
from affiliate_desk.errors import store_errors
from affiliate_desk.routers.auth import get_current_user
from affiliate_desk.schemas import PasswordChange, ProfileUpdate, UserRead
from affiliate_desk.security import PasswordValidator

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("")
def view_profile(user: User = Depends(get_current_user)):
    """View current user profile."""
    payload = UserRead.model_validate(user).model_dump(mode="json")
    payload["role_label"] = user.role_label
    return payload


@router.patch("", response_model=UserRead)
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    with store_errors(db, "update profile"):
        return crud.update_profile(db, user, payload)


@router.post("/change-password")
def change_password(
    payload: PasswordChange,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Change current user's password."""
    if not user.verify_password(payload.current_password):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    is_valid, error_msg = PasswordValidator.validate_change(payload.new_password, payload.confirm_password)
    if not is_valid:
        raise HTTPException(status_code=400, detail=error_msg)

    with store_errors(db, "change password"):
        crud.change_password(db, user, payload.current_password, payload.new_password)
    return {"status": "password_changed"}
