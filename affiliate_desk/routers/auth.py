"""Authentication routes and session management."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.config import get_settings
from affiliate_desk.database import get_session
from affiliate_desk.schemas import UserRead

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])

SESSION_COOKIE = "user_id"


@router.post("/login")
def login(
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_session),
):
    """Check credentials and set the session cookie."""
    user = crud.get_user_by_email(db, email)
    if not user or not user.verify_password(password):
        logger.info("Failed login for %s", email.strip().lower())
        raise HTTPException(status_code=401, detail="Invalid email or password")

    response = JSONResponse(content={"user": UserRead.model_validate(user).model_dump(mode="json")})
    response.set_cookie(
        key=SESSION_COOKIE,
        value=str(user.id),
        httponly=True,
        path="/",
        secure=get_settings().cookie_secure,
        samesite="lax",
        max_age=86400,  # 24 hours
    )
    return response


@router.post("/logout")
def logout():
    """Clear the session cookie."""
    response = JSONResponse(content={"status": "logged_out"})
    response.delete_cookie(SESSION_COOKIE)
    return response


def get_current_user(request: Request, db: Session = Depends(get_session)) -> User:
    """Dependency to get current authenticated user."""
    user_id = request.cookies.get(SESSION_COOKIE)

    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        user_id = int(user_id)
    except (ValueError, TypeError):
        raise HTTPException(status_code=401, detail="Invalid session")

    user = crud.get_user(db, user_id)

    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return user


def get_superadmin_user(user: User = Depends(get_current_user)) -> User:
    """Dependency to ensure user is a superadmin."""
    if not user.is_superadmin():
        raise HTTPException(status_code=403, detail="Superadmin access required")
    return user


@router.get("/me", response_model=UserRead)
def me(user: User = Depends(get_current_user)):
    return user
