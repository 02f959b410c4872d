from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import (
    CurrentUser,
    create_access_token,
    get_current_user,
    hash_password,
    normalize_email,
    normalize_username,
    verify_password,
)
from app.models.user import User
from app.schemas.account import (
    AuthUserResponse,
    LoginRequest,
    RegisterRequest,
    SubscriptionResponse,
    TokenResponse,
    UserResponse,
)
from app.services.subscriptions import get_current_subscription
from app.services.usage_meter import monthly_total, usage_bucket


logger = logging.getLogger(__name__)

router = APIRouter()


def _validate_email(email: str) -> str | None:
    at = email.rfind("@")
    if at <= 0 or "." not in email[at + 1 :]:
        return "Invalid email"
    return None


@router.post("/register", response_model=TokenResponse)
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    username = normalize_username(body.username)
    email = normalize_email(body.email) or None
    if len(username) < 3:
        raise HTTPException(status_code=400, detail="Username must be at least 3 characters")
    if email:
        detail = _validate_email(email)
        if detail:
            raise HTTPException(status_code=400, detail=detail)

    clauses = [User.username == username]
    if email:
        clauses.append(User.email == email)
    if db.query(User).filter(or_(*clauses)).first() is not None:
        raise HTTPException(status_code=400, detail="Username or email already registered")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(body.password),
        first_name=(body.first_name or "").strip() or None,
        last_name=(body.last_name or "").strip() or None,
    )
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except Exception:
        db.rollback()
        raise
    logger.info("account.registered user_id=%s", user.id)
    return TokenResponse(access_token=create_access_token(user), user=UserResponse.model_validate(user))


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    username = normalize_username(body.username)
    user = db.query(User).filter(User.username == username).first()
    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return TokenResponse(access_token=create_access_token(user), user=UserResponse.model_validate(user))


@router.get("/auth/user", response_model=AuthUserResponse)
async def auth_user(db: Session = Depends(get_db), current_user: CurrentUser = Depends(get_current_user)):
    user = db.query(User).filter(User.id == current_user.id).first()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    sub = get_current_subscription(db, user.id)
    month, year = usage_bucket()
    used = monthly_total(db, user.id, month, year)

    return AuthUserResponse(
        **UserResponse.model_validate(user).model_dump(),
        subscription=(SubscriptionResponse.model_validate(sub) if sub is not None else None),
        ai_usage_this_month=used,
    )
