"""
Accounts and sessions: sign up, sign in, token refresh, sign out, profile.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import models
from ..auth import (
    REFRESH,
    create_access_token,
    decode_token,
    get_current_user,
    hash_password,
    issue_tokens,
    revoke_refresh_tokens,
    stored_refresh_token,
    unauthorized,
    verify_password,
)
from ..database import get_db
from ..services import AppServices, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class Credentials(BaseModel):
    email: str
    password: str


class SignUp(Credentials):
    full_name: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    # Omitted: every refresh token of the account is revoked
    refresh_token: Optional[str] = None


class UserOut(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


def _session(db: Session, user: models.User) -> dict:
    return {**issue_tokens(db, user), "user": UserOut.model_validate(user).model_dump(mode="json")}


@router.post("/register")
def register(request: SignUp, db: Session = Depends(get_db)):
    email = request.email.strip().lower()
    if db.query(models.User).filter(models.User.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = models.User(
        email=email,
        password_hash=hash_password(request.password),
        full_name=request.full_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Account %s created", user.id)
    return _session(db, user)


@router.post("/login")
def login(request: Credentials, db: Session = Depends(get_db)):
    user = db.query(models.User).filter(models.User.email == request.email.strip().lower()).first()
    if user is None or not verify_password(request.password, user.password_hash):
        raise unauthorized("Invalid email or password")
    return _session(db, user)


@router.post("/refresh")
def refresh(request: RefreshRequest, db: Session = Depends(get_db)):
    """New access token for a refresh token that has not been revoked."""
    user_id = decode_token(request.refresh_token, REFRESH)
    stored_refresh_token(db, request.refresh_token)
    return {"access_token": create_access_token(user_id), "token_type": "bearer", "user_id": user_id}


@router.post("/logout")
def logout(
    request: LogoutRequest,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: AppServices = Depends(get_services),
):
    """
    Sign out. Revokes the refresh token (or all of them) and drops the
    in-memory price and settings snapshots. The access token stays valid
    until it expires.
    """
    revoked = revoke_refresh_tokens(db, current_user.id, request.refresh_token)
    services.evict(current_user.id)
    logger.info("User %s signed out, %d refresh token(s) revoked", current_user.id, revoked)
    return {"ok": True, "revoked": revoked}


@router.get("/me", response_model=UserOut)
def me(current_user: models.User = Depends(get_current_user)):
    return current_user
