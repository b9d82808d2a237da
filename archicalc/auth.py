"""
Identity for the API: password hashes, JWT access/refresh tokens, and the
FastAPI dependencies that turn a bearer token into a User.

Access tokens are stateless and short-lived. Refresh tokens are long-lived
and only valid while their SHA-256 hash has a row in auth_tokens; signing
out deletes that row.

Libraries: python-jose[cryptography] for JWT, passlib[bcrypt] for passwords.
"""

import hashlib
import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import models
from .config import settings
from .database import get_db

ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _secret() -> str:
    if not settings.JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JWT_SECRET is not configured",
        )
    return settings.JWT_SECRET


def _encode(user_id: int, token_type: str, lifetime: timedelta, **claims) -> str:
    payload = {
        "sub": str(user_id),
        "type": token_type,
        "exp": datetime.utcnow() + lifetime,
        **claims,
    }
    return jwt.encode(payload, _secret(), algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: int) -> str:
    return _encode(user_id, ACCESS, timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES))


def create_refresh_token(user_id: int) -> str:
    # jti keeps two refresh tokens issued in the same second distinct
    return _encode(
        user_id, REFRESH, timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS), jti=str(uuid.uuid4()),
    )


def decode_token(token: str, expected_type: str) -> int:
    """Validate signature, expiry and token type. Returns the user id."""
    try:
        payload = jwt.decode(token, _secret(), algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise unauthorized("Invalid or expired token")
    if payload.get("type") != expected_type:
        raise unauthorized(f"Expected a {expected_type} token")
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise unauthorized("Invalid token payload")


# --- Refresh token lifecycle ---

def issue_tokens(db: Session, user: models.User) -> dict:
    """New access + refresh pair. Only the refresh token's hash is stored."""
    refresh_token = create_refresh_token(user.id)
    db.add(models.AuthToken(
        user_id=user.id,
        token_hash=hash_token(refresh_token),
        token_type=REFRESH,
        expires_at=datetime.utcnow() + timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS),
    ))
    db.commit()
    return {
        "access_token": create_access_token(user.id),
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user_id": user.id,
    }


def stored_refresh_token(db: Session, refresh_token: str) -> models.AuthToken:
    """The live auth_tokens row for `refresh_token`; 401 if revoked or expired."""
    row = db.query(models.AuthToken).filter(
        models.AuthToken.token_hash == hash_token(refresh_token),
        models.AuthToken.token_type == REFRESH,
    ).first()
    if row is None:
        raise unauthorized("Refresh token has been revoked")
    if row.expires_at < datetime.utcnow():
        raise unauthorized("Refresh token expired")
    return row


def revoke_refresh_tokens(db: Session, user_id: int, refresh_token: Optional[str] = None) -> int:
    """Delete one refresh token of the user, or all of them when none is given."""
    query = db.query(models.AuthToken).filter(
        models.AuthToken.user_id == user_id,
        models.AuthToken.token_type == REFRESH,
    )
    if refresh_token is not None:
        query = query.filter(models.AuthToken.token_hash == hash_token(refresh_token))
    revoked = query.delete(synchronize_session=False)
    db.commit()
    return revoked


# --- FastAPI dependencies ---

def _load_user(db: Session, user_id: int) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if user is None:
        raise unauthorized("User not found")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> models.User:
    if credentials is None:
        raise unauthorized("Authentication required")
    return _load_user(db, decode_token(credentials.credentials, ACCESS))


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> Optional[models.User]:
    """None for anonymous viewers. A token that is present but bad is still a 401."""
    if credentials is None:
        return None
    return _load_user(db, decode_token(credentials.credentials, ACCESS))
