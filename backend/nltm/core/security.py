"""Password hashing, JWT access tokens and the ``get_current_user`` dependency.

Clients authenticate with ``Authorization: Bearer <token>``; the token's ``sub``
claim is the user id.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from ..db import crud
from ..db.models import User
from ..db.session import get_session
from .config import settings

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


class TokenError(Exception):
    def __init__(self, message: str, expired: bool = False):
        super().__init__(message)
        self.expired = expired


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], password_hash.encode("ascii"))
    except ValueError:
        logger.warning("stored password hash is malformed")
        return False


def create_access_token(user_id: int, expires_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    minutes = settings.JWT_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    payload = {"sub": str(user_id), "iat": now, "exp": now + timedelta(minutes=minutes)}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    """Return the user id in ``token`` or raise TokenError."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token has expired", expired=True) from e
    except jwt.InvalidTokenError as e:
        raise TokenError("Invalid token") from e
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise TokenError("Invalid token") from e


def _unauthorized(request: Request, detail: str, reason: str) -> HTTPException:
    client_ip = request.client.host if request.client else "unknown"
    logger.warning("auth failure: reason=%s ip=%s path=%s", reason, client_ip, request.url.path)
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    if credentials is None:
        raise _unauthorized(request, "Access denied. No token provided.", "missing_header")
    try:
        user_id = decode_access_token(credentials.credentials)
    except TokenError as e:
        if e.expired:
            raise _unauthorized(request, "Token has expired. Please login again.", "expired_token")
        raise _unauthorized(request, "Invalid token. Please login again.", "invalid_token")

    user = crud.get_user(session, user_id)
    if user is None:
        raise _unauthorized(request, "User not found. Please login again.", "unknown_user")
    return user
