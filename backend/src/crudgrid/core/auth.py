"""Authentication module for the application.

This module provides password hashing, JWT token generation and the
dependency that resolves the current account from a cookie or a bearer
token.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from crudgrid.core.config import Settings, get_settings
from crudgrid.models.auth_user import AuthUser

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
DEV_JWT_SECRET = "crudgrid-dev-jwt-secret"

_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class TokenExpired(Exception):
    """Raised when a token is well-formed but past its expiry."""


class TokenInvalid(Exception):
    """Raised when a token cannot be decoded or verified."""


def jwt_secret(settings: Settings) -> str:
    return settings.jwt_secret or DEV_JWT_SECRET


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its stored hash.

    Args:
        password: The password to verify.
        password_hash: The stored hash.

    Returns:
        bool: True if the password is correct, False otherwise.
    """
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


def create_access_token(user: AuthUser, settings: Settings) -> str:
    """Create a new JWT access token for an account.

    Returns:
        str: The JWT access token carrying ``userId, name, email, iat, exp``.
    """
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=max(1, settings.jwt_expiration_minutes))

    to_encode: Dict[str, Any] = {
        "userId": user.id,
        "name": user.name,
        "email": user.email,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }

    return jwt.encode(to_encode, jwt_secret(settings), algorithm=JWT_ALGORITHM)


def decode_token(token: str, settings: Settings) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        TokenExpired: If the token is past ``exp``.
        TokenInvalid: For any other decoding failure.
    """
    try:
        return jwt.decode(token, jwt_secret(settings), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise TokenExpired(str(e)) from e
    except jwt.PyJWTError as e:
        raise TokenInvalid(str(e)) from e


_bearer = HTTPBearer(auto_error=False)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def read_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    settings: Settings,
) -> Optional[str]:
    """Prefer an explicit bearer token, fall back to the auth cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name)


async def get_token_claims(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Resolve and verify the session token of a request.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired.
    """
    token = read_token(request, credentials, settings)
    if not token:
        raise _unauthorized("Access denied. No token provided.")

    try:
        return decode_token(token, settings)
    except TokenExpired:
        raise _unauthorized("Token expired. Please login again.")
    except TokenInvalid:
        raise _unauthorized("Invalid token.")
