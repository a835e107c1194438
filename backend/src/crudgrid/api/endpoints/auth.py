"""Authentication endpoints for the API."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status

from crudgrid.core.auth import TokenExpired, TokenInvalid, decode_token
from crudgrid.core.config import Settings, get_settings
from crudgrid.core.dependencies import get_auth_service
from crudgrid.models.auth_user import AuthUser
from crudgrid.schemas.auth_api import AccountSchema, LoginRequest, LoginResponse, MessageResponse
from crudgrid.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        settings.auth_cookie_name,
        token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=settings.jwt_expiration_minutes * 60,
    )


def _login_response(account: AuthUser, token: str) -> LoginResponse:
    return LoginResponse(
        token=token,
        user=AccountSchema(id=account.id, name=account.name, email=account.email),
    )


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: Dict[str, Any] = Body(...),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Register a new account."""
    await auth_service.register(payload)
    return MessageResponse(message="User registered successfully")


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> LoginResponse:
    """Authenticate with email and password and set the session cookie.

    Raises:
        HTTPException: If the credentials are incorrect.
    """
    result = await auth_service.login(request.email, request.password)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    account, token = result
    _set_auth_cookie(response, token, settings)
    logger.info(f"Account {account.email} logged in")
    return _login_response(account, token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """Clear the session cookie."""
    response.delete_cookie(settings.auth_cookie_name)
    return MessageResponse(message="Logged out successfully")


@router.post("/refresh", response_model=LoginResponse)
async def refresh(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> LoginResponse:
    """Issue a new token from the one held in the session cookie."""
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required",
        )

    try:
        claims = decode_token(token, settings)
    except (TokenExpired, TokenInvalid):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    result = await auth_service.refresh(str(claims.get("userId", "")))
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    account, new_token = result
    _set_auth_cookie(response, new_token, settings)
    return _login_response(account, new_token)
