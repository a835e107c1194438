"""Dependencies for the application using FastAPI app state for singletons."""

import logging
from typing import Any, Dict

from fastapi import Depends, HTTPException, Request, status

from crudgrid.core.auth import get_token_claims
from crudgrid.core.config import Settings, get_settings
from crudgrid.models.auth_user import AuthUser
from crudgrid.services.auth_service import AuthService
from crudgrid.services.user_service import UserService

logger = logging.getLogger(__name__)


def get_user_service(request: Request) -> UserService:
    """Get the user service from application state."""
    if not hasattr(request.app.state, "user_repository"):
        raise ValueError("User repository not initialized in application state")

    return UserService(request.app.state.user_repository)


def get_auth_service(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> AuthService:
    """Get the auth service from application state."""
    if not hasattr(request.app.state, "auth_user_repository"):
        raise ValueError("Auth user repository not initialized in application state")

    return AuthService(request.app.state.auth_user_repository, settings)


async def get_current_account(
    claims: Dict[str, Any] = Depends(get_token_claims),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthUser:
    """Resolve the account behind a verified token."""
    account = await auth_service.get_account(str(claims.get("userId", "")))
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token. User not found.",
        )
    return account
