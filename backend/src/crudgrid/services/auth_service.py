"""Service for account registration, login and profile updates."""

import logging
from typing import Optional, Tuple

from pydantic import ValidationError

from crudgrid.core.auth import create_access_token, hash_password, verify_password
from crudgrid.core.config import Settings
from crudgrid.core.exceptions import NotFoundError, RecordValidationError
from crudgrid.models.auth_user import AuthUser
from crudgrid.models.user import field_errors_from
from crudgrid.schemas.auth_api import ProfileUpdateRequest, RegisterRequest
from crudgrid.services.repository.base import AuthUserRepository

logger = logging.getLogger(__name__)


class AuthService:
    """Service for managing login accounts."""

    def __init__(self, repository: AuthUserRepository, settings: Settings):
        self.repository = repository
        self.settings = settings

    async def register(self, payload: dict) -> AuthUser:
        """Register a new account.

        Raises:
            RecordValidationError: If a field is missing or malformed.
            DuplicateKeyError: If the email is already registered.
        """
        try:
            request = RegisterRequest.model_validate(payload)
        except ValidationError as e:
            raise RecordValidationError(field_errors_from(e)) from e

        account = await self.repository.insert(
            name=request.name,
            email=request.email,
            password_hash=hash_password(request.password),
        )
        logger.info(f"Registered account {account.email}")
        return account

    async def login(self, email: str, password: str) -> Optional[Tuple[AuthUser, str]]:
        """Return the account and a fresh token, or None on bad credentials."""
        account = await self.repository.get_by_email(email or "")
        if account is None or not verify_password(password, account.password_hash):
            logger.info("Rejected login attempt")
            return None
        return account, create_access_token(account, self.settings)

    async def refresh(self, account_id: str) -> Optional[Tuple[AuthUser, str]]:
        account = await self.repository.get_by_id(account_id)
        if account is None:
            return None
        return account, create_access_token(account, self.settings)

    async def get_account(self, account_id: str) -> Optional[AuthUser]:
        return await self.repository.get_by_id(account_id)

    async def update_profile(self, account_id: str, payload: dict) -> AuthUser:
        try:
            request = ProfileUpdateRequest.model_validate(payload)
        except ValidationError as e:
            raise RecordValidationError(field_errors_from(e)) from e

        account = await self.repository.update_name(account_id, request.name)
        if account is None:
            raise NotFoundError("User not found")
        return account
