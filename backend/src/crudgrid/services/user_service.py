"""Service for managing user records."""

import logging
from typing import Any, Dict, List, Mapping

from crudgrid.core.exceptions import DuplicateKeyError, NotFoundError
from crudgrid.models.user import User, validate_user
from crudgrid.services.repository.base import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    """Validates user payloads and applies them to the repository."""

    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def list_users(self) -> List[User]:
        users = await self.repository.list_users()
        logger.info(f"Listed {len(users)} users")
        return users

    async def get_user(self, user_id: int) -> User:
        user = await self.repository.get_user(user_id)
        if user is None:
            raise NotFoundError(
                f"User with ID {user_id} not found. Please check the ID and try again."
            )
        return user

    async def create_user(self, payload: Mapping[str, Any]) -> User:
        """Create a user with the client-assigned id.

        Raises:
            DuplicateKeyError: If the id or email is already taken.
            RecordValidationError: If the payload breaks a field rule.
        """
        user = validate_user(payload)

        existing = await self.repository.get_user(user.id)
        if existing is not None:
            logger.warning(f"ID conflict detected: {user.id} already exists")
            raise DuplicateKeyError(
                "id",
                user.id,
                f"ID {user.id} is already in use. Please try with a different ID.",
            )

        saved = await self.repository.insert_user(user)
        logger.info(f"User saved successfully with ID: {saved.id}")
        return saved

    async def update_user(self, user_id: int, payload: Mapping[str, Any]) -> User:
        """Replace a user. The body may carry a new id; it defaults to the path id."""
        data: Dict[str, Any] = dict(payload)
        data["id"] = data.get("id") or user_id
        user = validate_user(data)

        updated = await self.repository.replace_user(user_id, user)
        if updated is None:
            raise NotFoundError(f"User with ID {user_id} not found")
        return updated

    async def delete_user(self, user_id: int) -> None:
        deleted = await self.repository.delete_user(user_id)
        if not deleted:
            raise NotFoundError(f"User with ID {user_id} not found")
        logger.info(f"Deleted user {user_id}")
