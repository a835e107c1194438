"""Abstract base classes for record persistence."""

from abc import ABC, abstractmethod
from typing import List, Optional

from crudgrid.models.auth_user import AuthUser
from crudgrid.models.user import User


class UserRepository(ABC):
    """Storage for user records keyed by their integer id."""

    @abstractmethod
    async def list_users(self) -> List[User]:
        """Return all users, newest first."""
        pass

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        """Return the user with ``user_id`` or None."""
        pass

    @abstractmethod
    async def insert_user(self, user: User) -> User:
        """Insert a user. Raises DuplicateKeyError on a taken id or email."""
        pass

    @abstractmethod
    async def replace_user(self, user_id: int, user: User) -> Optional[User]:
        """Replace the user stored under ``user_id``. None if it does not exist."""
        pass

    @abstractmethod
    async def delete_user(self, user_id: int) -> bool:
        """Delete a user. Returns False if it did not exist."""
        pass


class AuthUserRepository(ABC):
    """Storage for login accounts."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[AuthUser]:
        pass

    @abstractmethod
    async def get_by_id(self, account_id: str) -> Optional[AuthUser]:
        pass

    @abstractmethod
    async def insert(self, name: str, email: str, password_hash: str) -> AuthUser:
        """Insert an account. Raises DuplicateKeyError on a taken email."""
        pass

    @abstractmethod
    async def update_name(self, account_id: str, name: str) -> Optional[AuthUser]:
        pass
