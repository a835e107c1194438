"""Shared fixtures: in-memory repositories, the ASGI app and client-side stores."""

import itertools
from typing import Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from crudgrid.client.storage import MemorySessionStorage
from crudgrid.core.config import Settings, get_settings
from crudgrid.core.exceptions import DuplicateKeyError
from crudgrid.main import app
from crudgrid.models.auth_user import AuthUser
from crudgrid.models.user import User
from crudgrid.services.repository.base import AuthUserRepository, UserRepository

TEST_SETTINGS = Settings(jwt_secret="test-secret", environment="test", testing=True)


class InMemoryUserRepository(UserRepository):
    """Keeps users in insertion order; listing returns newest first."""

    def __init__(self):
        self.users: List[User] = []

    async def list_users(self) -> List[User]:
        return list(reversed(self.users))

    async def get_user(self, user_id: int) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    async def insert_user(self, user: User) -> User:
        for existing in self.users:
            if existing.id == user.id:
                raise DuplicateKeyError("id", user.id)
            if existing.email == user.email:
                raise DuplicateKeyError("email", user.email)
        self.users.append(user)
        return user

    async def replace_user(self, user_id: int, user: User) -> Optional[User]:
        for i, existing in enumerate(self.users):
            if existing.id == user_id:
                self.users[i] = user
                return user
        return None

    async def delete_user(self, user_id: int) -> bool:
        before = len(self.users)
        self.users = [u for u in self.users if u.id != user_id]
        return len(self.users) < before


class InMemoryAuthUserRepository(AuthUserRepository):
    def __init__(self):
        self.accounts: Dict[str, AuthUser] = {}
        self._ids = itertools.count(1)

    async def get_by_email(self, email: str) -> Optional[AuthUser]:
        return next((a for a in self.accounts.values() if a.email == email.lower()), None)

    async def get_by_id(self, account_id: str) -> Optional[AuthUser]:
        return self.accounts.get(account_id)

    async def insert(self, name: str, email: str, password_hash: str) -> AuthUser:
        if await self.get_by_email(email) is not None:
            raise DuplicateKeyError("email", email, "Email already exists")
        account = AuthUser(id=f"acct{next(self._ids)}", name=name, email=email, password_hash=password_hash)
        self.accounts[account.id] = account
        return account

    async def update_name(self, account_id: str, name: str) -> Optional[AuthUser]:
        account = self.accounts.get(account_id)
        if account is None:
            return None
        account = account.model_copy(update={"name": name})
        self.accounts[account_id] = account
        return account


def user_payload(user_id: int = 1, **overrides) -> dict:
    """Raw user fields in wire (camelCase) names, not validated."""
    data = {
        "id": user_id,
        "firstName": "Ada",
        "lastName": "Lovelace",
        "age": 36,
        "email": f"user{user_id}@example.com",
        "phone": "+1 123 456 7890",
        "birthDate": "1990-05-17",
    }
    data.update(overrides)
    return data


def make_user(user_id: int = 1, **overrides) -> User:
    return User.model_validate(user_payload(user_id, **overrides))


@pytest.fixture
def user_repository():
    return InMemoryUserRepository()


@pytest.fixture
def auth_user_repository():
    return InMemoryAuthUserRepository()


@pytest.fixture
def test_app(user_repository, auth_user_repository):
    """The API app wired to in-memory repositories."""
    app.state.user_repository = user_repository
    app.state.auth_user_repository = auth_user_repository
    app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def api_client(test_app):
    """HTTP client talking to the app in-process."""
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test/api") as client:
        yield client


@pytest.fixture
def storage():
    return MemorySessionStorage()
