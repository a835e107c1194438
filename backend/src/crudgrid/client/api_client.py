"""HTTP clients for the users, products and auth endpoints."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from crudgrid.core.config import ClientSettings
from crudgrid.core.exceptions import (
    ApiError,
    AuthExpiredError,
    DuplicateKeyError,
    NetworkError,
    NotFoundError,
    RecordValidationError,
)
from crudgrid.models.product import Product
from crudgrid.models.user import User

logger = logging.getLogger(__name__)


def _body(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def raise_for_response(response: httpx.Response) -> None:
    """Translate a non-2xx response into the error taxonomy."""
    if response.is_success:
        return

    body = _body(response)
    message = body.get("message") or body.get("detail") or response.reason_phrase

    if response.status_code == 404:
        raise NotFoundError(message)
    if response.status_code == 401:
        raise AuthExpiredError(message)
    if response.status_code == 400 and body.get("field"):
        raise DuplicateKeyError(body["field"], body.get("value"), message)
    if response.status_code == 400 and isinstance(body.get("errors"), dict):
        raise RecordValidationError(body["errors"])
    raise ApiError(response.status_code, message)


class ApiClient:
    """Thin wrapper around ``httpx.AsyncClient`` that speaks the error taxonomy."""

    def __init__(self, settings: ClientSettings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.client = client or httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
        )

    async def request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise NetworkError(f"Network error: {e}") from e
        raise_for_response(response)
        return _body(response)

    async def aclose(self) -> None:
        await self.client.aclose()


class UsersApi:
    """Client for the ``/users`` endpoints."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def fetch_users(self) -> List[User]:
        body = await self.api.request("GET", "/users")
        return [User.model_validate(item) for item in body.get("users", [])]

    async def fetch_user(self, user_id: int) -> User:
        body = await self.api.request("GET", f"/users/{user_id}")
        return User.model_validate(body)

    async def create_user(self, user: User) -> User:
        logger.info(f"Creating user {user.id}")
        body = await self.api.request("POST", "/users/add", json=user.to_wire())
        return User.model_validate(body)

    async def update_user(self, user: User) -> User:
        logger.info(f"Updating user {user.id}")
        body = await self.api.request("PUT", f"/users/{user.id}", json=user.to_wire())
        return User.model_validate(body)

    async def delete_user(self, user_id: int) -> None:
        await self.api.request("DELETE", f"/users/{user_id}")


class ProductsApi:
    """Client for the read-only products endpoint."""

    def __init__(self, api: ApiClient, url: Optional[str] = None):
        self.api = api
        self.url = url or api.settings.products_url

    async def fetch_products(self) -> List[Product]:
        body = await self.api.request("GET", self.url)
        return [Product.from_payload(item) for item in body.get("products", [])]

    async def fetch_product(self, product_id: int) -> Product:
        body = await self.api.request("GET", f"{self.url}/{product_id}")
        return Product.from_payload(body)


class AuthApi:
    """Client for the ``/auth`` and ``/protected`` endpoints."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        return await self.api.request("POST", "/auth/login", json={"email": email, "password": password})

    async def register(self, name: str, email: str, password: str, confirm_password: str) -> Dict[str, Any]:
        return await self.api.request(
            "POST",
            "/auth/register",
            json={
                "name": name,
                "email": email,
                "password": password,
                "confirmPassword": confirm_password,
            },
        )

    async def logout(self) -> None:
        await self.api.request("POST", "/auth/logout")

    async def refresh(self) -> Dict[str, Any]:
        return await self.api.request("POST", "/auth/refresh")

    async def profile(self) -> Dict[str, Any]:
        return await self.api.request("GET", "/protected/profile")

    async def update_profile(self, name: str) -> Dict[str, Any]:
        return await self.api.request("PUT", "/protected/profile", json={"name": name})
