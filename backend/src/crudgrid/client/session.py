"""Client-side login state and token expiry watching."""

import asyncio
import json
import logging
import time
from typing import Callable, Optional

import jwt
from pydantic import ValidationError

from crudgrid.client.api_client import AuthApi
from crudgrid.client.notifications import NotificationCenter
from crudgrid.client.storage import SessionStorage
from crudgrid.core.config import ClientSettings
from crudgrid.core.exceptions import AuthExpiredError, CrudGridError
from crudgrid.models.auth_user import TokenClaims

logger = logging.getLogger(__name__)

IDENTITY_KEY = "logged-in-user-storage"


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def decode_claims(token: str) -> TokenClaims:
    """Read the claims of a token without checking it. The server does that.

    Raises:
        AuthExpiredError: If the token cannot be read at all.
    """
    try:
        payload = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
        return TokenClaims.model_validate(payload)
    except (jwt.InvalidTokenError, ValidationError) as e:
        raise AuthExpiredError("Invalid token.") from e


class IdentityStore:
    """The logged-in identity, kept in session storage."""

    def __init__(self, storage: SessionStorage, key: str = IDENTITY_KEY):
        self.storage = storage
        self.key = key

    def get(self) -> Optional[TokenClaims]:
        raw = self.storage.get_item(self.key)
        if not raw:
            return None
        try:
            return TokenClaims.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            logger.warning(f"Discarding unreadable identity under {self.key}")
            self.clear()
            return None

    def set(self, claims: TokenClaims) -> None:
        self.storage.set_item(self.key, claims.model_dump_json())

    def clear(self) -> None:
        self.storage.remove_item(self.key)

    def first_name(self) -> str:
        claims = self.get()
        return claims.first_name if claims is not None else "User"


class AuthSession:
    """Tracks who is logged in and logs them out once the token expires.

    While someone is logged in, a background task checks the token every
    ``token_check_interval`` seconds. ``on_focus`` runs the same check when
    the UI regains focus. An expired token clears the identity, posts a
    notification and calls ``on_logout``.
    """

    def __init__(
        self,
        auth_api: AuthApi,
        identity: IdentityStore,
        settings: ClientSettings,
        notifications: Optional[NotificationCenter] = None,
        on_logout: Optional[Callable[[], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.auth_api = auth_api
        self.identity = identity
        self.settings = settings
        self.notifications = notifications or NotificationCenter()
        self.on_logout = on_logout
        self.clock = clock
        self.token: Optional[str] = None
        self._watch_task: Optional[asyncio.Task] = None

    @property
    def claims(self) -> Optional[TokenClaims]:
        return self.identity.get()

    def is_expired(self, claims: Optional[TokenClaims] = None) -> bool:
        claims = claims or self.claims
        return claims is None or claims.exp <= self.clock()

    @property
    def is_authenticated(self) -> bool:
        return not self.is_expired()

    def _accept(self, token: str) -> TokenClaims:
        claims = decode_claims(token)
        self.token = token
        self.identity.set(claims)
        self.start_expiry_watch()
        return claims

    async def initialize(self) -> Optional[TokenClaims]:
        """Restore the session at startup.

        A stored identity that is still valid is kept. Otherwise the session
        cookie is tried once; not being logged in is not an error here.
        """
        claims = self.identity.get()
        if claims is not None and not self.is_expired(claims):
            self.start_expiry_watch()
            return claims

        self.identity.clear()
        try:
            body = await self.auth_api.refresh()
        except AuthExpiredError:
            logger.info("No active session to restore")
            return None
        return self._accept(body["token"])

    async def login(self, email: str, password: str) -> TokenClaims:
        body = await self.auth_api.login(email, password)
        claims = self._accept(body["token"])
        logger.info(f"Logged in as {claims.email}")
        return claims

    async def register(self, name: str, email: str, password: str, confirm_password: str) -> str:
        body = await self.auth_api.register(name, email, password, confirm_password)
        return body.get("message", "")

    async def refresh(self) -> TokenClaims:
        body = await self.auth_api.refresh()
        return self._accept(body["token"])

    async def logout(self) -> None:
        """Log out on the server, then locally even if the server call failed."""
        try:
            await self.auth_api.logout()
        except CrudGridError as e:
            logger.warning(f"Server logout failed: {e}")
        self._end()

    def _end(self) -> None:
        self.stop_expiry_watch()
        self.token = None
        self.identity.clear()
        if self.on_logout is not None:
            self.on_logout()

    def check_expiry(self) -> bool:
        """Force a logout if the stored token has expired. Returns True while still logged in."""
        claims = self.claims
        if claims is None:
            return False
        if not self.is_expired(claims):
            return True

        logger.info(f"Token for {claims.email} expired, logging out")
        self.notifications.error(AuthExpiredError("Token expired. Please login again."))
        self._end()
        return False

    def on_focus(self) -> bool:
        return self.check_expiry()

    def start_expiry_watch(self) -> None:
        if self._watch_task is not None and not self._watch_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._watch_task = loop.create_task(self._watch())

    async def _watch(self) -> None:
        while True:
            await asyncio.sleep(self.settings.token_check_interval)
            if not self.check_expiry():
                return

    def stop_expiry_watch(self) -> None:
        task = self._watch_task
        self._watch_task = None
        if task is not None and task is not _current_task():
            task.cancel()

    async def close(self) -> None:
        task = self._watch_task
        self.stop_expiry_watch()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
