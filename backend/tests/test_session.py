"""Tests for the client session and identity store."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest

from crudgrid.client.api_client import AuthApi
from crudgrid.client.notifications import NotificationCenter
from crudgrid.client.session import IDENTITY_KEY, AuthSession, IdentityStore, decode_claims
from crudgrid.core.config import ClientSettings
from crudgrid.core.exceptions import AuthExpiredError, ErrorKind, NetworkError

NOW = 1_700_000_000


def make_token(exp=NOW + 3600, name="Ada Lovelace"):
    claims = {"userId": "acct1", "name": name, "email": "ada@example.com", "iat": NOW, "exp": exp}
    return jwt.encode(claims, "server-secret", algorithm="HS256")


@pytest.fixture
def clock():
    now = [float(NOW)]
    clock = MagicMock(side_effect=lambda: now[0])
    clock.now = now
    return clock


@pytest.fixture
def auth_api():
    api = AsyncMock(spec=AuthApi)
    api.login.return_value = {"success": True, "token": make_token()}
    api.refresh.return_value = {"success": True, "token": make_token()}
    return api


@pytest.fixture
def identity(storage):
    return IdentityStore(storage)


@pytest.fixture
def session(auth_api, identity, clock):
    on_logout = MagicMock()
    session = AuthSession(
        auth_api,
        identity,
        ClientSettings(token_check_interval=0.01),
        NotificationCenter(),
        on_logout=on_logout,
        clock=clock,
    )
    return session


def test_decode_claims_does_not_need_the_secret():
    claims = decode_claims(make_token())
    assert claims.userId == "acct1"
    assert claims.first_name == "Ada"


def test_decode_claims_rejects_garbage():
    with pytest.raises(AuthExpiredError):
        decode_claims("not-a-token")


def test_identity_store_first_name(identity, storage):
    assert identity.first_name() == "User"
    identity.set(decode_claims(make_token(name="")))
    assert identity.first_name() == "User"

    storage.set_item(IDENTITY_KEY, "{broken")
    assert identity.get() is None


@pytest.mark.asyncio
async def test_login_stores_identity(session, identity, auth_api):
    claims = await session.login("ada@example.com", "secret1")

    auth_api.login.assert_awaited_once_with("ada@example.com", "secret1")
    assert claims.email == "ada@example.com"
    assert identity.get() == claims
    assert session.is_authenticated
    await session.close()


@pytest.mark.asyncio
async def test_expired_token_forces_logout(session, identity, clock):
    await session.login("ada@example.com", "secret1")
    clock.now[0] = NOW + 3600

    assert session.on_focus() is False
    assert identity.get() is None
    assert session.token is None
    session.on_logout.assert_called_once()
    assert session.notifications.active()[-1].kind == ErrorKind.AUTH_EXPIRED
    await session.close()


@pytest.mark.asyncio
async def test_background_check_logs_out_after_expiry(session, identity, clock):
    await session.login("ada@example.com", "secret1")
    await asyncio.sleep(0.03)
    assert session.is_authenticated

    clock.now[0] = NOW + 4000
    for _ in range(50):
        if identity.get() is None:
            break
        await asyncio.sleep(0.01)

    assert identity.get() is None
    session.on_logout.assert_called_once()
    await session.close()


@pytest.mark.asyncio
async def test_initialize_keeps_a_valid_identity(session, identity, auth_api):
    identity.set(decode_claims(make_token()))

    claims = await session.initialize()
    assert claims.userId == "acct1"
    auth_api.refresh.assert_not_awaited()
    await session.close()


@pytest.mark.asyncio
async def test_initialize_without_session_is_silent(session, identity, auth_api):
    identity.set(decode_claims(make_token(exp=NOW - 1)))
    auth_api.refresh.side_effect = AuthExpiredError("Refresh token required")

    assert await session.initialize() is None
    assert identity.get() is None
    assert session.notifications.active() == ()


@pytest.mark.asyncio
async def test_initialize_restores_from_cookie(session, identity):
    claims = await session.initialize()
    assert claims.email == "ada@example.com"
    assert identity.get() == claims
    await session.close()


@pytest.mark.asyncio
async def test_logout_clears_locally_even_if_server_fails(session, identity, auth_api):
    await session.login("ada@example.com", "secret1")
    auth_api.logout.side_effect = NetworkError("offline")

    await session.logout()

    auth_api.logout.assert_awaited_once()
    assert identity.get() is None
    session.on_logout.assert_called_once()
    await session.close()
