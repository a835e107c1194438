"""Tests for the user form bridge."""

from datetime import date

import pytest
import pytest_asyncio

from crudgrid.client.cache import CollectionCache, CollectionSource, Confirmed, Rejected
from crudgrid.client.drafts import user_drafts
from crudgrid.client.forms import DialogState, UserFormBridge, next_available_id
from crudgrid.client.notifications import Level, NotificationCenter
from crudgrid.core.exceptions import AuthExpiredError, DuplicateKeyError, ErrorKind, NetworkError, NotFoundError
from crudgrid.models.user import age_from_birth_date

from conftest import make_user


class UsersServer(CollectionSource):
    def __init__(self, records=()):
        self.server = list(records)
        self.error = None

    async def fetch_all(self):
        return list(self.server)

    async def create(self, record):
        if self.error is not None:
            raise self.error
        self.server.insert(0, record)
        return record

    async def update(self, record):
        if self.error is not None:
            raise self.error
        if all(r.id != record.id for r in self.server):
            raise NotFoundError(f"User with ID {record.id} not found")
        self.server = [record if r.id == record.id else r for r in self.server]
        return record

    async def delete(self, record_id):
        if self.error is not None:
            raise self.error
        if all(r.id != record_id for r in self.server):
            raise NotFoundError(f"User with ID {record_id} not found")
        self.server = [r for r in self.server if r.id != record_id]


def form_values(**overrides):
    values = {
        "firstName": "Grace",
        "lastName": "Hopper",
        "age": "45",
        "email": "grace@example.com",
        "phone": "+1 123 456 7890",
        "birthDate": "1980-02-03",
    }
    values.update(overrides)
    return values


@pytest.fixture
def server():
    return UsersServer([make_user(1), make_user(2)])


@pytest_asyncio.fixture
async def cache(server):
    cache = CollectionCache()
    cache.register("users", server)
    await cache.fetch_all("users")
    yield cache
    await cache.wait_idle("users")


@pytest.fixture
def drafts(storage):
    return user_drafts(storage)


@pytest.fixture
def notifications():
    return NotificationCenter()


@pytest.fixture
def bridge(cache, drafts, notifications):
    return UserFormBridge(cache, drafts, notifications)


@pytest.mark.parametrize(
    "existing, expected",
    [([], 1), ([1, 2, 3], 4), ([1, 2, 4], 3), ([2, 3], 1), ([3, 1, 1], 2)],
)
def test_next_available_id(existing, expected):
    assert next_available_id([make_user(i) for i in existing]) == expected


@pytest.mark.asyncio
async def test_open_for_create_picks_id_across_server_and_drafts(bridge, drafts):
    drafts.add(make_user(3))
    assert bridge.open_for_create() == 4
    assert bridge.state == DialogState.OPEN


@pytest.mark.asyncio
async def test_valid_create_goes_to_the_server(bridge, server, notifications):
    bridge.open_for_create()
    result = await bridge.submit(form_values())

    assert result.ok
    assert result.record.id == 3
    assert result.saved_locally is False
    assert server.server[0].id == 3
    assert bridge.state == DialogState.CLOSED
    assert notifications.active()[-1].level == Level.SUCCESS


@pytest.mark.asyncio
async def test_invalid_form_never_reaches_the_server(bridge, cache, server):
    bridge.open_for_create()
    result = await bridge.submit(form_values(email="bad", firstName=""))

    assert not result.ok
    assert result.field_errors == {
        "email": "Please enter a valid email address",
        "firstName": "First name is required",
    }
    assert bridge.state == DialogState.OPEN_WITH_ERRORS
    assert len(server.server) == 2
    assert [r.id for r in cache.records("users")] == [1, 2]


@pytest.mark.asyncio
async def test_clearing_birth_date_error_clears_age_error(bridge):
    bridge.open_for_create()
    await bridge.submit(form_values(age="", birthDate=""))
    assert set(bridge.field_errors) == {"age", "birthDate"}

    bridge.clear_field_error("birthDate")
    assert bridge.field_errors == {}
    assert bridge.state == DialogState.OPEN


@pytest.mark.asyncio
async def test_age_is_derived_from_birth_date(bridge):
    bridge.open_for_create()
    result = await bridge.submit(form_values(age="", birthDate=date(1990, 7, 1)))

    assert result.record.age == age_from_birth_date(date(1990, 7, 1))
    assert result.record.birth_date == "1990-07-01"


@pytest.mark.asyncio
async def test_duplicate_id_becomes_a_field_error(bridge, server, cache, drafts):
    server.error = DuplicateKeyError("id", 3, "ID 3 is already in use. Please try with a different ID.")
    bridge.open_for_create()
    result = await bridge.submit(form_values())

    assert result.field_errors == {"id": "ID 3 is already in use. Please try with a different ID."}
    assert bridge.state == DialogState.OPEN_WITH_ERRORS
    assert [r.id for r in cache.records("users")] == [1, 2]
    assert drafts.list() == ()


@pytest.mark.asyncio
async def test_network_failure_keeps_record_as_draft(bridge, server, cache, drafts, notifications):
    server.error = NetworkError("offline")
    bridge.open_for_create()
    result = await bridge.submit(form_values())

    assert result.ok
    assert result.saved_locally
    assert [r.id for r in drafts.list()] == [3]
    assert [r.id for r in cache.records("users")] == [1, 2]
    assert bridge.state == DialogState.CLOSED
    assert notifications.active()[-1].kind == ErrorKind.NETWORK


@pytest.mark.asyncio
async def test_expired_session_propagates(bridge, server):
    server.error = AuthExpiredError("Token expired. Please login again.")
    bridge.open_for_create()
    with pytest.raises(AuthExpiredError):
        await bridge.submit(form_values())
    assert bridge.state == DialogState.OPEN


@pytest.mark.asyncio
async def test_edit_keeps_the_id(bridge, server):
    bridge.open_for_edit(make_user(2))
    result = await bridge.submit(form_values(firstName="Edited"))

    assert result.record.id == 2
    assert [r.first_name for r in server.server if r.id == 2] == ["Edited"]


@pytest.mark.asyncio
async def test_editing_a_draft_the_server_lacks_updates_the_draft(bridge, drafts):
    drafts.add(make_user(9))
    bridge.open_for_edit(drafts.get(9))
    result = await bridge.submit(form_values(firstName="Offline"))

    assert result.saved_locally
    assert drafts.get(9).first_name == "Offline"


@pytest.mark.asyncio
async def test_edit_without_an_id_is_a_field_error(bridge, server):
    result = await bridge.submit(form_values(firstName="Nobody"), is_edit=True)

    assert not result.ok
    assert "id" in result.field_errors
    assert bridge.state == DialogState.OPEN_WITH_ERRORS
    assert [r.first_name for r in server.server] == ["Ada", "Ada"]


@pytest.mark.asyncio
async def test_unexpected_remote_failure_reopens_the_dialog(bridge, server):
    server.error = ValueError("malformed response body")
    bridge.open_for_create()
    with pytest.raises(ValueError):
        await bridge.submit(form_values())
    assert bridge.state == DialogState.OPEN_WITH_ERRORS

    server.error = None
    result = await bridge.submit(form_values())
    assert result.ok
    assert bridge.state == DialogState.CLOSED


@pytest.mark.asyncio
async def test_submit_twice_while_submitting_is_refused(bridge):
    bridge.open_for_create()
    bridge.state = DialogState.SUBMITTING
    with pytest.raises(RuntimeError):
        await bridge.submit(form_values())


@pytest.mark.asyncio
async def test_cancel_resets_the_dialog(bridge):
    bridge.open_for_edit(make_user(1))
    bridge.cancel()
    assert bridge.state == DialogState.CLOSED
    assert bridge.initial is None


@pytest.mark.asyncio
async def test_delete_remote_record(bridge, server, cache):
    outcome = await bridge.delete(1)
    assert outcome == Confirmed(1)
    assert [r.id for r in server.server] == [2]
    assert [r.id for r in cache.records("users")] == [2]


@pytest.mark.asyncio
async def test_delete_draft_only_record(bridge, drafts):
    drafts.add(make_user(8))
    outcome = await bridge.delete(8)
    assert outcome == Confirmed(8)
    assert drafts.list() == ()
    assert drafts.last_removed.id == 8


@pytest.mark.asyncio
async def test_failed_delete_restores_the_row(bridge, server, cache, notifications):
    server.error = NetworkError("offline")
    outcome = await bridge.delete(1)

    assert isinstance(outcome, Rejected)
    assert [r.id for r in cache.records("users")] == [1, 2]
    assert notifications.active()[-1].level == Level.ERROR
