"""Keyed cache of server collections with optimistic mutations.

One ``CollectionCache`` instance is shared by every consumer of a
collection and passed to them explicitly. Each key holds an immutable
``Snapshot``; every change replaces it with a new one carrying a higher
version, and subscribers are told why it changed.

Mutations patch the snapshot before the server answers. On success the
confirmed record replaces the patched one and the key is invalidated so a
background fetch brings back the authoritative list. On failure the patch
is undone for that record only and the error is raised to the caller.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from crudgrid.client.api_client import ProductsApi, UsersApi
from crudgrid.core.exceptions import CrudGridError, ErrorKind, FetchError, UnsupportedOperationError, error_kind

logger = logging.getLogger(__name__)

USERS = "users"
PRODUCTS = "products"


class CollectionSource(ABC):
    """Where a cached collection comes from and how it is mutated."""

    @abstractmethod
    async def fetch_all(self) -> Sequence[Any]:
        pass

    async def create(self, record: Any) -> Any:
        raise UnsupportedOperationError(f"{type(self).__name__} is read-only")

    async def update(self, record: Any) -> Any:
        raise UnsupportedOperationError(f"{type(self).__name__} is read-only")

    async def delete(self, record_id: Any) -> None:
        raise UnsupportedOperationError(f"{type(self).__name__} is read-only")

    def key_of(self, record: Any) -> Any:
        return record.id


class UsersSource(CollectionSource):
    """User records served by the REST API."""

    def __init__(self, users_api: UsersApi):
        self.users_api = users_api

    async def fetch_all(self) -> Sequence[Any]:
        return await self.users_api.fetch_users()

    async def create(self, record: Any) -> Any:
        return await self.users_api.create_user(record)

    async def update(self, record: Any) -> Any:
        return await self.users_api.update_user(record)

    async def delete(self, record_id: Any) -> None:
        await self.users_api.delete_user(record_id)


class ProductsSource(CollectionSource):
    """Read-only products."""

    def __init__(self, products_api: ProductsApi):
        self.products_api = products_api

    async def fetch_all(self) -> Sequence[Any]:
        return await self.products_api.fetch_products()


class ChangeReason(str, Enum):
    """Why a snapshot was replaced."""

    FETCHED = "fetched"
    OPTIMISTIC = "optimistic"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"
    INVALIDATED = "invalidated"


@dataclass(frozen=True)
class Snapshot:
    """Immutable state of one cached collection."""

    records: Tuple[Any, ...] = ()
    version: int = 0
    fetched_at: Optional[float] = None
    stale: bool = True


# Mutation intents and their outcomes


@dataclass(frozen=True)
class Create:
    record: Any


@dataclass(frozen=True)
class Update:
    record: Any


@dataclass(frozen=True)
class Delete:
    record_id: Any


MutationIntent = Union[Create, Update, Delete]


@dataclass(frozen=True)
class Confirmed:
    value: Any


@dataclass(frozen=True)
class Rejected:
    kind: ErrorKind
    detail: str
    error: Optional[BaseException] = field(default=None, compare=False)


MutationOutcome = Union[Confirmed, Rejected]

CacheListener = Callable[[str, Snapshot, ChangeReason], None]


class _Entry:
    def __init__(self, source: CollectionSource):
        self.source = source
        self.snapshot = Snapshot()
        self.listeners: List[CacheListener] = []
        self.in_flight: Optional[asyncio.Future] = None
        self.refresh_task: Optional[asyncio.Task] = None


class CollectionCache:
    """Process-wide cache of collections, one entry per key."""

    def __init__(self, stale_time: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.stale_time = stale_time
        self.clock = clock
        self._entries: Dict[str, _Entry] = {}

    def register(self, key: str, source: CollectionSource) -> None:
        self._entries[key] = _Entry(source)

    def _entry(self, key: str) -> _Entry:
        try:
            return self._entries[key]
        except KeyError:
            raise KeyError(f"No collection registered under {key!r}") from None

    def snapshot(self, key: str) -> Snapshot:
        return self._entry(key).snapshot

    def records(self, key: str) -> Tuple[Any, ...]:
        return self._entry(key).snapshot.records

    def subscribe(self, key: str, listener: CacheListener) -> Callable[[], None]:
        """Call ``listener(key, snapshot, reason)`` after every change to ``key``."""
        entry = self._entry(key)
        entry.listeners.append(listener)
        return lambda: entry.listeners.remove(listener)

    def _publish(self, key: str, reason: ChangeReason, **changes) -> Snapshot:
        entry = self._entry(key)
        entry.snapshot = replace(entry.snapshot, version=entry.snapshot.version + 1, **changes)
        for listener in list(entry.listeners):
            listener(key, entry.snapshot, reason)
        return entry.snapshot

    def _patch(self, key: str, reason: ChangeReason, patch: Callable[[Tuple[Any, ...]], Sequence[Any]]) -> None:
        current = self._entry(key).snapshot.records
        self._publish(key, reason, records=tuple(patch(current)))

    def is_stale(self, key: str) -> bool:
        snapshot = self.snapshot(key)
        if snapshot.stale or snapshot.fetched_at is None:
            return True
        return self.clock() - snapshot.fetched_at > self.stale_time

    # Fetching

    async def fetch_all(self, key: str, force: bool = False) -> Tuple[Any, ...]:
        """Return the collection, loading it when stale or forced.

        Concurrent callers share one request. Failures are not retried.

        Raises:
            FetchError: If the source failed.
        """
        entry = self._entry(key)
        if not force and not self.is_stale(key):
            return entry.snapshot.records

        if entry.in_flight is None:
            entry.in_flight = asyncio.ensure_future(self._load(key))
        try:
            return await asyncio.shield(entry.in_flight)
        finally:
            if entry.in_flight is not None and entry.in_flight.done():
                entry.in_flight = None

    async def _load(self, key: str) -> Tuple[Any, ...]:
        entry = self._entry(key)
        logger.info(f"Fetching collection {key}")
        try:
            records = tuple(await entry.source.fetch_all())
        except Exception as e:
            logger.error(f"Fetching collection {key} failed: {e}")
            raise FetchError(key, e) from e
        self._publish(key, ChangeReason.FETCHED, records=records, fetched_at=self.clock(), stale=False)
        logger.info(f"Fetched {len(records)} records for {key}")
        return records

    def invalidate(self, key: str) -> None:
        """Mark ``key`` stale and refetch it in the background when a loop is running."""
        entry = self._entry(key)
        self._publish(key, ChangeReason.INVALIDATED, stale=True)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if entry.refresh_task is None or entry.refresh_task.done():
            entry.refresh_task = loop.create_task(self._background_refresh(key))

    async def _background_refresh(self, key: str) -> None:
        try:
            await self.fetch_all(key, force=True)
        except FetchError as e:
            logger.warning(f"Background refresh of {key} failed: {e.cause}")

    async def wait_idle(self, key: str) -> None:
        """Wait for a pending background refresh of ``key``."""
        task = self._entry(key).refresh_task
        if task is not None:
            await task

    # Mutations

    async def create(self, key: str, record: Any) -> Any:
        """Prepend ``record`` now and persist it.

        Raises:
            CrudGridError: Whatever the source raised, after the patch is undone.
        """
        entry = self._entry(key)
        key_of = entry.source.key_of
        record_id = key_of(record)

        self._patch(key, ChangeReason.OPTIMISTIC, lambda rows: (record, *rows))
        logger.info(f"Optimistically created {key}/{record_id}")
        try:
            confirmed = await entry.source.create(record)
        except Exception:
            logger.warning(f"Create of {key}/{record_id} failed, rolling back")
            self._patch(key, ChangeReason.ROLLED_BACK, lambda rows: _drop_first(rows, record))
            raise

        self._patch(key, ChangeReason.CONFIRMED, lambda rows: _swap(rows, record, confirmed))
        self.invalidate(key)
        return confirmed

    async def update(self, key: str, record: Any) -> Any:
        """Replace the record with the same id now and persist it."""
        entry = self._entry(key)
        key_of = entry.source.key_of
        record_id = key_of(record)
        previous = next((r for r in entry.snapshot.records if key_of(r) == record_id), None)

        self._patch(
            key,
            ChangeReason.OPTIMISTIC,
            lambda rows: [record if key_of(r) == record_id else r for r in rows],
        )
        logger.info(f"Optimistically updated {key}/{record_id}")
        try:
            confirmed = await entry.source.update(record)
        except Exception:
            logger.warning(f"Update of {key}/{record_id} failed, rolling back")
            if previous is not None:
                self._patch(key, ChangeReason.ROLLED_BACK, lambda rows: _swap(rows, record, previous))
            raise

        self._patch(key, ChangeReason.CONFIRMED, lambda rows: _swap(rows, record, confirmed))
        self.invalidate(key)
        return confirmed

    async def delete(self, key: str, record_id: Any) -> None:
        """Remove the record with ``record_id`` now and delete it on the server."""
        entry = self._entry(key)
        key_of = entry.source.key_of
        current = entry.snapshot.records
        position = next((i for i, r in enumerate(current) if key_of(r) == record_id), None)
        previous = current[position] if position is not None else None

        self._patch(key, ChangeReason.OPTIMISTIC, lambda rows: [r for r in rows if key_of(r) != record_id])
        logger.info(f"Optimistically deleted {key}/{record_id}")
        try:
            await entry.source.delete(record_id)
        except Exception:
            logger.warning(f"Delete of {key}/{record_id} failed, rolling back")
            if previous is not None:
                self._patch(key, ChangeReason.ROLLED_BACK, lambda rows: _reinsert(rows, position, previous, key_of))
            raise

        self.invalidate(key)

    async def submit(self, key: str, intent: MutationIntent) -> MutationOutcome:
        """Apply a mutation intent and report the outcome instead of raising."""
        try:
            if isinstance(intent, Create):
                return Confirmed(await self.create(key, intent.record))
            if isinstance(intent, Update):
                return Confirmed(await self.update(key, intent.record))
            if isinstance(intent, Delete):
                await self.delete(key, intent.record_id)
                return Confirmed(intent.record_id)
        except CrudGridError as e:
            logger.info(f"Mutation on {key} rejected: {e}")
            return describe_rejection(e)
        raise TypeError(f"Unknown mutation intent: {intent!r}")


def _drop_first(rows: Sequence[Any], record: Any) -> List[Any]:
    """Remove the first occurrence of exactly ``record``."""
    result = list(rows)
    for i, r in enumerate(result):
        if r is record:
            del result[i]
            break
    return result


def _swap(rows: Sequence[Any], old: Any, new: Any) -> List[Any]:
    """Replace exactly ``old`` with ``new`` where it still is in place."""
    return [new if r is old else r for r in rows]


def _reinsert(rows: Sequence[Any], position: int, record: Any, key_of: Callable[[Any], Any]) -> List[Any]:
    result = list(rows)
    if any(key_of(r) == key_of(record) for r in result):
        return result
    result.insert(min(position, len(result)), record)
    return result


def describe_rejection(error: BaseException) -> Rejected:
    """Build a ``Rejected`` outcome from an arbitrary error."""
    return Rejected(error_kind(error), str(error), error)
