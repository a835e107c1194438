"""Persisted draft overlay: records held locally until the server confirms them."""

import json
import logging
from typing import Any, Callable, Generic, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from crudgrid.client.storage import SessionStorage
from crudgrid.core.exceptions import RecordValidationError
from crudgrid.models.user import User, field_errors_from

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

USER_DRAFTS_KEY = "new-users-storage"
RECORDS_FIELD = "newRecords"

DraftListener = Callable[[Tuple[Any, ...]], None]


class DraftStore(Generic[T]):
    """Pending records of one type, persisted under a single storage key.

    Every mutation validates its input first; invalid input raises
    ``RecordValidationError`` and leaves the store unchanged. Only the record
    list is persisted. ``last_removed`` is transient feedback for the UI.
    """

    def __init__(
        self,
        storage: SessionStorage,
        key: str,
        model_type: Type[T],
        id_field: str = "id",
    ):
        self.storage = storage
        self.key = key
        self.model_type = model_type
        self.id_field = id_field
        self.last_removed: Optional[T] = None
        self._records: Tuple[T, ...] = self._load()
        self._listeners: List[DraftListener] = []

    def _id(self, record: T) -> Any:
        return getattr(record, self.id_field)

    def _validate(self, record: Any) -> T:
        if isinstance(record, BaseModel):
            record = record.model_dump(by_alias=True)
        try:
            return self.model_type.model_validate(record)
        except ValidationError as e:
            raise RecordValidationError(field_errors_from(e)) from e

    def _load(self) -> Tuple[T, ...]:
        raw = self.storage.get_item(self.key)
        if not raw:
            return ()
        try:
            items = json.loads(raw).get(RECORDS_FIELD, [])
        except (ValueError, AttributeError):
            logger.warning(f"Discarding unreadable drafts under {self.key}")
            return ()

        records = []
        for item in items:
            try:
                records.append(self.model_type.model_validate(item))
            except ValidationError:
                logger.warning(f"Skipping invalid draft under {self.key}: {item}")
        return tuple(records)

    def _commit(self, records: Iterable[T]) -> None:
        self._records = tuple(records)
        payload = {RECORDS_FIELD: [r.model_dump(mode="json", by_alias=True) for r in self._records]}
        self.storage.set_item(self.key, json.dumps(payload))
        for listener in list(self._listeners):
            listener(self._records)

    def subscribe(self, listener: DraftListener) -> Callable[[], None]:
        """Call ``listener`` with the new records after every change."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def list(self) -> Tuple[T, ...]:
        return self._records

    def get(self, record_id: Any) -> Optional[T]:
        return next((r for r in self._records if self._id(r) == record_id), None)

    def add(self, record: Any) -> T:
        """Put a record at the top. A draft with the same id is replaced."""
        validated = self._validate(record)
        record_id = self._id(validated)
        rest = [r for r in self._records if self._id(r) != record_id]
        self._commit([validated, *rest])
        logger.info(f"Added draft {record_id} to {self.key}")
        return validated

    def update(self, record: Any) -> Optional[T]:
        """Replace the draft with the same id. Returns None if there is none."""
        validated = self._validate(record)
        record_id = self._id(validated)
        if self.get(record_id) is None:
            return None
        self._commit(validated if self._id(r) == record_id else r for r in self._records)
        return validated

    def remove(self, record_id: Any) -> Optional[T]:
        removed = self.get(record_id)
        self._commit(r for r in self._records if self._id(r) != record_id)
        self.last_removed = removed
        return removed

    def acknowledge_removed(self) -> None:
        self.last_removed = None

    def clear(self) -> None:
        self._commit(())

    def discard_confirmed(self, confirmed_ids: Iterable[Any]) -> List[T]:
        """Drop drafts whose id the server now holds."""
        confirmed = set(confirmed_ids)
        dropped = [r for r in self._records if self._id(r) in confirmed]
        if dropped:
            self._commit(r for r in self._records if self._id(r) not in confirmed)
            logger.info(f"Discarded {len(dropped)} confirmed drafts from {self.key}")
        return dropped


def user_drafts(storage: SessionStorage) -> DraftStore[User]:
    """The draft store for user records."""
    return DraftStore(storage, USER_DRAFTS_KEY, User)
