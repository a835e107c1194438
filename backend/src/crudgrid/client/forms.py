"""Bridge between the add/edit user form and the cache and draft store."""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from crudgrid.client.cache import USERS, CollectionCache, Confirmed, Create, Delete, MutationOutcome, Rejected, Update
from crudgrid.client.drafts import DraftStore
from crudgrid.client.merge import merge_collections
from crudgrid.client.notifications import NotificationCenter
from crudgrid.core.exceptions import AuthExpiredError, CrudGridError, DuplicateKeyError, ErrorKind, RecordValidationError
from crudgrid.models.user import User, age_from_birth_date, parse_birth_date, validate_user

logger = logging.getLogger(__name__)

# Failures after which the record is kept as a local draft instead.
FALLBACK_KINDS = {ErrorKind.NETWORK, ErrorKind.API, ErrorKind.NOT_FOUND}


def next_available_id(collection: Iterable[Any], key_of: Callable[[Any], Any] = lambda r: r.id) -> int:
    """Smallest positive id not in use, or one past the largest."""
    ids = sorted({key_of(record) for record in collection if isinstance(key_of(record), int) and key_of(record) > 0})
    expected = 1
    for record_id in ids:
        if record_id != expected:
            return expected
        expected += 1
    return expected


class DialogState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    SUBMITTING = "submitting"
    OPEN_WITH_ERRORS = "open_with_errors"


@dataclass(frozen=True)
class FormResult:
    """Outcome of a submit. Exactly one of ``record`` and ``field_errors`` is set."""

    record: Optional[User] = None
    field_errors: Dict[str, str] = field(default_factory=dict)
    saved_locally: bool = False
    error: Optional[CrudGridError] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


class UserFormBridge:
    """Turns raw form values into saved users.

    Validation errors stay inside the bridge and come back as
    ``FormResult.field_errors``. A record the server could not take for
    reasons other than its content is kept in the draft store.
    """

    def __init__(
        self,
        cache: CollectionCache,
        drafts: DraftStore,
        notifications: Optional[NotificationCenter] = None,
        key: str = USERS,
    ):
        self.cache = cache
        self.drafts = drafts
        self.notifications = notifications or NotificationCenter()
        self.key = key
        self.state = DialogState.CLOSED
        self.is_edit = False
        self.initial: Optional[User] = None
        self.auto_id: Optional[int] = None
        self.field_errors: Dict[str, str] = {}

    # Dialog state machine

    def open_for_create(self) -> int:
        """Open an empty form and return the id it will use."""
        self._reset()
        self.auto_id = next_available_id(merge_collections(self.cache.records(self.key), self.drafts.list()))
        self.state = DialogState.OPEN
        return self.auto_id

    def open_for_edit(self, record: User) -> None:
        self._reset()
        self.is_edit = True
        self.initial = record
        self.state = DialogState.OPEN

    def cancel(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self.state = DialogState.CLOSED
        self.is_edit = False
        self.initial = None
        self.auto_id = None
        self.field_errors = {}

    def clear_field_error(self, field_name: str) -> None:
        """Forget the error on a field the user is editing. A new birth date also clears age."""
        self.field_errors.pop(field_name, None)
        if field_name == "birthDate":
            self.field_errors.pop("age", None)
        if not self.field_errors and self.state == DialogState.OPEN_WITH_ERRORS:
            self.state = DialogState.OPEN

    # Submitting

    def assemble(self, raw: Mapping[str, Any], is_edit: bool) -> Dict[str, Any]:
        """Candidate record from form values: auto id for new users, kept id for edits."""
        candidate = {key: value.strip() if isinstance(value, str) else value for key, value in raw.items()}

        if is_edit:
            initial_id = self.initial.id if self.initial is not None else None
            candidate["id"] = candidate.get("id") or initial_id
        else:
            candidate["id"] = self.auto_id or next_available_id(
                merge_collections(self.cache.records(self.key), self.drafts.list())
            )

        born = candidate.get("birthDate")
        if isinstance(born, date):
            candidate["birthDate"] = born.isoformat()
            born = candidate["birthDate"]
        if not candidate.get("age") and born:
            try:
                candidate["age"] = age_from_birth_date(parse_birth_date(born))
            except ValueError:
                pass
        return candidate

    async def submit(self, raw: Mapping[str, Any], is_edit: Optional[bool] = None) -> FormResult:
        """Validate and save a form.

        Raises:
            AuthExpiredError: The session ended; the caller logs the user out.
        """
        if self.state == DialogState.SUBMITTING:
            raise RuntimeError("A submit is already in progress")
        is_edit = self.is_edit if is_edit is None else is_edit
        self.state = DialogState.SUBMITTING

        try:
            user = validate_user(self.assemble(raw, is_edit))
        except RecordValidationError as e:
            return self._fail(e.field_errors)

        intent = Update(user) if is_edit else Create(user)
        try:
            outcome = await self.cache.submit(self.key, intent)
        except Exception:
            self.state = DialogState.OPEN_WITH_ERRORS
            raise

        if isinstance(outcome, Confirmed):
            self.drafts.discard_confirmed([outcome.value.id])
            self._reset()
            self.notifications.success("User updated successfully" if is_edit else "User added successfully")
            return FormResult(record=outcome.value)

        return self._rejected(outcome, user, is_edit)

    def _rejected(self, outcome: Rejected, user: User, is_edit: bool) -> FormResult:
        error = outcome.error
        if isinstance(error, AuthExpiredError):
            self.state = DialogState.OPEN
            raise error
        if isinstance(error, DuplicateKeyError):
            return self._fail({error.field: error.message}, error)
        if isinstance(error, RecordValidationError):
            return self._fail(error.field_errors, error)
        if outcome.kind not in FALLBACK_KINDS:
            return self._fail({}, error)

        logger.warning(f"Saving user {user.id} as a local draft: {outcome.detail}")
        if is_edit and self.drafts.get(user.id) is not None:
            saved = self.drafts.update(user)
        else:
            saved = self.drafts.add(user)
        if error is not None and outcome.kind != ErrorKind.NOT_FOUND:
            self.notifications.error(error)
        self._reset()
        return FormResult(record=saved, saved_locally=True, error=error)

    def _fail(self, field_errors: Dict[str, str], error: Optional[CrudGridError] = None) -> FormResult:
        self.field_errors = dict(field_errors)
        self.state = DialogState.OPEN_WITH_ERRORS
        if error is not None and not field_errors:
            self.notifications.error(error)
        return FormResult(field_errors=self.field_errors, error=error)

    # Deleting

    async def delete(self, record_id: int) -> MutationOutcome:
        """Delete a user from the server and from the drafts.

        A draft that never reached the server is simply removed.
        """
        remote_ids = {record.id for record in self.cache.records(self.key)}
        if record_id in remote_ids:
            outcome = await self.cache.submit(self.key, Delete(record_id))
            if isinstance(outcome, Rejected):
                if isinstance(outcome.error, AuthExpiredError):
                    raise outcome.error
                if outcome.kind != ErrorKind.NOT_FOUND:
                    if outcome.error is not None:
                        self.notifications.error(outcome.error)
                    return outcome

        if self.drafts.get(record_id) is not None:
            self.drafts.remove(record_id)
        self.notifications.success("User deleted successfully")
        return Confirmed(record_id)
