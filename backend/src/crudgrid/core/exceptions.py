"""Error taxonomy shared by the API client, the collection cache and the UI layer."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Names the kind of a failure so it can travel as plain data."""

    VALIDATION = "validation"
    DUPLICATE_KEY = "duplicate_key"
    NOT_FOUND = "not_found"
    AUTH_EXPIRED = "auth_expired"
    NETWORK = "network"
    FETCH = "fetch"
    API = "api"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


class CrudGridError(Exception):
    """Base class for all errors raised by crudgrid."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class RecordValidationError(CrudGridError):
    """A record failed one or more field rules."""

    kind = ErrorKind.VALIDATION

    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = dict(field_errors)
        fields = ", ".join(sorted(self.field_errors))
        super().__init__(f"Validation failed for: {fields}")


class DuplicateKeyError(CrudGridError):
    """The server rejected a record because a unique field is already taken."""

    kind = ErrorKind.DUPLICATE_KEY

    def __init__(self, field: str, value: Any = None, message: Optional[str] = None):
        self.field = field
        self.value = value
        super().__init__(message or f"{'ID' if field == 'id' else field.capitalize()} already exists")


class NotFoundError(CrudGridError):
    """The requested record does not exist."""

    kind = ErrorKind.NOT_FOUND


class AuthExpiredError(CrudGridError):
    """The session token is missing, invalid or past its expiry."""

    kind = ErrorKind.AUTH_EXPIRED


class NetworkError(CrudGridError):
    """The request never produced a response."""

    kind = ErrorKind.NETWORK


class FetchError(CrudGridError):
    """Loading a collection failed. Retrying is left to the caller."""

    kind = ErrorKind.FETCH

    def __init__(self, key: str, cause: Exception):
        self.key = key
        self.cause = cause
        super().__init__(f"Failed to fetch {key}: {cause}")


class UnsupportedOperationError(CrudGridError):
    """The collection does not support the requested mutation."""

    kind = ErrorKind.UNSUPPORTED


class ApiError(CrudGridError):
    """Any other non-successful response from the API."""

    kind = ErrorKind.API

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(message or f"Request failed with status {status_code}")


def error_kind(error: BaseException) -> ErrorKind:
    """Return the kind of an arbitrary exception."""
    if isinstance(error, CrudGridError):
        return error.kind
    return ErrorKind.UNKNOWN
