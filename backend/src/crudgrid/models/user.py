"""User record model and its field rules."""

import re
from datetime import date, datetime
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from crudgrid.core.exceptions import RecordValidationError

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
# Optional +country code; tolerant of dashes and parens. Whitespace is stripped first.
PHONE_PATTERN = re.compile(r"^(\+\d{1,3}[- ]?)?\(?\d{1,4}\)?[- ]?\d{1,4}[- ]?\d{1,9}$", re.ASCII)

NAME_MAX_LENGTH = 50
AGE_MIN = 1
AGE_MAX = 120


def _rule(code: str, message: str) -> PydanticCustomError:
    return PydanticCustomError(code, message)


def parse_birth_date(value: str) -> date:
    """Parse an ISO date or datetime string into a date."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        return datetime.fromisoformat(value).date()


class User(BaseModel):
    """A user record.

    Field names are snake_case in Python and camelCase on the wire
    (``firstName``, ``birthDate`` ...). Instances are immutable.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    id: int
    first_name: str
    last_name: str
    age: int
    email: str
    phone: str
    birth_date: str

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: int) -> int:
        if v < 1:
            raise _rule("id_min", "ID must be greater than 0")
        return v

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v: str) -> str:
        if not v:
            raise _rule("first_name_required", "First name is required")
        if len(v) > NAME_MAX_LENGTH:
            raise _rule("first_name_max", "First name must be less than 50 characters")
        return v

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v: str) -> str:
        if not v:
            raise _rule("last_name_required", "Last name is required")
        if len(v) > NAME_MAX_LENGTH:
            raise _rule("last_name_max", "Last name must be less than 50 characters")
        return v

    @field_validator("age")
    @classmethod
    def validate_age(cls, v: int) -> int:
        if v < AGE_MIN:
            raise _rule("age_min", "Age must be greater than 0")
        if v > AGE_MAX:
            raise _rule("age_max", "Age must be less than 120")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not v:
            raise _rule("email_required", "Email is required")
        if not EMAIL_PATTERN.match(v):
            raise _rule("email_format", "Please enter a valid email address")
        domain = v.split("@", 1)[1]
        if "." not in domain:
            raise _rule("email_domain", "Email must have a valid domain")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not v:
            raise _rule("phone_required", "Phone number is required")
        if not PHONE_PATTERN.match(re.sub(r"\s", "", v)):
            raise _rule(
                "phone_format",
                "Please enter a valid phone number (e.g., +1 123 456 7890 or +94 77 123 4567)",
            )
        return v

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, v: str) -> str:
        if not v:
            raise _rule("birth_date_required", "Birth date is required")
        try:
            born = parse_birth_date(v)
        except ValueError:
            raise _rule("birth_date_format", "Please enter a valid date (YYYY-MM-DD)")
        # Anything up to the end of today (local time) is accepted.
        if born > date.today():
            raise _rule("birth_date_future", "Birth date cannot be in the future")
        return v

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, the shape the API speaks."""
        return self.model_dump(by_alias=True)


def field_errors_from(error: ValidationError) -> Dict[str, str]:
    """Map a pydantic error to ``{wireFieldName: first message}``."""
    errors: Dict[str, str] = {}
    for issue in error.errors():
        loc = issue.get("loc") or ("__root__",)
        field = str(loc[0])
        if field in errors:
            continue
        message = issue["msg"]
        if issue["type"] == "missing":
            message = "This field is required"
        errors[field] = message
    return errors


def validate_user(raw: Mapping[str, Any]) -> User:
    """Validate raw input into a ``User``.

    Raises:
        RecordValidationError: with one message per offending field. No
            partially valid record is ever returned.
    """
    try:
        return User.model_validate(dict(raw))
    except ValidationError as e:
        raise RecordValidationError(field_errors_from(e)) from e


def check_user(raw: Mapping[str, Any]) -> Dict[str, str]:
    """Return the field errors for ``raw``, empty when it is valid."""
    try:
        validate_user(raw)
    except RecordValidationError as e:
        return e.field_errors
    return {}


def age_from_birth_date(birth_date: date, today: date = None) -> int:
    """Whole years between ``birth_date`` and ``today``."""
    today = today or date.today()
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years
