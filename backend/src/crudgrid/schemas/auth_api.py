"""API schemas for authentication operations."""

from typing import Optional

from pydantic import BaseModel, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from crudgrid.models.user import EMAIL_PATTERN


class RegisterRequest(BaseModel):
    """Schema for registering a new account."""

    name: str
    email: str
    password: str
    confirmPassword: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise PydanticCustomError("name_required", "Name is required")
        if len(v) > 50:
            raise PydanticCustomError("name_max", "Name must be less than 50 characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise PydanticCustomError("email_format", "Please enter a valid email address")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise PydanticCustomError(
                "password_min", "Password must be at least 6 characters long"
            )
        return v

    @field_validator("confirmPassword")
    @classmethod
    def passwords_match(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        if v is not None and v != info.data.get("password"):
            raise PydanticCustomError("password_mismatch", "Passwords do not match")
        return v


class LoginRequest(BaseModel):
    """Schema for logging in."""

    email: str
    password: str


class ProfileUpdateRequest(BaseModel):
    """Schema for updating the current profile."""

    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise PydanticCustomError("name_required", "Name is required")
        return v


class AccountSchema(BaseModel):
    """Public view of an account."""

    id: str
    name: str
    email: str


class LoginResponse(BaseModel):
    """Schema for a successful login or refresh."""

    success: bool = True
    token: str
    user: AccountSchema


class MessageResponse(BaseModel):
    """Schema for responses that only carry a message."""

    success: bool = True
    message: str
