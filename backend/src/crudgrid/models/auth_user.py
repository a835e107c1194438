"""Account model used for login and registration."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AuthUser(BaseModel):
    """Model for a stored account."""

    id: str
    name: str
    email: str
    password_hash: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        """Configuration for the AuthUser model."""

        from_attributes = True


class TokenClaims(BaseModel):
    """Identity carried inside a session token."""

    userId: str
    name: str
    email: str
    iat: Optional[int] = None
    exp: int

    @property
    def first_name(self) -> str:
        """First word of the name, or ``"User"`` when there is none."""
        if not self.name:
            return "User"
        return self.name.split(" ")[0]
