"""API schemas for user record operations."""

from typing import Any, Dict, List

from pydantic import BaseModel

from crudgrid.models.user import User


class UserListResponse(BaseModel):
    """Schema for listing users."""

    success: bool = True
    users: List[Dict[str, Any]]


def user_response(user: User, message: str = None) -> Dict[str, Any]:
    """Flatten a user into a response body next to ``success``."""
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body.update(user.to_wire())
    return body


def user_list_response(users: List[User]) -> UserListResponse:
    return UserListResponse(users=[user.to_wire() for user in users])
