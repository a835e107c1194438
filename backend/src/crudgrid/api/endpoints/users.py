"""API endpoints for user record operations."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse

from crudgrid.schemas.user_api import UserListResponse, user_list_response, user_response
from crudgrid.services.user_service import UserService
from crudgrid.core.dependencies import get_user_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _invalid_id() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Please provide a valid user ID (number)"},
    )


@router.get(
    "",
    response_model=UserListResponse,
    summary="List all users",
    description="List all users, newest first.",
)
async def list_users(
    user_service: UserService = Depends(get_user_service),
) -> UserListResponse:
    """List all users."""
    users = await user_service.list_users()
    return user_list_response(users)


@router.post(
    "/add",
    status_code=status.HTTP_201_CREATED,
    summary="Create a new user",
    description="Create a user with the id assigned by the client.",
)
async def create_user(
    payload: Dict[str, Any] = Body(...),
    user_service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    """Create a new user."""
    logger.info(f"Create user request received for ID: {payload.get('id')}")
    user = await user_service.create_user(payload)
    return user_response(user, f"User created successfully with ID {user.id}")


@router.get(
    "/{user_id}",
    summary="Get a user by ID",
)
async def get_user(
    user_id: str,
    user_service: UserService = Depends(get_user_service),
):
    """Get a user by ID."""
    if not user_id.isdigit():
        return _invalid_id()
    user = await user_service.get_user(int(user_id))
    return user_response(user)


@router.put(
    "/{user_id}",
    summary="Update a user by ID",
)
async def update_user(
    user_id: str,
    payload: Dict[str, Any] = Body(...),
    user_service: UserService = Depends(get_user_service),
):
    """Update a user by ID."""
    if not user_id.isdigit():
        return _invalid_id()
    user = await user_service.update_user(int(user_id), payload)
    return user_response(user, "User updated successfully")


@router.delete(
    "/{user_id}",
    summary="Delete a user by ID",
)
async def delete_user(
    user_id: str,
    user_service: UserService = Depends(get_user_service),
):
    """Delete a user by ID."""
    if not user_id.isdigit():
        return _invalid_id()
    await user_service.delete_user(int(user_id))
    return {"success": True, "message": "User deleted successfully"}
