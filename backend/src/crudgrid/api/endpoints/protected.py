"""Endpoints that require an authenticated session."""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from crudgrid.core.dependencies import get_auth_service, get_current_account
from crudgrid.models.auth_user import AuthUser
from crudgrid.services.auth_service import AuthService

router = APIRouter()


@router.get("/profile")
async def get_profile(account: AuthUser = Depends(get_current_account)) -> Dict[str, Any]:
    """Return the profile of the logged-in account."""
    return {
        "success": True,
        "user": {
            "id": account.id,
            "name": account.name,
            "email": account.email,
            "createdAt": account.created_at.isoformat(),
        },
    }


@router.put("/profile")
async def update_profile(
    payload: Dict[str, Any] = Body(...),
    account: AuthUser = Depends(get_current_account),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Rename the logged-in account."""
    updated = await auth_service.update_profile(account.id, payload)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "user": {"id": updated.id, "name": updated.name, "email": updated.email},
    }
