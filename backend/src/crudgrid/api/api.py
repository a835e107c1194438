"""API router for the CRUD Grid service."""

from fastapi import APIRouter

from crudgrid.api.endpoints import auth, protected, users

api_router = APIRouter()
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(protected.router, prefix="/protected", tags=["protected"])

AVAILABLE_ENDPOINTS = {
    "GET /api/users": "Get all users",
    "GET /api/users/:id": "Get user by ID",
    "POST /api/users/add": "Create new user",
    "PUT /api/users/:id": "Update user by ID",
    "DELETE /api/users/:id": "Delete user by ID",
    "POST /api/auth/register": "Register new user",
    "POST /api/auth/login": "Login user (sets cookie)",
    "POST /api/auth/logout": "Logout user (clears cookie)",
    "POST /api/auth/refresh": "Refresh JWT token",
    "GET /api/protected/profile": "Get user profile (protected)",
    "PUT /api/protected/profile": "Update user profile (protected)",
}
