"""Main module for the CRUD Grid API service."""

import logging
from typing import Any, Dict

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from crudgrid.api.api import AVAILABLE_ENDPOINTS, api_router
from crudgrid.core.config import Settings, get_settings
from crudgrid.core.exceptions import (
    CrudGridError,
    DuplicateKeyError,
    ErrorKind,
    NotFoundError,
    RecordValidationError,
)
from crudgrid.services.repository.mongo_repository import (
    MongoAuthUserRepository,
    MongoUserRepository,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title=settings.project_name,
    openapi_url=f"{settings.api_prefix}/openapi.json",
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=600,
)

app.include_router(api_router, prefix=settings.api_prefix)


@app.exception_handler(CrudGridError)
async def crudgrid_error_handler(request: Request, exc: CrudGridError) -> JSONResponse:
    """Render domain errors with the ``{success, message}`` body the client expects."""
    body: Dict[str, Any] = {"success": False, "message": exc.message}

    if isinstance(exc, RecordValidationError):
        body["message"] = "Validation error"
        body["errors"] = exc.field_errors
        status_code = 400
    elif isinstance(exc, DuplicateKeyError):
        body["error"] = f"Duplicate {exc.field}"
        body["field"] = exc.field
        body["value"] = exc.value
        status_code = 400
    elif isinstance(exc, NotFoundError):
        status_code = 404
    else:
        logger.error(f"Unhandled {exc.kind.value} error: {exc.message}")
        status_code = 500

    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors, listing the available endpoints for unknown API paths."""
    body: Dict[str, Any] = {"success": False, "message": exc.detail}
    if exc.status_code == 404 and request.url.path.startswith(settings.api_prefix) and exc.detail == "Not Found":
        body["message"] = f"API endpoint not found: {request.method} {request.url.path}"
        body["error"] = "Not Found"
        body["availableEndpoints"] = AVAILABLE_ENDPOINTS
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.on_event("startup")
async def startup_event():
    """Connect to MongoDB and create the repositories once at startup."""
    logger.info("Initializing application services...")

    try:
        app.state.mongo_client = AsyncIOMotorClient(settings.mongo_uri)
        db = app.state.mongo_client[settings.mongo_db_name]

        app.state.user_repository = MongoUserRepository(db)
        app.state.auth_user_repository = MongoAuthUserRepository(db)

        await app.state.user_repository.ensure_indexes()
        await app.state.auth_user_repository.ensure_indexes()

        app.state.services_initialized = True
        logger.info("MongoDB connected and repositories initialized")
    except Exception as e:
        logger.error(f"Error initializing services: {str(e)}", exc_info=True)
        app.state.services_initialized = False


@app.on_event("shutdown")
async def shutdown_event():
    """Close the MongoDB client."""
    client = getattr(app.state, "mongo_client", None)
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")


@app.get("/ping")
async def pong(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Ping the API to check if it's running."""
    return {
        "ping": "pong!",
        "environment": settings.environment,
        "testing": settings.testing,
    }


def run() -> None:
    """Serve the API with uvicorn."""
    uvicorn.run("crudgrid.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
