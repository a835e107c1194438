"""Configuration for the API server and the client layer.

Both settings classes read the environment and any of the .env files in
ENV_FILES that exist, later files taking precedence.
"""

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("uvicorn")

ENV_FILES = ["../../../backend/.env", "../../.env", "../.env", ".env"]


class Settings(BaseSettings):
    """Settings class for the API service."""

    # ENVIRONMENT CONFIG
    environment: str = "dev"
    testing: bool = bool(0)

    # API CONFIG
    project_name: str = "CRUD Grid API"
    api_prefix: str = "/api"
    port: int = 5000
    backend_cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # DATABASE CONFIG
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "crudgrid"

    # AUTHENTICATION CONFIG
    jwt_secret: Optional[str] = None
    jwt_expiration_minutes: int = 60
    auth_cookie_name: str = "auth_token"

    model_config = SettingsConfigDict(
        env_file=ENV_FILES,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cookie_secure(self) -> bool:
        """Only send the auth cookie over HTTPS in production."""
        return self.environment == "production"


class ClientSettings(BaseSettings):
    """Settings for the client-side collection, table and session layer."""

    model_config = SettingsConfigDict(
        env_prefix="CRUDGRID_",
        env_file=ENV_FILES,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_base_url: str = "http://localhost:5000/api"
    products_url: str = "https://dummyjson.com/products"
    request_timeout: float = 10.0
    stale_time_seconds: float = 300.0
    token_check_interval: float = 30.0
    default_page_size: int = 10
    session_dir: Optional[str] = None


@lru_cache()
def get_settings() -> Settings:
    """Get the settings for the application."""
    logger.info("Loading config settings from the environment...")

    settings = Settings()

    if settings.jwt_secret:
        logger.info("JWT secret is set")
    else:
        logger.warning("JWT secret is not set, falling back to the development secret")

    return settings


@lru_cache()
def get_client_settings() -> ClientSettings:
    """Get the settings for the client layer."""
    return ClientSettings()
