"""Configuration management for ColorForge.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the COLORFORGE_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (COLORFORGE_* prefix)
2. .env file in the project root
3. Default values defined in ColorForgeConfig

Example .env file:
    COLORFORGE_PROVIDER_BASE_URL=https://api.openai.com/v1
    COLORFORGE_IMAGE_MODEL=gpt-image-1
    COLORFORGE_REQUEST_TIMEOUT=90
    COLORFORGE_JOB_WORKERS=8

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from colorforge.core.config import config

    print(config.image_model)
    print(config.default_size)

Credentials
-----------
The provider credential is normally supplied per request through the
``X-OpenAI-Key`` header.  ``openai_api_key`` is only a fallback for
deployments that front a single account; it is never logged.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ColorForgeConfig(BaseSettings):
    """Main configuration for ColorForge.

    Values are loaded from environment variables with the COLORFORGE_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Provider Settings:
        provider_base_url : str
            Root URL of the external image service (no trailing slash needed)
        image_model : str
            Model name sent with every generation and edit call
        default_size : str
            Canonical ``WIDTHxHEIGHT`` size used when a caller omits one
        response_format : str | None
            Response format hint for generation calls; ``None`` omits it
        request_timeout : float
            Transport timeout in seconds for every outbound call
        openai_api_key : str | None
            Fallback credential when the request carries none
        credential_header : str
            Request header that carries the caller's credential

    Jobs:
        job_workers : int
            Size of the thread pool running detached batch jobs

    Server:
        server_host : str
            uvicorn bind address
        server_port : int
            uvicorn port (1024-65535)
        log_level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]
            Root log level applied by the CLI entry point

    Notes
    -----
    - Configuration is immutable after initialization
    - To modify config, set environment variables and restart the application

    Examples
    --------
        >>> custom_config = ColorForgeConfig(
        ...     image_model="dall-e-2",
        ...     request_timeout=30.0,
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="COLORFORGE_",
        case_sensitive=False,
    )

    # Provider settings
    provider_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Root URL of the external image-generation service",
    )
    image_model: str = Field(
        default="gpt-image-1",
        description="Model name sent with every generation/edit request",
    )
    default_size: str = Field(
        default="1024x1024",
        description="Canonical image size when the caller does not specify one",
        pattern=r"^\d+x\d+$",
    )
    response_format: str | None = Field(
        default="b64_json",
        description="Response format hint for generation calls (None to omit)",
    )
    request_timeout: float = Field(
        default=120.0,
        description="Timeout in seconds for every outbound HTTP call",
        gt=0,
    )
    openai_api_key: str | None = Field(
        default=None,
        description="Fallback provider credential when the request header is absent",
    )
    credential_header: str = Field(
        default="X-OpenAI-Key",
        description="Request header carrying the caller's provider credential",
    )

    # Job settings
    job_workers: int = Field(
        default=4,
        description="Worker threads for detached batch jobs",
        ge=1,
        le=64,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=8000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level for the CLI entry point",
    )

    @property
    def provider_root(self) -> str:
        """Provider base URL without a trailing slash."""
        return self.provider_base_url.rstrip("/")


# Global configuration instance
# Loads values from environment variables (COLORFORGE_* prefix) and .env file.
config = ColorForgeConfig()
