"""Application configuration settings.

This module defines the ``Settings`` class using ``pydantic-settings`` to
load configuration from environment variables. It centralises all runtime
configuration for the board, such as the PG backend location, credentials,
request behaviour and the default branch.

A ``.env`` file is loaded first so local development does not require
exporting every variable by hand. The path can be overridden with
``PG_BOARD_ENV``.
"""

import os

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

load_dotenv(os.getenv("PG_BOARD_ENV", ".env"))


class Settings(BaseSettings):
    """Configuration values loaded from environment variables.

    Environment variable names map to fields by alias. Every value has a
    default so the application can start without a backend configured; the
    board simply stays idle until a branch is selected.
    """

    # PG backend
    pg_api_base_url: str = Field(
        default="http://localhost:5000",
        alias="PG_API_BASE_URL",
        description="Base URL of the PG REST backend (without the /api prefix).",
    )
    pg_api_token: str = Field(
        default="",
        alias="PG_API_TOKEN",
        description="Bearer token sent with every backend request.",
    )
    pg_api_token_file: str = Field(
        default="",
        alias="PG_API_TOKEN_FILE",
        description=(
            "Path to a file holding the bearer token. Re-read on every request "
            "and preferred over PG_API_TOKEN when set."
        ),
    )

    # Request behaviour
    request_timeout_seconds: float = Field(
        default=10.0,
        alias="REQUEST_TIMEOUT_SECONDS",
        description="Timeout applied to every backend request.",
    )
    max_retries: int = Field(
        default=3,
        alias="MAX_RETRIES",
        description="Number of retries for rate-limited or 5xx backend responses.",
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        alias="RETRY_BACKOFF_SECONDS",
        description="Initial back-off delay, doubled on every retry.",
    )

    # Board behaviour
    default_branch_id: str = Field(
        default="",
        alias="DEFAULT_BRANCH_ID",
        description="Optional branch loaded at startup for shared screens.",
    )
    trust_server_metadata: bool = Field(
        default=False,
        alias="TRUST_SERVER_METADATA",
        description=(
            "Use the statistics block sent by the backend verbatim instead of "
            "the client-side computation. Drift is logged either way."
        ),
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    class Config:
        extra = "ignore"


# Instantiate settings at module import time. This allows other modules to
# import ``settings`` directly without repeatedly reading environment variables.
settings = Settings()
