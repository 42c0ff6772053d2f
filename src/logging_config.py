"""Centralized logging configuration with Pydantic Logfire integration."""

import logging
from typing import Any

import logfire
from fastapi import FastAPI

from src.config import get_settings


def setup_logfire(app: FastAPI) -> None:
    """
    Initialize and configure Pydantic Logfire for observability.

    Sets up:
    - FastAPI instrumentation (request/response tracing)
    - httpx instrumentation (completion provider calls)
    - Environment-aware Python logging
    """
    settings = get_settings()

    logfire_config: dict[str, Any] = {
        "environment": settings.env,
        # Only ship to Logfire cloud when a token is configured
        "send_to_logfire": "if-token-present",
    }
    if settings.logfire_token:
        logfire_config["token"] = settings.logfire_token

    logfire.configure(**logfire_config)
    logfire.instrument_fastapi(app)
    logfire.instrument_httpx()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.env == "local":
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    else:
        # Structured formatting is handled by Logfire
        logging.basicConfig(
            level=log_level,
            format="%(message)s",
            handlers=[logfire.LogfireLoggingHandler()],
        )


def mask_pii(value: str | None, mask_char: str = "*") -> str:
    """
    Mask potentially sensitive data in logs.

    Args:
        value: Value to mask
        mask_char: Character to use for masking

    Returns:
        Masked string
    """
    if not value:
        return ""

    if len(value) <= 4:
        return mask_char * len(value)

    # Show first 2 and last 2 characters, mask the rest
    return f"{value[:2]}{mask_char * (len(value) - 4)}{value[-2:]}"


_SENSITIVE_KEYS = (
    "token",
    "access_token",
    "api_key",
    "completion_api_key",
    "service_key",
    "database_url",
    "supabase_service_key",
    "logfire_token",
    "sentry_dsn",
    "secret",
    "password",
    "authorization",
    "auth",
)


def redact_tokens(data: dict[str, Any]) -> dict[str, Any]:
    """
    Redact authentication tokens and API keys from log data.

    Args:
        data: Dictionary that may contain sensitive tokens

    Returns:
        Copy of data with tokens masked (nested dicts included)
    """
    redacted = data.copy()
    for key, value in data.items():
        if key.lower() in _SENSITIVE_KEYS and isinstance(value, str):
            redacted[key] = mask_pii(value)
        elif isinstance(value, dict):
            redacted[key] = redact_tokens(value)
    return redacted
