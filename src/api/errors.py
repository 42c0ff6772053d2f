"""Map core errors to HTTP responses.

Validation and scrape failures are reported with their reason. Provider
and storage failures get a generic message; the detail only goes to logs.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.errors import (
    CoreError,
    InvalidUrlError,
    NavigationTimeoutError,
    RenderError,
    ScrapeError,
    StorageError,
    UpstreamError,
    UpstreamTimeoutError,
    ValidationError,
)
from src.models.api_models import ErrorResponse

logger = logging.getLogger(__name__)

UPSTREAM_FAILURE_MESSAGE = "Failed to get a response from the assistant. Please try again."
STORAGE_FAILURE_MESSAGE = "The request could not be saved. Please try again."

# (status code, public message or None to expose the error's own message)
_ERROR_RESPONSES: dict[type[CoreError], tuple[int, str | None]] = {
    ValidationError: (400, None),
    InvalidUrlError: (400, None),
    NavigationTimeoutError: (504, None),
    RenderError: (502, None),
    ScrapeError: (502, None),
    UpstreamTimeoutError: (504, UPSTREAM_FAILURE_MESSAGE),
    UpstreamError: (502, UPSTREAM_FAILURE_MESSAGE),
    StorageError: (500, STORAGE_FAILURE_MESSAGE),
    CoreError: (500, "Internal error"),
}


def error_response(exc: CoreError) -> JSONResponse:
    """Build the JSON response for a core error."""
    for cls in type(exc).__mro__:
        if cls in _ERROR_RESPONSES:
            status_code, public_message = _ERROR_RESPONSES[cls]
            break
    else:
        status_code, public_message = 500, "Internal error"

    body = ErrorResponse(error=public_message or exc.message, code=exc.code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def _handle_core_error(request: Request, exc: CoreError) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", None)
    if isinstance(exc, (UpstreamError, StorageError)):
        logger.error(
            "Request failed [%s] %s: %s",
            correlation_id,
            type(exc).__name__,
            exc,
        )
    else:
        logger.info(
            "Request rejected [%s] %s: %s",
            correlation_id,
            exc.code,
            exc,
        )
    return error_response(exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the core error handler on the app."""
    app.add_exception_handler(CoreError, _handle_core_error)
