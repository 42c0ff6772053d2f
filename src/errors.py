"""Error taxonomy for the ingestion and chat paths.

Every error is scoped to a single request. The HTTP layer maps each class
to a status code in src/api/errors.py.
"""


class CoreError(Exception):
    """Base exception for all request-scoped failures."""

    code = "internal_error"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(CoreError):
    """Input rejected before any I/O (empty message, malformed URL)."""

    code = "validation_error"


# =============================================================================
# Scrape errors
# =============================================================================


class ScrapeError(CoreError):
    """Extraction failed; the stored snapshot is left untouched."""

    code = "scrape_failed"


class InvalidUrlError(ScrapeError, ValidationError):
    """URL failed validation before the browser was launched."""

    code = "invalid_url"


class NavigationTimeoutError(ScrapeError):
    """Page did not load or settle within the configured bound."""

    code = "navigation_timeout"


class RenderError(ScrapeError):
    """Rendering engine crashed or the page failed during evaluation."""

    code = "render_error"


# =============================================================================
# Completion provider errors
# =============================================================================


class UpstreamError(CoreError):
    """Completion provider returned an error or an unusable payload."""

    code = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ):
        super().__init__(message, code=code)
        self.status_code = status_code


class UpstreamTimeoutError(UpstreamError):
    """Completion provider did not answer within the request timeout."""

    code = "upstream_timeout"


# =============================================================================
# Storage errors
# =============================================================================


class StorageError(CoreError):
    """Snapshot or turn could not be read or durably written."""

    code = "storage_error"
