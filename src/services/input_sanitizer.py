"""Input validation and sanitization service.

Validates chat messages and scrape URLs before any I/O happens, and
cleans message text for safe inclusion in a prompt.
"""

import re
from typing import NamedTuple
from urllib.parse import urlparse

import logfire

from src.constants import MAX_MESSAGE_LENGTH_CHARS, MAX_URL_LENGTH_CHARS
from src.errors import InvalidUrlError, ValidationError


class ValidationResult(NamedTuple):
    """Result of input validation.

    Attributes:
        is_valid: Whether the input passed validation.
        error_code: Error code if validation failed, None otherwise.
        error_message: Human-readable error message if validation failed.
    """

    is_valid: bool
    error_code: str | None
    error_message: str | None


_VALID = ValidationResult(is_valid=True, error_code=None, error_message=None)


def sanitize_user_input(text: str) -> str:
    """Clean a chat message for inclusion in the prompt.

    Only control characters (other than newlines and tabs) are removed; the
    rest of the visitor's text reaches the prompt exactly as typed.
    Length is not touched here; over-long messages are rejected by
    validate_message().
    """
    if not text:
        return ""

    return "".join(char for char in text if ord(char) >= 32 or char in "\n\r\t")


def validate_message(
    text: str | None, max_length: int = MAX_MESSAGE_LENGTH_CHARS
) -> ValidationResult:
    """Validate user message text.

    Checks:
    - Not null, empty or whitespace-only
    - Not longer than max_length

    Args:
        text: The raw user input text to validate.
        max_length: Longest accepted message in characters.

    Returns:
        ValidationResult with validation status and error details.
    """
    if text is None:
        return ValidationResult(
            is_valid=False,
            error_code="null_message",
            error_message="Message cannot be null",
        )

    stripped = text.strip()
    if not stripped:
        return ValidationResult(
            is_valid=False,
            error_code="empty_message",
            error_message="Message cannot be empty",
        )

    if len(text) > max_length:
        return ValidationResult(
            is_valid=False,
            error_code="message_too_long",
            error_message=f"Message exceeds maximum length of {max_length} characters",
        )

    if not re.search(r"\w", stripped):
        # Emoji or punctuation-only messages are still answered
        logfire.info(
            "Message contains no word characters",
            text_preview=stripped[:50],
        )

    return _VALID


def validate_url(url: str | None) -> ValidationResult:
    """Validate that url is an absolute http(s) URL with a host.

    Args:
        url: The raw URL submitted for scraping.

    Returns:
        ValidationResult with validation status and error details.
    """
    if url is None or not url.strip():
        return ValidationResult(
            is_valid=False,
            error_code="empty_url",
            error_message="URL cannot be empty",
        )

    if url != url.strip() or re.search(r"\s", url):
        return ValidationResult(
            is_valid=False,
            error_code="url_whitespace",
            error_message="URL must not contain whitespace",
        )

    if len(url) > MAX_URL_LENGTH_CHARS:
        return ValidationResult(
            is_valid=False,
            error_code="url_too_long",
            error_message=f"URL exceeds maximum length of {MAX_URL_LENGTH_CHARS} characters",
        )

    try:
        parsed = urlparse(url)
        # Accessing .port raises on malformed ports like "host:abc"
        parsed.port
    except ValueError:
        return ValidationResult(
            is_valid=False,
            error_code="malformed_url",
            error_message="URL could not be parsed",
        )

    if parsed.scheme.lower() not in ("http", "https"):
        return ValidationResult(
            is_valid=False,
            error_code="unsupported_scheme",
            error_message="URL must start with http:// or https://",
        )

    if not parsed.hostname:
        return ValidationResult(
            is_valid=False,
            error_code="missing_host",
            error_message="URL must include a host",
        )

    return _VALID


def require_valid_message(
    text: str | None, max_length: int = MAX_MESSAGE_LENGTH_CHARS
) -> str:
    """Validate and sanitize a chat message, raising ValidationError on failure."""
    result = validate_message(text, max_length=max_length)
    if not result.is_valid:
        raise ValidationError(result.error_message, code=result.error_code)
    sanitized = sanitize_user_input(text)
    if not sanitized.strip():
        raise ValidationError("Message cannot be empty", code="empty_message")
    return sanitized


def require_valid_url(url: str | None) -> str:
    """Validate a scrape URL, raising InvalidUrlError on failure."""
    result = validate_url(url)
    if not result.is_valid:
        raise InvalidUrlError(result.error_message, code=result.error_code)
    return url
