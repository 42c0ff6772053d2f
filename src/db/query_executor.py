"""Database query execution utilities.

Times and logs store operations and turns backend failures into
StorageError so callers see one error type regardless of backend.
"""

import time
from contextlib import contextmanager
from typing import Any, Generator

import logfire

from src.errors import StorageError


@contextmanager
def timed_query(
    operation_name: str,
    **log_context: Any,
) -> Generator[None, None, None]:
    """
    Context manager for timing and logging store operations.

    Logs the start of the operation, and on completion logs either success
    with elapsed time or error details if an exception occurred. Any
    exception other than StorageError is re-raised as StorageError.

    Args:
        operation_name: Name of the operation (e.g., "put_snapshot")
        **log_context: Additional context to include in all log messages

    Example:
        with timed_query("list_turns", tenant_id=tenant_id):
            result = client.table("chat_turns").select("*").eq("tenant_id", tenant_id).execute()
    """
    start_time = time.time()

    logfire.debug(
        f"Starting {operation_name}",
        operation=operation_name,
        **log_context,
    )

    try:
        yield
    except Exception as e:
        elapsed = time.time() - start_time
        logfire.error(
            f"{operation_name} failed",
            operation=operation_name,
            error=str(e),
            error_type=type(e).__name__,
            response_time_ms=elapsed * 1000,
            **log_context,
        )
        if isinstance(e, StorageError):
            raise
        raise StorageError(f"{operation_name} failed: {e}") from e

    elapsed = time.time() - start_time
    logfire.info(
        f"{operation_name} completed",
        operation=operation_name,
        response_time_ms=elapsed * 1000,
        **log_context,
    )
