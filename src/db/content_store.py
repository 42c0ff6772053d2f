"""Per-tenant website snapshot storage.

Exactly one snapshot exists per tenant. put() replaces the whole record in
one step (last write wins, no merging); there is no history.
"""

from threading import Lock
from typing import Any, Protocol

import logfire

from src.config import get_settings
from src.constants import SNAPSHOTS_TABLE
from src.db.client import get_supabase_client
from src.db.query_executor import timed_query
from src.models.content_models import WebsiteSnapshot


class ContentStore(Protocol):
    """Protocol for snapshot persistence."""

    def put(self, tenant_id: str, snapshot: WebsiteSnapshot) -> None:
        """Atomically replace the tenant's snapshot.

        Raises:
            StorageError: If the snapshot could not be written
        """
        ...

    def get(self, tenant_id: str) -> WebsiteSnapshot | None:
        """Return the tenant's snapshot, or None if it never completed a scrape.

        Raises:
            StorageError: If the snapshot could not be read
        """
        ...


def _check_owner(tenant_id: str, snapshot: WebsiteSnapshot) -> None:
    if snapshot.tenant_id != tenant_id:
        raise ValueError(
            f"Snapshot belongs to tenant {snapshot.tenant_id!r}, not {tenant_id!r}"
        )


class InMemoryContentStore:
    """Thread-safe in-process snapshot store.

    Snapshots are copied on the way in and out so stored state is never
    shared with callers.
    """

    def __init__(self):
        self._snapshots: dict[str, WebsiteSnapshot] = {}
        self._lock = Lock()

    def put(self, tenant_id: str, snapshot: WebsiteSnapshot) -> None:
        _check_owner(tenant_id, snapshot)
        stored = snapshot.model_copy(deep=True)
        with self._lock:
            self._snapshots[tenant_id] = stored
        logfire.debug(
            "Snapshot replaced",
            tenant_id=tenant_id,
            item_count=stored.item_count,
        )

    def get(self, tenant_id: str) -> WebsiteSnapshot | None:
        with self._lock:
            snapshot = self._snapshots.get(tenant_id)
        return snapshot.model_copy(deep=True) if snapshot is not None else None

    def clear(self) -> None:
        with self._lock:
            self._snapshots.clear()


class SupabaseContentStore:
    """Snapshot store backed by the website_snapshots table.

    One row per tenant; put() is a single upsert of the full row, so
    Postgres serializes concurrent writers for the same tenant.
    """

    def __init__(self, client: Any | None = None):
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def put(self, tenant_id: str, snapshot: WebsiteSnapshot) -> None:
        _check_owner(tenant_id, snapshot)
        with timed_query(
            "put_snapshot",
            tenant_id=tenant_id,
            source_url=snapshot.source_url,
            item_count=snapshot.item_count,
        ):
            self.client.table(SNAPSHOTS_TABLE).upsert(
                snapshot.to_record(), on_conflict="tenant_id"
            ).execute()

    def get(self, tenant_id: str) -> WebsiteSnapshot | None:
        with timed_query("get_snapshot", tenant_id=tenant_id):
            result = (
                self.client.table(SNAPSHOTS_TABLE)
                .select("*")
                .eq("tenant_id", tenant_id)
                .limit(1)
                .execute()
            )
            if not result.data:
                return None
            return WebsiteSnapshot.model_validate(result.data[0])


# Global instance
_content_store: ContentStore | None = None


def get_content_store() -> ContentStore:
    """Get or create the content store for the configured backend."""
    global _content_store
    if _content_store is None:
        if get_settings().storage_backend == "memory":
            _content_store = InMemoryContentStore()
        else:
            _content_store = SupabaseContentStore()
    return _content_store


def reset_content_store() -> None:
    """Reset the global store (primarily for testing)."""
    global _content_store
    _content_store = None
