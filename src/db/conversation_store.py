"""Append-only conversation history per tenant."""

from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Protocol

from src.config import get_settings
from src.constants import CHAT_TURNS_TABLE
from src.db.client import get_supabase_client
from src.db.query_executor import timed_query
from src.errors import StorageError
from src.models.chat_models import ChatTurn, ChatTurnCreate


class ConversationStore(Protocol):
    """Protocol for turn persistence."""

    def append(self, turn: ChatTurnCreate) -> ChatTurn:
        """Persist one turn and return it with its id and timestamp.

        Raises:
            StorageError: If the turn could not be written
        """
        ...

    def list(self, tenant_id: str) -> list[ChatTurn]:
        """Return all of a tenant's turns in creation order.

        Raises:
            StorageError: If turns could not be read
        """
        ...


class InMemoryConversationStore:
    """Thread-safe in-process turn store."""

    def __init__(self):
        self._turns: dict[str, list[ChatTurn]] = defaultdict(list)
        self._lock = Lock()

    def append(self, turn: ChatTurnCreate) -> ChatTurn:
        stored = ChatTurn(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            **turn.model_dump(),
        )
        with self._lock:
            self._turns[turn.tenant_id].append(stored)
        return stored.model_copy(deep=True)

    def list(self, tenant_id: str) -> list[ChatTurn]:
        with self._lock:
            turns = list(self._turns.get(tenant_id, []))
        return [turn.model_copy(deep=True) for turn in turns]

    def clear(self) -> None:
        with self._lock:
            self._turns.clear()


class SupabaseConversationStore:
    """Turn store backed by the chat_turns table.

    Rows get their id, created_at and an identity seq from Postgres; seq
    breaks ties between turns written in the same instant.
    """

    def __init__(self, client: Any | None = None):
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def append(self, turn: ChatTurnCreate) -> ChatTurn:
        data = turn.model_dump(mode="json", exclude_none=True)
        with timed_query(
            "append_turn", tenant_id=turn.tenant_id, role=turn.role.value
        ):
            result = self.client.table(CHAT_TURNS_TABLE).insert(data).execute()
            if not result.data:
                raise StorageError("Failed to append chat turn")
            return ChatTurn.from_record(result.data[0])

    def list(self, tenant_id: str) -> list[ChatTurn]:
        with timed_query("list_turns", tenant_id=tenant_id):
            result = (
                self.client.table(CHAT_TURNS_TABLE)
                .select("*")
                .eq("tenant_id", tenant_id)
                .order("created_at")
                .order("seq")
                .execute()
            )
            return [ChatTurn.from_record(row) for row in result.data or []]


# Global instance
_conversation_store: ConversationStore | None = None


def get_conversation_store() -> ConversationStore:
    """Get or create the conversation store for the configured backend."""
    global _conversation_store
    if _conversation_store is None:
        if get_settings().storage_backend == "memory":
            _conversation_store = InMemoryConversationStore()
        else:
            _conversation_store = SupabaseConversationStore()
    return _conversation_store


def reset_conversation_store() -> None:
    """Reset the global store (primarily for testing)."""
    global _conversation_store
    _conversation_store = None
