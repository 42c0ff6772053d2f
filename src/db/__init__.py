"""Storage layer: tenant snapshots and conversation turns."""

from src.db.content_store import (
    ContentStore,
    InMemoryContentStore,
    SupabaseContentStore,
    get_content_store,
    reset_content_store,
)
from src.db.conversation_store import (
    ConversationStore,
    InMemoryConversationStore,
    SupabaseConversationStore,
    get_conversation_store,
    reset_conversation_store,
)
from src.db.query_executor import timed_query

__all__ = [
    "ContentStore",
    "InMemoryContentStore",
    "SupabaseContentStore",
    "get_content_store",
    "reset_content_store",
    "ConversationStore",
    "InMemoryConversationStore",
    "SupabaseConversationStore",
    "get_conversation_store",
    "reset_conversation_store",
    "timed_query",
]
