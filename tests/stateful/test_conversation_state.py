"""Stateful tests for tenant snapshots and conversations."""

from unittest.mock import AsyncMock

import pytest
from hypothesis import settings
from hypothesis import strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, rule

from src.db.content_store import InMemoryContentStore
from src.db.conversation_store import InMemoryConversationStore
from src.errors import UpstreamError
from src.models.chat_models import ChatRole, ChatTurnCreate, CompletionResponse
from src.models.content_models import ContentItem, ElementKind, WebsiteSnapshot
from src.services.chat_service import ChatService
from src.services.context_assembler import ContextAssembler

TENANTS = st.sampled_from(["tenant-a", "tenant-b", "tenant-c"])


class TenantStoresMachine(RuleBasedStateMachine):
    """Snapshots are replaced whole; turns are append-only and isolated."""

    def __init__(self):
        super().__init__()
        self.content = InMemoryContentStore()
        self.conversations = InMemoryConversationStore()
        self.expected_snapshots: dict[str, WebsiteSnapshot] = {}
        self.expected_turns: dict[str, list[str]] = {}

    @rule(
        tenant=TENANTS,
        texts=st.lists(st.text(alphabet="abcxyz ", min_size=1).filter(str.strip), max_size=5),
    )
    def put_snapshot(self, tenant, texts):
        snapshot = WebsiteSnapshot(
            tenant_id=tenant,
            source_url=f"https://{tenant}.example.com",
            items=[ContentItem(kind=ElementKind.PARAGRAPH, text=t) for t in texts],
        )
        self.content.put(tenant, snapshot)
        self.expected_snapshots[tenant] = snapshot

    @rule(tenant=TENANTS, content=st.text(min_size=1, max_size=20))
    def append_turn(self, tenant, content):
        self.conversations.append(
            ChatTurnCreate(tenant_id=tenant, role=ChatRole.USER, content=content)
        )
        self.expected_turns.setdefault(tenant, []).append(content)

    @invariant()
    def snapshots_match_last_write(self):
        for tenant in ("tenant-a", "tenant-b", "tenant-c"):
            assert self.content.get(tenant) == self.expected_snapshots.get(tenant)

    @invariant()
    def turns_are_append_only_and_ordered(self):
        for tenant in ("tenant-a", "tenant-b", "tenant-c"):
            stored = [t.content for t in self.conversations.list(tenant)]
            assert stored == self.expected_turns.get(tenant, [])


TestTenantStores = TenantStoresMachine.TestCase
TestTenantStores.settings = settings(max_examples=50, stateful_step_count=20)


class TestConversationFlow:
    """Multi-turn chat flows against in-memory stores."""

    @pytest.mark.asyncio
    async def test_turn_count_grows_by_two_per_answer_and_one_per_failure(self):
        completion = AsyncMock()
        completion.complete = AsyncMock(
            side_effect=[
                CompletionResponse(text="a1", model_id="m"),
                UpstreamError("HTTP 500", status_code=500),
                CompletionResponse(text="a3", model_id="m"),
            ]
        )
        conversations = InMemoryConversationStore()
        service = ChatService(
            completion_service=completion,
            content_store=InMemoryContentStore(),
            conversation_store=conversations,
            assembler=ContextAssembler(),
            max_message_length=1000,
        )

        await service.chat("t", "q1")
        assert len(conversations.list("t")) == 2

        with pytest.raises(UpstreamError):
            await service.chat("t", "q2")
        assert len(conversations.list("t")) == 3

        await service.chat("t", "q3")
        turns = conversations.list("t")
        assert [t.content for t in turns] == ["q1", "a1", "q2", "q3", "a3"]
        assert all(
            (t.metadata is not None) == (t.role is ChatRole.ASSISTANT) for t in turns
        )

    @pytest.mark.asyncio
    async def test_rescrape_changes_grounding_for_next_turn(self):
        content = InMemoryContentStore()
        completion = AsyncMock()
        completion.complete = AsyncMock(
            return_value=CompletionResponse(text="ok", model_id="m")
        )
        service = ChatService(
            completion_service=completion,
            content_store=content,
            conversation_store=InMemoryConversationStore(),
            assembler=ContextAssembler(),
            max_message_length=1000,
        )

        for text in ("old content", "new content"):
            content.put(
                "t",
                WebsiteSnapshot(
                    tenant_id="t",
                    source_url="https://example.com",
                    items=[ContentItem(kind=ElementKind.PARAGRAPH, text=text)],
                ),
            )
            await service.chat("t", "What is on the site?")

        first, second = (c.args[0] for c in completion.complete.await_args_list)
        assert "old content" in first and "new content" not in first
        assert "new content" in second and "old content" not in second
