"""Chat path orchestration.

ChatService runs one visitor message through the pipeline:
1. Validate and sanitize the message
2. Load the tenant's snapshot
3. Assemble the bounded prompt body
4. Record the user turn
5. Request a completion (single attempt)
6. Record the assistant turn with provider metadata

A failed completion leaves only the user turn behind. If the caller is
cancelled while the provider call is in flight, the cancellation propagates
into the HTTP request and no assistant turn is written.
"""

from __future__ import annotations

import logging
import time

import logfire

from src.config import get_settings
from src.db.content_store import ContentStore, get_content_store
from src.db.conversation_store import ConversationStore, get_conversation_store
from src.errors import StorageError, UpstreamError
from src.models.chat_models import ChatResult, ChatRole, ChatTurn, ChatTurnCreate
from src.services.completion_service import CompletionService, get_completion_service
from src.services.context_assembler import ContextAssembler
from src.services.input_sanitizer import require_valid_message

logger = logging.getLogger(__name__)


class ChatService:
    """Answer visitor questions grounded in the tenant's website snapshot.

    Collaborators are injected for testing and default to the configured
    implementations.

    Example:
        >>> service = ChatService()
        >>> result = await service.chat("tenant-1", "What do you sell?")
        >>> result.answer
        'We sell homes.'
    """

    def __init__(
        self,
        completion_service: CompletionService | None = None,
        content_store: ContentStore | None = None,
        conversation_store: ConversationStore | None = None,
        assembler: ContextAssembler | None = None,
        max_message_length: int | None = None,
    ):
        self._completion_service = completion_service
        self._content_store = content_store
        self._conversation_store = conversation_store
        self._assembler = assembler
        self._max_message_length = max_message_length

    def _get_completion_service(self) -> CompletionService:
        if self._completion_service is None:
            self._completion_service = get_completion_service()
        return self._completion_service

    def _get_content_store(self) -> ContentStore:
        if self._content_store is None:
            self._content_store = get_content_store()
        return self._content_store

    def _get_conversation_store(self) -> ConversationStore:
        if self._conversation_store is None:
            self._conversation_store = get_conversation_store()
        return self._conversation_store

    def _get_assembler(self) -> ContextAssembler:
        if self._assembler is None:
            self._assembler = ContextAssembler(get_settings().context_max_chars)
        return self._assembler

    def _get_max_message_length(self) -> int:
        if self._max_message_length is None:
            self._max_message_length = get_settings().max_message_length_chars
        return self._max_message_length

    async def chat(self, tenant_id: str, message: str) -> ChatResult:
        """Answer one message.

        Args:
            tenant_id: Opaque tenant identifier
            message: Raw visitor message

        Returns:
            ChatResult with the answer and the provider's model id

        Raises:
            ValidationError: If the message is empty or too long
            UpstreamError, UpstreamTimeoutError: If the provider call failed
            StorageError: If a turn could not be recorded
        """
        question = require_valid_message(
            message, max_length=self._get_max_message_length()
        )
        start_time = time.time()

        snapshot = self._get_content_store().get(tenant_id)
        context = self._get_assembler().assemble(snapshot, question)
        if context.truncated:
            logfire.warning(
                "Website context truncated to fit budget",
                tenant_id=tenant_id,
                included_items=len(context.included_items),
                dropped_items=context.dropped_items,
                max_chars=self._get_assembler().max_chars,
            )

        conversation = self._get_conversation_store()
        conversation.append(
            ChatTurnCreate(tenant_id=tenant_id, role=ChatRole.USER, content=question)
        )

        try:
            completion = await self._get_completion_service().complete(context.text)
        except UpstreamError as e:
            logger.error(
                "Completion failed for tenant %s (%s): %s", tenant_id, e.code, e
            )
            raise

        try:
            conversation.append(
                ChatTurnCreate(
                    tenant_id=tenant_id,
                    role=ChatRole.ASSISTANT,
                    content=completion.text,
                    metadata=completion.to_turn_metadata(),
                )
            )
        except StorageError:
            logfire.error(
                "Answer generated but not recorded",
                tenant_id=tenant_id,
                model=completion.model_id,
            )
            raise

        logfire.info(
            "Chat message processed",
            tenant_id=tenant_id,
            has_snapshot=snapshot is not None,
            context_length=len(context.text),
            model=completion.model_id,
            response_time_ms=(time.time() - start_time) * 1000,
        )
        return ChatResult(answer=completion.text, model_id=completion.model_id)

    def list_turns(self, tenant_id: str) -> list[ChatTurn]:
        return self._get_conversation_store().list(tenant_id)


def get_chat_service() -> ChatService:
    """Get chat service instance."""
    return ChatService()
