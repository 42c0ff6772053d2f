"""Conversation turn and completion models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class ChatRole(str, Enum):
    """Author of a turn."""

    USER = "user"
    ASSISTANT = "assistant"


class TurnMetadata(BaseModel):
    """Provider metadata recorded on assistant turns."""

    model_id: str
    prompt_tokens: int | None = Field(default=None, ge=0)
    completion_tokens: int | None = Field(default=None, ge=0)


class ChatTurnCreate(BaseModel):
    """Parameters for appending a turn.

    Replaces a long parameter list on ConversationStore.append() with a
    single type-safe parameter object.
    """

    tenant_id: str = Field(..., min_length=1, description="Owning tenant")
    role: ChatRole
    content: str = Field(..., description="Message text")
    metadata: TurnMetadata | None = Field(
        default=None, description="Provider metadata (assistant turns only)"
    )

    @model_validator(mode="after")
    def _metadata_only_on_assistant(self) -> "ChatTurnCreate":
        if self.metadata is not None and self.role is not ChatRole.ASSISTANT:
            raise ValueError("metadata is only recorded on assistant turns")
        return self


class ChatTurn(ChatTurnCreate):
    """A persisted turn. Append-only."""

    id: str
    created_at: datetime

    @classmethod
    def from_record(cls, record: dict) -> "ChatTurn":
        return cls(
            id=str(record["id"]),
            tenant_id=record["tenant_id"],
            role=record["role"],
            content=record["content"],
            created_at=record["created_at"],
            metadata=record.get("metadata"),
        )


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


class CompletionRequest(BaseModel):
    """One provider call: fixed system instruction plus assembled user content."""

    system_instruction: str
    user_content: str


class CompletionResponse(BaseModel):
    """Normalized provider answer."""

    text: str
    model_id: str
    usage: TokenUsage = Field(default_factory=TokenUsage)

    def to_turn_metadata(self) -> TurnMetadata:
        return TurnMetadata(
            model_id=self.model_id,
            prompt_tokens=self.usage.prompt_tokens,
            completion_tokens=self.usage.completion_tokens,
        )


class ChatResult(BaseModel):
    """Outcome of a successful Chat operation."""

    answer: str
    model_id: str
