"""Build the prompt body sent to the completion provider.

Layout when the tenant has content:

    Context from the website:
    <item text>
    <item text>

    Based on the above context, please answer the following question:
    <question>

Without content (no snapshot, or an empty one) the question is sent as-is.

The whole body is kept within a character budget. When the items do not
fit, they are dropped from the end of the snapshot (latest in document
order first) until the body fits. The question is never clipped.
"""

from dataclasses import dataclass, field

from src.constants import (
    CONTEXT_INSTRUCTION,
    CONTEXT_PREAMBLE,
    DEFAULT_CONTEXT_MAX_CHARS,
)
from src.models.content_models import ContentItem, WebsiteSnapshot


@dataclass
class AssembledContext:
    text: str
    included_items: list[ContentItem] = field(default_factory=list)
    dropped_items: int = 0

    @property
    def truncated(self) -> bool:
        return self.dropped_items > 0


def _frame(question: str) -> tuple[str, str]:
    head = f"{CONTEXT_PREAMBLE}\n"
    tail = f"\n\n{CONTEXT_INSTRUCTION}\n{question}"
    return head, tail


def _fit_items(items: list[ContentItem], available: int) -> list[ContentItem]:
    """Longest prefix of items whose newline-joined text fits in available chars."""
    selected: list[ContentItem] = []
    used = 0
    for item in items:
        cost = len(item.text) + (1 if selected else 0)
        if used + cost > available:
            break
        selected.append(item)
        used += cost
    return selected


class ContextAssembler:
    """Turn a snapshot and a question into one bounded prompt body."""

    def __init__(self, max_chars: int = DEFAULT_CONTEXT_MAX_CHARS):
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        self._max_chars = max_chars

    @property
    def max_chars(self) -> int:
        return self._max_chars

    def assemble(
        self, snapshot: WebsiteSnapshot | None, question: str
    ) -> AssembledContext:
        if snapshot is None or not snapshot.items:
            return AssembledContext(text=question)

        head, tail = _frame(question)
        available = self._max_chars - len(head) - len(tail)
        selected = _fit_items(snapshot.items, available) if available > 0 else []
        dropped = len(snapshot.items) - len(selected)

        if not selected:
            return AssembledContext(text=question, dropped_items=dropped)

        body = "\n".join(item.text for item in selected)
        return AssembledContext(
            text=f"{head}{body}{tail}",
            included_items=selected,
            dropped_items=dropped,
        )


def assemble_context(
    snapshot: WebsiteSnapshot | None,
    question: str,
    max_chars: int = DEFAULT_CONTEXT_MAX_CHARS,
) -> str:
    """Convenience wrapper returning only the assembled text."""
    return ContextAssembler(max_chars=max_chars).assemble(snapshot, question).text
