"""Models for extracted website content and the per-tenant snapshot."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ElementKind(str, Enum):
    """Element kinds the extractor keeps. Any other tag is excluded."""

    PARAGRAPH = "p"
    HEADING_1 = "h1"
    HEADING_2 = "h2"
    HEADING_3 = "h3"
    HEADING_4 = "h4"
    HEADING_5 = "h5"
    HEADING_6 = "h6"
    LIST_ITEM = "li"
    ARTICLE = "article"

    @classmethod
    def from_tag(cls, tag: str | None) -> "ElementKind | None":
        """Map a raw tag name to a kind, or None if the tag is not extracted."""
        if not tag:
            return None
        try:
            return cls(tag.strip().lower())
        except ValueError:
            return None


class ContentItem(BaseModel):
    """One extracted text unit tagged with its source element kind."""

    kind: ElementKind
    text: str

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("content item text must not be empty")
        return value


class WebsiteSnapshot(BaseModel):
    """Latest normalized text content extracted from a tenant's website."""

    tenant_id: str = Field(..., min_length=1)
    source_url: str
    items: list[ContentItem] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def item_count(self) -> int:
        return len(self.items)

    def to_record(self) -> dict:
        """Row layout used by the snapshot table."""
        return {
            "tenant_id": self.tenant_id,
            "source_url": self.source_url,
            "items": [item.model_dump(mode="json") for item in self.items],
            "fetched_at": self.fetched_at.isoformat(),
        }


class ScrapeResult(BaseModel):
    """Outcome of a successful Scrape operation."""

    tenant_id: str
    source_url: str
    item_count: int = Field(..., ge=0)
