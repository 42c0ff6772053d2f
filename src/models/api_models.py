"""Request and response bodies for the tenant HTTP endpoints."""

from pydantic import BaseModel, Field


class ScrapeRequest(BaseModel):
    """Website URL input for scraping."""

    url: str


class ScrapeResponse(BaseModel):
    success: bool = True
    item_count: int = Field(..., ge=0)


class ChatRequest(BaseModel):
    """Visitor message."""

    message: str


class ChatResponse(BaseModel):
    answer: str


class ErrorResponse(BaseModel):
    """Body returned for every handled failure."""

    error: str
    code: str
