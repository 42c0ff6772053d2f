"""Tenant endpoints: scrape a website, chat about it, read back state.

The tenant id is opaque here. Authenticating callers and mapping them to
tenants happens in front of this service.
"""

import asyncio
import logging
from typing import Any, Awaitable

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from src.constants import DISCONNECT_POLL_INTERVAL_SECONDS
from src.models.api_models import ChatRequest, ChatResponse, ScrapeRequest, ScrapeResponse
from src.models.chat_models import ChatTurn
from src.models.content_models import WebsiteSnapshot
from src.services.chat_service import ChatService, get_chat_service
from src.services.scrape_service import ScrapeService, get_scrape_service

logger = logging.getLogger(__name__)
router = APIRouter()

# Non-standard status used by nginx for "client closed request"
CLIENT_CLOSED_REQUEST = 499


class ClientDisconnected(Exception):
    """The caller went away before the work finished."""


async def run_until_disconnect(request: Request, work: Awaitable[Any]) -> Any:
    """Await work, cancelling it if the client disconnects first.

    Raises:
        ClientDisconnected: If the client went away and work was cancelled
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


@router.post("/{tenant_id}/scrape", response_model=ScrapeResponse)
async def scrape(
    tenant_id: str,
    body: ScrapeRequest,
    service: ScrapeService = Depends(get_scrape_service),
):
    """Extract the website at body.url and make it the tenant's snapshot."""
    result = await service.scrape(tenant_id, body.url)
    return ScrapeResponse(item_count=result.item_count)


@router.post("/{tenant_id}/chat", response_model=ChatResponse)
async def chat(
    tenant_id: str,
    body: ChatRequest,
    request: Request,
    service: ChatService = Depends(get_chat_service),
):
    """Answer a visitor message grounded in the tenant's snapshot."""
    try:
        result = await run_until_disconnect(
            request, service.chat(tenant_id, body.message)
        )
    except ClientDisconnected:
        logger.info("Client disconnected, chat cancelled for tenant %s", tenant_id)
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    return ChatResponse(answer=result.answer)


@router.get("/{tenant_id}/snapshot", response_model=WebsiteSnapshot)
async def get_snapshot(
    tenant_id: str,
    service: ScrapeService = Depends(get_scrape_service),
):
    """Return the tenant's current snapshot."""
    snapshot = service.get_snapshot(tenant_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No website content for tenant")
    return snapshot


@router.get("/{tenant_id}/turns", response_model=list[ChatTurn])
async def list_turns(
    tenant_id: str,
    service: ChatService = Depends(get_chat_service),
):
    """Return the tenant's conversation in creation order."""
    return service.list_turns(tenant_id)
