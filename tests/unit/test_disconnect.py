"""Tests for cancelling work when the HTTP client goes away."""

import asyncio

import pytest

from src.api.tenants import ClientDisconnected, run_until_disconnect


class FakeRequest:
    def __init__(self, disconnect_after: int | None = None):
        self.disconnect_after = disconnect_after
        self.polls = 0

    async def is_disconnected(self) -> bool:
        self.polls += 1
        return self.disconnect_after is not None and self.polls >= self.disconnect_after


@pytest.fixture(autouse=True)
def fast_polling(monkeypatch):
    monkeypatch.setattr("src.api.tenants.DISCONNECT_POLL_INTERVAL_SECONDS", 0.01)


@pytest.mark.asyncio
async def test_returns_result_when_work_finishes():
    async def work():
        await asyncio.sleep(0.03)
        return "answer"

    assert await run_until_disconnect(FakeRequest(), work()) == "answer"


@pytest.mark.asyncio
async def test_work_errors_propagate():
    async def work():
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        await run_until_disconnect(FakeRequest(), work())


@pytest.mark.asyncio
async def test_disconnect_cancels_work():
    cancelled = asyncio.Event()

    async def work():
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    with pytest.raises(ClientDisconnected):
        await run_until_disconnect(FakeRequest(disconnect_after=2), work())

    assert cancelled.is_set()
