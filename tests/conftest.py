"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Infrastructure: mock_settings, mock_logfire, logfire_capture, mock_supabase_client
2. Stores: content_store, conversation_store (in-memory backends)
3. Fakes: FakeRenderer, FakeDriver, mock_completion_service
4. Services and app: scrape_service, chat_service, test_client
5. Sample data: sample_items, sample_snapshot, sample_completion
"""

import os
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, Mock

import logfire
import pytest

# Suppress warnings when logfire isn't configured in tests
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from src.db.content_store import InMemoryContentStore
from src.db.conversation_store import InMemoryConversationStore
from src.models.chat_models import CompletionResponse, TokenUsage
from src.models.content_models import ContentItem, ElementKind, WebsiteSnapshot
from src.services.chat_service import ChatService
from src.services.completion_service import CompletionService
from src.services.context_assembler import ContextAssembler
from src.services.extractor import ContentParser, WebsiteExtractor
from src.services.scrape_service import ScrapeService

TENANT_ID = "tenant-1"
SAMPLE_URL = "https://example.com"

SAMPLE_HTML = """
<html>
  <head><title>Acme Homes</title><script>var x = 1;</script></head>
  <body>
    <h1>Welcome</h1>
    <p>We sell homes.</p>
    <ul><li>Houses</li><li>   </li><li>Condos</li></ul>
    <div>Ignored container text</div>
  </body>
</html>
"""

# Modules that read settings through `from src.config import get_settings`
_SETTINGS_CONSUMERS = (
    "src.config",
    "src.main",
    "src.logging_config",
    "src.db.client",
    "src.db.content_store",
    "src.db.conversation_store",
    "src.services.extractor",
    "src.services.completion_service",
    "src.services.chat_service",
)

# Modules that log through `import logfire`
_LOGFIRE_CONSUMERS = (
    "src.main",
    "src.logging_config",
    "src.middleware.correlation_id",
    "src.db.content_store",
    "src.db.query_executor",
    "src.services.extractor",
    "src.services.completion_service",
    "src.services.chat_service",
    "src.services.scrape_service",
    "src.services.input_sanitizer",
)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Drop global stores and extractor between tests."""
    from src.db.content_store import reset_content_store
    from src.db.conversation_store import reset_conversation_store
    from src.services.extractor import reset_extractor

    yield
    reset_content_store()
    reset_conversation_store()
    reset_extractor()


@pytest.fixture
def mock_settings(monkeypatch):
    """Mock application settings using the in-memory storage backend."""
    from src.config import Settings

    settings = Settings(
        completion_api_key="test-completion-key",
        completion_base_url="https://api.test-provider.com/v1",
        completion_model="deepseek-chat",
        storage_backend="memory",
        supabase_url="https://test.supabase.co",
        supabase_service_key="test-service-key",
        env="local",
        sentry_dsn=None,
        logfire_token=None,
    )

    for module in _SETTINGS_CONSUMERS:
        monkeypatch.setattr(f"{module}.get_settings", lambda: settings)
    return settings


@pytest.fixture(autouse=True)
def mock_logfire(monkeypatch):
    """
    Mock Logfire for testing without actual logging.

    Auto-applied to all tests; use logfire_capture to assert on log calls.
    """

    @contextmanager
    def mock_span(*args, **kwargs):
        yield MagicMock()

    mock_logfire_module = MagicMock()
    for level in ("debug", "info", "warning", "warn", "error"):
        setattr(mock_logfire_module, level, Mock())
    mock_logfire_module.span = mock_span
    mock_logfire_module.configure = Mock()
    mock_logfire_module.instrument_fastapi = Mock()
    mock_logfire_module.instrument_httpx = Mock()
    mock_logfire_module.LogfireLoggingHandler = logfire.LogfireLoggingHandler

    for module in _LOGFIRE_CONSUMERS:
        monkeypatch.setattr(f"{module}.logfire", mock_logfire_module)

    return mock_logfire_module


@pytest.fixture
def logfire_capture(mock_logfire):
    """
    Capture Logfire calls for assertion.

    Yields a list of (level, message, kwargs) tuples.
    """
    captured_logs = []

    def capture(level):
        def _capture(message, *args, **kwargs):
            captured_logs.append((level, message, kwargs))

        return _capture

    for level in ("debug", "info", "warning", "error"):
        getattr(mock_logfire, level).side_effect = capture(level)

    return captured_logs


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client with the query chains the stores use."""
    client = MagicMock()
    table_mock = MagicMock()

    # table().select().eq().limit().execute() and
    # table().select().eq().order().order().execute()
    select_result = MagicMock()
    select_result.data = []
    eq_mock = MagicMock()
    eq_mock.limit.return_value.execute.return_value = select_result
    eq_mock.order.return_value.order.return_value.execute.return_value = select_result
    table_mock.select.return_value.eq.return_value = eq_mock

    # table().upsert().execute() and table().insert().execute()
    write_result = MagicMock()
    write_result.data = []
    table_mock.upsert.return_value.execute.return_value = write_result
    table_mock.insert.return_value.execute.return_value = write_result

    client.table.return_value = table_mock
    client.select_result = select_result
    client.write_result = write_result
    return client


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def content_store():
    return InMemoryContentStore()


@pytest.fixture
def conversation_store():
    return InMemoryConversationStore()


# =============================================================================
# Fakes
# =============================================================================


class FakeRenderer:
    """PageRenderer returning canned HTML or raising a canned error."""

    def __init__(self, html: str = SAMPLE_HTML, error: Exception | None = None):
        self.html = html
        self.error = error
        self.calls: list[str] = []

    async def render(self, url: str) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.html


class FakeDriver:
    """Stand-in for a selenium WebDriver.

    Pages are "complete" with a fixed resource count unless told otherwise.
    """

    def __init__(
        self,
        page_source: str = SAMPLE_HTML,
        get_error: Exception | None = None,
        ready_state: str = "complete",
        quit_error: Exception | None = None,
        load_delay: float = 0.0,
        on_quit=None,
    ):
        self.page_source = page_source
        self.get_error = get_error
        self.ready_state = ready_state
        self.quit_error = quit_error
        self.load_delay = load_delay
        self.on_quit = on_quit
        self.visited: list[str] = []
        self.page_load_timeout: float | None = None
        self.quit_calls = 0

    def set_page_load_timeout(self, seconds):
        self.page_load_timeout = seconds

    def get(self, url):
        self.visited.append(url)
        if self.load_delay:
            time.sleep(self.load_delay)
        if self.get_error is not None:
            raise self.get_error

    def execute_script(self, script):
        if "readyState" in script:
            return self.ready_state
        return 3

    def quit(self):
        self.quit_calls += 1
        if self.on_quit is not None:
            self.on_quit()
        if self.quit_error is not None:
            raise self.quit_error


class DriverPool:
    """Driver factory that records every driver and the peak concurrency."""

    def __init__(self, **driver_kwargs):
        self.driver_kwargs = driver_kwargs
        self.drivers: list[FakeDriver] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def _released(self):
        with self._lock:
            self.active -= 1

    def __call__(self) -> FakeDriver:
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        driver = FakeDriver(on_quit=self._released, **self.driver_kwargs)
        self.drivers.append(driver)
        return driver


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


@pytest.fixture
def sample_completion():
    return CompletionResponse(
        text="We sell homes.",
        model_id="deepseek-chat",
        usage=TokenUsage(prompt_tokens=42, completion_tokens=5, total_tokens=47),
    )


@pytest.fixture
def mock_completion_service(sample_completion):
    """CompletionService mock whose complete() returns sample_completion."""
    service = AsyncMock(spec=CompletionService)
    service.complete = AsyncMock(return_value=sample_completion)
    return service


# =============================================================================
# Services and app
# =============================================================================


@pytest.fixture
def scrape_service(fake_renderer, content_store):
    extractor = WebsiteExtractor(renderer=fake_renderer, parser=ContentParser())
    return ScrapeService(extractor=extractor, content_store=content_store)


@pytest.fixture
def chat_service(mock_completion_service, content_store, conversation_store):
    return ChatService(
        completion_service=mock_completion_service,
        content_store=content_store,
        conversation_store=conversation_store,
        assembler=ContextAssembler(max_chars=12000),
        max_message_length=1000,
    )


@pytest.fixture
def test_client(mock_settings, scrape_service, chat_service):
    """FastAPI TestClient for E2E tests with services wired to fakes."""
    from fastapi.testclient import TestClient

    from src.main import app
    from src.services.chat_service import get_chat_service
    from src.services.scrape_service import get_scrape_service

    app.dependency_overrides[get_scrape_service] = lambda: scrape_service
    app.dependency_overrides[get_chat_service] = lambda: chat_service
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# Sample data
# =============================================================================


@pytest.fixture
def sample_items():
    return [
        ContentItem(kind=ElementKind.HEADING_1, text="Welcome"),
        ContentItem(kind=ElementKind.PARAGRAPH, text="We sell homes."),
    ]


@pytest.fixture
def sample_snapshot(sample_items):
    return WebsiteSnapshot(
        tenant_id=TENANT_ID,
        source_url=SAMPLE_URL,
        items=sample_items,
        fetched_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
