"""Website text extraction with a headless browser.

The extractor is split into small, testable components:
- PageRenderer: Protocol for turning a URL into rendered HTML
- ChromePageRenderer: undetected headless Chrome, bounded by a semaphore
- ContentParser: pull ordered ContentItems out of rendered HTML
- WebsiteExtractor: validate, render, parse

Each component can be mocked independently for testing.
"""

import asyncio
import contextlib
import os
import time
from collections.abc import Iterator
from typing import Any, Callable, List, Protocol

import logfire
from bs4 import BeautifulSoup

from src.config import get_settings
from src.constants import (
    BROWSER_PAGE_LOAD_TIMEOUT_SECONDS,
    BROWSER_SETTLE_POLL_SECONDS,
    BROWSER_SETTLE_TIMEOUT_SECONDS,
    EXTRACTED_TAGS,
    MAX_CONCURRENT_BROWSERS,
    NETWORK_IDLE_MS,
)
from src.errors import CoreError, NavigationTimeoutError, RenderError
from src.models.content_models import ContentItem, ElementKind
from src.services.input_sanitizer import require_valid_url


class PageRenderer(Protocol):
    """Protocol for rendering a page to HTML."""

    async def render(self, url: str) -> str:
        """Render url and return the settled DOM as HTML.

        Raises:
            NavigationTimeoutError: If the page does not load or settle in time
            RenderError: If the engine fails
        """
        ...


class _NetworkSettled:
    """WebDriverWait condition: document complete and resource count stable."""

    def __init__(self, idle_seconds: float):
        self._idle_seconds = idle_seconds
        self._last_count: int | None = None
        self._stable_since = 0.0

    def __call__(self, driver: Any) -> bool:
        if driver.execute_script("return document.readyState") != "complete":
            return False
        count = driver.execute_script(
            "return performance.getEntriesByType('resource').length"
        )
        now = time.monotonic()
        if count != self._last_count:
            self._last_count = count
            self._stable_since = now
            return False
        return now - self._stable_since >= self._idle_seconds


def _launch_chrome() -> Any:
    """Start undetected headless Chrome.

    Set CHROME_VERSION_MAIN to your Chrome major version (e.g. 143) if you see
    "This version of ChromeDriver only supports Chrome version X".
    """
    import undetected_chromedriver as uc

    options = uc.ChromeOptions()
    kwargs: dict = {"options": options, "headless": True}
    version_main = os.environ.get("CHROME_VERSION_MAIN")
    if version_main is not None:
        try:
            kwargs["version_main"] = int(version_main)
        except ValueError:
            pass
    return uc.Chrome(**kwargs)


class ChromePageRenderer:
    """Render pages in headless Chrome.

    Every render acquires its own browser and tears it down on every exit
    path. At most ``max_concurrent`` browsers exist at once; further callers
    wait for a free slot.
    """

    def __init__(
        self,
        page_load_timeout: float = BROWSER_PAGE_LOAD_TIMEOUT_SECONDS,
        settle_timeout: float = BROWSER_SETTLE_TIMEOUT_SECONDS,
        network_idle_ms: int = NETWORK_IDLE_MS,
        max_concurrent: int = MAX_CONCURRENT_BROWSERS,
        driver_factory: Callable[[], Any] | None = None,
    ):
        """Initialize the renderer.

        Args:
            page_load_timeout: Bound on the initial navigation (seconds)
            settle_timeout: Bound on waiting for network activity to stop (seconds)
            network_idle_ms: Quiet period that counts as settled (milliseconds)
            max_concurrent: Browsers allowed at the same time
            driver_factory: Callable returning a WebDriver (defaults to Chrome)
        """
        self._page_load_timeout = page_load_timeout
        self._settle_timeout = settle_timeout
        self._idle_seconds = network_idle_ms / 1000
        self._max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._driver_factory = driver_factory or _launch_chrome

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    async def render(self, url: str) -> str:
        async with self._semaphore:
            future = asyncio.ensure_future(asyncio.to_thread(self._render_sync, url))
            try:
                return await asyncio.shield(future)
            except asyncio.CancelledError:
                # The slot stays held until the browser thread has quit
                with contextlib.suppress(Exception):
                    await future
                raise

    @contextlib.contextmanager
    def _browser_session(self) -> Iterator[Any]:
        try:
            driver = self._driver_factory()
        except Exception as e:
            raise RenderError(f"Failed to launch browser: {e}") from e
        try:
            yield driver
        finally:
            try:
                driver.quit()
            except Exception as e:
                logfire.warning(
                    "Browser teardown failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def _render_sync(self, url: str) -> str:
        from selenium.common.exceptions import TimeoutException, WebDriverException
        from selenium.webdriver.support.ui import WebDriverWait

        try:
            with self._browser_session() as driver:
                driver.set_page_load_timeout(self._page_load_timeout)
                driver.get(url)
                WebDriverWait(
                    driver,
                    self._settle_timeout,
                    poll_frequency=BROWSER_SETTLE_POLL_SECONDS,
                ).until(_NetworkSettled(self._idle_seconds))
                return driver.page_source
        except TimeoutException as e:
            raise NavigationTimeoutError(
                f"Page did not settle within the time limit: {url}"
            ) from e
        except WebDriverException as e:
            raise RenderError(f"Browser failed while rendering {url}: {e.msg}") from e
        except CoreError:
            raise
        except Exception as e:
            # Driver connection loss surfaces as urllib3/OSError, not WebDriverException
            raise RenderError(f"Browser failed while rendering {url}: {e}") from e


class ContentParser:
    """Extract ordered content items from rendered HTML."""

    # Never visible, even when nested inside an extracted element
    _INVISIBLE_TAGS = ("script", "style", "noscript", "template")

    def parse(self, html: str) -> List[ContentItem]:
        """Parse HTML into content items in document order.

        Containers come before their descendants, so an <article> and the
        <p> elements inside it are both returned. Items whose trimmed text
        is empty are dropped.

        Args:
            html: Rendered HTML

        Returns:
            List of ContentItem in document order
        """
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(list(self._INVISIBLE_TAGS)):
            tag.decompose()

        items: List[ContentItem] = []
        for element in soup.find_all(list(EXTRACTED_TAGS)):
            kind = ElementKind.from_tag(element.name)
            if kind is None:
                continue
            text = element.get_text().strip()
            if not text:
                continue
            items.append(ContentItem(kind=kind, text=text))
        return items


class WebsiteExtractor:
    """Validate a URL, render it, and extract its text items."""

    def __init__(
        self,
        renderer: PageRenderer | None = None,
        parser: ContentParser | None = None,
    ):
        """Initialize the extractor.

        Args:
            renderer: Page renderer implementation (defaults to ChromePageRenderer)
            parser: Content parser implementation (defaults to ContentParser)
        """
        self._renderer = renderer or ChromePageRenderer()
        self._parser = parser or ContentParser()

    async def extract(self, url: str) -> List[ContentItem]:
        """Render url and return its content items.

        Raises:
            InvalidUrlError: Before any browser activity if url is malformed
            NavigationTimeoutError: If the page did not settle in time
            RenderError: If the engine failed
        """
        require_valid_url(url)

        start_time = time.time()
        logfire.info("Starting website extraction", url=url)
        try:
            html = await self._renderer.render(url)
        except (NavigationTimeoutError, RenderError) as e:
            logfire.error(
                "Website extraction failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
                response_time_ms=(time.time() - start_time) * 1000,
            )
            raise

        items = self._parser.parse(html)
        logfire.info(
            "Website extraction completed",
            url=url,
            item_count=len(items),
            html_length=len(html),
            response_time_ms=(time.time() - start_time) * 1000,
        )
        return items


# Global instance so every request shares the same browser limit
_extractor: WebsiteExtractor | None = None


def get_extractor() -> WebsiteExtractor:
    """Get or create the global extractor configured from settings."""
    global _extractor
    if _extractor is None:
        settings = get_settings()
        _extractor = WebsiteExtractor(
            renderer=ChromePageRenderer(
                page_load_timeout=settings.browser_page_load_timeout_seconds,
                settle_timeout=settings.browser_settle_timeout_seconds,
                network_idle_ms=settings.network_idle_ms,
                max_concurrent=settings.max_concurrent_browsers,
            )
        )
    return _extractor


def reset_extractor() -> None:
    """Reset the global extractor (primarily for testing)."""
    global _extractor
    _extractor = None
