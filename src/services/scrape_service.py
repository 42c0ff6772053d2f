"""Ingestion path: extract a website and replace the tenant's snapshot."""

import logging
from datetime import datetime, timezone

import logfire

from src.db.content_store import ContentStore, get_content_store
from src.errors import ScrapeError
from src.models.content_models import ScrapeResult, WebsiteSnapshot
from src.services.extractor import WebsiteExtractor, get_extractor

logger = logging.getLogger(__name__)


class ScrapeService:
    """Run the extractor and store the result as the tenant's snapshot.

    The snapshot is written only after extraction has fully succeeded, so a
    failed or partial run never overwrites a good snapshot.
    """

    def __init__(
        self,
        extractor: WebsiteExtractor | None = None,
        content_store: ContentStore | None = None,
    ):
        self._extractor = extractor
        self._content_store = content_store

    @property
    def extractor(self) -> WebsiteExtractor:
        if self._extractor is None:
            self._extractor = get_extractor()
        return self._extractor

    @property
    def content_store(self) -> ContentStore:
        if self._content_store is None:
            self._content_store = get_content_store()
        return self._content_store

    async def scrape(self, tenant_id: str, url: str) -> ScrapeResult:
        """Extract url and make it the tenant's snapshot.

        Raises:
            InvalidUrlError: If url is malformed (nothing is fetched)
            NavigationTimeoutError, RenderError: If extraction failed
            StorageError: If the snapshot could not be written
        """
        try:
            items = await self.extractor.extract(url)
        except ScrapeError as e:
            logger.warning(
                "Scrape failed for tenant %s (%s): %s", tenant_id, e.code, e
            )
            raise

        snapshot = WebsiteSnapshot(
            tenant_id=tenant_id,
            source_url=url,
            items=items,
            fetched_at=datetime.now(timezone.utc),
        )
        self.content_store.put(tenant_id, snapshot)

        logfire.info(
            "Snapshot stored",
            tenant_id=tenant_id,
            source_url=url,
            item_count=snapshot.item_count,
        )
        return ScrapeResult(
            tenant_id=tenant_id, source_url=url, item_count=snapshot.item_count
        )

    def get_snapshot(self, tenant_id: str) -> WebsiteSnapshot | None:
        return self.content_store.get(tenant_id)


def get_scrape_service() -> ScrapeService:
    """Get scrape service instance."""
    return ScrapeService()
