"""Best-effort download of article images."""

import asyncio
from collections.abc import Callable, Iterable

import requests

from .logging_config import create_execution_logger
from .models import FeedItem


class ImagePrefetcher:
    """Downloads the image of every item that has one."""

    def __init__(
        self,
        timeout: float | None = 30,
        session: requests.Session | None = None,
        on_error: Callable[[FeedItem, Exception], None] | None = None,
        execution_id: str | None = None,
    ):
        """Initialize the prefetcher.

        Args:
            timeout: HTTP request timeout in seconds
            session: Optional preconfigured requests session
            on_error: Called with the item and error when a download fails
            execution_id: Execution ID for logging context
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.on_error = on_error
        self.logger = create_execution_logger("image_prefetcher", execution_id)

    async def prefetch_async(self, items: Iterable[FeedItem]) -> dict[str, bytes]:
        return await asyncio.to_thread(self.prefetch, list(items))

    def prefetch(self, items: Iterable[FeedItem]) -> dict[str, bytes]:
        """Download images keyed by article link, skipping failures."""
        images: dict[str, bytes] = {}
        for item in items:
            if not item.image_url:
                continue
            try:
                response = self.session.get(item.image_url, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                self.logger.warning(
                    f"Failed to load image {item.image_url}: {e}",
                    link=item.link,
                    image_url=item.image_url,
                    error=str(e),
                )
                if self.on_error is not None:
                    self.on_error(item, e)
                continue
            images[item.link] = response.content

        self.logger.info("Prefetched images", count=len(images))
        return images
