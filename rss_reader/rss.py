"""Feed fetching and item normalization for the RSS reader."""

import asyncio
from collections.abc import Iterable
from typing import Any

import feedparser
import requests
from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from .exceptions import NetworkError, ParseError
from .logging_config import create_execution_logger
from .models import FeedItem


class FeedFetcher:
    """Downloads a feed document and parses it into raw entries."""

    def __init__(
        self,
        timeout: float | None = 30,
        session: requests.Session | None = None,
        execution_id: str | None = None,
    ):
        """Initialize FeedFetcher.

        Args:
            timeout: HTTP request timeout in seconds, None for the transport default
            session: Optional preconfigured requests session
            execution_id: Execution ID for logging context
        """
        self.timeout = timeout
        self.logger = create_execution_logger("feed_fetcher", execution_id)
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "RSS-Reader/1.0"})

        self.logger.info("FeedFetcher initialized", timeout=timeout)

    async def fetch(self, feed_url: str) -> list[Any]:
        """Fetch and parse a feed without blocking the event loop.

        Args:
            feed_url: URL of the RSS/Atom feed

        Returns:
            Raw feedparser entries in document order

        Raises:
            NetworkError: If the feed cannot be downloaded
            ParseError: If the response is not feed markup
        """
        content = await asyncio.to_thread(self.download, feed_url)
        return self.parse(content, feed_url)

    def download(self, feed_url: str) -> bytes:
        """Download the raw feed document."""
        try:
            self.logger.info("Downloading feed content", feed_url=feed_url)
            response = self.session.get(feed_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            self.logger.error(
                f"Failed to download feed {feed_url}: {e}",
                feed_url=feed_url,
                error=str(e),
            )
            raise NetworkError(
                f"Failed to download feed {feed_url}: {e}", feed_url=feed_url
            ) from e

        self.logger.info(
            "Feed downloaded successfully",
            feed_url=feed_url,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return response.content

    def parse(self, content: bytes | str, feed_url: str = "") -> list[Any]:
        """Parse a feed document into its raw entries.

        Raises:
            ParseError: If feedparser does not recognise the document as a feed
        """
        feed = feedparser.parse(content)

        if not feed.get("version"):
            reason = getattr(feed, "bozo_exception", "unrecognised feed format")
            self.logger.error(
                f"Response is not a feed: {reason}",
                feed_url=feed_url,
                error=str(reason),
            )
            raise ParseError(f"Response is not a feed: {reason}", feed_url=feed_url)

        if feed.bozo and hasattr(feed, "bozo_exception"):
            self.logger.warning(
                f"Feed parsing warning for {feed_url}: {feed.bozo_exception}",
                feed_url=feed_url,
                bozo_exception=str(feed.bozo_exception),
            )

        self.logger.log_feed_processing(feed_url, len(feed.entries))
        return list(feed.entries)


class ItemNormalizer:
    """Turns raw feed entries into FeedItems."""

    def __init__(self, execution_id: str | None = None):
        self.logger = create_execution_logger("item_normalizer", execution_id)

    def normalize_all(self, raw_items: Iterable[Any]) -> list[FeedItem]:
        """Normalize every entry, keeping feed order and count."""
        return [self.normalize(raw_item) for raw_item in raw_items]

    def normalize(self, raw_item: Any) -> FeedItem:
        """Normalize a raw feed entry into a FeedItem.

        Args:
            raw_item: Raw feed entry exposing title, description and link

        Returns:
            Normalized FeedItem object

        Raises:
            ParseError: If the description markup is rejected by the parser
        """
        title = _text_field(raw_item, "title")
        link = _text_field(raw_item, "link")
        description_html = _text_field(raw_item, "description")

        if not link:
            self.logger.warning(
                "Feed entry has no link, using empty key", item_title=title
            )

        try:
            description = self.clean_text(description_html)
            image_url = self.extract_image_url(description_html)
        except ParserRejectedMarkup as e:
            raise ParseError(
                f"Malformed description markup for {link!r}: {e}",
                context={"link": link},
            ) from e

        return FeedItem(
            title=title,
            description=description,
            image_url=image_url,
            link=link,
        )

    @staticmethod
    def extract_image_url(content: str | None) -> str:
        """Return the src of the first img element, or an empty string."""
        if not content or "<" not in content:
            return ""
        img = BeautifulSoup(content, "html.parser").find("img")
        if img is None:
            return ""
        return img.get("src") or ""

    def clean_text(self, content: str | None) -> str:
        """Remove HTML tags from content and normalize whitespace.

        Args:
            content: Raw content that may contain HTML

        Returns:
            Clean text content without HTML tags
        """
        if not content:
            return ""

        if "<" not in content and ">" not in content:
            return _collapse_whitespace(content)

        soup = BeautifulSoup(content, "html.parser")

        for script in soup(["script", "style"]):
            script.decompose()

        text = soup.get_text(separator=" ")

        # Stray brackets that survive parsing would make the result re-parse as markup
        text = text.replace("<", "").replace(">", "")

        return _collapse_whitespace(text)


def _text_field(raw_item: Any, name: str) -> str:
    value = getattr(raw_item, name, None)
    if not isinstance(value, str):
        return ""
    return value


def _collapse_whitespace(text: str) -> str:
    return " ".join(text.split())
