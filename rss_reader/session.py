"""Interactive feed session for a signed-in user."""

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

from .adapter import ArticleListAdapter
from .config import Config
from .exceptions import AuthError, NetworkError, ParseError, StoreError
from .images import ImagePrefetcher
from .logging_config import create_execution_logger
from .models import FeedItem, UserProfile, UserSession, UserState
from .reconcile import mark_read, reconcile_feed
from .rss import FeedFetcher, ItemNormalizer
from .store import StateStore

DEFAULT_ARTICLE_URL = "https://www.example.com"


class FeedSession:
    """Keeps the displayed feed and the user's link sets in sync.

    State is loaded once by ``start`` and then replaced, never mutated, by
    refreshes and selections. Every change to a link set is written back to
    the store in a background task; writes are not ordered against each other
    and the last one to finish wins.
    """

    def __init__(
        self,
        feed_url: str,
        fetcher: FeedFetcher,
        normalizer: ItemNormalizer,
        store: StateStore,
        identity: Callable[[], UserSession | None],
        adapter: ArticleListAdapter | None = None,
        open_article: Callable[[str, str], None] | None = None,
        image_prefetcher: ImagePrefetcher | None = None,
        execution_id: str | None = None,
    ):
        """Initialize the session.

        Args:
            feed_url: URL of the feed to display
            fetcher: Downloads and parses the feed
            normalizer: Turns raw entries into FeedItems
            store: Remote storage for the link sets
            identity: Returns the active user, or None when signed out
            adapter: List adapter to keep up to date
            open_article: Article viewer, called with (url, title)
            image_prefetcher: Optional image downloader run after each refresh
            execution_id: Execution ID for logging context
        """
        self.feed_url = feed_url
        self.fetcher = fetcher
        self.normalizer = normalizer
        self.store = store
        self.identity = identity
        self.adapter = adapter or ArticleListAdapter()
        self.adapter.on_select = self.select
        self.open_article = open_article
        self.image_prefetcher = image_prefetcher
        self.logger = create_execution_logger("feed_session", execution_id)

        self.state = UserState()
        self.items: list[FeedItem] = []
        self._pending: set[asyncio.Task] = set()

    def current_user_id(self) -> str:
        """Return the active user id.

        Raises:
            AuthError: If nobody is signed in
        """
        session = self.identity()
        if session is None or not session.user_id:
            raise AuthError("No authenticated user")
        return session.user_id

    async def start(self) -> list[FeedItem]:
        """Load the user's state, then fetch the feed."""
        try:
            user_id = self.current_user_id()
        except AuthError as e:
            self.logger.warning(f"Skipping state sync: {e}")
        else:
            try:
                self.state = await self.store.load_state(user_id)
                self.adapter.update(read_links=self.state.read_links)
            except StoreError as e:
                self.logger.error(
                    f"Failed to load user state: {e}", user_id=user_id, error=str(e)
                )

        return await self.refresh()

    def refresh(self) -> asyncio.Task:
        """Start a refresh in the background and return its task.

        Overlapping refreshes are allowed; whichever finishes last decides
        the displayed items.
        """
        return asyncio.create_task(self._refresh())

    async def _refresh(self) -> list[FeedItem]:
        try:
            raw_items = await self.fetcher.fetch(self.feed_url)
            items = self.normalizer.normalize_all(raw_items)
        except (NetworkError, ParseError) as e:
            self.logger.error(
                f"Feed refresh failed: {e}", feed_url=self.feed_url, error=str(e)
            )
            return list(self.items)

        snapshot = reconcile_feed(self.state, items)
        self.items = list(snapshot.items)

        try:
            user_id = self.current_user_id()
        except AuthError as e:
            self.logger.warning(f"Not recording notified links: {e}")
        else:
            self.state = snapshot.state
            self._spawn(
                self.store.save_notified_links(user_id, self.state.notified_links)
            )

        self.adapter.update(items=self.items, read_links=self.state.read_links)
        self.logger.log_feed_processing(self.feed_url, len(self.items))

        if self.image_prefetcher is not None and self.items:
            images = await self.image_prefetcher.prefetch_async(self.items)
            self.adapter.update(images=images)

        return list(self.items)

    def select(self, item: FeedItem) -> asyncio.Task | None:
        """Open an article and mark it as read.

        The read set is written back even when the link was already read.
        Returns the write task, or None when nobody is signed in.
        """
        if self.open_article is not None:
            self.open_article(item.link or DEFAULT_ARTICLE_URL, item.title)

        self.state = mark_read(self.state, item.link)
        self.adapter.update(read_links=self.state.read_links)
        self.logger.log_item_processing(item.title, "read")

        try:
            user_id = self.current_user_id()
        except AuthError as e:
            self.logger.warning(f"Not saving read links: {e}", link=item.link)
            return None

        return self._spawn(self.store.save_read_links(user_id, self.state.read_links))

    async def register_profile(self, username: str) -> bool:
        """Store the profile of the signed-in user.

        Returns:
            True if the profile was written, False otherwise
        """
        session = self.identity()
        if session is None or not session.user_id:
            self.logger.warning("Cannot register profile without a signed-in user")
            return False
        if not username.strip():
            self.logger.warning("Cannot register profile without a username")
            return False

        profile = UserProfile(username=username.strip(), email=session.email or "")
        try:
            await self.store.save_profile(session.user_id, profile)
        except StoreError as e:
            self.logger.error(
                f"Registration failed: {e}", user_id=session.user_id, error=str(e)
            )
            return False
        return True

    async def wait_for_writes(self) -> None:
        """Wait until every write issued so far has finished."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_write_done)
        return task

    def _on_write_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Failed to save user state: {error}", error=str(error))


def create_feed_session(
    config: Config,
    identity: Callable[[], UserSession | None],
    adapter: ArticleListAdapter | None = None,
    open_article: Callable[[str, str], None] | None = None,
    prefetch_images: bool = True,
    execution_id: str | None = None,
) -> FeedSession:
    """Build a feed session from the environment configuration."""
    prefetcher = None
    if prefetch_images:
        prefetcher = ImagePrefetcher(
            timeout=config.http_timeout, execution_id=execution_id
        )
    return FeedSession(
        feed_url=config.get_feed_url(),
        fetcher=FeedFetcher(timeout=config.http_timeout, execution_id=execution_id),
        normalizer=ItemNormalizer(execution_id=execution_id),
        store=StateStore(config.get_store_config(), execution_id=execution_id),
        identity=identity,
        adapter=adapter,
        open_article=open_article,
        image_prefetcher=prefetcher,
        execution_id=execution_id,
    )
