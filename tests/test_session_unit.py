"""Unit tests for the interactive feed session."""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock, patch

import pytest

from rss_reader.adapter import ArticleListAdapter
from rss_reader.config import Config
from rss_reader.exceptions import NetworkError, StoreError
from rss_reader.models import UserSession, UserState
from rss_reader.rss import ItemNormalizer
from rss_reader.session import DEFAULT_ARTICLE_URL, FeedSession, create_feed_session

FEED_URL = "https://news.example.com/rss.xml"


def entry(link: str, image: str = "") -> SimpleNamespace:
    image_tag = f'<img src="{image}"/>' if image else ""
    return SimpleNamespace(
        title=f"Title {link}",
        link=link,
        description=f"{image_tag}<p>About {link}</p>",
    )


def make_store(state: UserState | None = None) -> Mock:
    store = Mock()
    store.load_state = AsyncMock(return_value=state or UserState())
    store.save_read_links = AsyncMock()
    store.save_notified_links = AsyncMock()
    store.save_profile = AsyncMock()
    return store


def make_fetcher(*batches) -> Mock:
    fetcher = Mock()
    fetcher.fetch = AsyncMock(side_effect=list(batches))
    return fetcher


def signed_in() -> UserSession:
    return UserSession(user_id="user-1", email="ola@example.com")


def make_session(fetcher, store, identity=signed_in, **kwargs) -> FeedSession:
    return FeedSession(
        feed_url=FEED_URL,
        fetcher=fetcher,
        normalizer=ItemNormalizer(),
        store=store,
        identity=identity,
        **kwargs,
    )


class TestFeedSession:
    """Unit tests for FeedSession."""

    @pytest.mark.asyncio
    async def test_start_marks_stored_read_links(self):
        store = make_store(UserState.from_links(read_links={"https://a"}))
        adapter = ArticleListAdapter()
        session = make_session(
            make_fetcher([entry("https://a"), entry("https://b")]),
            store,
            adapter=adapter,
        )

        items = await session.start()

        assert [item.link for item in items] == ["https://a", "https://b"]
        assert adapter.row(0).is_read is True
        assert adapter.row(1).is_read is False
        store.load_state.assert_awaited_once_with("user-1")

    @pytest.mark.asyncio
    async def test_refresh_persists_union_of_notified_links(self):
        store = make_store(UserState.from_links(notified_links={"https://old"}))
        session = make_session(
            make_fetcher([entry("https://a")], [entry("https://b")]), store
        )

        await session.start()
        await session.refresh()
        await session.wait_for_writes()

        assert session.state.notified_links == {
            "https://old",
            "https://a",
            "https://b",
        }
        last_call = store.save_notified_links.call_args_list[-1]
        assert last_call.args == ("user-1", session.state.notified_links)
        assert store.save_notified_links.await_count == 2

    @pytest.mark.asyncio
    async def test_refresh_replaces_items(self):
        session = make_session(
            make_fetcher(
                [entry("https://a"), entry("https://b")], [entry("https://c")]
            ),
            make_store(),
        )

        await session.start()
        items = await session.refresh()

        assert [item.link for item in items] == ["https://c"]
        assert [item.link for item in session.adapter.items] == ["https://c"]

    @pytest.mark.asyncio
    async def test_select_marks_read_and_persists(self):
        store = make_store()
        open_article = Mock()
        session = make_session(
            make_fetcher([entry("https://a")]), store, open_article=open_article
        )
        await session.start()

        session.adapter.click(0)
        await session.wait_for_writes()

        open_article.assert_called_once_with("https://a", "Title https://a")
        assert session.state.read_links == {"https://a"}
        assert session.adapter.row(0).is_read is True
        store.save_read_links.assert_awaited_once_with(
            "user-1", frozenset({"https://a"})
        )

    @pytest.mark.asyncio
    async def test_selecting_read_article_still_persists(self):
        store = make_store(UserState.from_links(read_links={"https://a"}))
        session = make_session(make_fetcher([entry("https://a")]), store)
        await session.start()

        task = session.select(session.items[0])
        await task

        assert session.state.read_links == {"https://a"}
        assert store.save_read_links.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_link_opens_default_page(self):
        open_article = Mock()
        session = make_session(
            make_fetcher([SimpleNamespace(title="No link", description="x")]),
            make_store(),
            open_article=open_article,
        )
        await session.start()

        session.select(session.items[0])
        await session.wait_for_writes()

        open_article.assert_called_once_with(DEFAULT_ARTICLE_URL, "No link")

    @pytest.mark.asyncio
    async def test_signed_out_user_gets_feed_without_state_sync(self):
        store = make_store()
        session = make_session(
            make_fetcher([entry("https://a")]), store, identity=lambda: None
        )

        items = await session.start()
        assert session.select(items[0]) is None

        assert len(items) == 1
        assert session.state.notified_links == frozenset()
        assert session.state.read_links == {"https://a"}
        store.load_state.assert_not_awaited()
        store.save_notified_links.assert_not_awaited()
        store.save_read_links.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_network_failure_keeps_previous_items(self):
        fetcher = make_fetcher(
            [entry("https://a")], NetworkError("offline", feed_url=FEED_URL)
        )
        session = make_session(fetcher, make_store())

        await session.start()
        items = await session.refresh()

        assert [item.link for item in items] == ["https://a"]

    @pytest.mark.asyncio
    async def test_store_load_failure_is_not_fatal(self):
        store = make_store()
        store.load_state.side_effect = StoreError("unavailable")
        session = make_session(make_fetcher([entry("https://a")]), store)

        items = await session.start()

        assert len(items) == 1
        assert session.state.read_links == frozenset()

    @pytest.mark.asyncio
    async def test_failed_write_is_logged_not_raised(self):
        store = make_store()
        store.save_notified_links.side_effect = StoreError("throttled")
        session = make_session(make_fetcher([entry("https://a")]), store)

        await session.start()
        await session.wait_for_writes()

        assert session.state.notified_links == {"https://a"}

    @pytest.mark.asyncio
    async def test_images_are_prefetched_after_refresh(self):
        prefetcher = Mock()
        prefetcher.prefetch_async = AsyncMock(return_value={"https://a": b"jpeg"})
        session = make_session(
            make_fetcher([entry("https://a", image="https://img/a.jpg")]),
            make_store(),
            image_prefetcher=prefetcher,
        )

        await session.start()

        assert session.adapter.row(0).image == b"jpeg"
        prefetcher.prefetch_async.assert_awaited_once_with(session.items)

    @pytest.mark.asyncio
    async def test_register_profile(self):
        store = make_store()
        session = make_session(make_fetcher(), store)

        assert await session.register_profile(" ola ") is True

        profile = store.save_profile.await_args.args[1]
        assert profile.username == "ola"
        assert profile.email == "ola@example.com"

    @pytest.mark.asyncio
    async def test_register_profile_requires_username_and_user(self):
        store = make_store()

        assert await make_session(make_fetcher(), store).register_profile("  ") is False
        assert (
            await make_session(
                make_fetcher(), store, identity=lambda: None
            ).register_profile("ola")
            is False
        )
        store.save_profile.assert_not_awaited()


class TestCreateFeedSession:
    """Tests for building a session from the environment configuration."""

    def test_session_uses_configured_feed(self):
        with patch.dict(os.environ, {"FEED_URL": FEED_URL}, clear=True), patch(
            "boto3.resource"
        ):
            session = create_feed_session(Config(), identity=signed_in)

        assert session.feed_url == FEED_URL
        assert session.image_prefetcher is not None
        assert session.adapter.on_select == session.select

    def test_prefetching_can_be_disabled(self):
        with patch.dict(os.environ, {}, clear=True), patch("boto3.resource"):
            session = create_feed_session(
                Config(), identity=signed_in, prefetch_images=False
            )

        assert session.image_prefetcher is None
