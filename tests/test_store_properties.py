"""Unit and property-based tests for StateStore."""

from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError
from hypothesis import given
from hypothesis import strategies as st

from rss_reader.config import StoreConfig
from rss_reader.exceptions import StoreError
from rss_reader.models import UserProfile, UserState
from rss_reader.store import StateStore

LINKS = st.frozensets(
    st.builds(
        lambda slug: f"https://news.example.com/{slug}",
        st.text(alphabet="abcdefghij0123456789-", min_size=1, max_size=12),
    ),
    max_size=20,
)


def make_tables() -> dict[str, Mock]:
    tables = {}
    for name in ("readArticles", "notifiedArticles", "users"):
        table = Mock()
        table.name = name
        table.get_item.return_value = {}
        tables[name] = table
    return tables


def client_error(operation: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow"}},
        operation,
    )


class TestStateStore:
    """Tests for StateStore against a mocked DynamoDB resource."""

    def setup_method(self):
        self.tables = make_tables()
        self.patcher = patch("boto3.resource")
        mock_resource = self.patcher.start()
        mock_resource.return_value.Table.side_effect = lambda name: self.tables[name]
        self.store = StateStore(StoreConfig())

    def teardown_method(self):
        self.patcher.stop()

    @pytest.mark.asyncio
    async def test_missing_documents_load_as_empty_sets(self):
        state = await self.store.load_state("user-1")

        assert state == UserState()
        self.tables["readArticles"].get_item.assert_called_once_with(
            Key={"user_id": "user-1"}
        )
        self.tables["notifiedArticles"].get_item.assert_called_once_with(
            Key={"user_id": "user-1"}
        )

    @pytest.mark.asyncio
    async def test_item_without_links_attribute_loads_as_empty(self):
        self.tables["readArticles"].get_item.return_value = {
            "Item": {"user_id": "user-1"}
        }

        state = await self.store.load_state("user-1")

        assert state.read_links == frozenset()

    @pytest.mark.asyncio
    async def test_stored_links_are_loaded(self):
        self.tables["readArticles"].get_item.return_value = {
            "Item": {"user_id": "user-1", "links": ["https://a"]}
        }
        self.tables["notifiedArticles"].get_item.return_value = {
            "Item": {"user_id": "user-1", "links": ["https://a", "https://b"]}
        }

        state = await self.store.load_state("user-1")

        assert state.read_links == {"https://a"}
        assert state.notified_links == {"https://a", "https://b"}

    @pytest.mark.asyncio
    async def test_save_read_links_replaces_the_document(self):
        await self.store.save_read_links("user-1", {"https://b", "https://a"})

        self.tables["readArticles"].put_item.assert_called_once_with(
            Item={"user_id": "user-1", "links": ["https://a", "https://b"]}
        )
        self.tables["notifiedArticles"].put_item.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_notified_links_replaces_the_document(self):
        await self.store.save_notified_links("user-1", ["https://c"])

        self.tables["notifiedArticles"].put_item.assert_called_once_with(
            Item={"user_id": "user-1", "links": ["https://c"]}
        )

    @pytest.mark.asyncio
    async def test_read_failure_raises_store_error(self):
        self.tables["readArticles"].get_item.side_effect = client_error("GetItem")

        with pytest.raises(StoreError) as exc_info:
            await self.store.load_state("user-1")

        assert exc_info.value.context == {
            "table_name": "readArticles",
            "user_id": "user-1",
        }

    @pytest.mark.asyncio
    async def test_write_failure_raises_store_error(self):
        self.tables["readArticles"].put_item.side_effect = client_error("PutItem")

        with pytest.raises(StoreError):
            await self.store.save_read_links("user-1", {"https://a"})

    @pytest.mark.asyncio
    async def test_save_profile(self):
        await self.store.save_profile(
            "user-1", UserProfile(username="ola", email="ola@example.com")
        )

        self.tables["users"].put_item.assert_called_once_with(
            Item={"user_id": "user-1", "username": "ola", "email": "ola@example.com"}
        )


class TestStateStoreProperties:
    """Property-based tests for StateStore."""

    @given(LINKS)
    def test_written_links_read_back_as_the_same_set(self, links):
        """Whatever set is written is exactly the set that is loaded."""
        tables = make_tables()
        with patch("boto3.resource") as mock_resource:
            mock_resource.return_value.Table.side_effect = lambda name: tables[name]
            store = StateStore(StoreConfig())

            store.put_links(tables["readArticles"], "user-1", links)
            stored = tables["readArticles"].put_item.call_args[1]["Item"]
            tables["readArticles"].get_item.return_value = {"Item": stored}

            assert store.load_links(tables["readArticles"], "user-1") == links
            assert len(stored["links"]) == len(set(stored["links"]))
