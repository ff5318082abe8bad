"""DynamoDB-backed storage of per-user read and notified article links."""

import asyncio
from collections.abc import Iterable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import StoreConfig
from .exceptions import NotFoundError, StoreError
from .logging_config import create_execution_logger
from .models import UserProfile, UserState


class StateStore:
    """Reads and writes the read/notified link sets of a user.

    Each table holds one item per user, keyed by ``user_id``, with the links in
    a ``links`` list attribute. Writes always replace the whole item.
    """

    def __init__(self, config: StoreConfig, execution_id: str | None = None):
        """Initialize the store with DynamoDB configuration.

        Args:
            config: Table names and AWS region
            execution_id: Execution ID for logging context
        """
        self.config = config
        self.logger = create_execution_logger("state_store", execution_id)
        self.dynamodb = boto3.resource("dynamodb", region_name=config.region)
        self.read_table = self.dynamodb.Table(config.read_articles_table)
        self.notified_table = self.dynamodb.Table(config.notified_articles_table)
        self.users_table = self.dynamodb.Table(config.users_table)

        self.logger.info(
            "StateStore initialized",
            read_articles_table=config.read_articles_table,
            notified_articles_table=config.notified_articles_table,
            aws_region=config.region,
        )

    async def load_state(self, user_id: str) -> UserState:
        """Load both link sets of a user.

        A user without stored documents gets empty sets.

        Raises:
            StoreError: If DynamoDB cannot be read
        """
        read_links = await asyncio.to_thread(self.load_links, self.read_table, user_id)
        notified_links = await asyncio.to_thread(
            self.load_links, self.notified_table, user_id
        )
        return UserState(read_links=read_links, notified_links=notified_links)

    async def save_read_links(self, user_id: str, links: Iterable[str]) -> None:
        await asyncio.to_thread(self.put_links, self.read_table, user_id, links)

    async def save_notified_links(self, user_id: str, links: Iterable[str]) -> None:
        await asyncio.to_thread(self.put_links, self.notified_table, user_id, links)

    async def save_profile(self, user_id: str, profile: UserProfile) -> None:
        await asyncio.to_thread(self.put_profile, user_id, profile)

    def load_links(self, table, user_id: str) -> frozenset[str]:
        """Read the ``links`` attribute of a user's item, empty when missing."""
        try:
            return frozenset(self.get_links(table, user_id))
        except NotFoundError:
            self.logger.info(
                "No stored links, starting empty",
                table_name=table.name,
                user_id=user_id,
            )
            return frozenset()

    def get_links(self, table, user_id: str) -> list[str]:
        """Read the ``links`` attribute of a user's item.

        Raises:
            NotFoundError: If the user has no item in the table
            StoreError: If the read fails
        """
        try:
            response = table.get_item(Key={"user_id": user_id})
        except (ClientError, BotoCoreError) as e:
            self.logger.error(
                f"Error reading links for {user_id}: {e}",
                table_name=table.name,
                user_id=user_id,
                error=str(e),
            )
            raise StoreError(
                f"Failed to read {table.name} for {user_id}",
                table_name=table.name,
                user_id=user_id,
            ) from e

        if "Item" not in response:
            raise NotFoundError(
                f"No item in {table.name} for {user_id}",
                table_name=table.name,
                user_id=user_id,
            )

        links = response["Item"].get("links") or []
        self.logger.debug(
            "Loaded links", table_name=table.name, user_id=user_id, count=len(links)
        )
        return [str(link) for link in links]

    def put_links(self, table, user_id: str, links: Iterable[str]) -> None:
        """Replace a user's item with the given links.

        Raises:
            StoreError: If the write fails
        """
        items = sorted(set(links))
        try:
            table.put_item(Item={"user_id": user_id, "links": items})
        except (ClientError, BotoCoreError) as e:
            self.logger.error(
                f"Error storing links for {user_id}: {e}",
                table_name=table.name,
                user_id=user_id,
                error=str(e),
            )
            raise StoreError(
                f"Failed to write {table.name} for {user_id}",
                table_name=table.name,
                user_id=user_id,
            ) from e

        self.logger.info(
            "Stored links", table_name=table.name, user_id=user_id, count=len(items)
        )

    def put_profile(self, user_id: str, profile: UserProfile) -> None:
        """Write the user's profile record.

        Raises:
            StoreError: If the write fails
        """
        try:
            self.users_table.put_item(
                Item={
                    "user_id": user_id,
                    "username": profile.username,
                    "email": profile.email,
                }
            )
        except (ClientError, BotoCoreError) as e:
            self.logger.error(
                f"Error creating user profile for {user_id}: {e}",
                table_name=self.users_table.name,
                user_id=user_id,
                error=str(e),
            )
            raise StoreError(
                f"Failed to write profile for {user_id}",
                table_name=self.users_table.name,
                user_id=user_id,
            ) from e

        self.logger.info("User profile created", user_id=user_id)
