"""Background refresh that notifies the user about new articles."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from .config import Config
from .exceptions import NetworkError, ParseError, StoreError
from .logging_config import create_execution_logger
from .notify import LoggingNotifier, Notifier
from .reconcile import reconcile_feed
from .rss import FeedFetcher, ItemNormalizer
from .store import StateStore


class BackgroundRefresher:
    """Runs one refresh cycle for a user outside of an interactive session."""

    def __init__(
        self,
        feed_url: str,
        fetcher: FeedFetcher,
        normalizer: ItemNormalizer,
        store: StateStore,
        notifier: Notifier,
        execution_id: str | None = None,
    ):
        self.feed_url = feed_url
        self.fetcher = fetcher
        self.normalizer = normalizer
        self.store = store
        self.notifier = notifier
        self.logger = create_execution_logger("background_refresh", execution_id)

    async def run(self, user_id: str) -> dict[str, Any]:
        """Fetch the feed, notify about unseen links and record them.

        Args:
            user_id: The user whose state is refreshed

        Returns:
            Metrics for this cycle
        """
        self.logger.log_execution_start(user_id=user_id, feed_url=self.feed_url)
        metrics: dict[str, Any] = {
            "items_found": 0,
            "new_items": 0,
            "notifications_sent": 0,
            "errors": [],
        }

        try:
            state = await self.store.load_state(user_id)
            raw_items = await self.fetcher.fetch(self.feed_url)
            items = self.normalizer.normalize_all(raw_items)
        except (StoreError, NetworkError, ParseError) as e:
            error_msg = f"Refresh failed for {user_id}: {e}"
            self.logger.error(error_msg, user_id=user_id, error=str(e))
            metrics["errors"].append(error_msg)
            self.logger.log_execution_end(success=False, metrics=metrics)
            return metrics

        snapshot = reconcile_feed(state, items)
        new_items = snapshot.new_items
        metrics["items_found"] = len(items)
        metrics["new_items"] = len(new_items)

        for item in new_items:
            try:
                if self.notifier.notify(item):
                    metrics["notifications_sent"] += 1
                else:
                    error_msg = f"Failed to notify about: {item.title}"
                    self.logger.error(error_msg, item_title=item.title)
                    metrics["errors"].append(error_msg)
            except Exception as e:
                error_msg = f"Failed to notify about '{item.title}': {e}"
                self.logger.error(error_msg, item_title=item.title, error=str(e))
                metrics["errors"].append(error_msg)
                continue

        try:
            await self.store.save_notified_links(user_id, snapshot.state.notified_links)
        except StoreError as e:
            error_msg = f"Failed to save notified links for {user_id}: {e}"
            self.logger.error(error_msg, user_id=user_id, error=str(e))
            metrics["errors"].append(error_msg)

        self.logger.log_metrics(metrics)
        self.logger.log_execution_end(success=not metrics["errors"], metrics=metrics)
        return metrics


class RefreshJob:
    """Repeats a background refresh with a fixed interval.

    The first run waits ``initial_delay`` seconds. There is no guard against
    overlapping with an interactive refresh.
    """

    def __init__(
        self,
        refresher: BackgroundRefresher,
        user_id: str,
        initial_delay: float = 15 * 60,
        interval: float = 15 * 60,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        execution_id: str | None = None,
    ):
        self.refresher = refresher
        self.user_id = user_id
        self.initial_delay = initial_delay
        self.interval = interval
        self.sleep = sleep
        self.logger = create_execution_logger("refresh_job", execution_id)
        self.runs = 0
        self._stopped = False
        self._task: asyncio.Task | None = None

    def start(self) -> asyncio.Task:
        """Schedule the job on the running loop, replacing any earlier one."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._stopped = False
        self._task = asyncio.create_task(self.run())
        return self._task

    def stop(self) -> None:
        self._stopped = True

    async def run(self) -> None:
        self.logger.info(
            "Refresh job scheduled",
            user_id=self.user_id,
            initial_delay=self.initial_delay,
            interval=self.interval,
        )
        await self.sleep(self.initial_delay)
        while not self._stopped:
            try:
                await self.refresher.run(self.user_id)
            except Exception as e:
                self.logger.error(
                    f"Refresh cycle failed: {e}", user_id=self.user_id, error=str(e)
                )
            self.runs += 1
            if self._stopped:
                break
            await self.sleep(self.interval)
        self.logger.info("Refresh job stopped", user_id=self.user_id, runs=self.runs)


def create_background_refresher(
    config: Config,
    notifier: Notifier | None = None,
    execution_id: str | None = None,
) -> BackgroundRefresher:
    """Build a background refresher from the environment configuration."""
    return BackgroundRefresher(
        feed_url=config.get_feed_url(),
        fetcher=FeedFetcher(timeout=config.http_timeout, execution_id=execution_id),
        normalizer=ItemNormalizer(execution_id=execution_id),
        store=StateStore(config.get_store_config(), execution_id=execution_id),
        notifier=notifier or LoggingNotifier(execution_id=execution_id),
        execution_id=execution_id,
    )


def create_refresh_job(
    config: Config,
    user_id: str,
    notifier: Notifier | None = None,
    execution_id: str | None = None,
) -> RefreshJob:
    """Build a refresh job for a user from the environment configuration."""
    schedule = config.get_schedule_config()
    return RefreshJob(
        create_background_refresher(config, notifier, execution_id),
        user_id,
        initial_delay=schedule.initial_delay_seconds,
        interval=schedule.interval_seconds,
        execution_id=execution_id,
    )
