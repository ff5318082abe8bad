"""Notification dispatch for newly discovered articles."""

from abc import ABC, abstractmethod

from .logging_config import create_execution_logger
from .models import FeedItem


class Notifier(ABC):
    """Delivers a notification about one new article."""

    @abstractmethod
    def notify(self, item: FeedItem) -> bool:
        """Send the notification.

        Returns:
            True if the notification was delivered, False otherwise
        """


class LoggingNotifier(Notifier):
    """Notifier that only records the notification in the log."""

    def __init__(self, execution_id: str | None = None):
        self.logger = create_execution_logger("notifier", execution_id)

    def notify(self, item: FeedItem) -> bool:
        self.logger.log_item_processing(item.title, "notified")
        return True
