"""Configuration management for the RSS reader."""

import os
from dataclasses import dataclass


@dataclass
class StoreConfig:
    """Configuration for the DynamoDB-backed state store."""

    read_articles_table: str = "readArticles"
    notified_articles_table: str = "notifiedArticles"
    users_table: str = "users"
    region: str = "us-east-1"


@dataclass
class ScheduleConfig:
    """Configuration for the background refresh job."""

    initial_delay_minutes: float = 15.0
    interval_minutes: float = 15.0

    @property
    def initial_delay_seconds(self) -> float:
        return self.initial_delay_minutes * 60

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60


class Config:
    """Main configuration manager."""

    DEFAULT_FEED_URL = "https://wiadomosci.gazeta.pl/pub/rss/wiadomosci_kraj.htm"
    DEFAULT_HTTP_TIMEOUT = 30.0

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.feed_url = os.getenv("FEED_URL", self.DEFAULT_FEED_URL)
        self.read_articles_table = os.getenv("READ_ARTICLES_TABLE", "readArticles")
        self.notified_articles_table = os.getenv(
            "NOTIFIED_ARTICLES_TABLE", "notifiedArticles"
        )
        self.users_table = os.getenv("USERS_TABLE", "users")
        self.aws_region = os.getenv(
            "CURRENT_AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")
        )
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.http_timeout = self._get_float("HTTP_TIMEOUT", self.DEFAULT_HTTP_TIMEOUT)
        self.initial_delay_minutes = self._get_float(
            "REFRESH_INITIAL_DELAY_MINUTES", 15.0
        )
        self.interval_minutes = self._get_float("REFRESH_INTERVAL_MINUTES", 15.0)

    @staticmethod
    def _get_float(name: str, default: float) -> float:
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {name}: {raw!r}") from e
        if value < 0:
            raise ValueError(f"{name} must not be negative, got {value}")
        return value

    def get_feed_url(self) -> str:
        """Get the feed URL, rejecting empty values."""
        if not self.feed_url or not self.feed_url.strip():
            raise ValueError("FEED_URL cannot be empty")
        return self.feed_url.strip()

    def get_store_config(self) -> StoreConfig:
        return StoreConfig(
            read_articles_table=self.read_articles_table,
            notified_articles_table=self.notified_articles_table,
            users_table=self.users_table,
            region=self.aws_region,
        )

    def get_schedule_config(self) -> ScheduleConfig:
        return ScheduleConfig(
            initial_delay_minutes=self.initial_delay_minutes,
            interval_minutes=self.interval_minutes,
        )
