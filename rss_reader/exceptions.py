"""Exception hierarchy for the RSS reader."""

from typing import Any


class RssReaderError(Exception):
    """Base exception for all RSS reader errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        """Initialize the error.

        Args:
            message: Technical error message for logging
            context: Additional context information
        """
        super().__init__(message)
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_message": str(self),
            "context": self.context,
        }


class NetworkError(RssReaderError):
    """The feed could not be downloaded."""

    def __init__(self, message: str, feed_url: str | None = None, **kwargs):
        context = kwargs.pop("context", {})
        if feed_url:
            context["feed_url"] = feed_url
        super().__init__(message, context=context)


class ParseError(RssReaderError):
    """The response is not well-formed feed markup."""

    def __init__(self, message: str, feed_url: str | None = None, **kwargs):
        context = kwargs.pop("context", {})
        if feed_url:
            context["feed_url"] = feed_url
        super().__init__(message, context=context)


class StoreError(RssReaderError):
    """A remote read or write against the document store failed."""

    def __init__(
        self,
        message: str,
        table_name: str | None = None,
        user_id: str | None = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if table_name:
            context["table_name"] = table_name
        if user_id:
            context["user_id"] = user_id
        super().__init__(message, context=context)


class NotFoundError(StoreError):
    """The requested document does not exist."""


class AuthError(RssReaderError):
    """No authenticated user is active."""
