"""Data models for the RSS reader."""

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class FeedItem:
    """Represents a single normalized feed article."""

    title: str
    description: str  # plain text, HTML stripped
    image_url: str  # empty when the description has no image
    link: str  # unique key across all link sets


@dataclass(frozen=True)
class UserState:
    """Per-user read and notified link sets."""

    read_links: frozenset[str] = field(default_factory=frozenset)
    notified_links: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_links(
        cls, read_links: Iterable[str] = (), notified_links: Iterable[str] = ()
    ) -> "UserState":
        return cls(frozenset(read_links), frozenset(notified_links))


@dataclass(frozen=True)
class UserSession:
    """The authenticated user as reported by the identity provider."""

    user_id: str
    email: str | None = None


@dataclass(frozen=True)
class UserProfile:
    """Profile record written when a user registers."""

    username: str
    email: str
