"""State transitions for feed refreshes and article selection.

These functions never mutate their inputs: every call returns a new
``UserState`` and persisting it is up to the caller.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from .models import FeedItem, UserState


@dataclass(frozen=True)
class FeedSnapshot:
    """Result of reconciling a freshly fetched feed with the user's state."""

    items: tuple[FeedItem, ...]
    state: UserState
    new_links: tuple[str, ...] = field(default_factory=tuple)

    @property
    def links(self) -> frozenset[str]:
        return frozenset(item.link for item in self.items)

    @property
    def new_items(self) -> list[FeedItem]:
        """First item for every link that had not been notified yet."""
        pending = set(self.new_links)
        result = []
        for item in self.items:
            if item.link in pending:
                result.append(item)
                pending.discard(item.link)
        return result


def reconcile_feed(state: UserState, items: Sequence[FeedItem]) -> FeedSnapshot:
    """Merge a fetched feed into the notified set.

    The snapshot keeps the feed's own order and replaces any previous item
    list. Read links are left untouched.
    """
    new_links: list[str] = []
    seen = set(state.notified_links)
    for item in items:
        if item.link not in seen:
            new_links.append(item.link)
            seen.add(item.link)

    return FeedSnapshot(
        items=tuple(items),
        state=UserState(
            read_links=state.read_links,
            notified_links=state.notified_links | {item.link for item in items},
        ),
        new_links=tuple(new_links),
    )


def mark_read(state: UserState, link: str) -> UserState:
    """Add a link to the read set. Adding a known link changes nothing."""
    return UserState(
        read_links=state.read_links | {link},
        notified_links=state.notified_links,
    )


def is_read(state: UserState, item: FeedItem) -> bool:
    return item.link in state.read_links
