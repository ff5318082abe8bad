"""List adapter consumed by a UI that displays the feed."""

from collections.abc import Callable, Collection, Mapping, Sequence
from dataclasses import dataclass

from .models import FeedItem

PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class ArticleRow:
    """Everything a UI needs to draw one list row."""

    title: str
    description: str
    image: bytes | str  # prefetched bytes, image URL, or PLACEHOLDER
    is_read: bool
    link: str


class ArticleListAdapter:
    """Maps feed items and the read set to displayable rows."""

    def __init__(
        self,
        items: Sequence[FeedItem] = (),
        read_links: Collection[str] = frozenset(),
        on_select: Callable[[FeedItem], None] | None = None,
        images: Mapping[str, bytes] | None = None,
    ):
        self.items = list(items)
        self.read_links = frozenset(read_links)
        self.on_select = on_select
        self.images = dict(images or {})
        # Bumped on every data change so a UI can tell when to redraw
        self.version = 0

    @property
    def item_count(self) -> int:
        return len(self.items)

    def row(self, index: int) -> ArticleRow:
        item = self.items[index]
        if item.link in self.images:
            image = self.images[item.link]
        elif item.image_url:
            image = item.image_url
        else:
            image = PLACEHOLDER

        return ArticleRow(
            title=item.title,
            description=item.description,
            image=image,
            is_read=item.link in self.read_links,
            link=item.link,
        )

    def rows(self) -> list[ArticleRow]:
        return [self.row(index) for index in range(self.item_count)]

    def click(self, index: int) -> None:
        """Forward a click on a row to the selection callback."""
        if self.on_select is not None:
            self.on_select(self.items[index])

    def update(
        self,
        items: Sequence[FeedItem] | None = None,
        read_links: Collection[str] | None = None,
        images: Mapping[str, bytes] | None = None,
    ) -> None:
        """Replace any of the displayed data and signal a redraw."""
        if items is not None:
            self.items = list(items)
        if read_links is not None:
            self.read_links = frozenset(read_links)
        if images is not None:
            self.images = dict(images)
        self.version += 1
