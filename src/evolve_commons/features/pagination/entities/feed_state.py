"""Feed pagination entities."""

from dataclasses import dataclass, field, replace
from typing import Generic, Optional, Tuple, TypeVar

T = TypeVar('T')


@dataclass(frozen=True)
class FeedPageRequest:
    """Offset window for one page of a feed."""

    offset: int
    limit: int

    def __post_init__(self):
        if self.offset < 0:
            raise ValueError("offset must be >= 0")
        if self.limit < 1:
            raise ValueError("limit must be >= 1")

    @property
    def end(self) -> int:
        """Inclusive index of the last requested row."""
        return self.offset + self.limit - 1


@dataclass(frozen=True)
class FeedState(Generic[T]):
    """What a feed view renders.

    ``has_more`` uses the full-page heuristic: a page as long as the page size
    implies more rows may exist.
    """

    items: Tuple[T, ...] = field(default_factory=tuple)
    has_more: bool = False
    is_loading: bool = False
    is_loading_more: bool = False
    from_cache: bool = False
    error: Optional[BaseException] = None

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def has_items(self) -> bool:
        return len(self.items) > 0

    def evolve(self, **changes) -> 'FeedState[T]':
        return replace(self, **changes)
