"""Client-side pagination over an already fetched listing."""
from typing import List, Sequence, TypeVar

T = TypeVar("T")


class PaginationWindow:
    """Number of listing entries revealed so far."""

    def __init__(self, page_size: int = 20, increment: int = 20):
        if page_size < 0 or increment < 0:
            raise ValueError("page_size and increment must be >= 0")
        self._page_size = page_size
        self._increment = increment
        self._visible = page_size

    @property
    def visible_count(self) -> int:
        return self._visible

    @property
    def page_size(self) -> int:
        return self._page_size

    def reset(self) -> None:
        self._visible = self._page_size

    def grow(self) -> int:
        self._visible += self._increment
        return self._visible

    def slice(self, listing: Sequence[T]) -> List[T]:
        return list(listing[: self._visible])

    def has_more(self, total: int) -> bool:
        return total > self._visible
