"""
Pagination over an already filtered and sorted sequence.

Pagination is independent of filtering: it only slices. Page numbers are
1-based; ``start_index`` is inclusive and ``end_index`` exclusive. Out-of-range
page requests clamp instead of raising. Page sizes outside the closed set of
options are rejected.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

from cortex.config.constants import DEFAULT_PAGE_SIZE, PAGE_SIZE_OPTIONS
from cortex.exceptions import PageSizeError
from cortex.models.filters import FilterState
from cortex.services.preferences import Preferences

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    current_page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total_pages: int = 1
    total_items: int = 0
    start_index: int = 0
    end_index: int = 0

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.current_page > 1


def validate_page_size(page_size: int) -> int:
    """Return ``page_size`` if it is one of the allowed options.

    Raises:
        PageSizeError: For any other value.
    """
    if isinstance(page_size, bool) or page_size not in PAGE_SIZE_OPTIONS:
        raise PageSizeError(page_size=page_size, options=list(PAGE_SIZE_OPTIONS))
    return page_size


def total_pages_for(total_items: int, page_size: int) -> int:
    """ceil(count / size), never less than 1 so an empty result still has a page."""
    return max(1, math.ceil(total_items / page_size))


def clamp_page(page: int, total_pages: int) -> int:
    return max(1, min(page, total_pages))


def paginate(ordered: Sequence[T], page: int, page_size: int) -> Page[T]:
    """Slice ``ordered`` into the requested page.

    Raises:
        PageSizeError: If ``page_size`` is not an allowed option.
    """
    validate_page_size(page_size)
    total_items = len(ordered)
    total_pages = total_pages_for(total_items, page_size)
    current = clamp_page(page, total_pages)
    start = (current - 1) * page_size
    end = min(start + page_size, total_items)
    return Page(
        items=list(ordered[start:end]),
        current_page=current,
        page_size=page_size,
        total_pages=total_pages,
        total_items=total_items,
        start_index=start,
        end_index=end,
    )


class Paginator:
    """Stateful page cursor for one list view.

    Any change to the upstream query (filters or search text) resets the
    cursor to page 1, because filtering invalidates page identity.
    """

    def __init__(
        self,
        page_size: Optional[int] = None,
        preferences: Optional[Preferences] = None,
    ) -> None:
        self.preferences = preferences
        if page_size is None:
            page_size = preferences.get_page_size() if preferences else DEFAULT_PAGE_SIZE
        self.page_size = validate_page_size(page_size)
        self.current_page = 1
        self._query: Optional[Tuple[FilterState, str]] = None

    def page(self, ordered: Sequence[T]) -> Page[T]:
        """Current page of ``ordered``; the cursor is clamped to the valid range."""
        result = paginate(ordered, self.current_page, self.page_size)
        self.current_page = result.current_page
        return result

    def go_to_page(self, page: int, total_items: int) -> int:
        self.current_page = clamp_page(page, total_pages_for(total_items, self.page_size))
        return self.current_page

    def next_page(self, total_items: int) -> int:
        if self.current_page < total_pages_for(total_items, self.page_size):
            self.current_page += 1
        return self.current_page

    def previous_page(self) -> int:
        if self.current_page > 1:
            self.current_page -= 1
        return self.current_page

    def reset(self) -> None:
        self.current_page = 1

    def change_page_size(self, page_size: int, total_items: int) -> int:
        """Switch page size, keeping the first item of the old page visible.

        Raises:
            PageSizeError: If ``page_size`` is not an allowed option; the
                cursor and size are left unchanged.
        """
        validate_page_size(page_size)
        old_pages = total_pages_for(total_items, self.page_size)
        first_index = (clamp_page(self.current_page, old_pages) - 1) * self.page_size
        self.page_size = page_size
        new_page = first_index // page_size + 1
        self.current_page = clamp_page(new_page, total_pages_for(total_items, page_size))
        if self.preferences is not None:
            self.preferences.set_page_size(page_size)
        logger.debug(f"Page size changed to {page_size}; now on page {self.current_page}")
        return self.current_page

    def sync_query(self, filters: FilterState, search_text: str = "") -> bool:
        """Record the upstream query; returns True if it changed and the page was reset."""
        query = (filters, search_text.strip())
        if self._query is not None and query == self._query:
            return False
        changed = self._query is not None
        self._query = query
        if changed:
            self.reset()
        return changed
