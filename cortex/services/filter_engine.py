"""
Filter/Sort engine for library items.

Structural axes (type, space, tags, date range) are applied first, then the
free-text search, then a deterministic sort. Every sort breaks ties by item
id so page boundaries are stable across re-runs.

Tag filtering uses AND semantics: an item must carry every selected tag.
Tag filters are refinements stacked on top of each other, not alternatives.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from cortex.config.constants import OVERVIEW_SPACE_ID
from cortex.exceptions import FilterValidationError
from cortex.models.filters import FilterState, SortKey
from cortex.models.items import Item, id_sort_key
from cortex.services.preferences import Preferences

logger = logging.getLogger(__name__)


def item_space(item: Item) -> str:
    """Space an item is listed under; unassigned items live in the overview."""
    return item.space_id or OVERVIEW_SPACE_ID


def matches_filters(item: Item, filters: FilterState) -> bool:
    """Check an item against the structural axes. Empty axes match everything."""
    if filters.types and item.type not in filters.types:
        return False
    if filters.spaces and item_space(item) not in filters.spaces:
        return False
    if filters.tags and not filters.tags <= item.tags:
        return False
    if filters.date_range.is_set and not filters.date_range.contains(item.created_at):
        return False
    return True


def matches_search(item: Item, search_text: str) -> bool:
    """Case-insensitive substring match against the title or any tag."""
    needle = search_text.strip().casefold()
    if not needle:
        return True
    if needle in item.title.casefold():
        return True
    return any(needle in tag.casefold() for tag in item.tags)


def sort_items(items: Iterable[Item], sort_by: SortKey) -> List[Item]:
    """Sort items, breaking ties by ascending id.

    Python's sort is stable (also with reverse=True), so sorting by id first
    and then by the primary key keeps ties in id order.
    """
    by_id = sorted(items, key=lambda item: id_sort_key(item.id))

    if sort_by is SortKey.NEWEST:
        return sorted(by_id, key=lambda item: item.created_at, reverse=True)
    if sort_by is SortKey.OLDEST:
        return sorted(by_id, key=lambda item: item.created_at)
    if sort_by is SortKey.TITLE_AZ:
        return sorted(by_id, key=lambda item: item.title.casefold())
    if sort_by is SortKey.TITLE_ZA:
        return sorted(by_id, key=lambda item: item.title.casefold(), reverse=True)
    return by_id


def filter_items(items: Sequence[Item], filters: FilterState, search_text: str = "") -> List[Item]:
    """Pure filter + search + sort. Never mutates ``items``."""
    matched = [item for item in items if matches_filters(item, filters)]
    if search_text and search_text.strip():
        matched = [item for item in matched if matches_search(item, search_text)]
    return sort_items(matched, filters.sort_by)


def available_tags(items: Iterable[Item]) -> List[str]:
    """Union of all tags across ``items``, sorted for autocomplete."""
    vocabulary = set()
    for item in items:
        vocabulary.update(item.tags)
    return sorted(vocabulary, key=lambda tag: (tag.casefold(), tag))


class TagVocabulary:
    """Tag autocomplete source for one scope.

    Recomputes only when the underlying collection changes (different ids or
    different tags on an id).
    """

    def __init__(self) -> None:
        self._signature: Optional[Tuple[Tuple[str, frozenset], ...]] = None
        self._tags: List[str] = []

    def tags_for(self, items: Sequence[Item]) -> List[str]:
        signature = tuple((item.id, item.tags) for item in items)
        if signature != self._signature:
            self._signature = signature
            self._tags = available_tags(items)
        return list(self._tags)


class FilterEngine:
    """Applies filters and remembers the last-applied filter per scope."""

    def __init__(self, preferences: Optional[Preferences] = None) -> None:
        self.preferences = preferences or Preferences()
        self._vocabularies: Dict[str, TagVocabulary] = {}

    def apply(
        self,
        items: Sequence[Item],
        filters: FilterState,
        search_text: str = "",
        scope: Optional[str] = None,
    ) -> List[Item]:
        """Filter, search and sort ``items``.

        When ``scope`` is given, ``filters`` is persisted as that scope's
        last-applied filter so returning to the scope restores it.
        """
        result = filter_items(items, filters, search_text)
        if scope:
            self.preferences.set_scope_filters(scope, filters)
        logger.debug(
            f"Applied filters to {len(items)} items: {len(result)} matched"
            + (f" (scope={scope})" if scope else "")
        )
        return result

    def clear(self, scope: str) -> FilterState:
        """Forget the persisted filter for ``scope`` and return the default."""
        self.preferences.clear_scope_filters(scope)
        return FilterState.default()

    def restore(
        self, scope: Optional[str], query_params: Optional[Mapping[str, str]] = None
    ) -> FilterState:
        """Initial filter for a scope.

        The persisted filter wins; otherwise query parameters are decoded;
        otherwise the default. Invalid parameters fall back to the default.
        """
        if scope:
            persisted = self.preferences.get_scope_filters(scope)
            if persisted is not None:
                return persisted
        if query_params:
            try:
                return FilterState.from_query_params(query_params)
            except FilterValidationError as e:
                logger.warning(f"Ignoring invalid filter parameters: {e}")
        return FilterState.default()

    def available_tags(self, items: Sequence[Item], scope: Optional[str] = None) -> List[str]:
        vocabulary = self._vocabularies.setdefault(scope or "", TagVocabulary())
        return vocabulary.tags_for(items)
