"""
Presenter for the library item table.

This presenter composes the engines for one scope:
- Loading items through the item store
- Restoring and persisting the scope's filter
- Search, pagination and page size changes
- Optimistic move/delete/update/create with undo

After every state change it re-runs filter -> paginate and pushes an
ItemListVM to the view. Mutations push twice: once with the optimistic local
change, before any remote call, and again once the batch has settled. A
closed undo window pushes a fresh view model as well. Remote failures are reported through the
notification sink and never propagate out of the presenter.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from cortex.config.constants import LIBRARY_SCOPE, MAX_TAGS_DISPLAY, TITLE_TRUNCATE_LENGTH
from cortex.exceptions import RemoteMutationError
from cortex.models.filters import FilterState
from cortex.models.items import Item
from cortex.services.filter_engine import FilterEngine, filter_items, item_space
from cortex.services.mutations import ItemCollection, OptimisticMutationCoordinator
from cortex.services.pagination import Page, Paginator
from cortex.services.preferences import Preferences
from cortex.services.protocols import ItemStore, NotificationSink, TagStore
from cortex.services.saved_filters import SavedFilterRegistry
from cortex.utils.datetime_utils import format_datetime

from ..viewmodels import ItemListVM, ItemRow

logger = logging.getLogger(__name__)


def format_tags(tags: Iterable[str], limit: int = MAX_TAGS_DISPLAY) -> str:
    ordered = sorted(tags, key=str.casefold)
    shown = ", ".join(ordered[:limit])
    if len(ordered) > limit:
        shown += f" +{len(ordered) - limit}"
    return shown


def truncate_title(title: str, width: int = TITLE_TRUNCATE_LENGTH) -> str:
    if len(title) <= width:
        return title
    return title[: width - 3] + "..."


class LibraryPresenter:
    """Presenter for library browsing business logic."""

    def __init__(
        self,
        item_store: ItemStore,
        on_list_update: Callable[[ItemListVM], Awaitable[None]],
        preferences: Optional[Preferences] = None,
        notifier: Optional[NotificationSink] = None,
        tag_store: Optional[TagStore] = None,
        space_names: Optional[Mapping[str, str]] = None,
        undo_window: Optional[float] = None,
    ):
        """Initialize the presenter.

        Args:
            item_store: Remote item backend
            on_list_update: Callback when the visible page changes
            preferences: Preference facade shared by the engines
            notifier: Sink for success/error notifications
            tag_store: Optional tag backend used when tags are edited
            space_names: Display names keyed by space id
            undo_window: Seconds a delete stays undoable
        """
        self.item_store = item_store
        self.on_list_update = on_list_update
        self.preferences = preferences or Preferences()
        self.space_names = dict(space_names or {})

        self.filter_engine = FilterEngine(self.preferences)
        self.paginator = Paginator(preferences=self.preferences)
        self.saved_filters = SavedFilterRegistry(self.preferences)
        self.collection = ItemCollection()
        self.coordinator = OptimisticMutationCoordinator(
            self.collection,
            item_store,
            notifier=notifier,
            tag_store=tag_store,
            undo_window=undo_window,
            on_applied=self.refresh,
            on_undo_expired=self._on_undo_expired,
        )
        self._expiry_refresh: Optional[asyncio.Task] = None

        # Internal state
        self._scope: str = LIBRARY_SCOPE
        self._filters: FilterState = FilterState.default()
        self._search_query: str = ""
        self._page: Page[Item] = Page()
        self._filtered: List[Item] = []

    @property
    def scope(self) -> str:
        return self._scope

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def search_query(self) -> str:
        return self._search_query

    @property
    def page(self) -> Page[Item]:
        return self._page

    @property
    def filtered_items(self) -> List[Item]:
        return list(self._filtered)

    @property
    def can_undo(self) -> bool:
        return self.coordinator.can_undo

    def _on_undo_expired(self) -> None:
        # Push a view model with can_undo cleared
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._expiry_refresh = loop.create_task(self.refresh())

    def _item_to_row(self, item: Item) -> ItemRow:
        space_id = item_space(item)
        return ItemRow(
            id=item.id,
            title=truncate_title(item.title),
            type=item.type.value,
            space=self.space_names.get(space_id, space_id),
            tags=sorted(item.tags),
            tags_display=format_tags(item.tags),
            created_at=format_datetime(item.created_at),
            description=item.description,
        )

    def _create_list_vm(self) -> ItemListVM:
        page = self._page
        total = len(self.collection)
        filtered = page.total_items
        status_text = f"{filtered}/{total} items"
        if self._filters.active_count:
            status_text += f" ({self._filters.active_count} filters)"
        if filtered:
            status_text += f" | showing {page.start_index + 1}-{page.end_index}"
        status_text += f" | page {page.current_page}/{page.total_pages}"

        return ItemListVM(
            rows=[self._item_to_row(item) for item in page.items],
            scope=self._scope,
            search_query=self._search_query,
            available_tags=self.filter_engine.available_tags(self.collection.items, self._scope),
            active_filter_count=self._filters.active_count,
            total_count=total,
            filtered_count=filtered,
            current_page=page.current_page,
            total_pages=page.total_pages,
            page_size=page.page_size,
            start_index=page.start_index,
            end_index=page.end_index,
            has_next=page.has_next,
            has_prev=page.has_prev,
            can_undo=self.coordinator.can_undo,
            status_text=status_text,
        )

    async def refresh(self, persist: bool = False) -> ItemListVM:
        """Re-run filter -> paginate and push the result to the view.

        Args:
            persist: Also store the current filter as the scope's last-applied one
        """
        items = self.collection.items
        if persist:
            self._filtered = self.filter_engine.apply(
                items, self._filters, self._search_query, scope=self._scope
            )
        else:
            self._filtered = filter_items(items, self._filters, self._search_query)
        # A changed query invalidates page identity
        self.paginator.sync_query(self._filters, self._search_query)
        self._page = self.paginator.page(self._filtered)

        vm = self._create_list_vm()
        await self.on_list_update(vm)
        return vm

    async def load(
        self,
        scope: Optional[str] = None,
        query_params: Optional[Mapping[str, str]] = None,
    ) -> bool:
        """Load a scope's items and restore its filter.

        Args:
            scope: A space id, or None for the whole library
            query_params: Fallback filter encoding when nothing is persisted

        Returns:
            True if the items were loaded
        """
        self._scope = scope or LIBRARY_SCOPE
        self._filters = self.filter_engine.restore(self._scope, query_params)
        self._search_query = ""
        self.paginator.reset()
        try:
            items = await self.item_store.list(None if self._scope == LIBRARY_SCOPE else self._scope)
        except Exception as e:
            logger.error(f"Error loading items for {self._scope}: {e}", exc_info=True)
            self.coordinator.notifier.notify(f"Could not load items: {e}", "error")
            self.collection.set_items([])
            await self.refresh()
            return False

        self.collection.set_items(items)
        logger.info(f"Loaded {len(items)} items for scope {self._scope}")
        self.paginator.sync_query(self._filters, self._search_query)
        await self.refresh()
        return True

    # ------------------------------------------------------------------
    # Query state
    # ------------------------------------------------------------------

    async def set_filters(self, filters: FilterState) -> ItemListVM:
        """Apply a new filter to the scope and remember it."""
        self._filters = filters
        return await self.refresh(persist=True)

    async def clear_filters(self) -> ItemListVM:
        self._filters = self.filter_engine.clear(self._scope)
        return await self.refresh()

    async def set_search(self, query: str) -> ItemListVM:
        self._search_query = query
        return await self.refresh()

    async def clear_search(self) -> ItemListVM:
        return await self.set_search("")

    async def apply_saved(self, filter_id: str) -> bool:
        """Apply a saved filter to the current scope.

        Returns:
            False if no saved filter has this id
        """
        filters = self.saved_filters.load(filter_id)
        if filters is None:
            return False
        await self.set_filters(filters)
        return True

    async def go_to_page(self, page: int) -> ItemListVM:
        self.paginator.go_to_page(page, len(self._filtered))
        return await self.refresh()

    async def next_page(self) -> ItemListVM:
        self.paginator.next_page(len(self._filtered))
        return await self.refresh()

    async def previous_page(self) -> ItemListVM:
        self.paginator.previous_page()
        return await self.refresh()

    async def set_page_size(self, page_size: int) -> ItemListVM:
        """Change the page size, keeping the first visible item on screen.

        Raises:
            PageSizeError: If the size is not one of the allowed options
        """
        self.paginator.change_page_size(page_size, len(self._filtered))
        return await self.refresh()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def delete(self, ids: Iterable[str]) -> bool:
        result = await self.coordinator.delete(ids)
        await self.refresh()
        return result.ok

    async def move(self, ids: Iterable[str], target_space_id: Optional[str]) -> bool:
        result = await self.coordinator.move(ids, target_space_id)
        await self.refresh()
        return result.ok

    async def update(self, item_id: str, patch: Dict[str, Any]) -> bool:
        result = await self.coordinator.update(item_id, patch)
        await self.refresh()
        return result.ok

    async def undo(self) -> bool:
        restored = await self.coordinator.undo()
        if restored:
            await self.refresh()
        return restored

    async def create(self, draft: Dict[str, Any]) -> Optional[Item]:
        """Create an item and show it at the top of the collection.

        Returns:
            The new item, or None if the store rejected it
        """
        try:
            item = await self.coordinator.create(draft)
        except RemoteMutationError as e:
            logger.error(f"Error creating item: {e}")
            return None
        await self.refresh()
        return item
