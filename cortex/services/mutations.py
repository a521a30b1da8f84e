"""
Optimistic mutations over the visible item collection.

Each batch follows the same transaction shape: snapshot the affected items,
apply the change locally (visible immediately), call the remote store for
every id concurrently, then commit or roll back once all calls have settled.
If any call fails the whole batch is rolled back and a single aggregated
error is surfaced. The remote calls are not transactional, so atomicity holds
for what the user sees, not for the backend.

Deletes stay undoable for a fixed window. Only the most recent delete is
undoable: starting a new delete discards the previous buffer, and a delete
that finishes after a newer one started never opens one. Undo restores items
to the front of the collection.

Batches may overlap. Rollback never brings back an item that another batch
has since deleted.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from cortex.config.settings import get_undo_window
from cortex.exceptions import RemoteMutationError, ValidationError
from cortex.models.items import Item, normalize_tags
from cortex.services.protocols import ItemStore, LoggingNotificationSink, NotificationSink, TagStore
from cortex.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "content", "tags", "space_id")


class ItemCollection:
    """The ordered, visible list of items for one scope."""

    def __init__(self, items: Iterable[Item] = ()) -> None:
        self._items: List[Item] = list(items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(list(self._items))

    def __contains__(self, item_id: object) -> bool:
        return any(item.id == item_id for item in self._items)

    @property
    def items(self) -> List[Item]:
        return list(self._items)

    def ids(self) -> List[str]:
        return [item.id for item in self._items]

    def set_items(self, items: Iterable[Item]) -> None:
        self._items = list(items)

    def index_of(self, item_id: str) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None

    def get(self, item_id: str) -> Optional[Item]:
        index = self.index_of(item_id)
        return None if index is None else self._items[index]

    def replace(self, item: Item) -> bool:
        index = self.index_of(item.id)
        if index is None:
            return False
        self._items[index] = item
        return True

    def insert(self, index: int, item: Item) -> None:
        self._items.insert(max(0, min(index, len(self._items))), item)

    def remove(self, ids: Iterable[str]) -> List[Item]:
        doomed = set(ids)
        removed = [item for item in self._items if item.id in doomed]
        self._items = [item for item in self._items if item.id not in doomed]
        return removed

    def prepend(self, items: Iterable[Item]) -> List[Item]:
        """Put ``items`` at the front, skipping ids already present."""
        present = set(self.ids())
        fresh = []
        for item in items:
            if item.id not in present:
                present.add(item.id)
                fresh.append(item)
        self._items = fresh + self._items
        return fresh


class MutationTransaction:
    """snapshot -> apply -> commit | rollback for one batch of items.

    Usage:
        tx = MutationTransaction(collection, ids).snapshot().apply(change)
        ...await remote calls...
        tx.commit()  # or tx.rollback()
    """

    def __init__(self, collection: ItemCollection, ids: Iterable[str]) -> None:
        self.collection = collection
        self.ids = list(dict.fromkeys(ids))
        self._snapshot: Dict[str, Tuple[int, Item]] = {}
        self.state = "pending"

    @property
    def snapshot_items(self) -> List[Item]:
        return [item for _, item in sorted(self._snapshot.values(), key=lambda pair: pair[0])]

    def snapshot(self) -> MutationTransaction:
        for item_id in self.ids:
            index = self.collection.index_of(item_id)
            if index is not None:
                self._snapshot[item_id] = (index, self.collection.get(item_id))
        return self

    def apply(self, change: Callable[[ItemCollection], Any]) -> MutationTransaction:
        if self.state != "pending":
            raise RuntimeError(f"Cannot apply a {self.state} transaction")
        change(self.collection)
        self.state = "applied"
        return self

    def commit(self) -> List[Item]:
        self.state = "committed"
        return self.snapshot_items

    def rollback(self, skip: Iterable[str] = ()) -> None:
        """Put every snapshotted item back, at its old index when it was removed.

        Ids in ``skip`` were deleted by another batch and stay gone.
        """
        skipped = set(skip)
        for item_id, (index, item) in sorted(self._snapshot.items(), key=lambda kv: kv[1][0]):
            if item_id in skipped:
                continue
            if not self.collection.replace(item):
                self.collection.insert(index, item)
        self.state = "rolled_back"


@dataclass(frozen=True)
class DeletedEntry:
    item: Item
    deleted_at: datetime


@dataclass
class DeletedBuffer:
    token: int
    entries: List[DeletedEntry]
    expires_at: float  # event loop time

    @property
    def ids(self) -> List[str]:
        return [entry.item.id for entry in self.entries]


@dataclass
class MutationResult:
    operation: str
    ids: List[str] = field(default_factory=list)
    error: Optional[RemoteMutationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


async def _settle(call: Callable[..., Awaitable[Any]], *args: Any) -> Any:
    """Run a store call, treating a returned exception as a failure.

    The call happens inside the coroutine, so a store method that raises
    before returning an awaitable fails like one that raises when awaited.
    """
    result = await call(*args)
    if isinstance(result, BaseException):
        raise result
    return result


def _plural(count: int) -> str:
    return f"{count} item" if count == 1 else f"{count} items"


class OptimisticMutationCoordinator:
    """Runs move/delete/update batches against the visible collection."""

    _tokens = itertools.count(1)

    def __init__(
        self,
        collection: ItemCollection,
        item_store: ItemStore,
        notifier: Optional[NotificationSink] = None,
        tag_store: Optional[TagStore] = None,
        undo_window: Optional[float] = None,
        on_applied: Optional[Callable[[], Awaitable[None]]] = None,
        on_undo_expired: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Args:
            on_applied: Awaited after a local change, before any remote call
            on_undo_expired: Called when an undo window closes on its own
        """
        self.collection = collection
        self.item_store = item_store
        self.tag_store = tag_store
        self.notifier = notifier or LoggingNotificationSink()
        self.undo_window = undo_window if undo_window is not None else get_undo_window()
        self.on_applied = on_applied
        self.on_undo_expired = on_undo_expired
        self._buffer: Optional[DeletedBuffer] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._latest_delete = 0
        # Ids removed by a delete that has not failed
        self._removed: Set[str] = set()

    # ------------------------------------------------------------------
    # Undo buffer
    # ------------------------------------------------------------------

    @property
    def can_undo(self) -> bool:
        return self._live_buffer() is not None

    @property
    def deleted_items(self) -> List[Item]:
        buffer = self._live_buffer()
        return [entry.item for entry in buffer.entries] if buffer else []

    def _live_buffer(self) -> Optional[DeletedBuffer]:
        buffer = self._buffer
        if buffer is None:
            return None
        try:
            now = asyncio.get_running_loop().time()
        except RuntimeError:
            return buffer
        if now > buffer.expires_at:
            self._expire(buffer.token)
            return None
        return buffer

    def _discard_buffer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._buffer = None

    def _open_buffer(self, items: List[Item], token: int) -> None:
        self._discard_buffer()
        loop = asyncio.get_running_loop()
        deleted_at = utc_now()
        self._buffer = DeletedBuffer(
            token=token,
            entries=[DeletedEntry(item, deleted_at) for item in items],
            expires_at=loop.time() + self.undo_window,
        )
        self._timer = loop.call_later(self.undo_window, self._expire, token)

    def _expire(self, token: int) -> None:
        # A timer for a replaced buffer is a no-op
        if self._buffer is None or self._buffer.token != token:
            return
        logger.info(f"Undo window closed for {_plural(len(self._buffer.entries))}")
        self._buffer = None
        self._timer = None
        if self.on_undo_expired is not None:
            self.on_undo_expired()

    # ------------------------------------------------------------------
    # Remote fan-out
    # ------------------------------------------------------------------

    async def _run_remote(
        self, ids: List[str], call: Callable[[str], Awaitable[Any]]
    ) -> Dict[str, BaseException]:
        """Issue all calls concurrently and collect per-id failures once all settle."""
        results = await asyncio.gather(
            *(_settle(call, item_id) for item_id in ids), return_exceptions=True
        )
        return {
            item_id: result
            for item_id, result in zip(ids, results)
            if isinstance(result, BaseException)
        }

    async def _applied(self) -> None:
        if self.on_applied is not None:
            await self.on_applied()

    def _fail(
        self,
        tx: MutationTransaction,
        operation: str,
        failures: Dict[str, BaseException],
        skip: Iterable[str] = (),
    ) -> MutationResult:
        tx.rollback(skip=skip)
        error = RemoteMutationError(operation, failures)
        logger.error(f"{error}; rolled back {_plural(len(tx.ids))}")
        self.notifier.notify(f"{error.message}", "error")
        return MutationResult(operation, tx.ids, error)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def mutate(self, ids: Iterable[str], operation: str, **kwargs: Any) -> MutationResult:
        """Dispatch a batch by operation name ("move" or "delete")."""
        if operation == "move":
            return await self.move(ids, kwargs.get("target_space_id"))
        if operation == "delete":
            return await self.delete(ids)
        raise ValidationError(f"Unknown mutation {operation!r}")

    async def move(self, ids: Iterable[str], target_space_id: Optional[str]) -> MutationResult:
        """Move items to another space (None unassigns them)."""
        present = [i for i in dict.fromkeys(ids) if i in self.collection]
        if not present:
            return MutationResult("move")

        def change(collection: ItemCollection) -> None:
            for item_id in present:
                collection.replace(collection.get(item_id).with_changes(space_id=target_space_id))

        tx = MutationTransaction(self.collection, present).snapshot().apply(change)
        await self._applied()
        failures = await self._run_remote(
            present, lambda item_id: self.item_store.move(item_id, target_space_id)
        )
        if failures:
            return self._fail(tx, "move", failures, skip=self._removed)

        tx.commit()
        self.notifier.notify(f"Moved {_plural(len(present))} to {target_space_id or 'overview'}", "success")
        return MutationResult("move", present)

    async def delete(self, ids: Iterable[str]) -> MutationResult:
        """Delete items and open an undo window for them."""
        present = [i for i in dict.fromkeys(ids) if i in self.collection]
        if not present:
            return MutationResult("delete")

        # Only the most recent delete is undoable
        self._discard_buffer()
        token = next(self._tokens)
        self._latest_delete = token

        tx = MutationTransaction(self.collection, present).snapshot()
        tx.apply(lambda collection: collection.remove(present))
        self._removed.update(present)
        await self._applied()
        failures = await self._run_remote(present, self.item_store.delete)
        if failures:
            self._removed.difference_update(present)
            return self._fail(tx, "delete", failures)

        deleted = tx.commit()
        if token == self._latest_delete:
            self._open_buffer(deleted, token)
        else:
            logger.debug(f"Delete of {_plural(len(deleted))} superseded, no undo buffer")
        self.notifier.notify(f"Deleted {_plural(len(deleted))}", "success")
        return MutationResult("delete", present)

    async def undo(self) -> bool:
        """Restore the last deleted batch to the front. No-op once the window closed."""
        buffer = self._live_buffer()
        if buffer is None:
            return False
        self._discard_buffer()

        restored = self.collection.prepend(entry.item for entry in buffer.entries)
        self._removed.difference_update(item.id for item in restored)
        self.notifier.notify("Items restored", "success")

        failures = await self._run_remote([i.id for i in restored], self.item_store.restore)
        if failures:
            error = RemoteMutationError("restore", failures)
            logger.error(f"{error}; items stay visible locally")
            self.notifier.notify(error.message, "error")
        return True

    async def update(self, item_id: str, patch: Dict[str, Any]) -> MutationResult:
        """Edit title, content, tags or space of a single item.

        Raises:
            ValidationError: If the patch names a field that cannot be edited.
        """
        unknown = set(patch) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError("Cannot update fields", fields=sorted(unknown))
        current = self.collection.get(item_id)
        if current is None:
            return MutationResult("update")

        changes = dict(patch)
        if "tags" in changes:
            changes["tags"] = normalize_tags(changes["tags"])
        tags_changed = "tags" in changes and changes["tags"] != current.tags
        remote_patch = dict(changes)
        if "tags" in remote_patch:
            remote_patch["tags"] = sorted(remote_patch["tags"])

        tx = MutationTransaction(self.collection, [item_id]).snapshot()
        tx.apply(lambda collection: collection.replace(current.with_changes(**changes)))
        await self._applied()

        failures: Dict[str, BaseException] = {}
        try:
            await _settle(self.item_store.update, item_id, remote_patch)
            if tags_changed and self.tag_store is not None:
                new_tags = sorted(changes["tags"])
                await asyncio.gather(*(self.tag_store.upsert(tag) for tag in new_tags))
                await self.tag_store.set_item_tags(item_id, new_tags)
        except Exception as e:
            failures[item_id] = e
        if failures:
            return self._fail(tx, "update", failures, skip=self._removed)

        tx.commit()
        self.notifier.notify("Item updated", "success")
        return MutationResult("update", [item_id])

    async def create(self, draft: Dict[str, Any]) -> Item:
        """Create an item remotely and put it at the front of the collection.

        Raises:
            RemoteMutationError: If the store rejects the draft.
        """
        try:
            item = await _settle(self.item_store.create, draft)
        except Exception as e:
            error = RemoteMutationError("create", {str(draft.get("title", "draft")): e})
            logger.error(f"{error}")
            self.notifier.notify("Failed to create item", "error")
            raise error from e
        self._removed.discard(item.id)
        self.collection.prepend([item])
        self.notifier.notify("Item created", "success")
        return item
