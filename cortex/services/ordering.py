"""
Hierarchy ordering for categories and their spaces.

User-chosen order is stored as a partial permutation: ids in a stored list
come first in the listed order, and ids that exist but are missing from the
list follow in their natural (creation) order. Stored lists are never trusted
as-is; every read goes through :func:`materialize`, which drops dangling and
duplicate ids, so new spaces or categories always show up and stale ones
never crash the view. Every write persists a fully materialized list, which
heals whatever the read dropped.

Reordering is driven by drag-and-drop. ``DragController`` is the state
machine (``Idle`` | ``Dragging``); starting a second drag while one is active
raises DragStateError rather than silently restarting.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from cortex.exceptions import DragStateError, ValidationError
from cortex.models.spaces import BUILTIN_CATEGORIES, DEFAULT_SPACES, Category, Space
from cortex.services.preferences import Preferences

logger = logging.getLogger(__name__)


class OrderKind(str, Enum):
    SPACE = "space"
    CATEGORY = "category"


class DropPosition(str, Enum):
    ABOVE = "above"
    BELOW = "below"


def _parse_kind(kind: Union[OrderKind, str]) -> OrderKind:
    try:
        return OrderKind(kind)
    except ValueError as e:
        raise ValidationError(
            f"Unknown order kind {kind!r}", allowed=[k.value for k in OrderKind]
        ) from e


def _parse_position(position: Union[DropPosition, str]) -> DropPosition:
    try:
        return DropPosition(position)
    except ValueError as e:
        raise ValidationError(
            f"Unknown drop position {position!r}", allowed=[p.value for p in DropPosition]
        ) from e


def materialize(domain_ids: Sequence[str], ordered_subset: Iterable[str]) -> List[str]:
    """Overlay an explicit partial order on the natural order of ``domain_ids``.

    Listed ids that exist come first, in listed order (duplicates keep their
    first position). Remaining domain ids follow in natural order.

    >>> materialize(["a", "b", "c", "d"], ["c", "x", "a", "c"])
    ['c', 'a', 'b', 'd']
    """
    domain = set(domain_ids)
    seen = set()
    result = []
    for item_id in ordered_subset:
        if item_id in domain and item_id not in seen:
            seen.add(item_id)
            result.append(item_id)
    for item_id in domain_ids:
        if item_id not in seen:
            seen.add(item_id)
            result.append(item_id)
    return result


def move_in_list(
    order: Sequence[str],
    moved_id: str,
    target_id: Optional[str],
    position: DropPosition = DropPosition.ABOVE,
) -> List[str]:
    """Remove ``moved_id`` and reinsert it above or below ``target_id``.

    A missing target (None or not in the list) appends to the end.
    """
    result = [item_id for item_id in order if item_id != moved_id]
    if target_id is None or target_id not in result:
        result.append(moved_id)
        return result
    index = result.index(target_id)
    if DropPosition(position) is DropPosition.BELOW:
        index += 1
    result.insert(index, moved_id)
    return result


class HierarchyOrderingEngine:
    """Ordered categories, each holding an ordered list of spaces.

    Stored orders are re-read from preferences on every operation so each
    write derives from the latest persisted snapshot.
    """

    def __init__(
        self,
        preferences: Optional[Preferences] = None,
        categories: Iterable[Category] = BUILTIN_CATEGORIES,
        spaces: Iterable[Space] = DEFAULT_SPACES,
        on_space_changed: Optional[Callable[[Space], None]] = None,
    ) -> None:
        self.preferences = preferences or Preferences()
        self.on_space_changed = on_space_changed
        # dict insertion order is the natural (creation) order
        self._categories: Dict[str, Category] = {}
        self._spaces: Dict[str, Space] = {}
        for category in categories:
            self._categories.setdefault(category.id, category)
        for space in spaces:
            self._spaces.setdefault(space.id, space)

    # ------------------------------------------------------------------
    # Domain
    # ------------------------------------------------------------------

    @property
    def categories(self) -> List[Category]:
        return list(self._categories.values())

    @property
    def spaces(self) -> List[Space]:
        return list(self._spaces.values())

    def get_space(self, space_id: str) -> Optional[Space]:
        return self._spaces.get(space_id)

    def get_category(self, category_id: str) -> Optional[Category]:
        return self._categories.get(category_id)

    def add_category(self, category: Category) -> None:
        if category.id in self._categories:
            logger.debug(f"Category {category.id} already exists")
            return
        self._categories[category.id] = category

    def add_space(self, space: Space) -> None:
        if space.category not in self._categories:
            raise ValueError(f"Unknown category {space.category!r} for space {space.id}")
        if space.id in self._spaces:
            logger.debug(f"Space {space.id} already exists")
            return
        self._spaces[space.id] = space

    def remove_space(self, space_id: str) -> bool:
        """Remove a space and prune it from every stored order list."""
        if self._spaces.pop(space_id, None) is None:
            return False
        stored = self.preferences.get_space_orders()
        pruned = {
            category_id: [i for i in ids if i != space_id]
            for category_id, ids in stored.items()
            if space_id in ids
        }
        if pruned:
            self.preferences.set_space_orders(pruned)
        logger.info(f"Removed space {space_id}")
        return True

    def remove_category(self, category_id: str) -> bool:
        """Remove a category together with its spaces and its order list."""
        if self._categories.pop(category_id, None) is None:
            return False
        for space_id in self.natural_space_ids(category_id):
            self.remove_space(space_id)
        self.preferences.delete_space_order(category_id)
        stored = self.preferences.get_category_order()
        if category_id in stored:
            self.preferences.set_category_order([i for i in stored if i != category_id])
        logger.info(f"Removed category {category_id}")
        return True

    # ------------------------------------------------------------------
    # Reading order
    # ------------------------------------------------------------------

    def natural_space_ids(self, category_id: str) -> List[str]:
        return [s.id for s in self._spaces.values() if s.category == category_id]

    def space_order(self, category_id: str) -> List[str]:
        return materialize(
            self.natural_space_ids(category_id),
            self.preferences.get_space_order(category_id),
        )

    def ordered_spaces(self, category_id: str) -> List[Space]:
        return [self._spaces[i] for i in self.space_order(category_id)]

    def category_order(self) -> List[str]:
        return materialize(list(self._categories), self.preferences.get_category_order())

    def ordered_categories(self) -> List[Category]:
        return [self._categories[i] for i in self.category_order()]

    def tree(self) -> List[Tuple[Category, List[Space]]]:
        """Categories in order, each with its spaces in order."""
        return [(c, self.ordered_spaces(c.id)) for c in self.ordered_categories()]

    def heal(self) -> None:
        """Rewrite every stored list in materialized form, dropping dangling ids."""
        stored = self.preferences.get_space_orders()
        healed = {
            category_id: self.space_order(category_id)
            for category_id in stored
            if category_id in self._categories
        }
        for category_id in stored:
            if category_id not in self._categories:
                self.preferences.delete_space_order(category_id)
        if healed:
            self.preferences.set_space_orders(healed)
        if self.preferences.get_category_order():
            self.preferences.set_category_order(self.category_order())

    # ------------------------------------------------------------------
    # Reordering
    # ------------------------------------------------------------------

    def reorder(
        self,
        kind: Union[OrderKind, str],
        moved_id: str,
        target_id: Optional[str],
        position: Union[DropPosition, str] = DropPosition.ABOVE,
        source_parent: Optional[str] = None,
        target_parent: Optional[str] = None,
    ) -> bool:
        """Move ``moved_id`` next to ``target_id``.

        For spaces, ``target_parent`` selects the destination category
        (defaulting to the target space's category, or the source when no
        target is given). A None target appends to the end of the list.
        Returns True if the stored order changed. Unknown ids and dropping
        an id onto itself are no-ops.

        Raises:
            ValidationError: If ``kind`` or ``position`` is not a known value.
        """
        position = _parse_position(position)
        if _parse_kind(kind) is OrderKind.CATEGORY:
            return self._reorder_category(moved_id, target_id, position)
        return self._reorder_space(moved_id, target_id, position, source_parent, target_parent)

    def _reorder_category(
        self, moved_id: str, target_id: Optional[str], position: DropPosition
    ) -> bool:
        if moved_id not in self._categories or moved_id == target_id:
            return False
        if target_id is not None and target_id not in self._categories:
            logger.debug(f"Ignoring drop of category {moved_id} on unknown {target_id}")
            return False
        order = self.category_order()
        updated = move_in_list(order, moved_id, target_id, position)
        if updated == order:
            return False
        self.preferences.set_category_order(updated)
        return True

    def _reorder_space(
        self,
        moved_id: str,
        target_id: Optional[str],
        position: DropPosition,
        source_parent: Optional[str],
        target_parent: Optional[str],
    ) -> bool:
        space = self._spaces.get(moved_id)
        if space is None or moved_id == target_id:
            return False

        target_space = None
        if target_id is not None:
            target_space = self._spaces.get(target_id)
            if target_space is None:
                logger.debug(f"Ignoring drop of space {moved_id} on unknown {target_id}")
                return False

        # The space's own field is authoritative for where it lives now
        source = space.category
        if source_parent and source_parent != source:
            logger.debug(f"Drag source {source_parent} differs from {moved_id}'s category {source}")

        if target_parent:
            destination = target_parent
        elif target_space is not None:
            destination = target_space.category
        else:
            destination = source
        if destination not in self._categories:
            logger.debug(f"Ignoring drop into unknown category {destination}")
            return False

        if destination == source:
            order = self.space_order(source)
            updated = move_in_list(order, moved_id, target_id, position)
            if updated == order:
                return False
            self.preferences.set_space_order(source, updated)
            return True

        # Destination order is materialized before the moved space joins it
        source_order = [i for i in self.space_order(source) if i != moved_id]
        destination_order = move_in_list(
            self.space_order(destination), moved_id, target_id, position
        )
        moved = dataclasses.replace(space, category=destination)
        self._spaces[moved_id] = moved
        self.preferences.set_space_orders({source: source_order, destination: destination_order})
        logger.info(f"Moved space {moved_id} from {source} to {destination}")
        if self.on_space_changed is not None:
            self.on_space_changed(moved)
        return True


# ----------------------------------------------------------------------
# Drag state machine
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    kind: OrderKind
    item_id: str
    source_parent: Optional[str] = None


DragState = Union[Idle, Dragging]

IDLE = Idle()


class DragController:
    """idle -> dragging -> (dropped | canceled) -> idle."""

    def __init__(self, engine: HierarchyOrderingEngine) -> None:
        self.engine = engine
        self._state: DragState = IDLE

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def is_dragging(self) -> bool:
        return isinstance(self._state, Dragging)

    def start(
        self, kind: Union[OrderKind, str], item_id: str, source_parent: Optional[str] = None
    ) -> Dragging:
        """Begin a drag.

        Raises:
            DragStateError: If a drag is already active.
        """
        if isinstance(self._state, Dragging):
            raise DragStateError(active_id=self._state.item_id, requested_id=item_id)
        self._state = Dragging(_parse_kind(kind), item_id, source_parent)
        return self._state

    def drop(
        self,
        target_id: Optional[str],
        position: Union[DropPosition, str] = DropPosition.ABOVE,
        target_parent: Optional[str] = None,
    ) -> bool:
        """Finish the active drag; returns True if the order changed. No-op when idle."""
        state = self._state
        if not isinstance(state, Dragging):
            return False
        self._state = IDLE
        return self.engine.reorder(
            state.kind,
            state.item_id,
            target_id,
            position,
            source_parent=state.source_parent,
            target_parent=target_parent,
        )

    def cancel(self) -> bool:
        """Abort the active drag; returns True if there was one."""
        was_dragging = isinstance(self._state, Dragging)
        self._state = IDLE
        return was_dragging
