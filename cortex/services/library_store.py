"""
JSON library file backing the Item Store and Tag Store protocols.

The file holds a single object::

    {"items": [...], "spaces": [...], "categories": [...],
     "trash": [...], "tags": [...]}

Only ``items`` is required. Absent ``spaces``/``categories`` keys fall back to the
built-in categories and default spaces. Deleted items move to ``trash`` so
they can be restored. Every write re-reads the file and replaces it atomically.
"""

import json
import logging
import os
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from cortex.exceptions import LibraryFileError
from cortex.models.items import Item, ItemType, normalize_tags
from cortex.models.spaces import BUILTIN_CATEGORIES, DEFAULT_SPACES, Category, Space
from cortex.services.filter_engine import item_space
from cortex.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "content", "tags", "space_id")


@dataclass
class LibraryData:
    items: List[Item] = field(default_factory=list)
    spaces: List[Space] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    trash: List[Item] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "spaces": [space.to_dict() for space in self.spaces],
            "categories": [category.to_dict() for category in self.categories],
            "trash": [item.to_dict() for item in self.trash],
            "tags": sorted(set(self.tags)),
        }


def _parse_list(raw: Dict[str, Any], key: str, parser, path: Path) -> list:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise LibraryFileError(f"'{key}' must be a list", path=str(path))
    parsed = []
    for index, entry in enumerate(value):
        try:
            parsed.append(parser(entry))
        except (ValueError, TypeError, AttributeError) as e:
            raise LibraryFileError(f"Invalid {key} entry #{index}: {e}", path=str(path)) from e
    return parsed


class LibraryFile:
    """Reads and writes the library JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> LibraryData:
        """Parse the library file.

        Raises:
            LibraryFileError: If the file is missing, unreadable or malformed.
        """
        if not self.path.exists():
            raise LibraryFileError("Library file not found", path=str(self.path))
        try:
            raw = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise LibraryFileError(f"Cannot read library: {e}", path=str(self.path)) from e
        if not isinstance(raw, dict):
            raise LibraryFileError("Library root must be an object", path=str(self.path))

        categories = _parse_list(raw, "categories", Category.from_dict, self.path)
        spaces = _parse_list(raw, "spaces", Space.from_dict, self.path)
        data = LibraryData(
            items=_parse_list(raw, "items", Item.from_dict, self.path),
            categories=categories if "categories" in raw else list(BUILTIN_CATEGORIES),
            spaces=spaces if "spaces" in raw else list(DEFAULT_SPACES),
            trash=_parse_list(raw, "trash", Item.from_dict, self.path),
            tags=[t for t in raw.get("tags") or [] if isinstance(t, str)],
        )
        logger.debug(f"Loaded {len(data.items)} items from {self.path}")
        return data

    def save(self, data: LibraryData) -> None:
        """Replace the file atomically.

        Raises:
            LibraryFileError: If the file cannot be written.
        """
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w") as f:
                f.write(json.dumps(data.to_dict(), indent=2, ensure_ascii=False) + "\n")
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError as cleanup_error:
                    logger.warning(f"Could not remove temporary file {tmp_name}: {cleanup_error}")
            raise LibraryFileError(f"Cannot write library: {e}", path=str(self.path)) from e


def _find(items: List[Item], item_id: str) -> int:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    raise LookupError(f"No item with id {item_id!r}")


class JsonLibraryStore:
    """Item Store and Tag Store over a :class:`LibraryFile`."""

    def __init__(self, path: Path) -> None:
        self.file = LibraryFile(path)

    def snapshot(self) -> LibraryData:
        return self.file.load()

    # ------------------------------------------------------------------
    # Item Store
    # ------------------------------------------------------------------

    async def list(self, scope: Optional[str] = None) -> List[Item]:
        """Items in ``scope`` (a space id), or every item when scope is None."""
        items = self.file.load().items
        if scope is None:
            return items
        return [item for item in items if item_space(item) == scope]

    async def create(self, draft: Dict[str, Any]) -> Item:
        title = str(draft.get("title") or "").strip()
        if not title:
            raise ValueError("A new item needs a title")
        data = self.file.load()
        item = Item(
            id=str(draft.get("id") or uuid.uuid4().hex[:12]),
            title=title,
            type=ItemType.parse(draft.get("type") or ItemType.NOTE),
            created_at=draft.get("created_at") or utc_now(),
            tags=normalize_tags(draft.get("tags")),
            space_id=draft.get("space_id"),
            content=draft.get("content"),
            source=draft.get("source") or "Upload",
        )
        if any(existing.id == item.id for existing in data.items):
            raise ValueError(f"Item {item.id} already exists")
        data.items.insert(0, item)
        self.file.save(data)
        logger.info(f"Created item {item.id}")
        return item

    async def update(self, item_id: str, patch: Dict[str, Any]) -> None:
        changes = {k: v for k, v in patch.items() if k in EDITABLE_FIELDS}
        if "tags" in changes:
            changes["tags"] = normalize_tags(changes["tags"])
        data = self.file.load()
        index = _find(data.items, item_id)
        data.items[index] = data.items[index].with_changes(**changes)
        self.file.save(data)

    async def move(self, item_id: str, target_space_id: Optional[str]) -> None:
        data = self.file.load()
        if target_space_id is not None and all(s.id != target_space_id for s in data.spaces):
            raise LookupError(f"No space with id {target_space_id!r}")
        index = _find(data.items, item_id)
        data.items[index] = data.items[index].with_changes(space_id=target_space_id)
        self.file.save(data)

    async def delete(self, item_id: str) -> None:
        data = self.file.load()
        item = data.items.pop(_find(data.items, item_id))
        data.trash = [t for t in data.trash if t.id != item_id] + [item]
        self.file.save(data)

    async def restore(self, item_id: str) -> None:
        data = self.file.load()
        item = data.trash.pop(_find(data.trash, item_id))
        if all(existing.id != item_id for existing in data.items):
            data.items.insert(0, item)
        self.file.save(data)

    # ------------------------------------------------------------------
    # Tag Store
    # ------------------------------------------------------------------

    async def upsert(self, tag_name: str) -> None:
        data = self.file.load()
        if tag_name not in data.tags:
            data.tags.append(tag_name)
            self.file.save(data)

    async def set_item_tags(self, item_id: str, tags: List[str]) -> None:
        data = self.file.load()
        index = _find(data.items, item_id)
        data.items[index] = data.items[index].with_changes(tags=normalize_tags(tags))
        self.file.save(data)

    # ------------------------------------------------------------------
    # Spaces
    # ------------------------------------------------------------------

    def save_space(self, space: Space) -> None:
        """Persist a space's fields (used when a drag changes its category)."""
        data = self.file.load()
        data.spaces = [space if s.id == space.id else s for s in data.spaces]
        if all(s.id != space.id for s in data.spaces):
            data.spaces.append(space)
        self.file.save(data)
        logger.debug(f"Saved space {space.id} in category {space.category}")

    def delete_space(self, space_id: str) -> int:
        """Remove a space. Its items become unassigned.

        Returns:
            Number of items that were unassigned

        Raises:
            LookupError: If no space has this id
        """
        data = self.file.load()
        if all(s.id != space_id for s in data.spaces):
            raise LookupError(f"No space with id {space_id!r}")
        data.spaces = [s for s in data.spaces if s.id != space_id]
        unassigned = _unassign(data, {space_id})
        self.file.save(data)
        logger.info(f"Deleted space {space_id}, unassigned {unassigned} items")
        return unassigned

    def save_category(self, category: Category) -> None:
        data = self.file.load()
        data.categories = [category if c.id == category.id else c for c in data.categories]
        if all(c.id != category.id for c in data.categories):
            data.categories.append(category)
        self.file.save(data)
        logger.debug(f"Saved category {category.id}")

    def delete_category(self, category_id: str) -> int:
        """Remove a category and its spaces. Their items become unassigned.

        Returns:
            Number of items that were unassigned

        Raises:
            LookupError: If no category has this id
        """
        data = self.file.load()
        if all(c.id != category_id for c in data.categories):
            raise LookupError(f"No category with id {category_id!r}")
        doomed = {s.id for s in data.spaces if s.category == category_id}
        data.categories = [c for c in data.categories if c.id != category_id]
        data.spaces = [s for s in data.spaces if s.id not in doomed]
        unassigned = _unassign(data, doomed)
        self.file.save(data)
        logger.info(f"Deleted category {category_id} with {len(doomed)} spaces")
        return unassigned


def _unassign(data: LibraryData, space_ids: set) -> int:
    count = 0
    for index, item in enumerate(data.items):
        if item.space_id in space_ids:
            data.items[index] = item.with_changes(space_id=None)
            count += 1
    return count
