"""Library items: notes, PDFs, links and images."""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from cortex.models.types import ItemDict
from cortex.utils.datetime_utils import parse_datetime, to_iso, utc_now

_DIGITS = re.compile(r"^\d+$")


class ItemType(str, Enum):
    NOTE = "Note"
    PDF = "PDF"
    LINK = "Link"
    IMAGE = "Image"

    @classmethod
    def parse(cls, value: str | ItemType) -> ItemType:
        """Resolve a type name case-insensitively ("pdf" -> PDF).

        Raises:
            ValueError: If the name is not a known item type.
        """
        if isinstance(value, ItemType):
            return value
        lowered = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == lowered or member.name.lower() == lowered:
                return member
        raise ValueError(f"Unknown item type: {value!r}")


def normalize_tags(tags: Iterable[str] | None) -> frozenset[str]:
    """Strip whitespace and drop empty tag names."""
    if not tags:
        return frozenset()
    if isinstance(tags, str):
        tags = [tags]
    return frozenset(t.strip() for t in tags if isinstance(t, str) and t.strip())


def id_sort_key(item_id: str) -> tuple[int, int, str]:
    """Sort key for ids: numeric ids in numeric order, then the rest lexically."""
    if _DIGITS.match(item_id):
        return (0, int(item_id), item_id)
    return (1, 0, item_id)


@dataclass(frozen=True)
class Item:
    """A single library entry.

    ``space_id`` of None means the item is unassigned and shows in the
    overview. Items are immutable; edits produce a new instance via
    :meth:`with_changes`.
    """

    id: str
    title: str
    type: ItemType
    created_at: datetime
    tags: frozenset[str] = field(default_factory=frozenset)
    space_id: str | None = None
    content: str | None = None
    source: str = "Upload"
    size_bytes: int | None = None

    def __post_init__(self) -> None:
        # Accept plain lists/sets and ints for convenience at construction sites
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "type", ItemType.parse(self.type))
        object.__setattr__(self, "tags", normalize_tags(self.tags))
        created = parse_datetime(self.created_at)
        if created is None:
            raise ValueError(f"Item {self.id} has an invalid created_at: {self.created_at!r}")
        object.__setattr__(self, "created_at", created)

    def with_changes(self, **changes: Any) -> Item:
        return dataclasses.replace(self, **changes)

    @property
    def description(self) -> str | None:
        """First 150 characters of the content, used as a preview."""
        if not self.content:
            return None
        return self.content[:150]

    def to_dict(self) -> ItemDict:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type.value,
            "content": self.content,
            "tags": sorted(self.tags),
            "space_id": self.space_id,
            "created_at": to_iso(self.created_at) or "",
            "source": self.source,
            "size_bytes": self.size_bytes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Item:
        """Build an item from a serialized dict.

        Raises:
            ValueError: If a required field is missing or malformed.
        """
        try:
            item_id = data["id"]
            title = data["title"]
        except KeyError as e:
            raise ValueError(f"Item is missing required field {e.args[0]!r}") from e
        return cls(
            id=str(item_id),
            title=str(title),
            type=ItemType.parse(data.get("type", ItemType.NOTE)),
            created_at=data.get("created_at") or utc_now(),
            tags=normalize_tags(data.get("tags")),
            space_id=data.get("space_id"),
            content=data.get("content"),
            source=data.get("source") or "Upload",
            size_bytes=data.get("size_bytes"),
        )
