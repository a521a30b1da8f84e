"""TypedDict definitions for persisted and serialized blobs."""

from __future__ import annotations

from typing import TypedDict

# "from" is a keyword, so the functional form is needed. Values are ISO 8601 strings.
DateRangeDict = TypedDict(
    "DateRangeDict", {"from": "str | None", "to": "str | None"}, total=False
)


class FilterStateDict(TypedDict, total=False):
    types: list[str]
    spaces: list[str]
    tags: list[str]
    dateRange: DateRangeDict
    sortBy: str


class SavedFilterDict(TypedDict):
    id: str
    name: str
    filters: FilterStateDict
    createdAt: str


class ItemDict(TypedDict, total=False):
    id: str
    title: str
    type: str
    content: str | None
    tags: list[str]
    space_id: str | None
    created_at: str
    source: str
    size_bytes: int | None


class SpaceDict(TypedDict, total=False):
    id: str
    name: str
    emoji: str
    category: str
    slug: str


class CategoryDict(TypedDict, total=False):
    id: str
    name: str
    icon: str
    color: str
