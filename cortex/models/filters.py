"""Filter state and saved filter snapshots.

A FilterState is an immutable, multi-axis query over library items. An
empty set on any axis means "no constraint on that axis", never "match
nothing". Values are validated at construction through :meth:`FilterState.build`
and :meth:`FilterState.from_dict`; both raise FilterValidationError and leave
the caller's state untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping

from cortex.exceptions import FilterValidationError
from cortex.models.items import ItemType, normalize_tags
from cortex.models.types import FilterStateDict, SavedFilterDict
from cortex.utils.datetime_utils import (
    DATE_ONLY_FORMAT,
    DateLike,
    parse_date_bound,
    parse_datetime,
    to_iso,
    utc_now,
)


class SortKey(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    TITLE_AZ = "title-az"
    TITLE_ZA = "title-za"

    @classmethod
    def parse(cls, value: str | SortKey) -> SortKey:
        if isinstance(value, SortKey):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            raise FilterValidationError(
                f"Unknown sort key {value!r}. Valid keys: {valid}", axis="sortBy"
            ) from None


@dataclass(frozen=True)
class DateRange:
    """Inclusive bounds on created_at; a missing bound is unbounded on that side."""

    start: datetime | None = None
    end: datetime | None = None

    @property
    def is_set(self) -> bool:
        return self.start is not None or self.end is not None

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment > self.end:
            return False
        return True

    @classmethod
    def build(cls, start: DateLike = None, end: DateLike = None) -> DateRange:
        """Parse both bounds, treating a bare date as covering the whole day."""
        parsed_start = parse_date_bound(start) if start is not None else None
        parsed_end = parse_date_bound(end, end_of_day=True) if end is not None else None
        if start is not None and parsed_start is None:
            raise FilterValidationError(f"Unparseable start date {start!r}", axis="dateRange")
        if end is not None and parsed_end is None:
            raise FilterValidationError(f"Unparseable end date {end!r}", axis="dateRange")
        if parsed_start and parsed_end and parsed_start > parsed_end:
            raise FilterValidationError(
                "Date range start is after its end",
                axis="dateRange",
                start=to_iso(parsed_start),
                end=to_iso(parsed_end),
            )
        return cls(parsed_start, parsed_end)


@dataclass(frozen=True)
class FilterState:
    types: frozenset[ItemType] = field(default_factory=frozenset)
    spaces: frozenset[str] = field(default_factory=frozenset)
    tags: frozenset[str] = field(default_factory=frozenset)
    date_range: DateRange = field(default_factory=DateRange)
    sort_by: SortKey = SortKey.NEWEST

    @classmethod
    def default(cls) -> FilterState:
        return cls()

    @classmethod
    def build(
        cls,
        types: Iterable[str | ItemType] = (),
        spaces: Iterable[str] = (),
        tags: Iterable[str] = (),
        date_from: DateLike = None,
        date_to: DateLike = None,
        sort_by: str | SortKey = SortKey.NEWEST,
    ) -> FilterState:
        """Validate raw axis values and build a FilterState.

        Raises:
            FilterValidationError: If any axis value is malformed.
        """
        if isinstance(types, str) or isinstance(spaces, str) or isinstance(tags, str):
            raise FilterValidationError("Axis values must be collections, not strings")

        parsed_types = set()
        for raw in types:
            try:
                parsed_types.add(ItemType.parse(raw))
            except ValueError as e:
                raise FilterValidationError(str(e), axis="types") from None

        parsed_spaces = set()
        for space in spaces:
            if not isinstance(space, str) or not space.strip():
                raise FilterValidationError(f"Invalid space id {space!r}", axis="spaces")
            parsed_spaces.add(space.strip())

        for tag in tags:
            if not isinstance(tag, str):
                raise FilterValidationError(f"Invalid tag {tag!r}", axis="tags")

        return cls(
            types=frozenset(parsed_types),
            spaces=frozenset(parsed_spaces),
            tags=normalize_tags(tags),
            date_range=DateRange.build(date_from, date_to),
            sort_by=SortKey.parse(sort_by),
        )

    @property
    def is_unconstrained(self) -> bool:
        """True when no axis restricts membership (sorting may still apply)."""
        return not (self.types or self.spaces or self.tags or self.date_range.is_set)

    @property
    def active_count(self) -> int:
        """Number of axes that differ from the default, for the filter badge."""
        count = 0
        if self.types:
            count += 1
        if self.spaces:
            count += 1
        if self.tags:
            count += 1
        if self.date_range.is_set:
            count += 1
        if self.sort_by is not SortKey.NEWEST:
            count += 1
        return count

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> FilterStateDict:
        return {
            "types": sorted(t.value for t in self.types),
            "spaces": sorted(self.spaces),
            "tags": sorted(self.tags),
            "dateRange": {
                "from": to_iso(self.date_range.start),
                "to": to_iso(self.date_range.end),
            },
            "sortBy": self.sort_by.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FilterState:
        """Rebuild a FilterState from its persisted form.

        Raises:
            FilterValidationError: If the blob is not a mapping or holds bad values.
        """
        if not isinstance(data, Mapping):
            raise FilterValidationError("Filter state must be an object")
        date_range = data.get("dateRange") or {}
        if not isinstance(date_range, Mapping):
            raise FilterValidationError("dateRange must be an object", axis="dateRange")

        def _list(key: str) -> list:
            value = data.get(key) or []
            if not isinstance(value, (list, tuple)):
                raise FilterValidationError(f"{key} must be a list", axis=key)
            return list(value)

        # Stored bounds are exact instants; only bare dates widen to the day
        start = parse_datetime(date_range.get("from")) if date_range.get("from") else None
        end_raw = date_range.get("to")
        end = parse_date_bound(end_raw, end_of_day=True) if end_raw else None
        if date_range.get("from") and start is None:
            raise FilterValidationError("Unparseable start date", axis="dateRange")
        if end_raw and end is None:
            raise FilterValidationError("Unparseable end date", axis="dateRange")

        state = cls.build(
            types=_list("types"),
            spaces=_list("spaces"),
            tags=_list("tags"),
            sort_by=data.get("sortBy") or SortKey.NEWEST,
        )
        if start and end and start > end:
            raise FilterValidationError("Date range start is after its end", axis="dateRange")
        return FilterState(
            types=state.types,
            spaces=state.spaces,
            tags=state.tags,
            date_range=DateRange(start, end),
            sort_by=state.sort_by,
        )

    def to_query_params(self) -> dict[str, str]:
        """Encode as URL-style query parameters; default axes are omitted."""
        params: dict[str, str] = {}
        if self.types:
            params["type"] = ",".join(sorted(t.value for t in self.types))
        if self.spaces:
            params["space"] = ",".join(sorted(self.spaces))
        if self.tags:
            params["tags"] = ",".join(sorted(self.tags))
        if self.date_range.start:
            params["dateFrom"] = self.date_range.start.strftime(DATE_ONLY_FORMAT)
        if self.date_range.end:
            params["dateTo"] = self.date_range.end.strftime(DATE_ONLY_FORMAT)
        if self.sort_by is not SortKey.NEWEST:
            params["sort"] = self.sort_by.value
        return params

    @classmethod
    def from_query_params(cls, params: Mapping[str, str]) -> FilterState:
        """Decode query parameters produced by :meth:`to_query_params`.

        Empty comma-separated fragments are ignored.

        Raises:
            FilterValidationError: If a parameter holds an invalid value.
        """

        def _split(key: str) -> list[str]:
            raw = params.get(key) or ""
            return [part for part in raw.split(",") if part.strip()]

        return cls.build(
            types=_split("type"),
            spaces=_split("space"),
            tags=_split("tags"),
            date_from=params.get("dateFrom") or None,
            date_to=params.get("dateTo") or None,
            sort_by=params.get("sort") or SortKey.NEWEST,
        )


@dataclass(frozen=True)
class SavedFilter:
    """A named FilterState snapshot. Name is a label; id is identity."""

    id: str
    name: str
    filters: FilterState
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> SavedFilterDict:
        return {
            "id": self.id,
            "name": self.name,
            "filters": self.filters.to_dict(),
            "createdAt": to_iso(self.created_at) or "",
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SavedFilter:
        """Raises FilterValidationError or ValueError on malformed input."""
        if not isinstance(data, Mapping):
            raise ValueError("Saved filter must be an object")
        filter_id = data.get("id")
        name = data.get("name")
        if not isinstance(filter_id, str) or not filter_id:
            raise ValueError("Saved filter is missing an id")
        if not isinstance(name, str):
            raise ValueError(f"Saved filter {filter_id} is missing a name")
        return cls(
            id=filter_id,
            name=name,
            filters=FilterState.from_dict(data.get("filters") or {}),
            created_at=parse_datetime(data.get("createdAt")) or utc_now(),
        )
