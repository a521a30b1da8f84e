"""Shared command helpers.

This module provides:
- open_library(): Load a library file or raise LibraryFileError
- open_preferences(): Preferences backed by the JSON preference file
- build_ordering(): Ordering engine over a library's categories and spaces
- merge_filters(): Overlay CLI axis options on an existing FilterState
- parse_position(): Resolve --above/--below into a drop target
"""

from pathlib import Path
from typing import List, Optional, Tuple

from cortex.exceptions import ValidationError
from cortex.models.filters import FilterState
from cortex.services.library_store import JsonLibraryStore, LibraryData
from cortex.services.ordering import DropPosition, HierarchyOrderingEngine
from cortex.services.preferences import JsonFilePreferenceStore, Preferences


def open_library(path: Path) -> Tuple[JsonLibraryStore, LibraryData]:
    """Open a library file, validating it up front.

    Raises:
        LibraryFileError: If the file is missing or malformed
    """
    store = JsonLibraryStore(path)
    return store, store.snapshot()


def open_preferences() -> Preferences:
    return Preferences(JsonFilePreferenceStore())


def build_ordering(
    store: JsonLibraryStore, data: LibraryData, preferences: Preferences
) -> HierarchyOrderingEngine:
    """Ordering engine whose space category changes are written back to the library."""
    return HierarchyOrderingEngine(
        preferences,
        categories=data.categories,
        spaces=data.spaces,
        on_space_changed=store.save_space,
    )


def merge_filters(
    current: FilterState,
    types: Optional[List[str]] = None,
    spaces: Optional[List[str]] = None,
    tags: Optional[List[str]] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    sort_by: Optional[str] = None,
) -> FilterState:
    """Replace only the axes that were given on the command line.

    Raises:
        FilterValidationError: If a given value is invalid
    """
    built = FilterState.build(
        types=types or (),
        spaces=spaces or (),
        tags=tags or (),
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by or current.sort_by,
    )
    return FilterState(
        types=built.types if types else current.types,
        spaces=built.spaces if spaces else current.spaces,
        tags=built.tags if tags else current.tags,
        date_range=built.date_range if (date_from or date_to) else current.date_range,
        sort_by=built.sort_by,
    )


def parse_position(
    above: Optional[str], below: Optional[str], required: bool = False
) -> Tuple[Optional[str], DropPosition]:
    """Resolve mutually exclusive --above/--below options.

    Raises:
        ValidationError: If both are given, or neither when one is required
    """
    if above and below:
        raise ValidationError("Use either --above or --below, not both")
    if below:
        return below, DropPosition.BELOW
    if above:
        return above, DropPosition.ABOVE
    if required:
        raise ValidationError("A drop target is required (--above or --below)")
    return None, DropPosition.ABOVE
