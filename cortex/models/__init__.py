"""Query model for cortex: items, filters, spaces and categories."""

from .filters import DateRange, FilterState, SavedFilter, SortKey
from .items import Item, ItemType
from .spaces import BUILTIN_CATEGORIES, DEFAULT_SPACES, Category, Space, slugify

__all__ = [
    "BUILTIN_CATEGORIES",
    "DEFAULT_SPACES",
    "Category",
    "DateRange",
    "FilterState",
    "Item",
    "ItemType",
    "SavedFilter",
    "SortKey",
    "Space",
    "slugify",
]
