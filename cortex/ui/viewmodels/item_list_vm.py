"""
ViewModels for the library item table.

These are lightweight data transfer objects that contain all the data
needed to render the table, with display formatting already applied.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ItemRow:
    """ViewModel for a single item in the table."""

    id: str
    title: str
    type: str
    space: str
    tags: List[str]
    tags_display: str  # First few tags, with a "+N" overflow marker
    created_at: str
    description: Optional[str] = None


@dataclass
class ItemListVM:
    """ViewModel for one page of the item table."""

    rows: List[ItemRow] = field(default_factory=list)
    scope: str = ""
    search_query: str = ""
    available_tags: List[str] = field(default_factory=list)
    active_filter_count: int = 0
    total_count: int = 0
    filtered_count: int = 0
    current_page: int = 1
    total_pages: int = 1
    page_size: int = 25
    start_index: int = 0
    end_index: int = 0
    has_next: bool = False
    has_prev: bool = False
    can_undo: bool = False
    status_text: str = ""
