"""Saved filter registry.

Named FilterState snapshots, persisted through the preference store and
independent of any space or category. Duplicate names are allowed; the id
is the only identity. Loading a saved filter is a pure read: applying it
to the active view is a separate, explicit action.
"""

import logging
import uuid
from typing import List, Optional

from cortex.exceptions import ValidationError
from cortex.models.filters import FilterState, SavedFilter
from cortex.services.preferences import Preferences
from cortex.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


def _clean_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Saved filter name cannot be empty")
    return name.strip()


class SavedFilterRegistry:
    def __init__(self, preferences: Optional[Preferences] = None) -> None:
        self.preferences = preferences or Preferences()

    def save(self, name: str, filters: FilterState) -> SavedFilter:
        """Store a snapshot under a freshly generated id.

        Raises:
            ValidationError: If the name is empty.
        """
        saved = SavedFilter(
            id=f"filter_{uuid.uuid4().hex}",
            name=_clean_name(name),
            filters=filters,
            created_at=utc_now(),
        )
        current = self.preferences.get_saved_filters()
        current.append(saved)
        self.preferences.set_saved_filters(current)
        logger.info(f"Saved filter {saved.id} ({saved.name!r})")
        return saved

    def list(self) -> List[SavedFilter]:
        """All saved filters in creation order."""
        return self.preferences.get_saved_filters()

    def get(self, filter_id: str) -> Optional[SavedFilter]:
        return next((f for f in self.list() if f.id == filter_id), None)

    def load(self, filter_id: str) -> Optional[FilterState]:
        """The stored snapshot for local editing, or None for an unknown id."""
        saved = self.get(filter_id)
        return saved.filters if saved else None

    def rename(self, filter_id: str, name: str) -> bool:
        """Rename a saved filter. Returns False for an unknown id.

        Raises:
            ValidationError: If the new name is empty.
        """
        new_name = _clean_name(name)
        current = self.preferences.get_saved_filters()
        for index, saved in enumerate(current):
            if saved.id == filter_id:
                current[index] = SavedFilter(saved.id, new_name, saved.filters, saved.created_at)
                self.preferences.set_saved_filters(current)
                return True
        logger.debug(f"Rename ignored, no saved filter {filter_id}")
        return False

    def delete(self, filter_id: str) -> bool:
        """Remove a saved filter. Returns False for an unknown id."""
        current = self.preferences.get_saved_filters()
        remaining = [f for f in current if f.id != filter_id]
        if len(remaining) == len(current):
            return False
        self.preferences.set_saved_filters(remaining)
        logger.info(f"Deleted saved filter {filter_id}")
        return True
