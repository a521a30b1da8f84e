"""
Preference persistence for cortex.

The engine never touches storage directly. It is handed a ``PreferenceStore``
(a key-value store of JSON-serializable blobs) wrapped in ``Preferences``,
which offers typed accessors with default fallback. Missing or malformed
entries fall back to defaults; read and write failures are logged and
ignored, since configuration rather than data is at stake.

The JSON store re-reads its file on every access so each read-modify-write
starts from the latest persisted snapshot.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from cortex.config.constants import (
    CREATION_TABS,
    DEFAULT_CREATION_TAB,
    DEFAULT_PAGE_SIZE,
    PAGE_SIZE_OPTIONS,
    PREF_CATEGORY_ORDER,
    PREF_CREATION_TAB,
    PREF_PAGE_SIZE,
    PREF_SAVED_FILTERS,
    PREF_SCOPE_FILTERS,
    PREF_SPACE_ORDER,
)
from cortex.config.settings import get_prefs_path
from cortex.exceptions import (
    FilterValidationError,
    PageSizeError,
    PreferenceError,
    PreferenceReadError,
    PreferenceWriteError,
    ValidationError,
)
from cortex.models.filters import FilterState, SavedFilter

logger = logging.getLogger(__name__)


class PreferenceStore(Protocol):
    """Persisted key-value store of JSON-serializable blobs."""

    def get(self, key: str) -> Any:
        """Return the stored value, or None when the key is absent."""
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryPreferenceStore:
    """In-process store. Values are copied in and out so callers never alias state."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove temporary file {path}: {e}")


class JsonFilePreferenceStore:
    """Preferences stored as a single JSON object on disk.

    Defaults to ~/.config/cortex/preferences.json (or CORTEX_PREFS_FILE).
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else get_prefs_path()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise PreferenceReadError(str(e), path=str(self.path)) from e
        if not isinstance(data, dict):
            raise PreferenceReadError("Preference file root is not an object", path=str(self.path))
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w") as f:
                f.write(json.dumps(data, indent=2) + "\n")
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name is not None:
                _remove_quietly(Path(tmp_name))
            raise PreferenceWriteError(str(e), path=str(self.path)) from e

    def _read_for_update(self) -> Dict[str, Any]:
        try:
            return self._read()
        except PreferenceReadError as e:
            logger.warning(f"Discarding unreadable preferences before write: {e}")
            return {}

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read_for_update()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read_for_update()
        if key in data:
            del data[key]
            self._write(data)


class Preferences:
    """Typed accessors over a PreferenceStore. Never raises for storage problems."""

    def __init__(self, store: Optional[PreferenceStore] = None) -> None:
        self.store: PreferenceStore = store if store is not None else MemoryPreferenceStore()

    # ------------------------------------------------------------------
    # Raw access with fallback
    # ------------------------------------------------------------------

    def _get(self, key: str, default: Any = None) -> Any:
        try:
            value = self.store.get(key)
        except PreferenceError as e:
            logger.warning(f"Could not read preference {key!r}: {e}")
            return default
        return default if value is None else value

    def _set(self, key: str, value: Any) -> bool:
        try:
            self.store.set(key, value)
            return True
        except PreferenceError as e:
            logger.warning(f"Could not write preference {key!r}: {e}")
            return False

    def _get_mapping(self, key: str) -> Dict[str, Any]:
        value = self._get(key, {})
        if not isinstance(value, dict):
            logger.warning(f"Ignoring malformed preference {key!r}: expected an object")
            return {}
        return value

    # ------------------------------------------------------------------
    # Per-scope filter state
    # ------------------------------------------------------------------

    def get_scope_filters(self, scope: str) -> Optional[FilterState]:
        """Last-applied filter for a scope, or None if absent or malformed."""
        raw = self._get_mapping(PREF_SCOPE_FILTERS).get(scope)
        if raw is None:
            return None
        try:
            return FilterState.from_dict(raw)
        except FilterValidationError as e:
            logger.warning(f"Ignoring malformed filter for scope {scope!r}: {e}")
            return None

    def set_scope_filters(self, scope: str, filters: FilterState) -> bool:
        mapping = self._get_mapping(PREF_SCOPE_FILTERS)
        mapping[scope] = filters.to_dict()
        return self._set(PREF_SCOPE_FILTERS, mapping)

    def clear_scope_filters(self, scope: str) -> bool:
        mapping = self._get_mapping(PREF_SCOPE_FILTERS)
        if scope not in mapping:
            return True
        del mapping[scope]
        return self._set(PREF_SCOPE_FILTERS, mapping)

    # ------------------------------------------------------------------
    # Saved filters
    # ------------------------------------------------------------------

    def get_saved_filters(self) -> List[SavedFilter]:
        raw = self._get(PREF_SAVED_FILTERS, [])
        if not isinstance(raw, list):
            logger.warning("Ignoring malformed saved filter list")
            return []
        saved = []
        for entry in raw:
            try:
                saved.append(SavedFilter.from_dict(entry))
            except (ValueError, FilterValidationError) as e:
                logger.warning(f"Skipping malformed saved filter: {e}")
        return saved

    def set_saved_filters(self, filters: List[SavedFilter]) -> bool:
        return self._set(PREF_SAVED_FILTERS, [f.to_dict() for f in filters])

    # ------------------------------------------------------------------
    # Ordering map
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_ids(value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, str)]

    def get_space_order(self, category_id: str) -> List[str]:
        """Explicit space order for a category; empty when never materialized."""
        return self._clean_ids(self._get_mapping(PREF_SPACE_ORDER).get(category_id))

    def get_space_orders(self) -> Dict[str, List[str]]:
        return {
            category_id: self._clean_ids(ids)
            for category_id, ids in self._get_mapping(PREF_SPACE_ORDER).items()
        }

    def set_space_orders(self, orders: Dict[str, List[str]]) -> bool:
        """Replace several category lists in one write."""
        mapping = self._get_mapping(PREF_SPACE_ORDER)
        mapping.update({cid: list(ids) for cid, ids in orders.items()})
        return self._set(PREF_SPACE_ORDER, mapping)

    def set_space_order(self, category_id: str, space_ids: List[str]) -> bool:
        return self.set_space_orders({category_id: space_ids})

    def delete_space_order(self, category_id: str) -> bool:
        mapping = self._get_mapping(PREF_SPACE_ORDER)
        if category_id not in mapping:
            return True
        del mapping[category_id]
        return self._set(PREF_SPACE_ORDER, mapping)

    def get_category_order(self) -> List[str]:
        return self._clean_ids(self._get(PREF_CATEGORY_ORDER, []))

    def set_category_order(self, category_ids: List[str]) -> bool:
        return self._set(PREF_CATEGORY_ORDER, list(category_ids))

    # ------------------------------------------------------------------
    # Page size & creation form
    # ------------------------------------------------------------------

    def get_page_size(self) -> int:
        value = self._get(PREF_PAGE_SIZE, DEFAULT_PAGE_SIZE)
        try:
            size = int(value)
        except (TypeError, ValueError):
            return DEFAULT_PAGE_SIZE
        return size if size in PAGE_SIZE_OPTIONS else DEFAULT_PAGE_SIZE

    def set_page_size(self, page_size: int) -> bool:
        if page_size not in PAGE_SIZE_OPTIONS:
            raise PageSizeError(page_size=page_size, options=list(PAGE_SIZE_OPTIONS))
        return self._set(PREF_PAGE_SIZE, page_size)

    def get_creation_tab(self) -> str:
        value = self._get(PREF_CREATION_TAB, DEFAULT_CREATION_TAB)
        return value if value in CREATION_TABS else DEFAULT_CREATION_TAB

    def set_creation_tab(self, tab: str) -> bool:
        if tab not in CREATION_TABS:
            raise ValidationError(f"Unknown creation tab {tab!r}", options=list(CREATION_TABS))
        return self._set(PREF_CREATION_TAB, tab)
