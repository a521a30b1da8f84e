"""
Centralized constants for cortex.

Keeps the magic numbers that drive paging, undo timing and preference
storage in one place.
"""

from pathlib import Path

# =============================================================================
# PATHS
# =============================================================================

CORTEX_CONFIG_DIR = Path.home() / ".config" / "cortex"
PREFERENCES_FILENAME = "preferences.json"
LOG_FILENAME = "cortex.log"

# =============================================================================
# PAGINATION
# =============================================================================

PAGE_SIZE_OPTIONS = (25, 50, 100)  # Closed set; anything else is rejected
DEFAULT_PAGE_SIZE = 25

# =============================================================================
# UNDO
# =============================================================================

UNDO_WINDOW_SECONDS = 6.0  # How long a delete stays undoable

# =============================================================================
# PREFERENCE KEYS
# =============================================================================

PREF_SCOPE_FILTERS = "scope-filters"  # {scope: FilterStateDict}
PREF_SAVED_FILTERS = "saved-filters"  # [SavedFilterDict, ...]
PREF_SPACE_ORDER = "space-order"  # {category_id: [space_id, ...]}
PREF_CATEGORY_ORDER = "category-order"  # [category_id, ...]
PREF_PAGE_SIZE = "table-page-size"
PREF_CREATION_TAB = "creation-tab"

CREATION_TABS = ("note", "pdf", "link", "image")
DEFAULT_CREATION_TAB = "note"

# =============================================================================
# DISPLAY
# =============================================================================

TITLE_TRUNCATE_LENGTH = 60
MAX_TAGS_DISPLAY = 3
OVERVIEW_SPACE_ID = "overview"  # Unassigned items show under this space
LIBRARY_SCOPE = "library"  # Scope key for the whole-library view

# =============================================================================
# ENVIRONMENT VARIABLES
# =============================================================================

ENV_VAR_DEFINITIONS = {
    "CORTEX_PREFS_FILE": {
        "description": "Override the preference file location",
        "default": None,
        "valid_values": None,
    },
    "CORTEX_UNDO_WINDOW": {
        "description": "Seconds a delete stays undoable",
        "default": str(UNDO_WINDOW_SECONDS),
        "valid_values": None,
    },
    "CORTEX_LOG_LEVEL": {
        "description": "Log level for the cortex logger",
        "default": "INFO",
        "valid_values": ["DEBUG", "INFO", "WARNING", "ERROR"],
    },
}
