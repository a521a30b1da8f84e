"""Configuration for cortex."""

from .constants import DEFAULT_PAGE_SIZE, PAGE_SIZE_OPTIONS, UNDO_WINDOW_SECONDS
from .settings import get_prefs_path, get_undo_window

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "PAGE_SIZE_OPTIONS",
    "UNDO_WINDOW_SECONDS",
    "get_prefs_path",
    "get_undo_window",
]
