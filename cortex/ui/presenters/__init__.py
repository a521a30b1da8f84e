"""
Presenters for UI components.

Presenters contain the business logic that composes the engines and
turns their output into ViewModels for display.
"""

from .library_presenter import LibraryPresenter

__all__ = [
    "LibraryPresenter",
]
