"""Service modules for cortex."""

from .filter_engine import FilterEngine
from .mutations import ItemCollection, OptimisticMutationCoordinator
from .ordering import DragController, HierarchyOrderingEngine
from .pagination import Paginator
from .preferences import Preferences
from .saved_filters import SavedFilterRegistry

__all__ = [
    "DragController",
    "FilterEngine",
    "HierarchyOrderingEngine",
    "ItemCollection",
    "OptimisticMutationCoordinator",
    "Paginator",
    "Preferences",
    "SavedFilterRegistry",
]
