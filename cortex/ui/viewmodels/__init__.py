"""
ViewModels for UI components.

ViewModels are simple data classes that hold display-ready data,
decoupling UI widgets from the engines and the item store.
"""

from .item_list_vm import ItemListVM, ItemRow

__all__ = [
    "ItemListVM",
    "ItemRow",
]
