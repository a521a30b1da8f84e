"""Shared pytest fixtures for cortex tests."""

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest

from cortex.models.items import Item
from cortex.services.filter_engine import item_space
from cortex.services.preferences import MemoryPreferenceStore, Preferences


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep preference and log files out of the real home directory."""
    prefs_path = tmp_path / "preferences.json"
    monkeypatch.setenv("CORTEX_PREFS_FILE", str(prefs_path))
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("CORTEX_UNDO_WINDOW", raising=False)
    monkeypatch.delenv("CORTEX_LOG_LEVEL", raising=False)
    return prefs_path


@pytest.fixture
def store():
    return MemoryPreferenceStore()


@pytest.fixture
def prefs(store):
    return Preferences(store)


def _make_item(
    item_id: str,
    title: Optional[str] = None,
    type: str = "Note",
    created: str = "2024-01-01T00:00:00Z",
    tags=(),
    space: Optional[str] = None,
) -> Item:
    return Item(
        id=item_id,
        title=title or f"Item {item_id}",
        type=type,
        created_at=created,
        tags=frozenset(tags),
        space_id=space,
    )


@pytest.fixture
def make_item():
    """Factory for items with sensible defaults."""
    return _make_item


@pytest.fixture
def sample_items():
    """A small mixed library used across filter and presenter tests."""
    return [
        _make_item("1", "Attention Is All You Need", "PDF", "2024-03-10T09:00:00Z", ["ml", "papers"], "shared-3"),
        _make_item("2", "Grocery list", "Note", "2024-01-05T08:00:00Z", ["home"]),
        _make_item("3", "Terraform docs", "Link", "2024-02-20T12:00:00Z", ["infra", "docs"], "team-2"),
        _make_item("4", "Diagram", "Image", "2024-02-20T12:00:00Z", ["infra"], "team-2"),
        _make_item("5", "ML reading notes", "Note", "2024-04-01T18:30:00Z", ["ml"], "shared-3"),
    ]


class FakeItemStore:
    """In-memory Item Store that can fail selected ids.

    With ``return_errors`` a failing call returns the exception instead of
    raising it.
    """

    def __init__(self, items=(), fail_ids=(), return_errors: bool = False) -> None:
        self.items: List[Item] = list(items)
        self.fail_ids = set(fail_ids)
        self.return_errors = return_errors
        self.calls: List[tuple] = []

    async def _call(self, operation: str, item_id: str) -> Optional[Exception]:
        self.calls.append((operation, item_id))
        await asyncio.sleep(0)
        if item_id in self.fail_ids:
            error = RuntimeError(f"{operation} failed for {item_id}")
            if self.return_errors:
                return error
            raise error
        return None

    async def list(self, scope: Optional[str] = None) -> List[Item]:
        return [i for i in self.items if scope is None or item_space(i) == scope]

    async def create(self, draft: Dict[str, Any]) -> Item:
        self.calls.append(("create", draft.get("title")))
        if draft.get("title") in self.fail_ids:
            raise RuntimeError("create failed")
        item = _make_item(f"new-{len(self.calls)}", draft["title"], draft.get("type", "Note"))
        self.items.insert(0, item)
        return item

    async def update(self, item_id: str, patch: Dict[str, Any]):
        return await self._call("update", item_id)

    async def move(self, item_id: str, target_space_id: Optional[str]):
        return await self._call("move", item_id)

    async def delete(self, item_id: str):
        return await self._call("delete", item_id)

    async def restore(self, item_id: str):
        return await self._call("restore", item_id)


class FakeTagStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.upserted: List[str] = []
        self.assigned: Dict[str, List[str]] = {}

    async def upsert(self, tag_name: str) -> None:
        if self.fail:
            raise RuntimeError("tag store down")
        self.upserted.append(tag_name)

    async def set_item_tags(self, item_id: str, tags: List[str]) -> None:
        self.assigned[item_id] = list(tags)


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: List[tuple] = []

    def notify(self, message: str, kind: str = "info") -> None:
        self.messages.append((kind, message))

    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.messages]


@pytest.fixture
def item_store_factory():
    return FakeItemStore


@pytest.fixture
def tag_store():
    return FakeTagStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def library_file(tmp_path, sample_items):
    """A library JSON file holding the sample items and default spaces."""
    path = tmp_path / "library.json"
    path.write_text(json.dumps({"items": [item.to_dict() for item in sample_items]}))
    return path
