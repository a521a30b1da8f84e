"""Tests for the JSON library store."""

import json
from unittest.mock import patch

import pytest

from cortex.exceptions import LibraryFileError
from cortex.models.spaces import Category, Space
from cortex.services.library_store import JsonLibraryStore


@pytest.fixture
def library(library_file):
    return JsonLibraryStore(library_file)


def test_missing_file(tmp_path):
    with pytest.raises(LibraryFileError):
        JsonLibraryStore(tmp_path / "nope.json").snapshot()


def test_malformed_file(tmp_path):
    path = tmp_path / "lib.json"
    path.write_text(json.dumps({"items": [{"id": "1"}]}))
    with pytest.raises(LibraryFileError):
        JsonLibraryStore(path).snapshot()


def test_defaults_for_spaces_and_categories(library):
    data = library.snapshot()
    assert [c.id for c in data.categories] == ["shared", "team", "private"]
    assert "team-2" in [s.id for s in data.spaces]


@pytest.mark.asyncio
async def test_list_by_scope(library):
    assert len(await library.list()) == 5
    assert sorted(i.id for i in await library.list("team-2")) == ["3", "4"]
    assert [i.id for i in await library.list("overview")] == ["2"]


@pytest.mark.asyncio
async def test_delete_and_restore(library):
    await library.delete("3")
    data = library.snapshot()
    assert "3" not in [i.id for i in data.items]
    assert [i.id for i in data.trash] == ["3"]

    await library.restore("3")
    data = library.snapshot()
    assert [i.id for i in data.items][0] == "3"
    assert data.trash == []


@pytest.mark.asyncio
async def test_unknown_item_raises(library):
    with pytest.raises(LookupError):
        await library.delete("missing")


@pytest.mark.asyncio
async def test_move_to_unknown_space(library):
    with pytest.raises(LookupError):
        await library.move("1", "ghost")
    await library.move("1", None)
    assert sorted(i.id for i in await library.list("overview")) == ["1", "2"]


@pytest.mark.asyncio
async def test_update_and_tags(library):
    await library.update("2", {"title": "Groceries", "tags": ["food"], "id": "ignored"})
    await library.upsert("food")
    await library.set_item_tags("2", ["food", "weekly"])

    data = library.snapshot()
    item = next(i for i in data.items if i.id == "2")
    assert item.title == "Groceries"
    assert item.tags == frozenset({"food", "weekly"})
    assert data.tags == ["food"]


@pytest.mark.asyncio
async def test_create(library):
    item = await library.create({"title": "New note", "tags": ["x"]})
    assert library.snapshot().items[0].id == item.id
    with pytest.raises(ValueError):
        await library.create({"title": "  "})


def test_save_space(library):
    library.save_space(Space("team-2", "Visualize Terraform", "private"))
    moved = next(s for s in library.snapshot().spaces if s.id == "team-2")
    assert moved.category == "private"


def test_failed_save_leaves_file_and_no_temp(library, library_file):
    before = library_file.read_text()
    with patch("cortex.services.library_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(LibraryFileError):
            library.save_space(Space("x", "Extra", "team"))
    assert library_file.read_text() == before
    assert list(library_file.parent.glob("*.tmp")) == []


def test_delete_space_unassigns_items(library):
    assert library.delete_space("team-2") == 2

    data = library.snapshot()
    assert "team-2" not in [s.id for s in data.spaces]
    assert {i.id for i in data.items if i.space_id is None} == {"2", "3", "4"}
    with pytest.raises(LookupError):
        library.delete_space("team-2")


def test_category_add_and_cascading_delete(library):
    library.save_category(Category("work", "Work"))
    library.save_space(Space("work-1", "Inbox", "work"))
    assert [c.id for c in library.snapshot().categories][-1] == "work"

    assert library.delete_category("team") == 2

    data = library.snapshot()
    assert [c.id for c in data.categories] == ["shared", "private", "work"]
    assert not [s for s in data.spaces if s.category == "team"]
    with pytest.raises(LookupError):
        library.delete_category("team")


def test_removed_categories_stay_removed(library):
    for category_id in ("shared", "team", "private"):
        library.delete_category(category_id)
    assert library.snapshot().categories == []
