"""Tests for preference stores and the typed Preferences facade."""

import json
from unittest.mock import patch

import pytest

from cortex.exceptions import PageSizeError, PreferenceReadError, PreferenceWriteError, ValidationError
from cortex.models.filters import FilterState
from cortex.services.preferences import JsonFilePreferenceStore, MemoryPreferenceStore, Preferences


class TestMemoryPreferenceStore:
    def test_values_are_copied(self):
        store = MemoryPreferenceStore()
        value = {"a": [1]}
        store.set("k", value)
        value["a"].append(2)

        read = store.get("k")
        read["a"].append(3)
        assert store.get("k") == {"a": [1]}

    def test_delete_missing_key(self):
        store = MemoryPreferenceStore({"k": 1})
        store.delete("k")
        store.delete("k")
        assert store.get("k") is None


class TestJsonFilePreferenceStore:
    def test_uses_env_override(self, isolated_config):
        assert JsonFilePreferenceStore().path == isolated_config

    def test_round_trip(self, tmp_path):
        path = tmp_path / "prefs.json"
        store = JsonFilePreferenceStore(path)
        store.set("table-page-size", 50)

        assert json.loads(path.read_text()) == {"table-page-size": 50}
        assert JsonFilePreferenceStore(path).get("table-page-size") == 50

    def test_missing_file_reads_as_empty(self, tmp_path):
        assert JsonFilePreferenceStore(tmp_path / "none.json").get("x") is None

    def test_corrupt_file_raises_read_error(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("{not json")
        with pytest.raises(PreferenceReadError):
            JsonFilePreferenceStore(path).get("x")

    def test_write_replaces_corrupt_file(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("[1, 2")
        JsonFilePreferenceStore(path).set("k", "v")
        assert json.loads(path.read_text()) == {"k": "v"}

    def test_write_failure_raises_write_error(self, tmp_path):
        store = JsonFilePreferenceStore(tmp_path / "prefs.json")
        with patch("cortex.services.preferences.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PreferenceWriteError):
                store.set("k", "v")

    def test_write_failure_leaves_no_temp_file(self, tmp_path):
        store = JsonFilePreferenceStore(tmp_path / "prefs.json")
        with patch("cortex.services.preferences.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PreferenceWriteError):
                store.set("k", "v")
        assert list(tmp_path.glob("*.tmp")) == []


class TestPreferencesFacade:
    def test_corrupt_file_yields_defaults(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("garbage")
        prefs = Preferences(JsonFilePreferenceStore(path))

        assert prefs.get_page_size() == 25
        assert prefs.get_saved_filters() == []
        assert prefs.get_scope_filters("library") is None

    def test_write_failure_is_swallowed(self, tmp_path):
        prefs = Preferences(JsonFilePreferenceStore(tmp_path / "prefs.json"))
        with patch("cortex.services.preferences.os.replace", side_effect=OSError("read-only")):
            assert prefs.set_category_order(["team"]) is False

    def test_scope_filters_round_trip(self, prefs):
        filters = FilterState.build(types=["PDF"], date_from="2024-01-01", date_to="2024-01-31")
        prefs.set_scope_filters("shared-1", filters)
        assert prefs.get_scope_filters("shared-1") == filters

    def test_malformed_scope_filter_ignored(self, store, prefs):
        store.set("scope-filters", {"a": {"sortBy": "sideways"}})
        assert prefs.get_scope_filters("a") is None

    def test_malformed_saved_filters_skipped(self, store, prefs):
        store.set(
            "saved-filters",
            [
                {"id": "filter_1", "name": "ok", "filters": {}},
                {"name": "no id"},
                "junk",
            ],
        )
        assert [f.id for f in prefs.get_saved_filters()] == ["filter_1"]

    def test_page_size(self, store, prefs):
        assert prefs.get_page_size() == 25
        prefs.set_page_size(100)
        assert store.get("table-page-size") == 100

        store.set("table-page-size", 33)
        assert prefs.get_page_size() == 25

        with pytest.raises(PageSizeError):
            prefs.set_page_size(10)

    def test_creation_tab(self, prefs):
        assert prefs.get_creation_tab() == "note"
        prefs.set_creation_tab("link")
        assert prefs.get_creation_tab() == "link"
        with pytest.raises(ValidationError):
            prefs.set_creation_tab("video")

    def test_space_orders_written_together(self, store, prefs):
        prefs.set_space_order("team", ["team-2", "team-1"])
        prefs.set_space_orders({"shared": ["shared-2"], "team": ["team-1"]})

        assert store.get("space-order") == {"team": ["team-1"], "shared": ["shared-2"]}

    def test_non_string_ids_dropped(self, store, prefs):
        store.set("category-order", ["team", 3, None, "shared"])
        assert prefs.get_category_order() == ["team", "shared"]
