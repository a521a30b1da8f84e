"""CLI tests for cortex commands."""

import json
import re

from typer.testing import CliRunner

from cortex import __version__
from cortex.main import app

runner = CliRunner()


def _out(result) -> str:
    """Strip ANSI escape sequences from CliRunner output for assertions."""
    return re.sub(r"\x1b\[[0-9;]*m", "", result.stdout)


def _json(result):
    assert result.exit_code == 0, _out(result)
    return json.loads(result.stdout)


class TestBasics:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "browse" in _out(result)

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_verbose_and_quiet_conflict(self):
        result = runner.invoke(app, ["--verbose", "--quiet", "version"])
        assert result.exit_code == 1


class TestBrowse:
    def test_table(self, library_file):
        result = runner.invoke(app, ["browse", str(library_file)])
        assert result.exit_code == 0
        out = _out(result)
        assert "Diagram" in out
        assert "5/5 items" in out

    def test_json_with_filters(self, library_file):
        data = _json(runner.invoke(app, ["browse", str(library_file), "--tag", "infra", "--sort", "title-az", "--json"]))
        assert [item["id"] for item in data["items"]] == ["4", "3"]
        assert data["total_pages"] == 1

    def test_filter_is_remembered_per_scope(self, library_file):
        runner.invoke(app, ["browse", str(library_file), "--type", "pdf"])

        data = _json(runner.invoke(app, ["browse", str(library_file), "--json"]))
        assert [item["id"] for item in data["items"]] == ["1"]

        data = _json(runner.invoke(app, ["browse", str(library_file), "--clear", "--json"]))
        assert len(data["items"]) == 5

    def test_search(self, library_file):
        data = _json(runner.invoke(app, ["browse", str(library_file), "--search", "grocery", "--json"]))
        assert [item["id"] for item in data["items"]] == ["2"]

    def test_invalid_page_size(self, library_file):
        result = runner.invoke(app, ["browse", str(library_file), "--page-size", "30"])
        assert result.exit_code == 1
        assert "Validation error" in _out(result)

    def test_invalid_sort(self, library_file):
        result = runner.invoke(app, ["browse", str(library_file), "--sort", "sideways"])
        assert result.exit_code == 1

    def test_missing_library(self, tmp_path):
        result = runner.invoke(app, ["browse", str(tmp_path / "none.json")])
        assert result.exit_code == 1
        assert "Library error" in _out(result)

    def test_saved_filter(self, library_file):
        runner.invoke(app, ["filters", "save", "Infra", "--tag", "infra"])
        saved = _json(runner.invoke(app, ["filters", "list", "--json"]))

        data = _json(runner.invoke(app, ["browse", str(library_file), "--saved", saved[0]["id"], "--json"]))
        assert sorted(item["id"] for item in data["items"]) == ["3", "4"]

    def test_unknown_saved_filter(self, library_file):
        result = runner.invoke(app, ["browse", str(library_file), "--saved", "filter_nope"])
        assert result.exit_code == 1


class TestFilters:
    def test_save_list_show_rename_delete(self):
        result = runner.invoke(app, ["filters", "save", "ML", "--type", "PDF", "--tag", "ml"])
        assert result.exit_code == 0

        saved = _json(runner.invoke(app, ["filters", "list", "--json"]))
        assert [f["name"] for f in saved] == ["ML"]
        filter_id = saved[0]["id"]

        shown = _json(runner.invoke(app, ["filters", "show", filter_id]))
        assert shown["filters"]["types"] == ["PDF"]

        assert runner.invoke(app, ["filters", "rename", filter_id, "Papers"]).exit_code == 0
        assert _json(runner.invoke(app, ["filters", "list", "--json"]))[0]["name"] == "Papers"

        assert runner.invoke(app, ["filters", "delete", filter_id]).exit_code == 0
        assert _json(runner.invoke(app, ["filters", "list", "--json"])) == []

    def test_save_from_scope(self, library_file):
        runner.invoke(app, ["browse", str(library_file), "--tag", "ml"])
        runner.invoke(app, ["filters", "save", "From scope", "--scope", "library", "--sort", "oldest"])

        saved = _json(runner.invoke(app, ["filters", "list", "--json"]))[0]
        assert saved["filters"]["tags"] == ["ml"]
        assert saved["filters"]["sortBy"] == "oldest"

    def test_unknown_ids(self):
        assert runner.invoke(app, ["filters", "show", "filter_x"]).exit_code == 1
        assert runner.invoke(app, ["filters", "rename", "filter_x", "y"]).exit_code == 1
        assert runner.invoke(app, ["filters", "delete", "filter_x"]).exit_code == 1

    def test_empty_name(self):
        result = runner.invoke(app, ["filters", "save", "  "])
        assert result.exit_code == 1

    def test_empty_list(self):
        result = runner.invoke(app, ["filters", "list"])
        assert "No saved filters" in _out(result)


class TestSpaces:
    def _team_order(self, library_file):
        tree = _json(runner.invoke(app, ["spaces", "tree", str(library_file), "--json"]))
        team = next(c for c in tree if c["id"] == "team")
        return [s["id"] for s in team["spaces"]]

    def test_tree(self, library_file):
        result = runner.invoke(app, ["spaces", "tree", str(library_file)])
        assert result.exit_code == 0
        assert "Team Space" in _out(result)

    def test_move_within_category(self, library_file):
        result = runner.invoke(app, ["spaces", "move", str(library_file), "team-3", "--above", "team-1"])
        assert result.exit_code == 0
        assert self._team_order(library_file) == ["team-3", "team-1", "team-2"]

    def test_move_to_other_category(self, library_file):
        result = runner.invoke(app, ["spaces", "move", str(library_file), "shared-1", "--to", "team"])
        assert result.exit_code == 0
        assert self._team_order(library_file) == ["team-1", "team-2", "team-3", "shared-1"]

        spaces = json.loads(library_file.read_text())["spaces"]
        assert next(s for s in spaces if s["id"] == "shared-1")["category"] == "team"

    def test_above_and_below_conflict(self, library_file):
        result = runner.invoke(
            app, ["spaces", "move", str(library_file), "team-3", "--above", "team-1", "--below", "team-2"]
        )
        assert result.exit_code == 1

    def test_unknown_space(self, library_file):
        result = runner.invoke(app, ["spaces", "move", str(library_file), "ghost", "--above", "team-1"])
        assert result.exit_code == 1

    def test_reorder_category(self, library_file):
        result = runner.invoke(
            app, ["spaces", "reorder-category", str(library_file), "private", "--above", "shared"]
        )
        assert result.exit_code == 0
        tree = _json(runner.invoke(app, ["spaces", "tree", str(library_file), "--json"]))
        assert [c["id"] for c in tree] == ["private", "shared", "team"]

    def test_reorder_category_requires_target(self, library_file):
        result = runner.invoke(app, ["spaces", "reorder-category", str(library_file), "private"])
        assert result.exit_code == 1


class TestItems:
    def test_delete_and_restore(self, library_file):
        result = runner.invoke(app, ["items", "delete", str(library_file), "3", "4"])
        assert result.exit_code == 0
        data = json.loads(library_file.read_text())
        assert sorted(i["id"] for i in data["trash"]) == ["3", "4"]

        result = runner.invoke(app, ["items", "restore", str(library_file), "3"])
        assert result.exit_code == 0
        assert json.loads(library_file.read_text())["items"][0]["id"] == "3"

    def test_move(self, library_file):
        result = runner.invoke(app, ["items", "move", str(library_file), "2", "5", "--to", "private-1"])
        assert result.exit_code == 0
        items = {i["id"]: i for i in json.loads(library_file.read_text())["items"]}
        assert items["2"]["space_id"] == "private-1"
        assert items["5"]["space_id"] == "private-1"

    def test_move_to_unknown_space_fails_as_batch(self, library_file):
        result = runner.invoke(app, ["items", "move", str(library_file), "1", "2", "--to", "ghost"])
        assert result.exit_code == 1
        out = _out(result)
        assert "Failed to move 2 items" in out

    def test_unknown_ids_only(self, library_file):
        result = runner.invoke(app, ["items", "delete", str(library_file), "nope"])
        assert result.exit_code == 1
        assert "Skipping unknown item nope" in _out(result)


class TestSpaceManagement:
    def _tree(self, library_file):
        return _json(runner.invoke(app, ["spaces", "tree", str(library_file), "--json"]))

    def test_add_space(self, library_file):
        result = runner.invoke(app, ["spaces", "add", str(library_file), "Reading List", "--category", "team"])
        assert result.exit_code == 0

        team = next(c for c in self._tree(library_file) if c["id"] == "team")
        assert team["spaces"][-1]["name"] == "Reading List"
        assert team["spaces"][-1]["slug"] == "reading-list"

    def test_add_space_to_unknown_category(self, library_file):
        result = runner.invoke(app, ["spaces", "add", str(library_file), "Stray", "--category", "ghost"])
        assert result.exit_code == 1

    def test_add_space_with_blank_name(self, library_file):
        result = runner.invoke(app, ["spaces", "add", str(library_file), "  ", "--category", "team"])
        assert result.exit_code == 1
        assert "Validation error" in _out(result)

    def test_remove_space_persists_and_prunes_order(self, library_file):
        runner.invoke(app, ["spaces", "move", str(library_file), "team-3", "--above", "team-1"])

        result = runner.invoke(app, ["spaces", "remove", str(library_file), "team-2"])
        assert result.exit_code == 0
        assert "2 items moved to overview" in _out(result)

        team = next(c for c in self._tree(library_file) if c["id"] == "team")
        assert [s["id"] for s in team["spaces"]] == ["team-3", "team-1"]
        items = {i["id"]: i for i in json.loads(library_file.read_text())["items"]}
        assert items["3"].get("space_id") is None
        assert items["4"].get("space_id") is None

    def test_remove_unknown_space(self, library_file):
        assert runner.invoke(app, ["spaces", "remove", str(library_file), "ghost"]).exit_code == 1

    def test_add_and_remove_category(self, library_file):
        result = runner.invoke(app, ["spaces", "add-category", str(library_file), "Research"])
        assert result.exit_code == 0
        assert [c["id"] for c in self._tree(library_file)] == ["shared", "team", "private", "research"]

        result = runner.invoke(app, ["spaces", "remove-category", str(library_file), "team"])
        assert result.exit_code == 0
        assert [c["id"] for c in self._tree(library_file)] == ["shared", "private", "research"]

        spaces = json.loads(library_file.read_text())["spaces"]
        assert not [s for s in spaces if s["category"] == "team"]

    def test_add_existing_category(self, library_file):
        result = runner.invoke(app, ["spaces", "add-category", str(library_file), "Team"])
        assert result.exit_code == 1

    def test_remove_unknown_category(self, library_file):
        assert runner.invoke(app, ["spaces", "remove-category", str(library_file), "ghost"]).exit_code == 1
