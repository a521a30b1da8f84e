"""Tests for the pagination engine."""

import pytest

from cortex.exceptions import PageSizeError
from cortex.models.filters import FilterState
from cortex.services.pagination import (
    Paginator,
    clamp_page,
    paginate,
    total_pages_for,
    validate_page_size,
)


class TestPaginate:
    def test_middle_page(self):
        page = paginate(list(range(120)), 2, 50)
        assert page.items == list(range(50, 100))
        assert (page.start_index, page.end_index) == (50, 100)
        assert page.total_pages == 3
        assert page.has_next and page.has_prev

    def test_last_partial_page(self):
        page = paginate(list(range(120)), 3, 50)
        assert page.items == list(range(100, 120))
        assert page.end_index == 120
        assert not page.has_next

    def test_empty_input_has_one_page(self):
        page = paginate([], 1, 25)
        assert page.total_pages == 1
        assert page.current_page == 1
        assert page.items == []
        assert (page.start_index, page.end_index) == (0, 0)

    @pytest.mark.parametrize("requested,expected", [(0, 1), (-4, 1), (99, 3)])
    def test_out_of_range_pages_clamp(self, requested, expected):
        assert paginate(list(range(60)), requested, 25).current_page == expected

    def test_pages_cover_every_item_once(self):
        items = list(range(101))
        seen = []
        for number in range(1, total_pages_for(len(items), 25) + 1):
            seen.extend(paginate(items, number, 25).items)
        assert seen == items

    @pytest.mark.parametrize("size", [0, 10, 30, 200, True])
    def test_rejects_unsupported_page_size(self, size):
        with pytest.raises(PageSizeError):
            paginate([1, 2, 3], 1, size)

    def test_helpers(self):
        assert total_pages_for(0, 25) == 1
        assert total_pages_for(26, 25) == 2
        assert clamp_page(5, 2) == 2
        assert validate_page_size(100) == 100


class TestPaginator:
    def test_initial_page_size_from_preferences(self, prefs):
        prefs.set_page_size(50)
        assert Paginator(preferences=prefs).page_size == 50

    def test_defaults_without_preferences(self):
        paginator = Paginator()
        assert paginator.page_size == 25
        assert paginator.current_page == 1

    def test_next_and_previous_stop_at_bounds(self):
        paginator = Paginator()
        assert paginator.previous_page() == 1
        assert paginator.next_page(60) == 2
        assert paginator.next_page(60) == 3
        assert paginator.next_page(60) == 3

    def test_go_to_page_clamps(self):
        paginator = Paginator()
        assert paginator.go_to_page(10, 60) == 3

    def test_page_clamps_cursor_when_items_shrink(self):
        paginator = Paginator()
        paginator.go_to_page(3, 60)
        page = paginator.page(list(range(30)))
        assert page.current_page == 2
        assert paginator.current_page == 2

    def test_change_page_size_keeps_first_item_visible(self, prefs):
        paginator = Paginator(preferences=prefs)
        paginator.go_to_page(3, 200)  # items 50..74

        assert paginator.change_page_size(50, 200) == 2  # items 50..99
        assert prefs.get_page_size() == 50

    def test_change_page_size_to_smaller(self):
        paginator = Paginator(page_size=100)
        paginator.go_to_page(2, 250)  # items 100..199
        assert paginator.change_page_size(25, 250) == 5  # items 100..124

    def test_invalid_page_size_leaves_state_unchanged(self, prefs):
        paginator = Paginator(preferences=prefs)
        paginator.go_to_page(2, 100)

        with pytest.raises(PageSizeError):
            paginator.change_page_size(40, 100)

        assert paginator.page_size == 25
        assert paginator.current_page == 2
        assert prefs.get_page_size() == 25

    def test_query_change_resets_to_first_page(self):
        paginator = Paginator()
        assert paginator.sync_query(FilterState.default(), "") is False
        paginator.go_to_page(3, 100)

        assert paginator.sync_query(FilterState.default(), "") is False
        assert paginator.current_page == 3

        assert paginator.sync_query(FilterState.build(types=["PDF"]), "") is True
        assert paginator.current_page == 1

    def test_search_change_resets_to_first_page(self):
        paginator = Paginator()
        paginator.sync_query(FilterState.default(), "")
        paginator.go_to_page(2, 100)

        assert paginator.sync_query(FilterState.default(), "notes") is True
        assert paginator.current_page == 1
