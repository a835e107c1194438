"""Tests for page calculation and the pagination helpers."""

import pytest

from crudgrid.client.pagination import (
    Paginator,
    TableView,
    first_page,
    jump_to_page,
    last_page,
    page_count_for,
    page_label,
    page_window,
    paginate,
    row_range,
)


@pytest.mark.parametrize(
    "total, size, expected",
    [(0, 10, 1), (1, 10, 1), (10, 10, 1), (11, 10, 2), (25, 5, 5)],
)
def test_page_count_is_at_least_one(total, size, expected):
    assert page_count_for(total, size) == expected


def test_page_count_rejects_non_positive_size():
    with pytest.raises(ValueError):
        page_count_for(5, 0)


def test_paginate_slices_and_reports_bounds():
    page = paginate(list(range(25)), page_size=10, page_index=2)
    assert page.page_rows == (20, 21, 22, 23, 24)
    assert page.page_count == 3
    assert page.total_items == 25
    assert page.can_previous is True
    assert page.can_next is False


def test_paginate_past_the_end_is_empty():
    page = paginate(list(range(5)), page_size=10, page_index=3)
    assert page.page_rows == ()
    assert page.page_index == 3


def test_empty_collection_has_one_empty_page():
    paginator = Paginator([], page_size=10)
    assert paginator.page_count == 1
    assert paginator.rows() == ()
    assert paginator.can_next is False
    assert paginator.can_previous is False


def test_navigation_stays_in_bounds():
    paginator = Paginator(range(25), page_size=10)
    paginator.previous_page()
    assert paginator.page_index == 0

    paginator.next_page()
    paginator.next_page()
    paginator.next_page()
    assert paginator.page_index == 2
    assert paginator.rows() == (20, 21, 22, 23, 24)

    paginator.go_to_page(99)
    assert paginator.page_index == 2
    paginator.go_to_page(-4)
    assert paginator.page_index == 0


def test_changing_page_size_resets_to_first_page():
    paginator = Paginator(range(50), page_size=10, initial_page=3)
    assert paginator.page_index == 3
    paginator.set_page_size(20)
    assert paginator.page_index == 0
    assert paginator.page_count == 3


def test_shrinking_data_clamps_page_index():
    paginator = Paginator(range(50), page_size=10, initial_page=4)
    paginator.set_data(range(15))
    assert paginator.page_index == 1
    assert paginator.rows() == (10, 11, 12, 13, 14)


def test_paginator_is_a_table_view():
    assert isinstance(Paginator([]), TableView)


def test_first_and_last_page():
    paginator = Paginator(range(42), page_size=10)
    last_page(paginator)
    assert paginator.page_index == 4
    first_page(paginator)
    assert paginator.page_index == 0


@pytest.mark.parametrize("text, accepted, index", [("3", True, 2), (" 1 ", True, 0), ("0", False, 0), ("9", False, 0), ("abc", False, 0)])
def test_jump_to_page(text, accepted, index):
    paginator = Paginator(range(50), page_size=10)
    assert jump_to_page(paginator, text) is accepted
    assert paginator.page_index == index


def test_page_window_centres_on_current_page():
    paginator = Paginator(range(100), page_size=10)
    assert page_window(paginator) == [0, 1, 2, 3, 4]
    paginator.go_to_page(5)
    assert page_window(paginator) == [3, 4, 5, 6, 7]
    paginator.go_to_page(9)
    assert page_window(paginator) == [5, 6, 7, 8, 9]
    assert page_window(Paginator(range(20), page_size=10)) == [0, 1]


def test_labels_and_row_range():
    paginator = Paginator(range(25), page_size=10, initial_page=2)
    assert page_label(paginator) == "Page 3 of 3"
    assert row_range(paginator) == (21, 25)
    assert row_range(Paginator([])) == (0, 0)
