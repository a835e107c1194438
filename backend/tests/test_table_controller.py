"""Tests for the table controller."""

import pytest

from crudgrid.client.pagination import TableView, jump_to_page
from crudgrid.client.table import ColumnCustomization, ColumnKind, ColumnSpec, TableController
from crudgrid.models.table_state import SortDirection

from conftest import make_user

COLUMNS = [
    ColumnSpec("id", "ID", ColumnKind.NUMERIC),
    ColumnSpec("firstName", "First Name"),
    ColumnSpec("lastName", "Last Name"),
    ColumnSpec("age", "Age", ColumnKind.NUMERIC),
    ColumnSpec("email", "Email"),
    ColumnSpec("actions", "Actions", sortable=False, filterable=False, accessor=lambda row: None),
]


@pytest.fixture
def people():
    return [
        make_user(1, firstName="Charlie", lastName="Brown", age=30),
        make_user(2, firstName="alice", lastName="Smith", age=25),
        make_user(3, firstName="Bob", lastName="Brown", age=30),
        make_user(4, firstName="Dana", lastName="Adams", age=41),
    ]


def ids(rows):
    return [row.id for row in rows]


def test_initial_view_shows_everything_unsorted(people):
    table = TableController(people, COLUMNS)
    assert ids(table.rows()) == [1, 2, 3, 4]
    assert table.page_count == 1
    assert isinstance(table, TableView)


def test_filter_is_case_insensitive_substring(people):
    table = TableController(people, COLUMNS)
    table.set_column_filter("firstName", "AL")
    assert ids(table.rows()) == [2]

    table.set_column_filter("firstName", "")
    assert ids(table.rows()) == [1, 2, 3, 4]
    assert table.state.column_filters == {}


def test_filters_combine(people):
    table = TableController(people, COLUMNS)
    table.set_column_filter("lastName", "brown")
    table.set_column_filter("age", "30")
    assert ids(table.rows()) == [1, 3]


def test_text_sort_ignores_case(people):
    table = TableController(people, COLUMNS)
    table.set_sort("firstName", SortDirection.ASC)
    assert ids(table.rows()) == [2, 3, 1, 4]
    table.set_sort("firstName", SortDirection.DESC)
    assert ids(table.rows()) == [4, 1, 3, 2]


def test_numeric_sort_is_numeric():
    rows = [make_user(i, age=age) for i, age in [(1, 9), (2, 100), (3, 20)]]
    table = TableController(rows, COLUMNS)
    table.set_sort("age", SortDirection.ASC)
    assert ids(table.rows()) == [1, 3, 2]


def test_multi_column_sort_keeps_precedence(people):
    table = TableController(people, COLUMNS)
    table.set_sort("lastName", SortDirection.ASC)
    table.set_sort("firstName", SortDirection.ASC, additive=True)
    assert ids(table.rows()) == [4, 3, 1, 2]
    assert [k.column_id for k in table.state.sorting] == ["lastName", "firstName"]


def test_sort_is_stable_for_equal_keys(people):
    table = TableController(people, COLUMNS)
    table.set_sort("age", SortDirection.ASC)
    assert ids(table.rows()) == [2, 1, 3, 4]


def test_toggle_sort_cycles(people):
    table = TableController(people, COLUMNS)
    table.toggle_sort("age")
    assert table.sort_direction("age") == SortDirection.ASC
    table.toggle_sort("age")
    assert table.sort_direction("age") == SortDirection.DESC
    table.toggle_sort("age")
    assert table.sort_direction("age") is None
    assert ids(table.rows()) == [1, 2, 3, 4]


def test_clearing_one_sort_keeps_the_others(people):
    table = TableController(people, COLUMNS)
    table.set_sort("lastName", SortDirection.ASC)
    table.set_sort("firstName", SortDirection.ASC, additive=True)

    table.set_sort("lastName", None)
    assert [k.column_id for k in table.state.sorting] == ["firstName"]
    assert ids(table.rows()) == [2, 3, 1, 4]


def test_unsortable_and_unknown_columns_are_rejected(people):
    table = TableController(people, COLUMNS)
    with pytest.raises(ValueError):
        table.set_sort("actions", SortDirection.ASC)
    with pytest.raises(ValueError):
        table.set_column_filter("actions", "x")
    with pytest.raises(KeyError):
        table.set_sort("nope", SortDirection.ASC)


def test_visibility_and_customization(people):
    customization = ColumnCustomization(
        hidden=("email",),
        order=("age", "id"),
        widths={"age": 80},
        headers={"firstName": "Given name"},
    )
    table = TableController(people, COLUMNS, customization)
    visible = table.visible_columns()
    assert [c.id for c in visible] == ["age", "id", "firstName", "lastName", "actions"]
    assert visible[0].width == 80
    assert visible[2].title == "Given name"

    table.set_column_visible("email", True)
    table.set_column_visible("actions", False)
    assert [c.id for c in table.visible_columns()] == ["age", "id", "firstName", "lastName", "email"]


def test_filter_that_shrinks_rows_clamps_page():
    rows = [make_user(i, firstName="Ann" if i <= 3 else "Zed") for i in range(1, 26)]
    table = TableController(rows, COLUMNS, page_size=10)
    table.set_page_index(2)
    assert ids(table.rows()) == list(range(21, 26))

    table.set_column_filter("firstName", "ann")
    assert table.page_index == 0
    assert table.page_count == 1
    assert ids(table.rows()) == [1, 2, 3]


def test_page_size_change_returns_to_first_page():
    rows = [make_user(i) for i in range(1, 51)]
    table = TableController(rows, COLUMNS, page_size=10)
    assert jump_to_page(table, "4")
    assert table.page_index == 3

    table.set_page_size(20)
    assert table.page_index == 0
    assert table.page_count == 3
    assert len(table.rows()) == 20


def test_empty_table_has_one_page():
    table = TableController([], COLUMNS)
    assert table.page_count == 1
    assert table.rows() == ()
    assert table.can_next is False


def test_repeated_calls_do_not_recompute(people):
    table = TableController(people, COLUMNS)
    seen = []
    table.subscribe(lambda t: seen.append(t.revision))

    table.set_column_filter("firstName", "b")
    revision = table.revision
    table.set_column_filter("firstName", "b")
    table.set_page_index(0)
    table.set_page_size(10)

    assert table.revision == revision
    assert len(seen) == 1


def test_set_data_keeps_filters_and_sorting(people):
    table = TableController(people, COLUMNS)
    table.set_sort("age", SortDirection.DESC)
    table.set_column_filter("lastName", "brown")
    table.set_data(people + [make_user(5, lastName="Browning", age=50)])
    assert ids(table.rows()) == [5, 1, 3]
