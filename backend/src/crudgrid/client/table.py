"""Table controller: one queryable view over filters, sorting, visibility and paging.

The controller owns its ``TableState``. Every accepted change produces a
new state and a new row view in one step, so readers of ``rows()`` never
see a half-applied change. Repeating a call with the same arguments is a
no-op.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic.alias_generators import to_snake

from crudgrid.client.pagination import clamp_page_index, page_count_for
from crudgrid.models.table_state import SortDirection, SortKey, TableState

logger = logging.getLogger(__name__)


class ColumnKind(str, Enum):
    """How a column's values compare when sorting."""

    TEXT = "text"
    NUMERIC = "numeric"


def field_value(row: Any, name: str) -> Any:
    """Read ``name`` from a mapping or an object.

    Objects are tried with the name as given, then in snake_case, so
    ``firstName`` finds ``User.first_name``.
    """
    if isinstance(row, Mapping):
        return row.get(name)
    if hasattr(row, name):
        return getattr(row, name)
    return getattr(row, to_snake(name), None)


@dataclass(frozen=True)
class ColumnSpec:
    """A table column and its presentation metadata."""

    id: str
    header: Optional[str] = None
    kind: ColumnKind = ColumnKind.TEXT
    accessor: Optional[Callable[[Any], Any]] = field(default=None, compare=False)
    sortable: bool = True
    filterable: bool = True
    width: Optional[int] = None

    @property
    def title(self) -> str:
        return self.header if self.header is not None else self.id

    def value_of(self, row: Any) -> Any:
        if self.accessor is not None:
            return self.accessor(row)
        return field_value(row, self.id)


@dataclass(frozen=True)
class ColumnCustomization:
    """Static column presentation settings, applied once at construction."""

    hidden: Tuple[str, ...] = ()
    order: Tuple[str, ...] = ()
    widths: Mapping[str, int] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)


def ordered_columns(columns: Sequence[ColumnSpec], order: Sequence[str]) -> List[ColumnSpec]:
    """Columns named in ``order`` first, in that order; the rest keep their original order."""
    by_id = {c.id: c for c in columns}
    named = [by_id[column_id] for column_id in dict.fromkeys(order) if column_id in by_id]
    named_ids = {c.id for c in named}
    return named + [c for c in columns if c.id not in named_ids]


def _matches(value: Any, needle: str) -> bool:
    haystack = "" if value is None else str(value)
    return needle.casefold() in haystack.casefold()


def _sort_value(column: ColumnSpec, row: Any) -> Any:
    """Comparable value for ``row``, or None when it has nothing to compare."""
    value = column.value_of(row)
    if value is None:
        return None
    if column.kind == ColumnKind.NUMERIC:
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
    return str(value).casefold()


def sort_rows(rows: Sequence[Any], sorting: Sequence[SortKey], columns: Mapping[str, ColumnSpec]) -> List[Any]:
    """Stable multi-key sort. Earlier keys take precedence; rows without a value go last."""
    result = list(rows)
    for key in reversed(sorting):
        column = columns[key.column_id]
        keyed = [(_sort_value(column, row), row) for row in result]
        present = [pair for pair in keyed if pair[0] is not None]
        missing = [row for value, row in keyed if value is None]
        present.sort(key=lambda pair: pair[0], reverse=key.descending)
        result = [row for _, row in present] + missing
    return result


@dataclass(frozen=True)
class _View:
    state: TableState
    row_model: Tuple[Any, ...]
    page_rows: Tuple[Any, ...]
    page_count: int


TableListener = Callable[["TableController"], None]


class TableController:
    """Filters, sorts and pages a collection for presentation."""

    def __init__(
        self,
        collection: Sequence[Any],
        columns: Sequence[ColumnSpec],
        customization: Optional[ColumnCustomization] = None,
        page_size: int = 10,
    ):
        ids = [c.id for c in columns]
        if len(ids) != len(set(ids)):
            raise ValueError("Column ids must be unique")

        self.customization = customization or ColumnCustomization()
        self._columns: Tuple[ColumnSpec, ...] = tuple(columns)
        self._by_id: Dict[str, ColumnSpec] = {c.id: c for c in self._columns}
        self._presented = tuple(self._present(self._columns, self.customization))
        self._data: Tuple[Any, ...] = tuple(collection)
        self._listeners: List[TableListener] = []
        self.revision = 0

        state = TableState(
            column_visibility={column_id: False for column_id in self.customization.hidden if column_id in self._by_id},
            page_size=page_size,
        )
        self._view = self._compute(state, self._data)

    @staticmethod
    def _present(columns: Sequence[ColumnSpec], customization: ColumnCustomization) -> List[ColumnSpec]:
        presented = []
        for column in ordered_columns(columns, customization.order):
            changes: Dict[str, Any] = {}
            if column.id in customization.widths:
                changes["width"] = customization.widths[column.id]
            if column.id in customization.headers:
                changes["header"] = customization.headers[column.id]
            presented.append(replace(column, **changes) if changes else column)
        return presented

    def _compute(self, state: TableState, data: Tuple[Any, ...]) -> _View:
        rows: Sequence[Any] = data
        for column_id, needle in state.column_filters.items():
            column = self._by_id[column_id]
            rows = [row for row in rows if _matches(column.value_of(row), needle)]
        rows = sort_rows(rows, state.sorting, self._by_id)

        page_count = page_count_for(len(rows), state.page_size)
        page_index = clamp_page_index(state.page_index, page_count)
        if page_index != state.page_index:
            state = state.model_copy(update={"page_index": page_index})

        start = page_index * state.page_size
        self.revision += 1
        return _View(
            state=state,
            row_model=tuple(rows),
            page_rows=tuple(rows[start:start + state.page_size]),
            page_count=page_count,
        )

    def _apply(self, state: TableState, data: Optional[Tuple[Any, ...]] = None) -> None:
        data = self._data if data is None else data
        if data is self._data and state.model_dump() == self._view.state.model_dump():
            return
        view = self._compute(state, data)
        self._data, self._view = data, view
        for listener in list(self._listeners):
            listener(self)

    def _column(self, column_id: str) -> ColumnSpec:
        try:
            return self._by_id[column_id]
        except KeyError:
            raise KeyError(f"Unknown column: {column_id}") from None

    def subscribe(self, listener: TableListener) -> Callable[[], None]:
        """Call ``listener(controller)`` after every recomputation."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # Reading

    @property
    def state(self) -> TableState:
        return self._view.state

    @property
    def columns(self) -> Tuple[ColumnSpec, ...]:
        return self._columns

    def rows(self) -> Tuple[Any, ...]:
        """Rows of the current page after filtering and sorting."""
        return self._view.page_rows

    def row_model(self) -> Tuple[Any, ...]:
        """All rows after filtering and sorting, before paging."""
        return self._view.row_model

    @property
    def data(self) -> Tuple[Any, ...]:
        return self._data

    @property
    def total_rows(self) -> int:
        return len(self._view.row_model)

    @property
    def page_index(self) -> int:
        return self._view.state.page_index

    @property
    def page_size(self) -> int:
        return self._view.state.page_size

    @property
    def page_count(self) -> int:
        return self._view.page_count

    @property
    def can_previous(self) -> bool:
        return self.page_index > 0

    @property
    def can_next(self) -> bool:
        return self.page_index < self.page_count - 1

    def visible_columns(self) -> Tuple[ColumnSpec, ...]:
        """Customized columns in display order, without hidden ones."""
        state = self._view.state
        return tuple(c for c in self._presented if state.is_visible(c.id))

    def filter_value(self, column_id: str) -> str:
        return self._view.state.column_filters.get(column_id, "")

    def sort_direction(self, column_id: str) -> Optional[SortDirection]:
        for key in self._view.state.sorting:
            if key.column_id == column_id:
                return key.direction
        return None

    # Mutating

    def set_data(self, collection: Sequence[Any]) -> None:
        """Replace the rows, keeping filters, sorting and a clamped page index."""
        self._apply(self._view.state, tuple(collection))

    def set_column_filter(self, column_id: str, value: Optional[str]) -> None:
        """Case-insensitive substring filter; an empty value removes it."""
        column = self._column(column_id)
        if not column.filterable:
            raise ValueError(f"Column {column_id} is not filterable")

        filters = dict(self._view.state.column_filters)
        if value:
            filters[column_id] = str(value)
        else:
            filters.pop(column_id, None)
        self._apply(self._view.state.model_copy(update={"column_filters": filters}))

    def set_sort(self, column_id: str, direction: Optional[SortDirection], additive: bool = False) -> None:
        """Sort by ``column_id``; None removes that column and keeps the other keys.

        Without ``additive`` the column becomes the only sort key. With it
        the column's entry is replaced in place or appended.
        """
        column = self._column(column_id)
        if not column.sortable:
            raise ValueError(f"Column {column_id} is not sortable")

        direction = SortDirection(direction) if direction is not None else None
        current = list(self._view.state.sorting)
        if direction is None:
            sorting = [k for k in current if k.column_id != column_id]
        elif not additive:
            sorting = [SortKey(column_id=column_id, direction=direction)]
        elif any(k.column_id == column_id for k in current):
            sorting = [
                SortKey(column_id=column_id, direction=direction) if k.column_id == column_id else k
                for k in current
            ]
        else:
            sorting = current + [SortKey(column_id=column_id, direction=direction)]
        self._apply(self._view.state.model_copy(update={"sorting": tuple(sorting)}))

    def toggle_sort(self, column_id: str, additive: bool = False) -> None:
        """Header-click cycle: none -> ascending -> descending -> none."""
        direction = self.sort_direction(column_id)
        if direction is None:
            self.set_sort(column_id, SortDirection.ASC, additive)
        elif direction == SortDirection.ASC:
            self.set_sort(column_id, SortDirection.DESC, additive)
        else:
            self.set_sort(column_id, None, additive=True)

    def set_column_visible(self, column_id: str, visible: bool) -> None:
        self._column(column_id)
        visibility = dict(self._view.state.column_visibility)
        visibility[column_id] = bool(visible)
        self._apply(self._view.state.model_copy(update={"column_visibility": visibility}))

    def set_page_index(self, page_index: int) -> None:
        page_index = clamp_page_index(int(page_index), self.page_count)
        self._apply(self._view.state.model_copy(update={"page_index": page_index}))

    def next_page(self) -> None:
        if self.can_next:
            self.set_page_index(self.page_index + 1)

    def previous_page(self) -> None:
        if self.can_previous:
            self.set_page_index(self.page_index - 1)

    def set_page_size(self, page_size: int) -> None:
        """Change the page size and go back to the first page."""
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        if page_size == self.page_size:
            return
        self._apply(self._view.state.model_copy(update={"page_size": page_size, "page_index": 0}))
