"""Page-window calculation over a row model or a plain sequence."""

import math
from dataclasses import dataclass
from typing import Any, List, Protocol, Sequence, Tuple, runtime_checkable


@dataclass(frozen=True)
class Page:
    """One page of a collection."""

    page_rows: Tuple[Any, ...]
    page_index: int
    page_size: int
    page_count: int
    total_items: int
    can_previous: bool
    can_next: bool


def page_count_for(total_items: int, page_size: int) -> int:
    """Number of pages, never less than one."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return max(1, math.ceil(total_items / page_size))


def clamp_page_index(page_index: int, page_count: int) -> int:
    return max(0, min(page_index, page_count - 1))


def paginate(collection: Sequence[Any], page_size: int, page_index: int) -> Page:
    """Slice ``collection`` to the requested page.

    ``page_index`` is used as given: an index past the end yields an empty
    page rather than being moved back.
    """
    page_count = page_count_for(len(collection), page_size)
    start = max(0, page_index) * page_size
    rows = tuple(collection[start:start + page_size])
    return Page(
        page_rows=rows,
        page_index=page_index,
        page_size=page_size,
        page_count=page_count,
        total_items=len(collection),
        can_previous=page_index > 0,
        can_next=page_index < page_count - 1,
    )


@runtime_checkable
class TableView(Protocol):
    """What pagination controls need from anything that pages rows."""

    @property
    def page_index(self) -> int: ...

    @property
    def page_size(self) -> int: ...

    @property
    def page_count(self) -> int: ...

    @property
    def can_previous(self) -> bool: ...

    @property
    def can_next(self) -> bool: ...

    def rows(self) -> Tuple[Any, ...]: ...

    def set_page_index(self, page_index: int) -> None: ...

    def set_page_size(self, page_size: int) -> None: ...


class Paginator:
    """Pagination state over a plain sequence.

    Changing the page size goes back to the first page.
    """

    def __init__(self, data: Sequence[Any], page_size: int = 10, initial_page: int = 0):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._data = tuple(data)
        self._page_size = page_size
        self._page_index = clamp_page_index(initial_page, page_count_for(len(self._data), page_size))

    @property
    def page(self) -> Page:
        return paginate(self._data, self._page_size, self._page_index)

    @property
    def page_index(self) -> int:
        return self._page_index

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def page_count(self) -> int:
        return page_count_for(len(self._data), self._page_size)

    @property
    def total_items(self) -> int:
        return len(self._data)

    @property
    def can_previous(self) -> bool:
        return self._page_index > 0

    @property
    def can_next(self) -> bool:
        return self._page_index < self.page_count - 1

    def rows(self) -> Tuple[Any, ...]:
        return self.page.page_rows

    def set_data(self, data: Sequence[Any]) -> None:
        """Replace the data, keeping the page index inside the new bounds."""
        self._data = tuple(data)
        self._page_index = clamp_page_index(self._page_index, self.page_count)

    def go_to_page(self, page_index: int) -> None:
        self._page_index = clamp_page_index(page_index, self.page_count)

    set_page_index = go_to_page

    def next_page(self) -> None:
        if self.can_next:
            self._page_index += 1

    def previous_page(self) -> None:
        if self.can_previous:
            self._page_index -= 1

    def set_page_size(self, page_size: int) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._page_size = page_size
        self._page_index = 0


# Helpers for pagination controls, usable with any TableView.


def first_page(view: TableView) -> None:
    view.set_page_index(0)


def last_page(view: TableView) -> None:
    view.set_page_index(view.page_count - 1)


def jump_to_page(view: TableView, text: str) -> bool:
    """Apply a 1-based page number typed by the user.

    Returns False and leaves the view alone for anything that is not a page
    number within range.
    """
    try:
        page = int(str(text).strip())
    except ValueError:
        return False
    if page < 1 or page > view.page_count:
        return False
    view.set_page_index(page - 1)
    return True


def page_window(view: TableView, max_buttons: int = 5) -> List[int]:
    """0-based page indexes to render as buttons, centred on the current page."""
    if max_buttons <= 0:
        return []
    count = view.page_count
    if count <= max_buttons:
        return list(range(count))
    start = view.page_index - max_buttons // 2
    start = max(0, min(start, count - max_buttons))
    return list(range(start, start + max_buttons))


def page_label(view: TableView) -> str:
    return f"Page {view.page_index + 1} of {view.page_count}"


def row_range(view: TableView) -> Tuple[int, int]:
    """1-based first and last row numbers shown on the current page, (0, 0) if none."""
    shown = len(view.rows())
    if shown == 0:
        return (0, 0)
    first = view.page_index * view.page_size + 1
    return (first, first + shown - 1)
