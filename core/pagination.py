from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Union

DEFAULT_PAGE_SIZE = 10
PAGE_SIZE_OPTIONS = (10, 20, 50, 100, 200)

Row = dict


@dataclass(frozen=True)
class ClientPagination:
    """The table holds every row and slices the current page locally."""

    page_size: int = DEFAULT_PAGE_SIZE
    page: int = 1


@dataclass(frozen=True)
class ServerPagination:
    """The source windows rows itself; the table only reflects its state."""

    page: int
    page_size: int
    total: int
    on_page_change: Callable[[int], Any]
    on_page_size_change: Optional[Callable[[int], Any]] = None


PaginationMode = Union[ClientPagination, ServerPagination]


@dataclass(frozen=True)
class PageWindow:
    visible_rows: List[Row]
    page: int
    page_size: int
    total: int
    total_pages: int
    is_first_page: bool
    is_last_page: bool
    can_change_page_size: bool = True
    page_size_options: Sequence[int] = field(default=PAGE_SIZE_OPTIONS)

    @property
    def start_row(self) -> int:
        return (self.page - 1) * self.page_size + 1

    @property
    def end_row(self) -> int:
        return min(self.page * self.page_size, self.total)

    @property
    def show_controls(self) -> bool:
        return self.total > 0

    @property
    def summary(self) -> str:
        return f"Showing {self.start_row} to {self.end_row} of {self.total:,} rows"

    def to_dict(self) -> dict:
        return {
            "rows": list(self.visible_rows),
            "page": self.page,
            "page_size": self.page_size,
            "total": self.total,
            "total_pages": self.total_pages,
            "is_first_page": self.is_first_page,
            "is_last_page": self.is_last_page,
            "start_row": self.start_row,
            "end_row": self.end_row,
            "show_controls": self.show_controls,
            "can_change_page_size": self.can_change_page_size,
            "page_size_options": list(self.page_size_options),
            "summary": self.summary,
        }


def _check_page_size(page_size: int) -> int:
    page_size = int(page_size)
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    return page_size


def client_total_pages(total: int, page_size: int) -> int:
    return max(1, math.ceil(total / page_size))


class ClientPaginator:
    """Local page state over a complete row collection."""

    def __init__(self, rows: Sequence[Row] = (), *, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._rows = rows
        self._page_size = _check_page_size(page_size)
        self._page = 1

    @property
    def mode(self) -> ClientPagination:
        return ClientPagination(page_size=self._page_size, page=self._page)

    @property
    def rows(self) -> Sequence[Row]:
        return self._rows

    @property
    def total_pages(self) -> int:
        return client_total_pages(len(self._rows), self._page_size)

    def set_rows(self, rows: Sequence[Row]) -> None:
        # A new collection starts from the first page; the same object does not.
        if rows is not self._rows:
            self._page = 1
        self._rows = rows

    def window(self) -> PageWindow:
        total = len(self._rows)
        start = (self._page - 1) * self._page_size
        total_pages = self.total_pages
        return PageWindow(
            visible_rows=list(self._rows[start : start + self._page_size]),
            page=self._page,
            page_size=self._page_size,
            total=total,
            total_pages=total_pages,
            is_first_page=self._page == 1,
            is_last_page=self._page >= total_pages,
        )

    def set_page(self, page: int) -> None:
        self._page = max(1, min(int(page), self.total_pages))

    def set_page_size(self, page_size: int) -> None:
        self._page_size = _check_page_size(page_size)
        self._page = 1

    def go_first(self) -> None:
        self.set_page(1)

    def go_prev(self) -> None:
        self.set_page(self._page - 1)

    def go_next(self) -> None:
        self.set_page(self._page + 1)

    def go_last(self) -> None:
        self.set_page(self.total_pages)


class ServerPaginator:
    """Reflects an externally owned page; actions go to the owner's callbacks."""

    def __init__(self, rows: Sequence[Row], descriptor: ServerPagination) -> None:
        self._rows = rows
        self.descriptor = descriptor
        _check_page_size(descriptor.page_size)

    @property
    def mode(self) -> ServerPagination:
        return self.descriptor

    @property
    def rows(self) -> Sequence[Row]:
        return self._rows

    @property
    def total_pages(self) -> int:
        return math.ceil(self.descriptor.total / self.descriptor.page_size)

    @property
    def is_first_page(self) -> bool:
        return self.descriptor.page == 1

    @property
    def is_last_page(self) -> bool:
        d = self.descriptor
        return d.page * d.page_size >= d.total

    def set_rows(self, rows: Sequence[Row]) -> None:
        self._rows = rows

    def window(self) -> PageWindow:
        d = self.descriptor
        return PageWindow(
            visible_rows=list(self._rows),
            page=d.page,
            page_size=d.page_size,
            total=d.total,
            total_pages=self.total_pages,
            is_first_page=self.is_first_page,
            is_last_page=self.is_last_page,
            can_change_page_size=d.on_page_size_change is not None,
        )

    def set_page(self, page: int) -> None:
        self.descriptor.on_page_change(int(page))

    def set_page_size(self, page_size: int) -> None:
        if self.descriptor.on_page_size_change is None:
            return
        self.descriptor.on_page_size_change(_check_page_size(page_size))

    def go_first(self) -> None:
        if not self.is_first_page:
            self.set_page(1)

    def go_prev(self) -> None:
        if not self.is_first_page:
            self.set_page(self.descriptor.page - 1)

    def go_next(self) -> None:
        if not self.is_last_page:
            self.set_page(self.descriptor.page + 1)

    def go_last(self) -> None:
        if not self.is_last_page:
            self.set_page(max(1, self.total_pages))


Paginator = Union[ClientPaginator, ServerPaginator]


def make_paginator(
    rows: Sequence[Row],
    server: Optional[ServerPagination] = None,
    *,
    page_size: Optional[int] = None,
) -> Paginator:
    """Server mode when a descriptor is supplied, client mode otherwise."""
    if server is not None:
        return ServerPaginator(rows, server)
    return ClientPaginator(rows, page_size=page_size or DEFAULT_PAGE_SIZE)


def resolve_window(rows: Sequence[Row], mode: PaginationMode) -> PageWindow:
    """One-shot window for a mode value without keeping a paginator around."""
    if isinstance(mode, ServerPagination):
        return ServerPaginator(rows, mode).window()
    paginator = ClientPaginator(rows, page_size=mode.page_size)
    paginator.set_page(mode.page)
    return paginator.window()
