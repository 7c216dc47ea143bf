"""Render model for a table chart.

``build_table`` takes fetched rows plus the chart's table configuration and
produces everything a front end needs to draw the table: the header row with
its sort indicators, the formatted cells of the visible page, and the
pagination window.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from core.filters import TableConfig, normalize_table_config
from core.formatting import format_value, is_url, normalize_url
from core.pagination import ClientPaginator, PageWindow, Paginator, ServerPagination, make_paginator
from core.sorting import SortDirection

NO_DATA_MESSAGE = "No data available"
NO_COLUMNS_MESSAGE = "No columns configured"
LINK_TEXT = "Link"


@dataclass(frozen=True)
class HeaderView:
    column: str
    sortable: bool = False
    sort_direction: Optional[SortDirection] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"column": self.column, "sortable": self.sortable, "sort_direction": self.sort_direction}


@dataclass(frozen=True)
class CellView:
    column: str
    raw: Any
    text: str
    href: Optional[str] = None
    is_drill_target: bool = False

    @property
    def is_link(self) -> bool:
        return self.href is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column": self.column,
            "raw": self.raw,
            "text": self.text,
            "is_link": self.is_link,
            "href": self.href,
            "is_drill_target": self.is_drill_target,
        }


@dataclass(frozen=True)
class TableView:
    columns: List[str]
    headers: List[HeaderView]
    rows: List[List[CellView]]
    window: PageWindow
    empty_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        page = self.window.to_dict()
        page.pop("rows")
        return {
            "columns": list(self.columns),
            "headers": [h.to_dict() for h in self.headers],
            "rows": [[c.to_dict() for c in row] for row in self.rows],
            "pagination": page,
            "empty_message": self.empty_message,
        }


def display_columns(rows: Sequence[Mapping[str, Any]], table_columns: Optional[Sequence[str]] = None) -> List[str]:
    if table_columns:
        return list(table_columns)
    if rows:
        return list(rows[0].keys())
    return []


def render_cell(value: Any, column: str, config: TableConfig, drill_column: Optional[str] = None) -> CellView:
    is_drill_target = drill_column is not None and column == drill_column
    if not is_drill_target and is_url(value):
        return CellView(column=column, raw=value, text=LINK_TEXT, href=normalize_url(value))
    text = format_value(value, config.column_formatting.get(column))
    return CellView(column=column, raw=value, text=text, is_drill_target=is_drill_target)


def build_table(
    rows: Sequence[Mapping[str, Any]],
    config: Any = None,
    *,
    server: Optional[ServerPagination] = None,
    paginator: Optional[Paginator] = None,
    sortable: bool = False,
    drill_column: Optional[str] = None,
) -> TableView:
    cfg = config if isinstance(config, TableConfig) else normalize_table_config(config)
    columns = display_columns(rows, cfg.table_columns)

    if paginator is None:
        if server is None and not cfg.pagination.enabled:
            paginator = ClientPaginator(rows, page_size=max(1, len(rows)))
        else:
            paginator = make_paginator(rows, server, page_size=cfg.pagination.page_size)
    window = paginator.window()

    active = cfg.active_sort
    headers = [
        HeaderView(
            column=c,
            sortable=sortable,
            sort_direction=active.direction if active is not None and active.column == c else None,
        )
        for c in columns
    ]
    body = [[render_cell(row.get(c), c, cfg, drill_column) for c in columns] for row in window.visible_rows]

    empty_message = None
    if not rows:
        empty_message = NO_DATA_MESSAGE
    elif not columns:
        empty_message = NO_COLUMNS_MESSAGE
    return TableView(columns=columns, headers=headers, rows=body, window=window, empty_message=empty_message)
