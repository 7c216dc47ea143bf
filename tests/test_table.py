from __future__ import annotations

from core.pagination import ClientPaginator, ServerPagination
from core.table import LINK_TEXT, NO_COLUMNS_MESSAGE, NO_DATA_MESSAGE, build_table, display_columns


def _rows(n: int) -> list[dict[str, object]]:
    return [{"name": f"item {i}", "revenue": i * 1000.0, "url": "www.example.com"} for i in range(n)]


def test_columns_from_config_or_first_row() -> None:
    rows = _rows(1)
    assert display_columns(rows) == ["name", "revenue", "url"]
    assert display_columns(rows, ["revenue"]) == ["revenue"]
    assert display_columns([]) == []


def test_cells_are_formatted_and_paginated() -> None:
    config = {
        "table_columns": ["name", "revenue"],
        "column_formatting": {"revenue": {"type": "currency", "precision": 0}},
        "sort": [{"column": "revenue", "direction": "desc"}],
        "pagination": {"page_size": 5},
    }
    view = build_table(_rows(12), config, sortable=True)
    assert view.columns == ["name", "revenue"]
    assert [(h.column, h.sortable, h.sort_direction) for h in view.headers] == [
        ("name", True, None),
        ("revenue", True, "desc"),
    ]
    assert len(view.rows) == 5
    assert view.rows[1][1].text == "$1000"
    assert view.window.total_pages == 3
    assert view.empty_message is None


def test_url_cells_become_links_except_drill_target() -> None:
    view = build_table(_rows(1))
    url_cell = view.rows[0][2]
    assert url_cell.is_link and url_cell.text == LINK_TEXT
    assert url_cell.href == "https://www.example.com"

    drill = build_table(_rows(1), drill_column="url")
    cell = drill.rows[0][2]
    assert cell.is_drill_target and not cell.is_link
    assert cell.text == "www.example.com"


def test_disabled_pagination_shows_everything() -> None:
    view = build_table(_rows(30), {"pagination": {"enabled": False}})
    assert len(view.rows) == 30
    assert view.window.total_pages == 1


def test_external_paginator_is_used() -> None:
    rows = _rows(12)
    paginator = ClientPaginator(rows, page_size=5)
    paginator.go_last()
    view = build_table(rows, paginator=paginator)
    assert [c.text for c in view.rows[0]][:1] == ["item 10"]


def test_server_mode_shows_rows_verbatim() -> None:
    server = ServerPagination(page=3, page_size=5, total=12, on_page_change=lambda page: None)
    view = build_table(_rows(2), server=server)
    assert len(view.rows) == 2
    assert view.window.is_last_page
    assert view.to_dict()["pagination"]["summary"] == "Showing 11 to 12 of 12 rows"
    assert "rows" not in view.to_dict()["pagination"]


def test_empty_messages() -> None:
    assert build_table([]).empty_message == NO_DATA_MESSAGE
    assert build_table([{}]).empty_message == NO_COLUMNS_MESSAGE
