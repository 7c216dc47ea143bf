from __future__ import annotations

from core.sorting import SortController, SortSpec, next_sort, parse_sort, sort_rows


def test_header_clicks_cycle_direction() -> None:
    first = next_sort(None, "revenue")
    assert first == SortSpec("revenue", "asc")
    second = next_sort(first, "revenue")
    assert second.direction == "desc"
    assert next_sort(second, "revenue").direction == "asc"
    assert next_sort(second, "units") == SortSpec("units", "asc")


def test_controller_reports_to_callback() -> None:
    seen: list[tuple[str, str]] = []
    controller = SortController(on_sort=lambda column, direction: seen.append((column, direction)))
    assert controller.enabled
    controller.on_header_click("revenue")
    controller.on_header_click("revenue")
    assert seen == [("revenue", "asc"), ("revenue", "desc")]
    assert controller.direction_for("revenue") == "desc"
    assert controller.direction_for("units") is None


def test_controller_without_callback_is_disabled() -> None:
    controller = SortController()
    assert not controller.enabled
    assert controller.on_header_click("a") == SortSpec("a", "asc")


def test_parse_sort_takes_first_valid_entry() -> None:
    raw = [{"column": ""}, {"column": "a", "direction": "sideways"}, {"column": "b", "direction": "desc"}, {"column": "c"}]
    assert parse_sort(raw) == SortSpec("b", "desc")
    assert parse_sort(None) is None
    assert parse_sort(["nope"]) is None


def test_sort_numeric_with_nulls_last() -> None:
    rows = [{"v": 3}, {"v": None}, {"v": 10}, {"v": 1}]
    assert [r["v"] for r in sort_rows(rows, SortSpec("v", "asc"))] == [1, 3, 10, None]
    assert [r["v"] for r in sort_rows(rows, SortSpec("v", "desc"))] == [10, 3, 1, None]


def test_sort_strings_case_insensitive_and_stable() -> None:
    rows = [{"k": "b", "i": 0}, {"k": "A", "i": 1}, {"k": "a", "i": 2}, {"k": "C", "i": 3}]
    assert [r["i"] for r in sort_rows(rows, SortSpec("k"))] == [1, 2, 0, 3]


def test_sort_missing_column_keeps_order() -> None:
    rows = [{"a": 2}, {"a": 1}]
    assert sort_rows(rows, SortSpec("zzz")) == rows
    assert sort_rows(rows, None) == rows
    assert sort_rows([], SortSpec("a")) == []
