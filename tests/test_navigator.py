"""Async tests for the drill-down navigator against in-memory fetch backends."""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Any

import pytest

from core.data import DatasetSource
from core.drilldown import DrillDownNavigator, DrillPathStep, Notification

pytestmark = pytest.mark.asyncio

LEVEL_ROWS = {
    0: [{"category": "Electronics", "revenue": 6700.0}, {"category": "Furniture", "revenue": 1600.0}],
    1: [{"subcategory": "Phones", "revenue": 3700.0}, {"subcategory": "Laptops", "revenue": 3000.0}],
    2: [{"product": "iPhone", "revenue": 2500.0}, {"product": "Pixel", "revenue": 1200.0}],
}


class FakeBackend:
    def __init__(self, fail_on_level: int | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail_on_level = fail_on_level

    async def __call__(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(payload)
        level = payload["drill_down_level"]
        if level == self.fail_on_level:
            raise RuntimeError("boom")
        return {"data": {"data": LEVEL_ROWS[level], "total": len(LEVEL_ROWS[level])}}


async def _mounted(hierarchy, backend: FakeBackend, **kwargs: Any) -> DrillDownNavigator:
    navigator = DrillDownNavigator({"hierarchy": hierarchy}, backend, **kwargs)
    assert await navigator.mount()
    return navigator


async def test_mount_loads_top_level(hierarchy) -> None:
    backend = FakeBackend()
    navigator = await _mounted(hierarchy, backend)
    assert navigator.rows == tuple(LEVEL_ROWS[0])
    assert navigator.current_level == 0
    assert not navigator.is_loading
    assert backend.calls[0]["drill_down_level"] == 0
    assert backend.calls[0]["drill_down_path"] == []
    assert backend.calls[0]["limit"] == 100
    assert navigator.drill_column == "category"
    assert navigator.next_level_hint == "Double-click a row to drill down to Subcategory"
    assert not navigator.can_reset


async def test_drill_down_then_home(hierarchy) -> None:
    backend = FakeBackend()
    navigator = await _mounted(hierarchy, backend)

    assert await navigator.drill_down({"category": "Electronics", "revenue": 6700.0})
    assert navigator.current_level == 1
    assert navigator.path == (DrillPathStep(0, "category", "Electronics", "Category"),)
    assert navigator.rows == tuple(LEVEL_ROWS[1])
    assert backend.calls[-1]["drill_down_path"] == [
        {"level": 0, "column": "category", "value": "Electronics", "display_name": "Category"}
    ]
    assert [c.label for c in navigator.breadcrumb().crumbs] == ["Category", "Electronics"]
    assert navigator.can_reset

    assert await navigator.navigate_to(0)
    assert navigator.current_level == 0
    assert navigator.path == ()
    assert navigator.rows == tuple(LEVEL_ROWS[0])
    assert len(backend.calls) == 3


async def test_navigate_to_current_level_does_not_fetch(hierarchy) -> None:
    backend = FakeBackend()
    navigator = await _mounted(hierarchy, backend)
    assert not await navigator.navigate_to(0)
    assert not await navigator.reset()
    assert len(backend.calls) == 1


async def test_navigate_to_unknown_level_notifies(hierarchy) -> None:
    navigator = await _mounted(hierarchy, FakeBackend())
    assert not await navigator.navigate_to(5)
    assert navigator.notifications == [Notification("error", "Cannot navigate to level 5")]


async def test_max_depth_notice(hierarchy) -> None:
    backend = FakeBackend()
    received: list[Notification] = []
    navigator = await _mounted(hierarchy, backend, notify=received.append)
    await navigator.drill_down({"category": "Electronics"})
    await navigator.drill_down({"subcategory": "Phones"})
    assert navigator.current_level == 2
    assert navigator.drill_column is None
    calls = len(backend.calls)

    assert not await navigator.drill_down({"product": "iPhone"})
    assert received == [Notification("info", "Maximum drill-down depth reached")]
    assert navigator.current_level == 2
    assert len(backend.calls) == calls


async def test_empty_drill_value_notice(hierarchy) -> None:
    backend = FakeBackend()
    navigator = await _mounted(hierarchy, backend)
    assert not await navigator.drill_down({"category": None})
    assert navigator.notifications == [Notification("error", "Cannot drill down: category value is empty")]
    assert len(backend.calls) == 1


async def test_fetch_failure_keeps_previous_state(hierarchy) -> None:
    navigator = await _mounted(hierarchy, FakeBackend(fail_on_level=1))
    before = navigator.state
    assert not await navigator.drill_down({"category": "Electronics"})
    assert navigator.state == before
    assert not navigator.is_loading
    assert navigator.notifications == [Notification("error", "Failed to fetch data: boom")]


async def test_loading_flag_during_fetch(hierarchy) -> None:
    seen: list[bool] = []
    navigator: DrillDownNavigator

    async def fetch(payload: dict[str, Any]) -> dict[str, Any]:
        seen.append(navigator.is_loading)
        return {"data": LEVEL_ROWS[payload["drill_down_level"]]}

    navigator = DrillDownNavigator(hierarchy, fetch)
    await navigator.mount()
    assert seen == [True]
    assert not navigator.is_loading
    assert navigator.rows == tuple(LEVEL_ROWS[0])


async def test_stale_response_is_discarded(hierarchy) -> None:
    release = asyncio.Event()

    async def fetch(payload: dict[str, Any]) -> dict[str, Any]:
        path = payload["drill_down_path"]
        if path and path[0]["value"] == "Electronics":
            await release.wait()
            return {"data": [{"subcategory": "Phones"}]}
        if path:
            return {"data": [{"subcategory": "Chairs"}]}
        return {"data": LEVEL_ROWS[0]}

    navigator = DrillDownNavigator(hierarchy, fetch)
    await navigator.mount()

    slow = asyncio.create_task(navigator.drill_down({"category": "Electronics"}))
    await asyncio.sleep(0)
    assert navigator.is_loading
    assert await navigator.drill_down({"category": "Furniture"})
    release.set()
    assert not await slow

    assert navigator.path[0].value == "Furniture"
    assert navigator.rows == ({"subcategory": "Chairs"},)
    assert not navigator.is_loading


async def test_cancelled_fetch_clears_loading(hierarchy) -> None:
    async def fetch(payload: dict[str, Any]) -> dict[str, Any]:
        await asyncio.sleep(10)
        return {}

    navigator = DrillDownNavigator(hierarchy, fetch)
    task = asyncio.create_task(navigator.mount())
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert not navigator.is_loading


async def test_filters_and_page_size_reach_payload(hierarchy) -> None:
    backend = FakeBackend()
    await _mounted(
        hierarchy,
        backend,
        filters=[{"column": "region", "operator": "equals", "value": "North"}],
        page_size=25,
    )
    extra = backend.calls[0]["extra_config"]
    assert extra["filters"] == [{"column": "region", "operator": "equals", "value": "North"}]
    assert extra["pagination"] == {"enabled": True, "page_size": 25}
    assert backend.calls[0]["limit"] == 25


async def test_export_csv(hierarchy) -> None:
    navigator = await _mounted(hierarchy, FakeBackend())
    await navigator.drill_down({"category": "Electronics"})
    export = navigator.export_csv(today=date(2024, 5, 1))
    assert export is not None
    assert export.filename == "drill_down_Electronics_2024-05-01.csv"
    assert export.content == "subcategory,revenue\nPhones,3700\nLaptops,3000\n"
    assert navigator.notifications[-1] == Notification("success", "CSV exported successfully")


async def test_export_without_rows_notifies() -> None:
    navigator = DrillDownNavigator([{"column": "category"}], FakeBackend())
    assert navigator.export_csv() is None
    assert navigator.notifications == [
        Notification("error", "Failed to export CSV: No table data available for export")
    ]


async def test_against_dataset_source(sales_df, hierarchy) -> None:
    source = DatasetSource(sales_df, {"hierarchy": hierarchy})
    navigator = DrillDownNavigator({"hierarchy": hierarchy}, source.fetch)
    await navigator.mount()
    assert [r["category"] for r in navigator.rows] == ["Electronics", "Furniture", None]
    await navigator.drill_down(navigator.rows[0])
    assert [r["subcategory"] for r in navigator.rows] == ["Phones", "Laptops"]
    assert navigator.breadcrumb().level_indicator == "Level 1 of 3"
