from __future__ import annotations

from core.charts import drill_level_chart


def test_bar_chart_for_level() -> None:
    rows = [{"category": "Electronics", "revenue": 6700.0}, {"category": None, "revenue": 50.0}]
    spec = drill_level_chart(rows, "category", "revenue", title="Category", value_format={"type": "currency"})
    assert spec["mark"]["type"] == "bar"
    assert spec["encoding"]["x"]["field"] == "category"
    assert spec["encoding"]["x"]["title"] == "Category"
    assert spec["encoding"]["y"]["field"] == "revenue"
    values = next(iter(spec["datasets"].values()))
    assert [v["display_value"] for v in values] == ["$6700.00", "$50.00"]
    assert values[1]["category"] == "(empty)"


def test_no_chart_without_data() -> None:
    assert drill_level_chart([], "category", "revenue") == {}
    assert drill_level_chart([{"category": "x"}], "category", "revenue") == {}
