from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from core.drilldown import DrillDownConfig


@pytest.fixture
def sales_df() -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"category": "Electronics", "subcategory": "Phones", "product": "Pixel", "region": "North", "revenue": 1200.0, "units": 3},
            {"category": "Electronics", "subcategory": "Phones", "product": "iPhone", "region": "South", "revenue": 2500.0, "units": 5},
            {"category": "Electronics", "subcategory": "Laptops", "product": "ThinkPad", "region": "North", "revenue": 3000.0, "units": 2},
            {"category": "Furniture", "subcategory": "Chairs", "product": "Aeron", "region": "North", "revenue": 900.0, "units": 1},
            {"category": "Furniture", "subcategory": "Desks", "product": "Standing", "region": "South", "revenue": 700.0, "units": 1},
            {"category": None, "subcategory": "Misc", "product": "Widget", "region": "South", "revenue": 50.0, "units": 10},
        ]
    )


@pytest.fixture
def hierarchy() -> list[dict[str, object]]:
    return [
        {"column": "category", "display_name": "Category", "aggregation_columns": ["revenue", "units"]},
        {"column": "subcategory", "display_name": "Subcategory", "aggregation_columns": ["revenue", "units"]},
        {"column": "product", "display_name": "Product", "aggregation_columns": ["revenue", "units"]},
    ]


@pytest.fixture
def drill_config(hierarchy) -> DrillDownConfig:
    return DrillDownConfig.from_dict({"hierarchy": hierarchy})


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, sales_df: pd.DataFrame) -> Path:
    directory = tmp_path / "data"
    directory.mkdir()
    sales_df.to_csv(directory / "sales.csv", index=False)
    monkeypatch.setenv("TABLEVIEW_DATA_DIR", str(directory))
    return directory
