from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from core.drilldown import DrillDownConfig, DrillDownRequest, DrillPathStep, InvalidDrillTarget
from core.filters import ChartFilter, apply_filters, filter_mask

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "TABLEVIEW_DATA_DIR"
DEFAULT_DATA_DIR = Path(__file__).resolve().parents[1] / "data"
FILE_GLOBS = ("*.csv", "*.xlsx")
COUNT_COLUMN = "count"


class DatasetNotFound(KeyError):
    pass


def get_data_dir() -> Path:
    return Path(os.environ.get(DATA_DIR_ENV) or DEFAULT_DATA_DIR)


def get_source_files(data_dir: Optional[Path] = None) -> List[Path]:
    data_dir = data_dir or get_data_dir()
    if not data_dir.is_dir():
        return []
    files: List[Path] = []
    for pattern in FILE_GLOBS:
        files.extend(p for p in data_dir.glob(pattern) if not p.name.startswith("~$"))
    return sorted(files)


def file_signature(files: List[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files)


def list_datasets(data_dir: Optional[Path] = None) -> List[str]:
    return sorted({p.stem for p in get_source_files(data_dir)})


def drop_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[:, ~df.columns.duplicated()]


def clean_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]
    df = df.loc[:, [c for c in df.columns if c and not c.startswith("Unnamed:")]]
    return drop_duplicate_columns(df)


@lru_cache(maxsize=8)
def _load_frame_cached(path: str, mtime: float) -> pd.DataFrame:
    logger.info("loading dataset %s", path)
    if path.lower().endswith(".xlsx"):
        df = pd.read_excel(path)
    else:
        df = pd.read_csv(path)
    return clean_columns(df)


def load_dataset(name: str, data_dir: Optional[Path] = None) -> pd.DataFrame:
    """Load ``<name>.csv`` / ``<name>.xlsx``; cached until the file changes."""
    matches = [p for p in get_source_files(data_dir) if p.stem == name]
    if not matches:
        raise DatasetNotFound(name)
    ((path, mtime),) = file_signature(matches[:1])
    return _load_frame_cached(path, mtime).copy()


def to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Plain-Python row dicts; NaN/NA become ``None``."""
    if df.empty:
        return []
    out = df.astype(object).where(df.notna(), None)
    records = out.to_dict(orient="records")
    return [{k: _native(v) for k, v in r.items()} for r in records]


def _native(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def apply_path(df: pd.DataFrame, path: Sequence[DrillPathStep]) -> pd.DataFrame:
    out = df
    for step in path:
        if step.column not in out.columns:
            raise InvalidDrillTarget(f"Unknown drill-down column: {step.column}")
        out = out[filter_mask(out, ChartFilter(column=step.column, operator="equals", value=step.value))]
    return out


def aggregate_level(df: pd.DataFrame, dimension: str, aggregation_columns: Iterable[str]) -> pd.DataFrame:
    aggs = [c for c in aggregation_columns if c in df.columns and c != dimension]
    if dimension not in df.columns:
        raise InvalidDrillTarget(f"Unknown drill-down column: {dimension}")
    if not aggs:
        grouped = df.groupby(dimension, dropna=False, sort=False).size().reset_index(name=COUNT_COLUMN)
        return grouped.sort_values(COUNT_COLUMN, ascending=False, kind="stable").reset_index(drop=True)
    numeric = df[[dimension] + aggs].copy()
    for c in aggs:
        numeric[c] = pd.to_numeric(numeric[c], errors="coerce")
    grouped = numeric.groupby(dimension, dropna=False, sort=False)[aggs].sum(min_count=1).reset_index()
    return grouped.sort_values(aggs[0], ascending=False, kind="stable", na_position="last").reset_index(drop=True)


def compute_drill_down(df: pd.DataFrame, config: DrillDownConfig, request: DrillDownRequest) -> Dict[str, Any]:
    """Rows for one drill level: filter, narrow by the path, group, then window."""
    if request.level < 0 or request.level >= config.depth:
        raise InvalidDrillTarget(f"Drill-down level {request.level} is not configured")
    if len(request.path) != request.level:
        raise InvalidDrillTarget(
            f"Drill-down path has {len(request.path)} steps but level {request.level} was requested"
        )

    filtered = apply_filters(df, request.filters)
    narrowed = apply_path(filtered, request.path)
    level = config.hierarchy[request.level]
    grouped = aggregate_level(narrowed, level.column, level.aggregation_columns)

    total = int(len(grouped))
    if request.pagination_enabled:
        grouped = grouped.iloc[request.offset : request.offset + request.limit]
    return {"data": to_records(grouped), "total": total}


class DatasetSource:
    """Local fetch backend: answers drill-down payloads from an in-memory frame."""

    def __init__(self, df: pd.DataFrame, config: Any) -> None:
        self.df = df
        self.config = DrillDownConfig.from_dict(config)

    def query(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        request = DrillDownRequest.from_payload(payload)
        return {"data": compute_drill_down(self.df, self.config, request)}

    async def fetch(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return self.query(payload)
