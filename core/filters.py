from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from core.formatting import ColumnFormat, format_spec_to_dict, is_null, parse_format_spec
from core.pagination import DEFAULT_PAGE_SIZE
from core.sorting import SortSpec, parse_sort

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500

FILTER_OPERATORS = (
    "equals",
    "not_equals",
    "greater_than",
    "less_than",
    "greater_than_equal",
    "less_than_equal",
    "contains",
    "not_contains",
    "in",
    "not_in",
    "is_null",
    "is_not_null",
)


@dataclass(frozen=True)
class PaginationConfig:
    enabled: bool = True
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class TableConfig:
    table_columns: List[str] = field(default_factory=list)
    column_formatting: Dict[str, ColumnFormat] = field(default_factory=dict)
    sort: Tuple[SortSpec, ...] = ()
    pagination: PaginationConfig = field(default_factory=PaginationConfig)

    @property
    def active_sort(self) -> Optional[SortSpec]:
        return self.sort[0] if self.sort else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table_columns": list(self.table_columns),
            "column_formatting": {c: format_spec_to_dict(f) for c, f in self.column_formatting.items()},
            "sort": [s.to_dict() for s in self.sort],
            "pagination": {"enabled": self.pagination.enabled, "page_size": self.pagination.page_size},
        }


@dataclass(frozen=True)
class ChartFilter:
    column: str
    operator: str = "equals"
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"column": self.column, "operator": self.operator, "value": self.value}


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values or isinstance(values, str):
        return []
    return [str(v) for v in values if v is not None and str(v).strip()]


def _page_size(raw: object) -> int:
    try:
        size = int(raw)  # type: ignore[arg-type]
    except Exception:
        size = DEFAULT_PAGE_SIZE
    return max(1, min(MAX_PAGE_SIZE, size))


def normalize_table_config(raw: Optional[Mapping[str, Any]]) -> TableConfig:
    raw = raw or {}

    formatting: Dict[str, ColumnFormat] = {}
    for column, spec in (raw.get("column_formatting") or {}).items():
        fmt = parse_format_spec(spec)
        if fmt is not None:
            formatting[str(column)] = fmt

    sort = parse_sort(raw.get("sort"))

    p = raw.get("pagination") or {}
    pagination = PaginationConfig(
        enabled=bool(p.get("enabled", True)),
        page_size=_page_size(p.get("page_size", DEFAULT_PAGE_SIZE)),
    )
    return TableConfig(
        table_columns=_as_str_list(raw.get("table_columns")),
        column_formatting=formatting,
        sort=(sort,) if sort is not None else (),
        pagination=pagination,
    )


def normalize_filters(raw: Optional[Iterable[Any]]) -> List[ChartFilter]:
    out: List[ChartFilter] = []
    for item in raw or []:
        if isinstance(item, ChartFilter):
            out.append(item)
            continue
        if not isinstance(item, Mapping) or not item.get("column"):
            continue
        operator = item.get("operator") or "equals"
        if operator not in FILTER_OPERATORS:
            logger.warning("dropping filter on %r with unknown operator %r", item.get("column"), operator)
            continue
        out.append(ChartFilter(column=str(item["column"]), operator=operator, value=item.get("value")))
    return out


def strict_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or is_null(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _split_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value]
    return [part.strip() for part in str(value or "").split(",") if part.strip()]


def _compare(series: pd.Series, operator: str, value: Any) -> pd.Series:
    target = strict_number(value)
    numeric = pd.to_numeric(series, errors="coerce")
    if target is not None and numeric.notna().any():
        lhs, rhs = numeric, target
    else:
        lhs, rhs = series.astype("string"), str(value)
    if operator == "greater_than":
        mask = lhs > rhs
    elif operator == "less_than":
        mask = lhs < rhs
    elif operator == "greater_than_equal":
        mask = lhs >= rhs
    else:
        mask = lhs <= rhs
    return mask.fillna(False).astype(bool)


def filter_mask(df: pd.DataFrame, flt: ChartFilter) -> pd.Series:
    series = df[flt.column]
    op = flt.operator
    if op == "is_null":
        return series.isna()
    if op == "is_not_null":
        return series.notna()
    if op in ("equals", "not_equals"):
        target = strict_number(flt.value)
        numeric = pd.to_numeric(series, errors="coerce")
        if target is not None and numeric.notna().any():
            mask = numeric == target
        else:
            mask = series.astype("string") == str(flt.value)
        mask = mask.fillna(False).astype(bool)
        return mask if op == "equals" else ~mask
    if op in ("contains", "not_contains"):
        mask = series.astype("string").str.lower().str.contains(str(flt.value or "").lower(), regex=False, na=False)
        mask = mask.astype(bool)
        return mask if op == "contains" else ~mask
    if op in ("in", "not_in"):
        mask = series.astype("string").isin(_split_list(flt.value)).fillna(False).astype(bool)
        return mask if op == "in" else ~mask
    return _compare(series, op, flt.value)


def apply_filters(df: pd.DataFrame, filters: Iterable[ChartFilter]) -> pd.DataFrame:
    out = df
    for flt in filters:
        if flt.column not in out.columns:
            logger.warning("filter column %r not in dataset; skipped", flt.column)
            continue
        if flt.operator not in ("is_null", "is_not_null") and is_null(flt.value):
            logger.warning("filter on %r has no value; skipped", flt.column)
            continue
        out = out[filter_mask(out, flt)]
    return out
