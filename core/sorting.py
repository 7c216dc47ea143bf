from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Literal, Mapping, Optional, Sequence

import pandas as pd

logger = logging.getLogger(__name__)

SortDirection = Literal["asc", "desc"]


@dataclass(frozen=True)
class SortSpec:
    column: str
    direction: SortDirection = "asc"

    def to_dict(self) -> dict:
        return {"column": self.column, "direction": self.direction}


def parse_sort(raw: Optional[Iterable[Any]]) -> Optional[SortSpec]:
    """First well-formed entry of a saved ``sort`` list; only one is supported."""
    for item in raw or []:
        if isinstance(item, SortSpec):
            return item
        if not isinstance(item, Mapping):
            continue
        column = item.get("column")
        direction = item.get("direction", "asc")
        if not column or direction not in ("asc", "desc"):
            continue
        return SortSpec(column=str(column), direction=direction)
    return None


def toggle_direction(current: Optional[SortDirection]) -> SortDirection:
    return "desc" if current == "asc" else "asc"


def next_sort(current: Optional[SortSpec], column: str) -> SortSpec:
    """Spec after a header click: a new column sorts ascending, the same column flips."""
    if current is None or current.column != column:
        return SortSpec(column=column, direction="asc")
    return SortSpec(column=column, direction=toggle_direction(current.direction))


class SortController:
    """Tracks the active sort and hands changes to whoever actually sorts."""

    def __init__(
        self,
        current: Optional[SortSpec] = None,
        on_sort: Optional[Callable[[str, SortDirection], Any]] = None,
    ) -> None:
        self.current = current
        self.on_sort = on_sort

    @property
    def enabled(self) -> bool:
        return self.on_sort is not None

    def direction_for(self, column: str) -> Optional[SortDirection]:
        if self.current is not None and self.current.column == column:
            return self.current.direction
        return None

    def on_header_click(self, column: str) -> SortSpec:
        spec = next_sort(self.current, column)
        self.current = spec
        if self.on_sort is not None:
            self.on_sort(spec.column, spec.direction)
        return spec


def sort_rows(rows: Sequence[Mapping[str, Any]], spec: Optional[SortSpec]) -> List[Mapping[str, Any]]:
    """Stable sort of row mappings by one column, nulls last in both directions."""
    if spec is None or not rows:
        return list(rows)
    df = pd.DataFrame(list(rows))
    if spec.column not in df.columns:
        logger.warning("sort column %r not present; leaving rows unsorted", spec.column)
        return list(rows)
    order = df.sort_values(
        spec.column,
        ascending=spec.direction == "asc",
        kind="stable",
        na_position="last",
        key=_sort_key,
    ).index
    return [rows[i] for i in order]


def _sort_key(series: pd.Series) -> pd.Series:
    numeric = pd.to_numeric(series, errors="coerce")
    if numeric.notna().sum() == series.notna().sum():
        return numeric
    return series.astype("string").str.lower()
