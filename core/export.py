from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from core.formatting import raw_string

if TYPE_CHECKING:
    from core.drilldown import DrillPathStep


class ExportError(Exception):
    pass


@dataclass(frozen=True)
class CsvExport:
    filename: str
    content: str

    def as_bytes(self) -> bytes:
        return self.content.encode("utf-8")


def export_filename(path: Sequence["DrillPathStep"], today: Optional[date] = None) -> str:
    """``drill_down_<values>_<YYYY-MM-DD>.csv``; ``all`` when the path is empty.

    The date defaults to today in UTC.
    """
    today = today or datetime.now(timezone.utc).date()
    path_text = "_".join(raw_string(step.value) for step in path)
    return f"drill_down_{path_text or 'all'}_{today.isoformat()}.csv"


def export_columns(rows: Sequence[Mapping[str, Any]], columns: Optional[Iterable[str]] = None) -> List[str]:
    cols = [str(c) for c in (columns or [])]
    if cols:
        return cols
    return list(rows[0].keys()) if rows else []


def rows_to_csv(rows: Sequence[Mapping[str, Any]], columns: Optional[Iterable[str]] = None) -> str:
    cols = export_columns(rows, columns)
    if not rows or not cols:
        raise ExportError("No table data available for export")
    frame = pd.DataFrame([[raw_string(row.get(c)) for c in cols] for row in rows], columns=cols)
    return frame.to_csv(index=False, lineterminator="\n")


def export_table(
    rows: Sequence[Mapping[str, Any]],
    path: Sequence["DrillPathStep"] = (),
    *,
    columns: Optional[Iterable[str]] = None,
    today: Optional[date] = None,
) -> CsvExport:
    return CsvExport(filename=export_filename(path, today), content=rows_to_csv(rows, columns))
