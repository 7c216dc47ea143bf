from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

import altair as alt
import pandas as pd

from core.formatting import format_value

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def drill_level_chart(
    rows: Sequence[Mapping[str, Any]],
    dimension: str,
    value_column: str,
    *,
    title: Optional[str] = None,
    value_format: Any = None,
) -> Dict[str, Any]:
    """Bar chart of one drill level: one bar per dimension value."""
    if not rows:
        return {}
    df = pd.DataFrame(list(rows))
    if dimension not in df.columns or value_column not in df.columns:
        return {}
    df = df[[dimension, value_column]].copy()
    df[dimension] = df[dimension].astype("string").fillna("(empty)")
    df[value_column] = pd.to_numeric(df[value_column], errors="coerce")
    df["display_value"] = df[value_column].apply(lambda v: format_value(v, value_format))

    bars = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X(f"{dimension}:N", title=title or dimension, sort="-y"),
            y=alt.Y(f"{value_column}:Q", title=value_column, axis=alt.Axis(format=",")),
            tooltip=[
                alt.Tooltip(f"{dimension}:N", title=title or dimension),
                alt.Tooltip("display_value:N", title=value_column),
            ],
        )
    )
    return to_vega_spec(bars)
