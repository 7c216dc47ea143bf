from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import DrillDownRequestModel, FormatRequest, TableRequest
from core.data import DatasetNotFound, DatasetSource, list_datasets, load_dataset
from core.drilldown import DrillDownError, DrillDownRequest, extract_rows
from core.export import ExportError, export_table
from core.filters import normalize_table_config
from core.formatting import format_value
from core.pagination import ClientPaginator, ServerPagination
from core.sorting import sort_rows
from core.table import build_table


app = FastAPI(title="Tableview API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(status_code: int, exc: Exception) -> JSONResponse:
    message = exc.args[0] if isinstance(exc, KeyError) and exc.args else str(exc)
    return JSONResponse(status_code=status_code, content={"error": str(message), "type": type(exc).__name__})


def _drill_down_source(dataset: str, body: DrillDownRequestModel) -> DatasetSource:
    df = load_dataset(dataset)
    return DatasetSource(df, {"hierarchy": [lvl.model_dump() for lvl in body.hierarchy]})


@app.get("/meta/datasets")
def meta_datasets():
    try:
        return _json({"values": list_datasets()})
    except Exception as exc:
        logger.exception("meta_datasets failed")
        return _error(500, exc)


@app.get("/meta/columns")
def meta_columns(dataset: str = Query(...)):
    try:
        df = load_dataset(dataset)
        return _json({"values": [str(c) for c in df.columns]})
    except DatasetNotFound as exc:
        return _error(404, exc)
    except Exception as exc:
        logger.exception("meta_columns failed")
        return _error(500, exc)


@app.post("/format")
def format_values(body: FormatRequest):
    try:
        spec = body.spec.to_spec() if body.spec is not None else None
        return _json({"values": [format_value(v, spec) for v in body.values]})
    except Exception as exc:
        logger.exception("format failed")
        return _error(500, exc)


@app.post("/table")
def table(body: TableRequest):
    try:
        config = normalize_table_config(body.config.to_raw())
        rows = sort_rows(body.rows, config.active_sort)
        if body.server_pagination is not None:
            sp = body.server_pagination
            # Page changes are answered by the caller issuing a new request.
            server = ServerPagination(page=sp.page, page_size=sp.page_size, total=sp.total, on_page_change=lambda _: None)
            view = build_table(rows, config, server=server, sortable=True, drill_column=body.drill_column)
        else:
            paginator = ClientPaginator(rows, page_size=config.pagination.page_size if config.pagination.enabled else max(1, len(rows)))
            paginator.set_page(body.page)
            view = build_table(rows, config, paginator=paginator, sortable=True, drill_column=body.drill_column)
        return _json(view.to_dict())
    except Exception as exc:
        logger.exception("table failed")
        return _error(500, exc)


@app.post("/charts/{dataset}/data")
def drill_down_data(dataset: str, body: DrillDownRequestModel):
    try:
        source = _drill_down_source(dataset, body)
        return _json(source.query(body.to_payload()))
    except DatasetNotFound as exc:
        return _error(404, exc)
    except DrillDownError as exc:
        return _error(400, exc)
    except Exception as exc:
        logger.exception("drill_down_data failed")
        return _error(500, exc)


@app.post("/charts/{dataset}/export")
def drill_down_export(dataset: str, body: DrillDownRequestModel):
    try:
        source = _drill_down_source(dataset, body)
        payload = body.to_payload()
        rows = extract_rows(source.query(payload))
        request = DrillDownRequest.from_payload(payload)
        export = export_table(rows, request.path)
    except DatasetNotFound as exc:
        return _error(404, exc)
    except (DrillDownError, ExportError) as exc:
        return _error(400, exc)
    except Exception as exc:
        logger.exception("drill_down_export failed")
        return _error(500, exc)
    return Response(
        content=export.as_bytes(),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={export.filename}"},
    )
