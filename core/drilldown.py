"""Hierarchical drill-down over a table.

The state of one drill-down table is a frozen ``DrillDownState``. The
transitions (``drill_down``, ``drill_up``, ``reset``) are pure: they validate
the move and return the ``DrillTransition`` to fetch, or raise
``InvalidDrillTarget``. ``DrillDownNavigator`` owns a state value, issues the
fetch for each transition and swaps in the new state only when the fetch
succeeds and is still the latest one issued.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple

from core.breadcrumb import Breadcrumb, build_breadcrumb
from core.export import CsvExport, ExportError, export_table
from core.filters import ChartFilter, normalize_filters
from core.formatting import is_null

logger = logging.getLogger(__name__)

DEFAULT_FETCH_SIZE = 100

Row = Dict[str, Any]
NoticeLevel = Literal["error", "info", "success"]


class DrillDownError(Exception):
    pass


class InvalidDrillTarget(DrillDownError):
    def __init__(self, message: str, *, severity: NoticeLevel = "error") -> None:
        super().__init__(message)
        self.message = message
        self.severity = severity


@dataclass(frozen=True)
class Notification:
    level: NoticeLevel
    message: str


@dataclass(frozen=True)
class DrillLevel:
    column: str
    display_name: str = ""
    aggregation_columns: Tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return self.display_name or self.column

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DrillLevel":
        return cls(
            column=str(raw["column"]),
            display_name=str(raw.get("display_name") or ""),
            aggregation_columns=tuple(str(c) for c in (raw.get("aggregation_columns") or []) if c),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column": self.column,
            "display_name": self.display_name,
            "aggregation_columns": list(self.aggregation_columns),
        }


@dataclass(frozen=True)
class DrillDownConfig:
    hierarchy: Tuple[DrillLevel, ...] = ()
    enabled: bool = True

    @property
    def depth(self) -> int:
        return len(self.hierarchy)

    @classmethod
    def from_dict(cls, raw: Any) -> "DrillDownConfig":
        """Accepts ``{"hierarchy": [...], "enabled": ...}`` or a bare hierarchy list."""
        if isinstance(raw, DrillDownConfig):
            return raw
        if isinstance(raw, Mapping):
            levels = raw.get("hierarchy") or []
            enabled = bool(raw.get("enabled", True))
        else:
            levels, enabled = raw or [], True
        hierarchy = []
        for item in levels:
            if isinstance(item, DrillLevel):
                hierarchy.append(item)
            elif isinstance(item, Mapping) and item.get("column"):
                hierarchy.append(DrillLevel.from_dict(item))
        return cls(hierarchy=tuple(hierarchy), enabled=enabled)

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "hierarchy": [lvl.to_dict() for lvl in self.hierarchy]}


@dataclass(frozen=True)
class DrillPathStep:
    level: int
    column: str
    value: Any
    display_name: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DrillPathStep":
        return cls(
            level=int(raw["level"]),
            column=str(raw["column"]),
            value=raw.get("value"),
            display_name=str(raw.get("display_name") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "column": self.column, "value": self.value, "display_name": self.display_name}


@dataclass(frozen=True)
class DrillTransition:
    level: int
    path: Tuple[DrillPathStep, ...]


@dataclass(frozen=True)
class DrillDownState:
    current_level: int = 0
    path: Tuple[DrillPathStep, ...] = ()
    rows: Tuple[Row, ...] = ()
    is_loading: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_level": self.current_level,
            "path": [step.to_dict() for step in self.path],
            "rows": [dict(r) for r in self.rows],
            "is_loading": self.is_loading,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DrillDownState":
        path = tuple(DrillPathStep.from_dict(s) for s in raw.get("path") or [])
        return cls(
            current_level=len(path),
            path=path,
            rows=tuple(dict(r) for r in raw.get("rows") or []),
            is_loading=bool(raw.get("is_loading", False)),
        )


@dataclass(frozen=True)
class DrillDownRequest:
    level: int
    path: Tuple[DrillPathStep, ...] = ()
    filters: Tuple[ChartFilter, ...] = ()
    page_size: int = DEFAULT_FETCH_SIZE
    offset: int = 0
    pagination_enabled: bool = True

    @property
    def limit(self) -> int:
        return self.page_size

    def to_payload(self) -> Dict[str, Any]:
        return {
            "drill_down_level": self.level,
            "drill_down_path": [step.to_dict() for step in self.path],
            "extra_config": {
                "filters": [f.to_dict() for f in self.filters],
                "pagination": {"enabled": self.pagination_enabled, "page_size": self.page_size},
            },
            "offset": self.offset,
            "limit": self.limit,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DrillDownRequest":
        extra = payload.get("extra_config") or {}
        pagination = extra.get("pagination") or {}
        limit = payload.get("limit", pagination.get("page_size", DEFAULT_FETCH_SIZE))
        return cls(
            level=int(payload.get("drill_down_level") or 0),
            path=tuple(DrillPathStep.from_dict(s) for s in payload.get("drill_down_path") or []),
            filters=tuple(normalize_filters(extra.get("filters"))),
            page_size=max(1, int(limit or DEFAULT_FETCH_SIZE)),
            offset=max(0, int(payload.get("offset") or 0)),
            pagination_enabled=bool(pagination.get("enabled", True)),
        )


# ---------------- Pure transitions ----------------
def drill_down(state: DrillDownState, config: DrillDownConfig, row: Mapping[str, Any]) -> DrillTransition:
    level = state.current_level
    if level >= config.depth:
        raise InvalidDrillTarget("No drill-down level configured")
    if level >= config.depth - 1:
        raise InvalidDrillTarget("Maximum drill-down depth reached", severity="info")
    level_config = config.hierarchy[level]
    value = row.get(level_config.column)
    if is_null(value):
        raise InvalidDrillTarget(f"Cannot drill down: {level_config.column} value is empty")
    step = DrillPathStep(
        level=level,
        column=level_config.column,
        value=value,
        display_name=level_config.display_name,
    )
    return DrillTransition(level=level + 1, path=state.path + (step,))


def drill_up(state: DrillDownState, level: int) -> Optional[DrillTransition]:
    if level < 0 or level > state.current_level:
        raise InvalidDrillTarget(f"Cannot navigate to level {level}")
    if level == state.current_level:
        return None
    return DrillTransition(level=level, path=state.path[:level])


def reset(state: DrillDownState) -> Optional[DrillTransition]:
    if state.current_level == 0 and not state.path:
        return None
    return DrillTransition(level=0, path=())


def begin_fetch(state: DrillDownState) -> DrillDownState:
    return replace(state, is_loading=True)


def fetch_failed(state: DrillDownState) -> DrillDownState:
    return replace(state, is_loading=False)


def apply_rows(state: DrillDownState, transition: DrillTransition, rows: Iterable[Row]) -> DrillDownState:
    return DrillDownState(
        current_level=transition.level,
        path=transition.path,
        rows=tuple(rows),
        is_loading=False,
    )


def extract_rows(response: Any) -> List[Row]:
    """Rows from a fetch response: ``data.data`` for tables, ``data`` otherwise."""
    data: Any = response
    if isinstance(response, Mapping):
        data = response.get("data")
        if isinstance(data, Mapping):
            data = data.get("data")
    if not isinstance(data, list):
        return []
    return [dict(r) for r in data if isinstance(r, Mapping)]


# ---------------- Navigator ----------------
Fetcher = Callable[[Dict[str, Any]], Awaitable[Any]]
Notifier = Callable[[Notification], Any]


class DrillDownNavigator:
    """Owns one drill-down table's state and the fetches that move it."""

    def __init__(
        self,
        config: Any,
        fetch: Fetcher,
        *,
        filters: Sequence[Any] = (),
        notify: Optional[Notifier] = None,
        page_size: int = DEFAULT_FETCH_SIZE,
    ) -> None:
        self.config = DrillDownConfig.from_dict(config)
        self.filters: Tuple[ChartFilter, ...] = tuple(normalize_filters(filters))
        self.page_size = page_size
        self.state = DrillDownState()
        self.notifications: List[Notification] = []
        self._fetch = fetch
        self._notify = notify
        self._latest_token = 0

    @property
    def rows(self) -> Tuple[Row, ...]:
        return self.state.rows

    @property
    def current_level(self) -> int:
        return self.state.current_level

    @property
    def path(self) -> Tuple[DrillPathStep, ...]:
        return self.state.path

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    @property
    def can_drill(self) -> bool:
        return self.state.current_level < self.config.depth - 1

    @property
    def can_reset(self) -> bool:
        return self.state.current_level > 0 and not self.state.is_loading

    @property
    def can_export(self) -> bool:
        return bool(self.state.rows) and not self.state.is_loading

    @property
    def drill_column(self) -> Optional[str]:
        if not self.can_drill:
            return None
        return self.config.hierarchy[self.state.current_level].column

    @property
    def next_level_hint(self) -> Optional[str]:
        if not self.can_drill:
            return None
        return f"Double-click a row to drill down to {self.config.hierarchy[self.state.current_level + 1].label}"

    def request_for(self, transition: DrillTransition) -> DrillDownRequest:
        return DrillDownRequest(
            level=transition.level,
            path=transition.path,
            filters=self.filters,
            page_size=self.page_size,
        )

    async def mount(self) -> bool:
        return await self._load(DrillTransition(level=0, path=()))

    async def drill_down(self, row: Mapping[str, Any]) -> bool:
        try:
            transition = drill_down(self.state, self.config, row)
        except InvalidDrillTarget as exc:
            self._raise_notice(exc.severity, exc.message)
            return False
        return await self._load(transition)

    async def navigate_to(self, level: int) -> bool:
        try:
            transition = drill_up(self.state, level)
        except InvalidDrillTarget as exc:
            self._raise_notice(exc.severity, exc.message)
            return False
        if transition is None:
            return False
        return await self._load(transition)

    async def reset(self) -> bool:
        transition = reset(self.state)
        if transition is None:
            return False
        return await self._load(transition)

    def breadcrumb(self) -> Breadcrumb:
        return build_breadcrumb(self.state.path, self.config)

    def export_csv(self, today: Optional[date] = None) -> Optional[CsvExport]:
        try:
            export = export_table(self.state.rows, self.state.path, today=today)
        except ExportError as exc:
            logger.warning("CSV export failed: %s", exc)
            self._raise_notice("error", f"Failed to export CSV: {exc}")
            return None
        self._raise_notice("success", "CSV exported successfully")
        return export

    async def _load(self, transition: DrillTransition) -> bool:
        self._latest_token += 1
        token = self._latest_token
        self.state = begin_fetch(self.state)
        payload = self.request_for(transition).to_payload()
        try:
            response = await self._fetch(payload)
        except asyncio.CancelledError:
            if token == self._latest_token:
                self.state = fetch_failed(self.state)
            raise
        except Exception as exc:
            if token != self._latest_token:
                logger.debug("discarding stale fetch failure for level %s", transition.level)
                return False
            logger.exception("drill-down fetch failed for level %s", transition.level)
            self.state = fetch_failed(self.state)
            self._raise_notice("error", f"Failed to fetch data: {str(exc) or 'Unknown error'}")
            return False
        if token != self._latest_token:
            logger.debug("discarding stale response for level %s", transition.level)
            return False
        self.state = apply_rows(self.state, transition, extract_rows(response))
        return True

    def _raise_notice(self, level: NoticeLevel, message: str) -> None:
        notice = Notification(level=level, message=message)
        self.notifications.append(notice)
        if self._notify is not None:
            self._notify(notice)
