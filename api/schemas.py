from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ColumnFormatModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Optional[str] = None
    number_format: Optional[str] = Field(default=None, alias="numberFormat")
    date_format: Optional[str] = Field(default=None, alias="dateFormat")
    precision: Optional[int] = None
    prefix: str = ""
    suffix: str = ""

    def to_spec(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class SortModel(BaseModel):
    column: str
    direction: Literal["asc", "desc"] = "asc"


class PaginationConfigModel(BaseModel):
    enabled: bool = True
    page_size: int = Field(default=10, ge=1, le=500)


class TableConfigModel(BaseModel):
    table_columns: List[str] = Field(default_factory=list)
    column_formatting: Dict[str, ColumnFormatModel] = Field(default_factory=dict)
    sort: List[SortModel] = Field(default_factory=list, max_length=1)
    pagination: PaginationConfigModel = Field(default_factory=PaginationConfigModel)

    def to_raw(self) -> Dict[str, Any]:
        return {
            "table_columns": self.table_columns,
            "column_formatting": {c: f.to_spec() for c, f in self.column_formatting.items()},
            "sort": [s.model_dump() for s in self.sort],
            "pagination": self.pagination.model_dump(),
        }


class ServerPaginationModel(BaseModel):
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)
    total: int = Field(default=0, ge=0)


class FormatRequest(BaseModel):
    values: List[Any] = Field(default_factory=list)
    spec: Optional[ColumnFormatModel] = None


class TableRequest(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    config: TableConfigModel = Field(default_factory=TableConfigModel)
    page: int = Field(default=1, ge=1)
    server_pagination: Optional[ServerPaginationModel] = None
    drill_column: Optional[str] = None


class ChartFilterModel(BaseModel):
    column: str
    operator: str = "equals"
    value: Any = None


class DrillLevelModel(BaseModel):
    column: str
    display_name: str = ""
    aggregation_columns: List[str] = Field(default_factory=list)


class DrillPathStepModel(BaseModel):
    level: int = Field(ge=0)
    column: str
    value: Any = None
    display_name: str = ""


class ExtraConfigModel(BaseModel):
    filters: List[ChartFilterModel] = Field(default_factory=list)
    pagination: PaginationConfigModel = Field(default_factory=lambda: PaginationConfigModel(page_size=100))


class DrillDownRequestModel(BaseModel):
    hierarchy: List[DrillLevelModel] = Field(min_length=1)
    drill_down_level: int = Field(default=0, ge=0)
    drill_down_path: List[DrillPathStepModel] = Field(default_factory=list)
    extra_config: ExtraConfigModel = Field(default_factory=ExtraConfigModel)
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=100, ge=1, le=10000)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"hierarchy"})
