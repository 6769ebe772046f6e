"""
Query models: validation verdicts, execution options and results.

Rows coming back from MySQL or the query proxy are normalized into a closed
scalar space (None, bool, int, float, str) before anything downstream looks
at them, so column typing never sees Decimal, datetime or bytes.
"""

import math
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

Scalar = None | bool | int | float | str
Row = dict[str, Scalar]


def normalize_scalar(value: Any) -> Scalar:
    """Coerce a driver value into the row scalar space."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def normalize_row(row: dict[str, Any]) -> Row:
    return {str(key): normalize_scalar(value) for key, value in row.items()}


def normalize_rows(rows: Any) -> list[Row]:
    """Normalize a driver or proxy payload into a list of rows.

    A single mapping is treated as a one-row result.
    """
    if rows is None:
        return []
    if isinstance(rows, dict):
        rows = [rows]
    return [normalize_row(row) for row in rows if isinstance(row, dict)]


class ValidationResult(BaseModel):
    """Outcome of validating one SQL string."""

    is_valid: bool = Field(..., description="True when no errors were found")
    errors: list[str] = Field(default_factory=list, description="Blocking violations")
    warnings: list[str] = Field(default_factory=list, description="Non-blocking notes")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_consistency(self) -> "ValidationResult":
        if self.is_valid != (not self.errors):
            raise ValueError("is_valid must be True exactly when errors is empty")
        return self

    @classmethod
    def from_findings(
        cls, errors: list[str], warnings: list[str] | None = None
    ) -> "ValidationResult":
        return cls(is_valid=not errors, errors=list(errors), warnings=list(warnings or []))


class QueryOptions(BaseModel):
    """Execution options passed by value into the query executor."""

    max_rows: int | None = Field(
        default=10000, gt=0, description="Row cap appended as LIMIT when absent"
    )
    timeout_ms: int = Field(default=30000, gt=0, description="Query timeout in milliseconds")
    return_metadata: bool = Field(default=False, description="Compute result metadata")


class QueryMetadata(BaseModel):
    row_count: int
    columns: list[str]
    execution_time_ms: float
    environment: str


class QueryResult(BaseModel):
    """Normalized execution result. Never raised, always returned."""

    success: bool
    data: list[Row] = Field(default_factory=list)
    row_count: int = 0
    metadata: QueryMetadata | None = None
    error: str | None = None

    @model_validator(mode="after")
    def check_row_count(self) -> "QueryResult":
        if self.success and self.row_count != len(self.data):
            raise ValueError("row_count must equal len(data) for successful results")
        return self

    @classmethod
    def ok(cls, rows: list[Row], metadata: QueryMetadata | None = None) -> "QueryResult":
        return cls(success=True, data=rows, row_count=len(rows), metadata=metadata)

    @classmethod
    def failure(cls, message: str) -> "QueryResult":
        return cls(success=False, data=[], row_count=0, error=message or "Unknown error")


class DecomposedQuery(BaseModel):
    """A SELECT statement split into the parts the query proxy understands."""

    table: str
    select_list: str = "*"
    clauses: list[str] = Field(default_factory=list)

    def to_sql(self) -> str:
        parts = [f"SELECT {self.select_list} FROM {self.table}", *self.clauses]
        return " ".join(parts) + ";"


class ColumnInfo(BaseModel):
    """Information about a table column."""

    name: str = Field(..., description="Column name")
    data_type: str = Field(..., description="Column data type")
    is_nullable: bool = Field(default=True, description="Whether column can be NULL")
    default_value: str | None = Field(None, description="Default value if any")
    is_primary_key: bool = Field(default=False, description="Is part of primary key")


class ConnectionCheck(BaseModel):
    success: bool
    message: str


class TableListResult(BaseModel):
    success: bool
    tables: list[str] = Field(default_factory=list)
    error: str | None = None


class TableSchemaResult(BaseModel):
    success: bool
    table: str
    table_schema: list[ColumnInfo] = Field(default_factory=list, alias="schema")
    error: str | None = None

    model_config = ConfigDict(populate_by_name=True)
