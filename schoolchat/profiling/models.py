"""Result-set profiling models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

ColumnKind = Literal["numeric", "date", "categorical", "text", "empty"]


class ValueCount(BaseModel):
    value: str | int | float | bool | None
    count: int


class ColumnStats(BaseModel):
    """Statistics for one column. Which fields are set depends on the kind."""

    count: int = 0
    min: float | None = None
    max: float | None = None
    mean: float | None = None
    median: float | None = None
    earliest: str | None = None
    latest: str | None = None
    unique_count: int | None = None
    top_values: list[ValueCount] = Field(default_factory=list)


class ColumnProfile(BaseModel):
    """Profile for one result-set column. Recomputed per result set."""

    name: str
    kind: ColumnKind
    stats: ColumnStats = Field(default_factory=ColumnStats)


class DatasetProfile(BaseModel):
    total_records: int
    columns: list[ColumnProfile] = Field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    @property
    def kinds(self) -> dict[str, ColumnKind]:
        return {column.name: column.kind for column in self.columns}

    def names_of(self, kind: ColumnKind) -> list[str]:
        """Column names of one kind, in result-set order."""
        return [column.name for column in self.columns if column.kind == kind]

    def first_of(self, kind: ColumnKind) -> str | None:
        names = self.names_of(kind)
        return names[0] if names else None
