"""Result-set profiling: column typing, statistics and category aggregation."""

from schoolchat.profiling.columns import (
    aggregate_by_category,
    classify_column,
    numeric_series,
    parse_date,
    profile_columns,
    to_number,
)
from schoolchat.profiling.models import ColumnKind, ColumnProfile, ColumnStats, DatasetProfile

__all__ = [
    "ColumnKind",
    "ColumnProfile",
    "ColumnStats",
    "DatasetProfile",
    "aggregate_by_category",
    "classify_column",
    "numeric_series",
    "parse_date",
    "profile_columns",
    "to_number",
]
