"""
Column typing and statistics shared by chart building and summaries.

A column is classified from its non-null values:

- numeric: at least 80% parse as finite numbers (booleans excluded)
- date: otherwise, at least 80% parse as calendar dates (numbers excluded)
- categorical: otherwise, at most 10 distinct values or a distinct ratio below 10%
- text: everything else
- empty: no non-null values at all

Category-keyed aggregation averages the paired value column per group.
It never sums.
"""

from __future__ import annotations

import math
import re
import statistics
from collections import Counter
from datetime import date, datetime
from typing import Any, Iterable

from schoolchat.models.query import Row
from schoolchat.profiling.models import (
    ColumnKind,
    ColumnProfile,
    ColumnStats,
    DatasetProfile,
    ValueCount,
)

TYPE_THRESHOLD = 0.8
MAX_CATEGORIES = 10
CATEGORY_RATIO = 0.1
TOP_VALUES = 5
UNKNOWN_LABEL = "Unknown"

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_DATE_FORMATS = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y-%m",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%a, %d %b %Y %H:%M:%S",
)


def to_number(value: Any) -> float | None:
    """Return the value as a finite float, or None when it is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not _NUMBER_RE.match(text):
            return None
        number = float(text)
    else:
        return None
    return number if math.isfinite(number) else None


def parse_date(value: Any) -> datetime | None:
    """Parse ISO and a few common human date layouts. Numbers are never dates."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or to_number(text) is not None:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _meets_threshold(matches: int, total: int) -> bool:
    return total > 0 and matches >= total * TYPE_THRESHOLD


def classify_column(values: Iterable[Any]) -> ColumnKind:
    present = [value for value in values if value is not None]
    if not present:
        return "empty"

    numeric = sum(1 for value in present if to_number(value) is not None)
    if _meets_threshold(numeric, len(present)):
        return "numeric"

    dates = sum(1 for value in present if parse_date(value) is not None)
    if _meets_threshold(dates, len(present)):
        return "date"

    distinct = len(set(present))
    if distinct <= MAX_CATEGORIES or distinct / len(present) < CATEGORY_RATIO:
        return "categorical"
    return "text"


def column_names(rows: list[Row]) -> list[str]:
    """Column names in first-seen order across all rows."""
    names: dict[str, None] = {}
    for row in rows:
        for key in row:
            names.setdefault(key, None)
    return list(names)


def column_values(rows: list[Row], column: str) -> list[Any]:
    return [row.get(column) for row in rows]


def _numeric_stats(values: list[Any]) -> ColumnStats:
    numbers = [n for n in (to_number(v) for v in values) if n is not None]
    if not numbers:
        return ColumnStats(count=0)
    return ColumnStats(
        count=len(numbers),
        min=min(numbers),
        max=max(numbers),
        mean=statistics.fmean(numbers),
        median=statistics.median(numbers),
    )


def _date_stats(values: list[Any]) -> ColumnStats:
    parsed = [d for d in (parse_date(v) for v in values) if d is not None]
    if not parsed:
        return ColumnStats(count=0)
    # Mixed naive/aware values cannot be ordered together; compare as naive.
    naive = sorted(d.replace(tzinfo=None) for d in parsed)
    return ColumnStats(
        count=len(parsed),
        earliest=naive[0].isoformat(),
        latest=naive[-1].isoformat(),
    )


def _frequency_stats(values: list[Any]) -> ColumnStats:
    counts = Counter(values)
    return ColumnStats(
        count=len(values),
        unique_count=len(counts),
        top_values=[
            ValueCount(value=value, count=count) for value, count in counts.most_common(TOP_VALUES)
        ],
    )


def profile_column(name: str, values: list[Any]) -> ColumnProfile:
    present = [value for value in values if value is not None]
    kind = classify_column(present)
    if kind == "numeric":
        stats = _numeric_stats(present)
    elif kind == "date":
        stats = _date_stats(present)
    elif kind in ("categorical", "text"):
        stats = _frequency_stats(present)
    else:
        stats = ColumnStats(count=0)
    return ColumnProfile(name=name, kind=kind, stats=stats)


def profile_columns(rows: list[Row]) -> DatasetProfile:
    """Classify and describe every column of a result set."""
    return DatasetProfile(
        total_records=len(rows),
        columns=[profile_column(name, column_values(rows, name)) for name in column_names(rows)],
    )


def numeric_series(rows: list[Row], column: str) -> list[float]:
    """Values of a column as floats; unparseable cells become 0."""
    return [to_number(row.get(column)) or 0.0 for row in rows]


def aggregate_by_category(
    rows: list[Row], group_column: str, value_column: str | None = None
) -> tuple[list[str], list[float]]:
    """
    Group rows by a category column.

    Without a value column each group is a row count. With one, each group is
    the average of its numeric values (0 when none parse). Groups keep the
    order in which they were first seen. Missing or blank keys fall into
    "Unknown".
    """
    counts: dict[str, int] = {}
    sums: dict[str, float] = {}
    seen: dict[str, int] = {}

    for row in rows:
        raw = row.get(group_column)
        key = UNKNOWN_LABEL if raw is None or raw == "" else str(raw)
        counts[key] = counts.get(key, 0) + 1
        if value_column is None:
            continue
        number = to_number(row.get(value_column))
        if number is not None:
            sums[key] = sums.get(key, 0.0) + number
            seen[key] = seen.get(key, 0) + 1

    labels = list(counts)
    if value_column is None:
        return labels, [float(counts[label]) for label in labels]
    values = [sums[label] / seen[label] if seen.get(label) else 0.0 for label in labels]
    return labels, values
