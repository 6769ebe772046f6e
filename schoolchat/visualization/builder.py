"""
VisualizationBuilder: choose a chart for a result set and render it.

Type selection for type="auto", first match wins:

1. a single row -> table
2. a date column and a numeric column -> time_series
3. two or more numeric columns -> scatter
4. a categorical and a numeric column -> histogram above 50 rows, else bar
5. a categorical column alone -> pie
6. a numeric column alone -> histogram
7. anything else -> table

Bar and pie values are per-category averages of the paired numeric column
(or row counts when there is none). They are never sums.
"""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from schoolchat.config import Settings, get_settings
from schoolchat.models.errors import EmptyDataError, VisualizationError
from schoolchat.models.query import Row, normalize_rows
from schoolchat.models.visualization import (
    ChartType,
    VisualizationOptions,
    VisualizationSpec,
)
from schoolchat.profiling.columns import (
    aggregate_by_category,
    numeric_series,
    parse_date,
    profile_columns,
)
from schoolchat.profiling.models import DatasetProfile
from schoolchat.visualization.dialects import (
    ChartDialect,
    ChartJsDialect,
    ChartSeries,
    PlotlyDialect,
)
from schoolchat.visualization.store import VisualizationStore
from schoolchat.visualization.table import render_table_html, table_payload

logger = logging.getLogger(__name__)

CHART_TYPES = ("bar", "scatter", "pie", "histogram", "time_series", "table")
HISTOGRAM_ROW_THRESHOLD = 50


def suggest_type(row_count: int, profile: DatasetProfile) -> ChartType:
    """Deterministic chart choice from the column profile."""
    numeric = profile.names_of("numeric")
    categorical = profile.names_of("categorical")
    dates = profile.names_of("date")

    if row_count == 1:
        return "table"
    if dates and numeric:
        return "time_series"
    if len(numeric) >= 2:
        return "scatter"
    if categorical and numeric:
        return "histogram" if row_count > HISTOGRAM_ROW_THRESHOLD else "bar"
    if categorical:
        return "pie"
    if numeric:
        return "histogram"
    return "table"


def _date_sort_key(value: Any) -> tuple[int, Any]:
    parsed = parse_date(value)
    if parsed is None:
        return (1, 0)
    return (0, parsed.replace(tzinfo=None))


def shape_series(
    chart_type: ChartType, rows: list[Row], profile: DatasetProfile, options: VisualizationOptions
) -> ChartSeries:
    """
    Reduce rows to plotted values.

    A requested type whose columns are missing degrades the way the chart
    would read best: histogram and scatter without numbers become bar,
    time_series without a date/number pair becomes scatter.
    """
    base = {"title": options.title, "width": options.width, "height": options.height}
    numeric = profile.names_of("numeric")
    categorical = profile.first_of("categorical")

    if chart_type == "time_series":
        date_column = profile.first_of("date")
        if date_column and numeric:
            ordered = sorted(rows, key=lambda row: _date_sort_key(row.get(date_column)))
            return ChartSeries(
                chart_type="time_series",
                x=[row.get(date_column) for row in ordered],
                y=numeric_series(ordered, numeric[0]),
                x_title=date_column,
                y_title=numeric[0],
                **base,
            )
        chart_type = "scatter"

    if chart_type == "scatter":
        if numeric:
            x_column = numeric[0]
            y_column = numeric[1] if len(numeric) > 1 else numeric[0]
            return ChartSeries(
                chart_type="scatter",
                x=numeric_series(rows, x_column),
                y=numeric_series(rows, y_column),
                x_title=x_column,
                y_title=y_column,
                **base,
            )
        chart_type = "bar"

    if chart_type == "histogram":
        if numeric:
            return ChartSeries(
                chart_type="histogram",
                x=numeric_series(rows, numeric[0]),
                x_title=numeric[0],
                y_title="Frequency",
                **base,
            )
        chart_type = "bar"

    if chart_type == "pie":
        group = categorical or profile.column_names[0]
        labels, values = aggregate_by_category(rows, group)
        return ChartSeries(chart_type="pie", x=labels, y=values, x_title=group, **base)

    if categorical and numeric:
        labels, values = aggregate_by_category(rows, categorical, numeric[0])
        return ChartSeries(
            chart_type="bar", x=labels, y=values, x_title=categorical, y_title=numeric[0], **base
        )
    group = profile.column_names[0]
    labels, values = aggregate_by_category(rows, group)
    return ChartSeries(chart_type="bar", x=labels, y=values, x_title=group, y_title="Count", **base)


class VisualizationBuilder:
    """Builds VisualizationSpecs and stores their artifacts."""

    def __init__(
        self,
        store: VisualizationStore,
        dialects: dict[str, ChartDialect] | None = None,
    ) -> None:
        self.store = store
        self.dialects = dialects or {
            "plotly": PlotlyDialect(),
            "chartjs": ChartJsDialect(),
        }

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "VisualizationBuilder":
        settings = settings or get_settings()
        viz = settings.visualization
        return cls(
            store=VisualizationStore(viz.output_dir, viz.url_prefix),
            dialects={
                "plotly": PlotlyDialect(),
                "chartjs": ChartJsDialect(image_format=viz.image_format),
            },
        )

    def build(
        self, data: list[Row], options: VisualizationOptions | dict | None = None
    ) -> VisualizationSpec:
        """
        Build and (unless options.persist is False) store one chart.

        Raises:
            EmptyDataError: data is not a non-empty list of rows
            VisualizationError: unknown chart type, bad options or a render failure
        """
        options = self._coerce_options(options)
        if not isinstance(data, list) or not data:
            raise EmptyDataError()
        rows = normalize_rows(data)
        if not rows:
            raise EmptyDataError("Data must be a non-empty array of row objects")

        profile = profile_columns(rows)
        chart_type = suggest_type(len(rows), profile) if options.type == "auto" else options.type
        logger.debug(
            f"Building {chart_type} visualization",
            extra={"rows": len(rows), "library": options.library, "requested": options.type},
        )

        try:
            if chart_type == "table":
                return self._build_table(rows, profile, options)
            return self._build_chart(chart_type, rows, profile, options)
        except VisualizationError:
            raise
        except Exception as exc:
            logger.error(f"Visualization creation error: {exc}")
            raise VisualizationError(str(exc) or exc.__class__.__name__) from exc

    def _build_chart(
        self,
        chart_type: ChartType,
        rows: list[Row],
        profile: DatasetProfile,
        options: VisualizationOptions,
    ) -> VisualizationSpec:
        dialect = self.dialects.get(options.library)
        if dialect is None:
            raise VisualizationError(f"Unsupported visualization library: {options.library}")

        series = shape_series(chart_type, rows, profile, options)
        payload = dialect.payload(series)
        spec = VisualizationSpec(
            type=series.chart_type,
            library=options.library,
            title=options.title,
            payload=payload,
        )
        if not options.persist:
            return spec

        artifact = dialect.render(series, payload)
        filename = self.store.new_name(
            dialect.filename_prefix, dialect.artifact_format, options.filename
        )
        if isinstance(artifact, bytes):
            spec.output_ref = self.store.write_bytes(filename, artifact)
        else:
            spec.output_ref = self.store.write_text(filename, artifact)
        spec.format = dialect.artifact_format
        return spec

    def _build_table(
        self, rows: list[Row], profile: DatasetProfile, options: VisualizationOptions
    ) -> VisualizationSpec:
        columns = profile.column_names
        spec = VisualizationSpec(
            type="table",
            library=options.library,
            title=options.title,
            payload=table_payload(rows, columns),
        )
        if options.persist:
            filename = self.store.new_name("table", "html", options.filename)
            spec.output_ref = self.store.write_text(
                filename, render_table_html(options.title, rows, columns)
            )
            spec.format = "html"
        return spec

    @staticmethod
    def _coerce_options(options: VisualizationOptions | dict | None) -> VisualizationOptions:
        if options is None:
            return VisualizationOptions()
        if isinstance(options, VisualizationOptions):
            return options
        requested = options.get("type", "auto")
        if requested not in CHART_TYPES and requested != "auto":
            raise VisualizationError(f"Unsupported visualization type: {requested}")
        try:
            return VisualizationOptions.model_validate(options)
        except PydanticValidationError as exc:
            raise VisualizationError(f"Invalid visualization options: {exc}") from exc
