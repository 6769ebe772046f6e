"""
Chart dialects.

Column typing and aggregation happen once in the builder and produce a
ChartSeries. A dialect only decides the shape of the payload handed to the
front end and how the artifact is rendered:

- PlotlyDialect: trace/layout JSON, standalone HTML via plotly
- ChartJsDialect: dataset/options JSON, raster image via matplotlib
"""

import io
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import plotly.graph_objects as go  # noqa: E402

PRIMARY_COLOR = "rgb(55, 83, 109)"
PIE_COLORS = [
    "#36a2eb",
    "#ff6384",
    "#ff9f40",
    "#ffcd56",
    "#4bc0c0",
    "#9966ff",
    "#c9cbcf",
    "#8dd3c7",
    "#fb8072",
    "#80b1d3",
]
MAX_HISTOGRAM_BINS = 20


@dataclass
class ChartSeries:
    """
    Dialect-neutral chart content.

    x/y hold the plotted values: category labels and aggregates for bar and
    pie, paired numbers for scatter, dates and numbers for time series, and
    the raw numbers (x only) for histogram.
    """

    chart_type: str
    title: str
    x: list[Any] = field(default_factory=list)
    y: list[float] = field(default_factory=list)
    x_title: str | None = None
    y_title: str | None = None
    width: int = 800
    height: int = 600


def histogram_bins(values: list[float]) -> tuple[list[str], list[int]]:
    """Equal-width bins, sqrt(n) of them capped at 20."""
    if not values:
        return [], []
    low, high = min(values), max(values)
    if low == high:
        return [f"{low:g}"], [len(values)]
    count = min(MAX_HISTOGRAM_BINS, max(1, math.ceil(math.sqrt(len(values)))))
    width = (high - low) / count
    counts = [0] * count
    for value in values:
        index = min(int((value - low) / width), count - 1)
        counts[index] += 1
    labels = [f"{low + i * width:g}-{low + (i + 1) * width:g}" for i in range(count)]
    return labels, counts


class ChartDialect(ABC):
    """Payload shape and artifact renderer for one chart library."""

    library: str
    artifact_format: str
    filename_prefix: str

    @abstractmethod
    def payload(self, series: ChartSeries) -> dict[str, Any]:
        """JSON-serializable chart description for the front end."""

    @abstractmethod
    def render(self, series: ChartSeries, payload: dict[str, Any]) -> str | bytes:
        """Standalone artifact: HTML text or image bytes."""


class PlotlyDialect(ChartDialect):
    library = "plotly"
    artifact_format = "html"
    filename_prefix = "plot"

    def payload(self, series: ChartSeries) -> dict[str, Any]:
        kind = series.chart_type
        if kind == "pie":
            trace = {
                "type": "pie",
                "labels": series.x,
                "values": series.y,
                "textinfo": "label+percent",
                "textposition": "outside",
            }
        elif kind == "histogram":
            trace = {
                "type": "histogram",
                "x": series.x,
                "marker": {"color": PRIMARY_COLOR},
                "opacity": 0.7,
            }
        elif kind == "scatter":
            trace = {
                "type": "scatter",
                "mode": "markers",
                "x": series.x,
                "y": series.y,
                "marker": {"color": PRIMARY_COLOR, "size": 8},
            }
        elif kind == "time_series":
            trace = {
                "type": "scatter",
                "mode": "lines+markers",
                "x": series.x,
                "y": series.y,
                "line": {"color": PRIMARY_COLOR},
                "marker": {"size": 6},
            }
        else:
            trace = {
                "type": "bar",
                "x": series.x,
                "y": series.y,
                "marker": {"color": PRIMARY_COLOR},
            }

        layout: dict[str, Any] = {
            "title": {"text": series.title},
            "width": series.width,
            "height": series.height,
        }
        if kind != "pie":
            layout["xaxis"] = {"title": {"text": series.x_title}}
            layout["yaxis"] = {"title": {"text": series.y_title}}
            if kind == "time_series":
                layout["xaxis"]["type"] = "date"
        return {"data": [trace], "layout": layout}

    def render(self, series: ChartSeries, payload: dict[str, Any]) -> str:
        fig = go.Figure(data=payload["data"], layout=payload["layout"])
        fig.update_layout(
            template="plotly_white",
            font={"family": "Segoe UI, Arial, sans-serif"},
            margin={"l": 60, "r": 30, "t": 80, "b": 60},
        )
        return fig.to_html(
            full_html=True,
            include_plotlyjs="cdn",
            config={"responsive": True, "modeBarButtonsToRemove": ["pan2d", "lasso2d"]},
        )


class ChartJsDialect(ChartDialect):
    library = "chartjs"
    filename_prefix = "chart"

    def __init__(self, image_format: str = "png") -> None:
        self.artifact_format = image_format

    def payload(self, series: ChartSeries) -> dict[str, Any]:
        kind = series.chart_type
        dataset: dict[str, Any] = {"label": series.y_title or series.title}
        chart_type = "bar"
        labels: list[Any] = list(series.x)

        if kind == "pie":
            chart_type = "pie"
            dataset["data"] = series.y
            dataset["backgroundColor"] = [
                PIE_COLORS[i % len(PIE_COLORS)] for i in range(len(series.y))
            ]
        elif kind == "histogram":
            labels, counts = histogram_bins([float(v) for v in series.x])
            dataset["label"] = "Frequency"
            dataset["data"] = counts
            dataset["backgroundColor"] = PRIMARY_COLOR
        elif kind == "scatter":
            chart_type = "scatter"
            labels = []
            dataset["data"] = [{"x": x, "y": y} for x, y in zip(series.x, series.y)]
            dataset["backgroundColor"] = PRIMARY_COLOR
        elif kind == "time_series":
            chart_type = "line"
            dataset["data"] = series.y
            dataset["borderColor"] = PRIMARY_COLOR
            dataset["fill"] = False
        else:
            dataset["data"] = series.y
            dataset["backgroundColor"] = PRIMARY_COLOR

        options: dict[str, Any] = {
            "responsive": False,
            "plugins": {"title": {"display": True, "text": series.title}},
        }
        if chart_type != "pie":
            options["scales"] = {
                "x": {"title": {"display": bool(series.x_title), "text": series.x_title or ""}},
                "y": {
                    "title": {
                        "display": True,
                        "text": "Frequency" if kind == "histogram" else (series.y_title or ""),
                    }
                },
            }
        return {
            "type": chart_type,
            "data": {"labels": labels, "datasets": [dataset]},
            "options": options,
            "width": series.width,
            "height": series.height,
        }

    def render(self, series: ChartSeries, payload: dict[str, Any]) -> bytes:
        fig, ax = plt.subplots(figsize=(series.width / 100, series.height / 100), dpi=100)
        try:
            kind = series.chart_type
            if kind == "pie":
                ax.pie(series.y, labels=[str(label) for label in series.x], autopct="%1.1f%%")
                ax.axis("equal")
            elif kind == "histogram":
                bins = len(payload["data"]["labels"]) or 1
                ax.hist(series.x, bins=bins, color="#37536d", alpha=0.7)
                ax.set_ylabel("Frequency")
            elif kind == "scatter":
                ax.scatter(series.x, series.y, color="#37536d", s=24)
            elif kind == "time_series":
                ax.plot([str(x) for x in series.x], series.y, marker="o", color="#37536d")
                ax.tick_params(axis="x", labelrotation=45)
            else:
                ax.bar([str(x) for x in series.x], series.y, color="#37536d")
                ax.tick_params(axis="x", labelrotation=45)

            ax.set_title(series.title)
            if kind != "pie":
                if series.x_title:
                    ax.set_xlabel(series.x_title)
                if series.y_title and kind != "histogram":
                    ax.set_ylabel(series.y_title)

            buf = io.BytesIO()
            fig.savefig(buf, format=self.artifact_format, bbox_inches="tight")
            return buf.getvalue()
        finally:
            plt.close(fig)
