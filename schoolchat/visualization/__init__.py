"""Chart building, rendering dialects and the artifact store."""

from schoolchat.visualization.builder import VisualizationBuilder, shape_series, suggest_type
from schoolchat.visualization.dialects import ChartDialect, ChartJsDialect, ChartSeries, PlotlyDialect
from schoolchat.visualization.store import VisualizationStore

__all__ = [
    "ChartDialect",
    "ChartJsDialect",
    "ChartSeries",
    "PlotlyDialect",
    "VisualizationBuilder",
    "VisualizationStore",
    "shape_series",
    "suggest_type",
]
