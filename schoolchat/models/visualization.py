"""Visualization request and artifact models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ChartType = Literal["bar", "scatter", "pie", "histogram", "time_series", "table"]
ChartLibrary = Literal["plotly", "chartjs"]
ArtifactFormat = Literal["html", "png", "jpeg", "json"]


class OutputRef(BaseModel):
    """Where a rendered artifact was written and how to fetch it."""

    filename: str
    url: str


class VisualizationOptions(BaseModel):
    type: ChartType | Literal["auto"] = Field(default="auto", description="Chart type or auto")
    title: str = Field(default="Data Visualization")
    width: int = Field(default=800, gt=0)
    height: int = Field(default=600, gt=0)
    library: ChartLibrary = Field(default="plotly", description="Payload dialect")
    persist: bool = Field(
        default=True, description="Write the rendered artifact to the output directory"
    )
    filename: str | None = Field(
        default=None, description="Explicit artifact filename (base name only is kept)"
    )


class VisualizationSpec(BaseModel):
    """A built chart: its dialect payload plus the stored artifact, if any."""

    type: ChartType
    library: ChartLibrary
    title: str
    payload: dict[str, Any] = Field(default_factory=dict)
    format: ArtifactFormat = "json"
    output_ref: OutputRef | None = None


class VisualizationFile(BaseModel):
    """One entry in the visualization output directory."""

    filename: str
    url: str
    created: datetime
    size_bytes: int
