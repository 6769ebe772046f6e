"""Request and response models for the HTTP API."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from schoolchat.models.pipeline import AnalysisOptions
from schoolchat.models.query import QueryOptions
from schoolchat.models.summary import SummaryContext
from schoolchat.models.visualization import VisualizationOptions


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""

    status: str = Field(..., description="Service status: 'healthy' or 'unhealthy'")
    version: str = Field(..., description="API version")
    timestamp: str = Field(..., description="Current timestamp (ISO 8601)")
    mode: str | None = Field(None, description="Execution mode: local or cloud")


class AnalysisRequest(BaseModel):
    question: str = Field(..., min_length=1, description="Natural-language question")
    options: AnalysisOptions | None = None


class SqlRequest(BaseModel):
    sql: str = Field(..., description="SQL text")
    options: QueryOptions | None = None


class VisualizationRequest(BaseModel):
    # Left loose so the pipeline's own emptiness check produces the error
    data: Any = Field(..., description="Rows to chart")
    options: VisualizationOptions | None = None


class SummaryRequest(BaseModel):
    data: Any = Field(..., description="Rows to summarize")
    context: SummaryContext | None = None


class CompareSummaryRequest(BaseModel):
    datasets: list[list[dict[str, Any]]] = Field(..., description="Result sets to compare")
    labels: list[str] | None = None
    context: dict[str, Any] | None = None


class TrendSummaryRequest(BaseModel):
    data: Any = Field(..., description="Rows of the time series")
    date_column: str = Field(..., min_length=1)
    value_column: str = Field(..., min_length=1)
    context: dict[str, Any] | None = None


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1)


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(..., min_length=1, description="Conversation so far")
    user_id: str = Field(default="anonymous")


class DeleteResponse(BaseModel):
    success: bool
    filename: str
