"""Summary result models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from schoolchat.profiling.models import DatasetProfile


class SummaryContext(BaseModel):
    sql_query: str | None = None
    user_question: str | None = None
    visualization_type: str | None = None
    analysis_steps: list[str] = Field(default_factory=list)


class SummaryResult(BaseModel):
    text: str
    profile: DatasetProfile
    generated_at: datetime
    context: SummaryContext = Field(default_factory=SummaryContext)


class LabeledProfile(BaseModel):
    label: str
    profile: DatasetProfile


class ComparisonSummary(BaseModel):
    text: str
    comparisons: list[LabeledProfile]
    generated_at: datetime


class TrendAnalysis(BaseModel):
    direction: Literal["increasing", "decreasing", "stable", "insufficient data"]
    strength: Literal["strong", "moderate", "weak"] | None = None
    average_change: float = 0.0
    volatility: Literal["high", "moderate", "low"] = "low"
    consistency: float = Field(default=0.0, description="Dominant-direction share, percent")


class TrendSummary(BaseModel):
    text: str
    trend: TrendAnalysis
    date_column: str
    value_column: str
    data_points: int
    generated_at: datetime
    extra: dict[str, Any] = Field(default_factory=dict)
