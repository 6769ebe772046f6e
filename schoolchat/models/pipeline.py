"""Analysis pipeline run record and response envelopes."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from schoolchat.models.query import QueryResult, Row, ValidationResult
from schoolchat.models.summary import ComparisonSummary, SummaryResult, TrendSummary
from schoolchat.models.visualization import ChartLibrary, ChartType, VisualizationSpec


class AnalysisOptions(BaseModel):
    include_visualization: bool = True
    include_summary: bool = True
    visualization_type: ChartType | Literal["auto"] = "auto"
    visualization_library: ChartLibrary | None = None
    max_rows: int | None = Field(default=None, gt=0)
    database_schema: dict[str, Any] | None = Field(
        default=None, description="Schema description embedded in the SQL prompt"
    )


class PipelineRun(BaseModel):
    """
    Mutable record of one pipeline run.

    Created when a question comes in, filled stage by stage, and finalized
    with a total timing on every exit path.
    """

    user_input: str
    sql_query: str | None = None
    validation: ValidationResult | None = None
    query_result: QueryResult | None = None
    visualization: VisualizationSpec | None = None
    summary: SummaryResult | None = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    timings: dict[str, float] = Field(default_factory=dict, description="Stage -> milliseconds")


class AnalysisResult(BaseModel):
    user_input: str
    sql_query: str | None = None
    data: list[Row] | None = None
    row_count: int | None = None
    visualization: VisualizationSpec | None = None
    summary: str | None = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    timings: dict[str, float] = Field(default_factory=dict)


class AnalysisResponse(BaseModel):
    success: bool
    result: AnalysisResult
    error: str | None = None

    @classmethod
    def from_run(cls, run: PipelineRun) -> "AnalysisResponse":
        if run.errors:
            return cls(
                success=False,
                error=run.errors[0],
                result=AnalysisResult(
                    user_input=run.user_input,
                    sql_query=run.sql_query,
                    errors=run.errors,
                    warnings=run.warnings,
                    timings=run.timings,
                ),
            )
        rows = run.query_result.data if run.query_result else []
        return cls(
            success=True,
            result=AnalysisResult(
                user_input=run.user_input,
                sql_query=run.sql_query,
                data=rows,
                row_count=len(rows),
                visualization=run.visualization,
                summary=run.summary.text if run.summary else None,
                warnings=run.warnings,
                timings=run.timings,
            ),
        )


class CustomSqlResponse(BaseModel):
    success: bool
    data: list[Row] = Field(default_factory=list)
    row_count: int = 0
    error: str | None = None
    validation: ValidationResult | None = None
    warnings: list[str] = Field(default_factory=list)


class VisualizationResponse(BaseModel):
    success: bool
    visualization: VisualizationSpec | None = None
    error: str | None = None


class SummaryResponse(BaseModel):
    success: bool
    summary: SummaryResult | None = None
    error: str | None = None


class ComparisonResponse(BaseModel):
    success: bool
    summary: ComparisonSummary | None = None
    error: str | None = None


class TrendResponse(BaseModel):
    success: bool
    summary: TrendSummary | None = None
    error: str | None = None
