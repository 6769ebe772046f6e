"""
SchoolChat Models Module

Pydantic models and exceptions shared across the application.

Usage:
    from schoolchat.models import QueryResult, ValidationResult
    from schoolchat.models.errors import ValidationError
"""

from schoolchat.models.errors import (
    DecompositionError,
    EmptyDataError,
    ExecutionError,
    GenerationError,
    InvalidInputError,
    SchoolChatError,
    SummaryError,
    ValidationError,
    VisualizationError,
)
from schoolchat.models.pipeline import (
    AnalysisOptions,
    AnalysisResponse,
    AnalysisResult,
    CustomSqlResponse,
    PipelineRun,
    SummaryResponse,
    VisualizationResponse,
)
from schoolchat.models.query import (
    ColumnInfo,
    ConnectionCheck,
    DecomposedQuery,
    QueryMetadata,
    QueryOptions,
    QueryResult,
    Row,
    Scalar,
    TableListResult,
    TableSchemaResult,
    ValidationResult,
)
from schoolchat.models.summary import (
    ComparisonSummary,
    SummaryContext,
    SummaryResult,
    TrendAnalysis,
    TrendSummary,
)
from schoolchat.models.visualization import (
    OutputRef,
    VisualizationFile,
    VisualizationOptions,
    VisualizationSpec,
)

__all__ = [
    # Errors
    "SchoolChatError",
    "ValidationError",
    "GenerationError",
    "ExecutionError",
    "DecompositionError",
    "VisualizationError",
    "EmptyDataError",
    "SummaryError",
    "InvalidInputError",
    # Query
    "Scalar",
    "Row",
    "ValidationResult",
    "ColumnInfo",
    "QueryOptions",
    "QueryMetadata",
    "QueryResult",
    "DecomposedQuery",
    "ConnectionCheck",
    "TableListResult",
    "TableSchemaResult",
    # Visualization
    "OutputRef",
    "VisualizationOptions",
    "VisualizationSpec",
    "VisualizationFile",
    # Summary
    "SummaryContext",
    "SummaryResult",
    "ComparisonSummary",
    "TrendAnalysis",
    "TrendSummary",
    # Pipeline
    "AnalysisOptions",
    "PipelineRun",
    "AnalysisResult",
    "AnalysisResponse",
    "CustomSqlResponse",
    "VisualizationResponse",
    "SummaryResponse",
]
