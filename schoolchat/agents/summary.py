"""
SummaryBuilder: plain-language narratives over query results.

Each operation computes statistics locally (column profile, trend metrics)
and hands them to one text-completion call. Completion failures surface as
SummaryError so the pipeline can downgrade them to a warning.
"""

import json
import logging
import statistics
from datetime import datetime, timezone
from typing import Any

from schoolchat.config import get_settings
from schoolchat.llm.base import BaseLLMProvider
from schoolchat.llm.factory import LLMProviderFactory
from schoolchat.models.errors import SummaryError
from schoolchat.models.query import Row
from schoolchat.models.summary import (
    ComparisonSummary,
    LabeledProfile,
    SummaryContext,
    SummaryResult,
    TrendAnalysis,
    TrendSummary,
)
from schoolchat.profiling.columns import numeric_series, parse_date, profile_columns
from schoolchat.profiling.models import DatasetProfile
from schoolchat.prompts.loader import PromptLoader

logger = logging.getLogger(__name__)

SAMPLE_ROWS = 5
MAX_CELL_CHARS = 20
TRUNCATED_CELL_CHARS = 17

PIPELINE_STEPS = [
    "Generated SQL query from natural language",
    "Validated query for security",
    "Executed query against database",
    "Created data visualization",
    "Generated summary insights",
]


def format_data_sample(rows: list[Row]) -> str:
    """Render rows as a pipe-delimited table; long strings are cut to 17 chars + '...'."""
    if not rows:
        return "No data available"

    headers = list(rows[0].keys())
    lines = [" | ".join(headers), " | ".join("---" for _ in headers)]
    for row in rows:
        cells = []
        for header in headers:
            value = row.get(header)
            if value is None:
                cells.append("null")
            elif isinstance(value, str) and len(value) > MAX_CELL_CHARS:
                cells.append(value[:TRUNCATED_CELL_CHARS] + "...")
            else:
                cells.append(str(value))
        lines.append(" | ".join(cells))
    return "\n".join(lines) + "\n"


def calculate_trend(values: list[float]) -> TrendAnalysis:
    """
    Classify a series from its step changes.

    direction: positive steps outnumber negative ones by more than 1.5x
    (or the reverse), else stable. strength: share of steps in the dominant
    direction, strong above 0.7 and moderate above 0.5. volatility: population
    std of steps against the mean step magnitude.
    """
    if len(values) < 2:
        return TrendAnalysis(direction="insufficient data", average_change=0.0, volatility="low")

    changes = [current - previous for previous, current in zip(values, values[1:])]
    average_change = statistics.fmean(changes)
    positive = sum(1 for change in changes if change > 0)
    negative = sum(1 for change in changes if change < 0)

    if positive > negative * 1.5:
        direction = "increasing"
    elif negative > positive * 1.5:
        direction = "decreasing"
    else:
        direction = "stable"

    consistency = max(positive, negative) / len(changes)
    if consistency > 0.7:
        strength = "strong"
    elif consistency > 0.5:
        strength = "moderate"
    else:
        strength = "weak"

    std = statistics.pstdev(changes)
    if std > abs(average_change) * 2:
        volatility = "high"
    elif std > abs(average_change):
        volatility = "moderate"
    else:
        volatility = "low"

    return TrendAnalysis(
        direction=direction,
        strength=strength,
        average_change=average_change,
        volatility=volatility,
        consistency=consistency * 100,
    )


def _profile_prompt_fields(profile: DatasetProfile) -> dict[str, Any]:
    return {
        "total_records": profile.total_records,
        "columns": ", ".join(profile.column_names),
        "data_types": json.dumps(profile.kinds, indent=2),
        "statistics": json.dumps(
            {column.name: column.stats.model_dump(exclude_none=True) for column in profile.columns},
            indent=2,
            default=str,
        ),
    }


def _sort_key(value: Any) -> tuple[int, datetime]:
    parsed = parse_date(value)
    if parsed is None:
        return (1, datetime.min)
    return (0, parsed.replace(tzinfo=None))


class SummaryBuilder:
    """Narrates result sets, comparisons and trends through the completion service."""

    def __init__(
        self,
        llm_provider: BaseLLMProvider | None = None,
        prompts: PromptLoader | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        if llm_provider is None:
            llm_provider = LLMProviderFactory.create_agent_provider(
                agent_name="summary", config=settings.llm, model_type="main"
            )
        self.llm = llm_provider
        self.prompts = prompts or PromptLoader()
        self.temperature = (
            settings.llm.summary_temperature if temperature is None else temperature
        )

    async def summarize(
        self, data: list[Row], context: SummaryContext | dict | None = None
    ) -> SummaryResult:
        """
        Summarize one result set.

        Raises:
            SummaryError: The completion call failed
        """
        context = self._coerce_context(context)
        profile = profile_columns(data)
        prompt = self.prompts.render(
            "summary/insight.md",
            user_question=context.user_question or "Data analysis request",
            sql_query=context.sql_query or "N/A",
            visualization_type=context.visualization_type or "N/A",
            analysis_steps=", ".join(context.analysis_steps) if context.analysis_steps else "N/A",
            data_sample=format_data_sample(data[:SAMPLE_ROWS]),
            **_profile_prompt_fields(profile),
        )
        text = await self._complete(prompt, "Failed to generate data summary")
        return SummaryResult(
            text=text,
            profile=profile,
            generated_at=datetime.now(timezone.utc),
            context=context,
        )

    async def summarize_run(
        self,
        data: list[Row],
        sql_query: str,
        visualization_type: str | None,
        user_question: str,
    ) -> SummaryResult:
        """Summary for a pipeline run, tagged with the pipeline's analysis steps."""
        return await self.summarize(
            data,
            SummaryContext(
                sql_query=sql_query,
                user_question=user_question,
                visualization_type=visualization_type or "unknown",
                analysis_steps=PIPELINE_STEPS,
            ),
        )

    async def compare_summary(
        self,
        datasets: list[list[Row]],
        labels: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> ComparisonSummary:
        """
        Compare two or more result sets. Missing labels become "Dataset N".

        Raises:
            SummaryError: Fewer than two datasets, or the completion call failed
        """
        if not isinstance(datasets, list) or len(datasets) < 2:
            raise SummaryError("At least two datasets required for comparison")

        labels = labels or []
        comparisons = [
            LabeledProfile(
                label=labels[index] if index < len(labels) and labels[index] else f"Dataset {index + 1}",
                profile=profile_columns(rows),
            )
            for index, rows in enumerate(datasets)
        ]
        prompt = self.prompts.render(
            "summary/compare.md",
            context_json=json.dumps(context or {}, indent=2, default=str),
            comparisons_json=json.dumps(
                [comparison.model_dump(exclude_none=True) for comparison in comparisons],
                indent=2,
                default=str,
            ),
        )
        text = await self._complete(prompt, "Failed to generate comparison summary")
        return ComparisonSummary(
            text=text, comparisons=comparisons, generated_at=datetime.now(timezone.utc)
        )

    async def trend_summary(
        self,
        rows: list[Row],
        date_column: str,
        value_column: str,
        context: dict[str, Any] | None = None,
    ) -> TrendSummary:
        """
        Narrate a time series after sorting it by date.

        Cells in the value column that do not parse as numbers count as 0.
        Total change is reported as N/A when the series starts at 0.
        """
        if not rows:
            raise SummaryError("Time series data must be a non-empty array")

        ordered = sorted(rows, key=lambda row: _sort_key(row.get(date_column)))
        values = numeric_series(ordered, value_column)
        trend = calculate_trend(values)

        first, last = values[0], values[-1]
        total_change = "N/A" if first == 0 else f"{(last - first) / first * 100:.2f}%"
        prompt = self.prompts.render(
            "summary/trend.md",
            date_column=date_column,
            value_column=value_column,
            data_points=len(ordered),
            start_date=ordered[0].get(date_column),
            end_date=ordered[-1].get(date_column),
            direction=trend.direction,
            strength=trend.strength or "n/a",
            average_change=f"{trend.average_change:.2f}",
            volatility=trend.volatility,
            start_value=first,
            end_value=last,
            max_value=max(values),
            min_value=min(values),
            total_change=total_change,
            context_json=json.dumps(context or {}, indent=2, default=str),
        )
        text = await self._complete(prompt, "Failed to generate trend analysis")
        return TrendSummary(
            text=text,
            trend=trend,
            date_column=date_column,
            value_column=value_column,
            data_points=len(ordered),
            generated_at=datetime.now(timezone.utc),
            extra={
                "start_value": first,
                "end_value": last,
                "total_change": None if first == 0 else (last - first) / first * 100,
            },
        )

    async def _complete(self, prompt: str, failure_message: str) -> str:
        try:
            text = await self.llm.complete(prompt, temperature=self.temperature)
        except Exception as exc:
            logger.error(f"{failure_message}: {exc}")
            raise SummaryError(failure_message, context={"cause": str(exc)}) from exc
        text = (text or "").strip()
        if not text:
            raise SummaryError(f"{failure_message}: empty completion")
        return text

    @staticmethod
    def _coerce_context(context: SummaryContext | dict | None) -> SummaryContext:
        if context is None:
            return SummaryContext()
        if isinstance(context, SummaryContext):
            return context
        return SummaryContext.model_validate(context)
