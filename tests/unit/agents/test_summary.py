"""
Unit tests for SummaryBuilder.

Profile-driven prompts, comparison and trend narratives, and trend metrics.
"""

import pytest

from schoolchat.agents.summary import (
    PIPELINE_STEPS,
    SummaryBuilder,
    calculate_trend,
    format_data_sample,
)
from schoolchat.models.errors import SummaryError
from schoolchat.models.summary import SummaryContext


@pytest.fixture
def builder(mock_llm_provider):
    mock_llm_provider.set_response("Secondary schools are roughly three times larger.")
    return SummaryBuilder(llm_provider=mock_llm_provider)


class TestFormatDataSample:
    def test_empty(self):
        assert format_data_sample([]) == "No data available"

    def test_table_layout_and_truncation(self):
        rows = [{"name": "A very long school name indeed", "capacity": 300, "note": None}]

        sample = format_data_sample(rows)

        lines = sample.splitlines()
        assert lines[0] == "name | capacity | note"
        assert lines[1] == "--- | --- | ---"
        assert lines[2] == "A very long schoo... | 300 | null"

    def test_exactly_twenty_chars_kept(self):
        assert "x" * 20 in format_data_sample([{"v": "x" * 20}])


class TestCalculateTrend:
    def test_insufficient_data(self):
        trend = calculate_trend([5.0])

        assert trend.direction == "insufficient data"
        assert trend.strength is None
        assert trend.average_change == 0
        assert trend.volatility == "low"

    def test_steady_increase(self):
        trend = calculate_trend([100, 110, 120, 130])

        assert trend.direction == "increasing"
        assert trend.strength == "strong"
        assert trend.average_change == pytest.approx(10)
        assert trend.volatility == "low"
        assert trend.consistency == pytest.approx(100)

    def test_decrease(self):
        assert calculate_trend([9, 7, 8, 5, 3]).direction == "decreasing"

    def test_mixed_is_stable_and_volatile(self):
        trend = calculate_trend([10, 20, 10, 20, 10])

        assert trend.direction == "stable"
        assert trend.strength == "weak"
        assert trend.volatility == "high"

    def test_moderate_strength(self):
        # 2 up, 1 down: consistency 2/3
        trend = calculate_trend([1, 2, 3, 2])

        assert trend.strength == "moderate"
        assert trend.direction == "increasing"


class TestSummarize:
    @pytest.mark.asyncio
    async def test_profile_and_text(self, builder, school_rows, mock_llm_provider):
        result = await builder.summarize(
            school_rows, SummaryContext(user_question="How big are schools?", sql_query="SELECT *")
        )

        assert result.text == "Secondary schools are roughly three times larger."
        assert result.profile.total_records == 4
        assert result.profile.kinds["capacity"] == "numeric"
        assert result.profile.kinds["school_type"] == "categorical"

        prompt = mock_llm_provider.last_prompt()
        assert "- Original Question: How big are schools?" in prompt
        assert "- Total Records: 4" in prompt
        assert "school_id | school_name | school_type | capacity" in prompt
        assert "**Recommendations**" in prompt

    @pytest.mark.asyncio
    async def test_context_defaults(self, builder, school_rows, mock_llm_provider):
        await builder.summarize(school_rows)

        prompt = mock_llm_provider.last_prompt()
        assert "- Original Question: Data analysis request" in prompt
        assert "- SQL Query Used: N/A" in prompt
        assert "- Analysis Steps: N/A" in prompt

    @pytest.mark.asyncio
    async def test_uses_summary_temperature(self, builder, school_rows, mock_llm_provider):
        await builder.summarize(school_rows)

        assert mock_llm_provider.generate.await_args.args[0].temperature == 0.3

    @pytest.mark.asyncio
    async def test_run_summary_lists_pipeline_steps(self, builder, school_rows, mock_llm_provider):
        result = await builder.summarize_run(school_rows, "SELECT * FROM schools", "bar", "q")

        assert result.context.analysis_steps == PIPELINE_STEPS
        assert "Validated query for security" in mock_llm_provider.last_prompt()

    @pytest.mark.asyncio
    async def test_provider_failure(self, builder, school_rows, mock_llm_provider):
        mock_llm_provider.generate.side_effect = RuntimeError("overloaded")

        with pytest.raises(SummaryError) as exc_info:
            await builder.summarize(school_rows)

        assert exc_info.value.recoverable is True
        assert str(exc_info.value) == "Failed to generate data summary"

    @pytest.mark.asyncio
    async def test_dict_context(self, builder, school_rows):
        result = await builder.summarize(school_rows, {"user_question": "q"})

        assert result.context.user_question == "q"


class TestCompareSummary:
    @pytest.mark.asyncio
    async def test_needs_two_datasets(self, builder, school_rows):
        with pytest.raises(SummaryError, match="At least two datasets"):
            await builder.compare_summary([school_rows])

    @pytest.mark.asyncio
    async def test_default_labels(self, builder, school_rows, mock_llm_provider):
        result = await builder.compare_summary(
            [school_rows[:2], school_rows[2:]], labels=["North"], context={"metric": "capacity"}
        )

        assert [c.label for c in result.comparisons] == ["North", "Dataset 2"]
        prompt = mock_llm_provider.last_prompt()
        assert '"metric": "capacity"' in prompt
        assert "**Key Differences**" in prompt


class TestTrendSummary:
    @pytest.mark.asyncio
    async def test_rows_sorted_by_date(self, builder, mock_llm_provider):
        rows = [
            {"year": "2023-09-01", "enrolment": 520},
            {"year": "2021-09-01", "enrolment": 480},
            {"year": "2022-09-01", "enrolment": 500},
        ]

        result = await builder.trend_summary(rows, "year", "enrolment")

        assert result.trend.direction == "increasing"
        assert result.data_points == 3
        assert result.extra["start_value"] == 480
        prompt = mock_llm_provider.last_prompt()
        assert "- Time Period: 2021-09-01 to 2023-09-01" in prompt
        assert "- Total Change: 8.33%" in prompt

    @pytest.mark.asyncio
    async def test_zero_start_has_no_percentage(self, builder, mock_llm_provider):
        rows = [{"d": "2024-01-01", "v": 0}, {"d": "2024-02-01", "v": 5}]

        result = await builder.trend_summary(rows, "d", "v")

        assert result.extra["total_change"] is None
        assert "- Total Change: N/A" in mock_llm_provider.last_prompt()

    @pytest.mark.asyncio
    async def test_empty_series(self, builder):
        with pytest.raises(SummaryError):
            await builder.trend_summary([], "d", "v")
