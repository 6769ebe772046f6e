"""
Unit tests for the AnalysisPipeline orchestrator.

Tests pipeline execution including:
- Stage order and end-to-end output
- Fatal failures in generation, validation and execution
- Visualization and summary degrading to warnings
- Stage timings
- Custom entry points
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from schoolchat.agents.executor import QueryExecutor
from schoolchat.agents.sql import SqlGenerator
from schoolchat.agents.summary import SummaryBuilder
from schoolchat.agents.validator import SqlValidator
from schoolchat.config import clear_settings_cache, get_settings
from schoolchat.models.pipeline import AnalysisOptions
from schoolchat.models.query import (
    ColumnInfo,
    ConnectionCheck,
    QueryResult,
    TableListResult,
    TableSchemaResult,
)
from schoolchat.pipeline.orchestrator import AnalysisPipeline
from schoolchat.visualization.builder import VisualizationBuilder
from schoolchat.visualization.store import VisualizationStore

E2E_ROWS = [
    {"school_id": "SCH-001", "school_name": "Hillside Primary", "enrollment_capacity": 420},
    {"school_id": "SCH-002", "school_name": "Riverside Academy", "enrollment_capacity": 1100},
    {"school_id": "SCH-003", "school_name": "Oakfield Primary", "enrollment_capacity": 315},
]


@pytest.fixture
def mock_executor():
    executor = MagicMock(spec=QueryExecutor)
    executor.mode = "local"
    executor.execute = AsyncMock(return_value=QueryResult.ok(E2E_ROWS))
    executor.test_connection = AsyncMock(
        return_value=ConnectionCheck(success=True, message="Local database connection successful")
    )
    executor.list_tables = AsyncMock(
        return_value=TableListResult(success=True, tables=["schools", "catchments"])
    )
    executor.get_table_schema = AsyncMock(
        return_value=TableSchemaResult(
            success=True,
            table="schools",
            table_schema=[ColumnInfo(name="school_id", data_type="varchar(16)")],
        )
    )
    return executor


@pytest.fixture
def pipeline(mock_llm_provider, mock_executor, tmp_path):
    """Pipeline with real validator and builder, mocked LLM and database."""
    return AnalysisPipeline(
        generator=SqlGenerator(llm_provider=mock_llm_provider),
        validator=SqlValidator(),
        executor=mock_executor,
        visualizer=VisualizationBuilder(store=VisualizationStore(tmp_path / "viz")),
        summarizer=SummaryBuilder(llm_provider=mock_llm_provider),
    )


class TestProcessQuery:
    """End-to-end flow through all five stages."""

    @pytest.mark.asyncio
    async def test_end_to_end(self, pipeline, mock_llm_provider, mock_executor):
        mock_llm_provider.set_responses(
            ["SELECT * FROM schools LIMIT 10;", "Three schools, Riverside Academy is largest."]
        )

        response = await pipeline.process_query("show all schools")

        assert response.success is True
        assert response.error is None
        result = response.result
        assert result.sql_query == "SELECT * FROM schools LIMIT 10;"
        assert result.row_count == 3
        assert result.data == E2E_ROWS
        assert result.visualization.type == "bar"
        assert result.visualization.title == "Results for: show all schools"
        assert result.summary
        assert mock_executor.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_execution_options(self, pipeline, mock_llm_provider, mock_executor):
        mock_llm_provider.set_responses(["SELECT * FROM schools", "summary"])

        await pipeline.process_query("show all schools", {"max_rows": 25})

        query, options = mock_executor.execute.await_args.args
        assert query == "SELECT * FROM schools"
        assert options.max_rows == 25
        assert options.timeout_ms == 30000
        assert options.return_metadata is True

    @pytest.mark.asyncio
    async def test_timings_for_every_stage(self, pipeline, mock_llm_provider):
        mock_llm_provider.set_responses(["SELECT * FROM schools LIMIT 10;", "summary"])

        response = await pipeline.process_query("show all schools")

        assert set(response.result.timings) == {
            "sql_generation",
            "validation",
            "query_execution",
            "visualization",
            "summary",
            "total",
        }
        assert all(value >= 0 for value in response.result.timings.values())

    @pytest.mark.asyncio
    async def test_settings_defaults_apply_to_unset_options(
        self, pipeline, mock_llm_provider, monkeypatch
    ):
        monkeypatch.setenv("PIPELINE_INCLUDE_VISUALIZATION", "false")
        monkeypatch.setenv("PIPELINE_INCLUDE_SUMMARY", "false")
        clear_settings_cache()
        pipeline.config = get_settings()
        mock_llm_provider.set_responses(["SELECT * FROM schools LIMIT 10;", "summary"])

        response = await pipeline.process_query("show all schools", AnalysisOptions(max_rows=5))

        assert response.success is True
        assert response.result.visualization is None
        assert response.result.summary is None

    @pytest.mark.asyncio
    async def test_explicit_options_override_settings(
        self, pipeline, mock_llm_provider, monkeypatch
    ):
        monkeypatch.setenv("PIPELINE_INCLUDE_SUMMARY", "false")
        clear_settings_cache()
        pipeline.config = get_settings()
        mock_llm_provider.set_responses(["SELECT * FROM schools LIMIT 10;", "Three schools."])

        response = await pipeline.process_query(
            "show all schools", AnalysisOptions(include_visualization=False, include_summary=True)
        )

        assert response.result.visualization is None
        assert response.result.summary

    @pytest.mark.asyncio
    async def test_optional_stages_skipped(self, pipeline, mock_llm_provider):
        mock_llm_provider.set_response("SELECT * FROM schools LIMIT 10;")

        response = await pipeline.process_query(
            "show all schools", {"include_visualization": False, "include_summary": False}
        )

        assert response.success is True
        assert response.result.visualization is None
        assert response.result.summary is None
        assert "visualization" not in response.result.timings
        assert "summary" not in response.result.timings
        assert mock_llm_provider.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_empty_result_skips_visualization_and_summary(
        self, pipeline, mock_llm_provider, mock_executor
    ):
        mock_llm_provider.set_response("SELECT * FROM schools WHERE capacity > 99999")
        mock_executor.execute.return_value = QueryResult.ok([])

        response = await pipeline.process_query("huge schools")

        assert response.success is True
        assert response.result.row_count == 0
        assert response.result.visualization is None
        assert response.result.summary is None
        assert response.result.warnings == []

    @pytest.mark.asyncio
    async def test_validation_warnings_carried(self, pipeline, mock_llm_provider):
        mock_llm_provider.set_responses(["SELECT * FROM schools", "summary"])

        response = await pipeline.process_query("show all schools")

        assert response.success is True
        assert response.result.warnings == pipeline.validator.validate(
            "SELECT * FROM schools"
        ).warnings

    @pytest.mark.asyncio
    async def test_explicit_schema_reaches_prompt(self, pipeline, mock_llm_provider):
        mock_llm_provider.set_responses(["SELECT * FROM schools", "summary"])
        schema = {"schools": {"columns": ["school_id", "capacity"]}}

        await pipeline.process_query("show all schools", {"database_schema": schema})

        first_request = mock_llm_provider.generate.await_args_list[0].args[0]
        assert '"capacity"' in first_request.messages[-1].content

    @pytest.mark.asyncio
    async def test_live_schema_fetched_when_enabled(
        self, pipeline, mock_llm_provider, mock_executor
    ):
        pipeline.config.pipeline.include_live_schema = True
        mock_llm_provider.set_responses(["SELECT * FROM schools", "summary"])

        await pipeline.process_query("show all schools")

        assert mock_executor.list_tables.await_count == 1
        assert mock_executor.get_table_schema.await_count == 2
        first_request = mock_llm_provider.generate.await_args_list[0].args[0]
        assert "varchar(16)" in first_request.messages[-1].content


class TestFatalFailures:
    """Generation, validation and execution abort the run."""

    @pytest.mark.asyncio
    async def test_validation_failure(self, pipeline, mock_llm_provider, mock_executor):
        mock_llm_provider.set_response("bad sql")

        response = await pipeline.process_query("bad sql")

        assert response.success is False
        assert response.error.startswith("SQL validation failed: ")
        assert response.result.errors[0].startswith("SQL validation failed: ")
        assert "Only SELECT queries are allowed" in response.result.errors[0]
        assert response.result.sql_query == "bad sql"
        assert set(response.result.timings) == {"sql_generation", "validation", "total"}
        assert response.result.data is None
        mock_executor.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generation_failure(self, pipeline, mock_llm_provider, mock_executor):
        mock_llm_provider.generate.side_effect = RuntimeError("rate limited")

        response = await pipeline.process_query("show all schools")

        assert response.success is False
        assert response.error == (
            "SQL generation failed: Failed to generate SQL query: rate limited"
        )
        assert response.result.sql_query is None
        assert set(response.result.timings) == {"sql_generation", "total"}
        mock_executor.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_execution_failure_keeps_sql(self, pipeline, mock_llm_provider, mock_executor):
        mock_llm_provider.set_response("SELECT * FROM missing_table")
        mock_executor.execute.return_value = QueryResult.failure(
            "Table 'schools.missing_table' doesn't exist"
        )

        response = await pipeline.process_query("show the missing table")

        assert response.success is False
        assert response.result.errors == [
            "Query execution failed: Table 'schools.missing_table' doesn't exist"
        ]
        assert response.result.sql_query == "SELECT * FROM missing_table"
        assert "query_execution" in response.result.timings
        assert "visualization" not in response.result.timings

    @pytest.mark.asyncio
    async def test_invalid_options(self, pipeline, mock_llm_provider):
        response = await pipeline.process_query("show all schools", {"max_rows": 0})

        assert response.success is False
        assert response.error.startswith("Invalid analysis options")
        assert "total" in response.result.timings
        mock_llm_provider.generate.assert_not_awaited()


class TestDegradation:
    """Visualization and summary failures become warnings."""

    @pytest.mark.asyncio
    async def test_visualization_failure_is_warning(self, pipeline, mock_llm_provider):
        mock_llm_provider.set_responses(["SELECT * FROM schools LIMIT 10;", "summary"])

        with patch.object(pipeline.visualizer, "build", side_effect=RuntimeError("renderer down")):
            response = await pipeline.process_query("show all schools")

        assert response.success is True
        assert response.result.data == E2E_ROWS
        assert response.result.visualization is None
        assert response.result.warnings == ["Visualization creation failed: renderer down"]
        assert response.result.summary == "summary"
        assert "visualization" in response.result.timings

    @pytest.mark.asyncio
    async def test_summary_failure_is_warning(self, pipeline, mock_llm_provider):
        mock_llm_provider.set_responses(
            ["SELECT * FROM schools LIMIT 10;", RuntimeError("overloaded")]
        )

        response = await pipeline.process_query("show all schools")

        assert response.success is True
        assert response.result.summary is None
        assert response.result.visualization is not None
        assert len(response.result.warnings) == 1
        assert response.result.warnings[0].startswith("Summary generation failed: ")
        assert "summary" in response.result.timings


class TestCustomEntryPoints:
    def test_validate_only(self, pipeline):
        assert pipeline.validate_only("SELECT * FROM schools LIMIT 5").is_valid is True
        assert pipeline.validate_only("DELETE FROM schools").is_valid is False

    @pytest.mark.asyncio
    async def test_execute_custom_sql_rejects_invalid(self, pipeline, mock_executor):
        response = await pipeline.execute_custom_sql("DROP TABLE schools")

        assert response.success is False
        assert response.error.startswith("SQL validation failed: ")
        assert response.validation.is_valid is False
        mock_executor.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_execute_custom_sql(self, pipeline, mock_executor):
        response = await pipeline.execute_custom_sql(
            "SELECT * FROM schools LIMIT 3", {"max_rows": 3}
        )

        assert response.success is True
        assert response.row_count == 3
        assert response.validation.is_valid is True
        assert mock_executor.execute.await_args.args[1].max_rows == 3

    @pytest.mark.asyncio
    async def test_execute_custom_sql_passes_failure_through(self, pipeline, mock_executor):
        mock_executor.execute.return_value = QueryResult.failure("Lost connection")

        response = await pipeline.execute_custom_sql("SELECT * FROM schools LIMIT 3")

        assert response.success is False
        assert response.error == "Lost connection"
        assert response.data == []

    @pytest.mark.asyncio
    async def test_custom_visualization(self, pipeline, school_rows):
        response = await pipeline.create_custom_visualization(school_rows, {"type": "pie"})

        assert response.success is True
        assert response.visualization.type == "pie"
        assert [f.filename for f in pipeline.list_visualizations()] == [
            response.visualization.output_ref.filename
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [[], None, {"a": 1}])
    async def test_custom_visualization_needs_rows(self, pipeline, data):
        response = await pipeline.create_custom_visualization(data)

        assert response.success is False
        assert response.error == "Data must be a non-empty array"

    @pytest.mark.asyncio
    async def test_custom_summary(self, pipeline, mock_llm_provider, school_rows):
        mock_llm_provider.set_response("Four schools across two types.")

        response = await pipeline.generate_custom_summary(
            school_rows, {"user_question": "How big are our schools?"}
        )

        assert response.success is True
        assert response.summary.text == "Four schools across two types."
        assert response.summary.context.user_question == "How big are our schools?"

    @pytest.mark.asyncio
    async def test_custom_summary_needs_rows(self, pipeline, mock_llm_provider):
        response = await pipeline.generate_custom_summary([])

        assert response.success is False
        assert response.error == "Data must be a non-empty array"
        mock_llm_provider.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_compare_datasets(self, pipeline, mock_llm_provider, school_rows):
        mock_llm_provider.set_response("Secondary schools are larger.")

        response = await pipeline.compare_datasets(
            [school_rows[:2], school_rows[2:]], ["First pair"], {"topic": "capacity"}
        )

        assert response.success is True
        assert response.summary.text == "Secondary schools are larger."
        assert [c.label for c in response.summary.comparisons] == ["First pair", "Dataset 2"]

    @pytest.mark.asyncio
    async def test_compare_needs_two_datasets(self, pipeline, mock_llm_provider, school_rows):
        response = await pipeline.compare_datasets([school_rows])

        assert response.success is False
        assert response.error == "At least two datasets required for comparison"
        mock_llm_provider.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_analyze_trend(self, pipeline, mock_llm_provider):
        mock_llm_provider.set_response("Enrollment is rising.")
        rows = [
            {"year": "2023-09-01", "enrollment": 450},
            {"year": "2021-09-01", "enrollment": 400},
            {"year": "2022-09-01", "enrollment": 420},
        ]

        response = await pipeline.analyze_trend(rows, "year", "enrollment")

        assert response.success is True
        assert response.summary.text == "Enrollment is rising."
        assert response.summary.trend.direction == "increasing"
        assert response.summary.data_points == 3

    @pytest.mark.asyncio
    async def test_analyze_trend_needs_rows(self, pipeline, mock_llm_provider):
        response = await pipeline.analyze_trend([], "year", "enrollment")

        assert response.success is False
        assert response.error == "Time series data must be a non-empty array"
        mock_llm_provider.generate.assert_not_awaited()
    @pytest.mark.asyncio
    async def test_delete_visualization(self, pipeline, school_rows):
        created = await pipeline.create_custom_visualization(school_rows, {"type": "table"})
        filename = created.visualization.output_ref.filename

        assert pipeline.delete_visualization(filename) is True
        assert pipeline.delete_visualization(filename) is False
        assert pipeline.list_visualizations() == []

    @pytest.mark.asyncio
    async def test_introspection_passthrough(self, pipeline):
        assert (await pipeline.test_connection()).success is True
        assert (await pipeline.get_available_tables()).tables == ["schools", "catchments"]
        assert (await pipeline.get_table_schema("schools")).table == "schools"

    @pytest.mark.asyncio
    async def test_connection_check_never_raises(self, pipeline, mock_executor):
        mock_executor.test_connection.side_effect = RuntimeError("socket closed")

        check = await pipeline.test_connection()

        assert check.success is False
        assert check.message == "Connection test failed: socket closed"
