"""
Analysis Pipeline Orchestrator

LangGraph-based pipeline that turns a natural-language question into data,
a chart and a narrated summary.

Pipeline Flow:
    User Question → generate → validate → execute → visualize? → summarize? → END

Generation, validation and execution are fatal: a failure records the error
and jumps straight to END. Visualization and summary are best-effort: a
failure becomes a warning and the run still succeeds.

Every public entry point is total. Failures come back inside the response
envelopes in schoolchat.models.pipeline, never as exceptions.
"""

import asyncio
import logging
import time
from typing import Any, TypedDict

from langgraph.graph import END, StateGraph

from schoolchat.agents.executor import QueryExecutor
from schoolchat.agents.sql import SqlGenerator
from schoolchat.agents.summary import SummaryBuilder
from schoolchat.agents.validator import SqlValidator
from schoolchat.config import Settings, get_settings
from schoolchat.models.errors import InvalidInputError
from schoolchat.models.pipeline import (
    AnalysisOptions,
    AnalysisResponse,
    ComparisonResponse,
    CustomSqlResponse,
    PipelineRun,
    SummaryResponse,
    TrendResponse,
    VisualizationResponse,
)
from schoolchat.models.query import (
    ConnectionCheck,
    QueryOptions,
    QueryResult,
    TableListResult,
    TableSchemaResult,
    ValidationResult,
)
from schoolchat.models.summary import SummaryContext
from schoolchat.models.visualization import (
    VisualizationFile,
    VisualizationOptions,
    VisualizationSpec,
)
from schoolchat.visualization.builder import VisualizationBuilder

logger = logging.getLogger(__name__)


# ============================================================================
# State Definition
# ============================================================================


class PipelineState(TypedDict, total=False):
    """
    State passed between pipeline nodes.

    LangGraph hands this dict from node to node; each node fills in its
    stage's output and timing.
    """

    # Input
    user_input: str
    options: AnalysisOptions
    database_schema: dict[str, Any] | None

    # Stage outputs
    sql_query: str | None
    validation: ValidationResult | None
    query_result: QueryResult | None
    visualization: VisualizationSpec | None
    summary: Any

    # Run bookkeeping
    errors: list[str]
    warnings: list[str]
    timings: dict[str, float]


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


# ============================================================================
# Analysis Pipeline
# ============================================================================


class AnalysisPipeline:
    """
    Orchestrates SqlGenerator, SqlValidator, QueryExecutor,
    VisualizationBuilder and SummaryBuilder.

    Usage:
        pipeline = AnalysisPipeline.from_settings()
        response = await pipeline.process_query("Average capacity by school type")
        if response.success:
            print(response.result.summary)
    """

    def __init__(
        self,
        generator: SqlGenerator,
        validator: SqlValidator,
        executor: QueryExecutor,
        visualizer: VisualizationBuilder,
        summarizer: SummaryBuilder,
        settings: Settings | None = None,
    ):
        self.generator = generator
        self.validator = validator
        self.executor = executor
        self.visualizer = visualizer
        self.summarizer = summarizer
        self.config = settings or get_settings()

        self.graph = self._build_graph()

        logger.info(f"AnalysisPipeline initialized ({executor.mode} mode)")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AnalysisPipeline":
        settings = settings or get_settings()
        return cls(
            generator=SqlGenerator(),
            validator=SqlValidator(),
            executor=QueryExecutor.from_settings(settings),
            visualizer=VisualizationBuilder.from_settings(settings),
            summarizer=SummaryBuilder(),
            settings=settings,
        )

    def _build_graph(self):
        """
        Build LangGraph state machine.

        Returns:
            Compiled LangGraph
        """
        workflow = StateGraph(PipelineState)

        workflow.add_node("generate", self._run_generate)
        workflow.add_node("validate", self._run_validate)
        workflow.add_node("execute", self._run_execute)
        workflow.add_node("visualize", self._run_visualize)
        workflow.add_node("summarize", self._run_summarize)

        workflow.set_entry_point("generate")

        workflow.add_conditional_edges(
            "generate",
            self._should_continue,
            {"continue": "validate", "end": END},
        )
        workflow.add_conditional_edges(
            "validate",
            self._should_continue,
            {"continue": "execute", "end": END},
        )
        workflow.add_conditional_edges(
            "execute",
            self._after_execute,
            {"visualize": "visualize", "summarize": "summarize", "end": END},
        )
        workflow.add_conditional_edges(
            "visualize",
            self._after_visualize,
            {"summarize": "summarize", "end": END},
        )
        workflow.add_edge("summarize", END)

        return workflow.compile()

    # ========================================================================
    # Stage Nodes
    # ========================================================================

    async def _run_generate(self, state: PipelineState) -> PipelineState:
        start = time.perf_counter()
        try:
            schema = state.get("database_schema")
            if schema is None and self.config.pipeline.include_live_schema:
                schema = await self._fetch_live_schema()
            state["sql_query"] = await self.generator.generate(state["user_input"], schema)
            logger.info(f"Generated SQL: {state['sql_query'][:200]}")
        except Exception as e:
            logger.error(f"SQL generation failed: {e}")
            state["errors"].append(f"SQL generation failed: {e}")
        finally:
            state["timings"]["sql_generation"] = _elapsed_ms(start)
        return state

    async def _run_validate(self, state: PipelineState) -> PipelineState:
        start = time.perf_counter()
        validation = self.validator.validate(state["sql_query"])
        state["validation"] = validation
        state["timings"]["validation"] = _elapsed_ms(start)

        if not validation.is_valid:
            logger.warning(f"Generated SQL rejected: {validation.errors}")
            state["errors"].append(f"SQL validation failed: {', '.join(validation.errors)}")
        else:
            state["warnings"].extend(validation.warnings)
        return state

    async def _run_execute(self, state: PipelineState) -> PipelineState:
        start = time.perf_counter()
        options = state["options"]
        result = await self.executor.execute(
            state["sql_query"],
            QueryOptions(
                max_rows=options.max_rows or self.config.pipeline.max_rows,
                timeout_ms=self.config.pipeline.timeout_ms,
                return_metadata=True,
            ),
        )
        state["query_result"] = result
        state["timings"]["query_execution"] = _elapsed_ms(start)

        if not result.success:
            state["errors"].append(f"Query execution failed: {result.error}")
        else:
            logger.info(f"Query executed successfully, rows: {result.row_count}")
        return state

    async def _run_visualize(self, state: PipelineState) -> PipelineState:
        start = time.perf_counter()
        options = state["options"]
        viz_options = VisualizationOptions(
            type=options.visualization_type,
            title=f"Results for: {state['user_input']}",
            library=options.visualization_library
            or self.config.visualization.default_library,
            width=self.config.visualization.width,
            height=self.config.visualization.height,
        )
        try:
            # Rendering is CPU and file bound
            state["visualization"] = await asyncio.to_thread(
                self.visualizer.build, state["query_result"].data, viz_options
            )
        except Exception as e:
            logger.error(f"Visualization error: {e}")
            state["warnings"].append(f"Visualization creation failed: {e}")
        finally:
            state["timings"]["visualization"] = _elapsed_ms(start)
        return state

    async def _run_summarize(self, state: PipelineState) -> PipelineState:
        start = time.perf_counter()
        visualization = state.get("visualization")
        try:
            state["summary"] = await self.summarizer.summarize_run(
                state["query_result"].data,
                sql_query=state["sql_query"],
                visualization_type=visualization.type if visualization else None,
                user_question=state["user_input"],
            )
        except Exception as e:
            logger.error(f"Summary generation error: {e}")
            state["warnings"].append(f"Summary generation failed: {e}")
        finally:
            state["timings"]["summary"] = _elapsed_ms(start)
        return state

    # ========================================================================
    # Conditional Edges
    # ========================================================================

    def _should_continue(self, state: PipelineState) -> str:
        return "end" if state.get("errors") else "continue"

    def _after_execute(self, state: PipelineState) -> str:
        if state.get("errors") or not state["query_result"].data:
            return "end"
        options = state["options"]
        if options.include_visualization:
            return "visualize"
        if options.include_summary:
            return "summarize"
        return "end"

    def _after_visualize(self, state: PipelineState) -> str:
        return "summarize" if state["options"].include_summary else "end"

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _fetch_live_schema(self) -> dict[str, Any] | None:
        """Describe every table the executor can see. Tables that fail are skipped."""
        tables = await self.executor.list_tables()
        if not tables.success or not tables.tables:
            logger.warning(f"Live schema unavailable: {tables.error}")
            return None
        schema: dict[str, Any] = {}
        for table in tables.tables:
            described = await self.executor.get_table_schema(table)
            if not described.success:
                logger.warning(f"Failed to get schema for table {table}: {described.error}")
                continue
            schema[table] = {
                "table_name": table,
                "columns": [column.model_dump() for column in described.table_schema],
            }
        return schema or None

    def _coerce_analysis_options(self, options: AnalysisOptions | dict | None) -> AnalysisOptions:
        # Fields the caller left unset fall back to PIPELINE_* settings
        if isinstance(options, AnalysisOptions):
            options = options.model_dump(exclude_unset=True)
        defaults = {
            "include_visualization": self.config.pipeline.include_visualization,
            "include_summary": self.config.pipeline.include_summary,
        }
        return AnalysisOptions(**{**defaults, **(options or {})})

    # ========================================================================
    # Public API
    # ========================================================================

    async def process_query(
        self, user_input: str, options: AnalysisOptions | dict | None = None
    ) -> AnalysisResponse:
        """
        Run the full pipeline for one question.

        Args:
            user_input: The user's natural-language question
            options: AnalysisOptions or a dict of its fields

        Returns:
            AnalysisResponse. On failure, error holds the first fatal error and
            result carries the partial run (SQL if generated, timings, warnings).
        """
        start = time.perf_counter()
        run = PipelineRun(user_input=user_input if isinstance(user_input, str) else str(user_input))

        try:
            options = self._coerce_analysis_options(options)
        except Exception as e:
            run.errors.append(f"Invalid analysis options: {e}")
            run.timings["total"] = _elapsed_ms(start)
            return AnalysisResponse.from_run(run)

        initial_state: PipelineState = {
            "user_input": run.user_input,
            "options": options,
            "database_schema": options.database_schema,
            "sql_query": None,
            "validation": None,
            "query_result": None,
            "visualization": None,
            "summary": None,
            "errors": [],
            "warnings": [],
            "timings": {},
        }

        logger.info(f"Starting pipeline for query: {run.user_input[:100]}...")

        try:
            final = await self.graph.ainvoke(initial_state)
        except Exception as e:
            logger.error(f"Pipeline error: {e}")
            final = dict(initial_state)
            final["errors"] = [*initial_state["errors"], str(e)]

        run.sql_query = final.get("sql_query")
        run.validation = final.get("validation")
        run.query_result = final.get("query_result")
        run.visualization = final.get("visualization")
        run.summary = final.get("summary")
        run.errors = list(final.get("errors") or [])
        run.warnings = list(final.get("warnings") or [])
        run.timings = dict(final.get("timings") or {})
        run.timings["total"] = _elapsed_ms(start)

        if run.errors:
            logger.warning(f"Pipeline failed: {run.errors[0]}")
        else:
            logger.info(
                f"Pipeline complete in {run.timings['total']:.1f}ms",
                extra={"row_count": run.query_result.row_count, "warnings": len(run.warnings)},
            )
        return AnalysisResponse.from_run(run)

    def validate_only(self, sql_query: str) -> ValidationResult:
        return self.validator.validate(sql_query)

    async def execute_custom_sql(
        self, sql_query: str, options: QueryOptions | dict | None = None
    ) -> CustomSqlResponse:
        """Validate, then execute. An invalid query is never sent to the database."""
        validation = self.validator.validate(sql_query)
        if not validation.is_valid:
            return CustomSqlResponse(
                success=False,
                error=f"SQL validation failed: {', '.join(validation.errors)}",
                validation=validation,
            )
        try:
            if not isinstance(options, QueryOptions):
                options = QueryOptions(**(options or {}))
        except Exception as e:
            return CustomSqlResponse(success=False, error=str(e), validation=validation)

        result = await self.executor.execute(sql_query, options)
        return CustomSqlResponse(
            success=result.success,
            data=result.data,
            row_count=result.row_count,
            error=result.error,
            validation=validation,
            warnings=validation.warnings,
        )

    async def create_custom_visualization(
        self, data: Any, options: VisualizationOptions | dict | None = None
    ) -> VisualizationResponse:
        try:
            if not isinstance(data, list) or not data:
                raise InvalidInputError("Data must be a non-empty array")
            visualization = await asyncio.to_thread(self.visualizer.build, data, options)
            return VisualizationResponse(success=True, visualization=visualization)
        except Exception as e:
            logger.warning(f"Custom visualization failed: {e}")
            return VisualizationResponse(success=False, error=str(e))

    async def generate_custom_summary(
        self, data: Any, context: SummaryContext | dict | None = None
    ) -> SummaryResponse:
        try:
            if not isinstance(data, list) or not data:
                raise InvalidInputError("Data must be a non-empty array")
            summary = await self.summarizer.summarize(data, context)
            return SummaryResponse(success=True, summary=summary)
        except Exception as e:
            logger.warning(f"Custom summary failed: {e}")
            return SummaryResponse(success=False, error=str(e))

    async def compare_datasets(
        self,
        datasets: Any,
        labels: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> ComparisonResponse:
        try:
            summary = await self.summarizer.compare_summary(datasets, labels, context)
            return ComparisonResponse(success=True, summary=summary)
        except Exception as e:
            logger.warning(f"Comparison summary failed: {e}")
            return ComparisonResponse(success=False, error=str(e))

    async def analyze_trend(
        self,
        data: Any,
        date_column: str,
        value_column: str,
        context: dict[str, Any] | None = None,
    ) -> TrendResponse:
        try:
            if not isinstance(data, list) or not data:
                raise InvalidInputError("Time series data must be a non-empty array")
            summary = await self.summarizer.trend_summary(data, date_column, value_column, context)
            return TrendResponse(success=True, summary=summary)
        except Exception as e:
            logger.warning(f"Trend summary failed: {e}")
            return TrendResponse(success=False, error=str(e))

    def list_visualizations(self) -> list[VisualizationFile]:
        return self.visualizer.store.list()

    def delete_visualization(self, filename: str) -> bool:
        return self.visualizer.store.delete(filename)

    async def test_connection(self) -> ConnectionCheck:
        try:
            return await self.executor.test_connection()
        except Exception as e:
            return ConnectionCheck(success=False, message=f"Connection test failed: {e}")

    async def get_available_tables(self) -> TableListResult:
        return await self.executor.list_tables()

    async def get_table_schema(self, table_name: str) -> TableSchemaResult:
        return await self.executor.get_table_schema(table_name)


def create_pipeline(settings: Settings | None = None) -> AnalysisPipeline:
    """Create an AnalysisPipeline with every collaborator built from settings."""
    return AnalysisPipeline.from_settings(settings)
