"""Built-in data tools: table listing, table description and full analysis runs."""

from __future__ import annotations

from typing import Any

from schoolchat.pipeline.orchestrator import AnalysisPipeline, create_pipeline
from schoolchat.tools.base import ToolCategory, ToolContext, tool

MAX_TOOL_ROWS = 20


def _get_pipeline(ctx: ToolContext | None) -> AnalysisPipeline:
    if ctx is not None:
        pipeline = ctx.metadata.get("pipeline")
        if pipeline is not None:
            return pipeline
    return create_pipeline()


@tool(
    name="list_tables",
    description="List tables available in the schools database.",
    category=ToolCategory.DATABASE,
)
async def list_tables(ctx: ToolContext | None = None) -> dict[str, Any]:
    result = await _get_pipeline(ctx).get_available_tables()
    if not result.success:
        raise ValueError(result.error or "Unable to list tables")
    return {"tables": result.tables}


@tool(
    name="describe_table",
    description="List the columns of one table with their types.",
    category=ToolCategory.DATABASE,
)
async def describe_table(table: str, ctx: ToolContext | None = None) -> dict[str, Any]:
    result = await _get_pipeline(ctx).get_table_schema(table)
    if not result.success:
        raise ValueError(result.error or f"Unable to describe {table}")
    return {
        "table": result.table,
        "columns": [
            {"name": col.name, "type": col.data_type, "nullable": col.is_nullable}
            for col in result.table_schema
        ],
    }


@tool(
    name="run_analysis",
    description=(
        "Answer a question about the schools data: generates SQL, runs it and "
        "returns the rows with a short summary."
    ),
    category=ToolCategory.ANALYSIS,
)
async def run_analysis(
    question: str, include_visualization: bool = False, ctx: ToolContext | None = None
) -> dict[str, Any]:
    response = await _get_pipeline(ctx).process_query(
        question, {"include_visualization": include_visualization}
    )
    result = response.result
    if not response.success:
        return {"success": False, "error": response.error, "sql_query": result.sql_query}
    visualization = result.visualization
    return {
        "success": True,
        "sql_query": result.sql_query,
        "row_count": result.row_count,
        "rows": (result.data or [])[:MAX_TOOL_ROWS],
        "summary": result.summary,
        "visualization_url": (
            visualization.output_ref.url if visualization and visualization.output_ref else None
        ),
        "warnings": result.warnings,
    }
