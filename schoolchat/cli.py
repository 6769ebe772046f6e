"""
SchoolChat CLI

Command-line interface for the analysis pipeline and the map assistant.

Usage:
    schoolchat ask "Which schools are over capacity?"   # Full pipeline run
    schoolchat validate "SELECT * FROM schools"         # Validate SQL only
    schoolchat sql "SELECT * FROM schools LIMIT 5"      # Run validated SQL
    schoolchat tables                                   # List tables
    schoolchat describe schools                         # Show a table's columns
    schoolchat viz list                                 # List stored charts
    schoolchat viz delete plot_1700000000000.html       # Delete a chart
    schoolchat chat                                     # Map assistant REPL
    schoolchat status                                   # Show connection status
    schoolchat serve                                    # Run the HTTP API
"""

import asyncio
import json
import logging
from typing import Any, get_args

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from schoolchat import __version__
from schoolchat.config import get_settings
from schoolchat.models.pipeline import AnalysisOptions
from schoolchat.models.query import QueryOptions
from schoolchat.models.visualization import ChartType
from schoolchat.pipeline.orchestrator import AnalysisPipeline, create_pipeline

console = Console()

CHART_TYPES = ["auto", *get_args(ChartType)]
EXIT_WORDS = {"exit", "quit", "q", ":q"}


def configure_cli_logging() -> None:
    logging.basicConfig(level=logging.CRITICAL)
    for logger_name in ("schoolchat", "httpx", "openai", "anthropic", "asyncio"):
        logging.getLogger(logger_name).setLevel(logging.CRITICAL)


# ============================================================================
# Helper Functions
# ============================================================================


def create_pipeline_from_config() -> AnalysisPipeline:
    """Create pipeline from environment settings."""
    try:
        return create_pipeline(get_settings())
    except Exception as e:
        raise click.ClickException(f"Failed to initialize pipeline: {e}") from e


def print_rows(rows: list[dict[str, Any]], row_count: int | None = None, limit: int = 50) -> None:
    """Print the row count, then the rows as a rich table truncated to limit."""
    count = len(rows) if row_count is None else row_count
    console.print(f"[bold]{count} row(s)[/bold]")
    if not rows:
        console.print("[dim]No rows returned.[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    columns = list(rows[0].keys())
    for column in columns:
        table.add_column(column)
    for row in rows[:limit]:
        table.add_row(*["" if row.get(col) is None else str(row.get(col)) for col in columns])
    console.print(table)
    if len(rows) > limit:
        console.print(f"[dim]Showing {limit} of {len(rows)} rows.[/dim]")


def print_issues(errors: list[str], warnings: list[str]) -> None:
    for error in errors:
        console.print(f"[red]✗ {error}[/red]")
    for warning in warnings:
        console.print(f"[yellow]! {warning}[/yellow]")


def _should_exit_chat(text: str) -> bool:
    return text.strip().lower() in EXIT_WORDS


# ============================================================================
# CLI Commands
# ============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="SchoolChat")
def cli():
    """SchoolChat - Natural-language analytics over school and catchment data."""
    configure_cli_logging()


@cli.command()
@click.argument("question")
@click.option("--no-viz", is_flag=True, help="Skip the visualization stage")
@click.option("--no-summary", is_flag=True, help="Skip the summary stage")
@click.option(
    "--type",
    "chart_type",
    type=click.Choice(CHART_TYPES),
    default="auto",
    show_default=True,
    help="Chart type",
)
@click.option("--max-rows", type=int, default=None, help="Row cap for the query")
@click.option("--json", "as_json", is_flag=True, help="Print the raw response as JSON")
def ask(
    question: str,
    no_viz: bool,
    no_summary: bool,
    chart_type: str,
    max_rows: int | None,
    as_json: bool,
):
    """Answer a question with generated SQL, a chart and a summary."""
    pipeline = create_pipeline_from_config()
    # Only flags given on the command line override PIPELINE_* defaults
    requested: dict[str, Any] = {"visualization_type": chart_type}
    if no_viz:
        requested["include_visualization"] = False
    if no_summary:
        requested["include_summary"] = False
    if max_rows is not None:
        requested["max_rows"] = max_rows
    options = AnalysisOptions(**requested)
    with console.status("[cyan]Processing query...[/cyan]", spinner="dots"):
        response = asyncio.run(pipeline.process_query(question, options))

    if as_json:
        click.echo(response.model_dump_json(indent=2))
        if not response.success:
            raise SystemExit(1)
        return

    result = response.result
    if result.sql_query:
        console.print(Panel(result.sql_query, title="SQL", border_style="cyan"))

    if not response.success:
        print_issues(result.errors, result.warnings)
        raise SystemExit(1)

    if result.summary:
        console.print(Panel(Markdown(result.summary), title="[bold green]Summary[/bold green]"))
    print_rows(result.data or [], result.row_count)
    if result.visualization and result.visualization.output_ref:
        console.print(
            f"[cyan]Chart ({result.visualization.type}):[/cyan] "
            f"{result.visualization.output_ref.url}"
        )
    print_issues([], result.warnings)
    if "total" in result.timings:
        console.print(f"[dim]Completed in {result.timings['total']:.0f} ms[/dim]")


@cli.command()
@click.argument("sql")
def validate(sql: str):
    """Validate SQL without running it."""
    result = create_pipeline_from_config().validate_only(sql)
    if result.is_valid:
        console.print("[green]✓ SQL is valid[/green]")
    print_issues(result.errors, result.warnings)
    if not result.is_valid:
        raise SystemExit(1)


@cli.command()
@click.argument("sql")
@click.option("--max-rows", type=int, default=None, help="Row cap for the query")
def sql(sql: str, max_rows: int | None):
    """Validate and run a read-only SQL query."""
    pipeline = create_pipeline_from_config()
    options = QueryOptions(max_rows=max_rows, return_metadata=True)
    response = asyncio.run(pipeline.execute_custom_sql(sql, options))
    if not response.success:
        validation = response.validation
        if validation and not validation.is_valid:
            print_issues(validation.errors, validation.warnings)
        else:
            console.print(f"[red]{response.error}[/red]")
        raise SystemExit(1)

    print_issues([], response.warnings)
    print_rows(response.data or [], response.row_count)


@cli.command()
def tables():
    """List tables in the configured database."""
    result = asyncio.run(create_pipeline_from_config().get_available_tables())
    if not result.success:
        raise click.ClickException(result.error or "Unable to list tables")
    for name in result.tables:
        console.print(name)


@cli.command()
@click.argument("table")
def describe(table: str):
    """Show the columns of a table."""
    result = asyncio.run(create_pipeline_from_config().get_table_schema(table))
    if not result.success:
        raise click.ClickException(result.error or f"Unable to describe {table}")

    output = Table(title=result.table, show_header=True, header_style="bold cyan")
    output.add_column("Column", style="cyan")
    output.add_column("Type")
    output.add_column("Nullable")
    output.add_column("Key")
    for column in result.table_schema:
        output.add_row(
            column.name,
            column.data_type,
            "yes" if column.is_nullable else "no",
            "PK" if column.is_primary_key else "",
        )
    console.print(output)


@cli.command()
def status():
    """Show configuration and connection status."""
    settings = get_settings()
    table = Table(title="SchoolChat Status", show_header=True, header_style="bold cyan")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    table.add_row("Configuration", "✓", f"Mode: {settings.database.mode}")
    table.add_row("LLM", "✓", f"Provider: {settings.llm.default_provider}")
    try:
        check = asyncio.run(create_pipeline(settings).test_connection())
        table.add_row("Database", "✓" if check.success else "✗", check.message)
    except Exception as e:
        table.add_row("Database", "✗", str(e))
    console.print(table)


@cli.command()
@click.option("--user-id", default="cli", show_default=True, help="Identity passed to tools")
def chat(user_id: str):
    """Interactive map assistant. Prints replies and the map changes they request."""
    from schoolchat.chat.agent import MapChatAgent

    settings = get_settings()
    try:
        agent = MapChatAgent(pipeline=create_pipeline(settings), settings=settings)
    except Exception as e:
        raise click.ClickException(f"Failed to initialize chat agent: {e}") from e

    console.print("[bold]SchoolChat map assistant[/bold] [dim](type 'exit' to quit)[/dim]")
    history: list[dict[str, str]] = []
    while True:
        try:
            text = console.input("[bold cyan]You:[/bold cyan] ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print("\n[yellow]Goodbye![/yellow]")
            return
        if not text:
            continue
        if _should_exit_chat(text):
            console.print("[yellow]Goodbye![/yellow]")
            return

        history.append({"role": "user", "content": text})
        try:
            with console.status("[cyan]Thinking...[/cyan]", spinner="dots"):
                turn = asyncio.run(agent.run_turn(history, user_id=user_id))
        except Exception as e:
            history.pop()
            console.print(f"[red]Error: {e}[/red]")
            continue

        history.append({"role": "assistant", "content": turn.text})
        console.print(Panel(Markdown(turn.text), title="[bold green]Assistant[/bold green]"))
        changed = {name: flag["value"] for name, flag in turn.flags.items() if flag["changed"]}
        if changed:
            console.print(f"[dim]Map changes: {json.dumps(changed, default=str)}[/dim]")


@cli.group(name="viz")
def viz():
    """Manage stored visualizations."""
    pass


@viz.command(name="list")
def list_visualizations():
    """List stored visualization files, newest first."""
    files = create_pipeline_from_config().list_visualizations()
    if not files:
        console.print("[dim]No visualizations stored.[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Filename", style="cyan")
    table.add_column("Created")
    table.add_column("Size", justify="right")
    for item in files:
        table.add_row(
            item.filename, item.created.isoformat(timespec="seconds"), str(item.size_bytes)
        )
    console.print(table)


@viz.command(name="delete")
@click.argument("filename")
def delete_visualization(filename: str):
    """Delete a stored visualization file."""
    if not create_pipeline_from_config().delete_visualization(filename):
        raise click.ClickException(f"Visualization not found: {filename}")
    console.print(f"[green]✓ Deleted {filename}[/green]")


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to API_HOST)")
@click.option("--port", default=None, type=int, help="Port (defaults to API_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    console.print(f"[cyan]Starting SchoolChat API on http://{host}:{port}[/cyan]")
    uvicorn.run("schoolchat.api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    cli()
