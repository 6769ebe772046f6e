"""HTML table artifact, rendered with an autoescaping Jinja2 template."""

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from schoolchat.models.query import Row

_TEMPLATES = Path(__file__).resolve().parent / "templates"


def _cell(value: Any) -> str:
    """Empty cell for None and empty strings; zero and False still print."""
    if value is None or value == "":
        return ""
    return str(value)


_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATES)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["cell"] = _cell


def table_payload(rows: list[Row], columns: list[str]) -> dict[str, Any]:
    return {"columns": columns, "rows": rows}


def render_table_html(title: str, rows: list[Row], columns: list[str]) -> str:
    return _env.get_template("table.html").render(title=title, columns=columns, rows=rows)
