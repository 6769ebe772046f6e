"""Prompt loading and rendering utilities."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


@dataclass(frozen=True)
class PromptEntry:
    """Loaded prompt content and metadata."""

    content: str
    metadata: dict[str, Any]


def split_front_matter(source: str) -> tuple[dict[str, Any], str]:
    """Separate a leading YAML front matter block from the prompt body."""
    if source.startswith("---"):
        parts = source.split("---", 2)
        if len(parts) == 3:
            return yaml.safe_load(parts[1]) or {}, parts[2].lstrip()
    return {}, source


class FrontMatterLoader(FileSystemLoader):
    """Jinja2 loader that strips YAML front matter."""

    def get_source(self, environment: Environment, template: str):  # type: ignore[override]
        source, filename, uptodate = super().get_source(environment, template)
        _, body = split_front_matter(source)
        return body, filename, uptodate


class PromptLoader:
    """
    Load and render the packaged prompt templates.

    Templates are markdown files with optional YAML front matter
    (name, version, description) and a Jinja2 body. Undefined variables
    raise instead of rendering as empty text.
    """

    def __init__(self, prompts_dir: str | Path | None = None) -> None:
        self.prompts_dir = Path(prompts_dir) if prompts_dir else TEMPLATES_DIR
        self.cache: dict[str, PromptEntry] = {}
        self._env = Environment(
            loader=FrontMatterLoader(str(self.prompts_dir)),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def load(self, prompt_path: str) -> str:
        """
        Load prompt text without rendering.

        Args:
            prompt_path: Relative path (e.g., "chat/map_assistant.md")
        """
        if prompt_path in self.cache:
            return self.cache[prompt_path].content

        file_path = self.prompts_dir / prompt_path
        if not file_path.exists():
            raise FileNotFoundError(f"Prompt not found: {file_path}")

        metadata, content = split_front_matter(file_path.read_text(encoding="utf-8"))
        self.cache[prompt_path] = PromptEntry(content=content, metadata=metadata)
        return content

    def render(self, prompt_path: str, **variables: Any) -> str:
        """
        Load prompt and substitute variables using Jinja2.

        Example:
            prompt = loader.render("sql/generator.md", user_request=text, schema_json=None)
        """
        try:
            template = self._env.get_template(prompt_path)
        except TemplateNotFound as exc:
            raise FileNotFoundError(f"Prompt not found: {prompt_path}") from exc
        return template.render(**variables).strip()
