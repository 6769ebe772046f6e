"""
SqlGenerator: natural language request to a candidate SQL string.

One prompt, one deterministic completion, no retries. The completion is
returned trimmed but otherwise verbatim; checking it is the caller's job
(the pipeline runs SqlValidator immediately afterwards).
"""

import json
import logging
from typing import Any

from schoolchat.config import get_settings
from schoolchat.llm.base import BaseLLMProvider
from schoolchat.llm.factory import LLMProviderFactory
from schoolchat.models.errors import GenerationError
from schoolchat.prompts.loader import PromptLoader

logger = logging.getLogger(__name__)

SQL_TEMPERATURE = 0.0


class SqlGenerator:
    """Turns user text (plus an optional schema description) into SQL."""

    def __init__(self, llm_provider: BaseLLMProvider | None = None, prompts: PromptLoader | None = None):
        if llm_provider is None:
            llm_provider = LLMProviderFactory.create_agent_provider(
                agent_name="sql", config=get_settings().llm, model_type="main"
            )
        self.llm = llm_provider
        self.prompts = prompts or PromptLoader()

    def build_prompt(self, text: str, schema: Any | None = None) -> str:
        schema_json = json.dumps(schema, indent=1, default=str) if schema else None
        return self.prompts.render("sql/generator.md", user_request=text, schema_json=schema_json)

    async def generate(self, text: str, schema: Any | None = None) -> str:
        """
        Generate a candidate SQL statement.

        Args:
            text: The user's natural-language request
            schema: Optional schema description, embedded in the prompt as JSON

        Raises:
            GenerationError: The completion call failed or came back empty
        """
        if not isinstance(text, str) or not text.strip():
            raise GenerationError("User input must be a non-empty string")

        prompt = self.build_prompt(text, schema)
        try:
            completion = await self.llm.complete(prompt, temperature=SQL_TEMPERATURE)
        except Exception as exc:
            logger.error(f"Error generating SQL: {exc}")
            raise GenerationError(
                f"Failed to generate SQL query: {exc}", context={"cause": str(exc)}
            ) from exc

        sql = (completion or "").strip()
        if not sql:
            raise GenerationError("Failed to generate SQL query: empty completion")

        logger.info("Generated SQL candidate", extra={"sql_length": len(sql)})
        return sql
