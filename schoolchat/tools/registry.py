"""Tool registry for the SchoolChat tool system."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import yaml

from schoolchat.llm.models import LLMToolDefinition
from schoolchat.tools.base import ToolCategory, ToolDefinition

logger = logging.getLogger(__name__)

_POLICY_FIELDS = ("enabled", "requires_approval", "max_execution_time_seconds", "allowed_users")


class ToolRegistry:
    """Process-wide table of tool definitions and their handlers."""

    _definitions: dict[str, ToolDefinition] = {}
    _handlers: dict[str, Callable[..., Any]] = {}

    @classmethod
    def register(cls, definition: ToolDefinition, handler: Callable[..., Any]) -> None:
        cls._definitions[definition.name] = definition
        cls._handlers[definition.name] = handler
        logger.debug(f"Registered tool: {definition.name}")

    @classmethod
    def get_definition(cls, name: str) -> ToolDefinition | None:
        return cls._definitions.get(name)

    @classmethod
    def get_handler(cls, name: str) -> Callable[..., Any] | None:
        return cls._handlers.get(name)

    @classmethod
    def llm_tools(cls, categories: list[ToolCategory] | None = None) -> list[LLMToolDefinition]:
        """Enabled tools, declared for a tool-calling model."""
        return [
            definition.to_llm_tool()
            for definition in cls._definitions.values()
            if definition.policy.enabled
            and (categories is None or definition.category in categories)
        ]

    @classmethod
    def load_policy_config(cls, path: str | Path) -> None:
        """
        Override policies from a YAML file:

            tools:
              - name: run_analysis
                requires_approval: true
        """
        policy_path = Path(path)
        if not policy_path.exists():
            logger.warning(f"Tool policy file not found: {policy_path}")
            return

        data = yaml.safe_load(policy_path.read_text()) or {}
        for entry in data.get("tools", []):
            definition = cls._definitions.get(entry.get("name"))
            if definition is None:
                continue
            overrides = {key: entry[key] for key in _POLICY_FIELDS if key in entry}
            policy = definition.policy.model_copy(update=overrides)
            cls._definitions[definition.name] = definition.model_copy(update={"policy": policy})
            logger.info(f"Loaded policy for tool: {definition.name}")
