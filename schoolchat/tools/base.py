"""Tool system base types and decorator."""

from __future__ import annotations

import inspect
import logging
import types
from collections.abc import Callable
from enum import StrEnum
from typing import Any, Literal, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel, Field

from schoolchat.llm.models import LLMToolDefinition

logger = logging.getLogger(__name__)
NONE_TYPE = type(None)

_SCALAR_TYPES: dict[Any, str] = {
    bool: "boolean",
    int: "integer",
    float: "number",
    str: "string",
}


class ToolCategory(StrEnum):
    MAP = "map"
    DATABASE = "database"
    ANALYSIS = "analysis"


class ToolPolicy(BaseModel):
    enabled: bool = True
    requires_approval: bool = False
    max_execution_time_seconds: int = Field(default=60, ge=1)
    allowed_users: list[str] | None = None


class ToolDefinition(BaseModel):
    name: str
    description: str
    category: ToolCategory
    policy: ToolPolicy
    parameters_schema: dict[str, Any]

    def to_llm_tool(self) -> LLMToolDefinition:
        """Declaration handed to a tool-calling model."""
        return LLMToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters_schema,
        )


class ToolContext(BaseModel):
    """
    Per-call context handed to tool handlers.

    state is per chat turn: the chat agent puts the turn's PendingUIFlags
    there, so map tools never touch another session's flags.
    """

    user_id: str = "anonymous"
    correlation_id: str
    approved: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
    state: dict[str, Any] = Field(default_factory=dict)

    def log_action(self, action: str, metadata: dict[str, Any]) -> None:
        logger.info(
            "tool_action",
            extra={
                "user_id": self.user_id,
                "correlation_id": self.correlation_id,
                "action": action,
                "metadata": metadata,
            },
        )


def parameters_schema(func: Callable[..., Any]) -> dict[str, Any]:
    """JSON schema for a handler's keyword arguments; ctx is never exposed."""
    signature = inspect.signature(func)
    hints = get_type_hints(func)
    properties: dict[str, Any] = {}
    required: list[str] = []

    for name, param in signature.parameters.items():
        if name == "ctx":
            continue
        schema = annotation_schema(hints.get(name, Any))
        if param.default is inspect.Parameter.empty:
            required.append(name)
        elif param.default is not None:
            schema["default"] = param.default
        properties[name] = schema

    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


def annotation_schema(annotation: Any) -> dict[str, Any]:
    if annotation is Any:
        return {}
    if annotation in _SCALAR_TYPES:
        return {"type": _SCALAR_TYPES[annotation]}

    origin = get_origin(annotation)
    args = get_args(annotation)
    if origin is Literal:
        schema: dict[str, Any] = {"enum": list(args)}
        kinds = {type(value) for value in args}
        if len(kinds) == 1 and next(iter(kinds)) in _SCALAR_TYPES:
            schema["type"] = _SCALAR_TYPES[next(iter(kinds))]
        return schema
    if origin in (list, tuple, set) or annotation in (list, tuple, set):
        return {"type": "array", "items": annotation_schema(args[0]) if args else {}}
    if origin is dict or annotation is dict:
        return {"type": "object"}
    if origin in (Union, types.UnionType):
        variants = [annotation_schema(arg) for arg in args if arg is not NONE_TYPE]
        # Optional[X] is described as X; absence is how the model says "none"
        return variants[0] if len(variants) == 1 else {"anyOf": variants}
    return {"type": "string"}


def tool(
    name: str,
    description: str,
    category: ToolCategory,
    requires_approval: bool = False,
    **policy_kwargs: Any,
):
    """Register a function as a tool under name."""

    def decorator(func: Callable[..., Any]):
        from schoolchat.tools.registry import ToolRegistry

        definition = ToolDefinition(
            name=name,
            description=description,
            category=category,
            policy=ToolPolicy(requires_approval=requires_approval, **policy_kwargs),
            parameters_schema=parameters_schema(func),
        )
        ToolRegistry.register(definition, func)
        return func

    return decorator
