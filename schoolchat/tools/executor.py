"""Tool execution engine."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

from schoolchat.tools.base import ToolContext
from schoolchat.tools.policy import PolicyEngine, ToolPolicyError
from schoolchat.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolExecutionError(Exception):
    pass


class ToolExecutor:
    """Runs registered tools under their policy and time limit."""

    def __init__(self, policy_engine: PolicyEngine | None = None) -> None:
        self.policy_engine = policy_engine or PolicyEngine()

    async def execute(self, name: str, args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
        """
        Run one tool.

        Returns:
            {"tool": name, "success": True, "result": <handler return value>}

        Raises:
            ToolPolicyError: The policy forbids this call
            ToolExecutionError: Unknown tool, bad arguments, timeout or handler failure
        """
        definition = ToolRegistry.get_definition(name)
        handler = ToolRegistry.get_handler(name)
        if not definition or not handler:
            raise ToolExecutionError(f"Unknown tool: {name}")

        self.policy_engine.enforce(definition, ctx)
        ctx.log_action("tool_invoked", {"tool": name, "args": list(args.keys())})

        kwargs = dict(args)
        if "ctx" in inspect.signature(handler).parameters:
            kwargs["ctx"] = ctx
        timeout = definition.policy.max_execution_time_seconds

        try:
            result = handler(**kwargs)
            if inspect.isawaitable(result):
                result = await asyncio.wait_for(result, timeout=timeout)
        except ToolPolicyError:
            raise
        except asyncio.TimeoutError as exc:
            logger.error(f"Tool timed out after {timeout}s: {name}")
            raise ToolExecutionError(f"Tool '{name}' timed out after {timeout}s") from exc
        except Exception as exc:
            logger.error(f"Tool execution failed: {name} - {exc}")
            raise ToolExecutionError(str(exc)) from exc

        ctx.log_action("tool_completed", {"tool": name})
        return {"tool": name, "success": True, "result": result}
