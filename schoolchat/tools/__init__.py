"""Tool system entrypoint."""

from __future__ import annotations

from pathlib import Path

from schoolchat.tools.dispatcher import MapTool, ToolDispatcher
from schoolchat.tools.executor import ToolExecutionError, ToolExecutor
from schoolchat.tools.flags import PendingUIFlags, UIFlag
from schoolchat.tools.policy import PolicyEngine, ToolPolicyError
from schoolchat.tools.registry import ToolRegistry


def initialize_tools(policy_path: str | Path | None = None) -> None:
    # Register built-in tools
    from schoolchat.tools.builtin import database, map_controls  # noqa: F401

    if policy_path:
        ToolRegistry.load_policy_config(policy_path)


__all__ = [
    "MapTool",
    "PendingUIFlags",
    "PolicyEngine",
    "ToolDispatcher",
    "ToolExecutionError",
    "ToolExecutor",
    "ToolPolicyError",
    "ToolRegistry",
    "UIFlag",
    "initialize_tools",
]
