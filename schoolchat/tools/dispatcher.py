"""
Tool dispatch for the chat agent.

Map tools are a closed set: each MapTool name maps to one mutation of the
turn's PendingUIFlags. Arguments get presence checks only, so whatever the
model sent ends up in the flag value as-is. Every other name goes straight
to the ToolExecutor without touching the flags.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from schoolchat.tools.base import ToolContext
from schoolchat.tools.executor import ToolExecutor
from schoolchat.tools.flags import PendingUIFlags, pending_flags

logger = logging.getLogger(__name__)

Mutation = Callable[[PendingUIFlags, dict[str, Any]], bool]


class MapTool(StrEnum):
    SET_STROKE = "setStroke"
    SET_STROKE_WEIGHT = "setStrokeWeight"
    SET_STROKE_BY = "setStrokeBy"
    SET_STROKE_PALETTE = "setStrokePalette"
    SET_FILL = "setFill"
    SET_FILL_OPACITY = "setFillOpacity"
    SET_FILL_BY = "setFillBy"
    SET_FILL_PALETTE = "setFillPalette"
    SET_SCHOOL_TYPE = "setSchoolType"
    SET_SCHOOL_CATEGORY = "setSchoolCategory"
    SET_LAT_LNG = "setLatLng"


def _copy_argument(flag: str, key: str) -> Mutation:
    def mutate(flags: PendingUIFlags, args: dict[str, Any]) -> bool:
        if key not in args:
            return False
        flags.set(flag, args[key])
        return True

    return mutate


def _set_map_center(flags: PendingUIFlags, args: dict[str, Any]) -> bool:
    flags.set("map_center", {"lat": args.get("lat"), "lng": args.get("lng")})
    return True


MAP_TOOL_MUTATIONS: dict[MapTool, Mutation] = {
    MapTool.SET_STROKE: _copy_argument("stroke_color", "color"),
    MapTool.SET_STROKE_WEIGHT: _copy_argument("stroke_weight", "weight"),
    MapTool.SET_STROKE_BY: _copy_argument("stroke_by", "field"),
    MapTool.SET_STROKE_PALETTE: _copy_argument("stroke_palette", "palette"),
    MapTool.SET_FILL: _copy_argument("fill_color", "color"),
    MapTool.SET_FILL_OPACITY: _copy_argument("fill_opacity", "opacity"),
    MapTool.SET_FILL_BY: _copy_argument("fill_by", "field"),
    MapTool.SET_FILL_PALETTE: _copy_argument("fill_palette", "palette"),
    MapTool.SET_SCHOOL_TYPE: _copy_argument("school_type", "school_type"),
    MapTool.SET_SCHOOL_CATEGORY: _copy_argument("school_category", "category"),
    MapTool.SET_LAT_LNG: _set_map_center,
}


def apply_map_tool(tool: MapTool, args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    """Apply one map tool to the turn's flags and describe what happened."""
    changed = MAP_TOOL_MUTATIONS[tool](pending_flags(ctx), args)
    if changed:
        ctx.log_action("ui_flag_set", {"tool": tool.value})
        return {"applied": True, "message": f"{tool.value} applied"}
    logger.debug(f"{tool.value} called without its argument: {sorted(args)}")
    return {"applied": False, "message": f"{tool.value} ignored: missing argument"}


class ToolDispatcher:
    """Routes a model's tool calls to flag mutations or the ToolExecutor."""

    def __init__(self, executor: ToolExecutor | None = None) -> None:
        self.executor = executor or ToolExecutor()

    @staticmethod
    def map_tool(name: str) -> MapTool | None:
        try:
            return MapTool(name)
        except ValueError:
            return None

    async def dispatch(
        self, name: str, arguments: dict[str, Any] | None, ctx: ToolContext
    ) -> dict[str, Any]:
        """
        Dispatch one tool call.

        Raises:
            ToolExecutionError, ToolPolicyError: From the executor, for non-map tools
        """
        args = arguments if isinstance(arguments, dict) else {}
        tool = self.map_tool(name)
        if tool is None:
            return await self.executor.execute(name, args, ctx)
        return {"tool": name, "success": True, "result": apply_map_tool(tool, args, ctx)}
