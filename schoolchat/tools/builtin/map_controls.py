"""
Built-in map control tools.

The signatures here are what the model sees. When the chat agent calls one
of these names, ToolDispatcher applies the flag mutation itself and the
handler bodies are not invoked. They mirror that mutation so a map tool run
through ToolExecutor outside a chat turn changes the same flag.
"""

from __future__ import annotations

from typing import Any, Literal

from schoolchat.tools.base import ToolCategory, ToolContext, tool
from schoolchat.tools.dispatcher import MapTool, apply_map_tool

SCHOOL_TYPES = ["Secondary", "Elementary", "Middle"]
SCHOOL_CATEGORIES = ["Public", "Francophone", "Private"]
DATA_BINDINGS = ["Constant", "FCI", "Utilization"]
PALETTES = ["Viridis", "Blues", "Reds", "Greens", "RdYlGn"]

Binding = Literal["Constant", "FCI", "Utilization"]


@tool(
    name=MapTool.SET_STROKE.value,
    description="Set the outline color of the catchment polygons.",
    category=ToolCategory.MAP,
)
def set_stroke(color: str, ctx: ToolContext) -> dict[str, Any]:
    return apply_map_tool(MapTool.SET_STROKE, {"color": color}, ctx)


@tool(
    name=MapTool.SET_STROKE_WEIGHT.value,
    description="Set the outline width of the catchment polygons, in pixels.",
    category=ToolCategory.MAP,
)
def set_stroke_weight(weight: float, ctx: ToolContext) -> dict[str, Any]:
    return apply_map_tool(MapTool.SET_STROKE_WEIGHT, {"weight": weight}, ctx)


@tool(
    name=MapTool.SET_STROKE_BY.value,
    description="Color polygon outlines by a data column. Constant uses one color.",
    category=ToolCategory.MAP,
)
def set_stroke_by(field: Binding, ctx: ToolContext) -> dict[str, Any]:
    return apply_map_tool(MapTool.SET_STROKE_BY, {"field": field}, ctx)


@tool(
    name=MapTool.SET_STROKE_PALETTE.value,
    description="Palette used when outlines are colored by a data column.",
    category=ToolCategory.MAP,
)
def set_stroke_palette(palette: str, ctx: ToolContext) -> dict[str, Any]:
    return apply_map_tool(MapTool.SET_STROKE_PALETTE, {"palette": palette}, ctx)


@tool(
    name=MapTool.SET_FILL.value,
    description="Set the fill color of the catchment polygons.",
    category=ToolCategory.MAP,
)
def set_fill(color: str, ctx: ToolContext) -> dict[str, Any]:
    return apply_map_tool(MapTool.SET_FILL, {"color": color}, ctx)


@tool(
    name=MapTool.SET_FILL_OPACITY.value,
    description="Set the fill opacity of the catchment polygons, from 0 to 1.",
    category=ToolCategory.MAP,
)
def set_fill_opacity(opacity: float, ctx: ToolContext) -> dict[str, Any]:
    return apply_map_tool(MapTool.SET_FILL_OPACITY, {"opacity": opacity}, ctx)


@tool(
    name=MapTool.SET_FILL_BY.value,
    description="Color polygon fills by a data column. Constant uses one color.",
    category=ToolCategory.MAP,
)
def set_fill_by(field: Binding, ctx: ToolContext) -> dict[str, Any]:
    return apply_map_tool(MapTool.SET_FILL_BY, {"field": field}, ctx)


@tool(
    name=MapTool.SET_FILL_PALETTE.value,
    description="Palette used when fills are colored by a data column.",
    category=ToolCategory.MAP,
)
def set_fill_palette(palette: str, ctx: ToolContext) -> dict[str, Any]:
    return apply_map_tool(MapTool.SET_FILL_PALETTE, {"palette": palette}, ctx)


@tool(
    name=MapTool.SET_SCHOOL_TYPE.value,
    description="Show catchments for one type of school.",
    category=ToolCategory.MAP,
)
def set_school_type(
    school_type: Literal["Secondary", "Elementary", "Middle"], ctx: ToolContext
) -> dict[str, Any]:
    return apply_map_tool(MapTool.SET_SCHOOL_TYPE, {"school_type": school_type}, ctx)


@tool(
    name=MapTool.SET_SCHOOL_CATEGORY.value,
    description="Show catchments for one school board category.",
    category=ToolCategory.MAP,
)
def set_school_category(
    category: Literal["Public", "Francophone", "Private"], ctx: ToolContext
) -> dict[str, Any]:
    return apply_map_tool(MapTool.SET_SCHOOL_CATEGORY, {"category": category}, ctx)


@tool(
    name=MapTool.SET_LAT_LNG.value,
    description="Move the map center to a latitude and longitude.",
    category=ToolCategory.MAP,
)
def set_lat_lng(lat: float, lng: float, ctx: ToolContext) -> dict[str, Any]:
    return apply_map_tool(MapTool.SET_LAT_LNG, {"lat": lat, "lng": lng}, ctx)
