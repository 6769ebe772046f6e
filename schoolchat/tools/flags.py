"""
Pending UI flags.

One flag per map property the chat agent can change. A flag starts unset,
is set by a map tool during a chat turn, and is returned to the client at
the end of that turn so the frontend can apply the change.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from schoolchat.tools.base import ToolContext

FLAGS_STATE_KEY = "ui_flags"


class UIFlag(BaseModel):
    changed: bool = False
    value: Any = None


class PendingUIFlags(BaseModel):
    """Map changes requested during one chat turn."""

    stroke_color: UIFlag = Field(default_factory=UIFlag)
    stroke_weight: UIFlag = Field(default_factory=UIFlag)
    stroke_by: UIFlag = Field(default_factory=UIFlag)
    stroke_palette: UIFlag = Field(default_factory=UIFlag)
    fill_color: UIFlag = Field(default_factory=UIFlag)
    fill_opacity: UIFlag = Field(default_factory=UIFlag)
    fill_by: UIFlag = Field(default_factory=UIFlag)
    fill_palette: UIFlag = Field(default_factory=UIFlag)
    school_type: UIFlag = Field(default_factory=UIFlag)
    school_category: UIFlag = Field(default_factory=UIFlag)
    map_center: UIFlag = Field(default_factory=UIFlag)

    def set(self, name: str, value: Any) -> None:
        """Mark name changed with value. Later writes in a turn win."""
        if name not in type(self).model_fields:
            raise KeyError(f"Unknown UI flag: {name}")
        setattr(self, name, UIFlag(changed=True, value=value))

    def reset(self) -> None:
        for name in type(self).model_fields:
            setattr(self, name, UIFlag())

    def changed(self) -> list[str]:
        return [name for name in type(self).model_fields if getattr(self, name).changed]

    def serialize(self) -> dict[str, dict[str, Any]]:
        return self.model_dump()


def pending_flags(ctx: ToolContext) -> PendingUIFlags:
    """The turn's flags, created on first use."""
    flags = ctx.state.get(FLAGS_STATE_KEY)
    if flags is None:
        flags = PendingUIFlags()
        ctx.state[FLAGS_STATE_KEY] = flags
    return flags
