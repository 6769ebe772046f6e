"""Policy enforcement for tool execution."""

from __future__ import annotations

from schoolchat.tools.base import ToolContext, ToolDefinition


class ToolPolicyError(Exception):
    pass


class PolicyEngine:
    """Checks a definition's policy against the calling context before a tool runs."""

    def violations(self, definition: ToolDefinition, ctx: ToolContext) -> list[str]:
        policy = definition.policy
        found = []
        if not policy.enabled:
            found.append(f"Tool '{definition.name}' is disabled by policy.")
        if policy.allowed_users is not None and ctx.user_id not in policy.allowed_users:
            found.append(f"User '{ctx.user_id}' not allowed for tool '{definition.name}'.")
        if policy.requires_approval and not ctx.approved:
            found.append(f"Tool '{definition.name}' requires approval before execution.")
        return found

    def enforce(self, definition: ToolDefinition, ctx: ToolContext) -> None:
        found = self.violations(definition, ctx)
        if found:
            raise ToolPolicyError(found[0])
