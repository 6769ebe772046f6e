import asyncio

import pytest

from schoolchat.tools.base import ToolCategory, ToolContext, tool
from schoolchat.tools.executor import ToolExecutionError, ToolExecutor
from schoolchat.tools.policy import ToolPolicyError
from schoolchat.tools.registry import ToolRegistry


@tool(
    name="test_requires_approval",
    description="Test tool requiring approval",
    category=ToolCategory.ANALYSIS,
    requires_approval=True,
)
def _test_tool(value: str, ctx: ToolContext | None = None):
    return {"value": value, "user": ctx.user_id if ctx else None}


@tool(
    name="test_typed_schema",
    description="Tool with typed arguments",
    category=ToolCategory.ANALYSIS,
)
def _typed_schema_tool(
    limit: int = 5,
    include_stats: bool = False,
    threshold: float = 0.25,
    tags: list[str] | None = None,
    options: dict[str, int] | None = None,
):
    return {"limit": limit, "tags": tags or []}


@tool(
    name="test_restricted",
    description="Tool limited to one user",
    category=ToolCategory.ANALYSIS,
    allowed_users=["admin"],
)
async def _restricted_tool():
    return "ok"


@tool(
    name="test_slow",
    description="Tool that outlives its time limit",
    category=ToolCategory.ANALYSIS,
    max_execution_time_seconds=1,
)
async def _slow_tool():
    await asyncio.sleep(5)


@tool(
    name="test_failing",
    description="Tool that raises",
    category=ToolCategory.ANALYSIS,
)
async def _failing_tool():
    raise RuntimeError("catchments table is locked")


def _ctx(**kwargs):
    return ToolContext(correlation_id="test", **kwargs)


@pytest.mark.asyncio
async def test_tool_executor_blocks_without_approval():
    executor = ToolExecutor()
    with pytest.raises(ToolPolicyError, match="requires approval"):
        await executor.execute("test_requires_approval", {"value": "hi"}, _ctx(user_id="tester"))


@pytest.mark.asyncio
async def test_tool_executor_runs_with_approval():
    executor = ToolExecutor()
    result = await executor.execute(
        "test_requires_approval", {"value": "hi"}, _ctx(user_id="tester", approved=True)
    )
    assert result == {
        "tool": "test_requires_approval",
        "success": True,
        "result": {"value": "hi", "user": "tester"},
    }


@pytest.mark.asyncio
async def test_tool_executor_enforces_allowed_users():
    executor = ToolExecutor()
    with pytest.raises(ToolPolicyError, match="not allowed"):
        await executor.execute("test_restricted", {}, _ctx(user_id="guest"))

    result = await executor.execute("test_restricted", {}, _ctx(user_id="admin"))
    assert result["result"] == "ok"


@pytest.mark.asyncio
async def test_tool_executor_unknown_tool():
    with pytest.raises(ToolExecutionError, match="Unknown tool: nope"):
        await ToolExecutor().execute("nope", {}, _ctx())


@pytest.mark.asyncio
async def test_tool_executor_wraps_handler_errors():
    with pytest.raises(ToolExecutionError, match="catchments table is locked"):
        await ToolExecutor().execute("test_failing", {}, _ctx())


@pytest.mark.asyncio
async def test_tool_executor_rejects_unexpected_arguments():
    with pytest.raises(ToolExecutionError):
        await ToolExecutor().execute("test_typed_schema", {"colour": "red"}, _ctx())


@pytest.mark.asyncio
async def test_tool_executor_times_out():
    with pytest.raises(ToolExecutionError, match="timed out after 1s"):
        await ToolExecutor().execute("test_slow", {}, _ctx())


def test_tool_schema_uses_typed_parameter_definitions():
    definition = ToolRegistry.get_definition("test_typed_schema")
    assert definition is not None

    schema = definition.parameters_schema
    assert schema["required"] == []
    assert schema["additionalProperties"] is False
    assert schema["properties"]["limit"] == {"type": "integer", "default": 5}
    assert schema["properties"]["include_stats"] == {"type": "boolean", "default": False}
    assert schema["properties"]["threshold"] == {"type": "number", "default": 0.25}
    assert schema["properties"]["tags"] == {"type": "array", "items": {"type": "string"}}
    assert schema["properties"]["options"] == {"type": "object"}


def test_tool_schema_hides_context():
    schema = ToolRegistry.get_definition("test_requires_approval").parameters_schema

    assert schema["properties"] == {"value": {"type": "string"}}
    assert schema["required"] == ["value"]


def test_policy_config_overrides(tmp_path):
    policy_file = tmp_path / "tools.yaml"
    policy_file.write_text(
        "tools:\n"
        "  - name: test_typed_schema\n"
        "    enabled: false\n"
        "  - name: not_registered\n"
        "    enabled: false\n"
    )
    original = ToolRegistry.get_definition("test_typed_schema")
    try:
        ToolRegistry.load_policy_config(policy_file)

        assert ToolRegistry.get_definition("test_typed_schema").policy.enabled is False
        assert "test_typed_schema" not in [t.name for t in ToolRegistry.llm_tools()]
    finally:
        ToolRegistry.register(original, ToolRegistry.get_handler("test_typed_schema"))


def test_missing_policy_file_is_ignored(tmp_path):
    ToolRegistry.load_policy_config(tmp_path / "missing.yaml")
