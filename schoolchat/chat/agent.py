"""
MapChatAgent: the conversational layer over the map and the analysis pipeline.

One chat turn:
    1. Start a fresh PendingUIFlags for the turn
    2. Ask a tool-calling model for the next step
    3. Dispatch every tool call (map tools set flags, data tools run queries)
    4. Feed the results back and repeat until the model answers in text
       or max_tool_rounds is reached
    5. Return the text, the serialized flags and a record of the tool calls

Flags live in the turn's ToolContext, so concurrent sessions never see each
other's pending changes.
"""

import json
import logging
import uuid
from typing import Any

from pydantic import BaseModel, Field

from schoolchat.config import Settings, get_settings
from schoolchat.llm.base import BaseLLMProvider
from schoolchat.llm.factory import LLMProviderFactory
from schoolchat.llm.models import LLMMessage, LLMRequest, LLMResponse, LLMToolDefinition
from schoolchat.prompts.loader import PromptLoader
from schoolchat.tools import ToolDispatcher, ToolRegistry, initialize_tools
from schoolchat.tools.base import ToolCategory, ToolContext
from schoolchat.tools.builtin.map_controls import PALETTES, SCHOOL_TYPES
from schoolchat.tools.flags import FLAGS_STATE_KEY, PendingUIFlags
from schoolchat.utils.retry import run_with_retry

logger = logging.getLogger(__name__)

DATA_TOOL_NAMES = ["list_tables", "describe_table", "run_analysis"]
FALLBACK_REPLY = "Done."


class ToolCallRecord(BaseModel):
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    success: bool
    result: Any = None
    error: str | None = None


class ChatTurnResult(BaseModel):
    text: str
    flags: dict[str, dict[str, Any]]
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)


class MapChatAgent:
    """Runs chat turns against a tool-calling model."""

    def __init__(
        self,
        llm_provider: BaseLLMProvider | None = None,
        dispatcher: ToolDispatcher | None = None,
        prompts: PromptLoader | None = None,
        pipeline: Any = None,
        settings: Settings | None = None,
    ):
        self.config = settings or get_settings()
        initialize_tools(self.config.chat.tool_policy_path)
        if llm_provider is None:
            llm_provider = LLMProviderFactory.create_agent_provider(
                agent_name="chat", config=self.config.llm, model_type="main"
            )
        self.llm = llm_provider
        self.dispatcher = dispatcher or ToolDispatcher()
        self.prompts = prompts or PromptLoader()
        self.pipeline = pipeline

    def tool_definitions(self) -> list[LLMToolDefinition]:
        categories = [ToolCategory.MAP]
        if self.config.chat.data_tools_enabled:
            categories += [ToolCategory.DATABASE, ToolCategory.ANALYSIS]
        return ToolRegistry.llm_tools(categories)

    def system_prompt(self) -> str:
        return self.prompts.render(
            "chat/map_assistant.md",
            school_types=SCHOOL_TYPES,
            palettes=PALETTES,
            data_tools=DATA_TOOL_NAMES if self.config.chat.data_tools_enabled else [],
        )

    async def run_turn(
        self, messages: list[LLMMessage | dict[str, Any]], user_id: str = "anonymous"
    ) -> ChatTurnResult:
        """
        Run one chat turn.

        Args:
            messages: Conversation so far, ending with the user's message
            user_id: Caller identity passed to tool policies

        Raises:
            Exception: The completion service failed after retries
        """
        flags = PendingUIFlags()
        flags.reset()
        ctx = ToolContext(
            user_id=user_id,
            correlation_id=f"chat-{uuid.uuid4().hex[:12]}",
            metadata={"pipeline": self.pipeline} if self.pipeline is not None else {},
            state={FLAGS_STATE_KEY: flags},
        )
        conversation = [LLMMessage(role="system", content=self.system_prompt())]
        conversation += [
            m if isinstance(m, LLMMessage) else LLMMessage.model_validate(m) for m in messages
        ]
        tools = self.tool_definitions()
        records: list[ToolCallRecord] = []

        text = None
        for round_number in range(1, self.config.chat.max_tool_rounds + 1):
            response = await self._generate(conversation, tools)
            if not response.tool_calls:
                text = response.content
                break

            logger.info(
                f"Chat round {round_number}: {len(response.tool_calls)} tool call(s)",
                extra={"correlation_id": ctx.correlation_id},
            )
            conversation.append(
                LLMMessage(
                    role="assistant", content=response.content, tool_calls=response.tool_calls
                )
            )
            for call in response.tool_calls:
                record = await self._dispatch(call.name, call.arguments, ctx)
                records.append(record)
                conversation.append(
                    LLMMessage(role="tool", tool_call_id=call.id, content=_tool_message(record))
                )
        else:
            logger.warning(
                f"Tool round limit reached ({self.config.chat.max_tool_rounds}), asking for a reply"
            )
            response = await self._generate(conversation, [])
            text = response.content

        return ChatTurnResult(
            text=(text or "").strip() or FALLBACK_REPLY,
            flags=flags.serialize(),
            tool_calls=records,
        )

    async def _generate(
        self, conversation: list[LLMMessage], tools: list[LLMToolDefinition]
    ) -> LLMResponse:
        request = LLMRequest(messages=list(conversation), tools=tools)
        chat = self.config.chat
        return await run_with_retry(
            lambda: self.llm.generate(request),
            max_retries=chat.max_retries,
            initial_delay=chat.initial_retry_delay,
            backoff_factor=chat.backoff_factor,
        )

    async def _dispatch(
        self, name: str, arguments: dict[str, Any], ctx: ToolContext
    ) -> ToolCallRecord:
        try:
            outcome = await self.dispatcher.dispatch(name, arguments, ctx)
        except Exception as e:
            # Reported back to the model, which can recover or explain
            logger.warning(f"Tool call {name} failed: {e}")
            return ToolCallRecord(name=name, arguments=arguments, success=False, error=str(e))
        return ToolCallRecord(
            name=name, arguments=arguments, success=True, result=outcome.get("result")
        )


def _tool_message(record: ToolCallRecord) -> str:
    if not record.success:
        return json.dumps({"error": record.error})
    return json.dumps(record.result, default=str)
