"""
Anthropic LLM Provider

BaseLLMProvider implementation for Anthropic's Claude models, with tool use.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from schoolchat.llm.base import BaseLLMProvider
from schoolchat.llm.models import (
    LLMMessage,
    LLMRequest,
    LLMResponse,
    LLMStreamChunk,
    LLMToolCall,
    LLMUsage,
)

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseLLMProvider):
    """Anthropic (Claude) provider using the anthropic SDK."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-sonnet-20241022",
        temperature: float = 0.0,
        max_tokens: int = 2000,
        timeout: int = 30,
    ):
        super().__init__(
            provider_name="anthropic",
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
        self.client = AsyncAnthropic(api_key=api_key, timeout=float(timeout))

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate completion using Anthropic API."""
        request = self._apply_defaults(request)
        self._log_request(request)

        system_message, messages = self._split_messages(request.messages)
        params: dict[str, Any] = {
            "model": request.model or self.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": messages,
        }
        if system_message:
            params["system"] = system_message
        if request.tools:
            params["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.parameters,
                }
                for tool in request.tools
            ]

        try:
            response = await self.client.messages.create(**params)
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise

        text_parts = []
        tool_calls = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    LLMToolCall(id=block.id, name=block.name, arguments=dict(block.input or {}))
                )

        llm_response = LLMResponse(
            content="".join(text_parts),
            model=response.model,
            usage=LLMUsage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            ),
            finish_reason=self._map_finish_reason(response.stop_reason),
            provider="anthropic",
            tool_calls=tool_calls,
            metadata={"id": response.id},
        )
        self._log_response(llm_response)
        return llm_response

    async def stream(self, request: LLMRequest) -> AsyncIterator[LLMStreamChunk]:
        """Stream completion text using Anthropic API."""
        request = self._apply_defaults(request)
        self._log_request(request)

        system_message, messages = self._split_messages(request.messages)
        params: dict[str, Any] = {
            "model": request.model or self.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": messages,
        }
        if system_message:
            params["system"] = system_message

        async with self.client.messages.stream(**params) as stream:
            async for chunk in stream.text_stream:
                yield LLMStreamChunk(content=chunk, finish_reason=None)

    @staticmethod
    def _split_messages(messages: list[LLMMessage]) -> tuple[str | None, list[dict[str, Any]]]:
        """
        Convert to Anthropic's message format.

        The system prompt travels separately. Tool results are user turns
        carrying tool_result blocks; consecutive results are merged into one
        turn because the API rejects two user turns in a row.
        """
        system_parts = []
        converted: list[dict[str, Any]] = []
        for msg in messages:
            if msg.role == "system":
                system_parts.append(msg.content)
                continue
            if msg.role == "tool":
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id,
                    "content": msg.content,
                }
                previous = converted[-1] if converted else None
                if (
                    previous
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and previous["content"]
                    and previous["content"][0].get("type") == "tool_result"
                ):
                    previous["content"].append(block)
                else:
                    converted.append({"role": "user", "content": [block]})
                continue
            if msg.role == "assistant" and msg.tool_calls:
                content: list[dict[str, Any]] = []
                if msg.content:
                    content.append({"type": "text", "text": msg.content})
                content.extend(
                    {"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments}
                    for call in msg.tool_calls
                )
                converted.append({"role": "assistant", "content": content})
                continue
            converted.append({"role": msg.role, "content": msg.content})
        system_message = "\n\n".join(system_parts) if system_parts else None
        return system_message, converted

    @staticmethod
    def _map_finish_reason(reason: str | None) -> str:
        """Map Anthropic stop reason to standard format."""
        if reason == "max_tokens":
            return "length"
        if reason == "tool_use":
            return "tool_calls"
        return "stop"
