"""
OpenAI LLM Provider

BaseLLMProvider implementation for OpenAI chat models, with function calling.
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import openai
from openai import AsyncOpenAI

from schoolchat.llm.base import BaseLLMProvider
from schoolchat.llm.models import (
    LLMMessage,
    LLMRequest,
    LLMResponse,
    LLMStreamChunk,
    LLMToolCall,
    LLMToolDefinition,
    LLMUsage,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseLLMProvider):
    """OpenAI provider using the official async SDK."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        temperature: float = 0.0,
        max_tokens: int = 2000,
        timeout: int = 30,
    ):
        super().__init__(
            provider_name="openai",
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
        self.client = AsyncOpenAI(api_key=api_key, timeout=float(timeout))

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate completion using OpenAI API.

        Raises:
            openai.APIError: On API errors
            openai.APITimeoutError: On timeout
        """
        request = self._apply_defaults(request)
        self._log_request(request)

        params: dict[str, Any] = {
            "model": request.model or self.model,
            "messages": [self._to_openai_message(msg) for msg in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            **request.metadata,
        }
        if request.tools:
            params["tools"] = [self._to_openai_tool(tool) for tool in request.tools]

        try:
            response = await self.client.chat.completions.create(**params)
        except openai.APITimeoutError as e:
            logger.error(f"OpenAI API timeout: {e}")
            raise
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise

        choice = response.choices[0]
        tool_calls = [
            LLMToolCall(
                id=call.id,
                name=call.function.name,
                arguments=self._decode_arguments(call.function.arguments),
            )
            for call in (choice.message.tool_calls or [])
        ]
        usage = response.usage
        llm_response = LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage=LLMUsage(
                prompt_tokens=usage.prompt_tokens if usage else 0,
                completion_tokens=usage.completion_tokens if usage else 0,
                total_tokens=usage.total_tokens if usage else 0,
            ),
            finish_reason=self._map_finish_reason(choice.finish_reason),
            provider="openai",
            tool_calls=tool_calls,
            metadata={"id": response.id, "created": response.created},
        )
        self._log_response(llm_response)
        return llm_response

    async def stream(self, request: LLMRequest) -> AsyncIterator[LLMStreamChunk]:
        """Stream completion text using OpenAI API."""
        request = self._apply_defaults(request)
        request.stream = True
        self._log_request(request)

        try:
            stream = await self.client.chat.completions.create(
                model=request.model or self.model,
                messages=[self._to_openai_message(msg) for msg in request.messages],
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                stream=True,
                **request.metadata,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                if choice.delta.content:
                    yield LLMStreamChunk(
                        content=choice.delta.content,
                        finish_reason=self._map_finish_reason(choice.finish_reason)
                        if choice.finish_reason
                        else None,
                        metadata={"id": chunk.id},
                    )
        except openai.APIError as e:
            logger.error(f"OpenAI streaming error: {e}")
            raise

    @staticmethod
    def _to_openai_message(msg: LLMMessage) -> dict[str, Any]:
        if msg.role == "tool":
            return {"role": "tool", "tool_call_id": msg.tool_call_id, "content": msg.content}
        payload: dict[str, Any] = {"role": msg.role, "content": msg.content or None}
        if msg.tool_calls:
            payload["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                }
                for call in msg.tool_calls
            ]
        return payload

    @staticmethod
    def _to_openai_tool(tool: LLMToolDefinition) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }

    @staticmethod
    def _decode_arguments(raw: str | None) -> dict[str, Any]:
        if not raw:
            return {}
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"OpenAI returned non-JSON tool arguments: {raw[:200]}")
            return {}
        return decoded if isinstance(decoded, dict) else {}

    @staticmethod
    def _map_finish_reason(reason: str | None) -> str:
        """Map OpenAI finish reason to our standard format."""
        if reason in ("stop", "length", "content_filter", "tool_calls"):
            return reason
        if reason == "function_call":
            return "tool_calls"
        return "stop"
