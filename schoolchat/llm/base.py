"""
Base LLM Provider

Abstract base class defining the interface for all LLM providers.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from schoolchat.llm.models import LLMMessage, LLMRequest, LLMResponse, LLMStreamChunk

logger = logging.getLogger(__name__)


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Attributes:
        provider_name: Unique identifier for this provider
        model: Default model name
        temperature: Default sampling temperature
        max_tokens: Default maximum tokens to generate
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        provider_name: str,
        model: str,
        temperature: float = 0.0,
        max_tokens: int = 2000,
        timeout: int = 30,
    ):
        self.provider_name = provider_name
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        logger.info(
            f"Initialized {provider_name} provider with model: {model}",
            extra={
                "provider": provider_name,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        )

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            request: LLM request with messages, parameters and optional tools

        Returns:
            LLMResponse with generated content, tool calls and usage

        Raises:
            Exception: Provider-specific errors (API errors, timeouts, etc.)
        """
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def stream(self, request: LLMRequest) -> AsyncIterator[LLMStreamChunk]:
        """Stream a text completion chunk by chunk."""
        pass  # pragma: no cover - abstract method

    async def complete(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """
        Single-prompt text completion.

        This is the narrow interface the SQL generator and summary builder
        depend on: one user prompt in, the response text out.
        """
        response = await self.generate(
            LLMRequest(
                messages=[LLMMessage(role="user", content=prompt)],
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        )
        return response.content

    def _apply_defaults(self, request: LLMRequest) -> LLMRequest:
        """Fill temperature and max_tokens when the request leaves them unset."""
        if request.temperature is None:
            request.temperature = self.temperature
        if request.max_tokens is None:
            request.max_tokens = self.max_tokens
        return request

    def _log_request(self, request: LLMRequest) -> None:
        logger.debug(
            f"{self.provider_name} request",
            extra={
                "provider": self.provider_name,
                "message_count": len(request.messages),
                "tool_count": len(request.tools),
                "temperature": request.temperature,
                "max_tokens": request.max_tokens,
                "stream": request.stream,
            },
        )

    def _log_response(self, response: LLMResponse) -> None:
        logger.debug(
            f"{self.provider_name} response",
            extra={
                "provider": self.provider_name,
                "model": response.model,
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
                "finish_reason": response.finish_reason,
                "tool_calls": len(response.tool_calls),
            },
        )
