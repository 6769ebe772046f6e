"""
LLM Request and Response Models

Provider-agnostic pydantic models shared by the OpenAI and Anthropic
providers, including native tool (function) calling.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

FinishReason = Literal["stop", "length", "content_filter", "tool_calls", "error"]


class LLMToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str = Field(..., description="Provider-assigned call id")
    name: str = Field(..., description="Tool name")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Decoded arguments")


class LLMToolDefinition(BaseModel):
    """A tool the model may call, described by a JSON schema."""

    name: str = Field(..., description="Tool name")
    description: str = Field(default="", description="What the tool does")
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON schema of the arguments",
    )


class LLMMessage(BaseModel):
    """Single message in an LLM conversation."""

    role: Literal["system", "user", "assistant", "tool"] = Field(..., description="Message role")
    content: str = Field(default="", description="Message content")
    tool_calls: list[LLMToolCall] = Field(
        default_factory=list, description="Tool calls made by an assistant message"
    )
    tool_call_id: str | None = Field(None, description="Call answered by a tool message")

    @model_validator(mode="after")
    def check_shape(self) -> "LLMMessage":
        if self.role == "tool" and not self.tool_call_id:
            raise ValueError("tool messages require tool_call_id")
        if not self.content and not self.tool_calls:
            raise ValueError("message content cannot be empty")
        return self


class LLMRequest(BaseModel):
    """Request to an LLM provider."""

    messages: list[LLMMessage] = Field(..., description="Conversation messages", min_length=1)
    temperature: float | None = Field(
        None, ge=0.0, le=2.0, description="Sampling temperature (overrides default)"
    )
    max_tokens: int | None = Field(
        None, gt=0, description="Maximum tokens to generate (overrides default)"
    )
    stream: bool = Field(default=False, description="Whether to stream the response")
    model: str | None = Field(None, description="Specific model to use (overrides default)")
    tools: list[LLMToolDefinition] = Field(
        default_factory=list, description="Tools the model may call"
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Additional provider-specific parameters"
    )


class LLMUsage(BaseModel):
    """Token usage information."""

    prompt_tokens: int = Field(..., ge=0)
    completion_tokens: int = Field(..., ge=0)
    total_tokens: int = Field(..., ge=0)


class LLMResponse(BaseModel):
    """Response from an LLM provider."""

    content: str = Field(..., description="Generated text content")
    model: str = Field(..., description="Model that generated the response")
    usage: LLMUsage = Field(..., description="Token usage information")
    finish_reason: FinishReason = Field(..., description="Reason the generation stopped")
    provider: str = Field(..., description="Provider that handled the request")
    tool_calls: list[LLMToolCall] = Field(
        default_factory=list, description="Tool calls requested by the model"
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Additional provider-specific response data"
    )


class LLMStreamChunk(BaseModel):
    """Streaming response chunk from an LLM provider."""

    content: str = Field(..., description="Chunk of generated text")
    finish_reason: FinishReason | None = Field(None, description="Set on the final chunk")
    metadata: dict[str, Any] = Field(default_factory=dict)
