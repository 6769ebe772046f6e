"""
LLM Provider Module

Provider abstraction over OpenAI and Anthropic.

Usage:
    from schoolchat.llm import LLMProviderFactory
    from schoolchat.config import get_settings

    provider = LLMProviderFactory.create_agent_provider("sql", get_settings().llm)
    text = await provider.complete("How many schools are there?")
"""

from schoolchat.llm.anthropic import AnthropicProvider
from schoolchat.llm.base import BaseLLMProvider
from schoolchat.llm.factory import LLMProviderFactory
from schoolchat.llm.models import (
    LLMMessage,
    LLMRequest,
    LLMResponse,
    LLMStreamChunk,
    LLMToolCall,
    LLMToolDefinition,
    LLMUsage,
)
from schoolchat.llm.openai import OpenAIProvider

__all__ = [
    "BaseLLMProvider",
    "LLMMessage",
    "LLMRequest",
    "LLMResponse",
    "LLMStreamChunk",
    "LLMToolCall",
    "LLMToolDefinition",
    "LLMUsage",
    "LLMProviderFactory",
    "OpenAIProvider",
    "AnthropicProvider",
]
