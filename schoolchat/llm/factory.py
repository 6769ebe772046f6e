"""
LLM Provider Factory

Creates provider instances from LLMSettings, honoring per-agent overrides
(LLM_SQL_PROVIDER, LLM_SUMMARY_PROVIDER, LLM_CHAT_PROVIDER).
"""

import logging
from typing import Literal

from schoolchat.config import LLMSettings
from schoolchat.llm.anthropic import AnthropicProvider
from schoolchat.llm.base import BaseLLMProvider
from schoolchat.llm.openai import OpenAIProvider

logger = logging.getLogger(__name__)


class LLMProviderFactory:
    """Factory for creating LLM provider instances."""

    PROVIDERS = {
        "openai": OpenAIProvider,
        "anthropic": AnthropicProvider,
    }

    @staticmethod
    def create_provider(
        provider_type: Literal["openai", "anthropic"],
        config: LLMSettings,
        model_type: Literal["main", "mini"] = "main",
    ) -> BaseLLMProvider:
        """
        Create an LLM provider instance.

        Args:
            provider_type: Type of provider to create
            config: LLM configuration settings
            model_type: Use main model or mini model (default: main)

        Raises:
            ValueError: If provider type is unknown or its API key is missing
        """
        provider_cls = LLMProviderFactory.PROVIDERS.get(provider_type)
        if provider_cls is None:
            raise ValueError(
                f"Unknown provider type: {provider_type}. "
                f"Available providers: {list(LLMProviderFactory.PROVIDERS.keys())}"
            )

        settings = config.provider_config(provider_type)
        if not settings["api_key"]:
            raise ValueError(f"{provider_type} API key is required but not configured")

        model = settings["model"] if model_type == "main" else settings["model_mini"]
        logger.info(
            f"Creating {provider_type} provider with {model_type} model",
            extra={"provider": provider_type, "model_type": model_type, "model": model},
        )
        return provider_cls(
            api_key=settings["api_key"],
            model=model,
            temperature=settings["temperature"],
            max_tokens=settings["max_tokens"],
            timeout=settings["timeout"],
        )

    @staticmethod
    def create_agent_provider(
        agent_name: Literal["sql", "summary", "chat"],
        config: LLMSettings,
        model_type: Literal["main", "mini"] = "main",
    ) -> BaseLLMProvider:
        """
        Create provider for a specific agent with override support.

        Args:
            agent_name: "sql", "summary" or "chat"
            config: LLM configuration
            model_type: Use main or mini model
        """
        provider_type = config.provider_for(agent_name)
        logger.info(
            f"Creating provider for {agent_name} agent",
            extra={"agent": agent_name, "provider": provider_type},
        )
        return LLMProviderFactory.create_provider(provider_type, config, model_type)
